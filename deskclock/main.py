from __future__ import annotations
import logging
import signal
import sys

from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QAction
from PySide6.QtWidgets import QApplication, QMenu, QStyle, QSystemTrayIcon

from .config import Config
from .db import connect, data_dir, migrate
from .dedup import DedupTracker
from .notifications import make_dispatcher
from .repository import Repository
from .scheduler import Scheduler
from .status import StatusWriter
from .store import SqliteStore

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
        stream=sys.stdout,
    )


def main() -> int:
    configure_logging()
    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    app = QApplication(sys.argv)
    app.setApplicationName("DeskClock")
    app.setQuitOnLastWindowClosed(False)

    # --- Dev convenience: allow Ctrl-C to quit without ugly tracebacks ---
    # Qt's event loop eats SIGINT unless we pump it. This makes Ctrl-C behave.
    signal.signal(signal.SIGINT, signal.SIG_DFL)
    _sig_timer = QTimer()
    _sig_timer.start(250)
    _sig_timer.timeout.connect(lambda: None)

    conn = connect()
    migrate(conn)
    dedup = DedupTracker()
    repo = Repository(SqliteStore(conn), dedup)
    repo.init_storage()

    tray = QSystemTrayIcon()
    tray.setIcon(app.style().standardIcon(QStyle.StandardPixmap.SP_MessageBoxInformation))
    tray.setToolTip("DeskClock")

    status = StatusWriter(data_dir()) if Config.STATUS_FILES else None
    scheduler = Scheduler(repo, dedup, interval_ms=Config.POLL_INTERVAL_MS, status=status)

    dispatcher = make_dispatcher(Config.NOTIFICATION_STYLE, tray)
    scheduler.alert_due.connect(dispatcher.deliver, Qt.ConnectionType.QueuedConnection)

    menu = QMenu()

    act_alerts = QAction("Alerts enabled")
    act_alerts.setCheckable(True)
    act_alerts.setChecked(repo.get_settings().global_alert_enabled)
    act_alerts.toggled.connect(repo.set_global_alert_enabled)
    menu.addAction(act_alerts)

    act_reload = QAction("Reload reminders")
    act_reload.triggered.connect(scheduler.reload)
    menu.addAction(act_reload)

    menu.addSeparator()

    def quit_cleanly():
        # Ensure tray icon disappears immediately; avoids some Qt shutdown warnings.
        scheduler.stop()
        tray.hide()
        app.quit()

    act_quit = QAction("Quit")
    act_quit.triggered.connect(quit_cleanly)
    menu.addAction(act_quit)

    tray.setContextMenu(menu)

    scheduler.start()
    tray.show()
    logger.info(f"DeskClock running, data in {data_dir()}")
    rc = app.exec()
    conn.close()
    return rc


if __name__ == "__main__":
    sys.exit(main())
