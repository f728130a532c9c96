from __future__ import annotations
import logging
from typing import List, Optional

from PySide6.QtCore import QObject, Qt, Slot
from PySide6.QtWidgets import QMessageBox, QSystemTrayIcon

from .engine import Alert

logger = logging.getLogger(__name__)


class Dispatcher(QObject):
    """
    Receives alerts from the scheduler and renders them. Subclasses only
    implement dispatch(); failures there are logged and never reach the
    scheduler.
    """

    def dispatch(self, title: str, body: str) -> None:
        raise NotImplementedError

    @Slot(object)
    def deliver(self, alert: Alert) -> None:
        try:
            self.dispatch(alert.title, alert.body)
        except Exception:
            logger.exception(f"Failed to dispatch {alert.kind.value} alert for block {alert.block_id}")


class TrayDispatcher(Dispatcher):
    def __init__(self, tray: QSystemTrayIcon, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.tray = tray

    def dispatch(self, title: str, body: str) -> None:
        # Cross-platform "native-ish" balloon/toast
        self.tray.showMessage(title, body, QSystemTrayIcon.MessageIcon.Information, 10_000)


class PopupDispatcher(Dispatcher):
    """Always-on-top, non-modal box the user has to dismiss."""

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._open: List[QMessageBox] = []

    def dispatch(self, title: str, body: str) -> None:
        box = QMessageBox(QMessageBox.Icon.Information, title, body, QMessageBox.StandardButton.Ok)
        box.setWindowFlag(Qt.WindowType.WindowStaysOnTopHint, True)
        box.setAttribute(Qt.WidgetAttribute.WA_DeleteOnClose, True)
        box.setModal(False)
        self._open.append(box)
        box.finished.connect(lambda _=None, b=box: self._open.remove(b))
        box.show()
        box.raise_()
        box.activateWindow()


class LogDispatcher(Dispatcher):
    """Headless: alerts only go to the log."""

    def dispatch(self, title: str, body: str) -> None:
        logger.warning(f"ALERT {title}: {body}")


def make_dispatcher(style: str, tray: Optional[QSystemTrayIcon] = None, parent: Optional[QObject] = None) -> Dispatcher:
    if style == "popup":
        return PopupDispatcher(parent)
    if style == "system":
        if tray is None or not QSystemTrayIcon.isSystemTrayAvailable():
            logger.warning("System tray unavailable, falling back to popup alerts")
            return PopupDispatcher(parent)
        return TrayDispatcher(tray, parent)
    if style == "log":
        return LogDispatcher(parent)
    raise ValueError(f"unknown notification style {style!r}")
