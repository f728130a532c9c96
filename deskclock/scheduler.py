from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Tuple

from PySide6.QtCore import QObject, QTimer, Signal

from .clock import Clock, now_local
from .dedup import DedupTracker
from .engine import Alert, TickResult, evaluate
from .models import GlobalSettings, TimeBlock
from .repository import Repository
from .status import StatusWriter
from .store import StoreError

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 5_000
STARTUP_CHECK_MS = 1_000


class Scheduler(QObject):
    """
    Drives the evaluation pass from a Qt timer. Owns no durable state: each
    tick reads a full snapshot, evaluates it, emits alerts and writes the
    snapshot back in one batch. Changes whose write failed are kept per
    block and re-applied to the next fresh read.

    Alerts go out through `alert_due`; connect dispatchers with a queued
    connection so rendering happens after the tick returns.
    """

    alert_due = Signal(object)  # Alert

    def __init__(
        self,
        repo: Repository,
        dedup: Optional[DedupTracker] = None,
        clock: Clock = now_local,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        status: Optional[StatusWriter] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.repo = repo
        self.dedup = dedup if dedup is not None else repo.dedup
        self.clock = clock
        self.status = status
        self.timer = QTimer(self)
        self.timer.setInterval(interval_ms)
        self.timer.timeout.connect(self.tick)

        self._ticking = False
        # block id -> (block as read from the store, unsaved result; None = deleted)
        self._pending: Dict[str, Tuple[TimeBlock, Optional[TimeBlock]]] = {}

    def start(self) -> None:
        self.timer.start()
        # also check shortly after launch
        QTimer.singleShot(STARTUP_CHECK_MS, self.tick)
        logger.info(f"Scheduler started (interval: {self.timer.interval()} ms)")

    def stop(self) -> None:
        self.timer.stop()
        if self.status is not None:
            self.status.write_status(self.clock(), running=False, stage="stopped")
        logger.info("Scheduler stopped")

    def reload(self) -> None:
        """The block list was replaced externally: re-arm every guard and re-read."""
        self.dedup.clear_all()
        self._pending = {}
        self.tick()

    @property
    def has_unsaved_changes(self) -> bool:
        return bool(self._pending)

    def tick(self) -> Optional[TickResult]:
        if self._ticking:
            logger.debug("Tick already in progress, skipping")
            return None
        self._ticking = True
        try:
            return self._run_tick()
        finally:
            self._ticking = False

    def _run_tick(self) -> Optional[TickResult]:
        now = self.clock()
        settings = self._read_settings()

        try:
            snap = self.repo.read_snapshot()
        except StoreError as e:
            logger.error(f"Could not read time blocks, skipping tick: {e}")
            return None

        blocks = self._apply_pending(snap.blocks) if self._pending else snap.blocks
        result = evaluate(now, blocks, settings, self.dedup)

        for alert in result.alerts:
            self._fire(alert)

        self._record_mutations(blocks, result)
        if self._pending or snap.normalised:
            self._persist(result.blocks, snap.unreadable)

        if self.status is not None:
            self.status.write_status(now)
            self.status.write_current_task(now, result.blocks)

        return result

    def _apply_pending(self, blocks: List[TimeBlock]) -> List[TimeBlock]:
        """
        Re-apply unsaved tick results on top of a fresh read. A block that was
        edited or deleted through the repository since then keeps the stored
        version and its unsaved result is dropped.
        """
        out: List[TimeBlock] = []
        still_pending: Dict[str, Tuple[TimeBlock, Optional[TimeBlock]]] = {}
        for block in blocks:
            entry = self._pending.get(block.id)
            if entry is None:
                out.append(block)
                continue
            loaded, replacement = entry
            if block != loaded:
                logger.info(f"'{block.task}' changed since the failed save, keeping the stored version")
                out.append(block)
                continue
            still_pending[block.id] = entry
            if replacement is not None:
                out.append(replacement)
        self._pending = still_pending
        return out

    def _record_mutations(self, blocks: List[TimeBlock], result: TickResult) -> None:
        after = {b.id: b for b in result.blocks}
        for block in blocks:
            new = after.get(block.id)
            if new is block:
                continue
            # keep the version the store holds, so a retry can tell if it was edited meanwhile
            loaded = self._pending[block.id][0] if block.id in self._pending else block
            self._pending[block.id] = (loaded, new)

    def _read_settings(self) -> GlobalSettings:
        try:
            return self.repo.get_settings()
        except StoreError as e:
            logger.warning(f"Could not read settings, using defaults: {e}")
            return GlobalSettings()

    def _persist(self, blocks: List[TimeBlock], extra: List[Any]) -> None:
        try:
            self.repo.save_blocks(blocks, extra)
        except StoreError as e:
            logger.error(f"Could not save time blocks, will retry next tick: {e}")
            return
        if self._pending:
            logger.debug(f"Saved {len(self._pending)} updated block(s)")
        self._pending = {}

    def _fire(self, alert: Alert) -> None:
        try:
            self.alert_due.emit(alert)
        except Exception:
            # a directly-connected receiver raised; the rest of the tick still runs
            logger.exception(f"Alert receiver failed for block {alert.block_id}")
