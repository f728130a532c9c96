from __future__ import annotations
import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Iterable, List, NamedTuple, Optional, Tuple

from .clock import Clock, now_local, to_epoch_ms
from .dedup import DedupTracker
from .models import UNLIMITED, BlockStatus, GlobalSettings, ReminderMode, TimeBlock, new_block_id
from .store import SETTINGS_KEY, TIME_BLOCKS_KEY, Store

logger = logging.getLogger(__name__)

# fields a user edit may change; id and createdAt are fixed at creation
EDITABLE_FIELDS = {
    "task", "start_time", "enabled", "status", "pre_alert",
    "reminder_mode", "weekdays", "reminder_count", "remaining_count",
}


class Snapshot(NamedTuple):
    blocks: List[TimeBlock]
    unreadable: List[Any]  # raw records written back untouched
    normalised: bool  # some record was given an id or createdAt on load


class Repository:
    """
    Block and settings access on top of a key/value store.

    Every edit clears the edited block's dedup state in the same call, so a
    changed trigger time is never suppressed by a guard from the old one.
    """

    def __init__(self, store: Store, dedup: Optional[DedupTracker] = None, clock: Clock = now_local):
        self.store = store
        self.dedup = dedup if dedup is not None else DedupTracker()
        self.clock = clock

    def init_storage(self) -> None:
        """
        Seed an empty block list and default settings on first run, and
        rewrite existing records in normalised form so that records saved
        without an id or createdAt get stable ones before the first tick.
        """
        if self.store.get(TIME_BLOCKS_KEY) is None:
            self.store.set(TIME_BLOCKS_KEY, [])
        else:
            blocks, unreadable = self.load_snapshot()
            self.save_blocks(blocks, unreadable)
        if self.store.get(SETTINGS_KEY) is None:
            self.store.set(SETTINGS_KEY, GlobalSettings().to_dict())
            logger.info("Initialised default settings")

    # ---------- Settings ----------
    def get_settings(self) -> GlobalSettings:
        return GlobalSettings.from_dict(self.store.get(SETTINGS_KEY))

    def save_settings(self, settings: GlobalSettings) -> None:
        self.store.set(SETTINGS_KEY, settings.to_dict())

    def set_global_alert_enabled(self, enabled: bool) -> GlobalSettings:
        settings = replace(self.get_settings(), global_alert_enabled=enabled)
        self.save_settings(settings)
        logger.info(f"Alerts {'enabled' if enabled else 'disabled'}")
        return settings

    def set_pre_alert_time(self, minutes: int) -> GlobalSettings:
        """Longer windows get a second pulse."""
        if minutes < 0:
            raise ValueError("pre-alert time must not be negative")
        count = 2 if minutes > 3 else 1
        settings = replace(self.get_settings(), pre_alert_time=minutes, pre_alert_count=count)
        self.save_settings(settings)
        return settings

    # ---------- Blocks ----------
    def list_blocks(self) -> List[TimeBlock]:
        blocks, _ = self.load_snapshot()
        return blocks

    def load_snapshot(self) -> Tuple[List[TimeBlock], List[Any]]:
        """
        All blocks in stored order, plus raw records that could not be read.
        The unreadable records are handed back so a write of the snapshot
        doesn't lose them.
        """
        snap = self.read_snapshot()
        return snap.blocks, snap.unreadable

    def read_snapshot(self) -> Snapshot:
        """
        Like load_snapshot, and also reports whether a record only got its
        id or createdAt on this load. Such ids change on every read until the
        list is written back.
        """
        raw = self.store.get(TIME_BLOCKS_KEY, [])
        if not isinstance(raw, list):
            logger.warning(f"Stored {TIME_BLOCKS_KEY!r} is not a list, treating as empty")
            return Snapshot([], [], False)

        now_ms = self._now_ms()
        blocks: List[TimeBlock] = []
        unreadable: List[Any] = []
        normalised = False
        for rec in raw:
            try:
                block = TimeBlock.from_dict(rec, now_ms)
            except ValueError as e:
                logger.warning(f"Skipping unreadable time block: {e}")
                unreadable.append(rec)
                continue
            if block.id != rec.get("id") or block.created_at != rec.get("createdAt"):
                normalised = True
            blocks.append(block)
        return Snapshot(blocks, unreadable, normalised)

    def save_blocks(self, blocks: Iterable[TimeBlock], extra_records: Iterable[Any] = ()) -> None:
        records: List[Any] = [b.to_dict() for b in blocks]
        records.extend(extra_records)
        self.store.set(TIME_BLOCKS_KEY, records)

    def get_block(self, block_id: str) -> TimeBlock:
        for b in self.list_blocks():
            if b.id == block_id:
                return b
        raise KeyError(block_id)

    def create_block(
        self,
        task: str,
        start: datetime,
        reminder_mode: ReminderMode = ReminderMode.DAILY,
        weekdays: Iterable[int] = (),
        pre_alert: bool = False,
        reminder_count: int = UNLIMITED,
        enabled: bool = True,
    ) -> TimeBlock:
        if reminder_count < UNLIMITED:
            raise ValueError("reminder_count must be -1 (unlimited) or a non-negative count")
        block = TimeBlock(
            id=new_block_id(),
            task=task.strip() or "Untitled",
            start_time=to_epoch_ms(start),
            created_at=self._now_ms(),
            enabled=enabled,
            pre_alert=pre_alert,
            reminder_mode=reminder_mode,
            weekdays={d for d in weekdays if 0 <= d <= 6},
            reminder_count=reminder_count,
            remaining_count=reminder_count,
        )
        blocks, unreadable = self.load_snapshot()
        blocks.append(block)
        self.save_blocks(blocks, unreadable)
        logger.info(f"Created block '{block.task}' ({block.id})")
        return block

    def update_block(self, block_id: str, **changes: Any) -> TimeBlock:
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise TypeError(f"cannot update {', '.join(sorted(unknown))}")
        if "start_time" in changes and isinstance(changes["start_time"], datetime):
            changes["start_time"] = to_epoch_ms(changes["start_time"])
        if "weekdays" in changes:
            changes["weekdays"] = {d for d in changes["weekdays"] if 0 <= d <= 6}
        if "reminder_count" in changes and "remaining_count" not in changes:
            changes["remaining_count"] = changes["reminder_count"]

        blocks, unreadable = self.load_snapshot()
        for i, b in enumerate(blocks):
            if b.id == block_id:
                blocks[i] = replace(b, **changes)
                break
        else:
            raise KeyError(block_id)

        self.dedup.clear_for(block_id)
        self.save_blocks(blocks, unreadable)
        return blocks[i]

    def set_enabled(self, block_id: str, enabled: bool) -> TimeBlock:
        return self.update_block(block_id, enabled=enabled)

    def complete_block(self, block_id: str) -> TimeBlock:
        return self.update_block(block_id, status=BlockStatus.COMPLETED)

    def delete_block(self, block_id: str) -> None:
        blocks, unreadable = self.load_snapshot()
        kept = [b for b in blocks if b.id != block_id]
        if len(kept) == len(blocks):
            raise KeyError(block_id)
        self.dedup.clear_for(block_id)
        self.save_blocks(kept, unreadable)
        logger.info(f"Deleted block {block_id}")

    def _now_ms(self) -> int:
        return to_epoch_ms(self.clock())
