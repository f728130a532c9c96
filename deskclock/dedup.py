from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass
class AlertState:
    """Transient per-block bookkeeping. Times are epoch ms."""
    last_alert_date: Optional[int] = None  # local midnight of the day the main alert fired
    last_notification_time: int = 0
    last_pre_alert_time: int = 0
    last_remaining_minutes: Optional[int] = None
    pre_alerts_fired: int = 0

    def record_pre_alert(self, remaining_minutes: int, now_ms: int) -> None:
        self.last_remaining_minutes = remaining_minutes
        self.last_pre_alert_time = now_ms
        self.pre_alerts_fired += 1

    def record_main_alert(self, today_ms: int, now_ms: int) -> None:
        self.last_alert_date = today_ms
        self.last_notification_time = now_ms

    def rearm_pre_alert(self) -> None:
        self.last_remaining_minutes = None
        self.last_pre_alert_time = 0
        self.pre_alerts_fired = 0


class DedupTracker:
    """
    Process-lifetime alert state keyed by block id. Never persisted:
    a reload of the block list from storage re-arms every guard.
    """

    def __init__(self) -> None:
        self._states: Dict[str, AlertState] = {}

    def state_for(self, block_id: str) -> AlertState:
        st = self._states.get(block_id)
        if st is None:
            st = AlertState()
            self._states[block_id] = st
        return st

    def peek(self, block_id: str) -> Optional[AlertState]:
        return self._states.get(block_id)

    def has(self, block_id: str) -> bool:
        return block_id in self._states

    def clear_for(self, block_id: str) -> None:
        # called on edit/delete so a changed time isn't suppressed by stale state
        self._states.pop(block_id, None)

    def clear_all(self) -> None:
        self._states.clear()

    def __len__(self) -> int:
        return len(self._states)
