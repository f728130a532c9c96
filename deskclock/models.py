from __future__ import annotations
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Set

logger = logging.getLogger(__name__)

UNLIMITED = -1


class ReminderMode(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    ONCE = "once"

    @classmethod
    def parse(cls, value: Any) -> "ReminderMode":
        try:
            return cls(value)
        except ValueError:
            return cls.DAILY


class BlockStatus(str, Enum):
    PENDING = "pending"
    DISABLED = "disabled"
    COMPLETED = "completed"


@dataclass
class TimeBlock:
    id: str
    task: str
    start_time: int  # epoch ms of the next trigger
    created_at: int
    enabled: bool = True
    status: BlockStatus = BlockStatus.PENDING
    pre_alert: bool = False
    reminder_mode: ReminderMode = ReminderMode.DAILY
    # 0=Sun ... 6=Sat
    weekdays: Set[int] = field(default_factory=set)
    reminder_count: int = UNLIMITED
    remaining_count: int = UNLIMITED

    @property
    def is_active(self) -> bool:
        return self.enabled and self.status == BlockStatus.PENDING

    @property
    def is_limited(self) -> bool:
        return self.reminder_count != UNLIMITED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "task": self.task,
            "startTime": self.start_time,
            "createdAt": self.created_at,
            "enabled": self.enabled,
            "status": self.status.value,
            "preAlert": self.pre_alert,
            "reminderMode": self.reminder_mode.value,
            "weekdays": sorted(self.weekdays),
            "reminderCount": self.reminder_count,
            "remainingCount": self.remaining_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], now_ms: int) -> "TimeBlock":
        """
        Build a block from a stored record, filling the defaults a record
        written by an older version may lack. Raises ValueError if the record
        has no usable startTime.
        """
        if not isinstance(data, dict):
            raise ValueError(f"time block record must be a mapping, got {type(data).__name__}")
        try:
            start_time = int(data["startTime"])
            # out-of-range instants cannot be converted to a datetime later
            datetime.fromtimestamp(start_time / 1000, timezone.utc)
        except (KeyError, TypeError, ValueError, OverflowError, OSError):
            raise ValueError(f"time block {data.get('id')!r} has no valid startTime")

        reminder_count = _int_or(data.get("reminderCount"), UNLIMITED)
        remaining = _int_or(data.get("remainingCount"), reminder_count)
        if reminder_count != UNLIMITED:
            remaining = max(0, remaining)

        try:
            status = BlockStatus(data.get("status") or BlockStatus.PENDING.value)
        except ValueError:
            status = BlockStatus.PENDING

        return cls(
            id=str(data.get("id") or new_block_id()),
            task=str(data.get("task", "")),
            start_time=start_time,
            created_at=_int_or(data.get("createdAt"), now_ms),
            enabled=bool(data.get("enabled", True)),
            status=status,
            pre_alert=bool(data.get("preAlert", False)),
            reminder_mode=ReminderMode.parse(data.get("reminderMode")),
            weekdays=_weekdays(data.get("weekdays")),
            reminder_count=reminder_count,
            remaining_count=remaining,
        )


@dataclass(frozen=True)
class GlobalSettings:
    global_alert_enabled: bool = True
    pre_alert_time: int = 3  # minutes
    pre_alert_count: int = 1

    @property
    def pre_alert_interval_minutes(self) -> int:
        return self.pre_alert_time // self.pre_alert_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "globalAlertEnabled": self.global_alert_enabled,
            "preAlertTime": self.pre_alert_time,
            "preAlertCount": self.pre_alert_count,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GlobalSettings":
        """Never raises: anything unusable falls back to the default for that field."""
        defaults = cls()
        if data is None:
            return defaults
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed settings record: {data!r}")
            return defaults

        enabled = data.get("globalAlertEnabled", defaults.global_alert_enabled)
        if not isinstance(enabled, bool):
            logger.warning(f"Invalid globalAlertEnabled {enabled!r}, using default")
            enabled = defaults.global_alert_enabled

        pre_time = _int_or(data.get("preAlertTime"), -1)
        if pre_time < 0:
            logger.warning(f"Invalid preAlertTime {data.get('preAlertTime')!r}, using default")
            pre_time = defaults.pre_alert_time

        pre_count = _int_or(data.get("preAlertCount"), 0)
        if pre_count < 1:
            logger.warning(f"Invalid preAlertCount {data.get('preAlertCount')!r}, using default")
            pre_count = defaults.pre_alert_count

        return cls(global_alert_enabled=enabled, pre_alert_time=pre_time, pre_alert_count=pre_count)


def new_block_id() -> str:
    return uuid.uuid4().hex


def _int_or(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _weekdays(value: Any) -> Set[int]:
    if not isinstance(value, (list, tuple, set)):
        return set()
    out: Set[int] = set()
    for v in value:
        d = _int_or(v, -1)
        if 0 <= d <= 6:
            out.add(d)
    return out
