from __future__ import annotations
from datetime import datetime
from typing import Iterable, Optional

from .clock import shift_days, sunday_weekday
from .models import ReminderMode


def next_daily_date(current: datetime) -> datetime:
    """Same wall-clock hour/minute on the next calendar day."""
    return shift_days(current, 1)


def next_weekly_date(current: datetime, weekdays: Iterable[int]) -> Optional[datetime]:
    """
    First day after `current` (scanning at most a week ahead) whose weekday
    (0=Sun) is in `weekdays`, at the same hour/minute. A single selected
    weekday lands exactly 7 days later. None when weekdays is empty.
    """
    days = set(weekdays)
    if not days:
        return None
    start = sunday_weekday(current)
    for i in range(1, 8):
        if (start + i) % 7 in days:
            return shift_days(current, i)
    return None


def next_start_time(current: datetime, mode: ReminderMode, weekdays: Iterable[int] = ()) -> Optional[datetime]:
    """
    Next trigger instant for a block that just fired at `current`.
    None means "do not reschedule": a `once` block is deleted by the caller,
    and a `weekly` block without weekdays has no next date.
    """
    if mode == ReminderMode.DAILY:
        return next_daily_date(current)
    if mode == ReminderMode.WEEKLY:
        return next_weekly_date(current, weekdays)
    return None
