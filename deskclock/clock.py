from __future__ import annotations
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Callable

Clock = Callable[[], datetime]


def local_tz() -> tzinfo:
    return datetime.now().astimezone().tzinfo  # type: ignore


def now_local() -> datetime:
    return datetime.now(timezone.utc).astimezone(local_tz())


def _is_system_offset(tz: tzinfo) -> bool:
    # local_tz() yields a fixed offset valid for *today* only; the OS knows the DST rules
    return isinstance(tz, timezone) and tz is not timezone.utc


def to_epoch_ms(dt: datetime) -> int:
    if dt.tzinfo is None:
        raise ValueError("dt must be timezone-aware")
    return int(round(dt.timestamp() * 1000))


def from_epoch_ms(ms: int, tz: tzinfo) -> datetime:
    if _is_system_offset(tz):
        return datetime.fromtimestamp(ms / 1000).astimezone()
    return datetime.fromtimestamp(ms / 1000, tz)


def shift_days(dt: datetime, days: int) -> datetime:
    """Same wall-clock time `days` calendar days later, with the UTC offset of the new date."""
    naive = dt.replace(tzinfo=None) + timedelta(days=days)
    if _is_system_offset(dt.tzinfo):
        return naive.astimezone()
    return naive.replace(tzinfo=dt.tzinfo)


def minute_of_day(dt: datetime) -> int:
    return dt.hour * 60 + dt.minute


def sunday_weekday(dt: datetime) -> int:
    """0=Sun ... 6=Sat, the numbering stored in TimeBlock.weekdays."""
    return (dt.weekday() + 1) % 7


def midnight(dt: datetime) -> datetime:
    """Local midnight of dt's day."""
    return datetime.combine(dt.date(), time(0, 0), tzinfo=dt.tzinfo)
