from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import List, Optional, Set

from .clock import from_epoch_ms, midnight, minute_of_day, sunday_weekday, to_epoch_ms
from .dedup import AlertState, DedupTracker
from .models import BlockStatus, GlobalSettings, ReminderMode, TimeBlock
from .recurrence import next_start_time

logger = logging.getLogger(__name__)

# multiple ticks land inside the matching minute; only the first may fire
MAIN_ALERT_DEBOUNCE_MS = 10_000

MAIN_ALERT_BODY = "Time's up!"


class AlertKind(str, Enum):
    PRE = "pre"
    MAIN = "main"


@dataclass(frozen=True)
class Alert:
    block_id: str
    kind: AlertKind
    title: str
    body: str


@dataclass
class TickResult:
    alerts: List[Alert] = field(default_factory=list)
    blocks: List[TimeBlock] = field(default_factory=list)  # snapshot to write back
    deleted_ids: List[str] = field(default_factory=list)
    changed: bool = False


def pre_alert_body(remaining_minutes: int) -> str:
    unit = "minute" if remaining_minutes == 1 else "minutes"
    return f"{remaining_minutes} {unit} left"


def scheduled_on(block: TimeBlock, weekday: int) -> bool:
    """Weekly blocks only run on their selected weekdays (0=Sun)."""
    if block.reminder_mode != ReminderMode.WEEKLY:
        return True
    return weekday in block.weekdays


def evaluate(now: datetime, blocks: List[TimeBlock], settings: GlobalSettings, dedup: DedupTracker) -> TickResult:
    """
    Single evaluation pass over a snapshot of blocks.

    Input blocks are not mutated; fired recurring blocks are replaced by
    rolled-forward copies in the returned snapshot and fired `once` blocks
    are left out of it. `dedup` is updated in place.
    """
    if not settings.global_alert_enabled:
        return TickResult(blocks=list(blocks))

    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")

    now_ms = to_epoch_ms(now)
    today_ms = to_epoch_ms(midnight(now))
    current_minutes = minute_of_day(now)
    weekday = sunday_weekday(now)

    result = TickResult()
    for block in blocks:
        if not block.is_active:
            result.blocks.append(block)
            continue

        block_dt = from_epoch_ms(block.start_time, now.tzinfo)
        time_diff = minute_of_day(block_dt) - current_minutes
        on_today = scheduled_on(block, weekday)

        logger.debug(
            f"Checking '{block.task}' ({block.id}): due {block_dt:%H:%M}, "
            f"diff {time_diff} min, scheduled today: {on_today}"
        )

        state = dedup.peek(block.id)
        if state is not None and 0 < state.last_pre_alert_time < today_ms:
            # pulses left over from a day whose main alert never fired
            state.rearm_pre_alert()

        if block.pre_alert and 0 < time_diff <= settings.pre_alert_time and on_today:
            if _pre_alert_allowed(state, time_diff, now_ms, settings):
                logger.info(f"Pre-alert for '{block.task}': {time_diff} min left")
                result.alerts.append(Alert(block.id, AlertKind.PRE, block.task, pre_alert_body(time_diff)))
                dedup.state_for(block.id).record_pre_alert(time_diff, now_ms)

        if time_diff != 0 or not on_today:
            result.blocks.append(block)
            continue

        if state is not None and (
            state.last_alert_date == today_ms
            or now_ms - state.last_notification_time < MAIN_ALERT_DEBOUNCE_MS
        ):
            logger.debug(f"'{block.task}' already alerted today or within debounce window")
            result.blocks.append(block)
            continue

        logger.info(f"Main alert for '{block.task}'")
        result.alerts.append(Alert(block.id, AlertKind.MAIN, block.task, MAIN_ALERT_BODY))
        state = dedup.state_for(block.id)
        state.record_main_alert(today_ms, now_ms)
        result.changed = True

        if block.reminder_mode == ReminderMode.ONCE:
            logger.info(f"Removing one-off block '{block.task}' ({block.id})")
            result.deleted_ids.append(block.id)
            continue

        result.blocks.append(roll_forward(block, block_dt))
        state.rearm_pre_alert()

    return result


def roll_forward(block: TimeBlock, fired_at: datetime) -> TimeBlock:
    """Copy of a fired recurring block with its count spent and next trigger set."""
    remaining = block.remaining_count
    status = BlockStatus.PENDING
    if block.is_limited:
        remaining = max(0, remaining - 1)
        if remaining <= 0:
            status = BlockStatus.DISABLED
            logger.info(f"'{block.task}' used up its {block.reminder_count} reminders, disabling")

    start_time = block.start_time
    nxt = next_start_time(fired_at, block.reminder_mode, block.weekdays)
    if nxt is not None:
        start_time = to_epoch_ms(nxt)
        logger.info(f"'{block.task}' next due {nxt:%Y-%m-%d %H:%M}")

    return replace(block, start_time=start_time, remaining_count=remaining, status=status)


def _pre_alert_allowed(state: Optional[AlertState], remaining: int, now_ms: int, settings: GlobalSettings) -> bool:
    if state is None:
        return True
    interval_ms = settings.pre_alert_interval_minutes * 60_000
    return (
        state.last_remaining_minutes != remaining
        and now_ms - state.last_pre_alert_time >= interval_ms
        and state.pre_alerts_fired < settings.pre_alert_count
    )


def next_due_block(now: datetime, blocks: List[TimeBlock]) -> Optional[TimeBlock]:
    """
    The active block that fires soonest from `now` by wall-clock minute,
    looking at most a week ahead. Used for the desktop widget feed.
    """
    best: Optional[TimeBlock] = None
    best_wait: Optional[int] = None
    current_minutes = minute_of_day(now)
    weekday = sunday_weekday(now)
    for block in blocks:
        if not block.is_active:
            continue
        wait = minutes_until(block, now.tzinfo, current_minutes, weekday)
        if wait is None:
            continue
        if best_wait is None or wait < best_wait:
            best, best_wait = block, wait
    return best


def minutes_until(block: TimeBlock, tz, current_minutes: int, weekday: int) -> Optional[int]:
    block_minutes = minute_of_day(from_epoch_ms(block.start_time, tz))
    days: Set[int] = set(range(7)) if block.reminder_mode != ReminderMode.WEEKLY else set(block.weekdays)
    for offset in range(8):
        if (weekday + offset) % 7 not in days:
            continue
        wait = offset * 1440 + block_minutes - current_minutes
        if wait >= 0:
            return wait
    return None
