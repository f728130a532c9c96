from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from deskclock.clock import to_epoch_ms
from deskclock.models import ReminderMode, TimeBlock

TZ = ZoneInfo("Europe/Lisbon")


def dt_local(y, m, d, hh=0, mm=0, ss=0):
    return datetime(y, m, d, hh, mm, ss, tzinfo=TZ)


def make_block(block_id="b1", task="Stand up", start=None, **kw):
    start = start or dt_local(2024, 1, 31, 9, 0)
    kw.setdefault("reminder_mode", ReminderMode.DAILY)
    if "reminder_count" in kw:
        kw.setdefault("remaining_count", kw["reminder_count"])
    return TimeBlock(
        id=block_id,
        task=task,
        start_time=to_epoch_ms(start),
        created_at=to_epoch_ms(dt_local(2024, 1, 1)),
        **kw,
    )


@pytest.fixture(scope="session")
def qapp():
    from PySide6.QtCore import QCoreApplication

    app = QCoreApplication.instance() or QCoreApplication([])
    yield app
