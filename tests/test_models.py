import pytest

from deskclock.models import BlockStatus, GlobalSettings, ReminderMode, TimeBlock

NOW_MS = 1_706_688_000_000


def test_from_dict_fills_defaults_for_old_records():
    b = TimeBlock.from_dict({"id": "x1", "task": "Drink water", "startTime": 1_706_691_600_000, "enabled": True}, NOW_MS)

    assert b.id == "x1"
    assert b.created_at == NOW_MS
    assert b.status == BlockStatus.PENDING
    assert b.pre_alert is False
    assert b.reminder_mode == ReminderMode.DAILY
    assert b.weekdays == set()
    assert b.reminder_count == -1
    assert b.remaining_count == -1


def test_from_dict_generates_missing_id():
    b = TimeBlock.from_dict({"task": "t", "startTime": 0}, NOW_MS)
    assert isinstance(b.id, str) and len(b.id) == 32


def test_remaining_count_defaults_to_reminder_count():
    b = TimeBlock.from_dict({"id": "x", "startTime": 0, "reminderCount": 5}, NOW_MS)
    assert b.remaining_count == 5


def test_remaining_count_never_negative_when_limited():
    b = TimeBlock.from_dict({"id": "x", "startTime": 0, "reminderCount": 2, "remainingCount": -3}, NOW_MS)
    assert b.remaining_count == 0


def test_unknown_mode_and_status_fall_back():
    b = TimeBlock.from_dict({"id": "x", "startTime": 0, "reminderMode": "hourly", "status": "active"}, NOW_MS)
    assert b.reminder_mode == ReminderMode.DAILY
    assert b.status == BlockStatus.PENDING


def test_weekdays_out_of_range_are_dropped():
    b = TimeBlock.from_dict({"id": "x", "startTime": 0, "weekdays": [0, 3, 7, -1, "5"]}, NOW_MS)
    assert b.weekdays == {0, 3, 5}


@pytest.mark.parametrize("rec", [{"id": "x"}, {"id": "x", "startTime": "soon"}, ["not", "a", "dict"]])
def test_from_dict_rejects_records_without_start_time(rec):
    with pytest.raises(ValueError):
        TimeBlock.from_dict(rec, NOW_MS)


@pytest.mark.parametrize("start", [10**20, float("inf"), float("nan")])
def test_from_dict_rejects_out_of_range_start_time(start):
    with pytest.raises(ValueError):
        TimeBlock.from_dict({"id": "x", "startTime": start}, NOW_MS)


def test_to_dict_uses_stored_key_names():
    b = TimeBlock(
        id="x",
        task="Stretch",
        start_time=10,
        created_at=5,
        pre_alert=True,
        reminder_mode=ReminderMode.WEEKLY,
        weekdays={5, 1},
        reminder_count=3,
        remaining_count=2,
    )
    assert b.to_dict() == {
        "id": "x",
        "task": "Stretch",
        "startTime": 10,
        "createdAt": 5,
        "enabled": True,
        "status": "pending",
        "preAlert": True,
        "reminderMode": "weekly",
        "weekdays": [1, 5],
        "reminderCount": 3,
        "remainingCount": 2,
    }
    assert TimeBlock.from_dict(b.to_dict(), NOW_MS) == b


def test_settings_default_when_absent():
    assert GlobalSettings.from_dict(None) == GlobalSettings(True, 3, 1)


def test_settings_malformed_fields_fall_back_individually():
    s = GlobalSettings.from_dict({"globalAlertEnabled": "yes", "preAlertTime": 10, "preAlertCount": 0})
    assert s == GlobalSettings(global_alert_enabled=True, pre_alert_time=10, pre_alert_count=1)


def test_settings_non_mapping_is_ignored():
    assert GlobalSettings.from_dict("garbage") == GlobalSettings()


def test_pre_alert_interval_floors():
    assert GlobalSettings(pre_alert_time=5, pre_alert_count=2).pre_alert_interval_minutes == 2
