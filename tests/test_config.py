import pytest

from deskclock.config import Config


def test_defaults_validate():
    Config.validate()


def test_unknown_notification_style_rejected(monkeypatch):
    monkeypatch.setattr(Config, "NOTIFICATION_STYLE", "carrier-pigeon")
    with pytest.raises(ValueError):
        Config.validate()


def test_non_positive_interval_rejected(monkeypatch):
    monkeypatch.setattr(Config, "POLL_INTERVAL_MS", 0)
    with pytest.raises(ValueError):
        Config.validate()


def test_data_dir_override(monkeypatch, tmp_path):
    from deskclock import db

    monkeypatch.setattr(Config, "DATA_DIR", tmp_path / "dc")
    assert db.db_path() == tmp_path / "dc" / db.DB_NAME
    assert (tmp_path / "dc").is_dir()


def test_non_numeric_interval_reported_by_validate(monkeypatch):
    from deskclock import config

    monkeypatch.setenv("POLL_INTERVAL_MS", "fast")
    assert config._int_env("POLL_INTERVAL_MS", 5000) is None

    monkeypatch.setattr(Config, "POLL_INTERVAL_MS", None)
    with pytest.raises(ValueError, match="must be an integer"):
        Config.validate()
