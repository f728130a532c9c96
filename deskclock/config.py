"""Configuration management from environment variables."""

import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

NOTIFICATION_STYLES = ("popup", "system", "log")


def _int_env(name: str, default: int) -> Optional[int]:
    """None when the variable is set but not an integer; validate() reports it."""
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return None


def _default_log_level() -> str:
    return "DEBUG" if os.getenv("DESKCLOCK_ENV", "production") == "development" else "INFO"


class Config:
    """Application configuration loaded from environment variables."""

    # Storage
    DATA_DIR: Optional[Path] = Path(os.environ["DESKCLOCK_DATA_DIR"]) if os.getenv("DESKCLOCK_DATA_DIR") else None
    APPDATA: Optional[str] = os.getenv("APPDATA")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", _default_log_level()).upper()

    # Engine
    POLL_INTERVAL_MS: Optional[int] = _int_env("POLL_INTERVAL_MS", 5000)

    # Alerts
    NOTIFICATION_STYLE: Literal["popup", "system", "log"] = os.getenv("NOTIFICATION_STYLE", "popup")  # type: ignore

    # Widget feed (status.json / current_task.json)
    STATUS_FILES: bool = os.getenv("STATUS_FILES", "1") not in ("0", "false", "no")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration."""
        if cls.POLL_INTERVAL_MS is None:
            raise ValueError(f"POLL_INTERVAL_MS must be an integer, got {os.getenv('POLL_INTERVAL_MS')!r}")

        if cls.POLL_INTERVAL_MS <= 0:
            raise ValueError("POLL_INTERVAL_MS must be positive")

        if cls.NOTIFICATION_STYLE not in NOTIFICATION_STYLES:
            raise ValueError(
                f"NOTIFICATION_STYLE must be one of {', '.join(NOTIFICATION_STYLES)}, got {cls.NOTIFICATION_STYLE!r}"
            )

        if cls.LOG_LEVEL not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown LOG_LEVEL {cls.LOG_LEVEL!r}")
