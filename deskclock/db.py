from __future__ import annotations
import sqlite3
import sys
from pathlib import Path
from typing import Optional

from .config import Config

DB_NAME = "deskclock.sqlite3"


def data_dir(app_name: str = "DeskClock") -> Path:
    # macOS: ~/Library/Application Support/DeskClock
    # Windows: %APPDATA%\DeskClock
    if Config.DATA_DIR is not None:
        d = Config.DATA_DIR
    else:
        home = Path.home()
        if sys.platform == "darwin":
            base = home / "Library" / "Application Support"
        elif sys.platform.startswith("win"):
            base = Path(Config.APPDATA or str(home))
        else:
            base = home / ".local" / "share"
        d = base / app_name
    d.mkdir(parents=True, exist_ok=True)
    return d


def db_path() -> Path:
    return data_dir() / DB_NAME


def connect(path: Optional[Path] = None) -> sqlite3.Connection:
    conn = sqlite3.connect(path or db_path())
    conn.row_factory = sqlite3.Row
    return conn


def migrate(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS kv (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL -- JSON
        );
        """
    )
    conn.commit()
