from __future__ import annotations
import copy
import json
import logging
import sqlite3
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

TIME_BLOCKS_KEY = "timeBlocks"
SETTINGS_KEY = "globalSettings"


class StoreError(Exception):
    """A read or write against the backing store failed."""


class Store(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class SqliteStore:
    """Key/value store holding JSON documents in the `kv` table."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def get(self, key: str, default: Any = None) -> Any:
        try:
            row = self.conn.execute("SELECT value FROM kv WHERE key=?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"read of {key!r} failed: {e}") from e
        if row is None:
            return default
        try:
            return json.loads(row["value"])
        except ValueError:
            logger.warning(f"Stored value for {key!r} is not valid JSON, ignoring it")
            return default

    def set(self, key: str, value: Any) -> None:
        try:
            self.conn.execute(
                "INSERT INTO kv(key,value) VALUES(?,?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, json.dumps(value, ensure_ascii=False)),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"write of {key!r} failed: {e}") from e


class MemoryStore:
    """In-process store; values are deep-copied in and out like a real backend."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
