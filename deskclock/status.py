from __future__ import annotations
import json
import logging
import os
from datetime import datetime
from importlib import metadata
from pathlib import Path
from typing import Any, Dict, List, Optional

from .clock import minute_of_day, sunday_weekday, to_epoch_ms
from .engine import minutes_until, next_due_block
from .models import TimeBlock

logger = logging.getLogger(__name__)

STATUS_FILE = "status.json"
CURRENT_TASK_FILE = "current_task.json"


def app_version() -> str:
    try:
        return metadata.version("deskclock")
    except metadata.PackageNotFoundError:
        return "0.0.0"


class StatusWriter:
    """
    Writes the files a desktop widget polls: a heartbeat (`status.json`)
    and the next block due (`current_task.json`). Best effort: failures are
    logged and swallowed so they never interrupt a scheduler tick.
    """

    def __init__(self, directory: Path):
        self.directory = directory
        self.version = app_version()

    def write_status(self, now: datetime, **patch: Any) -> None:
        payload: Dict[str, Any] = {
            "running": True,
            "stage": "running",
            "pid": os.getpid(),
            "updatedAt": to_epoch_ms(now),
            "version": self.version,
        }
        payload.update(patch)
        self._write(STATUS_FILE, payload)

    def write_current_task(self, now: datetime, blocks: List[TimeBlock]) -> None:
        self._write(CURRENT_TASK_FILE, current_task_payload(now, blocks))

    def _write(self, name: str, payload: Any) -> None:
        path = self.directory / name
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            logger.warning(f"Could not write {path}: {e}")


def current_task_payload(now: datetime, blocks: List[TimeBlock]) -> Optional[Dict[str, Any]]:
    block = next_due_block(now, blocks)
    if block is None:
        return None
    return {
        "id": block.id,
        "task": block.task,
        "startTime": block.start_time,
        "minutesUntil": minutes_until(block, now.tzinfo, minute_of_day(now), sunday_weekday(now)),
        "preAlert": block.pre_alert,
        "reminderMode": block.reminder_mode.value,
    }
