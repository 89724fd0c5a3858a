"""Reminders list, stored as a JSON array in <data_dir>/reminders.json.

Kept beside the project spaces but independent of them. A missing or
unreadable file is reset to an empty list on load.
"""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from .durable_write import atomic_write_json

logger = logging.getLogger(__name__)


class ReminderStore:
    """Reads and writes the reminders file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> list[Any]:
        """Load reminders, resetting the file to ``[]`` if missing/corrupt."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if isinstance(data, list):
                return data
            logger.warning("Reminders file %s does not hold a list; resetting", self.path)
        except FileNotFoundError:
            logger.debug("Reminders file not found at %s; creating it", self.path)
        except (OSError, ValueError):
            logger.warning("Failed to load reminders from %s; resetting", self.path)
        self.save([])
        return []

    def save(self, reminders: list[Any]) -> None:
        """Persist reminders to disk."""
        atomic_write_json(self.path, list(reminders))

    async def load_async(self) -> list[Any]:
        return await asyncio.to_thread(self.load)

    async def save_async(self, reminders: list[Any]) -> None:
        await asyncio.to_thread(self.save, reminders)
