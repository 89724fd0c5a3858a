"""Crash-safe JSON file replacement for project documents and reminders.

A document on disk is either the previous envelope or the new one, never
a partial write: the serialized payload lands in a hidden sibling file,
is fsynced, and is renamed over the target.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def sync_directory(directory: Path) -> None:
    """Persist a rename or unlink inside *directory*.

    Platforms that cannot open a directory for fsync (Windows) skip it.
    """
    try:
        fd = os.open(directory, os.O_RDONLY | getattr(os, "O_DIRECTORY", 0))
    except OSError as exc:
        logger.debug("Directory sync unavailable for %s: %s", directory, exc)
        return
    try:
        os.fsync(fd)
    except OSError as exc:
        logger.debug("Directory sync failed for %s: %s", directory, exc)
    finally:
        os.close(fd)


def atomic_write_json(path: Path, data: Any, *, indent: int = 2) -> None:
    """Serialize *data* and swap it in over *path* in one rename.

    The payload is encoded before any file is opened, so content that
    cannot be serialized raises without touching the directory. Any
    failure after that removes the temp file and re-raises; the previous
    document stays in place.
    """
    payload = json.dumps(data, indent=indent, ensure_ascii=False).encode("utf-8")
    directory = path.parent
    directory.mkdir(parents=True, exist_ok=True)

    tmp = tempfile.NamedTemporaryFile(
        dir=directory, prefix=f".{path.name}.", suffix=".tmp", delete=False,
    )
    try:
        with tmp:
            tmp.write(payload)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp.name, path)
    except BaseException:
        Path(tmp.name).unlink(missing_ok=True)
        raise
    sync_directory(directory)
