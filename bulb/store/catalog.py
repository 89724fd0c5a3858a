"""Catalog scanner: the project list, rebuilt from the directory every time.

There is no index file. Each call enumerates the storage directory,
parses every ``*.canvas.json`` envelope it finds and projects it to a
ProjectSummary. A corrupt file drops out of the listing instead of
failing it.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import unicodedata
from pathlib import Path

from .config import BulbConfig
from .documents import ensure_dir
from .models import DocumentType, ProjectSummary

logger = logging.getLogger(__name__)


def _collation_key(title: str) -> str:
    decomposed = unicodedata.normalize("NFKD", title)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold()


def title_sort_key(summary: ProjectSummary) -> tuple[str, str]:
    """Locale-style title order: accents and case ignored, raw title breaks ties.

    "Éclair" sorts with the E titles, not after "Zebra".
    """
    return (_collation_key(summary.title), summary.title)


class CatalogScanner:
    """Builds project summaries by scanning the storage directory."""

    def __init__(self, root: Path | str | None = None, config: BulbConfig | None = None) -> None:
        self._config = config or BulbConfig()
        self._root = Path(root) if root is not None else self._config.projects_dir

    @property
    def root(self) -> Path:
        return self._root

    def _scan(self) -> list[ProjectSummary]:
        ensure_dir(self._root)
        suffix = self._config.document_suffix
        summaries: list[ProjectSummary] = []

        with os.scandir(self._root) as entries:
            for entry in entries:
                if entry.name.startswith("."):
                    continue
                if not entry.name.endswith(suffix):
                    continue
                if not entry.is_file():
                    continue

                rel_path = os.path.relpath(entry.path, self._root)
                try:
                    with open(entry.path, encoding="utf-8") as f:
                        data = json.load(f)
                    if not isinstance(data, dict):
                        raise ValueError("envelope is not a JSON object")
                except (OSError, ValueError) as exc:
                    logger.error("Error reading project file %s at %s: %s", entry.name, rel_path, exc)
                    continue

                summaries.append(ProjectSummary(
                    id=str(data.get("id") or ""),
                    title=str(data.get("title") or ""),
                    type=DocumentType.CANVAS.value,
                    path=rel_path,
                    created_at=data.get("createdAt") or None,
                    updated_at=data.get("updatedAt") or None,
                ))

        summaries.sort(key=title_sort_key, reverse=True)
        return summaries

    async def list_projects(self) -> list[ProjectSummary]:
        """Enumerate project summaries, sorted by title descending."""
        summaries = await asyncio.to_thread(self._scan)
        logger.debug("Catalog scan of %s found %d project(s)", self._root, len(summaries))
        return summaries
