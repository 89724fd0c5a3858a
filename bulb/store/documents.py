"""Document store: read, create, update, rename and delete project files.

Storage layout:
    <projects_dir>/<id>.canvas.json

Every path handed in by a caller is relative to the storage root and is
checked to stay inside it before any file is touched. Operations that
rewrite an existing file hold a per-path lock so two read-modify-write
cycles on the same document never interleave.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
import weakref
from pathlib import Path
from typing import Any

from .config import BulbConfig
from .durable_write import atomic_write_json, sync_directory
from .errors import (
    DocumentCorruptError,
    DocumentNotFoundError,
    DocumentWriteError,
    PathEscapeError,
)
from .models import (
    DocumentType,
    ProjectDocument,
    ProjectSummary,
    SaveResult,
    empty_canvas_content,
    not_before,
    sanitize_title,
    utc_now_iso,
)

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> Path:
    """Create *path* (and parents) if missing. Safe to race."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def normalize_content(content: Any) -> str:
    """Stored form of canvas content: strings verbatim, anything else as JSON."""
    if isinstance(content, str):
        return content
    return json.dumps(content)


def parse_content(raw: Any) -> Any:
    """Best-effort structural parse of stored content.

    Content that is not JSON (plain text, legacy formats) is returned as
    the raw value rather than treated as an error.
    """
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def load_envelope(full_path: Path, rel_path: str) -> dict[str, Any]:
    """Read and parse one document envelope from disk."""
    try:
        text = full_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise DocumentNotFoundError(rel_path) from None
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentCorruptError(rel_path, str(exc)) from exc
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise DocumentCorruptError(rel_path, f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise DocumentCorruptError(rel_path, "envelope is not a JSON object")
    return data


class DocumentStore:
    """Owns the lifecycle of individual project document files."""

    def __init__(self, root: Path | str | None = None, config: BulbConfig | None = None) -> None:
        self._config = config or BulbConfig()
        self._root = Path(root) if root is not None else self._config.projects_dir
        # Entries live only while some operation holds or awaits the lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def config(self) -> BulbConfig:
        return self._config

    def resolve(self, rel_path: str) -> Path:
        """Resolve *rel_path* under the storage root.

        Raises PathEscapeError for absolute paths, empty paths, or paths
        that resolve outside the root (``..`` segments, symlinks).
        """
        if not rel_path or Path(rel_path).is_absolute():
            raise PathEscapeError(rel_path, str(self._root))
        root = self._root.resolve()
        full = (root / rel_path).resolve()
        if full == root or root not in full.parents:
            raise PathEscapeError(rel_path, str(root))
        return full

    def _lock_for(self, full_path: Path) -> asyncio.Lock:
        key = str(full_path)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def ensure_root(self) -> Path:
        return await asyncio.to_thread(ensure_dir, self._root)

    # ── Create ──

    async def create(self, title: str | None = None) -> ProjectSummary:
        """Write a new, empty canvas document and return its summary.

        Raises DocumentWriteError when the file cannot be written.
        """
        await self.ensure_root()
        safe_title = sanitize_title(title, self._config.new_project_title)
        created_at = utc_now_iso()
        project_id = str(uuid.uuid4())
        rel_path = f"{project_id}{self._config.document_suffix}"

        document = ProjectDocument(
            id=project_id,
            title=safe_title,
            type=DocumentType.CANVAS.value,
            created_at=created_at,
            updated_at=created_at,
            content=empty_canvas_content(created_at),
            path=rel_path,
        )
        full_path = self._root / rel_path
        try:
            await asyncio.to_thread(atomic_write_json, full_path, document.envelope())
        except OSError as exc:
            logger.error("Error creating new project %r: %s", safe_title, exc)
            raise DocumentWriteError(rel_path, str(exc)) from exc

        logger.info("Created project %s (%s)", project_id, safe_title)
        return document.summary()

    # ── Read ──

    async def read(self, rel_path: str) -> ProjectDocument | None:
        """Load a document with its content parsed where possible.

        Returns None for missing, corrupt or out-of-root paths.
        """
        await self.ensure_root()
        try:
            full_path = self.resolve(rel_path)
            data = await asyncio.to_thread(load_envelope, full_path, rel_path)
        except (PathEscapeError, DocumentNotFoundError, DocumentCorruptError) as exc:
            logger.error("Error reading project at %s: %s", rel_path, exc)
            return None

        document = ProjectDocument.from_envelope(data, path=rel_path)
        document.content = parse_content(document.content)
        if document.created_at is None and isinstance(document.content, dict):
            embedded = document.content.get("createdAt")
            if isinstance(embedded, str):
                document.created_at = embedded
        return document

    # ── Update ──

    async def update(self, rel_path: str, content: Any) -> SaveResult:
        """Overwrite a document's content, keeping its identity fields.

        The write is a single atomic replace: a failure leaves the previous
        file intact and is reported in the returned SaveResult.
        """
        await self.ensure_root()
        try:
            full_path = self.resolve(rel_path)
        except PathEscapeError as exc:
            logger.error("Error saving project at %s: %s", rel_path, exc)
            return SaveResult(success=False, error=str(exc))

        async with self._lock_for(full_path):
            try:
                data = await asyncio.to_thread(load_envelope, full_path, rel_path)
                data["content"] = normalize_content(content)
                data["updatedAt"] = not_before(utc_now_iso(), data.get("createdAt"))
                await asyncio.to_thread(atomic_write_json, full_path, data)
            except (DocumentNotFoundError, DocumentCorruptError, OSError, TypeError, ValueError) as exc:
                logger.error("Error saving project at %s: %s", rel_path, exc)
                return SaveResult(success=False, error=str(exc))

        logger.debug("Saved project content at %s", rel_path)
        return SaveResult(success=True, path=rel_path, updated_at=data["updatedAt"])

    # ── Rename ──

    async def rename(self, rel_path: str, new_title: str | None) -> bool:
        """Change a document's title. Failures are logged, not raised."""
        await self.ensure_root()
        safe_title = sanitize_title(new_title, self._config.untitled_project_title)
        try:
            full_path = self.resolve(rel_path)
        except PathEscapeError as exc:
            logger.error("Error updating title for project at %s: %s", rel_path, exc)
            return False

        async with self._lock_for(full_path):
            try:
                data = await asyncio.to_thread(load_envelope, full_path, rel_path)
                data["title"] = safe_title
                data["updatedAt"] = not_before(utc_now_iso(), data.get("createdAt"))
                await asyncio.to_thread(atomic_write_json, full_path, data)
            except (DocumentNotFoundError, DocumentCorruptError, OSError) as exc:
                logger.error("Error updating title for project at %s: %s", rel_path, exc)
                return False

        logger.info("Renamed project at %s to %r", rel_path, safe_title)
        return True

    # ── Delete ──

    async def delete(self, rel_path: str) -> bool:
        """Remove a document file.

        A file that is already gone counts as deleted. Other failures are
        logged and reported as False; a stray file is inert because the
        catalog is always rebuilt from the directory.
        """
        await self.ensure_root()
        try:
            full_path = self.resolve(rel_path)
        except PathEscapeError as exc:
            logger.error("Error deleting item at %s: %s", rel_path, exc)
            return False

        async with self._lock_for(full_path):
            try:
                await asyncio.to_thread(full_path.unlink)
            except FileNotFoundError:
                logger.debug("Delete of %s skipped: already gone", rel_path)
                return True
            except OSError as exc:
                logger.error("Error deleting item at %s: %s", rel_path, exc)
                return False
            await asyncio.to_thread(sync_directory, full_path.parent)

        logger.info("Deleted project at %s", rel_path)
        return True
