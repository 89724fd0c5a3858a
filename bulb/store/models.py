"""Project document data model: the on-disk envelope and its projections."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class DocumentType(str, Enum):
    """Discriminator for document kinds. Only canvases exist today."""
    CANVAS = "canvas"


_TITLE_DISALLOWED = re.compile(r"[^A-Za-z0-9\s\-_.]")


def sanitize_title(title: str | None, default: str) -> str:
    """Strip characters outside letters, digits, whitespace and ``-_.``.

    Returns *default* when nothing printable survives.
    """
    cleaned = _TITLE_DISALLOWED.sub("", title or "").strip()
    return cleaned or default


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO timestamp string, ensuring timezone awareness."""
    if not value or not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def not_before(timestamp: str, floor: str | None) -> str:
    """Return *timestamp*, clamped so it never precedes *floor*."""
    ts = parse_timestamp(timestamp)
    lower = parse_timestamp(floor)
    if ts is not None and lower is not None and ts < lower:
        return floor  # type: ignore[return-value]
    return timestamp


def empty_canvas_content(created_at: str) -> str:
    """Serialized empty-but-loadable canvas snapshot."""
    return json.dumps({"store": {}, "createdAt": created_at})


@dataclass
class ProjectSummary:
    """Catalog entry: enough to render a project list without content."""

    id: str
    title: str
    path: str
    type: str = DocumentType.CANVAS.value
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "path": self.path,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectSummary:
        return cls(
            id=str(data.get("id") or ""),
            title=str(data.get("title") or ""),
            path=str(data.get("path") or ""),
            type=str(data.get("type") or DocumentType.CANVAS.value),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


@dataclass
class ProjectDocument:
    """One project file.

    ``content`` holds the stored string on disk; after a read it may hold
    the parsed structure instead (see DocumentStore.read).
    """

    id: str
    title: str
    content: Any
    type: str = DocumentType.CANVAS.value
    created_at: str | None = None
    updated_at: str | None = None
    path: str | None = None

    def envelope(self) -> dict[str, Any]:
        """On-disk JSON object, key order matching what is written."""
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "content": self.content,
        }

    def to_dict(self) -> dict[str, Any]:
        data = self.envelope()
        if self.path is not None:
            data["path"] = self.path
        return data

    def summary(self) -> ProjectSummary:
        return ProjectSummary(
            id=self.id,
            title=self.title,
            path=self.path or "",
            type=self.type,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_envelope(cls, data: dict[str, Any], path: str | None = None) -> ProjectDocument:
        """Build from a parsed envelope. Missing fields are tolerated."""
        return cls(
            id=str(data.get("id") or ""),
            title=str(data.get("title") or ""),
            type=str(data.get("type") or DocumentType.CANVAS.value),
            created_at=data.get("createdAt") or None,
            updated_at=data.get("updatedAt") or None,
            content=data.get("content", ""),
            path=path,
        )


@dataclass
class SaveResult:
    """Outcome of a content save, as reported across the boundary."""

    success: bool
    path: str | None = None
    updated_at: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "path": self.path, "updatedAt": self.updated_at}
        return {"success": False, "error": self.error or "Unknown error"}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SaveResult:
        if not data:
            return cls(success=False, error="No response")
        return cls(
            success=bool(data.get("success")),
            path=data.get("path"),
            updated_at=data.get("updatedAt"),
            error=data.get("error"),
        )
