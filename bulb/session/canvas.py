"""Canvas engine contract and an in-memory implementation.

The drawing engine owns the live document. The session layer only needs
three things from it: a point-in-time snapshot, a way to load one, and
change notifications. MemoryCanvas provides those over a plain dict of
records so sessions can run headless (server, CLI, tests).
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]
Unsubscribe = Callable[[], None]


class CanvasEngine(Protocol):
    def get_snapshot(self) -> dict[str, Any]: ...

    def load_snapshot(self, snapshot: dict[str, Any]) -> None: ...

    def listen(self, listener: ChangeListener) -> Unsubscribe: ...


def extract_snapshot(content: Any) -> dict[str, Any] | None:
    """Find a loadable snapshot in stored document content.

    Accepts the parsed dict or its JSON string. Plain text, empty values
    and structures without a ``store`` yield None. A legacy wrapper with
    the snapshot nested under ``content`` is unwrapped.
    """
    if isinstance(content, str):
        if not content.strip().startswith("{"):
            return None
        try:
            data = json.loads(content)
        except ValueError:
            logger.warning("Canvas content looks like JSON but does not parse; skipping")
            return None
    elif isinstance(content, dict):
        data = content
    else:
        return None

    if not isinstance(data, dict):
        return None
    if isinstance(data.get("store"), dict):
        return data
    nested = data.get("content")
    if isinstance(nested, dict) and isinstance(nested.get("store"), dict):
        return nested
    return None


class MemoryCanvas:
    """Dict-backed canvas engine.

    Records live in ``store`` keyed by record id. Edits through put() and
    remove() notify listeners synchronously; load_snapshot() replaces the
    document without notifying, the way a remote load does.
    """

    def __init__(self) -> None:
        self._store: dict[str, Any] = {}
        self._schema: dict[str, Any] | None = None
        self._listeners: list[ChangeListener] = []

    @property
    def records(self) -> dict[str, Any]:
        return dict(self._store)

    def get_snapshot(self) -> dict[str, Any]:
        snapshot: dict[str, Any] = {"store": copy.deepcopy(self._store)}
        if self._schema is not None:
            snapshot["schema"] = copy.deepcopy(self._schema)
        return snapshot

    def load_snapshot(self, snapshot: dict[str, Any]) -> None:
        self._store = copy.deepcopy(snapshot.get("store") or {})
        schema = snapshot.get("schema")
        self._schema = copy.deepcopy(schema) if isinstance(schema, dict) else None

    def clear(self) -> None:
        self._store = {}
        self._schema = None

    def listen(self, listener: ChangeListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def put(self, record_id: str, record: Any) -> None:
        self._store[record_id] = copy.deepcopy(record)
        self._notify()

    def remove(self, record_id: str) -> None:
        if self._store.pop(record_id, None) is not None:
            self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()
