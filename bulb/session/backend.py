"""Boundary operations between the session layer and the store.

ProjectBackend is the request/response surface the session controller
talks to. Payloads are plain JSON-compatible dicts so the same calls can
run in-process (LocalBackend) or over HTTP against ``bulb --server``
(HttpBackend).
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import aiohttp

from bulb.store.catalog import CatalogScanner
from bulb.store.config import BulbConfig
from bulb.store.documents import DocumentStore
from bulb.store.errors import DocumentWriteError
from bulb.store.models import DocumentType
from bulb.store.reminders import ReminderStore

logger = logging.getLogger(__name__)


class ProjectBackend(Protocol):
    async def list_projects(self) -> list[dict[str, Any]]: ...

    async def get_project_content(self, path: str) -> dict[str, Any] | None: ...

    async def save_project_content(self, project_id: str, path: str, content: Any) -> dict[str, Any]: ...

    async def rename_project(self, project_id: str, path: str, new_title: str) -> None: ...

    async def create_project(self, parent: str = ".", name: str = "New Project") -> dict[str, Any] | None: ...

    async def delete_project(self, path: str, item_type: str = DocumentType.CANVAS.value) -> None: ...

    async def load_reminders(self) -> list[Any]: ...

    async def save_reminders(self, reminders: list[Any]) -> None: ...


class LocalBackend:
    """Runs boundary operations directly against the store."""

    def __init__(
        self,
        store: DocumentStore,
        catalog: CatalogScanner,
        reminders: ReminderStore | None = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.reminders = reminders

    @classmethod
    def from_config(cls, config: BulbConfig) -> LocalBackend:
        return cls(
            store=DocumentStore(config=config),
            catalog=CatalogScanner(config=config),
            reminders=ReminderStore(config.reminders_path),
        )

    async def list_projects(self) -> list[dict[str, Any]]:
        try:
            summaries = await self.catalog.list_projects()
        except OSError as exc:
            logger.error("Failed to list projects in %s: %s", self.catalog.root, exc)
            return []
        return [s.to_dict() for s in summaries]

    async def get_project_content(self, path: str) -> dict[str, Any] | None:
        document = await self.store.read(path)
        if document is None:
            return None
        return document.to_dict()

    async def save_project_content(self, project_id: str, path: str, content: Any) -> dict[str, Any]:
        result = await self.store.update(path, content)
        if result.success:
            logger.debug("Saved project %s at %s", project_id, path)
        return result.to_dict()

    async def rename_project(self, project_id: str, path: str, new_title: str) -> None:
        if not await self.store.rename(path, new_title):
            logger.error("Error updating title for project %s", project_id)

    async def create_project(self, parent: str = ".", name: str = "New Project") -> dict[str, Any] | None:
        # parent is accepted for call compatibility; projects live flat in the root.
        try:
            summary = await self.store.create(name)
        except DocumentWriteError as exc:
            logger.error("Error creating new project: %s", exc)
            return None
        return {"success": True, "newItem": summary.to_dict()}

    async def delete_project(self, path: str, item_type: str = DocumentType.CANVAS.value) -> None:
        if item_type != DocumentType.CANVAS.value:
            logger.debug("Ignoring delete of %s with unsupported type %r", path, item_type)
            return
        await self.store.delete(path)

    async def load_reminders(self) -> list[Any]:
        if self.reminders is None:
            return []
        return await self.reminders.load_async()

    async def save_reminders(self, reminders: list[Any]) -> None:
        if self.reminders is None:
            return
        try:
            await self.reminders.save_async(reminders)
        except OSError as exc:
            logger.error("Failed to save reminders: %s", exc)


class HttpBackend:
    """Boundary operations against a running ``bulb --server``."""

    def __init__(
        self,
        base_url: str,
        session: aiohttp.ClientSession | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    def _client(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _url(self, route: str) -> str:
        return f"{self._base_url}{route}"

    async def list_projects(self) -> list[dict[str, Any]]:
        try:
            async with self._client().get(self._url("/projects")) as resp:
                resp.raise_for_status()
                data = await resp.json()
        except aiohttp.ClientError as exc:
            logger.error("Failed to load project list: %s", exc)
            return []
        return list(data.get("projects") or [])

    async def get_project_content(self, path: str) -> dict[str, Any] | None:
        try:
            async with self._client().get(
                self._url("/projects/content"), params={"path": path},
            ) as resp:
                if resp.status == 404:
                    return None
                resp.raise_for_status()
                return await resp.json()
        except aiohttp.ClientError as exc:
            logger.error("Error reading project at %s: %s", path, exc)
            return None

    async def save_project_content(self, project_id: str, path: str, content: Any) -> dict[str, Any]:
        body = {"id": project_id, "path": path, "content": content}
        try:
            async with self._client().put(self._url("/projects/content"), json=body) as resp:
                return await resp.json()
        except aiohttp.ClientError as exc:
            logger.error("Error saving project at %s: %s", path, exc)
            return {"success": False, "error": str(exc)}

    async def rename_project(self, project_id: str, path: str, new_title: str) -> None:
        body = {"id": project_id, "path": path, "newTitle": new_title}
        try:
            async with self._client().patch(self._url("/projects/title"), json=body) as resp:
                resp.raise_for_status()
        except aiohttp.ClientError as exc:
            logger.error("Error updating title for project %s: %s", project_id, exc)

    async def create_project(self, parent: str = ".", name: str = "New Project") -> dict[str, Any] | None:
        try:
            async with self._client().post(
                self._url("/projects"), json={"parent": parent, "name": name},
            ) as resp:
                if resp.status != 201:
                    return None
                return await resp.json()
        except aiohttp.ClientError as exc:
            logger.error("Error creating new project: %s", exc)
            return None

    async def delete_project(self, path: str, item_type: str = DocumentType.CANVAS.value) -> None:
        try:
            async with self._client().delete(
                self._url("/projects"), params={"path": path, "type": item_type},
            ) as resp:
                resp.raise_for_status()
        except aiohttp.ClientError as exc:
            logger.error("Error deleting item at %s: %s", path, exc)

    async def load_reminders(self) -> list[Any]:
        try:
            async with self._client().get(self._url("/reminders")) as resp:
                resp.raise_for_status()
                data = await resp.json()
        except aiohttp.ClientError as exc:
            logger.error("Failed to load reminders: %s", exc)
            return []
        return list(data.get("reminders") or [])

    async def save_reminders(self, reminders: list[Any]) -> None:
        try:
            async with self._client().put(
                self._url("/reminders"), json={"reminders": reminders},
            ) as resp:
                resp.raise_for_status()
        except aiohttp.ClientError as exc:
            logger.error("Failed to save reminders: %s", exc)
