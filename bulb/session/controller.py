"""Session controller: project selection and the catalog, for the UI layer.

Owns the active project (if any), its canvas and its SaveCoordinator.
Switching projects always flushes the outgoing one first: the final
write is awaited before its canvas is dropped and the next document is
read.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from bulb.session.backend import ProjectBackend
from bulb.session.canvas import CanvasEngine, MemoryCanvas, extract_snapshot
from bulb.session.coordinator import SaveCoordinator
from bulb.store.config import BulbConfig, EventCallback, fire_event
from bulb.store.models import ProjectSummary, SaveResult

logger = logging.getLogger(__name__)

ConfirmFunc = Callable[[ProjectSummary], Awaitable[bool]]
CanvasFactory = Callable[[], CanvasEngine]


async def _always_confirm(summary: ProjectSummary) -> bool:
    return True


@dataclass
class SaveStatus:
    """Last save outcome shown to the user."""

    kind: str  # "success" or "error"
    message: str


@dataclass
class ActiveProject:
    """State for the currently open project."""

    summary: ProjectSummary
    canvas: CanvasEngine
    coordinator: SaveCoordinator | None = None
    live_snapshot: Any = None


class SessionController:
    """Mediates between the presentation layer and the project backend."""

    def __init__(
        self,
        backend: ProjectBackend,
        *,
        config: BulbConfig | None = None,
        canvas_factory: CanvasFactory = MemoryCanvas,
        confirm_delete: ConfirmFunc = _always_confirm,
        event_callback: EventCallback | None = None,
    ) -> None:
        self._backend = backend
        self._config = config or BulbConfig()
        self._canvas_factory = canvas_factory
        self._confirm_delete = confirm_delete
        self._event_callback = event_callback
        self._active: ActiveProject | None = None
        self._switch_lock = asyncio.Lock()
        self.projects: list[ProjectSummary] = []
        self.loading = False
        self.save_status: SaveStatus | None = None

    # ── Read-only views ──

    @property
    def active_project(self) -> ProjectSummary | None:
        return self._active.summary if self._active else None

    @property
    def canvas(self) -> CanvasEngine | None:
        return self._active.canvas if self._active else None

    @property
    def coordinator(self) -> SaveCoordinator | None:
        return self._active.coordinator if self._active else None

    @property
    def hydrated(self) -> bool:
        coordinator = self.coordinator
        return coordinator is not None and coordinator.hydrated

    @property
    def live_snapshot(self) -> Any:
        return self._active.live_snapshot if self._active else None

    def find_project(self, project_id: str) -> ProjectSummary | None:
        return next((p for p in self.projects if p.id == project_id), None)

    # ── Catalog ──

    async def refresh(self) -> list[ProjectSummary]:
        """Re-list projects and re-resolve the active one by id."""
        self.loading = True
        try:
            raw = await self._backend.list_projects()
            self.projects = [ProjectSummary.from_dict(item) for item in raw or []]
        except Exception:
            logger.error("Failed to load project list", exc_info=True)
            self.projects = []
        finally:
            self.loading = False

        active = self._active
        if active is not None:
            fresh = self.find_project(active.summary.id)
            if fresh is not None:
                active.summary.title = fresh.title
                active.summary.updated_at = fresh.updated_at or active.summary.updated_at
            else:
                logger.warning(
                    "Active project %s is no longer in the catalog; closing it",
                    active.summary.id,
                )
                async with self._switch_lock:
                    if self._active is active:
                        await self._drop(active)
        return self.projects

    # ── Selection ──

    async def select_project(self, summary: ProjectSummary | None) -> ProjectSummary | None:
        """Flush the current project, then open *summary* (None = home)."""
        async with self._switch_lock:
            await self._leave_current()
            if summary is None:
                return None
            if not summary.path:
                logger.error("Refusing to open project %r: missing path", summary.id)
                return None

            active = ActiveProject(summary=summary, canvas=self._canvas_factory())
            active.coordinator = SaveCoordinator(
                active.canvas,
                lambda snapshot, reason: self._write(active, snapshot, reason),
                propagate_interval=self._config.propagate_interval_seconds,
                idle_seconds=self._config.idle_save_seconds,
                stream_saves=self._config.stream_saves,
                on_propagate=lambda snapshot: setattr(active, "live_snapshot", snapshot),
            )
            self._active = active
            active.coordinator.attach()
            await self._hydrate(active)
            await fire_event(self._event_callback, {
                "event": "project_selected",
                "project_id": summary.id,
                "path": summary.path,
            })
            return summary

    async def go_home(self) -> None:
        await self.select_project(None)

    async def _hydrate(self, active: ActiveProject) -> bool:
        """Load stored content onto the canvas.

        Saving is enabled only once the document has come back. A failed
        read leaves the guard closed so the empty canvas can never be
        written over the stored file.
        """
        summary = active.summary
        try:
            data = await self._backend.get_project_content(summary.path)
        except Exception:
            logger.error("Error loading content for %s", summary.path, exc_info=True)
            data = None

        if data is None:
            logger.error("Could not load %s; autosave stays off for this session", summary.path)
            self.save_status = SaveStatus(
                "error", f'Could not load "{summary.title}"; changes will not be saved.',
            )
            await fire_event(self._event_callback, {
                "event": "load_failed",
                "project_id": summary.id,
                "path": summary.path,
            })
            return False

        summary.title = data.get("title") or summary.title
        summary.updated_at = data.get("updatedAt") or summary.updated_at
        snapshot = extract_snapshot(data.get("content"))
        if snapshot is not None:
            active.canvas.load_snapshot(snapshot)
            active.live_snapshot = snapshot
            logger.debug("Canvas loaded from snapshot for %s", summary.path)
        else:
            logger.warning(
                "Content for %s is empty or has no store; loading default state",
                summary.path,
            )
        active.coordinator.mark_hydrated()
        return True

    async def _leave_current(self) -> None:
        active = self._active
        if active is None:
            return
        if active.coordinator is not None:
            await active.coordinator.close()
        self._active = None

    async def _drop(self, active: ActiveProject) -> None:
        """Forget the active project without saving it."""
        if active.coordinator is not None:
            active.coordinator.discard()
            await active.coordinator.wait_idle()
        if self._active is active:
            self._active = None

    # ── Saving ──

    async def _write(self, active: ActiveProject, snapshot: Any, reason: str) -> SaveResult:
        summary = active.summary
        raw = await self._backend.save_project_content(summary.id, summary.path, snapshot)
        result = SaveResult.from_dict(raw)
        if result.success:
            summary.updated_at = result.updated_at or summary.updated_at
            self.save_status = SaveStatus("success", f'Auto-saved "{summary.title}"')
            logger.info("Saved %s (%s)", summary.path, reason)
            event = {
                "event": "save_succeeded",
                "project_id": summary.id,
                "reason": reason,
                "updatedAt": result.updated_at,
            }
        else:
            self.save_status = SaveStatus("error", f"Save failed: {result.error or 'Unknown error'}")
            logger.warning("Save of %s (%s) failed: %s", summary.path, reason, result.error)
            event = {
                "event": "save_failed",
                "project_id": summary.id,
                "reason": reason,
                "error": result.error,
            }
        await fire_event(self._event_callback, event)
        return result

    async def save_now(self, snapshot: Any = None) -> SaveResult | None:
        """Manual save of the active project."""
        active = self._active
        if active is None or active.coordinator is None:
            logger.warning("Save cancelled: no active project")
            return None
        return await active.coordinator.save_now(snapshot)

    # ── Create / delete / rename ──

    async def create_project(self, title: str | None) -> ProjectSummary | None:
        """Create a project, refresh the catalog and open it."""
        if not title or not title.strip():
            return None
        raw = await self._backend.create_project(".", title.strip())
        if not raw or not raw.get("success") or not raw.get("newItem"):
            logger.error("createNewProject failed for %r", title)
            self.save_status = SaveStatus("error", "Failed to create new project space.")
            return None

        await self.refresh()
        created = ProjectSummary.from_dict(raw["newItem"])
        summary = self.find_project(created.id) or created
        return await self.select_project(summary)

    async def delete_project(self, summary: ProjectSummary | None) -> bool:
        """Delete after confirmation; closes it first if it is open."""
        if summary is None:
            return False
        if not await self._confirm_delete(summary):
            return False

        async with self._switch_lock:
            active = self._active
            if active is not None and active.summary.id == summary.id:
                await self._drop(active)
        await self._backend.delete_project(summary.path, summary.type)
        await self.refresh()
        return True

    async def update_title(self, summary: ProjectSummary, new_title: str) -> None:
        """Rename; the catalog refresh carries the sanitized title back."""
        await self._backend.rename_project(summary.id, summary.path, new_title)
        await self.refresh()

    async def close(self) -> None:
        """End the session, flushing the active project."""
        await self.go_home()
