"""HTTP server carrying the project-space boundary operations.

The storage side of the boundary: each route maps one request onto one
LocalBackend call and returns its JSON payload. All file work happens in
the store; this class only handles routing and request validation.

Usage:
    bulb --server [--port PORT]
"""
from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

from aiohttp import web

from bulb.session.backend import LocalBackend
from bulb.store.config import BulbConfig
from bulb.store.models import DocumentType

logger = logging.getLogger(__name__)


def _error(message: str, status: int = 400) -> web.Response:
    return web.json_response({"error": message}, status=status)


async def _read_json_body(request: web.Request) -> tuple[dict[str, Any] | None, web.Response | None]:
    if not request.can_read_body:
        return None, _error("Request body is required")
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None, _error("Request body must be valid JSON")
    if not isinstance(body, dict):
        return None, _error("Request body must be a JSON object")
    return body, None


class BulbServer:
    """aiohttp application exposing LocalBackend over JSON routes."""

    def __init__(
        self,
        config: BulbConfig | None = None,
        backend: LocalBackend | None = None,
    ) -> None:
        self._config = config or BulbConfig.from_env()
        self._backend = backend or LocalBackend.from_config(self._config)
        self._host = self._config.host
        self._port = self._config.port
        self._app = web.Application()
        self._setup_routes()

    @property
    def app(self) -> web.Application:
        return self._app

    @property
    def backend(self) -> LocalBackend:
        return self._backend

    def _setup_routes(self) -> None:
        r = self._app.router
        r.add_get("/health", self._handle_health)
        # Projects
        r.add_get("/projects", self._handle_list_projects)
        r.add_post("/projects", self._handle_create_project)
        r.add_delete("/projects", self._handle_delete_project)
        r.add_get("/projects/content", self._handle_get_content)
        r.add_put("/projects/content", self._handle_save_content)
        r.add_patch("/projects/title", self._handle_rename_project)
        # Reminders
        r.add_get("/reminders", self._handle_get_reminders)
        r.add_put("/reminders", self._handle_save_reminders)

    # ── Lifecycle ──

    async def start(self) -> None:
        """Start the server and print the bound port to stdout."""
        runner = web.AppRunner(self._app)
        await runner.setup()
        site = web.TCPSite(runner, self._host, self._port)
        await site.start()

        actual_port = self._resolve_port(runner)
        if actual_port is None:
            raise RuntimeError("Bulb server started but no listening socket was reported.")
        self._port = actual_port

        sys.stdout.write(json.dumps({"port": actual_port}) + "\n")
        sys.stdout.flush()
        logger.info("Bulb server listening on %s:%d (root=%s)", self._host, actual_port, self._backend.store.root)

        await self._backend.store.ensure_root()
        try:
            await asyncio.Event().wait()
        except (KeyboardInterrupt, asyncio.CancelledError):
            logger.info("Server shutting down")
        finally:
            await runner.cleanup()

    @staticmethod
    def _resolve_port(runner: web.AppRunner) -> int | None:
        for address in runner.addresses:
            if isinstance(address, tuple) and len(address) >= 2:
                return int(address[1])
        return None

    # ── Handlers ──

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"ok": True})

    async def _handle_list_projects(self, request: web.Request) -> web.Response:
        projects = await self._backend.list_projects()
        return web.json_response({"projects": projects})

    async def _handle_create_project(self, request: web.Request) -> web.Response:
        body: dict[str, Any] = {}
        if request.can_read_body:
            parsed, err = await _read_json_body(request)
            if err:
                return err
            body = parsed or {}
        parent = str(body.get("parent") or ".")
        name = body.get("name")
        if name is not None and not isinstance(name, str):
            return _error("name must be a string")
        result = await self._backend.create_project(parent, name or self._config.new_project_title)
        if result is None:
            return _error("Failed to create project", status=500)
        return web.json_response(result, status=201)

    async def _handle_get_content(self, request: web.Request) -> web.Response:
        path = request.query.get("path", "")
        if not path:
            return _error("path is required")
        document = await self._backend.get_project_content(path)
        if document is None:
            return _error("Project not found or unreadable", status=404)
        return web.json_response(document)

    async def _handle_save_content(self, request: web.Request) -> web.Response:
        body, err = await _read_json_body(request)
        if err:
            return err
        path = body.get("path")
        if not isinstance(path, str) or not path:
            return _error("path is required")
        if "content" not in body:
            return _error("content is required")
        result = await self._backend.save_project_content(
            str(body.get("id") or ""), path, body["content"],
        )
        return web.json_response(result, status=200 if result.get("success") else 500)

    async def _handle_rename_project(self, request: web.Request) -> web.Response:
        body, err = await _read_json_body(request)
        if err:
            return err
        path = body.get("path")
        if not isinstance(path, str) or not path:
            return _error("path is required")
        new_title = body.get("newTitle")
        await self._backend.rename_project(
            str(body.get("id") or ""), path, new_title if isinstance(new_title, str) else "",
        )
        return web.Response(status=204)

    async def _handle_delete_project(self, request: web.Request) -> web.Response:
        path = request.query.get("path", "")
        if not path:
            return _error("path is required")
        item_type = request.query.get("type", DocumentType.CANVAS.value)
        await self._backend.delete_project(path, item_type)
        return web.Response(status=204)

    async def _handle_get_reminders(self, request: web.Request) -> web.Response:
        reminders = await self._backend.load_reminders()
        return web.json_response({"reminders": reminders})

    async def _handle_save_reminders(self, request: web.Request) -> web.Response:
        body, err = await _read_json_body(request)
        if err:
            return err
        reminders = body.get("reminders")
        if not isinstance(reminders, list):
            return _error("reminders must be a list")
        await self._backend.save_reminders(reminders)
        return web.Response(status=204)
