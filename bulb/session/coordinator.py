"""Save coordinator: decides when canvas edits become disk writes.

Two timers watch the same change stream:

- a throttle (leading + trailing) hands the latest snapshot to the
  session at most once per propagate interval, and optionally saves it;
- a debounce issues a durable save once edits have paused for the idle
  period.

Timer-driven saves are dropped until the document has been hydrated
from disk, so a freshly selected project is never overwritten with an
empty canvas. All writes funnel through one drain task per coordinator:
at most one write is in flight, and a write requested meanwhile waits
and carries only the newest snapshot.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from bulb.session.canvas import CanvasEngine
from bulb.session.timers import Debounce, Throttle
from bulb.store.models import SaveResult

logger = logging.getLogger(__name__)

# async def write(snapshot, reason) -> SaveResult
# reason is one of "stream", "idle", "manual", "flush".
WriteFunc = Callable[[Any, str], Awaitable[SaveResult]]
PropagateFunc = Callable[[Any], None]


class SaveCoordinator:
    """Attaches to one canvas for one active project."""

    def __init__(
        self,
        canvas: CanvasEngine,
        write: WriteFunc,
        *,
        propagate_interval: float = 0.5,
        idle_seconds: float = 10.0,
        stream_saves: bool = True,
        on_propagate: PropagateFunc | None = None,
    ) -> None:
        self._canvas = canvas
        self._write = write
        self._stream_saves = stream_saves
        self._on_propagate = on_propagate
        self._throttle = Throttle(propagate_interval, self._on_propagate_tick)
        self._debounce = Debounce(idle_seconds, self._on_idle)
        self._hydrated = False
        self._closed = False
        self._unsubscribe: Callable[[], None] | None = None
        self._queued: tuple[Any, str, list[asyncio.Future]] | None = None
        self._drain_task: asyncio.Task | None = None
        self.last_result: SaveResult | None = None

    @property
    def hydrated(self) -> bool:
        return self._hydrated

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def writing(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    def attach(self) -> None:
        """Start listening to canvas changes."""
        if self._unsubscribe is None and not self._closed:
            self._unsubscribe = self._canvas.listen(self._on_change)

    def mark_hydrated(self) -> None:
        """Allow writes: the document's stored content is now on the canvas."""
        self._hydrated = True

    # ── Change stream ──

    def _on_change(self) -> None:
        if self._closed:
            return
        self._throttle()
        self._debounce()

    def _on_propagate_tick(self) -> None:
        snapshot = self._canvas.get_snapshot()
        if self._on_propagate is not None:
            self._on_propagate(snapshot)
        if self._stream_saves:
            self._request_write(snapshot, "stream")

    def _on_idle(self) -> None:
        self._request_write(self._canvas.get_snapshot(), "idle")

    def _request_write(self, snapshot: Any, reason: str) -> bool:
        if not self._hydrated:
            logger.debug("Dropping %s save: document not hydrated yet", reason)
            return False
        self._enqueue(snapshot, reason)
        return True

    # ── Write queue ──

    def _enqueue(self, snapshot: Any, reason: str) -> asyncio.Future:
        """Queue a write; the future resolves with the write that carries it.

        A request still waiting when a newer one arrives is answered by the
        newer write, since that write supersedes its snapshot.
        """
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()
        waiters = [waiter]
        if self._queued is not None:
            waiters = self._queued[2] + waiters
        self._queued = (snapshot, reason, waiters)
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = loop.create_task(self._drain())
        return waiter

    async def _drain(self) -> None:
        while self._queued is not None:
            snapshot, reason, waiters = self._queued
            self._queued = None
            try:
                result = await self._write(snapshot, reason)
            except Exception as exc:
                logger.error("Save (%s) raised: %s", reason, exc, exc_info=True)
                result = SaveResult(success=False, error=str(exc))
            self.last_result = result
            for waiter in waiters:
                if not waiter.done():
                    waiter.set_result(result)

    async def wait_idle(self) -> None:
        """Wait until no write is queued or in flight."""
        while self._drain_task is not None and not self._drain_task.done():
            await self._drain_task

    # ── Explicit saves ──

    async def save_now(self, snapshot: Any = None) -> SaveResult | None:
        """Manual save.

        An explicit snapshot is always written. Without one, the canvas is
        captured, which needs the document to be hydrated first.
        """
        if snapshot is None:
            if not self._hydrated:
                logger.warning("Manual save skipped: document not hydrated yet")
                return None
            snapshot = self._canvas.get_snapshot()
        if self._on_propagate is not None:
            self._on_propagate(snapshot)
        return await self._enqueue(snapshot, "manual")

    async def flush(self) -> SaveResult | None:
        """Write the current canvas, then stop both timers.

        The write is issued before the timers are cancelled and is awaited
        before returning. Nothing is written if hydration never finished.
        """
        waiter: asyncio.Future | None = None
        if self._hydrated and not self._closed:
            snapshot = self._canvas.get_snapshot()
            if self._on_propagate is not None:
                self._on_propagate(snapshot)
            waiter = self._enqueue(snapshot, "flush")
        self._throttle.cancel()
        self._debounce.cancel()
        result = await waiter if waiter is not None else None
        await self.wait_idle()
        return result

    async def close(self) -> SaveResult | None:
        """Flush and detach from the canvas."""
        result = await self.flush()
        self.discard()
        return result

    def discard(self) -> None:
        """Detach without saving (the document is gone)."""
        self._closed = True
        self._throttle.cancel()
        self._debounce.cancel()
        if self._queued is not None:
            for waiter in self._queued[2]:
                if not waiter.done():
                    waiter.set_result(None)
            self._queued = None
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
