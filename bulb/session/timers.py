"""Throttle and debounce timers on the asyncio event loop.

Both wrap a zero-argument callable. The callable reads whatever state it
needs when it fires, so the latest state is always what gets delivered.
Calls must happen on a running loop.
"""
from __future__ import annotations

import asyncio
from collections.abc import Callable


class Throttle:
    """Run ``func`` at most once per ``interval`` seconds.

    Leading and trailing: the first call in a quiet period runs
    immediately, and calls made during the window collapse into a single
    run when the window closes.
    """

    def __init__(self, interval: float, func: Callable[[], None]) -> None:
        self._interval = interval
        self._func = func
        self._handle: asyncio.TimerHandle | None = None
        self._last_fired: float | None = None
        self._pending = False

    @property
    def pending(self) -> bool:
        return self._pending

    def __call__(self) -> None:
        loop = asyncio.get_running_loop()
        now = loop.time()
        window_open = (
            self._last_fired is not None
            and now - self._last_fired < self._interval
        )
        if self._handle is None and not window_open:
            self._fire(loop)
            return
        self._pending = True
        if self._handle is None:
            delay = max(0.0, self._last_fired + self._interval - now)  # type: ignore[operator]
            self._handle = loop.call_later(delay, self._on_timer)

    def _fire(self, loop: asyncio.AbstractEventLoop) -> None:
        self._last_fired = loop.time()
        self._pending = False
        self._func()

    def _on_timer(self) -> None:
        self._handle = None
        if self._pending:
            self._fire(asyncio.get_running_loop())

    def flush(self) -> None:
        """Run a pending trailing call now."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._pending:
            self._fire(asyncio.get_running_loop())

    def cancel(self) -> None:
        """Drop any pending trailing call."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._pending = False


class Debounce:
    """Run ``func`` once ``wait`` seconds after the most recent call."""

    def __init__(self, wait: float, func: Callable[[], None]) -> None:
        self._wait = wait
        self._func = func
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self) -> None:
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self._wait, self._on_timer)

    def _on_timer(self) -> None:
        self._handle = None
        self._func()

    def flush(self) -> None:
        """Run a pending call now."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            self._func()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
