"""Coalescing debounce for remote writes.

A ``Debouncer`` is a single-slot pending cell: it holds the latest payload
and one ``asyncio`` timer.  Every ``schedule()`` replaces both, so a burst
of saves inside the quiet period ends in exactly one call carrying the
newest payload.  Superseded payloads are dropped, never sent.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)

_EMPTY = object()


class Debouncer(Generic[T]):
    """Run *action* with the latest payload after *delay* quiet seconds.

    Args:
        action: Coroutine function called with the payload.  Its failures
            are logged and dropped.
        delay: Quiet period in seconds.
    """

    def __init__(
        self, action: Callable[[T], Awaitable[Any]], delay: float
    ) -> None:
        self._action = action
        self.delay = delay
        self._payload: Any = _EMPTY
        self._handle: asyncio.TimerHandle | None = None
        self._in_flight: set[asyncio.Task] = set()
        self._run_lock = asyncio.Lock()

    @property
    def pending(self) -> bool:
        """True while a payload is waiting for its quiet period."""
        return self._payload is not _EMPTY

    def schedule(self, payload: T) -> None:
        """Replace the pending payload and restart the quiet period.

        Must be called from inside a running event loop.
        """
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._payload = payload
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        """Discard the pending payload without running the action."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._payload = _EMPTY

    async def flush(self) -> None:
        """Run the pending payload now and wait for in-flight runs."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self.pending:
            await self._run(self._take())
        await self.wait_idle()

    async def wait_idle(self) -> None:
        """Wait until no action run is in flight."""
        while self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    def _take(self) -> T:
        payload = self._payload
        self._payload = _EMPTY
        return payload

    def _fire(self) -> None:
        self._handle = None
        if not self.pending:
            return
        task = asyncio.ensure_future(self._run(self._take()))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run(self, payload: T) -> None:
        # One run at a time, in firing order, so the newest payload lands last.
        async with self._run_lock:
            try:
                await self._action(payload)
            except Exception:
                logger.exception("Debounced action failed; dropping payload")
