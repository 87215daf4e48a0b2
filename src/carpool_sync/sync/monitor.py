"""Connectivity indicator for the remote store.

Polls ``RemoteStore.ping`` on a fixed interval.  Purely informational: the
engine's load and save paths never look at the status.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from carpool_sync.sync.remote import RemoteStore

logger = logging.getLogger(__name__)

DEFAULT_PING_INTERVAL = 30.0


class ConnectivityMonitor:
    """Track whether the remote store is reachable.

    ``status`` is one of ``"checking"``, ``"online"`` or ``"offline"``.
    """

    def __init__(
        self, remote: RemoteStore, interval: float = DEFAULT_PING_INTERVAL
    ) -> None:
        self.remote = remote
        self.interval = interval
        self.status = "checking"
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def check(self) -> str:
        """Ping once and update ``status``."""
        previous = self.status
        self.status = "checking"
        try:
            online = await self.remote.ping_async()
        except Exception as exc:
            logger.debug("Connectivity check failed: %s", exc)
            online = False
        self.status = "online" if online else "offline"
        if previous != self.status:
            logger.info("Remote store is %s", self.status)
        return self.status

    def start(self) -> None:
        """Start periodic polling (first check runs immediately)."""
        if self.running:
            return
        self._task = asyncio.create_task(self._poll())

    async def stop(self) -> None:
        """Cancel periodic polling."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _poll(self) -> None:
        while True:
            await self.check()
            await asyncio.sleep(self.interval)
