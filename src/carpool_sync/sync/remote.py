"""Remote durable store for the shared carpool document.

Wraps ``SupabaseClient`` with the outcome contract the sync engine relies
on: reads report *found*, *absent* or *unreachable*; writes and pings
return booleans.  Nothing here raises to the caller.

Blocking HTTP runs on a worker thread through ``run_sync`` in the
``*_async`` variants.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel

from carpool_sync.core.async_utils import run_sync
from carpool_sync.core.client import SupabaseClient
from carpool_sync.exceptions import RemoteUnreachableError
from carpool_sync.sync.models import AppData

logger = logging.getLogger(__name__)


class RemoteStatus(str, Enum):
    """Outcome of a remote read."""

    FOUND = "found"
    ABSENT = "absent"
    UNREACHABLE = "unreachable"


class RemoteRead(BaseModel):
    """Result of ``RemoteStore.read()``.

    Attributes:
        status: Which of the three outcomes occurred.
        payload: Raw, unsanitized payload when ``status`` is FOUND.
        error: Error description when ``status`` is UNREACHABLE.
    """

    status: RemoteStatus
    payload: Any = None
    error: str | None = None

    model_config = {"frozen": True}


class RemoteStore:
    """Read, write and ping the single remote document row.

    Args:
        client: HTTP client for the row, or ``None`` when no remote is
            configured (every call then reports unreachable).
    """

    def __init__(self, client: SupabaseClient | None) -> None:
        self.client = client

    @property
    def configured(self) -> bool:
        return self.client is not None

    # ------------------------------------------------------------------
    # Blocking operations
    # ------------------------------------------------------------------

    def read(self) -> RemoteRead:
        """Fetch the document row."""
        if self.client is None:
            return RemoteRead(
                status=RemoteStatus.UNREACHABLE,
                error="remote store not configured",
            )
        try:
            row = self.client.select_row()
        except RemoteUnreachableError as exc:
            logger.warning("Remote load error: %s", exc)
            return RemoteRead(status=RemoteStatus.UNREACHABLE, error=str(exc))

        if row is None:
            return RemoteRead(status=RemoteStatus.ABSENT)
        if row.get("payload") is None:
            logger.warning("Remote row has no payload; using local data")
            return RemoteRead(
                status=RemoteStatus.UNREACHABLE, error="remote row has no payload"
            )
        return RemoteRead(status=RemoteStatus.FOUND, payload=row["payload"])

    def write(self, doc: AppData) -> bool:
        """Upsert *doc* into the row.  Returns False on failure."""
        if self.client is None:
            logger.debug("Remote store not configured, skipping write")
            return False
        try:
            self.client.upsert_row(doc.to_payload())
        except RemoteUnreachableError as exc:
            logger.error("Error saving to remote store: %s", exc)
            return False
        logger.info("Data synced to remote store")
        return True

    def ping(self) -> bool:
        """Return True if the remote answers an existence check."""
        if self.client is None:
            return False
        try:
            return self.client.check_row()
        except RemoteUnreachableError as exc:
            logger.debug("Ping failed: %s", exc)
            return False

    # ------------------------------------------------------------------
    # Async wrappers
    # ------------------------------------------------------------------

    async def read_async(self) -> RemoteRead:
        return await run_sync(self.read)

    async def write_async(self, doc: AppData) -> bool:
        return await run_sync(self.write, doc)

    async def ping_async(self) -> bool:
        return await run_sync(self.ping)
