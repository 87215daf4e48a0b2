"""Sync engine that keeps the carpool document in step across both stores.

The ``SyncEngine`` ties together the local cache, the remote store and
the debouncer.  It:

1. Loads once at startup, preferring the remote row when reachable and
   falling back to the local cache otherwise.
2. Saves on every mutation: the in-memory document and the local cache are
   updated immediately, the remote write is debounced.
3. Imports, exports and factory-resets the whole document.

Remote failures never block or revert a local mutation.  There is no
retry queue: the next save is the implicit retry.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any

from carpool_sync.exceptions import (
    MalformedDocumentError,
    StoreNotLoadedError,
)
from carpool_sync.sync.debounce import Debouncer
from carpool_sync.sync.models import AppData, sanitize, serialize
from carpool_sync.sync.remote import RemoteStatus, RemoteStore
from carpool_sync.sync.state import LocalCache

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 1.0


class SyncEngine:
    """Local-first store for the single carpool document.

    Args:
        local: The local cache slot.
        remote: The remote durable store.
        debounce_seconds: Quiet period before a remote write.
    """

    def __init__(
        self,
        local: LocalCache,
        remote: RemoteStore,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        self.local = local
        self.remote = remote
        self._debouncer: Debouncer[AppData] = Debouncer(
            self._push, debounce_seconds
        )
        self._document = AppData.default()
        self.loaded = False
        self.loaded_from: str | None = None

    @property
    def document(self) -> AppData:
        """The current in-memory document."""
        return self._document

    @property
    def pending(self) -> bool:
        """True while a remote write is waiting for its quiet period."""
        return self._debouncer.pending

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    async def load(self) -> AppData:
        """Run the startup load protocol.

        Remote is authoritative when reachable; the local cache is only a
        fallback.  Never raises for store failures.

        Returns:
            The loaded document (also kept as ``document``).
        """
        doc: AppData | None = None
        try:
            result = await self.remote.read_async()
        except Exception as exc:
            logger.error("Failed to connect to remote store: %s", exc)
            result = None

        if result is not None and result.status == RemoteStatus.FOUND:
            logger.info("Data loaded from remote store")
            doc = sanitize(result.payload)
            self.local.write(doc)
            self.loaded_from = "remote"
        elif result is not None and result.status == RemoteStatus.ABSENT:
            logger.info("Remote row missing. Initializing...")
            doc = AppData.default()
            await self.remote.write_async(doc)
            self.loaded_from = "initialized"
        else:
            doc = self.local.read()
            if doc is not None:
                logger.info("Data loaded from local cache (fallback)")
                self.loaded_from = "local"
            else:
                doc = AppData.default()
                self.loaded_from = "default"

        self._document = doc
        self.loaded = True
        return doc

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def save(self, doc: AppData) -> None:
        """Install *doc* and persist it.

        The local cache is written before returning; the remote write is
        scheduled after the quiet period, superseding any pending one.
        Must be called from inside a running event loop.

        Raises:
            StoreNotLoadedError: If ``load()`` has not completed.
        """
        if not self.loaded:
            raise StoreNotLoadedError(
                "load() must complete before the document can be saved"
            )
        self._document = doc
        self.local.write(doc)
        self._debouncer.schedule(doc)

    async def flush(self) -> None:
        """Push a pending remote write immediately."""
        await self._debouncer.flush()

    async def close(self) -> None:
        """Flush pending work.  The engine must not be used afterwards."""
        await self.flush()
        self._debouncer.cancel()

    async def _push(self, doc: AppData) -> None:
        if not await self.remote.write_async(doc):
            logger.warning(
                "Remote sync failed; changes stay local until the next save"
            )

    # ------------------------------------------------------------------
    # Backup and reset
    # ------------------------------------------------------------------

    def import_document(self, raw: str | bytes | dict[str, Any]) -> AppData:
        """Replace the whole document with an imported payload.

        Args:
            raw: File contents (text) or an already parsed mapping.

        Returns:
            The sanitized document that was saved.

        Raises:
            MalformedDocumentError: If the payload is not a JSON object.
        """
        data: Any = raw
        if isinstance(raw, (bytes, bytearray)):
            try:
                data = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise MalformedDocumentError(
                    "Erro no arquivo JSON: not UTF-8"
                ) from exc
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as exc:
                raise MalformedDocumentError(
                    f"Erro no arquivo JSON: {exc}"
                ) from exc
        if not isinstance(data, dict):
            raise MalformedDocumentError(
                "Erro no arquivo JSON: expected an object"
            )

        doc = sanitize(data)
        self.save(doc)
        logger.info("Document restored from import")
        return doc

    def export_document(
        self, directory: Path, today: date | None = None
    ) -> Path:
        """Write the whole document to ``caronas_backup_<date>.json``.

        Returns:
            Path of the written file.
        """
        stamp = (today or date.today()).isoformat()
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / f"caronas_backup_{stamp}.json"
        target.write_text(serialize(self._document, indent=2), encoding="utf-8")
        logger.info("Backup written: %s", target)
        return target

    async def factory_reset(self) -> AppData:
        """Clear the local slot and reload.

        Any pending remote write is discarded and the remote row is never
        written.  The load protocol then runs again, so a reachable remote
        stays authoritative and only an offline store starts empty.
        """
        self._debouncer.cancel()
        await self._debouncer.wait_idle()
        self.local.clear()
        self.loaded = False
        logger.warning("Factory reset: local data cleared")
        return await self.load()
