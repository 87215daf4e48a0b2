"""Local cache slot for the carpool document.

Keeps one JSON file per storage key (``<state_dir>/<key>.json``) holding
the serialized document.  This is the fast, always-available side of the
store: the engine writes it on every save before anything touches the
network.

Key design choices:

* **Atomic writes** -- ``write()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Best effort** -- write failures are logged and swallowed; the
  in-memory document stays authoritative for the running session.
* **Sanitized reads** -- cached text is untrusted like any other input and
  goes through ``sanitize()``.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from carpool_sync.sync.models import AppData, sanitize, serialize

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "carona_payment_data_v4"


class LocalCache:
    """Read, write and clear the local document slot.

    Args:
        state_dir: Directory holding the slot file.
        storage_key: Slot name (used in the filename).
    """

    def __init__(
        self, state_dir: Path, storage_key: str = DEFAULT_STORAGE_KEY
    ) -> None:
        self._state_dir = state_dir
        self._storage_key = storage_key

    @property
    def path(self) -> Path:
        """Path to the slot file."""
        return self._state_dir / f"{self._storage_key}.json"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def read(self) -> AppData | None:
        """Load the cached document.

        Returns:
            The sanitized document, or ``None`` if the slot is empty.
            Unreadable or malformed content yields the default document.
        """
        path = self.path
        if not path.exists():
            return None
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to read local cache %s: %s", path, exc)
            return AppData.default()
        return sanitize(text)

    def write(self, doc: AppData) -> None:
        """Persist *doc* atomically.  Never raises on I/O failure.

        Writes to a temporary file in the same directory then atomically
        replaces the target.  Creates ``state_dir`` if it does not exist.
        """
        target = self.path
        try:
            self._state_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self._state_dir), suffix=".tmp"
            )
        except OSError as exc:
            logger.error("Failed to save local data: %s", exc)
            return

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(serialize(doc))
            os.replace(tmp_path, target)
        except OSError as exc:
            logger.error("Failed to save local data: %s", exc)
            try:
                os.unlink(tmp_path)
            except OSError:
                pass

    def clear(self) -> None:
        """Remove the slot.  No-op if it does not exist."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Failed to clear local cache %s: %s", self.path, exc)
            return
        logger.info("Local cache cleared: %s", self.path)
