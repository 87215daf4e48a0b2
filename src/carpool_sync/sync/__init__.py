"""Local-first synchronized document store.

Public API for keeping the carpool document in a fast local cache and a
slower remote row at the same time.

Architecture
------------
The local cache is the fast path and the durability guarantee for the
current device; the remote row is authoritative on load when reachable and
is updated through a coalescing debounce after every save.

Modules:

- ``engine``    -- ``SyncEngine``: load protocol, save protocol, import,
  export, factory reset.
- ``state``     -- ``LocalCache``: the local JSON slot.
- ``remote``    -- ``RemoteStore``: found/absent/unreachable reads,
  best-effort writes, ping.
- ``debounce``  -- ``Debouncer``: single-slot pending write.
- ``monitor``   -- ``ConnectivityMonitor``: periodic ping for status display.
- ``models``    -- ``AppData``, ``Trip``, ``Participant``, ``TripType`` and
  ``sanitize()``.
- ``reporter``  -- Share text and JSON summaries.

Usage example
-------------
::

    from pathlib import Path
    from carpool_sync.sync import LocalCache, RemoteStore, SyncEngine

    engine = SyncEngine(
        local=LocalCache(Path("~/.carpool_sync").expanduser()),
        remote=RemoteStore(client),   # SupabaseClient or None
        debounce_seconds=1.0,
    )
    doc = await engine.load()
    engine.save(doc)                  # local now, remote after 1 s
    await engine.close()              # flush before exit
"""

from .debounce import Debouncer
from .engine import SyncEngine
from .models import (
    DEFAULT_WEEK_NAME,
    AppData,
    Participant,
    Trip,
    TripType,
    sanitize,
    serialize,
)
from .monitor import ConnectivityMonitor
from .remote import RemoteRead, RemoteStatus, RemoteStore
from .reporter import document_report, generate_share_text, report_to_json
from .state import LocalCache

__all__ = [
    "DEFAULT_WEEK_NAME",
    "AppData",
    "ConnectivityMonitor",
    "Debouncer",
    "LocalCache",
    "Participant",
    "RemoteRead",
    "RemoteStatus",
    "RemoteStore",
    "SyncEngine",
    "Trip",
    "TripType",
    "document_report",
    "generate_share_text",
    "report_to_json",
    "sanitize",
    "serialize",
]
