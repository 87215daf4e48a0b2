"""Store session lifecycle: configuration, load on entry, flush on exit."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .config import Config, load_config
from .config_loader import load_hierarchical_config
from .config_schema import UnifiedConfig, build_config
from .core.client import SupabaseClient
from .sync.engine import SyncEngine
from .sync.monitor import ConnectivityMonitor
from .sync.remote import RemoteStore
from .sync.state import LocalCache

logger = logging.getLogger(__name__)


@dataclass
class StoreSession:
    config: Config
    engine: SyncEngine
    monitor: ConnectivityMonitor


def resolve_config(
    config_overrides: dict[str, Any] | None = None,
) -> tuple[Config, UnifiedConfig]:
    """
    Resolve runtime configuration from every source.

    Precedence: CLI overrides > env vars (.env loaded first) > YAML > defaults.

    Args:
        config_overrides: Optional dict from the CLI (config, url, key,
            state_dir, debug).

    Returns:
        The validated runtime ``Config`` and the unified file config (for
        its logging section).
    """
    overrides = config_overrides or {}

    # .env first so ${VAR} interpolation in YAML can see its values
    load_dotenv()

    unified = build_config(load_hierarchical_config(overrides.get("config")))
    yaml_fallbacks = unified.store.model_dump(exclude_none=True)

    config = load_config(
        url=overrides.get("url"),
        key=overrides.get("key"),
        state_dir=overrides.get("state_dir"),
        debug=overrides.get("debug", False),
        yaml_fallbacks=yaml_fallbacks,
    )
    return config, unified


def build_engine(config: Config) -> SyncEngine:
    """Wire the local cache, remote store and engine for *config*."""
    client = SupabaseClient(config) if config.remote_enabled else None
    local = LocalCache(
        Path(config.state_dir).expanduser(), config.storage_key
    )
    return SyncEngine(
        local=local,
        remote=RemoteStore(client),
        debounce_seconds=config.debounce_seconds,
    )


@asynccontextmanager
async def open_store(
    config: Config, watch_connectivity: bool = False
) -> AsyncIterator[StoreSession]:
    """
    Open the store for one session.

    On entry:
    - Build the engine for *config*
    - Run the load protocol (remote first, local fallback)
    - Optionally start the connectivity monitor

    On exit:
    - Stop the monitor
    - Flush any pending remote write so the last change is not lost

    Yields:
        A ``StoreSession`` with the loaded engine.
    """
    engine = build_engine(config)
    monitor = ConnectivityMonitor(engine.remote, config.ping_interval)

    await engine.load()
    logger.info("Store loaded (source: %s)", engine.loaded_from)
    if watch_connectivity:
        monitor.start()

    try:
        yield StoreSession(config=config, engine=engine, monitor=monitor)
    finally:
        await monitor.stop()
        await engine.close()
        logger.debug("Store session closed")
