"""Unified configuration schema for carpool_sync.

Defines Pydantic models for the YAML config structure with dedicated
sections for the store and logging, with defaults for every field.

Usage:
    from carpool_sync.config_schema import build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
    store_fallbacks = unified.store.model_dump(exclude_none=True)
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class StoreConfig(BaseModel):
    """Local cache and remote row settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    supabase_url: str | None = Field(
        default=None, description="Remote project URL"
    )
    supabase_key: str | None = Field(
        default=None, description="Remote API key"
    )
    table: str = Field(default="app_state", description="Remote table")
    row_id: int = Field(
        default=1, ge=1, description="Fixed id of the shared document row"
    )
    state_dir: str | None = Field(
        default=None, description="Local cache directory"
    )
    storage_key: str = Field(
        default="carona_payment_data_v4", description="Local slot name"
    )
    debounce_seconds: float = Field(
        default=1.0,
        gt=0,
        le=60,
        description="Quiet period before pushing to the remote (seconds)",
    )
    ping_interval: float = Field(
        default=30.0, gt=0, description="Connectivity poll interval (seconds)"
    )
    payment_value: float = Field(
        default=5.0, ge=0, description="Price of one trip"
    )
    request_timeout: float = Field(
        default=10.0, gt=0, description="HTTP timeout (seconds)"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Unset means LOG_LEVEL or WARNING decides.
        file: Optional log file path.
    """

    level: str | None = Field(default=None, description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()`` is always
    valid.
    """

    store: StoreConfig = Field(default_factory=StoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)

