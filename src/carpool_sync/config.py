"""Runtime configuration for the carpool store.

Reads remote store settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    CARPOOL_SUPABASE_URL: Remote project URL (optional; offline without it)
    CARPOOL_SUPABASE_KEY: Remote API key (optional; offline without it)
    CARPOOL_TABLE: Remote table name (optional, default: app_state)
    CARPOOL_ROW_ID: Fixed row id of the shared document (optional, default: 1)
    CARPOOL_STATE_DIR: Local cache directory (optional, default: ~/.carpool_sync)
    CARPOOL_STORAGE_KEY: Local slot name (optional, default: carona_payment_data_v4)
    CARPOOL_DEBOUNCE_SECONDS: Quiet period before a remote write (optional, default: 1.0)
    CARPOOL_PING_INTERVAL: Connectivity poll interval (optional, default: 30)
    CARPOOL_PAYMENT_VALUE: Price of one trip (optional, default: 5.0)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = "~/.carpool_sync"


@dataclass
class Config:
    supabase_url: str = ""
    supabase_key: str = ""
    table: str = "app_state"
    row_id: int = 1
    state_dir: str = DEFAULT_STATE_DIR
    storage_key: str = "carona_payment_data_v4"
    debounce_seconds: float = 1.0
    ping_interval: float = 30.0
    payment_value: float = 5.0
    request_timeout: float = 10.0
    debug: bool = False

    @property
    def remote_enabled(self) -> bool:
        """True when both the remote URL and key are configured."""
        return bool(self.supabase_url and self.supabase_key)


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the URL format, table name, or numeric ranges are
            invalid.
    """
    config.supabase_url = config.supabase_url.strip()

    if config.supabase_url:
        if not config.supabase_url.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid remote URL '{config.supabase_url}': must start with http:// or https://"
            )
        parsed = urlparse(config.supabase_url)
        if not parsed.hostname:
            raise ValueError(
                f"Invalid remote URL '{config.supabase_url}': URL must include a hostname"
            )
        config.supabase_url = config.supabase_url.removesuffix("/")

    if not config.table.strip():
        raise ValueError("Remote table name cannot be empty.")

    if not config.storage_key.strip():
        raise ValueError("Local storage key cannot be empty.")

    if not (0 < config.debounce_seconds <= 60):
        raise ValueError(
            f"Invalid debounce_seconds {config.debounce_seconds}: must be in (0, 60]"
        )

    if config.ping_interval <= 0:
        raise ValueError(
            f"Invalid ping_interval {config.ping_interval}: must be positive"
        )

    if config.payment_value < 0:
        raise ValueError(
            f"Invalid payment_value {config.payment_value}: cannot be negative"
        )

    if not config.remote_enabled:
        logger.warning(
            "Remote store not configured (set CARPOOL_SUPABASE_URL and "
            "CARPOOL_SUPABASE_KEY). Working from the local cache only."
        )


def _numeric(
    env_key: str,
    fallbacks: dict,
    fb_key: str,
    default: float,
    cast: type = float,
) -> float:
    """Resolve a numeric setting: env > YAML > default."""
    raw = os.getenv(env_key)
    if raw is not None:
        try:
            return cast(raw)
        except ValueError:
            raise ValueError(
                f"Invalid {env_key} '{raw}': must be a number"
            ) from None
    if fb_key in fallbacks:
        return cast(fallbacks[fb_key])
    return default


def load_config(
    url: str | None = None,
    key: str | None = None,
    state_dir: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        url: Override remote URL.
        key: Override remote API key.
        state_dir: Override local cache directory.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Dict of values from the YAML config file ``store``
            section.  Used when CLI arg and env var are both unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a value is malformed.
    """
    fb = yaml_fallbacks or {}

    final_url = url or os.getenv("CARPOOL_SUPABASE_URL") or fb.get("supabase_url") or ""
    final_key = key or os.getenv("CARPOOL_SUPABASE_KEY") or fb.get("supabase_key") or ""
    final_table = os.getenv("CARPOOL_TABLE") or fb.get("table") or "app_state"
    final_state_dir = (
        state_dir
        or os.getenv("CARPOOL_STATE_DIR")
        or fb.get("state_dir")
        or DEFAULT_STATE_DIR
    )
    final_storage_key = (
        os.getenv("CARPOOL_STORAGE_KEY")
        or fb.get("storage_key")
        or "carona_payment_data_v4"
    )

    if debug:
        final_debug = True
    else:
        env_debug = os.getenv("CARPOOL_DEBUG")
        if env_debug is not None:
            final_debug = env_debug.lower() in ("true", "1", "yes", "on")
        else:
            final_debug = bool(fb.get("debug", False))

    config = Config(
        supabase_url=final_url.strip(),
        supabase_key=final_key.strip(),
        table=final_table.strip(),
        row_id=int(_numeric("CARPOOL_ROW_ID", fb, "row_id", 1, int)),
        state_dir=final_state_dir,
        storage_key=final_storage_key.strip(),
        debounce_seconds=_numeric(
            "CARPOOL_DEBOUNCE_SECONDS", fb, "debounce_seconds", 1.0
        ),
        ping_interval=_numeric(
            "CARPOOL_PING_INTERVAL", fb, "ping_interval", 30.0
        ),
        payment_value=_numeric(
            "CARPOOL_PAYMENT_VALUE", fb, "payment_value", 5.0
        ),
        request_timeout=_numeric(
            "CARPOOL_REQUEST_TIMEOUT", fb, "request_timeout", 10.0
        ),
        debug=final_debug,
    )

    validate_config(config)

    return config
