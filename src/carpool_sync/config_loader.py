"""
YAML config file loading for carpool_sync.

Config files are optional.  When present they are found by convention,
may pull fragments from other files with ``!include``, and may reference
environment variables as ``${VAR}`` or ``${VAR:-fallback}`` (handy for
keeping the remote API key out of the file).

Usage:
    from carpool_sync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()          # {} when no file exists
    raw = load_hierarchical_config("my.yml")  # --config wins over the rest
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CARPOOL_SYNC_CONFIG"
PROJECT_CONFIG = Path(".carpool_sync") / "config.yml"
GLOBAL_CONFIG = Path(".config") / "carpool_sync" / "config.yml"

# ${NAME} or ${NAME:-fallback}
_ENV_REF = re.compile(r"\$\{(?P<name>[^}:]+?)(?::-(?P<fallback>.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-fallback}`` references in *value*.

    An unset or empty variable expands to its fallback, or to ``""`` when
    the reference has none.
    """

    def _expand(match: re.Match) -> str:
        return os.environ.get(match["name"]) or match["fallback"] or ""

    return _ENV_REF.sub(_expand, value)


def _interpolate_recursive(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {key: _interpolate_recursive(val) for key, val in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(val) for val in obj]
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    return obj


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader that understands ``!include <path>``.

    Registered on this subclass only, so plain ``yaml.safe_load`` keeps
    rejecting the tag.  ``include_chain`` holds the files currently being
    loaded, outermost first.
    """

    include_chain: tuple[Path, ...] = ()


def _include_constructor(loader: ConfigLoader, node: yaml.ScalarNode) -> Any:
    """Inline the document of another YAML file.

    Relative paths resolve against the including file's directory.
    """
    target = Path(loader.construct_scalar(node)).expanduser()
    if not target.is_absolute():
        target = Path(loader.name).resolve().parent / target
    target = target.resolve()

    if target in loader.include_chain:
        cycle = " -> ".join(str(p) for p in (*loader.include_chain, target))
        raise ValueError(f"Circular include detected: {cycle}")
    if not target.is_file():
        raise FileNotFoundError(
            f"Include file not found: {target} (from {loader.name})"
        )

    return _load_yaml_with_includes(target, (*loader.include_chain, target))


ConfigLoader.add_constructor("!include", _include_constructor)


def _load_yaml_with_includes(
    path: Path, include_chain: tuple[Path, ...] | None = None
) -> Any:
    path = path.resolve()
    with path.open(encoding="utf-8") as fh:
        loader = ConfigLoader(fh)
        loader.include_chain = include_chain or (path,)
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


def discover_config_files(explicit: str | None = None) -> list[Path]:
    """Existing config files, highest precedence first.

    Candidates, in order:
        1. *explicit* (``--config``)
        2. ``$CARPOOL_SYNC_CONFIG``
        3. ``./.carpool_sync/config.yml``
        4. ``~/.config/carpool_sync/config.yml``
    """
    candidates = [
        Path(p).expanduser().resolve()
        for p in (explicit, os.environ.get(CONFIG_ENV_VAR))
        if p
    ]
    candidates.append(Path.cwd() / PROJECT_CONFIG)
    candidates.append(Path.home() / GLOBAL_CONFIG)
    return [p for p in candidates if p.exists()]


def load_hierarchical_config(explicit: str | None = None) -> dict[str, Any]:
    """Merge every discovered config file into one dict.

    Files are applied from lowest to highest precedence and replace whole
    top-level sections: a project ``store:`` section hides the global one
    entirely, while a ``logging:`` section only in the global file survives.
    Environment references are expanded after merging.

    Raises:
        ValueError: If a file is not valid YAML or includes itself.
        FileNotFoundError: If an ``!include`` target is missing.
    """
    paths = discover_config_files(explicit)
    if not paths:
        logger.debug("No config files found, using defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = _load_yaml_with_includes(path)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

        if data is None:
            continue
        if not isinstance(data, dict):
            logger.warning(
                "Ignoring config file %s: top level is a %s, not a mapping",
                path,
                type(data).__name__,
            )
            continue
        merged.update(data)

    return _interpolate_recursive(merged)
