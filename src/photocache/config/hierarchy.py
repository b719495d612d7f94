"""Layered configuration: defaults, YAML files, PHOTOCACHE_* variables, overrides.

Every key in :func:`photocache.config.defaults.get_defaults` can be set in
``~/.photocache/config.yaml``, in a ``photocache.yaml`` found from the working
directory upward, or as ``PHOTOCACHE_<KEY>``. Later layers win.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from photocache.config.defaults import get_defaults

logger = logging.getLogger(__name__)

_GLOBAL_CONFIG_PATH = Path.home() / ".photocache" / "config.yaml"
_PROJECT_CONFIG_NAME = "photocache.yaml"
_ENV_PREFIX = "PHOTOCACHE_"
_TRUTHY = {"1", "true", "yes", "on"}


def load_config_hierarchy(**runtime_overrides: Any) -> dict[str, Any]:
    """Merge all layers into one flat dict keyed like ``get_defaults()``.

    Overrides that are None (an unset CLI option) leave lower layers alone.
    """
    config = get_defaults()
    known = set(config)

    layers: list[tuple[str, dict[str, Any] | None]] = [
        (str(_GLOBAL_CONFIG_PATH), _load_yaml_config(_GLOBAL_CONFIG_PATH)),
    ]
    project_path = _find_project_config()
    if project_path is not None:
        layers.append((str(project_path), _load_yaml_config(project_path)))
    layers.append(("environment", _load_env_vars(known)))
    layers.append(("overrides", {k: v for k, v in runtime_overrides.items() if v is not None}))

    for source, values in layers:
        if not values:
            continue
        unknown = sorted(set(values) - known)
        if unknown:
            logger.warning("Ignoring unknown settings in %s: %s", source, ", ".join(unknown))
        config.update(values)
        logger.debug("Applied %d settings from %s", len(values), source)
    return config


def _load_yaml_config(path: Path) -> dict[str, Any] | None:
    if not path.is_file():
        return None
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load config %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Config file %s is not a mapping, ignoring", path)
        return None
    return data


def _find_project_config() -> Path | None:
    cwd = Path.cwd()
    for directory in (cwd, *cwd.parents):
        candidate = directory / _PROJECT_CONFIG_NAME
        if candidate.is_file():
            return candidate
    return None


def _load_env_vars(keys: set[str]) -> dict[str, Any]:
    """``PHOTOCACHE_SCALE=2`` -> ``{"scale": 2.0}`` for every known key."""
    result: dict[str, Any] = {}
    for key in keys:
        value = os.environ.get(_ENV_PREFIX + key.upper())
        if value is not None:
            result[key] = _coerce_env_value(key, value)
    return result


def _coerce_env_value(key: str, value: str) -> Any:
    """Convert ``value`` to the type of ``key``'s default; unknown keys stay str."""
    default = get_defaults().get(key)
    # bool before int: bool is an int subclass
    if isinstance(default, bool):
        return value.strip().lower() in _TRUTHY
    if isinstance(default, (int, float)):
        try:
            return type(default)(value)
        except ValueError:
            # Left as a string so settings validation reports it
            logger.warning(
                "PHOTOCACHE_%s=%r is not a valid %s", key.upper(), value, type(default).__name__
            )
    return value
