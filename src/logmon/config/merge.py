"""Deep merge for configuration cascading."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

_log = logging.getLogger("logmon.config")


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Override values take precedence over base values, with these rules:
    - Nested dicts are recursively merged
    - Lists are replaced entirely (not concatenated)
    - None values in override do NOT override base (enables partial configs)
    - Other values are replaced

    Returns:
        A new dictionary with merged values.
    """
    result = base.copy()

    for key, override_value in override.items():
        if override_value is None:
            continue

        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(base_value, override_value)
        else:
            result[key] = override_value

    return result


def _setting_names(data: dict[str, Any], prefix: str = "") -> list[str]:
    """Dotted names of the leaf settings in a config dict, e.g. ``server.port``."""
    names: list[str] = []
    for key, value in data.items():
        if value is None:
            continue
        name = f"{prefix}{key}"
        if isinstance(value, dict) and value:
            names.extend(_setting_names(value, f"{name}."))
        else:
            names.append(name)
    return names


def merge_layers(layers: Iterable[tuple[str, dict[str, Any]]]) -> dict[str, Any]:
    """Merge (source, config) layers in order, logging which source sets what.

    Sources are labels such as a config file path or ``environment``. A layer
    that overrides a setting from an earlier one is logged at debug level, so
    ``-vvvv`` shows where each effective value came from.
    """
    result: dict[str, Any] = {}
    origin: dict[str, str] = {}
    for source, data in layers:
        if not data:
            continue
        for name in _setting_names(data):
            previous = origin.get(name)
            if previous is not None:
                _log.debug("%s from %s overrides %s", name, source, previous)
            origin[name] = source
        result = deep_merge(result, data)
    return result
