"""Configuration file loading and caching.

Handles:
- YAML file parsing
- Environment variable overrides
- Config caching
- Conversion from dict to typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from logmon.config.merge import merge_layers
from logmon.config.paths import get_config_paths
from logmon.config.schema import (
    MIN_POLL_INTERVAL,
    Config,
    LoggingConfig,
    ServerConfig,
    WatchConfig,
)

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("logmon.config")

# Global cached config
_cached_config: Config | None = None


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found or invalid.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML as dict, or empty dict on error.
    """
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def _env_number(name: str, cast: type[int] | type[float]) -> int | float | None:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return cast(raw)
    except ValueError:
        _log.warning("Ignoring %s=%r: not a valid %s", name, raw, cast.__name__)
        return None


def env_overrides() -> dict[str, Any]:
    """Build config dict from environment variables.

    Environment variables take highest priority.

    Returns:
        Config dict with values from environment.
    """
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("LOGMON_LOG")
    log_level = os.environ.get("LOGMON_LOG_LEVEL")
    if log_path or log_level:
        overrides["logging"] = {"file": log_path or None, "level": log_level or None}

    host = os.environ.get("LOGMON_HOST")
    port = _env_number("LOGMON_PORT", int)
    if host or port is not None:
        overrides["server"] = {"host": host or None, "port": port}

    poll_interval = _env_number("LOGMON_POLL_INTERVAL", float)
    if poll_interval is not None:
        overrides["watch"] = {"poll_interval": poll_interval}

    return overrides


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if isinstance(v, (str, Path))]


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        _log.warning("Ignoring config section %r: expected a mapping, got %r", name, value)
        return {}
    return value


def _setting(
    section: dict[str, Any],
    name: str,
    key: str,
    cast: type[int] | type[float],
    default: Any,
) -> Any:
    """Read one numeric setting, falling back to ``default`` if it is mistyped."""
    value = section.get(key)
    if value is None:
        return default
    try:
        return cast(value)
    except (TypeError, ValueError):
        _log.warning(
            "Ignoring %s.%s=%r: not a valid %s, using %r",
            name, key, value, cast.__name__, default,
        )
        return default


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert merged dict to typed Config dataclass.

    Mistyped values are logged and replaced by their defaults.

    Args:
        data: Merged configuration dictionary.

    Returns:
        Typed Config object.
    """
    defaults = Config()

    # Watch config
    watch_data = _section(data, "watch")
    poll_interval = _setting(watch_data, "watch", "poll_interval", float, defaults.watch.poll_interval)
    queue_size = _setting(watch_data, "watch", "queue_size", int, defaults.watch.queue_size)
    watch = WatchConfig(
        poll_interval=max(MIN_POLL_INTERVAL, poll_interval),
        queue_size=max(1, queue_size),
        files=_str_list(watch_data.get("files", [])),
    )

    # Server config
    server_data = _section(data, "server")
    cors_origins = server_data.get("cors_origins")
    server = ServerConfig(
        host=str(server_data.get("host", defaults.server.host)),
        port=_setting(server_data, "server", "port", int, defaults.server.port),
        cors_origins=_str_list(cors_origins) if cors_origins is not None else defaults.server.cors_origins,
    )

    # Logging config
    log_data = _section(data, "logging")
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=_setting(log_data, "logging", "verbose", int, None),
        file=log_data.get("file"),
    )

    known_keys = {"watch", "server", "logging"}
    extra = {k: v for k, v in data.items() if k not in known_keys}

    return Config(
        watch=watch,
        server=server,
        logging=logging_config,
        extra=extra,
    )


def load_config(
    project_root: str | None = None,
    extra_file: str | Path | None = None,
    reload: bool = False,
) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Explicit extra file (e.g. --config on the command line)
    3. Project config ($project_root/.logmon/config.yaml)
    4. User config (~/.config/logmon/config.yaml or %APPDATA%)
    5. System config (/etc/logmon/ or %PROGRAMDATA%)

    Args:
        project_root: Directory holding a project-level config.
        extra_file: Additional YAML file merged after the standard paths.
        reload: Force reload even if cached.

    Returns:
        Merged Config object.
    """
    global _cached_config

    is_global = project_root is None and extra_file is None

    if _cached_config is not None and not reload and is_global:
        return _cached_config

    layers: list[tuple[str, dict[str, Any]]] = []

    for path in get_config_paths(project_root, extra_file):
        config_data = load_yaml_file(path)
        if config_data:
            _log.debug("Loaded config from %s", path)
            layers.append((str(path), config_data))

    layers.append(("environment", env_overrides()))

    config = dict_to_config(merge_layers(layers))

    # Cache only the global config
    if is_global:
        _cached_config = config

    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Reset cached config.

    Useful for testing or forcing a reload.
    """
    global _cached_config
    _cached_config = None
