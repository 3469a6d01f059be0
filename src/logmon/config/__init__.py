"""Configuration management for logmon.

Provides hierarchical YAML-based configuration with:
- System-level config (/etc/logmon/ or %PROGRAMDATA%)
- User-level config (~/.config/logmon/, ~/.logmon/ or %APPDATA%)
- Project-level config ($project_root/.logmon/)
- Environment variable overrides (highest priority)

Example usage:
    from logmon.config import load_config

    config = load_config(extra_file="logmon.yaml")
    print(config.watch.poll_interval)
    print(config.server.port)
"""

from logmon.config.loader import (
    get_config,
    load_config,
    reset_config,
)
from logmon.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from logmon.config.schema import (
    Config,
    LoggingConfig,
    ServerConfig,
    WatchConfig,
)

__all__ = [
    # Main API
    "Config",
    "load_config",
    "get_config",
    "reset_config",
    # Schema types
    "WatchConfig",
    "ServerConfig",
    "LoggingConfig",
    # Path utilities
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
]
