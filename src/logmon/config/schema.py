"""Configuration schema dataclasses for logmon.

Defines the structure of configuration at all levels (system, user, project).
All fields have defaults so partial configs merge together cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Lower bound for the poll interval; anything tighter just burns syscalls
MIN_POLL_INTERVAL = 0.05


@dataclass
class WatchConfig:
    """File watching configuration.

    Example config.yaml:
        watch:
          poll_interval: 1.0
          queue_size: 256
          files:
            - /var/log/syslog
            - /var/log/nginx/access.log
    """

    poll_interval: float = 1.0  # Seconds between poll iterations
    queue_size: int = 256  # Pending events buffered per subscriber
    files: list[str] = field(default_factory=list)  # Registered on startup


@dataclass
class ServerConfig:
    """HTTP/websocket server configuration."""

    host: str = "127.0.0.1"
    port: int = 8080
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level when set
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object.

    Aggregates all configuration sections. All fields use default factories
    to ensure partial configs work correctly with deep merging.
    """

    watch: WatchConfig = field(default_factory=WatchConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Unknown top-level sections are kept here
    extra: dict[str, Any] = field(default_factory=dict)
