"""logmon: stream appended data of watched text files, like a tail -f service."""

__version__ = "0.1.0"

# Public API
from logmon.config import Config, get_config, load_config
from logmon.watching import (
    DataEvent,
    DuplicatePathError,
    ErrorEvent,
    ErrorKind,
    SessionStatus,
    Subscription,
    TailSession,
    WatchRegistry,
)

__all__ = [
    # Core
    "WatchRegistry",
    "TailSession",
    "Subscription",
    # Events
    "DataEvent",
    "ErrorEvent",
    "ErrorKind",
    "SessionStatus",
    "DuplicatePathError",
    # Config
    "Config",
    "load_config",
    "get_config",
]
