"""File watching engine for logmon.

Provides polling-based tailing of append-only files. A WatchRegistry hands
out TailSessions; attaching to a session yields a live feed of appended
bytes that is shared by every subscriber of that file.
"""

from logmon.watching.events import (
    DataEvent,
    DuplicatePathError,
    ErrorEvent,
    ErrorKind,
    SessionStatus,
    TailEvent,
)
from logmon.watching.registry import WatchRegistry
from logmon.watching.session import Subscription, TailSession

__all__ = [
    "DataEvent",
    "DuplicatePathError",
    "ErrorEvent",
    "ErrorKind",
    "SessionStatus",
    "Subscription",
    "TailEvent",
    "TailSession",
    "WatchRegistry",
]
