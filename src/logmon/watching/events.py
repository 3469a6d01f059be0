"""Events and errors produced by the file-watching engine."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class SessionStatus(Enum):
    """Lifecycle state of a TailSession."""

    IDLE = "idle"
    WATCHING = "watching"
    FAILED = "failed"


class ErrorKind(Enum):
    """Terminal failure reasons reported by a session's poll loop."""

    OPEN_FAILED = "open_failed"
    STAT_FAILED = "stat_failed"
    READ_FAILED = "read_failed"


@dataclass(frozen=True)
class DataEvent:
    """Newly appended bytes of a watched file.

    ``offset`` is the file position of the first byte in ``data``.
    ``rotated`` marks the first event after the file shrank, which restarts
    delivery from offset 0.
    """

    session_id: int
    offset: int
    data: bytes
    rotated: bool = False
    timestamp: float = field(default_factory=time.time)

    @property
    def end(self) -> int:
        """File position just past the last delivered byte."""
        return self.offset + len(self.data)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for transport payloads."""
        return {
            "type": "data",
            "id": self.session_id,
            "offset": self.offset,
            "data": self.data.decode("utf-8", errors="replace"),
            "rotated": self.rotated,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ErrorEvent:
    """Terminal failure of a session. Nothing follows it in a feed."""

    session_id: int
    kind: ErrorKind
    message: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for transport payloads."""
        return {
            "type": "error",
            "id": self.session_id,
            "kind": self.kind.value,
            "message": self.message,
            "timestamp": self.timestamp,
        }


TailEvent = DataEvent | ErrorEvent


class DuplicatePathError(Exception):
    """Raised when adding a path that an existing session already watches."""

    def __init__(self, path: Path, existing_id: int) -> None:
        super().__init__(f"the file is already watched: {path} (id {existing_id})")
        self.path = path
        self.existing_id = existing_id

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.path, self.existing_id))
