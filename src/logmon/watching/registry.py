"""Registry of watched files keyed by stable integer identifiers."""

from __future__ import annotations

import asyncio
from pathlib import Path

from logmon.logging import get_logger
from logmon.watching.events import DuplicatePathError
from logmon.watching.session import DEFAULT_POLL_INTERVAL, DEFAULT_QUEUE_SIZE, TailSession

log = get_logger("watching.registry")


class WatchRegistry:
    """Maps identifiers to TailSessions and enforces one session per path.

    Identifiers start at 1, grow strictly and are never handed out twice,
    even after the session holding one is removed. Mutations (add, remove,
    close) are serialized by a single asyncio lock; lookups are plain reads.

    Example:
        registry = WatchRegistry(poll_interval=0.5)
        file_id = await registry.add("/var/log/syslog")
        session = registry.get(file_id)
        await registry.remove(file_id)
    """

    def __init__(
        self,
        cwd: Path | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        """Initialize an empty registry.

        Args:
            cwd: Directory for resolving relative paths (default: process cwd)
            poll_interval: Poll interval handed to new sessions
            queue_size: Per-subscriber buffer size handed to new sessions
        """
        self._cwd = cwd
        self._poll_interval = poll_interval
        self._queue_size = queue_size

        self._sessions: dict[int, TailSession] = {}
        self._counter = 0
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def resolve_path(self, path: str | Path) -> Path:
        """Resolve a path to an absolute one.

        Args:
            path: Path string or Path object (can be relative or use ~)

        Returns:
            Absolute resolved path
        """
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = (self._cwd or Path.cwd()) / p
        return p.resolve()

    async def add(self, path: str | Path) -> int:
        """Start tracking a file and return its new identifier.

        The file is not checked for existence; a missing file surfaces as an
        OPEN_FAILED error on the session's first poll.

        Raises:
            DuplicatePathError: if another session already watches the path
        """
        resolved = self.resolve_path(path)

        async with self._lock:
            existing = self._find_by_path(resolved)
            if existing is not None:
                raise DuplicatePathError(path=resolved, existing_id=existing.id)

            self._counter += 1
            session = TailSession(
                self._counter,
                resolved,
                poll_interval=self._poll_interval,
                queue_size=self._queue_size,
            )
            self._sessions[session.id] = session

        log.info("Added %s as id %d", resolved, session.id)
        return session.id

    def get(self, session_id: int) -> TailSession | None:
        return self._sessions.get(session_id)

    def get_by_path(self, path: str | Path) -> TailSession | None:
        """Find the session watching ``path``, if any."""
        return self._find_by_path(self.resolve_path(path))

    def _find_by_path(self, resolved: Path) -> TailSession | None:
        for session in self._sessions.values():
            if session.path == resolved:
                return session
        return None

    async def remove(self, session_id: int) -> bool:
        """Stop a session and forget its identifier.

        Returns:
            True if a session was removed, False if the id was unknown
        """
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            await session.stop()
            del self._sessions[session_id]

        log.info("Removed %s (id %d)", session.path, session_id)
        return True

    def list_paths(self) -> dict[int, str]:
        """Snapshot of identifier -> path for every watched file."""
        return {session_id: str(session.path) for session_id, session in self._sessions.items()}

    def ids(self) -> list[int]:
        return list(self._sessions)

    async def close(self) -> None:
        """Stop and remove every session."""
        async with self._lock:
            sessions = list(self._sessions.values())
            for session in sessions:
                await session.stop()
            self._sessions.clear()
        if sessions:
            log.info("Closed %d watched files", len(sessions))
