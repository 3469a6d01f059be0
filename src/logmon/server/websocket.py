"""WebSocket connection tracking for tail streams."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import WebSocket

log = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks open WebSocket connections per watched file id.

    Event fan-out happens in TailSession; this only keeps the bookkeeping
    needed for status reporting and shutdown.
    """

    def __init__(self) -> None:
        self._connections: dict[int, set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, file_id: int) -> None:
        """Accept a new WebSocket connection for a watched file."""
        await websocket.accept()
        async with self._lock:
            self._connections.setdefault(file_id, set()).add(websocket)
        log.debug("Client connected to file %d", file_id)

    async def disconnect(self, websocket: WebSocket, file_id: int) -> None:
        """Remove a WebSocket connection."""
        async with self._lock:
            if file_id in self._connections:
                self._connections[file_id].discard(websocket)
                if not self._connections[file_id]:
                    del self._connections[file_id]
        log.debug("Client disconnected from file %d", file_id)

    def get_connection_count(self, file_id: int | None = None) -> int:
        """Get the number of active connections."""
        if file_id is not None:
            return len(self._connections.get(file_id, set()))
        return sum(len(conns) for conns in self._connections.values())

    async def close_all(self, reason: str = "Server shutting down") -> None:
        """Close all WebSocket connections gracefully."""
        async with self._lock:
            all_connections = [
                ws for conns in self._connections.values() for ws in conns
            ]
            self._connections.clear()

        for websocket in all_connections:
            with contextlib.suppress(Exception):
                await websocket.close(code=1001, reason=reason)
        if all_connections:
            log.info("Closed %d websocket connections", len(all_connections))
