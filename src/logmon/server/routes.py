"""FastAPI routes for the REST API and tail WebSocket."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import AsyncIterator
from typing import Any

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from logmon import __version__
from logmon.config.schema import Config
from logmon.server.validation import InvalidPathError, check_watchable
from logmon.server.websocket import ConnectionManager
from logmon.watching import DuplicatePathError, ErrorEvent, Subscription, WatchRegistry

log = logging.getLogger(__name__)

# Close code sent when a websocket asks for an unknown file id
WS_CLOSE_NOT_FOUND = 4404


class AddFileRequest(BaseModel):
    """Body of POST /api/files."""

    filepath: str = ""


class ApiResponse(BaseModel):
    """Response envelope shared by the REST routes. Unset fields are omitted."""

    data: Any = None
    id: int | None = None
    error: str | None = None
    message: str | None = None
    size: int | None = None


def _reply(status_code: int = 200, **fields: Any) -> JSONResponse:
    body = ApiResponse(**fields).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


def create_app(registry: WatchRegistry, config: Config | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        registry: The registry the routes operate on; closed on shutdown
        config: Optional config (CORS origins); defaults apply when omitted
    """
    config = config or Config()

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.started_at = time.time()
        try:
            yield
        finally:
            await app.state.connections.close_all()
            await app.state.registry.close()

    app = FastAPI(
        title="logmon",
        description="Stream appended lines of watched text files",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.registry = registry
    app.state.connections = ConnectionManager()
    app.state.started_at = time.time()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Accept", "Accept-Language", "Content-Language", "Content-Type"],
    )

    _register_routes(app)

    return app


def _register_routes(app: FastAPI) -> None:
    """Register all API routes."""

    @app.get("/api/status")
    async def api_status(request: Request) -> dict[str, Any]:
        """Get server health status."""
        state = request.app.state
        return {
            "status": "ok",
            "uptime": time.time() - state.started_at,
            "files": len(state.registry),
            "connections": state.connections.get_connection_count(),
        }

    @app.get("/api/files")
    async def list_files(request: Request) -> JSONResponse:
        """List watched files as id -> path."""
        return _reply(data=request.app.state.registry.list_paths())

    @app.post("/api/files")
    async def add_file(body: AddFileRequest, request: Request) -> JSONResponse:
        """Validate a path and start tracking it."""
        if not body.filepath:
            return _reply(400, error="filepath is missing")

        registry: WatchRegistry = request.app.state.registry
        path = registry.resolve_path(body.filepath)
        try:
            st = check_watchable(path)
        except InvalidPathError as e:
            return _reply(400, error=str(e))

        try:
            file_id = await registry.add(path)
        except DuplicatePathError as e:
            return _reply(400, error=str(e), id=e.existing_id)

        return _reply(id=file_id, size=st.st_size)

    @app.get("/api/files/{file_id}")
    async def get_file(file_id: int, request: Request) -> JSONResponse:
        """Describe one watched file."""
        session = request.app.state.registry.get(file_id)
        if session is None:
            return _reply(404, error=f"file {file_id} is not watched")
        return _reply(data=session.to_dict(), id=file_id)

    @app.delete("/api/files/{file_id}")
    async def delete_file(file_id: int, request: Request) -> JSONResponse:
        """Stop watching a file."""
        if file_id <= 0:
            return _reply(400, error="ID must be greater than 0")

        removed = await request.app.state.registry.remove(file_id)
        if not removed:
            return _reply(404, error=f"file {file_id} is not watched")
        return _reply(message="deleted successfully")

    @app.websocket("/ws/{file_id}")
    async def tail_stream(websocket: WebSocket, file_id: int) -> None:
        """Stream a watched file's appended data, one JSON message per event."""
        registry: WatchRegistry = websocket.app.state.registry
        connections: ConnectionManager = websocket.app.state.connections

        session = registry.get(file_id)
        if session is None:
            await websocket.accept()
            await websocket.send_json({
                "type": "error",
                "id": file_id,
                "kind": "not_found",
                "message": f"file {file_id} is not watched",
            })
            await websocket.close(code=WS_CLOSE_NOT_FOUND)
            return

        await connections.connect(websocket, file_id)
        subscription = session.attach()
        receiver = asyncio.create_task(_receive_loop(websocket))
        sender = asyncio.create_task(_forward_events(websocket, subscription))

        try:
            done, pending = await asyncio.wait(
                {receiver, sender}, return_when=asyncio.FIRST_COMPLETED
            )
            for task in pending:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError, Exception):
                    await task

            for task in done:
                error = task.exception()
                if error is not None:
                    log.debug("Stopped streaming file %d: %s", file_id, error)
                elif task is sender:
                    # Feed ended (terminal error or file removed)
                    with contextlib.suppress(Exception):
                        await websocket.close(code=1000)
        finally:
            receiver.cancel()
            sender.cancel()
            session.detach(subscription)
            await connections.disconnect(websocket, file_id)


async def _receive_loop(websocket: WebSocket) -> None:
    """Answer pings until the client goes away."""
    while True:
        try:
            data = await websocket.receive_text()
        except WebSocketDisconnect:
            return
        if data == "ping":
            await websocket.send_text("pong")


async def _forward_events(websocket: WebSocket, subscription: Subscription) -> None:
    async for event in subscription:
        if isinstance(event, ErrorEvent):
            log.debug("Watching error: %s", event.message)
        await websocket.send_json(event.to_dict())
