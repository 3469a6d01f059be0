"""Web server lifecycle: registry setup and uvicorn serving."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import uvicorn

from logmon.config.schema import Config
from logmon.server.routes import create_app
from logmon.server.validation import InvalidPathError, check_watchable
from logmon.watching import DuplicatePathError, WatchRegistry

log = logging.getLogger(__name__)


def build_registry(config: Config, cwd: Path | None = None) -> WatchRegistry:
    """Create a registry using the watch settings from config."""
    return WatchRegistry(
        cwd=cwd,
        poll_interval=config.watch.poll_interval,
        queue_size=config.watch.queue_size,
    )


async def register_files(registry: WatchRegistry, paths: Iterable[str]) -> list[int]:
    """Add startup files to the registry, skipping ones that cannot be watched.

    Returns:
        Identifiers of the files that were added
    """
    ids: list[int] = []
    for path in paths:
        try:
            check_watchable(registry.resolve_path(path))
            ids.append(await registry.add(path))
        except InvalidPathError as e:
            log.warning("Not watching %s: %s", path, e)
        except DuplicatePathError as e:
            log.debug("Skipping duplicate startup file: %s", e)
    return ids


async def serve(config: Config, registry: WatchRegistry | None = None) -> None:
    """Serve the API until the server is shut down.

    Args:
        config: Loaded configuration (server address, watch settings)
        registry: Registry to expose; built from config when omitted
    """
    if registry is None:
        registry = build_registry(config)

    ids = await register_files(registry, config.watch.files)
    if ids:
        log.info("Watching %d startup files", len(ids))

    app = create_app(registry, config)

    uv_config = uvicorn.Config(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level="warning",
        access_log=False,
    )
    server = uvicorn.Server(uv_config)

    log.info("Listening on http://%s:%d", config.server.host, config.server.port)
    await server.serve()
