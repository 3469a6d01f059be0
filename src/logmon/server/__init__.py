"""HTTP and WebSocket front end for logmon.

Routes:
    GET    /api/status          - health and counters
    GET    /api/files           - list watched files (id -> path)
    POST   /api/files           - watch a file: {"filepath": "/foo/bar"}
    GET    /api/files/{id}      - describe a watched file
    DELETE /api/files/{id}      - stop watching a file
    WS     /ws/{id}             - stream appended data
"""

from logmon.server.routes import create_app
from logmon.server.server import build_registry, register_files, serve
from logmon.server.validation import InvalidPathError, check_watchable
from logmon.server.websocket import ConnectionManager

__all__ = [
    "ConnectionManager",
    "InvalidPathError",
    "build_registry",
    "check_watchable",
    "create_app",
    "register_files",
    "serve",
]
