"""Entry point for running the logmon server.

Usage:
    python -m logmon --watch /var/log/syslog --port 8080

Add more files at runtime with POST /api/files and stream them from
ws://host:port/ws/{id}.
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from pathlib import Path

from logmon import __version__
from logmon.config import Config, load_config
from logmon.config.schema import MIN_POLL_INTERVAL
from logmon.logging import get_logger, setup_logging

log = get_logger()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="logmon",
        description="Serve appended lines of text files over HTTP and WebSocket",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=None,
        help="Increase verbosity (can be repeated, up to -vvvv)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Extra config file merged over the system/user/project ones",
    )
    parser.add_argument(
        "--log-file",
        help="Append log output to this file instead of stderr",
    )
    parser.add_argument("--host", help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Port to listen on (default: 8080)")
    parser.add_argument(
        "--poll-interval",
        type=float,
        help="Seconds between file polls (default: 1.0)",
    )
    parser.add_argument(
        "-w", "--watch",
        action="append",
        default=[],
        metavar="PATH",
        help="File to watch from startup (can be repeated)",
    )
    return parser


def apply_args(config: Config, args: argparse.Namespace) -> Config:
    """Override loaded config values with command line arguments."""
    if args.host:
        config.server.host = args.host
    if args.port is not None:
        config.server.port = args.port
    if args.poll_interval is not None:
        config.watch.poll_interval = max(MIN_POLL_INTERVAL, args.poll_interval)
    if args.watch:
        config.watch.files = [*config.watch.files, *args.watch]
    if args.verbose is not None:
        # Default verbosity is 2 (info); each -v adds one level
        config.logging.verbose = min(4, 2 + args.verbose)
    if args.log_file:
        config.logging.file = args.log_file
    return config


def main(argv: Sequence[str] | None = None) -> int:
    """Run the logmon server."""
    from logmon.server import serve

    args = create_parser().parse_args(argv)

    # Load config before logging so we can use config.logging settings
    config = apply_args(
        load_config(project_root=str(Path.cwd()), extra_file=args.config),
        args,
    )
    setup_logging(config.logging)

    log.info(
        "Starting logmon %s (poll_interval=%.2fs, queue_size=%d)",
        __version__, config.watch.poll_interval, config.watch.queue_size,
    )

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        log.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
