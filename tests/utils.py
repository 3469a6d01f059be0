"""Shared test utilities for logmon tests."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from logmon.watching import Subscription, TailEvent, TailSession


def append(path: Path, data: bytes) -> None:
    """Append bytes to a file the way a logger would."""
    with open(path, "ab") as f:
        f.write(data)


def replace_file(path: Path, data: bytes) -> None:
    """Atomically swap a file's contents, like a log rotation."""
    tmp = path.with_name(path.name + ".new")
    tmp.write_bytes(data)
    os.replace(tmp, path)


async def next_event(feed: Subscription, timeout: float = 2.0) -> TailEvent:
    """Wait for the next event of a feed.

    Raises:
        StopAsyncIteration: if the feed has ended
        TimeoutError: if nothing arrives in time
    """
    return await asyncio.wait_for(anext(feed), timeout)


async def wait_for_cursor(session: TailSession, value: int, timeout: float = 2.0) -> None:
    """Poll until the session's cursor reaches ``value``."""
    async with asyncio.timeout(timeout):
        while session.cursor != value:
            await asyncio.sleep(0.005)


async def collect_bytes(feed: Subscription, total: int, timeout: float = 5.0) -> list[TailEvent]:
    """Read events until ``total`` bytes of data have arrived."""
    events: list[TailEvent] = []
    received = 0
    async with asyncio.timeout(timeout):
        while received < total:
            event = await anext(feed)
            events.append(event)
            received += len(event.data)
    return events
