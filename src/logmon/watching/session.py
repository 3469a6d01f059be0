"""Per-file tail session with a single polling loop and fan-out delivery.

A TailSession owns the read cursor of one file. Its poll loop re-opens the
file every iteration, stats it, reads whatever was appended since the cursor
and hands the bytes to every attached Subscription. Each subscription has its
own bounded queue, so a slow consumer loses its oldest pending events instead
of holding up the others.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
from pathlib import Path
from typing import Any

from logmon.logging import get_logger
from logmon.watching.events import (
    DataEvent,
    ErrorEvent,
    ErrorKind,
    SessionStatus,
    TailEvent,
)

log = get_logger("watching")

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_QUEUE_SIZE = 256

# End-of-feed marker placed in subscription queues
_END = object()


class _PollError(Exception):
    """Unrecoverable failure inside one poll iteration."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


class Subscription:
    """One consumer's view of a session's event stream.

    Iterate it with ``async for``. The feed ends after a terminal
    ErrorEvent, after ``detach()``, or when the session is stopped, and it
    cannot be restarted. Used as an async context manager it detaches itself
    on exit.
    """

    def __init__(self, session: TailSession, maxsize: int) -> None:
        self._session = session
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._finished = False  # no more items will be queued
        self._done = False  # iteration has ended
        self.dropped = 0

    @property
    def session(self) -> TailSession:
        return self._session

    @property
    def done(self) -> bool:
        """True once the consumer has seen the end of the feed."""
        return self._done

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def _push(self, item: Any) -> None:
        if self._finished:
            return
        while self._queue.full():
            oldest = self._queue.get_nowait()
            if isinstance(oldest, DataEvent):
                self.dropped += 1
                log.warning(
                    "Subscriber of %s is lagging, dropped %d bytes at offset %d",
                    self._session.path, len(oldest.data), oldest.offset,
                )
        self._queue.put_nowait(item)
        if isinstance(item, ErrorEvent) or item is _END:
            self._finished = True

    def _finish(self) -> None:
        self._push(_END)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> TailEvent:
        if self._done:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            self._done = True
            raise StopAsyncIteration
        if isinstance(item, ErrorEvent):
            self._done = True
        return item

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self._session.detach(self)


class TailSession:
    """Tracks one watched file's read progress and poll loop.

    Example:
        session = TailSession(1, Path("/var/log/syslog"), poll_interval=0.5)
        async with session.attach() as feed:
            async for event in feed:
                print(event)
    """

    def __init__(
        self,
        session_id: int,
        path: Path,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        """Initialize an idle session.

        Args:
            session_id: Identifier assigned by the registry
            path: Absolute path of the file to tail
            poll_interval: Seconds to sleep between poll iterations
            queue_size: Events buffered per subscriber before dropping
        """
        self._id = session_id
        self._path = path
        self._poll_interval = poll_interval
        self._queue_size = queue_size

        self._cursor = 0
        self._status = SessionStatus.IDLE
        self._rotation_pending = False  # next DataEvent is marked rotated
        self._error: ErrorEvent | None = None
        self._closed = False

        self._subscribers: list[Subscription] = []
        self._task: asyncio.Task[None] | None = None

    def __repr__(self) -> str:
        return f"TailSession(id={self._id}, path={str(self._path)!r}, status={self._status.value})"

    @property
    def id(self) -> int:
        return self._id

    @property
    def path(self) -> Path:
        return self._path

    @property
    def cursor(self) -> int:
        """Byte offset up to which the file has been delivered."""
        return self._cursor

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def error(self) -> ErrorEvent | None:
        """The terminal error, once the session has failed."""
        return self._error

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    @poll_interval.setter
    def poll_interval(self, value: float) -> None:
        self._poll_interval = max(0.01, value)

    def is_running(self) -> bool:
        """Check if the poll loop task is alive."""
        return self._task is not None and not self._task.done()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self._id,
            "path": str(self._path),
            "cursor": self._cursor,
            "status": self._status.value,
            "subscribers": len(self._subscribers),
            "error": self._error.message if self._error else None,
        }

    def start(self) -> None:
        """Start the poll loop unless it is running, failed or stopped.

        Must be called from within a running event loop.
        """
        if self._closed or self._status is SessionStatus.FAILED:
            return
        if self.is_running():
            return

        self._status = SessionStatus.WATCHING
        self._task = asyncio.get_running_loop().create_task(
            self._poll_loop(), name=f"tail-{self._id}"
        )
        log.info("Watching %s (id=%d, from offset %d)", self._path, self._id, self._cursor)

    def attach(self) -> Subscription:
        """Register a consumer and return its event feed.

        Starts the poll loop if this is the first consumer. A failed session
        hands out a feed holding only its terminal error; a stopped session
        hands out a feed that is already finished.
        """
        sub = Subscription(self, self._queue_size)
        if self._closed:
            sub._finish()
            return sub
        if self._error is not None:
            sub._push(self._error)
            return sub

        self._subscribers.append(sub)
        log.debug("Subscriber attached to %s (%d total)", self._path, len(self._subscribers))
        self.start()
        return sub

    def detach(self, subscription: Subscription) -> None:
        """Unregister a consumer; suspend polling when none are left."""
        if subscription not in self._subscribers:
            return
        self._subscribers.remove(subscription)
        subscription._finish()
        log.debug("Subscriber detached from %s (%d left)", self._path, len(self._subscribers))

        if not self._subscribers:
            self._suspend()

    def _suspend(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
        if self._status is SessionStatus.WATCHING:
            self._status = SessionStatus.IDLE
            log.debug("Suspended %s at offset %d", self._path, self._cursor)

    async def stop(self) -> None:
        """Stop the poll loop for good and end every attached feed."""
        self._closed = True
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if self._status is SessionStatus.WATCHING:
            self._status = SessionStatus.IDLE

        for sub in self._subscribers:
            sub._finish()
        self._subscribers.clear()
        log.info("Stopped watching %s (id=%d)", self._path, self._id)

    def _publish(self, event: TailEvent) -> None:
        for sub in self._subscribers:
            sub._push(event)

    def _fail(self, kind: ErrorKind, message: str) -> None:
        event = ErrorEvent(session_id=self._id, kind=kind, message=message)
        self._error = event
        self._status = SessionStatus.FAILED
        log.warning("Watching %s failed: %s", self._path, message)
        self._publish(event)

    def _read_new(self, cursor: int) -> tuple[int, bytes, bool]:
        """Read everything past ``cursor``. Runs in a worker thread.

        Returns:
            (file size, new bytes, whether the file shrank below cursor)
        """
        try:
            f = open(self._path, "rb")
        except OSError as e:
            raise _PollError(ErrorKind.OPEN_FAILED, f"failed to open the file: {e}") from e

        with f:
            try:
                size = os.fstat(f.fileno()).st_size
            except OSError as e:
                raise _PollError(ErrorKind.STAT_FAILED, f"failed to stat the file: {e}") from e

            rotated = size < cursor
            if rotated:
                cursor = 0
            if size == cursor:
                return size, b"", rotated

            expected = size - cursor
            try:
                f.seek(cursor)
                data = f.read(expected)
            except OSError as e:
                raise _PollError(ErrorKind.READ_FAILED, f"failed to read: {e}") from e

        if len(data) != expected:
            raise _PollError(
                ErrorKind.READ_FAILED,
                f"failed to read: expected {expected} bytes at offset {cursor}, got {len(data)}",
            )
        return size, data, rotated

    async def _poll_loop(self) -> None:
        try:
            while True:
                try:
                    size, data, rotated = await asyncio.to_thread(self._read_new, self._cursor)
                except _PollError as e:
                    self._fail(e.kind, e.message)
                    return
                except Exception as e:
                    log.exception("Unexpected error polling %s", self._path)
                    self._fail(ErrorKind.READ_FAILED, f"failed to read: {e}")
                    return

                if rotated:
                    log.info(
                        "%s shrank from %d to %d bytes, restarting from offset 0",
                        self._path, self._cursor, size,
                    )
                    self._cursor = 0
                    self._rotation_pending = True

                if data:
                    self._publish(
                        DataEvent(
                            session_id=self._id,
                            offset=self._cursor,
                            data=data,
                            rotated=self._rotation_pending,
                        )
                    )
                    self._rotation_pending = False
                    self._cursor = size

                await asyncio.sleep(self._poll_interval)
        finally:
            if self._task is asyncio.current_task():
                self._task = None
