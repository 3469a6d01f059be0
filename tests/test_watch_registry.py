"""Tests for WatchRegistry identifier allocation, lookup and removal."""

from __future__ import annotations

import asyncio
import pickle
from pathlib import Path

import pytest

from logmon.watching import (
    DuplicatePathError,
    ErrorEvent,
    ErrorKind,
    SessionStatus,
    WatchRegistry,
)
from tests.conftest import POLL_INTERVAL
from tests.utils import append, next_event


class TestAdd:
    """Tests for adding files."""

    @pytest.mark.asyncio
    async def test_ids_start_at_one_and_increase(
        self, registry: WatchRegistry, tmp_path: Path
    ) -> None:
        first = await registry.add(tmp_path / "a.log")
        second = await registry.add(tmp_path / "b.log")
        assert first == 1
        assert second == 2

    @pytest.mark.asyncio
    async def test_new_session_is_idle_with_registry_settings(self, tmp_path: Path) -> None:
        reg = WatchRegistry(poll_interval=0.5, queue_size=8)
        file_id = await reg.add(tmp_path / "a.log")
        session = reg.get(file_id)
        assert session is not None
        assert session.status is SessionStatus.IDLE
        assert session.poll_interval == 0.5
        assert session._queue_size == 8
        await reg.close()

    @pytest.mark.asyncio
    async def test_duplicate_path_rejected(self, registry: WatchRegistry, log_file: Path) -> None:
        file_id = await registry.add(log_file)

        with pytest.raises(DuplicatePathError) as exc_info:
            await registry.add(log_file)

        assert exc_info.value.existing_id == file_id
        assert exc_info.value.path == log_file
        assert exc_info.value.args == (str(exc_info.value),)
        assert registry.get_by_path(log_file) is registry.get(file_id)
        assert len(registry) == 1

    def test_duplicate_error_pickles(self, log_file: Path) -> None:
        error = DuplicatePathError(log_file, 3)
        restored = pickle.loads(pickle.dumps(error))
        assert restored.path == log_file
        assert restored.existing_id == 3
        assert str(restored) == f"the file is already watched: {log_file} (id 3)"

    @pytest.mark.asyncio
    async def test_relative_and_absolute_paths_are_the_same_file(
        self, registry: WatchRegistry, tmp_path: Path
    ) -> None:
        await registry.add("app.log")
        with pytest.raises(DuplicatePathError):
            await registry.add(tmp_path / "app.log")

    @pytest.mark.asyncio
    async def test_paths_are_stored_absolute(self, registry: WatchRegistry, tmp_path: Path) -> None:
        file_id = await registry.add("logs/../app.log")
        session = registry.get(file_id)
        assert session.path.is_absolute()
        assert session.path == (tmp_path / "app.log").resolve()

    @pytest.mark.asyncio
    async def test_missing_file_is_accepted(self, registry: WatchRegistry) -> None:
        """Existence is checked at the boundary, not by the registry."""
        file_id = await registry.add("/no/such/file")
        session = registry.get(file_id)

        event = await next_event(session.attach())
        assert isinstance(event, ErrorEvent)
        assert event.kind is ErrorKind.OPEN_FAILED
        assert session.status is SessionStatus.FAILED

    @pytest.mark.asyncio
    async def test_concurrent_adds_get_unique_ids(
        self, registry: WatchRegistry, tmp_path: Path
    ) -> None:
        ids = await asyncio.gather(*(registry.add(tmp_path / f"{i}.log") for i in range(20)))
        assert sorted(ids) == list(range(1, 21))

    @pytest.mark.asyncio
    async def test_concurrent_adds_of_one_path(self, registry: WatchRegistry, log_file: Path) -> None:
        results = await asyncio.gather(
            *(registry.add(log_file) for _ in range(5)), return_exceptions=True
        )
        ids = [r for r in results if isinstance(r, int)]
        errors = [r for r in results if isinstance(r, DuplicatePathError)]
        assert len(ids) == 1
        assert len(errors) == 4


class TestLookup:
    """Tests for get, get_by_path and list_paths."""

    @pytest.mark.asyncio
    async def test_get_absent_returns_none(self, registry: WatchRegistry) -> None:
        assert registry.get(42) is None
        assert 42 not in registry

    @pytest.mark.asyncio
    async def test_get_by_path_absent_returns_none(
        self, registry: WatchRegistry, tmp_path: Path
    ) -> None:
        assert registry.get_by_path(tmp_path / "nothing.log") is None

    @pytest.mark.asyncio
    async def test_list_paths_is_a_snapshot(self, registry: WatchRegistry, tmp_path: Path) -> None:
        a = await registry.add(tmp_path / "a.log")
        b = await registry.add(tmp_path / "b.log")

        listing = registry.list_paths()
        assert listing == {
            a: str((tmp_path / "a.log").resolve()),
            b: str((tmp_path / "b.log").resolve()),
        }

        listing.clear()
        assert len(registry.list_paths()) == 2
        assert sorted(registry.ids()) == [a, b]


class TestRemove:
    """Tests for removing files."""

    @pytest.mark.asyncio
    async def test_remove_absent_is_noop(self, registry: WatchRegistry) -> None:
        assert await registry.remove(99) is False

    @pytest.mark.asyncio
    async def test_ids_are_never_reused(self, registry: WatchRegistry, log_file: Path) -> None:
        first = await registry.add(log_file)
        assert await registry.remove(first) is True
        assert registry.get(first) is None

        second = await registry.add(log_file)
        assert second > first

        await registry.remove(second)
        third = await registry.add(log_file.with_name("other.log"))
        assert third > second

    @pytest.mark.asyncio
    async def test_remove_allows_path_to_be_added_again(
        self, registry: WatchRegistry, log_file: Path
    ) -> None:
        file_id = await registry.add(log_file)
        await registry.remove(file_id)
        assert registry.get_by_path(log_file) is None
        await registry.add(log_file)

    @pytest.mark.asyncio
    async def test_remove_stops_watching_session(
        self, registry: WatchRegistry, log_file: Path
    ) -> None:
        file_id = await registry.add(log_file)
        session = registry.get(file_id)
        feed = session.attach()

        append(log_file, b"hello\n")
        await next_event(feed)

        await registry.remove(file_id)
        assert not session.is_running()
        assert session.closed

        append(log_file, b"ignored\n")
        with pytest.raises(StopAsyncIteration):
            await next_event(feed)
        await asyncio.sleep(POLL_INTERVAL * 5)
        assert session.cursor == 6

    @pytest.mark.asyncio
    async def test_close_stops_everything(self, tmp_path: Path) -> None:
        reg = WatchRegistry(poll_interval=POLL_INTERVAL)
        paths = [tmp_path / f"{i}.log" for i in range(3)]
        for p in paths:
            p.write_bytes(b"")
        sessions = [reg.get(await reg.add(p)) for p in paths]
        for s in sessions:
            s.start()

        await reg.close()

        assert len(reg) == 0
        assert all(s.closed and not s.is_running() for s in sessions)
