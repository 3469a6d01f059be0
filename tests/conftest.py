"""Root pytest configuration for all tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from logmon.config import reset_config
from logmon.watching import WatchRegistry

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)

# Fast polling keeps the tests quick
POLL_INTERVAL = 0.02

_ENV_VARS = (
    "LOGMON_LOG",
    "LOGMON_LOG_LEVEL",
    "LOGMON_HOST",
    "LOGMON_PORT",
    "LOGMON_POLL_INTERVAL",
)


@pytest.fixture(scope="session")
def anyio_backend():
    """Set anyio backend to asyncio."""
    return "asyncio"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Isolate tests from the host's logmon env vars and user config."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    reset_config()
    yield
    reset_config()


@pytest.fixture
def log_file(tmp_path: Path) -> Path:
    """An empty file to tail."""
    path = tmp_path / "app.log"
    path.write_bytes(b"")
    return path.resolve()


@pytest.fixture
async def registry(tmp_path: Path):
    """A registry with fast polling, closed after the test."""
    reg = WatchRegistry(cwd=tmp_path, poll_interval=POLL_INTERVAL)
    yield reg
    await reg.close()
