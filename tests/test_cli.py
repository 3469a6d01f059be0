"""Tests for the command line entry point."""

from __future__ import annotations

from pathlib import Path

import pytest

import logmon.__main__ as cli
import logmon.server
from logmon.config import Config
from logmon.config.schema import MIN_POLL_INTERVAL


class TestParser:
    def test_defaults(self) -> None:
        args = cli.create_parser().parse_args([])
        assert args.host is None
        assert args.port is None
        assert args.poll_interval is None
        assert args.watch == []
        assert args.verbose is None
        assert args.config is None

    def test_repeated_watch_and_verbosity(self) -> None:
        args = cli.create_parser().parse_args(
            ["-w", "a.log", "--watch", "b.log", "-vv", "--port", "9001"]
        )
        assert args.watch == ["a.log", "b.log"]
        assert args.verbose == 2
        assert args.port == 9001

    def test_config_is_a_path(self) -> None:
        args = cli.create_parser().parse_args(["--config", "logmon.yaml"])
        assert args.config == Path("logmon.yaml")


class TestApplyArgs:
    def _apply(self, *argv: str, config: Config | None = None) -> Config:
        args = cli.create_parser().parse_args(list(argv))
        return cli.apply_args(config or Config(), args)

    def test_no_args_keeps_config(self) -> None:
        assert self._apply() == Config()

    def test_server_and_watch_options(self) -> None:
        config = self._apply("--host", "0.0.0.0", "--port", "9000", "--poll-interval", "0.3")
        assert config.server.host == "0.0.0.0"
        assert config.server.port == 9000
        assert config.watch.poll_interval == 0.3

    def test_poll_interval_floor(self) -> None:
        config = self._apply("--poll-interval", "0")
        assert config.watch.poll_interval == MIN_POLL_INTERVAL

    def test_watch_paths_extend_config_files(self) -> None:
        base = Config()
        base.watch.files = ["/var/log/syslog"]
        config = self._apply("-w", "app.log", config=base)
        assert config.watch.files == ["/var/log/syslog", "app.log"]

    @pytest.mark.parametrize(("flag", "expected"), [("-v", 3), ("-vv", 4), ("-vvvvv", 4)])
    def test_verbosity(self, flag: str, expected: int) -> None:
        assert self._apply(flag).logging.verbose == expected

    def test_log_file(self) -> None:
        assert self._apply("--log-file", "/tmp/x.log").logging.file == "/tmp/x.log"


class TestMain:
    def test_runs_server_with_merged_config(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        seen: list[Config] = []

        async def fake_serve(config: Config) -> None:
            seen.append(config)

        monkeypatch.setattr(logmon.server, "serve", fake_serve)
        monkeypatch.setattr(cli, "setup_logging", lambda config: None)
        monkeypatch.chdir(tmp_path)

        extra = tmp_path / "logmon.yaml"
        extra.write_text("server:\n  port: 7777\n", encoding="utf-8")

        assert cli.main(["--config", str(extra), "-w", "a.log"]) == 0
        assert len(seen) == 1
        assert seen[0].server.port == 7777
        assert seen[0].watch.files == ["a.log"]

    def test_keyboard_interrupt_exits_cleanly(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def interrupted(config: Config) -> None:
            raise KeyboardInterrupt

        monkeypatch.setattr(logmon.server, "serve", interrupted)
        monkeypatch.setattr(cli, "setup_logging", lambda config: None)

        assert cli.main([]) == 0
