"""Integration tests for the cachingfetch CLI.

Drives the full Typer app through :class:`typer.testing.CliRunner`. The
network is replaced by the in-process fake server: both command modules
build their :class:`JsonFetcher` through a factory patched here to inject
the fake transport. Data output is sent to files with ``-o`` so assertions
never depend on how the runner mixes stdout and stderr.
"""

from __future__ import annotations

import json
import time
from pathlib import Path

import httpx
import pytest

from cachingfetch import __version__, runtime
from cachingfetch.app import app, main
from cachingfetch.client import JsonFetcher
from cachingfetch.exceptions import InvalidUsageError
from cachingfetch.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_HTTP_STATUS_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NETWORK_FAILURE,
    EXIT_SNAPSHOT_PARSE_FAILURE,
)

BASE_URL = "https://example.com"

QUIET = ["--quiet", "--no-color"]


@pytest.fixture
def fake_network(server, monkeypatch: pytest.MonkeyPatch):
    """Route every fetcher the commands create to the fake server."""

    def _factory(config=None):
        return JsonFetcher(config, transport=server.transport())

    monkeypatch.setattr("cachingfetch.commands.snapshot.JsonFetcher", _factory)
    monkeypatch.setattr("cachingfetch.commands.fetch.JsonFetcher", _factory)
    return server


def _preload(cli_runner, target: Path, *keys: str):
    return cli_runner.invoke(
        app, [*QUIET, "-o", str(target), "preload", *keys, "--base-url", BASE_URL]
    )


# ---------------------------------------------------------------------------
# preload
# ---------------------------------------------------------------------------


class TestPreload:
    def test_writes_snapshot(self, cli_runner, isolated_config, fake_network) -> None:
        target = isolated_config / "snapshot.json"
        result = _preload(cli_runner, target, "/api/people")

        assert result.exit_code == 0, result.output
        snapshot = json.loads(target.read_text(encoding="utf-8"))
        assert snapshot["/api/people"]["value"] == [{"name": "Ann"}]
        assert snapshot["/api/people"]["fetchedAt"] == pytest.approx(time.time(), abs=60)

    def test_multiple_keys(self, cli_runner, isolated_config, fake_network) -> None:
        fake_network.json("/api/planets", ["Earth"])
        target = isolated_config / "snapshot.json"
        result = _preload(cli_runner, target, "/api/people", "/api/planets")

        assert result.exit_code == 0, result.output
        assert sorted(json.loads(target.read_text(encoding="utf-8"))) == [
            "/api/people",
            "/api/planets",
        ]

    def test_network_failure_exits_and_writes_nothing(
        self, cli_runner, isolated_config, fake_network
    ) -> None:
        fake_network.fail("/api/people", httpx.ConnectError("connection refused"))
        target = isolated_config / "snapshot.json"
        result = _preload(cli_runner, target, "/api/people")

        assert result.exit_code == EXIT_NETWORK_FAILURE
        assert not target.exists()

    def test_http_status_failure_exit_code(
        self, cli_runner, isolated_config, fake_network
    ) -> None:
        target = isolated_config / "snapshot.json"
        result = _preload(cli_runner, target, "/api/missing")
        assert result.exit_code == EXIT_HTTP_STATUS_FAILURE

    def test_base_url_from_environment(
        self, cli_runner, isolated_config, fake_network, monkeypatch
    ) -> None:
        monkeypatch.setenv("CACHINGFETCH_BASE_URL", BASE_URL)
        target = isolated_config / "snapshot.json"
        result = cli_runner.invoke(app, [*QUIET, "-o", str(target), "preload", "/api/people"])
        assert result.exit_code == 0, result.output
        assert fake_network.count("/api/people") == 1


# ---------------------------------------------------------------------------
# get
# ---------------------------------------------------------------------------


class TestGet:
    def test_snapshot_serves_without_network(
        self, cli_runner, isolated_config, fake_network
    ) -> None:
        snapshot = isolated_config / "snapshot.json"
        assert _preload(cli_runner, snapshot, "/api/people").exit_code == 0
        runtime.reset_runtime()

        target = isolated_config / "people.json"
        result = cli_runner.invoke(
            app,
            [*QUIET, "-o", str(target), "get", "/api/people", "-s", str(snapshot),
             "--base-url", BASE_URL],
        )

        assert result.exit_code == 0, result.output
        assert json.loads(target.read_text(encoding="utf-8")) == [{"name": "Ann"}]
        assert fake_network.count("/api/people") == 1

    def test_without_snapshot_fetches(self, cli_runner, isolated_config, fake_network) -> None:
        target = isolated_config / "people.json"
        result = cli_runner.invoke(
            app, [*QUIET, "-o", str(target), "get", "/api/people", "--base-url", BASE_URL]
        )
        assert result.exit_code == 0, result.output
        assert json.loads(target.read_text(encoding="utf-8")) == [{"name": "Ann"}]
        assert fake_network.count("/api/people") == 1

    def test_malformed_snapshot_falls_back_to_network(
        self, cli_runner, isolated_config, fake_network
    ) -> None:
        snapshot = isolated_config / "snapshot.json"
        snapshot.write_text("not json", encoding="utf-8")
        target = isolated_config / "people.json"

        result = cli_runner.invoke(
            app,
            [*QUIET, "-o", str(target), "get", "/api/people", "-s", str(snapshot),
             "--base-url", BASE_URL],
        )

        assert result.exit_code == 0, result.output
        assert fake_network.count("/api/people") == 1

    def test_missing_snapshot_file_is_usage_error(
        self, cli_runner, isolated_config, fake_network
    ) -> None:
        result = cli_runner.invoke(
            app, [*QUIET, "get", "/api/people", "-s", str(isolated_config / "nope.json")]
        )
        assert result.exit_code == EXIT_INVALID_USAGE
        assert fake_network.calls == []

    def test_fetch_failure_exit_code(self, cli_runner, isolated_config, fake_network) -> None:
        result = cli_runner.invoke(
            app, [*QUIET, "get", "/api/missing", "--base-url", BASE_URL]
        )
        assert result.exit_code == EXIT_HTTP_STATUS_FAILURE


# ---------------------------------------------------------------------------
# inspect
# ---------------------------------------------------------------------------


class TestInspect:
    def test_lists_entries(self, cli_runner, isolated_config) -> None:
        snapshot = isolated_config / "snapshot.json"
        snapshot.write_text(
            json.dumps(
                {
                    "/api/people": {"value": [1, 2], "fetchedAt": time.time()},
                    "/api/old": {"value": {"a": 1}, "fetchedAt": 0},
                }
            ),
            encoding="utf-8",
        )
        target = isolated_config / "table.json"

        result = cli_runner.invoke(
            app, [*QUIET, "--json", "-o", str(target), "inspect", str(snapshot)]
        )

        assert result.exit_code == 0, result.output
        rows = json.loads(target.read_text(encoding="utf-8"))
        assert [row["key"] for row in rows] == ["/api/old", "/api/people"]
        assert rows[0]["fresh"] == "no"
        assert rows[0]["value"] == "object[1]"
        assert rows[1]["fresh"] == "yes"
        assert rows[1]["value"] == "array[2]"

    def test_reads_stdin(self, cli_runner, isolated_config) -> None:
        target = isolated_config / "table.json"
        result = cli_runner.invoke(
            app,
            [*QUIET, "--json", "-o", str(target), "inspect", "-"],
            input='{"/a": {"value": null, "fetchedAt": 0}}',
        )
        assert result.exit_code == 0, result.output
        assert json.loads(target.read_text(encoding="utf-8"))[0]["value"] == "null"

    def test_malformed_snapshot_exit_code(self, cli_runner, isolated_config) -> None:
        snapshot = isolated_config / "snapshot.json"
        snapshot.write_text('{"/a": {"value": 1}}', encoding="utf-8")
        result = cli_runner.invoke(app, [*QUIET, "inspect", str(snapshot)])
        assert result.exit_code == EXIT_SNAPSHOT_PARSE_FAILURE


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


class TestConfigCommands:
    def test_set_then_show(self, cli_runner, isolated_config) -> None:
        for key, value in [
            ("base_url", BASE_URL),
            ("timeout", "10"),
            ("verify_ssl", "false"),
            ("headers.X-Token", "abc"),
        ]:
            result = cli_runner.invoke(app, [*QUIET, "config", "set", key, value])
            assert result.exit_code == 0, result.output

        target = isolated_config / "config-out.json"
        result = cli_runner.invoke(app, [*QUIET, "-o", str(target), "config", "show"])

        assert result.exit_code == 0, result.output
        assert json.loads(target.read_text(encoding="utf-8")) == {
            "base_url": BASE_URL,
            "timeout": 10.0,
            "verify_ssl": False,
            "headers": {"X-Token": "abc"},
        }

    def test_set_base_url_none_clears_it(self, cli_runner, isolated_config) -> None:
        cli_runner.invoke(app, [*QUIET, "config", "set", "base_url", BASE_URL])
        result = cli_runner.invoke(app, [*QUIET, "config", "set", "base_url", "none"])
        assert result.exit_code == 0, result.output

        from cachingfetch.config import load_config

        assert load_config().base_url is None

    def test_unknown_key_rejected(self, cli_runner, isolated_config) -> None:
        result = cli_runner.invoke(app, [*QUIET, "config", "set", "retries", "3"])
        assert result.exit_code == EXIT_INVALID_USAGE

    def test_invalid_value_rejected(self, cli_runner, isolated_config) -> None:
        result = cli_runner.invoke(app, [*QUIET, "config", "set", "timeout", "soon"])
        assert result.exit_code == EXIT_INVALID_USAGE

    def test_reset(self, cli_runner, isolated_config) -> None:
        cli_runner.invoke(app, [*QUIET, "config", "set", "timeout", "3"])
        result = cli_runner.invoke(app, [*QUIET, "config", "reset"])
        assert result.exit_code == 0, result.output

        from cachingfetch.config import load_config
        from cachingfetch.models import FetchConfig

        assert load_config() == FetchConfig()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


class TestEntryPoint:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"cachingfetch {__version__}" in result.output

    def test_main_maps_domain_errors_to_exit_code(self, monkeypatch) -> None:
        def _raise() -> None:
            raise InvalidUsageError("bad input")

        monkeypatch.setattr("cachingfetch.app._setup_signal_handlers", lambda: None)
        monkeypatch.setattr("cachingfetch.app.app", _raise)

        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == EXIT_INVALID_USAGE

    def test_main_writes_crash_log_for_unexpected_errors(
        self, isolated_config, monkeypatch
    ) -> None:
        def _raise() -> None:
            raise RuntimeError("boom")

        monkeypatch.setattr("cachingfetch.app._setup_signal_handlers", lambda: None)
        monkeypatch.setattr("cachingfetch.app.app", _raise)

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == EXIT_GENERIC_FAILURE
        logs = list((isolated_config / "data" / "cachingfetch" / "logs").glob("crash-*.log"))
        assert len(logs) == 1
        assert "RuntimeError: boom" in logs[0].read_text()
