"""Shared test fixtures for cachingfetch.

Provides a controllable clock, an in-process fake JSON server built on
:class:`httpx.MockTransport`, and isolation for the global output manager
and the process-wide cache runtime. These fixtures are automatically
discovered by pytest and available to all test modules.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from cachingfetch import runtime
from cachingfetch.cache import CacheStore
from cachingfetch.client import JsonFetcher
from cachingfetch.models import FetchConfig
from cachingfetch.output import reset_output

BASE_URL = "https://example.com"
START_TIME = 1_700_000_000.0


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, start: float = START_TIME) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeServer:
    """Routes GET requests to canned responses and records every call.

    Routes are response factories so that each request gets a fresh
    :class:`httpx.Response`. Setting :attr:`gate` to an
    :class:`asyncio.Event` holds every request until the event is set,
    which keeps fetches in flight for deduplication tests.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.calls: list[str] = []
        self.gate: Optional[asyncio.Event] = None

    def json(self, path: str, data: Any, status_code: int = 200) -> None:
        self.routes[path] = lambda request: httpx.Response(status_code, json=data)

    def raw(self, path: str, content: bytes, status_code: int = 200) -> None:
        self.routes[path] = lambda request: httpx.Response(status_code, content=content)

    def fail(self, path: str, exc: Exception) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise exc

        self.routes[path] = _raise

    def count(self, path: str) -> int:
        return self.calls.count(path)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.url.path)
        if self.gate is not None:
            await self.gate.wait()
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        return route(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_global_state() -> None:
    """Reset the global OutputManager and the process-wide cache after every test."""
    yield
    reset_output()
    runtime.reset_runtime()


# ---------------------------------------------------------------------------
# Cache fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> CacheStore:
    """An empty store driven by the fake clock."""
    return CacheStore(clock=clock)


@pytest.fixture
def server() -> FakeServer:
    """A fake server answering ``/api/people`` with one person."""
    fake = FakeServer()
    fake.json("/api/people", [{"name": "Ann"}])
    return fake


@pytest.fixture
def fetcher(server: FakeServer) -> JsonFetcher:
    """A JsonFetcher wired to the fake server."""
    return JsonFetcher(FetchConfig(base_url=BASE_URL), transport=server.transport())


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points the XDG directories at *tmp_path*, clears ``CACHINGFETCH_*``
    environment variables, and changes the working directory to *tmp_path*.
    """
    monkeypatch.setattr("cachingfetch.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["CACHINGFETCH_BASE_URL", "CACHINGFETCH_TIMEOUT"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
