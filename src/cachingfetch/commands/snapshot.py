"""Snapshot commands -- ``preload`` and ``inspect``.

``preload`` is the initiating environment's pipeline: fetch every requested
resource, then write the exported cache to stdout (or ``-o FILE``) so it can
be embedded in whatever is handed to the next environment. It stops at the
first failed fetch and writes nothing, exiting with the failure's code.

``inspect`` parses a snapshot strictly and lists what it holds.
"""

from __future__ import annotations

import asyncio
import sys
import time
from pathlib import Path
from typing import Any, Optional

import typer

from cachingfetch import runtime
from cachingfetch.cache import parse_snapshot
from cachingfetch.client import JsonFetcher
from cachingfetch.config import resolve_config
from cachingfetch.exceptions import CachingFetchError, FetchError, InvalidUsageError
from cachingfetch.models import FetchConfig
from cachingfetch.output import error, print_data, print_table, success


def read_snapshot(path: Path) -> str:
    """Read a snapshot from *path*, or from stdin when *path* is ``-``.

    Raises:
        InvalidUsageError: If the file cannot be read.
    """
    if str(path) == "-":
        return sys.stdin.read()
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InvalidUsageError(f"Cannot read snapshot {path}: {exc}") from exc


async def _preload_all(keys: list[str], config: FetchConfig) -> None:
    runtime.set_fetcher(JsonFetcher(config))
    try:
        for key in keys:
            await runtime.preload(key)
    finally:
        await runtime.get_fetcher().aclose()


def preload_command(
    keys: list[str] = typer.Argument(help="Resource keys (URLs or paths) to preload."),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Base URL joined with relative keys."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Request timeout in seconds."
    ),
) -> None:
    """Preload resources and print the exported cache snapshot.

    Example::

        cachingfetch preload /api/people --base-url https://example.com -o snapshot.json
    """
    try:
        config = resolve_config(cli_base_url=base_url, cli_timeout=timeout)
        asyncio.run(_preload_all(keys, config))
    except FetchError as exc:
        error(f"Preload failed: {exc}")
        raise typer.Exit(code=exc.exit_code)
    except CachingFetchError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)

    print_data(runtime.export())
    success(f"Preloaded {len(keys)} resource(s)")


def _describe(value: Any) -> str:
    if isinstance(value, list):
        return f"array[{len(value)}]"
    if isinstance(value, dict):
        return f"object[{len(value)}]"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "string"


def inspect_command(
    snapshot_file: Path = typer.Argument(help="Snapshot file, or '-' to read stdin."),
) -> None:
    """List the entries of a cache snapshot with their age and freshness.

    Unlike restoring, inspecting is strict: a malformed snapshot exits
    with a non-zero code.
    """
    try:
        entries = parse_snapshot(read_snapshot(snapshot_file))
    except CachingFetchError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)

    now = time.time()
    rows = [
        [
            key,
            f"{entry.age(now):.0f}s",
            "yes" if entry.is_fresh(now) else "no",
            _describe(entry.value),
        ]
        for key, entry in sorted(entries.items())
    ]
    print_table(["key", "age", "fresh", "value"], rows, title=f"{len(rows)} cached resource(s)")
