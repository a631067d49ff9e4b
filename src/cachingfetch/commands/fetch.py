"""Fetch command -- read one resource through the cache.

``get`` is the receiving environment in miniature: optionally restore a
snapshot produced by ``preload`` (fail-soft, exactly like an interactive
session would), then resolve the key through the orchestrator. A fresh
entry is printed without touching the network.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer

from cachingfetch import runtime
from cachingfetch.client import JsonFetcher
from cachingfetch.commands.snapshot import read_snapshot
from cachingfetch.config import resolve_config
from cachingfetch.exceptions import CachingFetchError
from cachingfetch.models import RequestState
from cachingfetch.output import error, format_response, info


async def _resolve(key: str) -> RequestState:
    try:
        return await runtime.resolve(key)
    finally:
        await runtime.get_fetcher().aclose()


def get_command(
    key: str = typer.Argument(help="Resource key (URL or path)."),
    snapshot: Optional[Path] = typer.Option(
        None, "--snapshot", "-s", help="Restore this snapshot before reading ('-' for stdin)."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Base URL joined with relative keys."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Request timeout in seconds."
    ),
) -> None:
    """Print a resource, serving it from the cache when fresh.

    Example::

        cachingfetch get /api/people --snapshot snapshot.json
    """
    try:
        config = resolve_config(cli_base_url=base_url, cli_timeout=timeout)
        if snapshot is not None:
            runtime.restore(read_snapshot(snapshot))
    except CachingFetchError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)

    runtime.set_fetcher(JsonFetcher(config))
    if runtime.get_orchestrator().cached_state(key) is not None:
        info(f"Served {key} from cache")
    else:
        info(f"Fetching {key}")

    state = asyncio.run(_resolve(key))
    if state.error is not None:
        error(str(state.error))
        exit_code = getattr(state.error, "exit_code", 1)
        raise typer.Exit(code=exit_code)
    format_response(state.data)
