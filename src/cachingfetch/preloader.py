"""Preloading for the environment that runs before any consumer exists.

A pre-render pass calls :func:`preload` for every resource it will need,
then :meth:`~cachingfetch.cache.CacheStore.export` to hand the cache to the
next environment. Unlike the orchestrator, preload always goes to the
network and lets failures reach the caller, so the pass can stop before it
hands off an incomplete snapshot.
"""

from __future__ import annotations

from cachingfetch.cache import CacheStore
from cachingfetch.client import JsonFetcher
from cachingfetch.exceptions import FetchError
from cachingfetch.output import debug


async def preload(key: str, store: CacheStore, fetcher: JsonFetcher) -> None:
    """Fetch *key* unconditionally and write it to *store*.

    Any existing entry is replaced even if it is still fresh. On failure the
    store is left untouched.

    Args:
        key: The resource key to fetch.
        store: The cache to populate.
        fetcher: The network collaborator.

    Raises:
        NetworkFailure: The request could not be completed.
        HttpStatusFailure: The response status is not 2xx.
        DecodeFailure: The body is not valid JSON.
    """
    try:
        value = await fetcher.fetch_json(key)
    except FetchError as exc:
        debug(f"Error preloading {key}: {exc}")
        raise
    store.put(key, value)
    debug(f"Preloaded {key}")
