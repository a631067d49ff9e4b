"""Process-wide cache state and convenience functions.

There is one :class:`~cachingfetch.cache.CacheStore` per process, shared by
every consumer without explicit wiring. This module owns it, together with
the default :class:`~cachingfetch.client.JsonFetcher` and the
:class:`~cachingfetch.orchestrator.FetchOrchestrator` built from the two.
All three are created lazily and can be replaced with :func:`set_store` and
:func:`set_fetcher` (a UI adapter configuring its base URL, a test
installing a mock transport). :func:`reset_runtime` drops them entirely.

The module-level functions mirror the public operations:

* :func:`observer` / :func:`resolve` -- read through the cache.
* :func:`preload` -- unconditional fetch, raises on failure.
* :func:`export` / :func:`restore` -- hand the cache to another environment.
* :func:`reset` -- empty the cache.

Example::

    from cachingfetch import runtime

    # pre-render pass
    await runtime.preload("/api/people")
    payload = runtime.export()

    # interactive session
    runtime.restore(payload)
    state = runtime.observer().observe("/api/people")   # loaded, no request
"""

from __future__ import annotations

from typing import Callable, Optional

from cachingfetch.cache import CacheStore
from cachingfetch.client import JsonFetcher
from cachingfetch.models import RequestState
from cachingfetch.orchestrator import FetchOrchestrator, Observer
from cachingfetch.preloader import preload as _preload

_store: Optional[CacheStore] = None
_fetcher: Optional[JsonFetcher] = None
_orchestrator: Optional[FetchOrchestrator] = None


def get_store() -> CacheStore:
    """Return the process-wide :class:`CacheStore`, creating it empty on first use."""
    global _store
    if _store is None:
        _store = CacheStore()
    return _store


def set_store(store: CacheStore) -> None:
    """Install *store* as the process-wide cache."""
    global _store, _orchestrator
    _store = store
    _orchestrator = None


def get_fetcher() -> JsonFetcher:
    """Return the process-wide :class:`JsonFetcher`, creating a default one lazily."""
    global _fetcher
    if _fetcher is None:
        _fetcher = JsonFetcher()
    return _fetcher


def set_fetcher(fetcher: JsonFetcher) -> None:
    """Install *fetcher* as the process-wide network collaborator."""
    global _fetcher, _orchestrator
    _fetcher = fetcher
    _orchestrator = None


def get_orchestrator() -> FetchOrchestrator:
    """Return the orchestrator bound to the current store and fetcher."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = FetchOrchestrator(get_store(), get_fetcher())
    return _orchestrator


def reset_runtime() -> None:
    """Forget the store, fetcher and orchestrator.

    Primarily useful in test suites. The fetcher's HTTP client is not
    closed; call :meth:`JsonFetcher.aclose` first if it was used.
    """
    global _store, _fetcher, _orchestrator
    _store = None
    _fetcher = None
    _orchestrator = None


# ------------------------------------------------------------------ #
# Convenience functions that use the global instances
# ------------------------------------------------------------------ #


def observer(on_change: Optional[Callable[[str, RequestState], None]] = None) -> Observer:
    """Create an :class:`Observer` on the process-wide cache."""
    return get_orchestrator().observer(on_change)


async def resolve(key: str) -> RequestState:
    """Return the terminal state for *key* from the process-wide cache."""
    return await get_orchestrator().resolve(key)


async def preload(key: str) -> None:
    """Fetch *key* unconditionally into the process-wide cache. Raises on failure."""
    await _preload(key, get_store(), get_fetcher())


def export() -> str:
    """Serialize the process-wide cache."""
    return get_store().export()


def restore(snapshot: str) -> bool:
    """Replace the process-wide cache with *snapshot*. Never raises."""
    return get_store().restore(snapshot)


def reset() -> None:
    """Empty the process-wide cache."""
    get_store().reset()
