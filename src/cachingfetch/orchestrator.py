"""Deduplicating fetch orchestration and consumer observation.

:class:`FetchOrchestrator` decides, for each key, whether to serve a fresh
entry from the :class:`~cachingfetch.cache.CacheStore`, join a request that
is already in flight, or start a new one. It offers three consumer-facing
surfaces, from lowest to highest level:

* :meth:`FetchOrchestrator.resolve` -- await the terminal
  :class:`~cachingfetch.models.RequestState` for a key.
* :meth:`FetchOrchestrator.subscribe` -- register interest in a key and be
  called back with every state change. This is the contract a UI adapter
  bridges to its own update mechanism.
* :class:`Observer` -- one per consumer instance; :meth:`Observer.observe`
  can be called on every render or poll and keeps returning the state of
  the same subscription instead of starting new requests.

Errors never escape any of these. They end up in
:attr:`~cachingfetch.models.RequestState.error`.

Concurrency model: a single asyncio event loop. The in-flight task for a key
is registered before the first ``await``, so every observer arriving while
it is pending joins it. Each task remembers the store generation it started
under and only writes back if that generation is still current.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

from cachingfetch.cache import CacheStore
from cachingfetch.client import JsonFetcher
from cachingfetch.exceptions import FetchError, NetworkFailure
from cachingfetch.models import CacheEntry, RequestState
from cachingfetch.output import debug

StateCallback = Callable[[RequestState], None]


@dataclass
class _InFlight:
    task: asyncio.Task[RequestState]
    generation: int


class Subscription:
    """Handle returned by :meth:`FetchOrchestrator.subscribe`.

    Attributes:
        key: The subscribed resource key.
        pending: The request this subscription joined, or ``None`` when the
            key was served from a fresh cache entry.
    """

    def __init__(
        self,
        key: str,
        pending: Optional[asyncio.Task[RequestState]],
        cancel: Callable[[], None],
    ) -> None:
        self.key = key
        self.pending = pending
        self._cancel = cancel

    def close(self) -> None:
        """Stop delivering state changes. The request itself keeps running."""
        self._cancel()


class FetchOrchestrator:
    """Serve, join, or start fetches for resource keys.

    Args:
        store: The cache the orchestrator reads from and writes to.
        fetcher: The network collaborator used on a cache miss.
    """

    def __init__(self, store: CacheStore, fetcher: JsonFetcher) -> None:
        self._store = store
        self._fetcher = fetcher
        self._in_flight: dict[str, _InFlight] = {}

    @property
    def store(self) -> CacheStore:
        return self._store

    def in_flight(self) -> list[str]:
        """Keys with a request currently pending."""
        return list(self._in_flight)

    # ------------------------------------------------------------------ #
    # Cache reads and requests
    # ------------------------------------------------------------------ #

    def cached_state(self, key: str) -> Optional[RequestState]:
        """Return a loaded state if *key* has a fresh entry, else ``None``."""
        entry = self._store.get(key)
        if entry is None:
            return None
        if not entry.is_fresh(self._store.now(), self._store.ttl_seconds):
            debug(f"Cache entry for {key} is stale")
            return None
        return RequestState.loaded(entry.value)

    def request(self, key: str) -> asyncio.Task[RequestState]:
        """Return the in-flight request for *key*, starting one if needed.

        A pending request started before the last reset or restore is not
        joined; a new one is started instead.

        Must be called with a running event loop. The returned task never
        raises; its result is the terminal state.
        """
        generation = self._store.generation
        current = self._in_flight.get(key)
        if current is not None and current.generation == generation:
            debug(f"Joining in-flight request for {key}")
            return current.task

        task = asyncio.get_running_loop().create_task(self._fetch(key, generation))
        in_flight = _InFlight(task=task, generation=generation)
        self._in_flight[key] = in_flight
        task.add_done_callback(lambda _: self._forget(key, in_flight))
        return task

    async def resolve(self, key: str) -> RequestState:
        """Return the terminal state for *key*, fetching only on a miss."""
        cached = self.cached_state(key)
        if cached is not None:
            debug(f"Cache hit for {key}")
            return cached
        return await self.request(key)

    # ------------------------------------------------------------------ #
    # Subscriptions
    # ------------------------------------------------------------------ #

    def subscribe(self, key: str, callback: StateCallback) -> Subscription:
        """Register interest in *key* and receive every state change.

        A fresh entry is delivered synchronously, before this method returns.
        Otherwise the key's request is joined or started and its terminal
        state delivered when it settles. Later writes to the key (another
        consumer's fetch, a preload, a restore) are delivered as well, unless
        the written entry is already past its TTL. Consecutive identical
        states are delivered once.

        Returns:
            A :class:`Subscription`; call :meth:`Subscription.close` to stop
            receiving states.

        Raises:
            RuntimeError: If a request must be started and no event loop is
                running. Nothing is registered in that case.
        """
        cached = self.cached_state(key)
        task: Optional[asyncio.Task[RequestState]] = None
        if cached is None:
            task = self.request(key)

        active = True
        last: list[RequestState] = []

        def _emit(state: RequestState) -> None:
            if not active or (last and last[0] == state):
                return
            last[:] = [state]
            callback(state)

        def _on_write(entry: CacheEntry) -> None:
            if not entry.is_fresh(self._store.now(), self._store.ttl_seconds):
                debug(f"Ignoring expired write for {key}")
                return
            _emit(RequestState.loaded(entry.value))

        unwatch = self._store.watch(key, _on_write)

        def _cancel() -> None:
            nonlocal active
            active = False
            unwatch()

        if task is None:
            debug(f"Cache hit for {key}")
            _emit(cached)
            return Subscription(key, None, _cancel)

        def _on_done(done: asyncio.Task[RequestState]) -> None:
            if not done.cancelled():
                _emit(done.result())

        task.add_done_callback(_on_done)
        return Subscription(key, task, _cancel)

    def observer(self, on_change: Optional[Callable[[str, RequestState], None]] = None) -> Observer:
        """Create an :class:`Observer` for one consumer instance."""
        return Observer(self, on_change)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _fetch(self, key: str, generation: int) -> RequestState:
        try:
            value = await self._fetcher.fetch_json(key)
        except FetchError as exc:
            debug(f"Fetch for {key} failed: {exc}")
            return RequestState.failed(exc)
        except Exception as exc:
            failure = NetworkFailure(f"Request to {key} failed: {exc}", key=key)
            failure.__cause__ = exc
            debug(f"Fetch for {key} failed: {exc!r}")
            return RequestState.failed(failure)

        self._store.put(key, value, generation=generation)
        return RequestState.loaded(value)

    def _forget(self, key: str, in_flight: _InFlight) -> None:
        if self._in_flight.get(key) is in_flight:
            del self._in_flight[key]


class Observer:
    """Per-consumer view of the cache.

    A consumer (a component, a poll loop) creates one observer and calls
    :meth:`observe` as often as it likes. The first call for a key
    subscribes to it; every later call returns the current state of that
    subscription, so re-evaluating never issues another request while one
    is pending. Keys are independent of each other.

    Every observed key holds a store watcher until :meth:`close` is called,
    so an observer that outlives its consumer should be closed explicitly or
    scoped with ``with``.

    Args:
        orchestrator: The orchestrator to subscribe through.
        on_change: Called with ``(key, state)`` whenever a key's state
            changes after the first observation.

    Example::

        with orchestrator.observer(on_change=lambda key, state: rerender()) as observer:
            state = observer.observe("/api/people")
            if state.is_loading:
                ...
    """

    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        on_change: Optional[Callable[[str, RequestState], None]] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._on_change = on_change
        self._states: dict[str, RequestState] = {}
        self._subscriptions: dict[str, Subscription] = {}

    def observe(self, key: str) -> RequestState:
        """Return the current state for *key*, subscribing on first use.

        A fresh cache entry yields a loaded state immediately with no
        network access. Otherwise the first call returns a loading state
        and the request runs in the background; starting it requires a
        running event loop.
        """
        if key not in self._subscriptions:
            self._subscriptions[key] = self._orchestrator.subscribe(
                key, lambda state: self._update(key, state)
            )
            # Set by the synchronous delivery when the key was served fresh.
            self._states.setdefault(key, RequestState.loading())
        return self._states[key]

    async def wait(self, key: str) -> RequestState:
        """Observe *key* and wait until its request has settled."""
        state = self.observe(key)
        pending = self._subscriptions[key].pending
        if state.is_loading and pending is not None:
            await pending
        return self._states[key]

    def close(self) -> None:
        """Release every subscription held by this observer."""
        for subscription in self._subscriptions.values():
            subscription.close()
        self._subscriptions.clear()
        self._states.clear()

    def __enter__(self) -> Observer:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _update(self, key: str, state: RequestState) -> None:
        previous = self._states.get(key)
        if previous == state:
            return
        self._states[key] = state
        # The synchronous delivery of a fresh entry happens during the first
        # observe() call and is not a change the consumer needs to hear about.
        if previous is not None and key in self._subscriptions and self._on_change is not None:
            self._on_change(key, state)
