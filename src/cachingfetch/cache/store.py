"""In-memory store of fetched JSON resources with snapshot transfer.

:class:`CacheStore` maps a resource key to a
:class:`~cachingfetch.models.CacheEntry` stamped with the time it was
written. Freshness is not stored: the orchestrator compares
``fetched_at`` against :attr:`CacheStore.ttl_seconds` every time it reads
an entry, so an entry's lifetime does not depend on how long it sat in the
store.

The whole store can be exported to a JSON string and restored from one.
This is the seam between two execution environments: a pre-render pass
preloads and exports, and the interactive session restores before its
first observation. Restoring is fail-soft because the payload comes from
elsewhere; a malformed snapshot is logged and ignored.

Every :meth:`~CacheStore.reset` and successful :meth:`~CacheStore.restore`
advances :attr:`CacheStore.generation`. A fetch that started under an older
generation passes it to :meth:`~CacheStore.put` and its write is dropped, so
a late response cannot bring back data that was cleared or replaced while it
was in flight.

See Also:
    :class:`~cachingfetch.models.Snapshot` -- the transfer format.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Iterator, Optional

from pydantic import ValidationError

from cachingfetch.exceptions import SnapshotParseFailure
from cachingfetch.models import CACHE_TTL_SECONDS, CacheEntry, Snapshot
from cachingfetch.output import debug, warning

EntryCallback = Callable[[CacheEntry], None]


def parse_snapshot(snapshot: str) -> dict[str, CacheEntry]:
    """Parse a serialized snapshot into cache entries.

    Args:
        snapshot: A string produced by :meth:`CacheStore.export`.

    Returns:
        A mapping of key to :class:`~cachingfetch.models.CacheEntry`.

    Raises:
        SnapshotParseFailure: If *snapshot* is not valid JSON or does not
            have the ``{key: {"value": ..., "fetchedAt": number}}`` shape.
    """
    try:
        parsed = Snapshot.model_validate_json(snapshot)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "<root>"
        raise SnapshotParseFailure(
            f"Malformed cache snapshot ({exc.error_count()} error(s)); "
            f"first at {location}: {first['msg']}"
        ) from exc
    return parsed.to_entries()


class CacheStore:
    """Process-wide mapping from resource key to fetched value.

    Args:
        ttl_seconds: How long an entry stays fresh. Defaults to
            :data:`~cachingfetch.models.CACHE_TTL_SECONDS` (five minutes).
        clock: Source of the current time, in seconds. Defaults to
            :func:`time.time`; tests inject a fake clock.

    Example::

        store = CacheStore()
        store.put("/api/people", [{"name": "Ann"}])
        payload = store.export()

        other = CacheStore()
        other.restore(payload)
        assert other.get("/api/people").value == [{"name": "Ann"}]
    """

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._watchers: dict[str, list[EntryCallback]] = {}
        self._generation = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    @property
    def generation(self) -> int:
        """Counter advanced by :meth:`reset` and by a successful :meth:`restore`."""
        return self._generation

    def now(self) -> float:
        """Return the current time according to the store's clock."""
        return self._clock()

    # ------------------------------------------------------------------ #
    # Lookup and writes
    # ------------------------------------------------------------------ #

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for *key*, fresh or not, or ``None``."""
        return self._entries.get(key)

    def put(self, key: str, value: Any, generation: Optional[int] = None) -> Optional[CacheEntry]:
        """Insert or replace the entry for *key*, stamped with the current time.

        Watchers of *key* are called with the new entry.

        Args:
            key: The resource key.
            value: The decoded JSON payload.
            generation: The :attr:`generation` observed when the fetch that
                produced *value* started. When given and no longer current,
                the write is discarded.

        Returns:
            The stored entry, or ``None`` if the write was discarded.
        """
        if generation is not None and generation != self._generation:
            debug(f"Discarding stale write for {key} (generation {generation} != {self._generation})")
            return None
        entry = CacheEntry(key=key, value=value, fetched_at=self.now())
        self._entries[key] = entry
        self._notify(entry)
        return entry

    def reset(self) -> None:
        """Discard every entry."""
        self._entries = {}
        self._generation += 1

    # ------------------------------------------------------------------ #
    # Snapshot transfer
    # ------------------------------------------------------------------ #

    def export(self) -> str:
        """Serialize every entry to a JSON snapshot string.

        An empty store exports ``{}``.
        """
        return Snapshot.from_entries(self._entries).model_dump_json(by_alias=True)

    def restore(self, snapshot: str) -> bool:
        """Replace the store's contents with those of *snapshot*.

        Never raises. An empty string is ignored. A malformed snapshot is
        reported as a warning and leaves the current entries untouched.

        Args:
            snapshot: A string produced by :meth:`export`, possibly in
                another process.

        Returns:
            ``True`` if the store was replaced, ``False`` otherwise.
        """
        if not snapshot:
            return False
        try:
            entries = parse_snapshot(snapshot)
        except SnapshotParseFailure as exc:
            warning(f"Ignoring cache snapshot: {exc}")
            return False

        self._entries = entries
        self._generation += 1
        debug(f"Restored {len(entries)} cache entr{'y' if len(entries) == 1 else 'ies'}")
        for entry in entries.values():
            self._notify(entry)
        return True

    # ------------------------------------------------------------------ #
    # Change notification
    # ------------------------------------------------------------------ #

    def watch(self, key: str, callback: EntryCallback) -> Callable[[], None]:
        """Call *callback* with the new entry whenever *key* is written.

        Returns:
            A function that removes the watcher. Calling it twice is safe.
        """
        self._watchers.setdefault(key, []).append(callback)

        def _unwatch() -> None:
            callbacks = self._watchers.get(key)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._watchers[key]

        return _unwatch

    def _notify(self, entry: CacheEntry) -> None:
        for callback in list(self._watchers.get(entry.key, ())):
            callback(entry)

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def keys(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[CacheEntry]:
        return iter(list(self._entries.values()))

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``size``, ``fresh`` (entries still within the
            TTL), ``ttl_seconds`` and ``generation``.
        """
        now = self.now()
        return {
            "size": len(self._entries),
            "fresh": sum(1 for e in self._entries.values() if e.is_fresh(now, self._ttl_seconds)),
            "ttl_seconds": self._ttl_seconds,
            "generation": self._generation,
        }
