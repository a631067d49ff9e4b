"""Canonical data shapes shared across cachingfetch modules.

The models fall into three groups:

**Cache models** -- :class:`CacheEntry`, one stored resource, plus the
snapshot transfer format (:class:`SnapshotRecord` and :class:`Snapshot`)
produced by :meth:`~cachingfetch.cache.CacheStore.export` and consumed by
:meth:`~cachingfetch.cache.CacheStore.restore`.

**Observation state** -- :class:`RequestState`, the ``{is_loading, data,
error}`` triple a consumer sees for a key.

**Configuration** -- :class:`FetchConfig`, the network settings stored as
JSON in the user's config directory.

All Pydantic models use v2 with ``model_config`` where needed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel

CACHE_TTL_SECONDS: float = 5 * 60
"""How long a cached entry stays fresh, measured from the moment it was written."""


# --- Cache models ---


class CacheEntry(BaseModel):
    """A previously fetched resource held by a :class:`~cachingfetch.cache.CacheStore`.

    Entries are immutable; refreshing a key replaces its entry wholesale.
    ``fetched_at`` is expressed in the store clock's unit (seconds since the
    epoch by default).
    """

    model_config = ConfigDict(frozen=True)

    key: str
    value: Any = None
    fetched_at: float

    def age(self, now: float) -> float:
        """Seconds elapsed between ``fetched_at`` and *now*."""
        return now - self.fetched_at

    def is_fresh(self, now: float, ttl: float = CACHE_TTL_SECONDS) -> bool:
        """Return ``True`` while ``now - fetched_at < ttl``."""
        return self.age(now) < ttl


class SnapshotRecord(BaseModel):
    """One key's record inside a serialized snapshot.

    Validation is strict so that a transfer payload with a string or boolean
    timestamp is rejected rather than coerced. Unknown fields are ignored.
    """

    model_config = ConfigDict(strict=True, populate_by_name=True)

    value: Any
    fetched_at: float = Field(alias="fetchedAt", allow_inf_nan=False)


class Snapshot(RootModel[dict[str, SnapshotRecord]]):
    """The transfer format: ``{"<key>": {"value": ..., "fetchedAt": ...}}``."""

    @classmethod
    def from_entries(cls, entries: dict[str, CacheEntry]) -> Snapshot:
        return cls(
            {
                key: SnapshotRecord(value=entry.value, fetched_at=entry.fetched_at)
                for key, entry in entries.items()
            }
        )

    def to_entries(self) -> dict[str, CacheEntry]:
        return {
            key: CacheEntry(key=key, value=record.value, fetched_at=record.fetched_at)
            for key, record in self.root.items()
        }


# --- Observation state ---


@dataclass(frozen=True)
class RequestState:
    """What a consumer observes for one key at one moment.

    While ``is_loading`` is true both ``data`` and ``error`` are ``None``.
    Once loading finishes exactly one of them describes the outcome. The
    error is the :class:`~cachingfetch.exceptions.FetchError` that ended the
    request; it is never raised to the consumer.

    Attributes:
        is_loading: ``True`` until the request for the key has settled.
        data: The decoded JSON payload on success.
        error: The failure on error.
    """

    is_loading: bool
    data: Any = None
    error: Optional[Exception] = None

    @classmethod
    def loading(cls) -> RequestState:
        return cls(is_loading=True)

    @classmethod
    def loaded(cls, data: Any) -> RequestState:
        return cls(is_loading=False, data=data)

    @classmethod
    def failed(cls, error: Exception) -> RequestState:
        return cls(is_loading=False, error=error)

    def as_dict(self) -> dict[str, Any]:
        """Return the state as a plain dict, with the error rendered as text."""
        return {
            "is_loading": self.is_loading,
            "data": self.data,
            "error": str(self.error) if self.error is not None else None,
        }


# --- Configuration ---


class FetchConfig(BaseModel):
    """Network settings used by :class:`~cachingfetch.client.JsonFetcher`.

    Persisted at ``~/.config/cachingfetch/config.json`` and resolved by
    :func:`~cachingfetch.config.resolve_config`.
    """

    base_url: Optional[str] = Field(
        default=None, description="Prefix joined with relative keys such as /api/people"
    )
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra headers sent with every request"
    )
