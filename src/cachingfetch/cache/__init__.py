"""In-memory caching of fetched JSON resources for cachingfetch.

This package provides :class:`CacheStore`, the key -> value store shared by
every consumer in a process, and :func:`parse_snapshot`, the strict parser
for the transfer format produced by :meth:`CacheStore.export`.

The store is consumed by :class:`~cachingfetch.orchestrator.FetchOrchestrator`
and :func:`~cachingfetch.preloader.preload`; the process-wide default
instance lives in :mod:`cachingfetch.runtime`.
"""

from cachingfetch.cache.store import CacheStore, parse_snapshot

__all__ = ["CacheStore", "parse_snapshot"]
