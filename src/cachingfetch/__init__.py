"""cachingfetch -- TTL cache for remote JSON resources.

Consumers request JSON resources by key (usually a URL). Concurrent
requests for the same key share a single network call, entries expire after
a fixed five-minute TTL, and the whole cache can be exported to a string in
one execution environment and restored in another so that pre-fetched data
is not fetched again.

Typical workflow::

    cachingfetch preload /api/people --base-url https://example.com -o snapshot.json
    cachingfetch get /api/people --snapshot snapshot.json

Modules:
    cache: The :class:`~cachingfetch.cache.CacheStore` and snapshot format.
    client: :class:`~cachingfetch.client.JsonFetcher`, the network collaborator.
    orchestrator: Deduplicating fetch orchestration and consumer observation.
    preloader: Unconditional preloading that raises on failure.
    runtime: Process-wide default instances and convenience functions.
    models: Pydantic models and the ``RequestState`` dataclass.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr diagnostics with Rich support.
"""

__version__ = "0.1.0"
