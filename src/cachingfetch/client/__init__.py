"""HTTP client module for cachingfetch.

Provides :class:`JsonFetcher`, an asynchronous fetcher backed by
:class:`httpx.AsyncClient` that turns a resource key into decoded JSON or a
typed :class:`~cachingfetch.exceptions.FetchError`.

Example::

    from cachingfetch.client import JsonFetcher

    async with JsonFetcher(config) as fetcher:
        people = await fetcher.fetch_json("/api/people")
"""

from cachingfetch.client.fetcher import JsonFetcher

__all__ = ["JsonFetcher"]
