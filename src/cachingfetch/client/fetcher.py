"""Asynchronous JSON fetcher -- the network collaborator of the cache.

This module provides :class:`JsonFetcher`, a thin wrapper around
:class:`httpx.AsyncClient` that performs a GET for a resource key and
classifies the outcome:

* transport errors (timeout, DNS, refused connection, unusable URL)
  raise :class:`~cachingfetch.exceptions.NetworkFailure`;
* a response outside the 2xx range raises
  :class:`~cachingfetch.exceptions.HttpStatusFailure`;
* a body that is not valid JSON raises
  :class:`~cachingfetch.exceptions.DecodeFailure`.

Requests are never retried here. Retrying is left to the caller.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from cachingfetch.exceptions import DecodeFailure, HttpStatusFailure, NetworkFailure
from cachingfetch.models import FetchConfig
from cachingfetch.output import debug


class JsonFetcher:
    """Fetch and decode JSON resources by key.

    The underlying :class:`httpx.AsyncClient` is created on first use, so a
    fetcher can be handed to an orchestrator without entering it first. It
    can also be used as an async context manager, which closes the client on
    exit.

    Args:
        config: Network settings. Relative keys such as ``/api/people`` are
            joined with ``config.base_url``; absolute URLs are used as-is.
        transport: Optional transport passed to :class:`httpx.AsyncClient`,
            e.g. :class:`httpx.MockTransport` in tests.

    Example::

        async with JsonFetcher(FetchConfig(base_url="https://example.com")) as fetcher:
            people = await fetcher.fetch_json("/api/people")
    """

    def __init__(
        self,
        config: Optional[FetchConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or FetchConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def config(self) -> FetchConfig:
        return self._config

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> JsonFetcher:
        self._ensure_client()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying client, if one was opened."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Fetching
    # ------------------------------------------------------------------ #

    async def fetch_json(self, key: str) -> Any:
        """GET *key* and return its decoded JSON body.

        Args:
            key: The resource key, an absolute URL or a path relative to the
                configured ``base_url``.

        Returns:
            The decoded JSON value (dict, list, str, number, bool or ``None``).

        Raises:
            NetworkFailure: The request could not be completed.
            HttpStatusFailure: The response status is not 2xx.
            DecodeFailure: The body is not valid JSON.
        """
        client = self._ensure_client()
        debug(f"GET {key}")
        try:
            response = await client.get(key)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise NetworkFailure(f"Request to {key} failed: {exc}", key=key) from exc

        if not response.is_success:
            raise HttpStatusFailure(key, response.status_code, response.reason_phrase)

        try:
            return response.json()
        except ValueError as exc:
            raise DecodeFailure(f"Response from {key} is not valid JSON: {exc}", key=key) from exc

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs: dict[str, Any] = {
                "base_url": self._config.base_url or "",
                "timeout": self._config.timeout,
                "verify": self._config.verify_ssl,
                "headers": {"Accept": "application/json", **self._config.headers},
                "follow_redirects": True,
            }
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client
