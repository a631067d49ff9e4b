"""Exception hierarchy for cachingfetch.

All exceptions inherit from :class:`CachingFetchError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`cachingfetch.exit_codes`. The CLI entry point in
:func:`cachingfetch.app.main` catches ``CachingFetchError`` and exits with the
appropriate code.

Only :func:`~cachingfetch.preloader.preload` lets fetch errors reach its
caller. The orchestrator stores them in
:attr:`~cachingfetch.models.RequestState.error`, and
:meth:`~cachingfetch.cache.CacheStore.restore` logs
:class:`SnapshotParseFailure` instead of raising it.

Subclass hierarchy::

    CachingFetchError          (exit 1)
    +-- InvalidUsageError      (exit 2)
    +-- ConfigError            (exit 1)
    +-- FetchError             (exit 1)
    |   +-- NetworkFailure     (exit 6)
    |   +-- HttpStatusFailure  (exit 5)
    |   +-- DecodeFailure      (exit 7)
    +-- SnapshotParseFailure   (exit 8)
"""

from __future__ import annotations

from cachingfetch.exit_codes import (
    EXIT_DECODE_FAILURE,
    EXIT_GENERIC_FAILURE,
    EXIT_HTTP_STATUS_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NETWORK_FAILURE,
    EXIT_SNAPSHOT_PARSE_FAILURE,
)


class CachingFetchError(Exception):
    """Base exception for all cachingfetch errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(CachingFetchError):
    """Raised for invalid CLI arguments."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(CachingFetchError):
    """Raised for configuration problems (invalid JSON, failed validation)."""

    exit_code = EXIT_GENERIC_FAILURE


class FetchError(CachingFetchError):
    """Base class for failures while fetching a resource.

    Args:
        message: Human-readable error description.
        key: The resource key (URL) that was being fetched.
    """

    def __init__(self, message: str, key: str = "") -> None:
        super().__init__(message)
        self.key = key


class NetworkFailure(FetchError):
    """Raised when the request could not be completed at all."""

    exit_code = EXIT_NETWORK_FAILURE


class HttpStatusFailure(FetchError):
    """Raised when a response arrived but its status is not 2xx.

    Args:
        key: The resource key (URL) that was fetched.
        status_code: The HTTP status code of the response.
        reason: Optional reason phrase.
    """

    exit_code = EXIT_HTTP_STATUS_FAILURE

    def __init__(self, key: str, status_code: int, reason: str = "") -> None:
        message = f"HTTP error! Status: {status_code}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(f"{message} ({key})", key=key)
        self.status_code = status_code


class DecodeFailure(FetchError):
    """Raised when a successful response body is not valid JSON."""

    exit_code = EXIT_DECODE_FAILURE


class SnapshotParseFailure(CachingFetchError):
    """Raised when a cache snapshot is not valid JSON of the expected shape."""

    exit_code = EXIT_SNAPSHOT_PARSE_FAILURE
