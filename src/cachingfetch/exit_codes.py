"""Numeric process exit codes for the ``cachingfetch`` CLI.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~cachingfetch.exceptions.CachingFetchError` subclass.
Pipelines that run ``cachingfetch preload`` before handing a snapshot to
another environment can inspect the exit code to tell a network outage from
a bad response without parsing stderr.

Example::

    $ cachingfetch preload /api/people
    $ echo $?
    6   # EXIT_NETWORK_FAILURE -- the request could not be completed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_HTTP_STATUS_FAILURE = 5
"""The server answered with a non-success HTTP status."""

EXIT_NETWORK_FAILURE = 6
"""The request could not be completed (timeout, DNS failure, connection refused)."""

EXIT_DECODE_FAILURE = 7
"""The response body was not valid JSON."""

EXIT_SNAPSHOT_PARSE_FAILURE = 8
"""A cache snapshot could not be parsed."""
