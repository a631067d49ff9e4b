"""Built-in CLI sub-commands for cachingfetch.

* :mod:`~cachingfetch.commands.snapshot` -- ``preload`` resources and
  export a snapshot, ``inspect`` an existing snapshot.
* :mod:`~cachingfetch.commands.fetch` -- ``get`` a resource through the
  cache, optionally seeded from a snapshot.
* :mod:`~cachingfetch.commands.config` -- view and modify network settings.

Single commands export a plain callback registered on the root app; the
``config`` group exports a :class:`typer.Typer` sub-application.
"""
