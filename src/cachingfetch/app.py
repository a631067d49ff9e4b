"""Typer application and CLI entry point for cachingfetch.

The CLI drives the cache from a shell: ``preload`` plays the initiating
environment (fetch, then export a snapshot), ``get`` plays the receiving
environment (restore, then read through the cache), and ``inspect`` shows
what a snapshot contains.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a SIGINT handler and invokes the Typer app.
:class:`~cachingfetch.exceptions.CachingFetchError` exits with its exit code;
any other exception is written to a crash log under the data directory.

See Also:
    :mod:`cachingfetch.config`: Network settings resolution.
    :mod:`cachingfetch.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from cachingfetch import __version__
from cachingfetch.commands.config import config_app
from cachingfetch.commands.fetch import get_command
from cachingfetch.commands.snapshot import inspect_command, preload_command
from cachingfetch.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="cachingfetch",
    help="Fetch, cache and transfer remote JSON resources.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("preload")(preload_command)
app.command("inspect")(inspect_command)
app.command("get")(get_command)
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"cachingfetch {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output (cache hits, requests)."
    ),
    output_file: Optional[str] = typer.Option(
        None, "-o", "--output", help="Write data output to this file."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~cachingfetch.output.OutputManager` built
    from the CLI flags.
    """
    from cachingfetch.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(
            format=fmt,
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
            output_file=output_file,
        )
    )


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from cachingfetch.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``cachingfetch`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from cachingfetch.exceptions import CachingFetchError
        from cachingfetch.output import error

        if isinstance(exc, CachingFetchError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
