"""Config commands -- view and modify the network settings.

Provides the ``cachingfetch config`` sub-command group for reading,
updating, and resetting the user's configuration file
(:class:`~cachingfetch.models.FetchConfig`). Environment variables and
command-line flags still take precedence at run time; see
:func:`~cachingfetch.config.resolve_config`.
"""

from __future__ import annotations

import typer
from pydantic import ValidationError

from cachingfetch.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the stored configuration.

    Example::

        cachingfetch config show
        cachingfetch --json config show
    """
    from cachingfetch.config import config_path, load_config

    config = load_config()
    info(f"Config file: {config_path()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key: base_url, timeout, verify_ssl, or headers.<Name>."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is validated against
    :class:`~cachingfetch.models.FetchConfig` before saving, so
    ``timeout 10`` becomes a number and ``verify_ssl false`` a boolean.

    Example::

        cachingfetch config set base_url https://example.com
        cachingfetch config set headers.Authorization "Bearer abc"
    """
    from cachingfetch.config import load_config, save_config
    from cachingfetch.models import FetchConfig

    data = load_config().model_dump(mode="json")

    if key.startswith("headers."):
        header = key.split(".", 1)[1]
        if not header:
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        data["headers"][header] = value
    elif key in data and key != "headers":
        data[key] = None if key == "base_url" and value.lower() in ("", "none", "null") else value
    else:
        error(f"Invalid config key: {key}")
        raise typer.Exit(code=2)

    try:
        config = FetchConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Invalid value for {key}: {exc.errors()[0]['msg']}")
        raise typer.Exit(code=2)

    save_config(config)
    success(f"Set {key}")


@config_app.command("reset")
def config_reset() -> None:
    """Restore the default configuration."""
    from cachingfetch.config import save_config
    from cachingfetch.models import FetchConfig

    save_config(FetchConfig())
    success("Configuration reset to defaults")
