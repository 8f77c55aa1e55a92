"""
Root Typer application for the cfgbind CLI.

The root options (``--log-level``, ``--log-format``) are not declared on the
Typer callback: they come from the :class:`CliOptions` record, bound with
:func:`cfgbind.binder.bind` on the click command Typer builds. They resolve
from flags, then the ``cli`` section of the config file (or
``CLI_LOG_LEVEL``-style environment variables), then the
``CFGBIND_LOG_LEVEL`` and ``CFGBIND_LOG_FORMAT`` settings.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import click
import typer
from typer import Typer

from cfgbind import __version__
from cfgbind.binder import Binder, get_binder
from cfgbind.cli.config import app as config_app
from cfgbind.logging import configure_logging
from cfgbind.settings import get_settings

app = Typer(
    name="cfgbind",
    help="cfgbind: inspect the layered config of the current program.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@dataclass
class CliOptions:
    log_level: str = field(default="WARNING", metadata={"help": "Log level (DEBUG, INFO, WARNING, ERROR)"})
    log_format: str = field(default="console", metadata={"help": "Log format: console or json"})


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"cfgbind {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Show, get and set config values of the current program."""
    options: CliOptions = ctx.obj or CliOptions()
    configure_logging(level=options.log_level, json_format=options.log_format == "json")


app.add_typer(config_app, name="config", help="Config store inspection and editing.")


def build_command(options: CliOptions | None = None, binder: Binder | None = None) -> click.Command:
    """Build the click command tree with the root options bound."""
    if options is None:
        settings = get_settings()
        options = CliOptions(log_level=settings.log_level, log_format=settings.log_format)
    command = typer.main.get_command(app)
    command.context_settings = {**(command.context_settings or {}), "obj": options}
    (binder or get_binder()).bind(command, options, key="cli", persistent=True)
    return command


def main() -> None:
    build_command()()
