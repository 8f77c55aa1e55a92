"""
CLI: ``cfgbind config`` - config store inspection and editing.
"""

from __future__ import annotations

import typer
import yaml

from cfgbind import loader
from cfgbind.cli.utils import console, err_console, print_settings, print_value
from cfgbind.errors import CfgBindError

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json"),
) -> None:
    """Show every setting, merged across defaults, file, environment and overrides."""
    loader.ensure_loaded()
    store = loader.get_store()
    print_settings(store.all_settings(), as_json=format == "json", title="Settings")


@app.command("get")
def get_value(
    key: str = typer.Argument(..., help="Dotted key, e.g. nested.fifth_param"),
) -> None:
    """Print the resolved value of one key."""
    loader.ensure_loaded()
    value = loader.get_store().get(key)
    if value is None:
        err_console.print(f"[yellow]Not set:[/yellow] {key}")
        raise typer.Exit(1)
    print_value(value)


@app.command("set")
def set_value(
    key: str = typer.Argument(..., help="Dotted key"),
    value: str = typer.Argument(..., help="Value (parsed as a YAML scalar)"),
    write: bool = typer.Option(False, "--write", "-w", help="Write the config file afterwards"),
) -> None:
    """Override one key in memory, optionally writing the config file."""
    loader.ensure_loaded()
    store = loader.get_store()
    store.set(key, yaml.safe_load(value))

    if not write:
        print_value(store.get(key))
        return

    try:
        path = store.write_config()
    except CfgBindError as e:
        err_console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1) from e
    console.print(f"[green]✓[/green] Wrote {path}")


@app.command("path")
def show_path() -> None:
    """Show which config file was loaded."""
    loader.ensure_loaded()
    store = loader.get_store()
    used = store.config_file_used
    if used is None:
        console.print("[dim]No config file loaded.[/dim]")
        console.print("[bold]Searched:[/bold]")
        for path in store.search_paths:
            console.print(f"  • {path}")
        return
    console.print(str(used))
