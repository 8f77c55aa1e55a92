"""
CLI utility helpers: consoles and output formatting.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from rich.console import Console
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def flatten(data: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested tables into dotted keys; lists stay values."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            result.update(flatten(value, dotted))
        else:
            result[dotted] = value
    return result


def print_settings(data: Mapping[str, Any], *, as_json: bool = False, title: str = "") -> None:
    """Render settings as JSON or as a key/value Rich table."""
    if as_json:
        console.print_json(json.dumps(data, default=str))
        return

    flat = flatten(data)
    if not flat:
        console.print("[dim]No settings.[/dim]")
        return

    table = Table(title=title or None, show_lines=False, pad_edge=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value", overflow="fold")
    for key in sorted(flat):
        table.add_row(key, str(flat[key]))
    console.print(table)


def print_value(value: Any) -> None:
    if isinstance(value, (Mapping, list)):
        console.print_json(json.dumps(value, default=str))
    else:
        console.print(value, highlight=False, markup=False)
