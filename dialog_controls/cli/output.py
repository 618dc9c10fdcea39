"""Output formatting utilities."""

import json
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from ..utils.formatting import format_list

console = Console()

TURN_COLUMNS = ["turn", "request", "acts", "prompt", "internal_error"]


def print_turns(rows: List[Dict[str, Any]], format_type: str = "table") -> None:
    """Print simulated turns as a table, or dump them whole as JSON/YAML."""
    if format_type in ("json", "yaml"):
        print_document(rows, format_type)
        return

    summary = []
    for row in rows:
        names = [act["name"] for act in row["acts"]]
        summary.append({**row, "acts": format_list(names, joiner="and") if names else "-"})
    print_table(summary, TURN_COLUMNS, title="Simulation")


def print_document(data: Any, format_type: str) -> None:
    """Print data highlighted as JSON or YAML."""
    if format_type == "json":
        text = json.dumps(data, indent=2, default=str)
    else:
        text = yaml.dump(data, default_flow_style=False, sort_keys=False)
    console.print(Syntax(text, format_type, theme="monokai", line_numbers=False))


def print_table(
    data: List[Dict[str, Any]],
    columns: Optional[List[str]] = None,
    title: Optional[str] = None,
) -> None:
    """Print data as a formatted table."""
    if not data:
        console.print("[dim]No turns to display[/dim]")
        return

    table = Table(title=title, show_header=True, header_style="bold cyan")
    display_columns = columns or list(data[0].keys())

    for col in display_columns:
        table.add_column(col.replace("_", " ").title())

    for item in data:
        row = []
        for col in display_columns:
            value = item.get(col, "")
            if value is None:
                value = "-"
            elif isinstance(value, bool):
                value = "✓" if value else "✗"
            elif isinstance(value, (list, dict)):
                value = json.dumps(value, default=str)
            else:
                value = str(value)
            row.append(value)
        table.add_row(*row)

    console.print(table)


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]✗[/red] {message}")
