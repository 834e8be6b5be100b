"""Formatting utilities for CLI output using Rich."""

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Shared console instance for consistent output
console = Console()


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: str | None = None,
) -> None:
    """Print a Rich table with headers and rows.

    Args:
        headers: Column headers for the table.
        rows: List of rows, where each row is a list of cell values.
        title: Optional title to display above the table.
    """
    table = Table(title=title)

    for header in headers:
        table.add_column(header)

    for row in rows:
        table.add_row(*row)

    console.print(table)


def print_stats(stats: dict[str, Any], title: str = "Statistics") -> None:
    """Print statistics in a panel, one ``key: value`` line each."""
    lines = [f"[bold]{key}:[/bold] {value}" for key, value in stats.items()]
    console.print(Panel("\n".join(lines), title=title))


def print_error(msg: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {msg}")


def print_success(msg: str) -> None:
    console.print(f"[bold green]Success:[/bold green] {msg}")


def print_warning(msg: str) -> None:
    console.print(f"[bold yellow]Warning:[/bold yellow] {msg}")


def format_usd(amount: float) -> str:
    """Format a dollar amount with enough precision for per-request costs.

    Examples: 0.0123 -> "$0.0123", -0.5 -> "-$0.5000", 12.5 -> "$12.50".
    """
    sign = "-" if amount < 0 else ""
    value = abs(amount)
    if value >= 1:
        return f"{sign}${value:,.2f}"
    return f"{sign}${value:.4f}"
