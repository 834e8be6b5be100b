"""CLI utilities for formatting."""

from .formatting import (
    console,
    format_usd,
    print_error,
    print_stats,
    print_success,
    print_table,
    print_warning,
)

__all__ = [
    "console",
    "format_usd",
    "print_table",
    "print_stats",
    "print_error",
    "print_success",
    "print_warning",
]
