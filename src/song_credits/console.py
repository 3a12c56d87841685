"""Shared Rich console and rendering helpers for song-credits.

Provides a global Rich console instance and helpers for consistent
output formatting across all CLI commands.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.status import Status
from rich.table import Table

from song_credits.credits import Category, CreditsResult

# Global console instance (initialized in CLI)
_console: Console | None = None


def get_console() -> Console:
    """Get the global Rich console instance, creating a default one if needed."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global Rich console instance.

    Args:
        console: The Console instance to use globally
    """
    global _console
    _console = console


@contextmanager
def status(
    message: str,
    spinner: str = "dots",
) -> Iterator[Status]:
    """Create a Rich Status context for showing ongoing operations.

    Example:
        with status("Querying MusicBrainz...") as st:
            st.update("Merging credits...")
    """
    with get_console().status(message, spinner=spinner) as st:
        yield st


def print(*args: Any, **kwargs: Any) -> None:
    """Print to the global console."""
    get_console().print(*args, **kwargs)


def print_error(message: str) -> None:
    get_console().print(f"[red]Error: {escape(message)}[/red]")


def print_warning(message: str) -> None:
    get_console().print(f"[yellow]Warning: {escape(message)}[/yellow]")


def print_success(message: str) -> None:
    get_console().print(f"[green]{escape(message)}[/green]")


def credits_table(result: CreditsResult) -> Table:
    """Build a table of credits grouped by category, in display order."""
    year = f" ({result.year})" if result.year else ""
    table = Table(title=escape(f"{result.artist} - {result.title}{year}"), title_justify="left")
    table.add_column("Category", style="bold cyan")
    table.add_column("Name")
    table.add_column("Role", style="dim")

    for category in Category:
        entries = result.categories.get(category)
        for index, entry in enumerate(entries):
            table.add_row(
                category.value if index == 0 else "", escape(entry.name), escape(entry.role)
            )
        if entries:
            table.add_section()

    if result.sources:
        table.caption = f"Sources: {', '.join(result.sources)}"
    return table


def status_table(statuses: dict[str, dict[str, Any]]) -> Table:
    """Build a table from a provider connection probe."""
    table = Table(title="Provider connections", title_justify="left")
    table.add_column("Source", style="bold")
    table.add_column("Status")
    table.add_column("Message")
    for source, info in statuses.items():
        ok = bool(info.get("ok"))
        label = "[green]OK[/green]" if ok else "[red]FAIL[/red]"
        table.add_row(source, label, escape(str(info.get("message", ""))))
    return table


def metrics_table(snapshot: dict[str, Any]) -> Table:
    """Build a table from a LookupMetrics snapshot."""
    table = Table(title="Lookup metrics", title_justify="left")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    for name, value in snapshot.items():
        if isinstance(value, dict):
            text = ", ".join(f"{key}={count}" for key, count in value.items()) or "-"
        else:
            text = str(value)
        table.add_row(name, escape(text))
    return table
