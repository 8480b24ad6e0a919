"""Shared UI components for the alph CLI."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from alph.models.outcomes import (
    ConfigurationOutcome,
    DetectionOutcome,
    ListingOutcome,
    RemovalOutcome,
    RollbackOutcome,
)

theme = Theme(
    {
        "info": "dim cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "tip": "blue",
        "heading": "bold cyan",
    }
)

console = Console(theme=theme)
error_console = Console(theme=theme, stderr=True)


def setup_logging(*, verbose: bool = False) -> None:
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, rich_tracebacks=False, markup=False)],
        force=True,
    )


def print_error(title: str, message: str, tip: str | None = None) -> None:
    """Print a styled error message with an optional actionable tip."""
    content = Text()
    content.append(f"{message}\n", style="white")

    if tip:
        content.append("\nTip: ", style="bold blue")
        content.append(tip, style="blue")

    error_console.print(
        Panel(
            content,
            title=f"[bold red]Error: {title}[/bold red]",
            border_style="red",
            padding=(1, 1),
        )
    )


def print_success(message: str) -> None:
    console.print(f"[bold green]✓[/bold green] {message}")


def print_warning(message: str) -> None:
    console.print(f"[warning]![/warning] {message}")


def _status(ok: bool) -> str:
    return "[success]ok[/success]" if ok else "[error]failed[/error]"


def _path(value: object) -> str:
    return str(value) if value else "[dim]-[/dim]"


def render_status(
    detections: Sequence[DetectionOutcome], listings: Sequence[ListingOutcome]
) -> None:
    servers = {o.target_id: o.servers for o in listings}
    table = Table(title="Agents", title_style="heading", header_style="bold")
    table.add_column("Agent", style="bold white")
    table.add_column("Config")
    table.add_column("Exists", justify="center")
    table.add_column("Servers", style="cyan")

    for outcome in detections:
        exists = bool(outcome.path and outcome.path.is_file())
        names = servers.get(outcome.target_id, [])
        if outcome.error:
            config = f"[error]{outcome.error}[/error]"
        else:
            config = _path(outcome.path)
        table.add_row(
            outcome.target.display_name,
            config,
            "[success]yes[/success]" if exists else "[dim]no[/dim]",
            ", ".join(names) if names else "[dim]none[/dim]",
        )
    console.print(table)


def render_configuration(outcomes: Sequence[ConfigurationOutcome]) -> None:
    table = Table(title="Configuration", title_style="heading", header_style="bold")
    table.add_column("Agent", style="bold white")
    table.add_column("Result", justify="center")
    table.add_column("Config")
    table.add_column("Backup")
    for o in outcomes:
        detail = _path(o.path) if o.success else f"[error]{o.error}[/error]"
        table.add_row(o.target.display_name, _status(o.success), detail, _path(o.backup_path))
    console.print(table)


def render_removal(outcomes: Sequence[RemovalOutcome]) -> None:
    table = Table(title="Removal", title_style="heading", header_style="bold")
    table.add_column("Agent", style="bold white")
    table.add_column("Result", justify="center")
    table.add_column("Detail")
    table.add_column("Backup")
    for o in outcomes:
        if not o.success:
            result, detail = _status(False), f"[error]{o.error}[/error]"
        elif not o.found:
            result, detail = "[dim]absent[/dim]", f"'{o.server_id}' not configured"
        else:
            result, detail = _status(True), _path(o.path)
        table.add_row(o.target.display_name, result, detail, _path(o.backup_path))
    console.print(table)


def render_rollback(outcomes: Sequence[RollbackOutcome]) -> None:
    table = Table(title="Rollback", title_style="heading", header_style="bold")
    table.add_column("Agent", style="bold white")
    table.add_column("Result", justify="center")
    table.add_column("Restored from")
    for o in outcomes:
        if not o.success:
            detail = f"[error]{o.error}[/error]"
        elif o.backup_path is None:
            detail = "[dim]nothing to restore[/dim]"
        else:
            detail = str(o.backup_path)
        table.add_row(o.target.display_name, _status(o.success), detail)
    console.print(table)
