"""Shared utility functions for the blueprint engine.

Provides logging setup, duration formatting and Rich-based
reporting of blueprints, generation plans and generation results.  None of
these helpers are used on the generation hot path except through logging.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

if TYPE_CHECKING:
    from blueprint_engine.registry.models import BlueprintManifest
    from blueprint_engine.scaffolder.generator import GenerationResult
    from blueprint_engine.scaffolder.planner import GenerationPlan

console = Console()

PACKAGE_LOGGER = "blueprint_engine"


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def configure_logging(level: str | int = "WARNING", *, log_console: Optional[Console] = None) -> logging.Logger:
    """Attach a single ``RichHandler`` to the package logger.

    Calling this again only updates the level; handlers are never stacked.

    Args:
        level: Level name (``"DEBUG"``, ``"INFO"``...) or number.
        log_console: Console to log to (defaults to the shared console).

    Returns:
        The ``blueprint_engine`` logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    if isinstance(level, str):
        name = level
        level = logging.getLevelName(name.upper())
        if not isinstance(level, int):
            raise ValueError(f"unknown log level: {name}")
    logger.setLevel(level)

    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        handler = RichHandler(
            console=log_console or console,
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(handler)
        logger.propagate = False
    return logger


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(0.0042) -> "4ms"
        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
    """
    if seconds < 0:
        return "0ms"
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"

    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")


def print_blueprint_table(manifests: Iterable["BlueprintManifest"], title: str = "Blueprints") -> None:
    """Print the available blueprints, one row each."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold", no_wrap=True)
    table.add_column("Type")
    table.add_column("Architecture")
    table.add_column("Files", justify="right")
    table.add_column("Description")

    for manifest in manifests:
        table.add_row(
            manifest.id,
            manifest.type,
            manifest.architecture,
            str(len(manifest.files)),
            manifest.description,
        )

    console.print(table)


def print_plan_table(plan: "GenerationPlan", title: Optional[str] = None) -> None:
    """Print every planned path with its source template and size."""
    table = Table(title=title or f"Plan: {plan.blueprint_id}", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Path", no_wrap=True)
    table.add_column("Template", style="dim")
    table.add_column("Bytes", justify="right")

    for index, planned in enumerate(plan, start=1):
        path = f"{planned.path} [green](x)[/green]" if planned.executable else planned.path
        table.add_row(str(index), path, planned.source, str(len(planned.content.encode("utf-8"))))

    console.print(table)
    if plan.dependencies:
        console.print(f"[dim]Dependencies:[/dim] {', '.join(plan.dependencies)}")


def print_result_summary(result: "GenerationResult") -> None:
    """Print a two-column summary of a committed generation."""
    table = Table(title="Generation Summary", show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    table.add_row("Blueprint", result.blueprint_id)
    table.add_row("Mode", result.mode)
    table.add_row("Root", result.root)
    table.add_row("Files", str(result.file_count))
    table.add_row("Duration", format_duration(result.duration))
    if result.hooks:
        table.add_row("Hooks", ", ".join(hook.name for hook in result.hooks))

    console.print(table)
    print_success(f"Generated {result.file_count} file(s) at {result.root}")
