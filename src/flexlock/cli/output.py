"""Rich output formatting helpers for the flexlock CLI.

Provides consistent terminal output for resolution summaries, conflicts,
lockfile staleness reports, and locked spec listings.
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from flexlock.core.lockfile import Lockfile, RequirementChanges
from flexlock.core.lockfile.serializer import source_line
from flexlock.exceptions import UnsatisfiableRequirement

_STRATEGY_STYLES: dict[str, str] = {
    "reuse": "green",
    "conservative": "cyan",
    "full": "yellow",
}

console = Console()
err_console = Console(stderr=True)


def print_error(message: str) -> None:
    """Print a one-line error to stderr."""
    err_console.print(f"[bold red]Error:[/bold red] {message}", highlight=False)


def print_resolution_summary(
    success: bool,
    installed: dict[str, str],
    conflicts: list[str],
    strategy: str | None = None,
) -> None:
    """Print dependency resolution results.

    Args:
        success: Whether resolution succeeded.
        installed: Package-name to version mapping (if success).
        conflicts: Conflict descriptions (if failure).
        strategy: Reconciliation strategy that produced the result.
    """
    if success:
        title = "Dependency Resolution"
        if strategy:
            style = _STRATEGY_STYLES.get(strategy, "white")
            title = f"{title} ([{style}]{strategy}[/{style}])"
        console.print(Panel("[bold green]Resolution successful[/bold green]", title=title))
        if installed:
            table = Table(show_header=True)
            table.add_column("Package", style="bold")
            table.add_column("Resolved Version")
            for name in sorted(installed):
                table.add_row(name, installed[name])
            console.print(table)
        else:
            console.print("[dim]No packages to resolve.[/dim]")
    else:
        console.print(
            Panel("[bold red]Resolution failed[/bold red]", title="Dependency Resolution")
        )
        for conflict in conflicts:
            console.print(f"  [red]- {conflict}[/red]", highlight=False)


def print_unsatisfiable(error: UnsatisfiableRequirement) -> None:
    """Print a resolution failure with the requirement chain that caused it."""
    print_resolution_summary(success=False, installed={}, conflicts=error.conflicts)
    if error.chain:
        console.print("[bold]Requirement chain:[/bold]")
        for depth, link in enumerate(error.chain):
            console.print(f"{'  ' * (depth + 1)}{link}", highlight=False)


def print_changes(changes: RequirementChanges) -> None:
    """Print the manifest requirements that differ from the lockfile."""
    for label, names, style in (
        ("added", changes.added, "green"),
        ("removed", changes.removed, "red"),
        ("changed", changes.changed, "yellow"),
    ):
        for name in names:
            console.print(f"  [{style}]{label}[/{style}] {name}", highlight=False)


def print_lockfile(lockfile: Lockfile) -> None:
    """Print locked specs as a table."""
    if not lockfile.specs:
        console.print("[dim]No packages locked.[/dim]")
        return
    table = Table(title="Locked Packages", show_header=True, header_style="bold")
    table.add_column("Package", style="bold")
    table.add_column("Version")
    table.add_column("Source", style="dim")
    table.add_column("Dependencies")
    for spec in lockfile.specs:
        table.add_row(
            spec.name,
            str(spec.version),
            source_line(spec.source) if spec.source is not None else "-",
            ", ".join(str(dep) for dep in spec.dependencies) or "-",
        )
    console.print(table)


def lockfile_to_dict(lockfile: Lockfile) -> dict[str, Any]:
    """JSON-ready view of a lockfile for ``show --format json``."""
    return {
        "sources": [source_line(s) for s in lockfile.sources],
        "dependencies": [
            {
                "name": req.name,
                "constraints": req.constraint_text(),
                "source": source_line(req.source) if req.source is not None else None,
            }
            for req in lockfile.dependencies
        ],
        "specs": [
            {
                "name": spec.name,
                "version": str(spec.version),
                "source": source_line(spec.source) if spec.source is not None else None,
                "dependencies": [str(dep) for dep in spec.dependencies],
            }
            for spec in lockfile.specs
        ],
    }
