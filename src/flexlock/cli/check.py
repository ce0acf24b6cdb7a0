"""``flexlock check [PATH]``: is the lockfile still valid for the manifest?

Exit Codes:
    0 -- The lockfile satisfies the manifest and can be reused.
    1 -- The lockfile is stale; run ``flexlock lock``.
    2 -- The manifest or lockfile is missing or unreadable, or a pinned
         repository cannot be reached.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from flexlock.cli.output import console, print_changes, print_error
from flexlock.cli.project import build_project_indexes, load_project, read_lockfile
from flexlock.config import FlexlockConfig
from flexlock.core.lockfile import Reconciler
from flexlock.exceptions import (
    LockfileError,
    ManifestError,
    ReconciliationFailed,
    SourceError,
)


@click.command("check")
@click.argument(
    "path", type=click.Path(exists=True, file_okay=False), default=".", required=False
)
@click.pass_obj
def check_command(config: FlexlockConfig | None, path: str) -> None:
    """Check that flexlock.lock in PATH satisfies flexlock.yaml."""
    config = config or FlexlockConfig()
    project_dir = Path(path)
    lock_path = config.lockfile_path(project_dir)
    try:
        manifest = load_project(project_dir, config)
        lockfile = read_lockfile(lock_path)
    except (ManifestError, LockfileError) as exc:
        print_error(str(exc))
        sys.exit(2)
    if lockfile is None:
        print_error(f"No lockfile at {lock_path}; run 'flexlock lock'")
        sys.exit(2)

    indexes = build_project_indexes(manifest, config)
    reconciler = Reconciler(lockfile, manifest.requirements, manifest.sources, indexes)
    try:
        changes = reconciler.changes()
    except SourceError as exc:
        print_error(str(exc))
        sys.exit(2)
    if not changes.empty:
        console.print("[bold yellow]Lockfile is out of date:[/bold yellow]")
        print_changes(changes)
        sys.exit(1)
    try:
        reconciler.verify()
    except ReconciliationFailed as exc:
        console.print(f"[bold yellow]Lockfile is out of date:[/bold yellow] {exc}", highlight=False)
        sys.exit(1)
    except SourceError as exc:
        print_error(str(exc))
        sys.exit(2)

    console.print(f"[bold green]Lockfile is up to date[/bold green] ({len(lockfile.specs)} specs)")
    sys.exit(0)
