"""``flexlock show [PATH]``: print the locked specs."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from flexlock.cli.output import lockfile_to_dict, print_error, print_lockfile
from flexlock.cli.project import read_lockfile
from flexlock.config import FlexlockConfig
from flexlock.exceptions import LockfileError


@click.command("show")
@click.argument(
    "path", type=click.Path(exists=True, file_okay=False), default=".", required=False
)
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
@click.pass_obj
def show_command(config: FlexlockConfig | None, path: str, output_format: str) -> None:
    """Show the packages locked in PATH.

    Exit code 0 on success, 2 if the lockfile is missing or corrupt.
    """
    config = config or FlexlockConfig()
    lock_path = config.lockfile_path(Path(path))
    try:
        lockfile = read_lockfile(lock_path)
    except LockfileError as exc:
        print_error(str(exc))
        sys.exit(2)
    if lockfile is None:
        print_error(f"No lockfile at {lock_path}")
        sys.exit(2)

    if output_format == "json":
        click.echo(json.dumps(lockfile_to_dict(lockfile), indent=2))
    else:
        print_lockfile(lockfile)
    sys.exit(0)
