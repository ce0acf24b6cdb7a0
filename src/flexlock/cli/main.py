"""flexlock CLI: reproducible dependency locking.

Entry point for the ``flexlock`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    lock   -- Resolve the manifest and write the lockfile.
    check  -- Report whether the lockfile still satisfies the manifest.
    show   -- Print the locked specs.

Usage::

    flexlock lock                       # Lock the current directory
    flexlock lock ./app --update rack   # Re-resolve rack, keep the rest
    flexlock check ./app
    flexlock show ./app --format json
    flexlock --verbose lock             # Log resolver decisions
"""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler

from flexlock import __version__
from flexlock.cli.check import check_command
from flexlock.cli.lock import lock_command
from flexlock.cli.output import err_console
from flexlock.cli.show import show_command
from flexlock.config import FlexlockConfig
from flexlock.exceptions import FlexlockError


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Log resolver decisions.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """flexlock: resolve package requirements into a reproducible lockfile.

    Reads ``flexlock.yaml`` from a project directory, resolves every
    requirement against registry, git and path sources, and records the
    exact result in ``flexlock.lock``.
    """
    _configure_logging(verbose)
    try:
        ctx.obj = FlexlockConfig.from_env()
    except FlexlockError as exc:
        raise click.UsageError(str(exc)) from exc


# Register all subcommands
cli.add_command(lock_command)
cli.add_command(check_command)
cli.add_command(show_command)
