"""``flexlock lock [PATH]``: resolve the manifest and write the lockfile.

Loads ``flexlock.yaml``, reconciles it with an existing ``flexlock.lock``
(reusing locked versions where the manifest did not change), and writes the
lockfile atomically once resolution succeeds.

Exit Codes:
    0 -- Lockfile written (or already current).
    1 -- Dependency resolution failed (conflicts or unreachable sources).
    2 -- Missing or invalid manifest, or a corrupt lockfile.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from flexlock.cli.output import (
    console,
    print_error,
    print_resolution_summary,
    print_unsatisfiable,
)
from flexlock.cli.project import (
    build_project_indexes,
    load_project,
    read_lockfile,
    resolver_factory,
)
from flexlock.config import FlexlockConfig
from flexlock.core.lockfile import Lockfile, Reconciler
from flexlock.exceptions import (
    LockfileError,
    ManifestError,
    SourceError,
    UnsatisfiableRequirement,
)

logger = logging.getLogger(__name__)


@click.command("lock")
@click.argument(
    "path", type=click.Path(exists=True, file_okay=False), default=".", required=False
)
@click.option(
    "--update", "-u", "unlock",
    multiple=True,
    metavar="NAME",
    help="Re-resolve NAME and its dependencies instead of keeping the locked version.",
)
@click.pass_obj
def lock_command(config: FlexlockConfig | None, path: str, unlock: tuple[str, ...]) -> None:
    """Resolve requirements in PATH and write flexlock.lock.

    Exit code 0 on success, 1 on resolution failure, 2 on a missing or
    invalid manifest or a corrupt lockfile.
    """
    config = config or FlexlockConfig()
    project_dir = Path(path)
    lock_path = config.lockfile_path(project_dir)
    try:
        manifest = load_project(project_dir, config)
        existing = read_lockfile(lock_path)
    except (ManifestError, LockfileError) as exc:
        print_error(str(exc))
        sys.exit(2)

    indexes = build_project_indexes(manifest, config)
    make_resolver = resolver_factory(indexes)
    try:
        if existing is None:
            logger.info("No lockfile at %s; resolving from scratch", lock_path)
            graph = make_resolver({}).resolve(manifest.requirements)
            strategy = "full"
        else:
            reconciler = Reconciler(
                existing, manifest.requirements, manifest.sources, indexes
            )
            result = reconciler.reconcile(make_resolver, unlock=unlock)
            graph, strategy = result.graph, result.strategy
    except UnsatisfiableRequirement as exc:
        print_unsatisfiable(exc)
        sys.exit(1)
    except SourceError as exc:
        print_resolution_summary(success=False, installed={}, conflicts=[str(exc)])
        sys.exit(1)

    # A reused lockfile is written back as read.
    lockfile = existing if strategy == "reuse" else Lockfile.from_graph(graph)
    if existing is not None and existing.to_text() == lockfile.to_text():
        logger.info("Lockfile unchanged")
    else:
        lockfile.write(lock_path)

    print_resolution_summary(
        success=True,
        installed=graph.versions(),
        conflicts=[],
        strategy=strategy,
    )
    console.print(f"\nLockfile written to: {lock_path}", highlight=False)
    sys.exit(0)
