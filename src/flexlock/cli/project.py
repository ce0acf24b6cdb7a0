"""Project loading shared by the CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Mapping, Sequence

from flexlock.config import FlexlockConfig
from flexlock.core.lockfile import Lockfile
from flexlock.core.requirements import Spec
from flexlock.core.resolver import Resolver
from flexlock.core.sources import SourceIndex, build_indexes
from flexlock.manifest import Manifest, load_manifest


def load_project(project_dir: Path, config: FlexlockConfig) -> Manifest:
    """Load the manifest of *project_dir*.

    Raises:
        ManifestError: If the manifest is missing or invalid.
    """
    return load_manifest(config.manifest_path(project_dir))


def read_lockfile(path: Path) -> Lockfile | None:
    """Return the lockfile at *path*, or None when there is none yet.

    Raises:
        LockfileCorrupt: If the file exists but cannot be parsed.
    """
    if not path.exists():
        return None
    return Lockfile.read(path)


def build_project_indexes(manifest: Manifest, config: FlexlockConfig) -> list[SourceIndex]:
    """Create the source indexes *manifest* resolves against.

    Indexes are lazy; nothing is fetched until a resolver or reconciler
    asks for it.
    """
    return build_indexes(
        manifest.sources,
        manifest.requirements,
        base_dir=manifest.base_dir,
        config=config,
    )


def resolver_factory(
    indexes: Sequence[SourceIndex],
) -> Callable[[Mapping[str, Spec]], Resolver]:
    """Return a callable building a prefetching resolver over *indexes*.

    The indexes are shared, so a fallback resolution reuses the registry
    records and resolved pins already fetched.
    """

    def make(preferred: Mapping[str, Spec]) -> Resolver:
        return Resolver(indexes, preferred, prefetch=True)

    return make
