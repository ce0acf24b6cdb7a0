"""Source index construction.

``index_for`` maps each variant of the closed source descriptor type to its
index implementation. ``build_indexes`` creates the ordered, de-duplicated
list of indexes reachable from a manifest: default sources first, in
declaration order, then inline requirement sources.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from flexlock.config import FlexlockConfig
from flexlock.core.requirements import (
    PathSource,
    RegistrySource,
    Requirement,
    SourceDescriptor,
    VersionControlSource,
)
from flexlock.core.sources.base import SourceIndex
from flexlock.core.sources.path import PathIndex
from flexlock.core.sources.registry import RegistryIndex
from flexlock.core.sources.vcs import VersionControlIndex


def index_for(
    source: SourceDescriptor,
    *,
    fetcher: object | None = None,
    git: object | None = None,
    base_dir: Path | None = None,
    config: FlexlockConfig | None = None,
) -> SourceIndex:
    """Create the index serving *source*.

    Args:
        source: A registry, version-control, or path descriptor.
        fetcher: Registry transport; an ``IndexFetcher`` built from *config*
            when omitted.
        git: Git transport; a ``GitClient`` built from *config* when omitted.
        base_dir: Directory relative path sources are resolved against.
        config: Settings for default transports.

    Raises:
        TypeError: If *source* is not one of the three descriptor types.
    """
    config = config or FlexlockConfig()
    if isinstance(source, RegistrySource):
        if fetcher is None:
            from flexlock.transport.index_fetcher import IndexFetcher

            fetcher = IndexFetcher(config.http_timeout, config.max_concurrency)
        return RegistryIndex(source, fetcher)  # type: ignore[arg-type]
    if isinstance(source, VersionControlSource):
        if git is None:
            from flexlock.transport.git_client import GitClient

            git = GitClient(config.git_cache_dir)
        return VersionControlIndex(source, git)  # type: ignore[arg-type]
    if isinstance(source, PathSource):
        return PathIndex(source, base_dir)
    raise TypeError(f"Unsupported source descriptor: {source!r}")


def build_indexes(
    default_sources: Iterable[SourceDescriptor],
    requirements: Iterable[Requirement] = (),
    **kwargs: object,
) -> list[SourceIndex]:
    """Create one index per distinct reachable source, in lookup order."""
    ordered: list[SourceDescriptor] = []
    for source in default_sources:
        if source not in ordered:
            ordered.append(source)
    for req in requirements:
        if req.source is not None and req.source not in ordered:
            ordered.append(req.source)
    return [index_for(source, **kwargs) for source in ordered]  # type: ignore[arg-type]
