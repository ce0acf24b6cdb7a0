"""Lockfile core class: canonical content, serialization, and disk writes.

The ``Lockfile`` class holds three ordered sections:

- **sources:** global source descriptors used by chosen specs, grouped by
  kind and sorted by url or location.
- **dependencies:** top-level requirements sorted by name, with the locked
  source inline when the requirement names one.
- **specs:** every chosen spec sorted by name, then version.

Ordering is applied at construction time, so two lockfiles with the same
content always serialize to byte-identical text.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable

from flexlock.core.lockfile.serializer import serialize
from flexlock.core.requirements import (
    Requirement,
    SourceDescriptor,
    Spec,
    source_sort_key,
)
from flexlock.core.resolver.graph import ResolvedGraph

logger = logging.getLogger(__name__)


class Lockfile:
    """A serialized snapshot of a resolution.

    Value object: the sections are tuples fixed at construction.

    Example::

        lockfile = Lockfile.from_graph(graph)
        lockfile.write(Path("flexlock.lock"))
        again = Lockfile.read(Path("flexlock.lock"))
    """

    def __init__(
        self,
        sources: Iterable[SourceDescriptor] = (),
        dependencies: Iterable[Requirement] = (),
        specs: Iterable[Spec] = (),
    ) -> None:
        unique: list[SourceDescriptor] = []
        for source in sources:
            if source not in unique:
                unique.append(source)
        self._sources = tuple(sorted(unique, key=source_sort_key))
        self._dependencies = tuple(sorted(dependencies, key=lambda r: r.name))
        self._specs = tuple(sorted(specs, key=lambda s: (s.name, s.version)))

    # -- Sections -----------------------------------------------------------

    @property
    def sources(self) -> tuple[SourceDescriptor, ...]:
        return self._sources

    @property
    def dependencies(self) -> tuple[Requirement, ...]:
        return self._dependencies

    @property
    def specs(self) -> tuple[Spec, ...]:
        return self._specs

    @property
    def spec_names(self) -> list[str]:
        """Sorted list of locked package names."""
        return [spec.name for spec in self._specs]

    def get_spec(self, name: str) -> Spec | None:
        """Return the locked spec named *name*, or None."""
        for spec in self._specs:
            if spec.name == name:
                return spec
        return None

    def to_graph(self) -> ResolvedGraph:
        """Rebuild the resolved graph this lockfile records."""
        return ResolvedGraph(self._specs, self._dependencies)

    # -- Serialization ------------------------------------------------------

    def to_text(self) -> str:
        """Return the canonical lockfile text."""
        return serialize(self)

    def write(self, path: Path) -> None:
        """Write the lockfile atomically.

        The text goes to a temporary file in the same directory which then
        replaces *path*, so readers never observe a partial lockfile.
        """
        text = self.to_text()
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
                handle.write(text)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info("Wrote %s (%d specs)", path, len(self._specs))

    # -- Equality -----------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Lockfile):
            return NotImplemented
        return (
            self._sources == other._sources
            and self._dependencies == other._dependencies
            and self._specs == other._specs
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"Lockfile(sources={len(self._sources)}, "
            f"dependencies={len(self._dependencies)}, specs={len(self._specs)})"
        )
