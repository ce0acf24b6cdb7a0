"""Base class for source indexes.

A source index answers two questions for the resolver: which specs of a
given package a source offers, and, for version-control sources, which
concrete commit a symbolic pin currently designates. One implementation
exists per source kind (``RegistryIndex``, ``VersionControlIndex``,
``PathIndex``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from flexlock.core.requirements import SourceDescriptor, Spec


class SourceIndex(ABC):
    """Abstract base class for per-source spec enumeration.

    Subclasses must implement ``source`` and ``list_versions``. Pinned
    sources (path, version control) also override ``package_names`` so the
    resolver knows which names they answer for exclusively.
    """

    @property
    @abstractmethod
    def source(self) -> SourceDescriptor:
        """The descriptor this index serves, as declared in the manifest."""

    @abstractmethod
    def list_versions(self, name: str) -> list[Spec]:
        """Return every spec this source offers for *name*.

        Raises:
            PackageNotFound: If the source does not know *name*.
            SourceUnreachable: If the source cannot be read.
        """

    @property
    def is_pinned(self) -> bool:
        """True for sources that offer exactly one candidate per name."""
        return False

    def package_names(self) -> list[str] | None:
        """Names served by a pinned source, or None for open registries."""
        return None

    def resolve_pin(self) -> str | None:
        """Concrete ref for version-control sources, None otherwise."""
        return None

    def locked_source(self) -> SourceDescriptor:
        """The descriptor as it is written to a lockfile."""
        return self.source

    def prefetch(self, names: Iterable[str]) -> None:
        """Warm caches for *names*; the default does nothing."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.source})"
