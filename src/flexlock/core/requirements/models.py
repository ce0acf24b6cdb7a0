"""Requirement model value types: sources, requirements, and specs.

Source descriptors form a closed variant of three frozen dataclasses
(``RegistrySource``, ``VersionControlSource``, ``PathSource``). Two
descriptors are equal iff they have the same kind and the same fields, which
is what the lockfile uses to de-duplicate its ``sources:`` section.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Union

from flexlock.core.requirements.constraints import (
    VersionConstraint,
    constraints_text,
    parse_constraints,
)
from flexlock.core.requirements.versions import Version, parse_version


class SourceKind(Enum):
    """Source kinds, in lockfile ``sources:`` group order."""

    REGISTRY = "gem"
    VERSION_CONTROL = "git"
    PATH = "path"


class PinKind(Enum):
    """How a version-control source is pinned."""

    BRANCH = "branch"
    TAG = "tag"
    REF = "ref"
    NONE = "none"


@dataclass(frozen=True)
class Pin:
    """A symbolic or explicit reference fixing a repository to one state.

    ``Pin.none()`` means the repository's default branch.
    """

    kind: PinKind = PinKind.NONE
    value: str = ""

    @classmethod
    def none(cls) -> Pin:
        return cls(PinKind.NONE, "")

    def __str__(self) -> str:
        if self.kind is PinKind.NONE:
            return "default branch"
        return f"{self.kind.value} {self.value}"


# ---------------------------------------------------------------------------
# Source descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RegistrySource:
    """An index of published package metadata.

    The URL is normalized to end with ``/``, and ``file://`` URLs are
    shortened to ``file:`` so ``file:///repo`` and ``file:/repo/`` are equal.
    """

    url: str

    def __post_init__(self) -> None:
        if self.url.startswith("file://"):
            object.__setattr__(self, "url", "file:" + self.url[len("file://"):])
        if not self.url.endswith("/"):
            object.__setattr__(self, "url", self.url + "/")

    @property
    def kind(self) -> SourceKind:
        return SourceKind.REGISTRY

    @property
    def identity(self) -> str:
        return self.url

    def source_key(self) -> tuple[str, ...]:
        return (self.kind.value, self.url)

    def __str__(self) -> str:
        return f"registry {self.url}"


@dataclass(frozen=True)
class VersionControlSource:
    """A version-controlled repository fixed by a pin."""

    url: str
    pin: Pin = field(default_factory=Pin.none)

    @property
    def kind(self) -> SourceKind:
        return SourceKind.VERSION_CONTROL

    @property
    def identity(self) -> str:
        return self.url

    def source_key(self) -> tuple[str, ...]:
        # Symbolic pins move with upstream; only explicit refs are identity.
        if self.pin.kind is PinKind.REF:
            return (self.kind.value, self.url, self.pin.value)
        return (self.kind.value, self.url)

    def with_ref(self, ref: str) -> VersionControlSource:
        """Return a copy pinned to the explicit *ref*."""
        return VersionControlSource(self.url, Pin(PinKind.REF, ref))

    def __str__(self) -> str:
        return f"git {self.url} ({self.pin})"


@dataclass(frozen=True)
class PathSource:
    """A local package directory; always resolves to exactly one spec."""

    location: str

    @property
    def kind(self) -> SourceKind:
        return SourceKind.PATH

    @property
    def identity(self) -> str:
        return self.location

    def source_key(self) -> tuple[str, ...]:
        return (self.kind.value, self.location)

    def __str__(self) -> str:
        return f"path {self.location}"


SourceDescriptor = Union[RegistrySource, VersionControlSource, PathSource]


def source_sort_key(source: SourceDescriptor) -> tuple[int, str]:
    """Lockfile order: grouped by kind, then by url or location."""
    order = list(SourceKind).index(source.kind)
    return (order, source.identity)


def sources_match(declared: SourceDescriptor, locked: SourceDescriptor) -> bool:
    """Check whether a locked source still corresponds to a declared one.

    A version-control source with a symbolic pin matches any locked ref from
    the same URL. An explicit declared ref must be a prefix match of the
    locked ref in either direction, since lockfiles store abbreviated refs.
    """
    if declared.kind is not locked.kind:
        return False
    if isinstance(declared, VersionControlSource) and isinstance(
        locked, VersionControlSource
    ):
        if declared.url != locked.url:
            return False
        if declared.pin.kind is not PinKind.REF or locked.pin.kind is not PinKind.REF:
            return True
        a, b = declared.pin.value, locked.pin.value
        return a.startswith(b) or b.startswith(a)
    return declared.identity == locked.identity


# ---------------------------------------------------------------------------
# Requirement
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Requirement:
    """A named package requirement.

    Top-level requirements come from the manifest; transitive ones come from
    a ``Spec``'s dependencies.

    Attributes:
        name: Package name (case-sensitive).
        constraints: Conjunction of version constraints; empty means any.
        source: Explicit source override, or None to use the default
            source order.
        options: Load-time hints such as ``require`` and ``group``. Never
            part of equality or of the lockfile.
    """

    name: str
    constraints: tuple[VersionConstraint, ...] = ()
    source: SourceDescriptor | None = None
    options: Mapping[str, Any] = field(
        default_factory=dict, compare=False, hash=False
    )

    def __post_init__(self) -> None:
        kept = tuple(c for c in dict.fromkeys(self.constraints) if not c.is_any)
        object.__setattr__(self, "constraints", kept)
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    @classmethod
    def parse(
        cls,
        name: str,
        *constraints: str,
        source: SourceDescriptor | None = None,
        **options: Any,
    ) -> Requirement:
        """Build a requirement from constraint strings.

        Example::

            Requirement.parse("rails", "~> 2.3", ">= 2.3.2", group="web")
        """
        return cls(
            name=name,
            constraints=parse_constraints(*constraints),
            source=source,
            options=options,
        )

    def satisfied_by(self, version: str | Version) -> bool:
        """True if *version* satisfies every constraint."""
        parsed = parse_version(version)
        return all(c.satisfies(parsed) for c in self.constraints)

    def constraint_text(self) -> str:
        """Canonical constraint text, empty when any version is accepted."""
        return constraints_text(self.constraints)

    def key(self) -> tuple[Any, ...]:
        """Identity used when comparing manifest requirements to locked ones."""
        source_key = self.source.source_key() if self.source is not None else ()
        return (self.name, self.constraint_text(), source_key)

    def __str__(self) -> str:
        text = self.constraint_text()
        return f"{self.name} ({text})" if text else self.name


# ---------------------------------------------------------------------------
# Spec
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Spec:
    """A concrete, resolvable package produced by a source index.

    Dependencies are stored sorted by name so that two specs built from the
    same data compare equal regardless of declaration order.
    """

    name: str
    version: Version
    source: SourceDescriptor | None = None
    dependencies: tuple[Requirement, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.version, Version):
            object.__setattr__(self, "version", parse_version(self.version))
        deps = tuple(sorted(self.dependencies, key=lambda r: r.name))
        object.__setattr__(self, "dependencies", deps)

    @property
    def full_name(self) -> str:
        return f"{self.name} ({self.version})"

    def __str__(self) -> str:
        return self.full_name
