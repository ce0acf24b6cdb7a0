"""Requirement model: versions, constraints, sources, requirements, and specs.

All public names are re-exported here so callers can write
``from flexlock.core.requirements import Requirement`` without caring which
submodule defines a type.
"""

from flexlock.core.requirements.constraints import (
    OPERATORS,
    VersionConstraint,
    constraints_text,
    parse_constraints,
)
from flexlock.core.requirements.models import (
    PathSource,
    Pin,
    PinKind,
    RegistrySource,
    Requirement,
    SourceDescriptor,
    SourceKind,
    Spec,
    VersionControlSource,
    source_sort_key,
    sources_match,
)
from flexlock.core.requirements.versions import (
    Version,
    parse_version,
    version_sort_key,
)

__all__ = [
    "OPERATORS",
    "PathSource",
    "Pin",
    "PinKind",
    "RegistrySource",
    "Requirement",
    "SourceDescriptor",
    "SourceKind",
    "Spec",
    "Version",
    "VersionConstraint",
    "VersionControlSource",
    "constraints_text",
    "parse_constraints",
    "parse_version",
    "source_sort_key",
    "sources_match",
    "version_sort_key",
]
