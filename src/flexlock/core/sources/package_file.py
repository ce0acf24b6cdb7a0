"""Package descriptor records and the ``package.yaml`` reader.

A package record is the decoded ``(name, version, dependencies)`` tuple the
transport layer hands to the core. Path and version-control sources read it
from a ``package.yaml`` file::

    name: rack-obama
    version: "1.0"
    dependencies:
      rack: ">= 0.9"
      json: ["~> 1.4", "!= 1.4.2"]

Registry indexes deliver the same shape, one record per published version.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from flexlock.core.requirements import (
    Requirement,
    SourceDescriptor,
    Spec,
    parse_constraints,
    parse_version,
)
from flexlock.exceptions import SourceError, SourceUnreachable

logger = logging.getLogger(__name__)

PACKAGE_FILE_NAME: str = "package.yaml"


@dataclass(frozen=True)
class PackageRecord:
    """A decoded package descriptor.

    Attributes:
        name: Package name.
        version: Version text as published.
        dependencies: ``(name, constraint strings)`` pairs in declaration
            order.
    """

    name: str
    version: str
    dependencies: tuple[tuple[str, tuple[str, ...]], ...] = ()

    def to_spec(self, source: SourceDescriptor) -> Spec:
        """Build the immutable ``Spec`` for this record served by *source*."""
        deps = tuple(
            Requirement(name=dep, constraints=parse_constraints(*texts))
            for dep, texts in self.dependencies
        )
        return Spec(
            name=self.name,
            version=parse_version(self.version),
            source=source,
            dependencies=deps,
        )


def parse_dependencies(raw: Any, where: str) -> tuple[tuple[str, tuple[str, ...]], ...]:
    """Normalize a ``dependencies`` value into ``(name, constraints)`` pairs.

    Accepts a mapping whose values are a constraint string, a list of them,
    or null (any version), or a list of bare names.
    """
    if raw is None:
        return ()
    if isinstance(raw, list):
        raw = {name: None for name in raw}
    if not isinstance(raw, dict):
        raise SourceError(f"{where}: 'dependencies' must be a mapping")
    pairs: list[tuple[str, tuple[str, ...]]] = []
    for name, value in raw.items():
        if value is None:
            texts: tuple[str, ...] = ()
        elif isinstance(value, (list, tuple)):
            texts = tuple(str(v) for v in value)
        else:
            texts = (str(value),)
        pairs.append((str(name), texts))
    return tuple(pairs)


def record_from_mapping(
    data: Any, where: str, *, name: str | None = None
) -> PackageRecord:
    """Build a ``PackageRecord`` from decoded YAML or JSON.

    Args:
        data: The decoded mapping.
        where: Description of the origin, used in error messages.
        name: Package name to use when the mapping does not carry one.

    Raises:
        SourceError: If required fields are missing.
    """
    if not isinstance(data, dict):
        raise SourceError(f"{where}: package descriptor must be a mapping")
    pkg_name = data.get("name", name)
    version = data.get("version")
    if not pkg_name or version is None:
        raise SourceError(f"{where}: package descriptor needs 'name' and 'version'")
    return PackageRecord(
        name=str(pkg_name),
        version=str(version),
        dependencies=parse_dependencies(data.get("dependencies"), where),
    )


def load_package(directory: Path) -> PackageRecord:
    """Read the ``package.yaml`` descriptor of a package directory.

    Raises:
        SourceUnreachable: If the directory or the descriptor cannot be read.
        SourceError: If the descriptor is not valid YAML or lacks fields.
    """
    descriptor = directory / PACKAGE_FILE_NAME
    try:
        text = descriptor.read_text(encoding="utf-8")
    except OSError as exc:
        raise SourceUnreachable(f"Cannot read {descriptor}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SourceError(f"{descriptor}: invalid YAML: {exc}") from exc
    logger.debug("Loaded package descriptor %s", descriptor)
    return record_from_mapping(data, str(descriptor))
