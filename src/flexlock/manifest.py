"""Manifest loader for ``flexlock.yaml``.

Example manifest::

    sources:
      - gem: https://packages.example.org/
      - git: https://github.com/acme/tools.git
        branch: main

    packages:
      rack-obama: ">= 1.0"
      rails: ["~> 2.3", ">= 2.3.2"]
      foo:
        git: /src/foo
        tag: v1.0
        require: false
      bar:
        path: vendor/bar
        group: test

A package value is a constraint string, a list of constraint strings, a
mapping, or null (any version). Mapping keys ``require`` and ``group`` are
kept as requirement options and never reach the lockfile.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from flexlock.core.requirements import (
    PathSource,
    Pin,
    PinKind,
    RegistrySource,
    Requirement,
    SourceDescriptor,
    VersionControlSource,
    parse_constraints,
)
from flexlock.exceptions import MalformedConstraint, ManifestError

logger = logging.getLogger(__name__)

_PIN_KEYS: dict[str, PinKind] = {
    "branch": PinKind.BRANCH,
    "tag": PinKind.TAG,
    "ref": PinKind.REF,
}
_SOURCE_KEYS = ("gem", "git", "path")
_OPTION_KEYS = ("require", "group")
_PACKAGE_KEYS = frozenset({"version", *_SOURCE_KEYS, *_PIN_KEYS, *_OPTION_KEYS})


@dataclass(frozen=True)
class Manifest:
    """Parsed manifest.

    Attributes:
        sources: Global sources in declaration order.
        requirements: Top-level requirements in declaration order.
        base_dir: Directory relative path sources are resolved against.
    """

    sources: tuple[SourceDescriptor, ...]
    requirements: tuple[Requirement, ...]
    base_dir: Path


def load_manifest(path: Path) -> Manifest:
    """Load and validate a manifest file.

    Raises:
        ManifestError: If the file is missing, is not valid YAML, or does
            not have the expected structure.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"Cannot read manifest {path}: {exc}") from exc
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ManifestError(f"Invalid YAML in {path}: {exc}") from exc
    return parse_manifest(data, base_dir=path.parent)


def parse_manifest(data: Any, base_dir: Path = Path(".")) -> Manifest:
    """Build a ``Manifest`` from already-decoded YAML data."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ManifestError("Manifest must be a mapping")
    unknown = set(data) - {"sources", "packages"}
    if unknown:
        raise ManifestError(f"Unknown manifest keys: {', '.join(sorted(unknown))}")

    raw_sources = data.get("sources") or []
    if not isinstance(raw_sources, list):
        raise ManifestError("'sources' must be a list")
    sources = tuple(_source(entry, "sources") for entry in raw_sources)

    raw_packages = data.get("packages") or {}
    if not isinstance(raw_packages, dict):
        raise ManifestError("'packages' must be a mapping of name to constraint")
    requirements = tuple(
        _requirement(str(name), value) for name, value in raw_packages.items()
    )
    logger.debug(
        "Manifest: %d sources, %d requirements", len(sources), len(requirements)
    )
    return Manifest(sources=sources, requirements=requirements, base_dir=base_dir)


def _source(entry: Any, where: str) -> SourceDescriptor:
    if not isinstance(entry, dict):
        raise ManifestError(f"{where}: source entries must be mappings, got {entry!r}")
    kinds = [key for key in _SOURCE_KEYS if key in entry]
    if len(kinds) != 1:
        raise ManifestError(f"{where}: expected exactly one of gem, git, path in {entry!r}")
    kind = kinds[0]
    value = entry[kind]
    if not isinstance(value, str) or not value:
        raise ManifestError(f"{where}: {kind} must be a non-empty string")

    pins = [key for key in _PIN_KEYS if key in entry]
    if pins and kind != "git":
        raise ManifestError(f"{where}: {pins[0]} only applies to git sources")
    if len(pins) > 1:
        raise ManifestError(f"{where}: use only one of branch, tag, ref")

    if kind == "gem":
        return RegistrySource(value)
    if kind == "path":
        return PathSource(value)
    pin = Pin.none()
    if pins:
        pin = Pin(_PIN_KEYS[pins[0]], str(entry[pins[0]]))
    return VersionControlSource(value, pin)


def _requirement(name: str, value: Any) -> Requirement:
    where = f"packages.{name}"
    constraints: list[str] = []
    source: SourceDescriptor | None = None
    options: dict[str, Any] = {}

    if value is None:
        pass
    elif isinstance(value, (str, int, float)) and not isinstance(value, bool):
        constraints.append(str(value))
    elif isinstance(value, list):
        constraints.extend(str(item) for item in value)
    elif isinstance(value, dict):
        unknown = set(value) - _PACKAGE_KEYS
        if unknown:
            raise ManifestError(f"{where}: unknown keys {', '.join(sorted(unknown))}")
        version = value.get("version")
        if isinstance(version, list):
            constraints.extend(str(item) for item in version)
        elif version is not None:
            constraints.append(str(version))
        if any(key in value for key in _SOURCE_KEYS):
            source = _source(value, where)
        elif any(key in value for key in _PIN_KEYS):
            raise ManifestError(f"{where}: branch, tag and ref need a git source")
        options = {key: value[key] for key in _OPTION_KEYS if key in value}
    else:
        raise ManifestError(f"{where}: unsupported value {value!r}")

    try:
        parsed = parse_constraints(*constraints)
    except MalformedConstraint as exc:
        raise ManifestError(f"{where}: {exc}") from exc
    return Requirement(name, parsed, source, options)
