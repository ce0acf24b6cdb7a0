"""Lockfile operations: parsing, validation, and diffing.

This module extends the ``Lockfile`` class (defined in ``lockfile.py``) with
classmethods and instance methods for:

- **Parsing:** ``from_text``, ``read`` (disk), the structural inverse of
  ``to_text``.
- **Validation:** internal consistency checks over the recorded graph.
- **Diffing:** structured comparison of two lockfiles.

These are attached to the ``Lockfile`` class at import time (in
``__init__.py``) to keep each source file focused while presenting a single
unified API to callers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from flexlock.core.lockfile.serializer import implied_source
from flexlock.core.requirements import (
    PathSource,
    Pin,
    PinKind,
    RegistrySource,
    Requirement,
    SourceDescriptor,
    Spec,
    VersionControlSource,
    parse_constraints,
    parse_version,
)
from flexlock.exceptions import LockfileCorrupt, LockfileError, MalformedConstraint

SECTIONS: tuple[str, ...] = ("sources", "dependencies", "specs")

_HEADER_RE = re.compile(r"^(?P<name>[a-z_]+):$")
_REGISTRY_RE = re.compile(r"^gem: (?P<url>\S+)$")
_GIT_RE = re.compile(
    r'^git: (?P<url>\S+)(?: (?P<kind>ref|branch|tag):"(?P<value>[^"]*)")?$'
)
_PATH_RE = re.compile(r"^path: (?P<location>.+)$")
_SOURCE_LINE_RE = re.compile(r"^(?:gem|git|path): ")
_REQUIREMENT_RE = re.compile(
    r"^(?P<name>[^\s():]+)(?: \((?P<constraints>[^()]*)\))?(?P<colon>:)?$"
)
_SPEC_RE = re.compile(
    r"^(?P<name>[^\s():]+) \((?P<version>[^()\s]+)\)(?P<colon>:)?$"
)


@dataclass
class _Entry:
    """A top-level line of a section and its nested lines."""

    line_no: int
    text: str
    children: list[tuple[int, str]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _split_sections(text: str) -> dict[str, list[_Entry]]:
    sections: dict[str, list[_Entry]] = {}
    current: str | None = None
    for line_no, raw in enumerate(text.splitlines(), start=1):
        if not raw.strip():
            continue
        if "\t" in raw:
            raise LockfileCorrupt("Tab character in indentation", current, line_no)
        stripped = raw.lstrip(" ")
        indent = len(raw) - len(stripped)
        if stripped != stripped.rstrip():
            raise LockfileCorrupt("Trailing whitespace", current, line_no)

        if indent == 0:
            m = _HEADER_RE.match(stripped)
            if not m:
                raise LockfileCorrupt(f"Expected a section header, got {stripped!r}", current, line_no)
            name = m.group("name")
            if name not in SECTIONS:
                raise LockfileCorrupt(f"Unknown section {name!r}", name, line_no)
            if name in sections:
                raise LockfileCorrupt(f"Duplicate section {name!r}", name, line_no)
            if sections and SECTIONS.index(name) < SECTIONS.index(list(sections)[-1]):
                raise LockfileCorrupt(f"Section {name!r} out of order", name, line_no)
            sections[name] = []
            current = name
        elif current is None:
            raise LockfileCorrupt("Indented line before any section", None, line_no)
        elif indent == 2:
            sections[current].append(_Entry(line_no, stripped))
        elif indent == 4:
            entries = sections[current]
            if not entries or not entries[-1].text.endswith(":"):
                raise LockfileCorrupt("Nested line without a parent entry", current, line_no)
            entries[-1].children.append((line_no, stripped))
        else:
            raise LockfileCorrupt(f"Inconsistent indentation ({indent} spaces)", current, line_no)
    return sections


def parse_source(text: str, section: str, line_no: int) -> SourceDescriptor:
    """Parse one ``gem:``/``git:``/``path:`` line into a descriptor."""
    m = _REGISTRY_RE.match(text)
    if m:
        return RegistrySource(m.group("url"))
    m = _GIT_RE.match(text)
    if m:
        kind = m.group("kind")
        pin = Pin(PinKind(kind), m.group("value")) if kind else Pin.none()
        return VersionControlSource(m.group("url"), pin)
    m = _PATH_RE.match(text)
    if m:
        return PathSource(m.group("location"))
    raise LockfileCorrupt(f"Malformed source line {text!r}", section, line_no)


def _requirement(entry_text: str, section: str, line_no: int) -> tuple[Requirement, bool]:
    m = _REQUIREMENT_RE.match(entry_text)
    if not m:
        raise LockfileCorrupt(f"Malformed requirement {entry_text!r}", section, line_no)
    try:
        constraints = parse_constraints(m.group("constraints") or "")
    except MalformedConstraint as exc:
        raise LockfileCorrupt(str(exc), section, line_no) from exc
    return Requirement(m.group("name"), constraints), bool(m.group("colon"))


def _parse_sources(entries: list[_Entry]) -> list[SourceDescriptor]:
    sources: list[SourceDescriptor] = []
    for entry in entries:
        if entry.children:
            raise LockfileCorrupt("Source entries take no nested lines", "sources", entry.children[0][0])
        sources.append(parse_source(entry.text, "sources", entry.line_no))
    return sources


def _parse_dependencies(entries: list[_Entry]) -> list[Requirement]:
    deps: list[Requirement] = []
    for entry in entries:
        req, has_colon = _requirement(entry.text, "dependencies", entry.line_no)
        if has_colon:
            if len(entry.children) != 1:
                raise LockfileCorrupt(
                    f"{req.name!r} needs exactly one nested source line",
                    "dependencies",
                    entry.line_no,
                )
            line_no, child = entry.children[0]
            req = Requirement(req.name, req.constraints, parse_source(child, "dependencies", line_no))
        deps.append(req)
    return deps


def _parse_specs(
    entries: list[_Entry], sources: list[SourceDescriptor], deps: list[Requirement]
) -> list[Spec]:
    listed = set(sources) | {r.source for r in deps if r.source is not None}
    specs: list[Spec] = []
    seen: set[str] = set()
    for entry in entries:
        m = _SPEC_RE.match(entry.text)
        if not m:
            raise LockfileCorrupt(f"Malformed spec {entry.text!r}", "specs", entry.line_no)
        name = m.group("name")
        if name in seen:
            raise LockfileCorrupt(f"Duplicate spec {name!r}", "specs", entry.line_no)
        seen.add(name)
        if bool(m.group("colon")) != bool(entry.children):
            raise LockfileCorrupt(
                f"Spec {name!r}: trailing ':' must match nested lines",
                "specs",
                entry.line_no,
            )
        children = list(entry.children)
        source = implied_source(name, sources, deps)
        if children and _SOURCE_LINE_RE.match(children[0][1]):
            line_no, text = children.pop(0)
            source = parse_source(text, "specs", line_no)
            if source not in listed:
                raise LockfileCorrupt(
                    f"Spec {name!r} names a source missing from sources",
                    "specs",
                    line_no,
                )
        spec_deps = [_requirement(child, "specs", line_no)[0] for line_no, child in children]
        try:
            version = parse_version(m.group("version"))
        except MalformedConstraint as exc:
            raise LockfileCorrupt(str(exc), "specs", entry.line_no) from exc
        specs.append(Spec(name, version, source, tuple(spec_deps)))

    for entry, spec in zip(entries, specs):
        for dep in spec.dependencies:
            if dep.name not in seen:
                raise LockfileCorrupt(
                    f"Spec {spec.name!r} depends on {dep.name!r} which is not in specs",
                    "specs",
                    entry.line_no,
                )
    for req in deps:
        if req.name not in seen:
            raise LockfileCorrupt(
                f"Dependency {req.name!r} has no entry in specs", "dependencies"
            )
    return specs


def _from_text(cls: type, text: str) -> Any:
    """Parse lockfile text into a ``Lockfile``.

    A spec takes the source written as its first nested line. Without one,
    it takes the inline source of the top-level requirement with the same
    name, else the only global source when exactly one exists, else None.

    Raises:
        LockfileCorrupt: On unknown or out-of-order sections, inconsistent
            indentation, malformed lines, duplicate specs, or references to
            specs that are not listed.
    """
    sections = _split_sections(text)
    for required in ("dependencies", "specs"):
        if required not in sections:
            raise LockfileCorrupt(f"Missing section {required!r}", required)
    sources = _parse_sources(sections.get("sources", []))
    deps = _parse_dependencies(sections["dependencies"])
    specs = _parse_specs(sections["specs"], sources, deps)
    return cls(sources=sources, dependencies=deps, specs=specs)


def _read(cls: type, path: Path) -> Any:
    """Read a lockfile from disk.

    Raises:
        LockfileError: If the file cannot be read.
        LockfileCorrupt: If its content is malformed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise LockfileError(f"Cannot read lockfile {path}: {exc}") from exc
    return cls.from_text(text)


# ---------------------------------------------------------------------------
# Validation and diffing
# ---------------------------------------------------------------------------


def _validate(self: Any) -> list[str]:
    """Validate the lockfile for internal consistency.

    Checks that every top-level requirement and every spec dependency is
    satisfied by a locked spec (see ``ResolvedGraph.validate``) and that no
    spec version is empty.

    Returns:
        List of validation error messages. Empty means the lockfile is
        valid.
    """
    errors = self.to_graph().validate()
    for spec in self.specs:
        if not str(spec.version):
            errors.append(f"Spec {spec.name!r} has empty version string")
    return errors


def _diff(self: Any, other: Any) -> dict[str, Any]:
    """Compare two lockfiles and return differences.

    - **added**: Specs present in ``other`` but not in ``self``.
    - **removed**: Specs present in ``self`` but not in ``other``.
    - **changed**: Specs present in both with a different version.

    Args:
        other: The lockfile to compare against (typically the newer one).

    Returns:
        Dict with keys 'added', 'removed', 'changed'.
    """
    old = {spec.name: spec for spec in self.specs}
    new = {spec.name: spec for spec in other.specs}
    changes: list[dict[str, str]] = []
    for name in sorted(old.keys() & new.keys()):
        if str(old[name].version) != str(new[name].version):
            changes.append({
                "name": name,
                "old": str(old[name].version),
                "new": str(new[name].version),
            })
    return {
        "added": sorted(new.keys() - old.keys()),
        "removed": sorted(old.keys() - new.keys()),
        "changed": changes,
    }
