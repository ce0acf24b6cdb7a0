"""Canonical lockfile text.

Layout (two-space nesting, a blank line between sections, trailing
newline)::

    sources:
      gem: file:/repo/
      git: /src/foo ref:"a1b2c3"

    dependencies:
      foo:
        git: /src/foo ref:"a1b2c3"
      rack-obama (>= 1.0)

    specs:
      foo (1.0)
      rack (1.0.0)
      rack-obama (1.0):
        rack

``sources:`` is left out when no global source is used. Requirement options
such as ``require`` and ``group`` are never written.

A spec normally gets its source back on parse from the same-named top-level
requirement or from the only global source (see ``implied_source``). When
that would be wrong, for instance with two registries, the spec lists its
source as the first nested line::

    specs:
      rack (1.0.0):
        gem: https://mirror.example.org/
      thin (1.0):
        gem: https://registry.example.org/
        rack
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Sequence

from flexlock.core.requirements import (
    PinKind,
    Requirement,
    SourceDescriptor,
    VersionControlSource,
)
from flexlock.core.sources.vcs import abbreviate_ref

if TYPE_CHECKING:
    from flexlock.core.lockfile.lockfile import Lockfile

INDENT: str = "  "


def serialize(lockfile: Lockfile) -> str:
    """Render *lockfile* as canonical text."""
    refs = _all_refs(lockfile)
    blocks: list[list[str]] = []
    if lockfile.sources:
        blocks.append(
            ["sources:"]
            + [INDENT + source_line(s, refs) for s in lockfile.sources]
        )
    blocks.append(["dependencies:"] + _dependency_lines(lockfile.dependencies, refs))
    blocks.append(["specs:"] + _spec_lines(lockfile, refs))
    return "\n\n".join("\n".join(block) for block in blocks) + "\n"


def source_line(source: SourceDescriptor, refs: Iterable[str] = ()) -> str:
    """Render one source descriptor, e.g. ``git: /src/foo ref:"a1b2c3"``."""
    label = source.kind.value
    if isinstance(source, VersionControlSource):
        pin = source.pin
        if pin.kind is PinKind.REF:
            return f'{label}: {source.url} ref:"{abbreviate_ref(pin.value, refs)}"'
        if pin.kind is PinKind.NONE:
            return f"{label}: {source.url}"
        return f'{label}: {source.url} {pin.kind.value}:"{pin.value}"'
    return f"{label}: {source.identity}"


def requirement_line(req: Requirement) -> str:
    """``name`` or ``name (constraints)``."""
    text = req.constraint_text()
    return f"{req.name} ({text})" if text else req.name


def _dependency_lines(deps: Iterable[Requirement], refs: list[str]) -> list[str]:
    lines: list[str] = []
    for req in sorted(deps, key=lambda r: r.name):
        if req.source is None:
            lines.append(INDENT + requirement_line(req))
        else:
            lines.append(INDENT + requirement_line(req) + ":")
            lines.append(INDENT * 2 + source_line(req.source, refs))
    return lines


def implied_source(
    name: str,
    sources: Sequence[SourceDescriptor],
    dependencies: Iterable[Requirement],
) -> SourceDescriptor | None:
    """Source a spec recovers on parse when none is written beneath it.

    That is the inline source of the top-level requirement named *name*,
    else the only global source, else None.
    """
    for req in dependencies:
        if req.name == name and req.source is not None:
            return req.source
    return sources[0] if len(sources) == 1 else None


def _spec_lines(lockfile: Lockfile, refs: list[str]) -> list[str]:
    lines: list[str] = []
    for spec in lockfile.specs:
        children: list[str] = []
        if spec.source is not None and spec.source != implied_source(
            spec.name, lockfile.sources, lockfile.dependencies
        ):
            children.append(source_line(spec.source, refs))
        children.extend(
            requirement_line(dep)
            for dep in sorted(spec.dependencies, key=lambda r: r.name)
        )
        if children:
            lines.append(f"{INDENT}{spec.name} ({spec.version}):")
            lines.extend(INDENT * 2 + child for child in children)
        else:
            lines.append(f"{INDENT}{spec.name} ({spec.version})")
    return lines


def _all_refs(lockfile: Lockfile) -> list[str]:
    sources: list[SourceDescriptor] = list(lockfile.sources)
    sources.extend(r.source for r in lockfile.dependencies if r.source is not None)
    sources.extend(s.source for s in lockfile.specs if s.source is not None)
    return sorted(
        {
            s.pin.value
            for s in sources
            if isinstance(s, VersionControlSource) and s.pin.kind is PinKind.REF
        }
    )
