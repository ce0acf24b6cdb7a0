"""Backtracking dependency resolver.

The search keeps a partial assignment (package name -> chosen spec) and a
FIFO queue of pending requirements. Each time a package is first assigned
the candidates are recorded in a ``ChoicePoint`` on an explicit stack,
together with a snapshot of the queue and the assignment size, so
backtracking is a pop-and-restore rather than call-stack unwinding.

Candidate order is a total order: version descending, then source
declaration order. A spec locked earlier (``preferred``) that still
satisfies the requirement is tried first. Path and pinned version-control
sources offer exactly one candidate.

Example::

    resolver = Resolver(indexes)
    graph = resolver.resolve(requirements)
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

from flexlock.core.requirements import Requirement, Spec, sources_match
from flexlock.core.resolver.graph import ResolvedGraph
from flexlock.core.sources.base import SourceIndex
from flexlock.exceptions import (
    PackageNotFound,
    SourceUnreachable,
    UnsatisfiableRequirement,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Search state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Pending:
    """A queued requirement and the package whose spec declared it.

    ``parent`` is None for top-level (manifest) requirements.
    """

    requirement: Requirement
    parent: str | None = None


@dataclass
class ChoicePoint:
    """A recorded decision the search can revisit.

    Attributes:
        pending: The requirement that triggered the choice.
        remaining: Untried candidates, in preference order.
        queue: Snapshot of the queue right after ``pending`` was popped.
        assigned: Assignment size before the choice was made.
    """

    pending: Pending
    remaining: list[Spec]
    queue: tuple[Pending, ...]
    assigned: int


@dataclass
class _Conflict:
    message: str
    chain: list[str]
    unreachable: SourceUnreachable | None = None


@dataclass
class _Search:
    """Mutable state of one resolution; never shared between calls."""

    assignment: dict[str, tuple[Spec, Pending]] = field(default_factory=dict)
    queue: deque[Pending] = field(default_factory=deque)
    stack: list[ChoicePoint] = field(default_factory=list)
    conflicts: list[_Conflict] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class Resolver:
    """Backtracking constraint search over a set of source indexes.

    Args:
        indexes: Source indexes in lookup order. Requirements with an
            explicit source use the index serving that source; others try
            pinned indexes that provide the name, then every registry index
            in order.
        preferred: Specs locked by a previous resolution, keyed by name.
            Tried first whenever they still satisfy the requirement.
        prefetch: Warm registry caches concurrently before and during the
            search. Never changes the outcome.
        allow_prerelease: Consider prerelease versions even when no
            constraint names one.
    """

    def __init__(
        self,
        indexes: Sequence[SourceIndex],
        preferred: Mapping[str, Spec] | None = None,
        *,
        prefetch: bool = False,
        allow_prerelease: bool = False,
    ) -> None:
        self._indexes = list(indexes)
        self._by_source = {index.source: index for index in self._indexes}
        self._preferred = dict(preferred or {})
        self._prefetch = prefetch
        self._allow_prerelease = allow_prerelease

    @property
    def indexes(self) -> list[SourceIndex]:
        return list(self._indexes)

    def resolve(self, requirements: Iterable[Requirement]) -> ResolvedGraph:
        """Compute one consistent spec per package.

        Args:
            requirements: Top-level requirements, in manifest order.

        Returns:
            The resolved graph.

        Raises:
            UnsatisfiableRequirement: If no assignment satisfies every
                requirement. ``chain`` leads from the manifest to the
                contradiction; ``conflicts`` lists every dead end.
            SourceUnreachable: If a source failure left a requirement
                without candidates and no alternative existed.
            ValueError: If a requirement names a source with no index.
        """
        top_level = tuple(requirements)
        for req in top_level:
            if req.source is not None and req.source not in self._by_source:
                raise ValueError(f"No index for source {req.source} required by {req.name}")

        if self._prefetch:
            self._warm(req.name for req in top_level if req.source is None)

        search = _Search()
        search.queue.extend(Pending(req) for req in top_level)

        while search.queue:
            pending = search.queue.popleft()
            req = pending.requirement
            existing = search.assignment.get(req.name)
            if existing is not None:
                spec, owner = existing
                if self._accepts(req, spec):
                    continue
                self._record(
                    search,
                    f"{self._describe(search, pending)} conflicts with "
                    f"{self._describe(search, owner)}, which selected {spec.full_name}",
                    pending,
                )
                self._backtrack(search)
                continue

            candidates, unreachable = self._candidates(req)
            if not candidates:
                self._record(
                    search,
                    f"No candidate satisfies {self._describe(search, pending)}",
                    pending,
                    unreachable,
                )
                self._backtrack(search)
                continue

            search.stack.append(
                ChoicePoint(
                    pending=pending,
                    remaining=candidates[1:],
                    queue=tuple(search.queue),
                    assigned=len(search.assignment),
                )
            )
            self._assign(search, candidates[0], pending)

        specs = [spec for spec, _ in search.assignment.values()]
        logger.info("Resolved %d packages", len(specs))
        return ResolvedGraph(specs, top_level)

    # -- Search steps -------------------------------------------------------

    def _assign(self, search: _Search, spec: Spec, pending: Pending) -> None:
        logger.debug("Choosing %s for %s", spec.full_name, pending.requirement)
        search.assignment[spec.name] = (spec, pending)
        search.queue.extend(Pending(dep, spec.name) for dep in spec.dependencies)
        if self._prefetch and spec.dependencies:
            self._warm(dep.name for dep in spec.dependencies)

    def _backtrack(self, search: _Search) -> None:
        """Restore the most recent choice point with an untried candidate.

        Raises:
            UnsatisfiableRequirement: If no choice point remains.
            SourceUnreachable: If a source failure caused a dead end.
        """
        while search.stack:
            point = search.stack[-1]
            if not point.remaining:
                search.stack.pop()
                continue
            candidate = point.remaining.pop(0)
            logger.debug(
                "Backtracking to %s, trying %s",
                point.pending.requirement, candidate.full_name,
            )
            for name in list(search.assignment)[point.assigned:]:
                del search.assignment[name]
            search.queue = deque(point.queue)
            self._assign(search, candidate, point.pending)
            return
        self._fail(search)

    def _fail(self, search: _Search) -> None:
        for conflict in search.conflicts:
            if conflict.unreachable is not None:
                raise conflict.unreachable
        first = search.conflicts[0]
        messages = list(dict.fromkeys(c.message for c in search.conflicts))
        raise UnsatisfiableRequirement(
            f"Could not resolve dependencies: {first.message}",
            chain=first.chain,
            conflicts=messages,
        )

    def _record(
        self,
        search: _Search,
        message: str,
        pending: Pending,
        unreachable: SourceUnreachable | None = None,
    ) -> None:
        logger.debug("Dead end: %s", message)
        search.conflicts.append(
            _Conflict(message, self._chain(search, pending), unreachable)
        )

    # -- Candidates ---------------------------------------------------------

    def _accepts(self, req: Requirement, spec: Spec) -> bool:
        if not req.satisfied_by(spec.version):
            return False
        if req.source is not None and spec.source is not None:
            return sources_match(req.source, spec.source)
        return True

    def _lookup_order(self, req: Requirement) -> list[tuple[int, SourceIndex]]:
        if req.source is not None:
            return [(0, self._by_source[req.source])]
        for position, index in enumerate(self._indexes):
            if not index.is_pinned:
                continue
            try:
                provided = index.package_names() or []
            except SourceUnreachable:
                logger.warning("Skipping unreachable %s", index.source, exc_info=True)
                continue
            if req.name in provided:
                return [(position, index)]
        return [
            (position, index)
            for position, index in enumerate(self._indexes)
            if not index.is_pinned
        ]

    def _candidates(
        self, req: Requirement
    ) -> tuple[list[Spec], SourceUnreachable | None]:
        """Candidates for *req* in preference order, and any source failure."""
        found: list[tuple[Spec, int]] = []
        unreachable: SourceUnreachable | None = None
        for position, index in self._lookup_order(req):
            try:
                specs = index.list_versions(req.name)
            except PackageNotFound:
                continue
            except SourceUnreachable as exc:
                logger.warning("Source %s unreachable: %s", index.source, exc)
                unreachable = unreachable or exc
                continue
            if index.is_pinned:
                return [s for s in specs if self._accepts(req, s)], unreachable
            found.extend((spec, position) for spec in specs)

        matching = [
            (spec, position)
            for spec, position in found
            if self._accepts(req, spec) and self._release_ok(req, spec)
        ]
        matching.sort(key=lambda item: item[1])
        matching.sort(key=lambda item: item[0].version, reverse=True)
        candidates = [spec for spec, _ in matching]

        locked = self._preferred.get(req.name)
        if locked is not None:
            for i, spec in enumerate(candidates):
                if spec.version == locked.version and (
                    locked.source is None
                    or spec.source is None
                    or sources_match(spec.source, locked.source)
                ):
                    candidates.insert(0, candidates.pop(i))
                    break
        return candidates, unreachable

    def _release_ok(self, req: Requirement, spec: Spec) -> bool:
        if self._allow_prerelease or not spec.version.is_prerelease:
            return True
        return any(c.version.is_prerelease for c in req.constraints)

    def _warm(self, names: Iterable[str]) -> None:
        wanted = sorted(set(names))
        for index in self._indexes:
            if index.is_pinned:
                continue
            try:
                index.prefetch(wanted)
            except SourceUnreachable:
                # The same failure resurfaces from list_versions if it matters.
                logger.warning("Prefetch from %s failed", index.source, exc_info=True)

    # -- Diagnostics --------------------------------------------------------

    def _chain(self, search: _Search, pending: Pending) -> list[str]:
        """Describe the path from the manifest to *pending*, outermost first."""
        links = [self._link(search, pending)]
        seen = {pending.requirement.name}
        parent = pending.parent
        while parent is not None and parent not in seen and parent in search.assignment:
            seen.add(parent)
            _, owner = search.assignment[parent]
            links.append(self._link(search, owner))
            parent = owner.parent
        links.reverse()
        return links

    def _link(self, search: _Search, pending: Pending) -> str:
        if pending.parent is None:
            return f"manifest requires {pending.requirement}"
        parent = search.assignment.get(pending.parent)
        holder = parent[0].full_name if parent else pending.parent
        return f"{holder} depends on {pending.requirement}"

    def _describe(self, search: _Search, pending: Pending) -> str:
        return " -> ".join(self._chain(search, pending))
