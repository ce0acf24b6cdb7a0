"""Resolved dependency graph and graph algorithms.

A ``ResolvedGraph`` maps each package name to exactly one chosen ``Spec`` and
keeps the top-level requirements that produced it. It is a value object:
built once by the resolver or from a lockfile, never mutated afterwards.

Dependency cycles between chosen specs are legal; every traversal here keeps
a visited set so cycles cannot cause non-termination.
"""

from __future__ import annotations

from collections import deque
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from flexlock.core.requirements import Requirement, Spec, sources_match


class ResolvedGraph:
    """One chosen spec per package name, plus the top-level requirements.

    Args:
        specs: The chosen specs, either as a name-keyed mapping or as an
            iterable of specs.
        requirements: Top-level requirements, in manifest order.

    Raises:
        ValueError: If two specs share a name.
    """

    def __init__(
        self,
        specs: Mapping[str, Spec] | Iterable[Spec],
        requirements: Iterable[Requirement] = (),
    ) -> None:
        items = list(specs.values()) if isinstance(specs, Mapping) else list(specs)
        chosen: dict[str, Spec] = {}
        for spec in sorted(items, key=lambda s: s.name):
            if spec.name in chosen:
                raise ValueError(
                    f"Package {spec.name!r} chosen twice: "
                    f"{chosen[spec.name].version} and {spec.version}"
                )
            chosen[spec.name] = spec
        self._specs = MappingProxyType(chosen)
        self._requirements = tuple(requirements)

    # -- Access -------------------------------------------------------------

    @property
    def specs(self) -> Mapping[str, Spec]:
        """Read-only name -> Spec mapping, in name order."""
        return self._specs

    @property
    def requirements(self) -> tuple[Requirement, ...]:
        """Top-level requirements, in manifest order."""
        return self._requirements

    @property
    def names(self) -> list[str]:
        """Sorted list of chosen package names."""
        return list(self._specs)

    def get(self, name: str) -> Spec | None:
        return self._specs.get(name)

    def versions(self) -> dict[str, str]:
        """Return a name -> version text mapping."""
        return {name: str(spec.version) for name, spec in self._specs.items()}

    def __getitem__(self, name: str) -> Spec:
        return self._specs[name]

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __iter__(self) -> Iterator[Spec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)

    # -- Traversals ---------------------------------------------------------

    def dependents_of(self, name: str) -> list[str]:
        """Names of chosen specs that declare a dependency on *name*."""
        return [
            spec.name
            for spec in self._specs.values()
            if any(dep.name == name for dep in spec.dependencies)
        ]

    def transitive_closure(self, names: Iterable[str]) -> set[str]:
        """Names reachable from *names* over dependency edges, inclusive.

        Uses BFS; names absent from the graph are kept in the result but not
        expanded.
        """
        seen: set[str] = set()
        queue: deque[str] = deque(names)
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            spec = self._specs.get(current)
            if spec is None:
                continue
            for dep in spec.dependencies:
                if dep.name not in seen:
                    queue.append(dep.name)
        return seen

    def install_order(self) -> list[Spec]:
        """Return specs with dependencies before their dependents.

        Iterative DFS in name order; a cycle is broken at the edge that
        closes it, so the order is total and deterministic.
        """
        WHITE, GRAY, BLACK = 0, 1, 2
        color: dict[str, int] = {name: WHITE for name in self._specs}
        order: list[Spec] = []

        for root in self._specs:
            if color[root] != WHITE:
                continue
            stack: list[tuple[str, Iterator[Requirement]]] = [
                (root, iter(self._specs[root].dependencies))
            ]
            color[root] = GRAY
            while stack:
                name, deps = stack[-1]
                advanced = False
                for dep in deps:
                    if color.get(dep.name, BLACK) == WHITE:
                        color[dep.name] = GRAY
                        stack.append((dep.name, iter(self._specs[dep.name].dependencies)))
                        advanced = True
                        break
                if not advanced:
                    stack.pop()
                    color[name] = BLACK
                    order.append(self._specs[name])
        return order

    # -- Validation ---------------------------------------------------------

    def validate(self) -> list[str]:
        """Check the graph invariants.

        1. **Top-level satisfaction:** every top-level requirement names a
           chosen spec whose version (and source, if given) satisfies it.
        2. **No dangling edges:** every dependency of every chosen spec is
           chosen and satisfied.

        Returns:
            List of violation messages. Empty means the graph is consistent.
        """
        errors: list[str] = []
        for req in self._requirements:
            errors.extend(self._check(req, "manifest"))
        for spec in self._specs.values():
            for dep in spec.dependencies:
                errors.extend(self._check(dep, spec.full_name))
        return errors

    def _check(self, req: Requirement, origin: str) -> list[str]:
        chosen = self._specs.get(req.name)
        if chosen is None:
            return [f"{origin} requires {req} which is not in the graph"]
        if not req.satisfied_by(chosen.version):
            return [f"{origin} requires {req} but {chosen.full_name} was chosen"]
        if (
            req.source is not None
            and chosen.source is not None
            and not sources_match(req.source, chosen.source)
        ):
            return [f"{origin} requires {req} from {req.source} but got {chosen.source}"]
        return []

    # -- Equality -----------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResolvedGraph):
            return NotImplemented
        return dict(self._specs) == dict(other._specs) and sorted(
            self._requirements, key=lambda r: r.name
        ) == sorted(other._requirements, key=lambda r: r.name)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        inner = ", ".join(spec.full_name for spec in self._specs.values())
        return f"ResolvedGraph([{inner}])"
