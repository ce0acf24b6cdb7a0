"""Reconcile an existing lockfile with the current manifest.

Three outcomes, cheapest first:

- **reuse:** the manifest requirements are unchanged and nothing was
  unlocked; the locked graph is returned as-is with no resolver call.
- **conservative:** some requirements changed; every locked spec outside
  the affected set is handed to the resolver as a preferred candidate so
  unrelated packages keep their versions where constraints allow.
- **full:** the lockfile no longer agrees with the declared sources (or is
  internally inconsistent); resolve from scratch without preferences.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Sequence

from flexlock.core.requirements import (
    PinKind,
    RegistrySource,
    Requirement,
    SourceDescriptor,
    Spec,
    VersionControlSource,
    sources_match,
)
from flexlock.core.resolver.graph import ResolvedGraph
from flexlock.core.resolver.resolver import Resolver
from flexlock.core.sources import SourceIndex, VersionControlIndex
from flexlock.exceptions import ReconciliationFailed

logger = logging.getLogger(__name__)

STRATEGIES: tuple[str, ...] = ("reuse", "conservative", "full")

ResolverFactory = Callable[[Mapping[str, Spec]], Resolver]


@dataclass(frozen=True)
class RequirementChanges:
    """Top-level requirement names that differ between lockfile and manifest."""

    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    changed: tuple[str, ...] = ()

    @property
    def empty(self) -> bool:
        return not (self.added or self.removed or self.changed)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(sorted(set(self.added) | set(self.removed) | set(self.changed)))


@dataclass(frozen=True)
class Reconciliation:
    """Result of ``Reconciler.reconcile``."""

    graph: ResolvedGraph
    strategy: str
    changes: RequirementChanges


class Reconciler:
    """Compare a lockfile against manifest requirements and sources.

    Args:
        lockfile: The previously written lockfile.
        requirements: Current top-level requirements from the manifest.
        sources: Current global sources declared by the manifest.
        indexes: Source indexes for the manifest. A version-control index
            found here resolves its branch or tag so a moved pin is seen
            as a change; without one, any locked commit of the same url
            is accepted.
    """

    def __init__(
        self,
        lockfile,
        requirements: Iterable[Requirement],
        sources: Sequence[SourceDescriptor] = (),
        indexes: Iterable[SourceIndex] = (),
    ) -> None:
        self._lockfile = lockfile
        self._requirements = tuple(requirements)
        self._sources = tuple(sources)
        self._indexes = {index.source: index for index in indexes}

    @property
    def lockfile(self):
        return self._lockfile

    def _pin_matches(self, declared: SourceDescriptor, locked: SourceDescriptor) -> bool:
        if not sources_match(declared, locked):
            return False
        if not (
            isinstance(declared, VersionControlSource)
            and isinstance(locked, VersionControlSource)
            and declared.pin.kind is not PinKind.REF
        ):
            return True
        index = self._indexes.get(declared)
        if not isinstance(index, VersionControlIndex):
            return True
        return index.resolve_pin().startswith(locked.pin.value)

    def _same_requirement(self, locked: Requirement, declared: Requirement) -> bool:
        if frozenset(locked.constraints) != frozenset(declared.constraints):
            return False
        if isinstance(declared.source, RegistrySource) and locked.source is None:
            spec = self._lockfile.get_spec(declared.name)
            return spec is not None and spec.source == declared.source
        if locked.source is None or declared.source is None:
            return locked.source is None and declared.source is None
        return self._pin_matches(declared.source, locked.source)

    def changes(self) -> RequirementChanges:
        """Diff locked top-level requirements against the manifest.

        Requirements compare by name, constraint set and source, ignoring
        order and options. A symbolic version-control pin in the manifest
        matches the commit recorded for the same url, unless its index now
        resolves the pin elsewhere.

        Raises:
            SourceUnreachable: If a branch or tag cannot be resolved.
        """
        locked = {req.name: req for req in self._lockfile.dependencies}
        declared = {req.name: req for req in self._requirements}
        changed = sorted(
            name
            for name in locked.keys() & declared.keys()
            if not self._same_requirement(locked[name], declared[name])
        )
        return RequirementChanges(
            added=tuple(sorted(declared.keys() - locked.keys())),
            removed=tuple(sorted(locked.keys() - declared.keys())),
            changed=tuple(changed),
        )

    def verify(self) -> None:
        """Check the lockfile can seed a resolution.

        Raises:
            ReconciliationFailed: If a locked global source is no longer
                declared, or the locked graph is internally inconsistent.
            SourceUnreachable: If a branch or tag cannot be resolved.
        """
        declared_sources = [
            *self._sources,
            *(req.source for req in self._requirements if req.source is not None),
        ]
        for locked in self._lockfile.sources:
            if not any(self._pin_matches(declared, locked) for declared in declared_sources):
                raise ReconciliationFailed(
                    f"Locked source {locked} is no longer declared in the manifest"
                )
        errors = self._lockfile.validate()
        if errors:
            raise ReconciliationFailed(
                f"Lockfile is inconsistent: {'; '.join(errors)}"
            )

    def is_current(self) -> bool:
        """True when the lockfile can be reused without resolving."""
        if not self.changes().empty:
            return False
        try:
            self.verify()
        except ReconciliationFailed as exc:
            logger.info("Lockfile is stale: %s", exc)
            return False
        return True

    def preferred_specs(
        self, changes: RequirementChanges, unlock: Iterable[str] = ()
    ) -> dict[str, Spec]:
        """Locked specs that should stay put in a conservative resolution.

        Excludes every spec reachable from a changed or unlocked name in the
        old graph, and the added names themselves.
        """
        graph = self._lockfile.to_graph()
        affected = graph.transitive_closure([*changes.changed, *unlock])
        affected.update(changes.added)
        return {
            spec.name: spec
            for spec in self._lockfile.specs
            if spec.name not in affected
        }

    def reconcile(
        self, make_resolver: ResolverFactory, unlock: Iterable[str] = ()
    ) -> Reconciliation:
        """Produce a graph for the current manifest, reusing what is locked.

        Args:
            make_resolver: Builds a ``Resolver`` given preferred specs.
            unlock: Names whose locked versions must be re-resolved (e.g.
                ``flexlock lock --update NAME``).

        Raises:
            UnsatisfiableRequirement: If the manifest cannot be resolved.
            SourceUnreachable: If a required source cannot be reached.
        """
        unlock = tuple(unlock)
        changes = self.changes()
        try:
            self.verify()
        except ReconciliationFailed as exc:
            logger.warning("Discarding lockfile: %s", exc)
            graph = make_resolver({}).resolve(self._requirements)
            return Reconciliation(graph, "full", changes)

        if changes.empty and not unlock:
            logger.info("Lockfile is current; reusing %d specs", len(self._lockfile.specs))
            graph = ResolvedGraph(self._lockfile.specs, self._requirements)
            return Reconciliation(graph, "reuse", changes)

        preferred = self.preferred_specs(changes, unlock)
        logger.info(
            "Re-resolving %s; keeping %d locked specs as preferred",
            ", ".join(changes.names + unlock) or "nothing",
            len(preferred),
        )
        graph = make_resolver(preferred).resolve(self._requirements)
        return Reconciliation(graph, "conservative", changes)
