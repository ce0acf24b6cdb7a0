"""Lockfile codec and reconciler.

The package is split into focused submodules:

- ``lockfile``: The ``Lockfile`` value class, canonical ordering, and
  atomic disk writes.
- ``serializer``: Canonical text rendering.
- ``operations``: Parsing (``from_text``, ``read``), validation, and
  diffing.
- ``factory``: The ``from_graph`` factory for building lockfiles from a
  ``ResolvedGraph``.
- ``reconcile``: The ``Reconciler`` deciding between reusing the locked
  graph and resolving again.

All public names are re-exported here so callers can write
``from flexlock.core.lockfile import Lockfile``.
"""

from flexlock.core.lockfile.lockfile import Lockfile

# Attach operations to Lockfile as methods/classmethods
from flexlock.core.lockfile import operations as _ops
from flexlock.core.lockfile import factory as _factory

Lockfile.from_text = classmethod(_ops._from_text)
Lockfile.read = classmethod(_ops._read)
Lockfile.validate = _ops._validate
Lockfile.diff = _ops._diff
Lockfile.from_graph = classmethod(_factory._from_graph)

from flexlock.core.lockfile.reconcile import (  # noqa: E402
    STRATEGIES,
    Reconciler,
    Reconciliation,
    RequirementChanges,
)
from flexlock.core.lockfile.serializer import serialize  # noqa: E402

__all__ = [
    "Lockfile",
    "Reconciler",
    "Reconciliation",
    "RequirementChanges",
    "STRATEGIES",
    "serialize",
]
