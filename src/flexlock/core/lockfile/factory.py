"""Lockfile factory: constructing lockfiles from resolution results.

The ``from_graph`` function builds a ``Lockfile`` from the ``ResolvedGraph``
returned by the resolver. This is the primary entry point in the normal
workflow::

    graph = Resolver(indexes).resolve(requirements)
    lockfile = Lockfile.from_graph(graph)
    lockfile.write(Path("flexlock.lock"))
"""

from __future__ import annotations

from typing import Any

from flexlock.core.requirements import RegistrySource, Requirement, sources_match


def _from_graph(cls: type, graph: Any) -> Any:
    """Create a lockfile from a resolved graph.

    Top-level requirements pinned to a git or path source record the source
    of the spec actually chosen, so a branch-pinned repository is written
    with its resolved commit. A registry named by a requirement is not
    written inline; it joins the global sources with every other source of
    a chosen spec. Requirement options are dropped.

    Args:
        graph: A ``ResolvedGraph`` from ``Resolver.resolve``.

    Returns:
        A new ``Lockfile``.
    """
    requirements: list[Requirement] = []
    for req in graph.requirements:
        source = req.source
        chosen = graph.get(req.name)
        if isinstance(source, RegistrySource):
            source = None
        elif (
            source is not None
            and chosen is not None
            and chosen.source is not None
            and sources_match(source, chosen.source)
        ):
            source = chosen.source
        requirements.append(Requirement(req.name, req.constraints, source))

    inline = {req.source for req in requirements if req.source is not None}
    used = [
        spec.source
        for spec in graph
        if spec.source is not None and spec.source not in inline
    ]
    return cls(sources=used, dependencies=requirements, specs=list(graph))
