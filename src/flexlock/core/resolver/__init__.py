"""Dependency resolution: the resolved graph and the backtracking resolver.

All public names are re-exported here so that callers can write
``from flexlock.core.resolver import Resolver, ResolvedGraph``.
"""

from flexlock.core.resolver.graph import ResolvedGraph
from flexlock.core.resolver.resolver import ChoicePoint, Pending, Resolver

__all__ = [
    "ChoicePoint",
    "Pending",
    "ResolvedGraph",
    "Resolver",
]
