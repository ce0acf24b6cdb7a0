"""Fixtures for lockfile tests."""

from __future__ import annotations

import pytest

from flexlock.core.resolver import ResolvedGraph
from tests.core.lockfile import graphs


@pytest.fixture
def rack_obama_graph() -> ResolvedGraph:
    return graphs.rack_obama_graph()


@pytest.fixture
def rails_graph() -> ResolvedGraph:
    return graphs.rails_graph()


@pytest.fixture
def git_graph() -> ResolvedGraph:
    return graphs.git_graph()


@pytest.fixture
def path_graph() -> ResolvedGraph:
    return graphs.path_graph()
