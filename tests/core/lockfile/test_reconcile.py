"""Tests for reconciling a lockfile with the current manifest."""

from __future__ import annotations

import logging
from typing import Mapping

import pytest

from flexlock.core.lockfile import Lockfile, Reconciler, RequirementChanges
from flexlock.core.requirements import (
    Pin,
    PinKind,
    Spec,
    VersionControlSource,
)
from flexlock.core.resolver import ResolvedGraph, Resolver
from flexlock.core.sources import SourceIndex, VersionControlIndex
from flexlock.exceptions import ReconciliationFailed
from tests.core.lockfile.graphs import GIT_URL, REPO, SHA
from tests.helpers import MIRROR, REGISTRY, FakeGit, make_spec, registry_index, req

PACKAGES = {
    "actionpack": [{"version": "2.3.2", "dependencies": {"activesupport": "= 2.3.2"}}],
    "activesupport": [{"version": "2.3.2"}],
    "rack": [{"version": "0.9.1"}, {"version": "1.0.0"}, {"version": "1.1.0"}],
    "rack-obama": [{"version": "1.0", "dependencies": {"rack": None}}],
    "thin": [{"version": "1.0", "dependencies": {"rack": None}}],
}

MANIFEST = [req("thin"), req("actionpack"), req("rack-obama")]


class _Factory:
    """Records the preferred specs each resolver is built with."""

    def __init__(self, indexes: list[SourceIndex]) -> None:
        self.indexes = indexes
        self.calls: list[dict[str, Spec]] = []

    def __call__(self, preferred: Mapping[str, Spec]) -> Resolver:
        self.calls.append(dict(preferred))
        return Resolver(self.indexes, preferred)


@pytest.fixture
def locked(rails_graph: ResolvedGraph) -> Lockfile:
    """Lockfile written when rack 1.0.0 was the newest release."""
    return Lockfile.from_text(Lockfile.from_graph(rails_graph).to_text())


@pytest.fixture
def factory() -> _Factory:
    return _Factory([registry_index(PACKAGES, source=REPO)])


class TestChanges:
    def test_unchanged_ignores_order(self, locked: Lockfile) -> None:
        changes = Reconciler(locked, list(reversed(MANIFEST)), [REPO]).changes()
        assert changes.empty
        assert changes.names == ()

    def test_added_removed_changed(self, locked: Lockfile) -> None:
        manifest = [req("thin", ">= 1.0"), req("actionpack"), req("rack")]
        changes = Reconciler(locked, manifest, [REPO]).changes()
        assert changes == RequirementChanges(
            added=("rack",), removed=("rack-obama",), changed=("thin",)
        )
        assert changes.names == ("rack", "rack-obama", "thin")

    def test_options_ignored(self, locked: Lockfile) -> None:
        manifest = [req("thin", group="web"), req("actionpack", require=False), req("rack-obama")]
        assert Reconciler(locked, manifest, [REPO]).changes().empty

    def test_branch_pin_matches_locked_ref(self, git_graph: ResolvedGraph) -> None:
        lockfile = Lockfile.from_text(Lockfile.from_graph(git_graph).to_text())
        declared = VersionControlSource(GIT_URL, Pin(PinKind.BRANCH, "omg"))
        assert Reconciler(lockfile, [req("foo", source=declared)]).is_current()

    def test_moved_repository_is_a_change(self, git_graph: ResolvedGraph) -> None:
        lockfile = Lockfile.from_graph(git_graph)
        moved = VersionControlSource("/elsewhere/foo", Pin(PinKind.BRANCH, "omg"))
        changes = Reconciler(lockfile, [req("foo", source=moved)]).changes()
        assert changes.changed == ("foo",)

    def test_constraint_order_ignored(self) -> None:
        lockfile = Lockfile(
            dependencies=[req("thin", ">= 1.0", "< 2")], specs=[make_spec("thin", "1.0")]
        )
        assert Reconciler(lockfile, [req("thin", "< 2", ">= 1.0")]).changes().empty

    def test_moved_branch_is_a_change(self, git_graph: ResolvedGraph) -> None:
        lockfile = Lockfile.from_text(Lockfile.from_graph(git_graph).to_text())
        declared = VersionControlSource(GIT_URL, Pin(PinKind.BRANCH, "main"))
        git = FakeGit({}, {(GIT_URL, "omg"): SHA, (GIT_URL, "main"): "b" * 40})
        reconciler = Reconciler(
            lockfile, [req("foo", source=declared)], indexes=[VersionControlIndex(declared, git)]
        )
        assert reconciler.changes().changed == ("foo",)
        assert not reconciler.is_current()

    def test_same_branch_resolved_to_locked_ref(self, git_graph: ResolvedGraph) -> None:
        lockfile = Lockfile.from_text(Lockfile.from_graph(git_graph).to_text())
        declared = VersionControlSource(GIT_URL, Pin(PinKind.BRANCH, "omg"))
        git = FakeGit({}, {(GIT_URL, "omg"): SHA, (GIT_URL, "main"): "b" * 40})
        reconciler = Reconciler(
            lockfile, [req("foo", source=declared)], indexes=[VersionControlIndex(declared, git)]
        )
        assert reconciler.is_current()
        assert [pin.value for _, pin in git.resolved] == ["omg"]

    def test_explicit_registry_matches_spec_source(self) -> None:
        graph = ResolvedGraph(
            [make_spec("rack", "1.0.0"), make_spec("rack-obama", "1.0", {"rack": None}, MIRROR)],
            [req("rack-obama", source=MIRROR)],
        )
        lockfile = Lockfile.from_text(Lockfile.from_graph(graph).to_text())
        assert Reconciler(lockfile, [req("rack-obama", source=MIRROR)], [REGISTRY]).is_current()
        moved = Reconciler(lockfile, [req("rack-obama", source=REGISTRY)], [REGISTRY])
        assert moved.changes().changed == ("rack-obama",)


class TestVerify:
    def test_current(self, locked: Lockfile) -> None:
        assert Reconciler(locked, MANIFEST, [REPO]).is_current()

    def test_undeclared_source(self, locked: Lockfile) -> None:
        reconciler = Reconciler(locked, MANIFEST, [MIRROR])
        with pytest.raises(ReconciliationFailed, match="no longer declared"):
            reconciler.verify()
        assert not reconciler.is_current()

    def test_inconsistent_lockfile(self) -> None:
        lockfile = Lockfile(dependencies=[req("rack", ">= 2")], specs=[make_spec("rack", "1.0")])
        with pytest.raises(ReconciliationFailed, match="inconsistent"):
            Reconciler(lockfile, [req("rack", ">= 2")]).verify()


class TestReconcile:
    def test_reuse_skips_resolver(self, locked: Lockfile, factory: _Factory) -> None:
        result = Reconciler(locked, MANIFEST, [REPO]).reconcile(factory)
        assert result.strategy == "reuse"
        assert factory.calls == []
        assert result.graph.versions()["rack"] == "1.0.0"
        assert Lockfile.from_graph(result.graph).to_text() == locked.to_text()

    def test_added_requirement_keeps_locked_versions(
        self, locked: Lockfile, factory: _Factory
    ) -> None:
        manifest = [*MANIFEST, req("activesupport")]
        result = Reconciler(locked, manifest, [REPO]).reconcile(factory)
        assert result.strategy == "conservative"
        assert result.changes.added == ("activesupport",)
        assert result.graph.versions()["rack"] == "1.0.0"
        assert "activesupport" not in factory.calls[0]

    def test_unlock_updates_named_package(self, locked: Lockfile, factory: _Factory) -> None:
        result = Reconciler(locked, MANIFEST, [REPO]).reconcile(factory, unlock=["rack"])
        assert result.strategy == "conservative"
        assert result.graph.versions()["rack"] == "1.1.0"
        assert set(factory.calls[0]) == {"actionpack", "activesupport", "rack-obama", "thin"}

    def test_changed_requirement_releases_its_closure(
        self, locked: Lockfile, factory: _Factory
    ) -> None:
        manifest = [req("thin", ">= 1.0"), req("actionpack"), req("rack-obama")]
        reconciler = Reconciler(locked, manifest, [REPO])
        preferred = reconciler.preferred_specs(reconciler.changes())
        assert set(preferred) == {"actionpack", "activesupport", "rack-obama"}
        result = reconciler.reconcile(factory)
        assert result.graph.versions()["rack"] == "1.1.0"

    def test_removed_requirement_dropped(self, locked: Lockfile, factory: _Factory) -> None:
        manifest = [req("actionpack")]
        result = Reconciler(locked, manifest, [REPO]).reconcile(factory)
        assert result.strategy == "conservative"
        assert result.graph.names == ["actionpack", "activesupport"]

    def test_undeclared_source_falls_back_to_full(
        self, locked: Lockfile, caplog: pytest.LogCaptureFixture
    ) -> None:
        factory = _Factory([registry_index(PACKAGES, source=MIRROR)])
        with caplog.at_level(logging.WARNING):
            result = Reconciler(locked, MANIFEST, [MIRROR]).reconcile(factory)
        assert result.strategy == "full"
        assert factory.calls == [{}]
        assert result.graph["rack"].source == MIRROR
        assert result.graph.versions()["rack"] == "1.1.0"
        assert "Discarding lockfile" in caplog.text

    def test_repeated_reconcile_is_stable(self, locked: Lockfile, factory: _Factory) -> None:
        manifest = [*MANIFEST, req("activesupport")]
        first = Reconciler(locked, manifest, [REPO]).reconcile(factory)
        relocked = Lockfile.from_graph(first.graph)
        second = Reconciler(relocked, manifest, [REPO]).reconcile(factory)
        assert second.strategy == "reuse"
        assert Lockfile.from_graph(second.graph).to_text() == relocked.to_text()
