"""Tests for ``flexlock lock``.

Verifies:
    - A fresh project gets the canonical lockfile (exit code 0).
    - Re-locking reuses locked versions; ``--update`` re-resolves one name.
    - Conflicts exit with code 1 and explain the requirement chain.
    - Missing or invalid manifests and corrupt lockfiles exit with code 2.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from flexlock.cli.main import cli
from tests.cli.projects import expected_lockfile, write_manifest
from tests.helpers import write_package, write_registry


def _add_rack_release(registry: Path, version: str) -> None:
    entry = registry / "rack.yaml"
    versions = yaml.safe_load(entry.read_text())
    versions.append({"version": version})
    entry.write_text(yaml.safe_dump(versions))


class TestLockFresh:
    def test_writes_canonical_lockfile(
        self, runner: CliRunner, project: Path, rack_registry: Path
    ) -> None:
        result = runner.invoke(cli, ["lock", str(project)])
        assert result.exit_code == 0, result.output
        text = (project / "flexlock.lock").read_text()
        assert text == expected_lockfile(rack_registry)

    def test_prints_summary(self, runner: CliRunner, project: Path) -> None:
        result = runner.invoke(cli, ["lock", str(project)])
        assert "Resolution successful" in result.output
        assert "rack-obama" in result.output
        assert "Lockfile written to" in result.output

    def test_defaults_to_current_directory(
        self, runner: CliRunner, project: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(project)
        result = runner.invoke(cli, ["lock"])
        assert result.exit_code == 0, result.output
        assert (project / "flexlock.lock").exists()

    def test_lockfile_name_from_environment(self, runner: CliRunner, project: Path) -> None:
        result = runner.invoke(
            cli, ["lock", str(project)], env={"FLEXLOCK_LOCKFILE": "deps.lock"}
        )
        assert result.exit_code == 0, result.output
        assert (project / "deps.lock").exists()
        assert not (project / "flexlock.lock").exists()


class TestRelock:
    def test_keeps_locked_versions(
        self, runner: CliRunner, project: Path, rack_registry: Path
    ) -> None:
        runner.invoke(cli, ["lock", str(project)])
        _add_rack_release(rack_registry, "1.1.0")
        result = runner.invoke(cli, ["lock", str(project)])
        assert result.exit_code == 0, result.output
        assert "reuse" in result.output
        assert (project / "flexlock.lock").read_text() == expected_lockfile(rack_registry)

    def test_update_unlocks_one_package(
        self, runner: CliRunner, project: Path, rack_registry: Path
    ) -> None:
        runner.invoke(cli, ["lock", str(project)])
        _add_rack_release(rack_registry, "1.1.0")
        result = runner.invoke(cli, ["lock", str(project), "--update", "rack"])
        assert result.exit_code == 0, result.output
        assert "conservative" in result.output
        text = (project / "flexlock.lock").read_text()
        assert text == expected_lockfile(rack_registry, rack="1.1.0")

    def test_changed_requirement_reresolves(
        self, runner: CliRunner, project: Path, rack_registry: Path
    ) -> None:
        runner.invoke(cli, ["lock", str(project)])
        write_manifest(
            project,
            {
                "sources": [{"gem": f"file:{rack_registry}"}],
                "packages": {"rack-obama": ">= 1.0", "rack": "< 1.0"},
            },
        )
        result = runner.invoke(cli, ["lock", str(project)])
        assert result.exit_code == 0, result.output
        text = (project / "flexlock.lock").read_text()
        assert "  rack (0.9.1)\n" in text
        assert "bar" not in text

    def test_several_registries_relock_unchanged(
        self, runner: CliRunner, project_dir: Path, tmp_path: Path
    ) -> None:
        main = write_registry(
            tmp_path / "main",
            {
                "rack": [{"version": "1.0.0"}],
                "thin": [{"version": "1.0", "dependencies": {"rack": None}}],
            },
        )
        mirror = write_registry(
            tmp_path / "mirror",
            {"rack-obama": [{"version": "1.0", "dependencies": {"rack": None}}]},
        )
        write_manifest(
            project_dir,
            {
                "sources": [{"gem": f"file:{main}"}, {"gem": f"file:{mirror}"}],
                "packages": {"rack-obama": ">= 1.0", "thin": ">= 1.0"},
            },
        )
        runner.invoke(cli, ["lock", str(project_dir)])
        first = (project_dir / "flexlock.lock").read_text()
        assert f"  rack-obama (1.0):\n    gem: file:{mirror}/\n    rack\n" in first
        assert f"  thin (1.0):\n    gem: file:{main}/\n    rack\n" in first

        result = runner.invoke(cli, ["lock", str(project_dir)])
        assert result.exit_code == 0, result.output
        assert "reuse" in result.output
        assert (project_dir / "flexlock.lock").read_text() == first


class TestLockFailures:
    def test_conflict_exits_1(
        self, runner: CliRunner, project: Path, rack_registry: Path
    ) -> None:
        write_package(project / "vendor" / "bar", "bar", "0.5", {"rack": ">= 2.0"})
        result = runner.invoke(cli, ["lock", str(project)])
        assert result.exit_code == 1
        assert "Resolution failed" in result.output
        assert "Requirement chain" in result.output
        assert not (project / "flexlock.lock").exists()

    def test_unreachable_registry_exits_1(
        self, runner: CliRunner, project_dir: Path, tmp_path: Path
    ) -> None:
        write_manifest(
            project_dir,
            {
                "sources": [{"gem": f"file:{tmp_path / 'missing'}"}],
                "packages": {"rack": None},
            },
        )
        result = runner.invoke(cli, ["lock", str(project_dir)])
        assert result.exit_code == 1
        assert "Resolution failed" in result.output

    def test_missing_manifest_exits_2(self, runner: CliRunner, project_dir: Path) -> None:
        result = runner.invoke(cli, ["lock", str(project_dir)])
        assert result.exit_code == 2
        assert "Cannot read manifest" in result.output

    def test_invalid_manifest_exits_2(self, runner: CliRunner, project_dir: Path) -> None:
        write_manifest(project_dir, {"packages": {"rack": ">>> 1"}})
        result = runner.invoke(cli, ["lock", str(project_dir)])
        assert result.exit_code == 2
        assert "packages.rack" in result.output

    def test_corrupt_lockfile_exits_2(self, runner: CliRunner, project: Path) -> None:
        (project / "flexlock.lock").write_text("specs:\n\track (1.0)\n")
        result = runner.invoke(cli, ["lock", str(project)])
        assert result.exit_code == 2
        assert (project / "flexlock.lock").read_text() == "specs:\n\track (1.0)\n"
