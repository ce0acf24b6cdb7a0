"""Shared fixtures for CLI tests.

Projects use a ``file:`` registry and a path package so no command touches
the network or git.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from tests.cli.projects import write_manifest
from tests.helpers import write_package


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture
def project(project_dir: Path, rack_registry: Path) -> Path:
    """Project requiring rack-obama from the registry and a vendored bar."""
    write_package(project_dir / "vendor" / "bar", "bar", "0.5", {"rack": ">= 0.9"})
    write_manifest(
        project_dir,
        {
            "sources": [{"gem": f"file:{rack_registry}"}],
            "packages": {
                "rack-obama": ">= 1.0",
                "bar": {"path": "vendor/bar", "group": "test"},
            },
        },
    )
    return project_dir
