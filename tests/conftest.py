"""Shared fixtures for flexlock tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.helpers import write_registry


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """An empty project directory."""
    project = tmp_path / "project"
    project.mkdir()
    return project


@pytest.fixture
def rack_registry(tmp_path: Path) -> Path:
    """File registry with rack and rack-obama, as in the classic scenario."""
    return write_registry(
        tmp_path / "repo",
        {
            "rack": [{"version": "0.9.1"}, {"version": "1.0.0"}],
            "rack-obama": [{"version": "1.0", "dependencies": {"rack": None}}],
        },
    )
