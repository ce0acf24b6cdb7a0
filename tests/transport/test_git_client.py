"""Tests for GitClient with subprocess.run mocked."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from flexlock.core.requirements import Pin, PinKind
from flexlock.exceptions import SourceUnreachable
from flexlock.transport.git_client import GitClient

SHA = "a1b2c3d4e5f60718293a4b5c6d7e8f9012345678"
TAG_SHA = "ffffffffffffffffffffffffffffffffffffffff"


def _completed(stdout: str = "") -> MagicMock:
    proc = MagicMock()
    proc.stdout = stdout
    return proc


@pytest.fixture
def client(tmp_path: Path) -> GitClient:
    return GitClient(tmp_path / "cache")


class TestResolveRef:
    def test_full_sha_needs_no_git(self, client: GitClient) -> None:
        with patch("subprocess.run") as run:
            assert client.resolve_ref("/src/foo", Pin(PinKind.REF, SHA)) == SHA
        run.assert_not_called()

    def test_branch_via_ls_remote(self, client: GitClient) -> None:
        with patch("subprocess.run", return_value=_completed(f"{SHA}\trefs/heads/omg\n")) as run:
            assert client.resolve_ref("/src/foo", Pin(PinKind.BRANCH, "omg")) == SHA
        args = run.call_args.args[0]
        assert args[:3] == ["git", "ls-remote", "/src/foo"]
        assert "refs/heads/omg" in args

    def test_default_branch(self, client: GitClient) -> None:
        with patch("subprocess.run", return_value=_completed(f"{SHA}\tHEAD\n")):
            assert client.resolve_ref("/src/foo", Pin.none()) == SHA

    def test_annotated_tag_prefers_peeled(self, client: GitClient) -> None:
        output = f"{SHA}\trefs/tags/v1\n{TAG_SHA}\trefs/tags/v1^{{}}\n"
        with patch("subprocess.run", return_value=_completed(output)):
            assert client.resolve_ref("/src/foo", Pin(PinKind.TAG, "v1")) == TAG_SHA

    def test_missing_branch(self, client: GitClient) -> None:
        with patch("subprocess.run", return_value=_completed("")):
            with pytest.raises(SourceUnreachable, match="Cannot resolve"):
                client.resolve_ref("/src/foo", Pin(PinKind.BRANCH, "gone"))

    def test_short_ref_uses_rev_parse(self, client: GitClient) -> None:
        with patch("subprocess.run", return_value=_completed(SHA)) as run:
            assert client.resolve_ref("/src/foo", Pin(PinKind.REF, "a1b2c3")) == SHA
        commands = [call.args[0][1] for call in run.call_args_list]
        assert commands == ["clone", "rev-parse"]


class TestRun:
    def test_git_failure(self, client: GitClient) -> None:
        error = subprocess.CalledProcessError(128, ["git"], stderr="fatal: repository not found")
        with patch("subprocess.run", side_effect=error):
            with pytest.raises(SourceUnreachable, match="repository not found"):
                client.resolve_ref("/src/gone", Pin.none())

    def test_git_missing(self, tmp_path: Path) -> None:
        client = GitClient(tmp_path, executable="no-such-git")
        with patch("subprocess.run", side_effect=FileNotFoundError()):
            with pytest.raises(SourceUnreachable, match="not found"):
                client.resolve_ref("/src/foo", Pin.none())


class TestCheckout:
    def test_clone_then_checkout(self, client: GitClient) -> None:
        with patch("subprocess.run", return_value=_completed()) as run:
            target = client.checkout("/src/foo", SHA)
        commands = [call.args[0][1] for call in run.call_args_list]
        assert commands == ["clone", "checkout"]
        assert target.parent == client.cache_dir
        assert target.name.endswith(SHA[:12])

    def test_existing_checkout_reused(self, client: GitClient) -> None:
        with patch("subprocess.run", return_value=_completed()):
            target = client.checkout("/src/foo", SHA)
        target.mkdir(parents=True)
        with patch("subprocess.run") as run:
            assert client.checkout("/src/foo", SHA) == target
        run.assert_not_called()
