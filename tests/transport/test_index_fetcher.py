"""Tests for IndexFetcher over file registries and mocked HTTP registries."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from flexlock.core.requirements import RegistrySource
from flexlock.exceptions import SourceError, SourceUnreachable
from flexlock.transport.index_fetcher import IndexFetcher
from tests.helpers import write_registry

HTTP = RegistrySource("https://registry.example.org")


def _patch_fetch_json(**kwargs):
    return patch(
        "flexlock.transport.index_fetcher.fetch_json",
        new_callable=AsyncMock,
        **kwargs,
    )


class TestFileRegistry:
    def test_reads_yaml_entries(self, rack_registry: Path) -> None:
        source = RegistrySource(f"file://{rack_registry}")
        records = IndexFetcher().fetch_sync(source, "rack-obama")
        assert records is not None
        (record,) = records
        assert record.name == "rack-obama"
        assert record.dependencies == (("rack", ()),)

    def test_unknown_name(self, rack_registry: Path) -> None:
        source = RegistrySource(f"file:{rack_registry}")
        assert IndexFetcher().fetch_sync(source, "missing") is None

    def test_missing_directory(self, tmp_path: Path) -> None:
        source = RegistrySource(f"file:{tmp_path / 'nope'}")
        with pytest.raises(SourceUnreachable, match="not found"):
            IndexFetcher().fetch_sync(source, "rack")

    def test_malformed_entry(self, tmp_path: Path) -> None:
        root = write_registry(tmp_path / "repo", {})
        (root / "rack.yaml").write_text("version: 1.0\n")
        with pytest.raises(SourceError, match="list of versions"):
            IndexFetcher().fetch_sync(RegistrySource(f"file:{root}"), "rack")


class TestHttpRegistry:
    def test_fetch_url_layout(self) -> None:
        with _patch_fetch_json(return_value=[{"version": "1.0"}]) as mock:
            records = IndexFetcher(timeout=3.0).fetch_sync(HTTP, "rack")
        assert records is not None and records[0].version == "1.0"
        assert mock.call_args.args[0] == "https://registry.example.org/specs/rack.json"
        assert mock.call_args.kwargs["timeout"] == 3.0

    def test_404_is_unknown(self) -> None:
        with _patch_fetch_json(return_value=None):
            assert IndexFetcher().fetch_sync(HTTP, "rack") is None

    def test_unreachable_propagates(self) -> None:
        with _patch_fetch_json(side_effect=SourceUnreachable("down")):
            with pytest.raises(SourceUnreachable):
                IndexFetcher().fetch_sync(HTTP, "rack")

    def test_fetch_many_keyed_by_name(self) -> None:
        async def fake(url: str, **kwargs):
            if url.endswith("missing.json"):
                return None
            return [{"version": "1.0"}]

        with _patch_fetch_json(side_effect=fake) as mock:
            results = asyncio.run(
                IndexFetcher(max_concurrency=2).fetch_many(HTTP, ["rack", "missing", "rack", "thin"])
            )
        assert sorted(results) == ["missing", "rack", "thin"]
        assert results["missing"] is None
        assert results["thin"][0].name == "thin"  # type: ignore[index]
        assert mock.await_count == 3

    def test_fetch_many_file_registry(self, rack_registry: Path) -> None:
        source = RegistrySource(f"file:{rack_registry}")
        results = asyncio.run(IndexFetcher().fetch_many(source, ["rack", "rack-obama"]))
        assert [r.version for r in results["rack"]] == ["0.9.1", "1.0.0"]  # type: ignore[union-attr]
