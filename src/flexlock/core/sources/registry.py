"""Registry index: specs published in a remote or file-based package index.

Records are fetched per package name through an ``IndexFetcher`` and cached
for the life of the index, so one resolution never asks the network twice
for the same name. ``prefetch`` queries many names concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Iterable

from flexlock.core.requirements import RegistrySource, Spec
from flexlock.core.sources.base import SourceIndex
from flexlock.core.sources.package_file import PackageRecord
from flexlock.exceptions import PackageNotFound

if TYPE_CHECKING:
    from flexlock.transport.index_fetcher import IndexFetcher

logger = logging.getLogger(__name__)


class RegistryIndex(SourceIndex):
    """Index of published package versions.

    Args:
        source: The registry descriptor.
        fetcher: Transport used to read index entries.
    """

    def __init__(self, source: RegistrySource, fetcher: IndexFetcher) -> None:
        self._source = source
        self._fetcher = fetcher
        self._cache: dict[str, list[Spec] | None] = {}

    @property
    def source(self) -> RegistrySource:
        return self._source

    def list_versions(self, name: str) -> list[Spec]:
        if name not in self._cache:
            records = self._fetcher.fetch_sync(self._source, name)
            self._cache[name] = self._to_specs(name, records)
        specs = self._cache[name]
        if specs is None:
            raise PackageNotFound(name, self._source)
        return list(specs)

    def prefetch(self, names: Iterable[str]) -> None:
        missing = sorted({n for n in names if n not in self._cache})
        if not missing:
            return
        logger.debug("Prefetching %d names from %s", len(missing), self._source.url)
        results = asyncio.run(self._fetcher.fetch_many(self._source, missing))
        for name in missing:
            self._cache[name] = self._to_specs(name, results.get(name))

    def _to_specs(
        self, name: str, records: list[PackageRecord] | None
    ) -> list[Spec] | None:
        if records is None:
            return None
        specs: dict[str, Spec] = {}
        for record in records:
            if record.name != name:
                logger.warning(
                    "Ignoring record %s %s listed under %s in %s",
                    record.name, record.version, name, self._source.url,
                )
                continue
            spec = record.to_spec(self._source)
            specs.setdefault(str(spec.version), spec)
        return list(specs.values())
