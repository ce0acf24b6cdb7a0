"""Registry index fetching.

A registry index publishes, for each package name, the list of released
versions and their dependencies. Two layouts are understood:

- ``file:`` URLs: a directory holding ``<name>.yaml`` files, each a list of
  ``{version, dependencies}`` mappings.
- ``http(s)`` URLs: ``<url>specs/<name>.json`` returning the same list as
  JSON.

A missing file or a 404 means the registry does not know the package.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Iterable

import httpx
import yaml

from flexlock.config import DEFAULT_HTTP_TIMEOUT, DEFAULT_MAX_CONCURRENCY
from flexlock.core.requirements import RegistrySource
from flexlock.core.sources.package_file import PackageRecord, record_from_mapping
from flexlock.exceptions import SourceError, SourceUnreachable
from flexlock.transport.http_client import USER_AGENT, fetch_json

logger = logging.getLogger(__name__)


def _records(raw: Any, name: str, where: str) -> list[PackageRecord]:
    if not isinstance(raw, list):
        raise SourceError(f"{where}: index entry must be a list of versions")
    return [record_from_mapping(entry, where, name=name) for entry in raw]


class IndexFetcher:
    """Fetches decoded package records from registry indexes.

    Args:
        timeout: HTTP timeout in seconds.
        max_concurrency: Bound on concurrent requests in ``fetch_many``.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        self.timeout = timeout
        self.max_concurrency = max_concurrency

    async def fetch(
        self,
        source: RegistrySource,
        name: str,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> list[PackageRecord] | None:
        """Return every published record for *name*, or None if unknown.

        Raises:
            SourceUnreachable: If the index cannot be read.
        """
        if source.url.startswith("file:"):
            return self._fetch_file(source, name)
        url = f"{source.url}specs/{name}.json"
        raw = await fetch_json(url, client=client, timeout=self.timeout)
        if raw is None:
            return None
        return _records(raw, name, url)

    async def fetch_many(
        self, source: RegistrySource, names: Iterable[str]
    ) -> dict[str, list[PackageRecord] | None]:
        """Fetch several names concurrently.

        Results are keyed by name, so completion order never affects the
        returned mapping.
        """
        unique = sorted(set(names))
        semaphore = asyncio.Semaphore(self.max_concurrency)
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        ) as client:

            async def _one(pkg: str) -> list[PackageRecord] | None:
                async with semaphore:
                    return await self.fetch(source, pkg, client=client)

            results = await asyncio.gather(*(_one(n) for n in unique))
        return dict(zip(unique, results))

    def fetch_sync(self, source: RegistrySource, name: str) -> list[PackageRecord] | None:
        """Blocking wrapper around ``fetch``."""
        return asyncio.run(self.fetch(source, name))

    @staticmethod
    def _fetch_file(source: RegistrySource, name: str) -> list[PackageRecord] | None:
        root = Path(source.url[len("file:"):])
        if not root.is_dir():
            raise SourceUnreachable(f"Registry directory not found: {root}")
        entry = root / f"{name}.yaml"
        if not entry.exists():
            logger.debug("No index entry for %s in %s", name, root)
            return None
        try:
            raw = yaml.safe_load(entry.read_text(encoding="utf-8"))
        except OSError as exc:
            raise SourceUnreachable(f"Cannot read {entry}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise SourceError(f"{entry}: invalid YAML: {exc}") from exc
        return _records(raw, name, str(entry))
