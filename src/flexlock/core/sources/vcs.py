"""Version-control index: packages found in a repository at a pinned commit.

The symbolic pin (branch, tag, or default branch) is resolved once per index
to a full commit id, which becomes the spec's source. Lockfiles display refs
abbreviated by ``abbreviate_ref``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from flexlock.core.requirements import Spec, VersionControlSource
from flexlock.core.sources.base import SourceIndex
from flexlock.core.sources.package_file import (
    PACKAGE_FILE_NAME,
    PackageRecord,
    load_package,
)
from flexlock.exceptions import PackageNotFound, SourceUnreachable

if TYPE_CHECKING:
    from flexlock.transport.git_client import GitClient

logger = logging.getLogger(__name__)

ABBREVIATED_REF_WIDTH: int = 6


def abbreviate_ref(
    ref: str, others: Iterable[str] = (), width: int = ABBREVIATED_REF_WIDTH
) -> str:
    """Shorten *ref* for display.

    The prefix is *width* characters long unless another distinct ref in
    *others* shares it, in which case it grows until it is unique.

    Example::

        abbreviate_ref("a1b2c3d4e5")                    # "a1b2c3"
        abbreviate_ref("a1b2c3d4e5", ["a1b2c3ffff"])    # "a1b2c3d"
    """
    rivals = [o for o in others if o != ref]
    length = min(width, len(ref))
    while length < len(ref) and any(o[:length] == ref[:length] for o in rivals):
        length += 1
    return ref[:length]


class VersionControlIndex(SourceIndex):
    """Serves the packages stored in a repository at one commit.

    Packages are discovered from ``package.yaml`` at the repository root and
    in its immediate subdirectories.

    Args:
        source: The version-control descriptor as declared.
        git: Client providing ref resolution and checkouts.
    """

    def __init__(self, source: VersionControlSource, git: GitClient) -> None:
        self._source = source
        self._git = git
        self._ref: str | None = None
        self._records: dict[str, PackageRecord] | None = None

    @property
    def source(self) -> VersionControlSource:
        return self._source

    def resolve_pin(self) -> str:
        if self._ref is None:
            self._ref = self._git.resolve_ref(self._source.url, self._source.pin)
            logger.info("Resolved %s to %s", self._source, self._ref)
        return self._ref

    def locked_source(self) -> VersionControlSource:
        return self._source.with_ref(self.resolve_pin())

    @property
    def is_pinned(self) -> bool:
        return True

    def package_names(self) -> list[str]:
        return sorted(self._load())

    def list_versions(self, name: str) -> list[Spec]:
        records = self._load()
        if name not in records:
            raise PackageNotFound(name, self._source)
        return [records[name].to_spec(self.locked_source())]

    def _load(self) -> dict[str, PackageRecord]:
        if self._records is not None:
            return self._records
        checkout = self._git.checkout(self._source.url, self.resolve_pin())
        candidates = [checkout]
        candidates.extend(sorted(p for p in checkout.iterdir() if p.is_dir()))
        records: dict[str, PackageRecord] = {}
        for directory in candidates:
            if not (directory / PACKAGE_FILE_NAME).is_file():
                continue
            record = load_package(directory)
            records.setdefault(record.name, record)
        if not records:
            raise SourceUnreachable(
                f"No {PACKAGE_FILE_NAME} found in {self._source.url} at {self._ref}"
            )
        self._records = records
        return records
