"""Path index: a single package in a local directory."""

from __future__ import annotations

from pathlib import Path

from flexlock.core.requirements import PathSource, Spec
from flexlock.core.sources.base import SourceIndex
from flexlock.core.sources.package_file import PackageRecord, load_package
from flexlock.exceptions import PackageNotFound


class PathIndex(SourceIndex):
    """Serves the one package described by ``<location>/package.yaml``.

    Args:
        source: The path descriptor.
        base_dir: Directory relative locations are resolved against.
    """

    def __init__(self, source: PathSource, base_dir: Path | None = None) -> None:
        self._source = source
        location = Path(source.location)
        if not location.is_absolute() and base_dir is not None:
            location = base_dir / location
        self._directory = location
        self._record: PackageRecord | None = None

    @property
    def source(self) -> PathSource:
        return self._source

    def _load(self) -> PackageRecord:
        if self._record is None:
            self._record = load_package(self._directory)
        return self._record

    @property
    def is_pinned(self) -> bool:
        return True

    def package_names(self) -> list[str]:
        return [self._load().name]

    def list_versions(self, name: str) -> list[Spec]:
        record = self._load()
        if record.name != name:
            raise PackageNotFound(name, self._source)
        return [record.to_spec(self._source)]
