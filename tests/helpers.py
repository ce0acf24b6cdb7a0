"""Shared test helpers: spec factories and in-memory transports."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

import yaml

from flexlock.core.requirements import (
    Pin,
    PinKind,
    RegistrySource,
    Requirement,
    SourceDescriptor,
    Spec,
)
from flexlock.core.sources import RegistryIndex
from flexlock.core.sources.package_file import PackageRecord, record_from_mapping
from flexlock.exceptions import SourceUnreachable

REGISTRY = RegistrySource("https://registry.example.org/")
MIRROR = RegistrySource("https://mirror.example.org/")


def req(name: str, *constraints: str, source: SourceDescriptor | None = None, **options: Any) -> Requirement:
    """Shorthand for ``Requirement.parse``."""
    return Requirement.parse(name, *constraints, source=source, **options)


def make_spec(
    name: str,
    version: str,
    deps: dict[str, str | list[str] | None] | None = None,
    source: SourceDescriptor | None = REGISTRY,
) -> Spec:
    """Convenience factory for Spec instances."""
    requirements = []
    for dep, texts in (deps or {}).items():
        if texts is None:
            texts = []
        elif isinstance(texts, str):
            texts = [texts]
        requirements.append(Requirement.parse(dep, *texts))
    return Spec(name, version, source, tuple(requirements))


class FakeFetcher:
    """Stand-in for ``IndexFetcher`` serving records from a dict.

    Args:
        packages: name -> list of ``{version, dependencies}`` mappings.
        unreachable: Names whose lookup raises ``SourceUnreachable``.
    """

    def __init__(
        self,
        packages: dict[str, list[dict[str, Any]]],
        unreachable: Iterable[str] = (),
    ) -> None:
        self.packages = packages
        self.unreachable = set(unreachable)
        self.calls: list[str] = []
        self.batches: list[list[str]] = []

    def _records(self, name: str) -> list[PackageRecord] | None:
        if name in self.unreachable:
            raise SourceUnreachable(f"registry down while fetching {name}")
        entries = self.packages.get(name)
        if entries is None:
            return None
        return [record_from_mapping(e, "fake", name=name) for e in entries]

    def fetch_sync(self, source: RegistrySource, name: str) -> list[PackageRecord] | None:
        self.calls.append(name)
        return self._records(name)

    async def fetch_many(
        self, source: RegistrySource, names: Iterable[str]
    ) -> dict[str, list[PackageRecord] | None]:
        batch = sorted(set(names))
        self.batches.append(batch)
        return {name: self._records(name) for name in batch}


def registry_index(
    packages: dict[str, list[dict[str, Any]]],
    source: RegistrySource = REGISTRY,
    **kwargs: Any,
) -> RegistryIndex:
    """RegistryIndex over an in-memory package table."""
    return RegistryIndex(source, FakeFetcher(packages, **kwargs))  # type: ignore[arg-type]


def write_package(
    directory: Path,
    name: str,
    version: str,
    dependencies: dict[str, Any] | None = None,
) -> Path:
    """Write ``package.yaml`` into *directory* (created if needed)."""
    directory.mkdir(parents=True, exist_ok=True)
    data: dict[str, Any] = {"name": name, "version": version}
    if dependencies:
        data["dependencies"] = dependencies
    (directory / "package.yaml").write_text(yaml.safe_dump(data), encoding="utf-8")
    return directory


def write_registry(directory: Path, packages: dict[str, list[dict[str, Any]]]) -> Path:
    """Write a file-based registry: one ``<name>.yaml`` per package."""
    directory.mkdir(parents=True, exist_ok=True)
    for name, entries in packages.items():
        (directory / f"{name}.yaml").write_text(yaml.safe_dump(entries), encoding="utf-8")
    return directory


class FakeGit:
    """Stand-in for ``GitClient`` backed by plain directories.

    Args:
        repos: url -> directory holding the repository tree.
        refs: ``(url, pin value)`` -> full commit id. The empty pin value
            stands for the default branch.
    """

    def __init__(self, repos: dict[str, Path], refs: dict[tuple[str, str], str]) -> None:
        self.repos = repos
        self.refs = refs
        self.resolved: list[tuple[str, Pin]] = []
        self.checkouts: list[tuple[str, str]] = []

    def resolve_ref(self, url: str, pin: Pin) -> str:
        self.resolved.append((url, pin))
        if pin.kind is PinKind.REF:
            for (ref_url, _), full in self.refs.items():
                if ref_url == url and full.startswith(pin.value):
                    return full
        key = (url, pin.value)
        if key not in self.refs:
            raise SourceUnreachable(f"Cannot resolve {pin} in {url}")
        return self.refs[key]

    def checkout(self, url: str, ref: str) -> Path:
        self.checkouts.append((url, ref))
        if url not in self.repos:
            raise SourceUnreachable(f"Cannot clone {url}")
        return self.repos[url]
