"""Source indexes: per-kind enumeration of available specs.

All public names are re-exported here so that callers can write
``from flexlock.core.sources import RegistryIndex``.
"""

from flexlock.core.sources.base import SourceIndex
from flexlock.core.sources.factory import build_indexes, index_for
from flexlock.core.sources.package_file import (
    PACKAGE_FILE_NAME,
    PackageRecord,
    load_package,
    record_from_mapping,
)
from flexlock.core.sources.path import PathIndex
from flexlock.core.sources.registry import RegistryIndex
from flexlock.core.sources.vcs import (
    ABBREVIATED_REF_WIDTH,
    VersionControlIndex,
    abbreviate_ref,
)

__all__ = [
    "ABBREVIATED_REF_WIDTH",
    "PACKAGE_FILE_NAME",
    "PackageRecord",
    "PathIndex",
    "RegistryIndex",
    "SourceIndex",
    "VersionControlIndex",
    "abbreviate_ref",
    "build_indexes",
    "index_for",
    "load_package",
    "record_from_mapping",
]
