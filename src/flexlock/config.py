"""Runtime configuration.

Defaults can be overridden through ``FLEXLOCK_*`` environment variables:

- ``FLEXLOCK_MANIFEST``: manifest file name (default ``flexlock.yaml``).
- ``FLEXLOCK_LOCKFILE``: lockfile name (default ``flexlock.lock``).
- ``FLEXLOCK_HTTP_TIMEOUT``: registry request timeout in seconds.
- ``FLEXLOCK_MAX_CONCURRENCY``: parallel registry queries during prefetch.
- ``FLEXLOCK_GIT_CACHE``: directory holding repository checkouts.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from flexlock.exceptions import FlexlockError

DEFAULT_MANIFEST_NAME: str = "flexlock.yaml"
DEFAULT_LOCKFILE_NAME: str = "flexlock.lock"
DEFAULT_HTTP_TIMEOUT: float = 30.0
DEFAULT_MAX_CONCURRENCY: int = 6


def _default_git_cache() -> Path:
    return Path.home() / ".cache" / "flexlock" / "git"


@dataclass(frozen=True)
class FlexlockConfig:
    """Settings shared by the CLI and the transport layer.

    Attributes:
        manifest_name: File name of the manifest inside a project directory.
        lockfile_name: File name of the lockfile inside a project directory.
        http_timeout: Timeout for registry HTTP requests, in seconds.
        max_concurrency: Upper bound on concurrent registry queries.
        git_cache_dir: Where repository checkouts are kept.
    """

    manifest_name: str = DEFAULT_MANIFEST_NAME
    lockfile_name: str = DEFAULT_LOCKFILE_NAME
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    git_cache_dir: Path = field(default_factory=_default_git_cache)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> FlexlockConfig:
        """Build a config from ``FLEXLOCK_*`` variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Raises:
            FlexlockError: If a numeric variable cannot be parsed or is not
                positive.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}
        if env.get("FLEXLOCK_MANIFEST"):
            kwargs["manifest_name"] = env["FLEXLOCK_MANIFEST"]
        if env.get("FLEXLOCK_LOCKFILE"):
            kwargs["lockfile_name"] = env["FLEXLOCK_LOCKFILE"]
        if env.get("FLEXLOCK_HTTP_TIMEOUT"):
            kwargs["http_timeout"] = _positive(
                "FLEXLOCK_HTTP_TIMEOUT", env["FLEXLOCK_HTTP_TIMEOUT"], float
            )
        if env.get("FLEXLOCK_MAX_CONCURRENCY"):
            kwargs["max_concurrency"] = _positive(
                "FLEXLOCK_MAX_CONCURRENCY", env["FLEXLOCK_MAX_CONCURRENCY"], int
            )
        if env.get("FLEXLOCK_GIT_CACHE"):
            kwargs["git_cache_dir"] = Path(env["FLEXLOCK_GIT_CACHE"])
        return cls(**kwargs)  # type: ignore[arg-type]

    def manifest_path(self, project_dir: Path) -> Path:
        return project_dir / self.manifest_name

    def lockfile_path(self, project_dir: Path) -> Path:
        return project_dir / self.lockfile_name


def _positive(name: str, raw: str, kind: type) -> float | int:
    try:
        value = kind(raw)
    except ValueError:
        raise FlexlockError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise FlexlockError(f"{name} must be positive, got {raw!r}")
    return value
