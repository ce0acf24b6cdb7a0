"""flexlock exception hierarchy.

All public exceptions inherit from FlexlockError, giving callers a single
base class to catch when they want to handle any flexlock-specific failure
without swallowing unrelated errors.
"""

from __future__ import annotations


class FlexlockError(Exception):
    """Base exception for all flexlock errors."""


class MalformedConstraint(FlexlockError):
    """Raised when a version or version constraint cannot be parsed.

    Covers unknown operators and version strings that do not split into
    dot-separated alphanumeric segments. Raised before resolution starts.
    """


class ManifestError(FlexlockError):
    """Raised when a manifest file is missing or structurally invalid."""


class SourceError(FlexlockError):
    """Base class for failures reported by a source index."""


class SourceUnreachable(SourceError):
    """Raised on network or filesystem failure while reading a source.

    Not retried here; retry policy belongs to the transport layer. Timeouts
    are reported as this error too.
    """


class PackageNotFound(SourceError):
    """Raised when a package name is absent from a source."""

    def __init__(self, name: str, source: object | None = None) -> None:
        where = f" in {source}" if source is not None else ""
        super().__init__(f"Package {name!r} not found{where}")
        self.name = name
        self.source = source


class ResolutionError(FlexlockError):
    """Raised when dependency resolution fails."""


class UnsatisfiableRequirement(ResolutionError):
    """Raised when no assignment satisfies every requirement.

    Attributes:
        chain: Requirement descriptions from the manifest down to the
            contradiction, outermost first.
        conflicts: Human-readable descriptions of every dead end the search
            hit before giving up.
    """

    def __init__(
        self,
        message: str,
        chain: list[str] | None = None,
        conflicts: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.chain = list(chain or [])
        self.conflicts = list(conflicts or [])


class LockfileError(FlexlockError):
    """Raised for lockfile generation, parsing, or reconciliation failures."""


class LockfileCorrupt(LockfileError):
    """Raised when persisted lockfile text violates the lockfile structure.

    Attributes:
        section: Name of the section being parsed, or None before the first
            section header.
        line_no: 1-based line number of the offending line, when known.
    """

    def __init__(
        self,
        message: str,
        section: str | None = None,
        line_no: int | None = None,
    ) -> None:
        location = ""
        if section is not None:
            location += f" [section {section}]"
        if line_no is not None:
            location += f" [line {line_no}]"
        super().__init__(f"{message}{location}")
        self.section = section
        self.line_no = line_no


class ReconciliationFailed(LockfileError):
    """Raised when a lockfile can no longer be reused for the manifest.

    Callers treat it as a signal to re-resolve from scratch rather than as a
    hard failure.
    """
