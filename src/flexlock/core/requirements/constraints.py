"""Version constraints.

A constraint pairs an operator with a version. Supported operators:

- Exact match: ``= 1.0``
- Not-equal: ``!= 1.0``
- Minimum (inclusive / exclusive): ``>= 1.0`` / ``> 1.0``
- Maximum (inclusive / exclusive): ``<= 2.0`` / ``< 2.0``
- Pessimistic: ``~> 2.3`` (``>= 2.3`` and ``< 3``)
- Any version: ``>= 0``

A bare version (``"1.0"``) means exact match. Canonical text is always
``"<op> <version>"``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from flexlock.core.requirements.versions import Version, parse_version
from flexlock.exceptions import MalformedConstraint

OPERATORS: tuple[str, ...] = ("=", "!=", ">=", ">", "<", "<=", "~>")

_CONSTRAINT_RE = re.compile(
    r"^\s*(?P<op>~>|!=|>=|<=|=|>|<)?\s*(?P<ver>[0-9A-Za-z][0-9A-Za-z.]*)\s*$"
)

_ANY_VERSION = Version("0")


@dataclass(frozen=True)
class VersionConstraint:
    """A single ``(operator, version)`` pair.

    Attributes:
        op: One of ``OPERATORS``.
        version: The bound the operator compares against.
    """

    op: str
    version: Version

    def __post_init__(self) -> None:
        if self.op not in OPERATORS:
            raise MalformedConstraint(f"Unknown constraint operator: {self.op!r}")
        if not isinstance(self.version, Version):
            object.__setattr__(self, "version", parse_version(self.version))

    @classmethod
    def parse(cls, text: str) -> VersionConstraint:
        """Parse constraint text such as ``">= 1.0"`` or ``"~>2.3"``.

        Raises:
            MalformedConstraint: If the operator is unknown or the version
                cannot be parsed.
        """
        if not isinstance(text, str):
            raise MalformedConstraint(f"Constraint must be a string: {text!r}")
        m = _CONSTRAINT_RE.match(text)
        if not m:
            raise MalformedConstraint(f"Invalid constraint: {text!r}")
        return cls(op=m.group("op") or "=", version=Version(m.group("ver")))

    @classmethod
    def any(cls) -> VersionConstraint:
        """Return the constraint that every version satisfies."""
        return cls(op=">=", version=_ANY_VERSION)

    @property
    def is_any(self) -> bool:
        """True for ``>= 0``."""
        return self.op == ">=" and self.version == _ANY_VERSION

    def satisfies(self, version: str | Version) -> bool:
        """Check whether *version* satisfies this constraint."""
        candidate = parse_version(version)
        bound = self.version
        if self.op == "=":
            return candidate == bound
        if self.op == "!=":
            return candidate != bound
        if self.op == ">=":
            return candidate >= bound
        if self.op == ">":
            return candidate > bound
        if self.op == "<":
            return candidate < bound
        if self.op == "<=":
            return candidate <= bound
        # "~>": at least the bound, below the bumped bound.
        return bound <= candidate < bound.bump()

    def __str__(self) -> str:
        return f"{self.op} {self.version}"

    def __repr__(self) -> str:
        return f"VersionConstraint({str(self)!r})"


def parse_constraints(*texts: str) -> tuple[VersionConstraint, ...]:
    """Parse several constraint strings into an ordered, de-duplicated tuple.

    Each string may itself hold comma-separated constraints. Constraints that
    accept any version are dropped, so an empty tuple means "any version".
    """
    result: list[VersionConstraint] = []
    for text in texts:
        for atom in text.split(","):
            if not atom.strip():
                continue
            constraint = VersionConstraint.parse(atom)
            if constraint.is_any or constraint in result:
                continue
            result.append(constraint)
    return tuple(result)


def constraints_text(constraints: tuple[VersionConstraint, ...]) -> str:
    """Canonical text for a constraint conjunction, empty for any version."""
    return ", ".join(str(c) for c in constraints)
