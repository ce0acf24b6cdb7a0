"""Ordered version representation.

A version is a dot-separated sequence of numeric or alphanumeric segments.
Two versions compare segment by segment; the shorter sequence is padded with
zero. Numeric segments compare numerically, alphanumeric segments compare as
strings and sort before any numeric segment, so ``1.0.a`` precedes ``1.0``.

``1.0`` and ``1.0.0`` are equal and hash alike, but each keeps its original
text for display.
"""

from __future__ import annotations

import re
from functools import total_ordering
from typing import Union

from flexlock.exceptions import MalformedConstraint

_SEGMENT_RE = re.compile(r"^[0-9A-Za-z]+$")

Segment = Union[int, str]


def _parse_segments(text: str) -> tuple[Segment, ...]:
    """Split a version string into typed segments.

    Raises:
        MalformedConstraint: If the string is empty or any segment is empty
            or contains characters outside ``[0-9A-Za-z]``.
    """
    stripped = text.strip()
    if not stripped:
        raise MalformedConstraint("Empty version string")
    segments: list[Segment] = []
    for part in stripped.split("."):
        if not _SEGMENT_RE.match(part):
            raise MalformedConstraint(f"Invalid version: {text!r}")
        segments.append(int(part) if part.isdigit() else part)
    return tuple(segments)


def _compare_segment(a: Segment, b: Segment) -> int:
    if isinstance(a, int) and isinstance(b, int):
        return (a > b) - (a < b)
    if isinstance(a, str) and isinstance(b, str):
        return (a > b) - (a < b)
    # Alphanumeric (prerelease) segments sort below numeric ones.
    return -1 if isinstance(a, str) else 1


@total_ordering
class Version:
    """A parsed, totally ordered version.

    Example::

        Version("1.0") == Version("1.0.0")   # True
        Version("2.3.2") > Version("2.3")    # True
        Version("1.0.rc1") < Version("1.0")  # True
    """

    __slots__ = ("_text", "_segments")

    def __init__(self, text: str) -> None:
        self._segments = _parse_segments(text)
        self._text = text.strip()

    @property
    def segments(self) -> tuple[Segment, ...]:
        """Return the typed segments as written."""
        return self._segments

    @property
    def is_prerelease(self) -> bool:
        """True when any segment is alphanumeric."""
        return any(isinstance(s, str) for s in self._segments)

    def _normalized(self) -> tuple[Segment, ...]:
        segs = list(self._segments)
        while segs and segs[-1] == 0:
            segs.pop()
        return tuple(segs)

    def compare(self, other: Version) -> int:
        """Three-way comparison: negative, zero, or positive."""
        left, right = self._segments, other._segments
        width = max(len(left), len(right))
        for i in range(width):
            a = left[i] if i < len(left) else 0
            b = right[i] if i < len(right) else 0
            result = _compare_segment(a, b)
            if result:
                return result
        return 0

    def bump(self) -> Version:
        """Return the exclusive upper bound used by the pessimistic operator.

        Trailing alphanumeric segments are dropped, then the rightmost
        remaining segment is dropped (unless it is the only one), and the new
        rightmost segment is incremented: ``2.3.1 -> 2.4``, ``2.3 -> 3``,
        ``2 -> 3``.
        """
        segs = list(self._segments)
        while segs and isinstance(segs[-1], str):
            segs.pop()
        if not segs:
            raise MalformedConstraint(
                f"Cannot bump version without numeric segments: {self._text!r}"
            )
        if len(segs) > 1:
            segs.pop()
        segs[-1] = int(segs[-1]) + 1
        return Version(".".join(str(s) for s in segs))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) < 0

    def __hash__(self) -> int:
        return hash(self._normalized())

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"Version({self._text!r})"


def parse_version(text: str | Version) -> Version:
    """Coerce a string or Version into a Version."""
    if isinstance(text, Version):
        return text
    return Version(text)


def version_sort_key(version: str | Version) -> Version:
    """Sort key for version strings (ascending)."""
    return parse_version(version)
