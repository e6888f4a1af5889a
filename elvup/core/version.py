"""Dotted numeric versions — parsing and ordering.

Only plain ``N(.N)*`` strings are accepted; comparison is numeric per
component with missing trailing components treated as zero, so
``12.66 > 9.9`` and ``1.2 == 1.2.0``.
"""

import functools
import re
from enum import Enum

from packaging.version import Version as _PackagingVersion

from elvup.core.errors import VersionParseError

_SEGMENT_RE = re.compile(r'[0-9]+')


class Ordering(Enum):
    LESS = -1
    EQUAL = 0
    GREATER = 1


@functools.total_ordering
class Version:
    """A parsed dotted numeric version."""

    __slots__ = ('_text', '_parsed')

    def __init__(self, text: str, parsed: _PackagingVersion):
        self._text = text
        self._parsed = parsed

    @classmethod
    def parse(cls, text: str) -> 'Version':
        """Parse ``text``; raises VersionParseError on any non-numeric segment."""
        if not isinstance(text, str) or not text:
            raise VersionParseError(str(text), "empty version string")
        for segment in text.split('.'):
            # fullmatch keeps out unicode digits, signs and whitespace
            if not _SEGMENT_RE.fullmatch(segment):
                raise VersionParseError(text, f"segment {segment!r} is not numeric")
        # packaging pads release tuples with zeros when comparing
        return cls(text, _PackagingVersion(text))

    @property
    def components(self) -> tuple[int, ...]:
        return self._parsed.release

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"Version({self._text!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._parsed == other._parsed

    def __lt__(self, other) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._parsed < other._parsed

    def __hash__(self) -> int:
        return hash(self._parsed)


def compare(a: Version, b: Version) -> Ordering:
    """Three-way comparison of two versions."""
    if a < b:
        return Ordering.LESS
    if a == b:
        return Ordering.EQUAL
    return Ordering.GREATER
