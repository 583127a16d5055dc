"""Server version parsing.

Versions are compared on (major, minor) only. Patch and pre-release
components carry no meaning for capability decisions, so "9.6.24" and
"9.6" are the same Version.
"""

from __future__ import annotations

from dataclasses import dataclass

from pgtestenv_core.errors import InvalidVersionFormat


@dataclass(frozen=True, order=True)
class Version:
    """A (major, minor) server version with total ordering.

    Attributes:
        major: Major version number.
        minor: Minor version number (0 when not given).

    Example:
        >>> Version(9, 4) > Version(9, 3)
        True
        >>> str(Version(10))
        '10.0'
    """

    major: int
    minor: int = 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"

    @classmethod
    def parse(cls, text: str, *, variable: str | None = None) -> Version:
        """Parse a dotted version string. See parse_version."""
        return parse_version(text, variable=variable)


def _to_int(segment: str, text: str, variable: str | None) -> int:
    # str.isdigit() rejects signs, blanks and non-ASCII digits int() would accept
    if not segment.isascii() or not segment.isdigit():
        raise InvalidVersionFormat(text, variable=variable)
    return int(segment)


def parse_version(text: str, *, variable: str | None = None) -> Version:
    """Parse "<major>", "<major>.<minor>" or "<major>.<minor>.<patch>...".

    Components past the second are ignored.

    Args:
        text: Version string, e.g. "9.4" or "12.17.1".
        variable: Environment variable the string came from, for error context.

    Returns:
        Parsed Version.

    Raises:
        InvalidVersionFormat: If major is missing or a component is non-numeric.

    Example:
        >>> parse_version("9")
        Version(major=9, minor=0)
        >>> parse_version("9.5.3")
        Version(major=9, minor=5)
    """
    segments = text.strip().split(".")
    major = segments[0]
    minor = segments[1] if len(segments) > 1 else "0"

    return Version(_to_int(major, text, variable), _to_int(minor, text, variable))
