"""Dotted version parsing and ordering.

Versions are `major.minor.patch` strings of non-negative integers. The
`major.minor` part ("minor key") names an incremental migration bucket, and
`major.minor.0` is the schema-relevant portion of an application version:
patch releases never carry schema changes.
"""

from __future__ import annotations

import re
from typing import Iterable, NamedTuple

from .enums import Ordering
from .errors import InvalidVersionFormat

VERSION_RE = re.compile(r"([0-9]+)\.([0-9]+)\.([0-9]+)")
MINOR_KEY_RE = re.compile(r"([0-9]+)\.([0-9]+)")


class Version(NamedTuple):
    """Parsed (major, minor, patch) triple; tuple ordering is version ordering."""

    major: int
    minor: int
    patch: int

    @property
    def minor_key(self) -> str:
        return f"{self.major}.{self.minor}"

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def parse_version(text: str) -> Version:
    """Parse a `<uint>.<uint>.<uint>` string.

    Args:
        text: Version string such as "0.12.3"

    Returns:
        Parsed Version

    Raises:
        InvalidVersionFormat: If text is not three dot-separated integers
    """
    match = VERSION_RE.fullmatch(text) if isinstance(text, str) else None
    if not match:
        raise InvalidVersionFormat(f"invalid version format: {text!r}")
    return Version(*(int(part) for part in match.groups()))


def bucket_version(minor_key: str) -> Version:
    """Derive the version of a migration bucket ("0.12" -> 0.12.0).

    Raises:
        InvalidVersionFormat: If minor_key is not `<uint>.<uint>`
    """
    match = MINOR_KEY_RE.fullmatch(minor_key) if isinstance(minor_key, str) else None
    if not match:
        raise InvalidVersionFormat(f"invalid minor version format: {minor_key!r}")
    major, minor = (int(part) for part in match.groups())
    return Version(major, minor, 0)


def _coerce(value: str | Version) -> Version:
    return value if isinstance(value, Version) else parse_version(value)


def compare_versions(a: str | Version, b: str | Version) -> Ordering:
    """Compare two versions component-wise, major first."""
    left, right = _coerce(a), _coerce(b)
    if left < right:
        return Ordering.LESS
    if left > right:
        return Ordering.GREATER
    return Ordering.EQUAL


def is_version_greater(a: str | Version, b: str | Version) -> bool:
    """Return True if a is strictly greater than b."""
    return compare_versions(a, b) is Ordering.GREATER


def is_version_greater_or_equal(a: str | Version, b: str | Version) -> bool:
    """Return True if a is greater than or equal to b."""
    return compare_versions(a, b) is not Ordering.LESS


def minor_key(version: str | Version) -> str:
    """Return the "major.minor" bucket key of a version."""
    return _coerce(version).minor_key


def schema_version(version: str | Version) -> str:
    """Return the schema-relevant portion of an application version.

    Example:
        schema_version("0.13.2") == "0.13.0"
    """
    return str(bucket_version(minor_key(version)))


def sort_versions(versions: Iterable[str]) -> list[str]:
    """Sort version strings ascending by version order."""
    return sorted(versions, key=parse_version)


def latest_version(versions: Iterable[str]) -> str:
    """Return the greatest version string.

    Raises:
        ValueError: If versions is empty
    """
    ordered = sort_versions(versions)
    if not ordered:
        raise ValueError("no versions to compare")
    return ordered[-1]
