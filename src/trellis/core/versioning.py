"""
API version metadata and helpers for trellis state documents and API snapshots.

Exposes the canonical API version (API_V) embedded in persisted state documents and
API snapshots, and provides compatibility and successor checks. This module is zero-IO.

Notes:
    - Writers embed API_V; readers call is_compatible before trusting a document.
    - Minor bumps are additive (new elements, new optional keys); a reader accepts any
      document whose major matches and whose minor is not newer than its own.
    - Major bumps signal removed or re-typed elements.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from .errors import VersionMismatch

__all__ = [
    "ApiVersion",
    "API_V",
    "is_compatible",
    "is_successor_of",
    "format_version",
    "parse_version",
]

API_MAJOR_VERSION = 1
API_MINOR_VERSION = 0

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)@(\d{4}-\d{2}-\d{2})$")


@dataclass(frozen=True)
class ApiVersion:
    """
    Immutable semantic version with ISO release date for trellis artifacts.

    Attributes:
        major (int): Non-negative major component signalling breaking API changes.
        minor (int): Non-negative minor component for additive changes.
        date (str): ISO YYYY-MM-DD release date.

    Raises:
        ValueError: If any component is negative or the date is not ISO compliant.
    """

    major: int
    minor: int
    date: str  # ISO YYYY-MM-DD

    def __post_init__(self) -> None:
        if self.major < 0:
            raise ValueError(f"ApiVersion major must be non-negative, got {self.major}")
        if self.minor < 0:
            raise ValueError(f"ApiVersion minor must be non-negative, got {self.minor}")
        try:
            date.fromisoformat(self.date)
        except ValueError as exc:
            raise ValueError(
                f"ApiVersion date must be ISO YYYY-MM-DD, got {self.date!r}"
            ) from exc


API_V = ApiVersion(API_MAJOR_VERSION, API_MINOR_VERSION, "2026-10-19")


def is_compatible(ver: ApiVersion, current: ApiVersion = API_V) -> bool:
    """
    Check whether a persisted version can be read by the current API.

    Args:
        ver (ApiVersion): Version found in a document.
        current (ApiVersion): Version of the running code (defaults to API_V).

    Returns:
        bool: True if the majors match and ver.minor <= current.minor.

    Examples:
        >>> from trellis.core.versioning import API_V, ApiVersion, is_compatible
        >>> is_compatible(API_V)
        True
        >>> is_compatible(ApiVersion(API_V.major + 1, 0, API_V.date))
        False
    """
    return ver.major == current.major and ver.minor <= current.minor


def is_successor_of(candidate: ApiVersion, current: ApiVersion) -> bool:
    """
    Determine whether a version is the immediate successor of another.

    Minor bumps increase the minor component by one with the major fixed; major bumps
    increase the major component by one and reset minor to zero.

    Examples:
        >>> is_successor_of(ApiVersion(1, 1, "2026-10-20"), ApiVersion(1, 0, "2026-10-19"))
        True
        >>> is_successor_of(ApiVersion(1, 2, "2026-10-20"), ApiVersion(1, 0, "2026-10-19"))
        False
    """
    if candidate.major == current.major:
        return candidate.minor == current.minor + 1
    if candidate.major == current.major + 1 and candidate.minor == 0:
        return True
    return False


def format_version(ver: ApiVersion) -> str:
    """Render a version as ``major.minor@date`` for file metadata."""
    return f"{ver.major}.{ver.minor}@{ver.date}"


def parse_version(text: str) -> ApiVersion:
    """
    Parse a ``major.minor@date`` string produced by format_version.

    Raises:
        VersionMismatch: If the text is not a well-formed version string.
    """
    match = _VERSION_RE.match(text.strip())
    if match is None:
        raise VersionMismatch(f"malformed API version string: {text!r}")
    return ApiVersion(int(match.group(1)), int(match.group(2)), match.group(3))
