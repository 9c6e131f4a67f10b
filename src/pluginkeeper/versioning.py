"""
Semantic Versions

SemVer 2.0.0 parsing and precedence for plugin version strings. Versions are
compared by precedence, never lexically (``0.0.10`` is newer than ``0.0.9``).
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from typing import Union

_SEMVER_RE = re.compile(
    r"^[v=]?"
    r"(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


@functools.total_ordering
@dataclass(frozen=True)
class SemVer:
    """A parsed semantic version.

    Ordering follows SemVer precedence: the numeric core first, then a
    pre-release sorts below the matching release. Build metadata is kept for
    display but ignored when comparing.

    Example:
        >>> parse_version("1.0.0-alpha") < parse_version("1.0.0")
        True
    """

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: tuple[str, ...] = ()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._precedence_key() == other._precedence_key()

    def __hash__(self) -> int:
        return hash(self._precedence_key())

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._precedence_key() < other._precedence_key()

    def _precedence_key(self) -> tuple:  # type: ignore[type-arg]
        # A release (no pre-release) outranks every pre-release of the same core.
        if not self.prerelease:
            pre: tuple = (1,)  # type: ignore[type-arg]
        else:
            pre = (0, tuple(_identifier_key(part) for part in self.prerelease))
        return (self.major, self.minor, self.patch, pre)


def _identifier_key(identifier: str) -> tuple[int, Union[int, str]]:
    # Numeric identifiers sort below alphanumeric ones.
    if identifier.isdigit():
        return (0, int(identifier))
    return (1, identifier)


def parse_version(text: str) -> SemVer:
    """Parse a semantic version string.

    Args:
        text: Version such as ``1.2.3``, ``1.2.3-rc.1`` or ``v1.2.3+build.5``.

    Returns:
        The parsed SemVer.

    Raises:
        ValueError: If *text* is not a valid semantic version.
    """
    match = _SEMVER_RE.match(text.strip()) if isinstance(text, str) else None
    if match is None:
        raise ValueError(f"Invalid semantic version: {text!r}")
    prerelease = match.group("prerelease")
    build = match.group("build")
    return SemVer(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        prerelease=tuple(prerelease.split(".")) if prerelease else (),
        build=tuple(build.split(".")) if build else (),
    )


def compare_versions(a: str, b: str) -> int:
    """Compare two version strings by precedence.

    Returns:
        ``-1`` if *a* < *b*, ``0`` if equal, ``1`` if *a* > *b*.
    """
    left, right = parse_version(a), parse_version(b)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def is_newer(candidate: str, current: str) -> bool:
    """Return ``True`` if *candidate* is strictly greater than *current*."""
    return parse_version(candidate) > parse_version(current)
