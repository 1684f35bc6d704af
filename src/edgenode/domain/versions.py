"""Service version parsing and interval-style version range containment.

Range grammar::

    range   := bound | interval
    interval:= ("[" | "(") version "," (version | "INFINITY") ("]" | ")")
    bound   := version                      # exact match

Versions are ``major[.minor[.patch]][-prerelease][+build]``. Missing numeric
components are zero, a release sorts after any of its pre-releases,
pre-release strings compare lexically, and build metadata is ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Final

from edgenode.constants import VERSION_INFINITY
from edgenode.domain.errors import MalformedVersionRange

_VERSION_RE: Final[re.Pattern[str]] = re.compile(
    r"^(0|[1-9]\d*)(?:\.(0|[1-9]\d*))?(?:\.(0|[1-9]\d*))?"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)


@total_ordering
@dataclass(frozen=True, slots=True)
class Version:
    major: int
    minor: int = 0
    patch: int = 0
    prerelease: str | None = None

    @classmethod
    def parse(cls, raw: str) -> Version:
        if not isinstance(raw, str):
            raise MalformedVersionRange(repr(raw), "version must be a string")
        text = raw.strip()
        match = _VERSION_RE.fullmatch(text)
        if match is None:
            raise MalformedVersionRange(raw, f"{text!r} is not a valid version")
        major, minor, patch, prerelease, _build = match.groups()
        return cls(
            major=int(major),
            minor=int(minor or 0),
            patch=int(patch or 0),
            prerelease=prerelease,
        )

    def sort_key(self) -> tuple[int, int, int, int, str]:
        release_rank = 0 if self.prerelease is not None else 1
        return (self.major, self.minor, self.patch, release_rank, self.prerelease or "")

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        return base if self.prerelease is None else f"{base}-{self.prerelease}"


@dataclass(frozen=True, slots=True)
class VersionRange:
    """Parsed interval. ``upper=None`` means unbounded (``INFINITY``)."""

    expression: str
    lower: Version
    upper: Version | None
    lower_inclusive: bool = True
    upper_inclusive: bool = False

    @classmethod
    def parse(cls, expression: str) -> VersionRange:
        if not isinstance(expression, str):
            raise MalformedVersionRange(repr(expression), "range must be a string")
        text = expression.strip()
        if not text:
            raise MalformedVersionRange(expression, "range must not be empty")

        opener = text[0]
        if opener not in "[(":
            exact = _parse_bound(text, expression)
            return cls(
                expression=expression,
                lower=exact,
                upper=exact,
                lower_inclusive=True,
                upper_inclusive=True,
            )

        closer = text[-1]
        if len(text) < 2 or closer not in "])":
            raise MalformedVersionRange(expression, "interval must end with ']' or ')'")
        body = text[1:-1]
        parts = body.split(",")
        if len(parts) != 2:
            raise MalformedVersionRange(expression, "interval must have exactly two bounds")

        lower = _parse_bound(parts[0], expression)
        upper_text = parts[1].strip()
        upper: Version | None
        if upper_text.upper() == VERSION_INFINITY:
            if closer == "]":
                raise MalformedVersionRange(expression, "INFINITY cannot be an inclusive bound")
            upper = None
        else:
            upper = _parse_bound(upper_text, expression)

        lower_inclusive = opener == "["
        upper_inclusive = closer == "]"
        if upper is not None:
            if upper < lower:
                raise MalformedVersionRange(expression, "lower bound exceeds upper bound")
            if upper == lower and not (lower_inclusive and upper_inclusive):
                raise MalformedVersionRange(expression, "interval is empty")

        return cls(
            expression=expression,
            lower=lower,
            upper=upper,
            lower_inclusive=lower_inclusive,
            upper_inclusive=upper_inclusive,
        )

    @property
    def is_exact(self) -> bool:
        return self.upper == self.lower and self.lower_inclusive and self.upper_inclusive

    def contains(self, version: Version | str) -> bool:
        candidate = version if isinstance(version, Version) else Version.parse(version)
        if candidate < self.lower or (candidate == self.lower and not self.lower_inclusive):
            return False
        if self.upper is None:
            return True
        if candidate > self.upper:
            return False
        return not (candidate == self.upper and not self.upper_inclusive)

    def __contains__(self, version: object) -> bool:
        if not isinstance(version, (Version, str)):
            return False
        return self.contains(version)

    def __str__(self) -> str:
        if self.is_exact:
            return str(self.lower)
        upper = VERSION_INFINITY if self.upper is None else str(self.upper)
        opener = "[" if self.lower_inclusive else "("
        closer = "]" if self.upper_inclusive else ")"
        return f"{opener}{self.lower},{upper}{closer}"


def _parse_bound(text: str, expression: str) -> Version:
    try:
        return Version.parse(text)
    except MalformedVersionRange as exc:
        raise MalformedVersionRange(expression, exc.reason) from None


def validate_version_range(expression: str) -> str:
    """Return ``expression`` unchanged after checking it parses."""

    VersionRange.parse(expression)
    return expression


__all__ = ["Version", "VersionRange", "validate_version_range"]
