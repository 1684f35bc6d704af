"""Condition taxonomy raised by construction, conversion and resolution.

Every condition is a ``ValueError`` subclass so callers that only care about
"bad input" can catch broadly, while API handlers can still dispatch on the
concrete kind when translating a failure into a user-facing message.
"""

from __future__ import annotations

from collections.abc import Sequence


class EdgeNodeModelError(ValueError):
    """Base class for all device-model conditions."""


class InvalidTransition(EdgeNodeModelError):
    """Raised when a configuration-state move is not in the transition table."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"invalid configuration state transition: {current} -> {target}")


class AmbiguousConfiguration(EdgeNodeModelError):
    """Raised when more than one service descriptor matches a candidate."""

    def __init__(
        self,
        *,
        org: str,
        url: str,
        arch: str,
        version: str,
        matches: Sequence[str],
    ) -> None:
        self.org = org
        self.url = url
        self.arch = arch
        self.version = version
        self.matches = tuple(matches)
        super().__init__(
            f"ambiguous service configuration for {org}/{url} arch={arch} version={version}: "
            f"{len(self.matches)} descriptors match ({', '.join(self.matches)})"
        )


class InvalidAttribute(EdgeNodeModelError):
    """Raised for attributes without a type or flagged both publishable and host-only."""


class MalformedVersionRange(EdgeNodeModelError):
    """Raised when a version or version-range expression cannot be parsed."""

    def __init__(self, expression: str, reason: str) -> None:
        self.expression = expression
        self.reason = reason
        super().__init__(f"malformed version range {expression!r}: {reason}")


class MissingRequiredField(EdgeNodeModelError):
    """Raised when a boundary requires a field that is unset."""

    def __init__(self, entity: str, field: str) -> None:
        self.entity = entity
        self.field = field
        super().__init__(f"{entity}.{field}: required field is not set")


__all__ = [
    "AmbiguousConfiguration",
    "EdgeNodeModelError",
    "InvalidAttribute",
    "InvalidTransition",
    "MalformedVersionRange",
    "MissingRequiredField",
]
