"""
edgenode: credential redaction utilities

Purpose
- Redaction rules for logs and diagnostic output that may carry device tokens.
- Presence-only rendering of credentials.
- Fragment checks for auditing rendered output for credential material.

Functional requirements
- Device credentials never reach logs or API responses in clear text.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final

from edgenode.constants import CREDENTIAL_SET, NOT_SET

REDACTED_VALUE: Final[str] = "***REDACTED***"
MIN_FRAGMENT_LENGTH: Final[int] = 4

DEFAULT_SENSITIVE_KEY_DENYLIST: Final[frozenset[str]] = frozenset(
    {
        "access_token",
        "api_key",
        "apikey",
        "auth_token",
        "authorization",
        "client_secret",
        "credential",
        "credentials",
        "password",
        "passwd",
        "private_key",
        "secret",
        "token",
    }
)

_SENSITIVE_KEY_SUFFIXES: Final[tuple[str, ...]] = (
    "_api_key",
    "_credential",
    "_password",
    "_secret",
    "_token",
)

# Keys that look sensitive by suffix but only carry metadata about a credential.
_KEY_ALLOWLIST: Final[frozenset[str]] = frozenset(
    {"token_valid", "token_last_valid_time", "credential_valid", "credential_last_valid_time"}
)

_CAMEL_CASE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True, slots=True)
class _TextRule:
    name: str
    pattern: re.Pattern[str]
    sensitive_group: int | None = None


_TEXT_RULES: Final[tuple[_TextRule, ...]] = (
    _TextRule(
        name="private_key_block",
        pattern=re.compile(
            r"-----BEGIN(?: [A-Z0-9]+)* PRIVATE KEY-----"
            r"[\s\S]+?"
            r"-----END(?: [A-Z0-9]+)* PRIVATE KEY-----"
        ),
    ),
    _TextRule(
        name="authorization_bearer",
        pattern=re.compile(r"(?i)(\bbearer\s+)([A-Za-z0-9\-._~+/=]{8,})"),
        sensitive_group=2,
    ),
    _TextRule(
        name="basic_auth_userinfo",
        pattern=re.compile(r"(?i)(\b[a-z][a-z0-9+.-]*://[^/\s:@]+:)([^@\s/]+)(@)"),
        sensitive_group=2,
    ),
    _TextRule(
        name="explicit_secret_assignment",
        pattern=re.compile(
            r"(?i)(\b(?:password|passwd|secret|token|api[_-]?key|client[_-]?secret|"
            r"credential|access[_-]?token)\b\s*[:=]\s*[\"']?)"
            r"([A-Za-z0-9._~+/=-]{4,})"
        ),
        sensitive_group=2,
    ),
    _TextRule(
        name="jwt",
        pattern=re.compile(r"\beyJ[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\b"),
    ),
)


def credential_presence(credential: str | None) -> str:
    """Render a credential as a presence indicator only."""

    if credential is None or credential == "":
        return NOT_SET
    return CREDENTIAL_SET


def is_sensitive_key(key: str) -> bool:
    normalized = _normalize_key(key)
    if not normalized or normalized in _KEY_ALLOWLIST:
        return False
    if normalized in DEFAULT_SENSITIVE_KEY_DENYLIST:
        return True
    return any(normalized.endswith(suffix) for suffix in _SENSITIVE_KEY_SUFFIXES)


def redact_text(text: str) -> str:
    """Redact secret-like substrings. Idempotent for stable inputs."""

    if not isinstance(text, str):
        raise TypeError(f"text must be a string, got {type(text).__name__}")
    redacted = text
    for rule in _TEXT_RULES:
        redacted = rule.pattern.sub(lambda match, r=rule: _replace(match, r), redacted)
    return redacted


def redact_value(value: object) -> object:
    """Return a deep-redacted copy of nested mappings, sequences and strings."""

    return _redact_structure(value, seen=set())


def redact_for_logging(value: object) -> object:
    """Hook picked up by :mod:`edgenode.observability.logging`."""

    return redact_value(value)


def contains_secret_fragment(
    haystack: str,
    secret: str,
    *,
    min_length: int = MIN_FRAGMENT_LENGTH,
) -> bool:
    """Whether ``haystack`` holds ``secret`` or any ``min_length`` slice of it."""

    if not secret:
        return False
    if len(secret) <= min_length:
        return secret in haystack
    # Every longer fragment contains a window of exactly min_length.
    return any(
        secret[start : start + min_length] in haystack
        for start in range(len(secret) - min_length + 1)
    )


def _replace(match: re.Match[str], rule: _TextRule) -> str:
    if rule.sensitive_group is None:
        return REDACTED_VALUE
    full = match.group(0)
    start, end = match.span(rule.sensitive_group)
    offset_start = start - match.start(0)
    offset_end = end - match.start(0)
    return f"{full[:offset_start]}{REDACTED_VALUE}{full[offset_end:]}"


def _redact_structure(value: object, *, seen: set[int]) -> object:
    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        return redact_text(value)

    if isinstance(value, Mapping):
        value_id = id(value)
        if value_id in seen:
            return REDACTED_VALUE
        seen.add(value_id)
        try:
            out: dict[object, object] = {}
            for key in sorted(value, key=lambda item: str(item)):
                item = value[key]
                if isinstance(key, str) and is_sensitive_key(key):
                    out[key] = REDACTED_VALUE if item not in (None, "") else item
                else:
                    out[key] = _redact_structure(item, seen=seen)
            return out
        finally:
            seen.discard(value_id)

    if isinstance(value, (list, tuple)):
        value_id = id(value)
        if value_id in seen:
            return REDACTED_VALUE
        seen.add(value_id)
        try:
            items = [_redact_structure(item, seen=seen) for item in value]
        finally:
            seen.discard(value_id)
        return items if isinstance(value, list) else tuple(items)

    return value


def _normalize_key(key: str) -> str:
    with_boundaries = _CAMEL_CASE_BOUNDARY.sub(r"\1_\2", key.strip())
    return _NON_ALNUM.sub("_", with_boundaries.lower()).strip("_")


__all__ = [
    "DEFAULT_SENSITIVE_KEY_DENYLIST",
    "MIN_FRAGMENT_LENGTH",
    "REDACTED_VALUE",
    "contains_secret_fragment",
    "credential_presence",
    "is_sensitive_key",
    "redact_for_logging",
    "redact_text",
    "redact_value",
]
