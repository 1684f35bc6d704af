"""
edgenode: public security utilities

Purpose
- Credential redaction for logs and API payloads.

Functional requirements
- Must provide consistent redaction and credential fragment checks.
"""

from edgenode.security.redaction import (
    DEFAULT_SENSITIVE_KEY_DENYLIST,
    REDACTED_VALUE,
    contains_secret_fragment,
    credential_presence,
    is_sensitive_key,
    redact_text,
    redact_value,
)

__all__ = [
    "DEFAULT_SENSITIVE_KEY_DENYLIST",
    "REDACTED_VALUE",
    "contains_secret_fragment",
    "credential_presence",
    "is_sensitive_key",
    "redact_text",
    "redact_value",
]
