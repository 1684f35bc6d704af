"""Stable constants shared across the device model, resolver and tooling."""

from __future__ import annotations

from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1
CATALOG_SCHEMA_VERSION: Final[int] = 1

# Upgrade policy applied to programmatically created service descriptors.
DEFAULT_AUTO_UPGRADE: Final[bool] = True
DEFAULT_ACTIVE_UPGRADE: Final[bool] = False

# Rendering sentinels.
NOT_SET: Final[str] = "not set"
CREDENTIAL_SET: Final[str] = "set"

# Version range grammar.
VERSION_INFINITY: Final[str] = "INFINITY"
DEFAULT_VERSION_RANGE: Final[str] = "[0.0.0,INFINITY)"

# Platform aliases folded onto canonical architecture names before comparison.
DEFAULT_ARCH_SYNONYMS: Final[dict[str, str]] = {
    "x86_64": "amd64",
    "x86-64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "armv8": "arm64",
    "armhf": "arm",
    "armv7": "arm",
    "armv7l": "arm",
    "i386": "386",
    "i686": "386",
    "ppc64el": "ppc64le",
}

__all__ = [
    "CATALOG_SCHEMA_VERSION",
    "CONFIG_SCHEMA_VERSION",
    "CREDENTIAL_SET",
    "DEFAULT_ACTIVE_UPGRADE",
    "DEFAULT_ARCH_SYNONYMS",
    "DEFAULT_AUTO_UPGRADE",
    "DEFAULT_VERSION_RANGE",
    "NOT_SET",
    "VERSION_INFINITY",
]
