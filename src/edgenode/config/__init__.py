"""
edgenode config package public API.

Purpose
- Export config loading/validation entrypoints and public error types.

Functional requirements
- Support loading from ``edgenode.toml`` + ``EDGENODE_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from edgenode.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    load_config,
    normalize_paths,
)
from edgenode.config.schema import (
    DEFAULT_CONFIG,
    ConfigSchemaVersion,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    EdgeNodeConfig,
    arch_synonyms_from_config,
    assert_valid_config,
    default_config,
    merge_config,
    redact_config,
    validate_config,
)

__all__ = [
    "ConfigLoadError",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "EdgeNodeConfig",
    "arch_synonyms_from_config",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "load_config",
    "merge_config",
    "normalize_paths",
    "redact_config",
    "validate_config",
]
