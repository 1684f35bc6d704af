"""
edgenode: configuration schema and validation.

Purpose
- Define authoritative configuration defaults and strict validation rules.

What should be included in this file
- Schema versioning and migration guidance.
- Validation rules for required fields, types, enums and architecture aliases.
- Deterministic deep-merge helpers and redaction for dumps.

Functional requirements
- Validate config payloads and return structured errors (field path + message).
- Reject embedded credentials; devices authenticate with tokens handed over by
  the registration flow, never with values stored in ``edgenode.toml``.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict

from edgenode.constants import CONFIG_SCHEMA_VERSION, DEFAULT_ARCH_SYNONYMS
from edgenode.security.redaction import REDACTED_VALUE, is_sensitive_key

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

_ARCH_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_.-]*$")

# Config paths normalized relative to the config file location.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (
    ("paths", "catalog"),
    ("observability", "log_dir"),
)


class MetaConfig(TypedDict):
    schema_version: int


class NodeConfig(TypedDict):
    node_id: str


class ArchitectureConfig(TypedDict):
    synonyms: dict[str, str]


class PathsConfig(TypedDict):
    catalog: str


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_dir: str
    log_to_stdout: bool
    redact_secrets: bool


class EdgeNodeConfig(TypedDict):
    meta: MetaConfig
    node: NodeConfig
    architecture: ArchitectureConfig
    paths: PathsConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[EdgeNodeConfig] = {
    "meta": {
        "schema_version": ConfigSchemaVersion,
    },
    "node": {
        "node_id": "edgenode",
    },
    "architecture": {
        "synonyms": {},
    },
    "paths": {
        "catalog": "services.yaml",
    },
    "observability": {
        "log_level": "INFO",
        "log_dir": "logs",
        "log_to_stdout": False,
        "redact_secrets": True,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> EdgeNodeConfig:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade edgenode.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade the edgenode runtime"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate config and return structured issues with deterministic paths."""

    issues = _IssueCollector()
    root = _as_object(config, "<root>", issues)
    if root is None:
        return ConfigValidationResult(config=None, issues=issues.items())

    normalized = _validate_root(root, issues)
    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def redact_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Return a deterministic redacted representation for logs and ``show-config``."""

    if not isinstance(config, Mapping):
        return {}
    redacted = _redact_value(config)
    if isinstance(redacted, dict):
        return redacted
    return {}


def arch_synonyms_from_config(config: Mapping[str, object]) -> dict[str, str]:
    """Built-in architecture aliases with configured ones layered on top."""

    merged = dict(DEFAULT_ARCH_SYNONYMS)
    architecture = config.get("architecture")
    if isinstance(architecture, Mapping):
        configured = architecture.get("synonyms")
        if isinstance(configured, Mapping):
            for alias in sorted(configured):
                merged[str(alias).strip().lower()] = str(configured[alias]).strip().lower()
    return merged


def _validate_root(payload: Mapping[str, object], issues: _IssueCollector) -> dict[str, Any]:
    validators: dict[str, Callable[[dict[str, object], str, _IssueCollector], dict[str, Any]]] = {
        "meta": _validate_meta,
        "node": _validate_node,
        "architecture": _validate_architecture,
        "paths": _validate_paths,
        "observability": _validate_observability,
    }
    _reject_unknown_keys(payload, set(validators), "", issues)
    _require_keys(payload, set(validators), "", issues)

    out: dict[str, Any] = {}
    for key in sorted(validators):
        raw = payload.get(key)
        if raw is None:
            continue
        section = _as_object(raw, key, issues)
        if section is None:
            continue
        out[key] = validators[key](section, key, issues)
    return out


def _validate_meta(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"schema_version"}, path, issues)
    _require_keys(payload, {"schema_version"}, path, issues)

    out: dict[str, Any] = {}
    if "schema_version" in payload:
        parsed = _as_int(
            payload["schema_version"], _join(path, "schema_version"), issues, minimum=1
        )
        if parsed is not None:
            out["schema_version"] = parsed
            if parsed != ConfigSchemaVersion:
                issues.add(_join(path, "schema_version"), migration_guidance(parsed))
    return out


def _validate_node(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"node_id"}, path, issues)
    _require_keys(payload, {"node_id"}, path, issues)

    out: dict[str, Any] = {}
    if "node_id" in payload:
        parsed = _as_str(payload["node_id"], _join(path, "node_id"), issues)
        if parsed is not None:
            out["node_id"] = parsed
    return out


def _validate_architecture(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"synonyms"}, path, issues)
    _require_keys(payload, {"synonyms"}, path, issues)

    synonyms: dict[str, str] = {}
    raw = payload.get("synonyms")
    if raw is None:
        return {"synonyms": synonyms}
    synonyms_path = _join(path, "synonyms")
    table = _as_object(raw, synonyms_path, issues)
    if table is None:
        return {"synonyms": synonyms}

    for alias in sorted(table):
        alias_path = _join(synonyms_path, alias)
        key = alias.strip().lower()
        if not _ARCH_NAME_PATTERN.fullmatch(key):
            issues.add(alias_path, "alias must be a lowercase architecture name")
            continue
        target = _as_str(table[alias], alias_path, issues)
        if target is None:
            continue
        canonical = target.lower()
        if not _ARCH_NAME_PATTERN.fullmatch(canonical):
            issues.add(alias_path, f"invalid architecture name {target!r}")
            continue
        if key == canonical:
            issues.add(alias_path, "alias maps onto itself")
            continue
        synonyms[key] = canonical

    # Aliases resolve in one step; an alias targeting another alias is a loop risk.
    for key in sorted(synonyms):
        if synonyms[key] in synonyms:
            issues.add(_join(synonyms_path, key), f"target {synonyms[key]!r} is itself an alias")
    return {"synonyms": synonyms}


def _validate_paths(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"catalog"}, path, issues)
    _require_keys(payload, {"catalog"}, path, issues)

    out: dict[str, Any] = {}
    if "catalog" in payload:
        parsed = _as_path_text(payload["catalog"], _join(path, "catalog"), issues)
        if parsed is not None:
            out["catalog"] = parsed
    return out


def _validate_observability(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"log_level", "log_dir", "log_to_stdout", "redact_secrets"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "log_level" in payload:
        parsed_level = _as_enum(
            payload["log_level"], _join(path, "log_level"), issues, allowed_values=LOG_LEVELS
        )
        if parsed_level is not None:
            out["log_level"] = parsed_level

    if "log_dir" in payload:
        parsed_dir = _as_path_text(payload["log_dir"], _join(path, "log_dir"), issues)
        if parsed_dir is not None:
            out["log_dir"] = parsed_dir

    for flag in ("log_to_stdout", "redact_secrets"):
        if flag in payload:
            parsed_flag = _as_bool(payload[flag], _join(path, flag), issues)
            if parsed_flag is not None:
                out[flag] = parsed_flag
    return out


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_path_text(value: object, path: str, issues: _IssueCollector) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    return parsed


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return value


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key in allowed:
            continue
        key_path = _join(path, key)
        if is_sensitive_key(key):
            issues.add(key_path, "embedded credentials are forbidden in edgenode.toml")
        else:
            issues.add(key_path, "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            nested = _deep_copy_mapping(existing) if isinstance(existing, Mapping) else {}
            _merge_into(nested, value)
            target[key] = nested
        else:
            target[key] = copy.deepcopy(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    return {key: copy.deepcopy(value[key]) for key in sorted(value) if isinstance(key, str)}


def _redact_value(value: object) -> object:
    if isinstance(value, Mapping):
        out: dict[str, object] = {}
        for key in sorted(value):
            item = value[key]
            out[key] = REDACTED_VALUE if is_sensitive_key(str(key)) else _redact_value(item)
        return out
    if isinstance(value, (list, tuple)):
        return [_redact_value(item) for item in value]
    return value


__all__ = [
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "EdgeNodeConfig",
    "LOG_LEVELS",
    "PATH_FIELDS",
    "arch_synonyms_from_config",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "redact_config",
    "validate_config",
]
