"""
edgenode: runtime config loader.

Purpose
- Build the effective node config from built-in defaults, ``edgenode.toml``,
  ``EDGENODE_*`` environment variables and command-line overrides.

Precedence
- CLI > env > file > defaults. Every layer is validated with the same schema.
- Only the scalar settings in ``_SETTINGS`` can be overridden from the
  environment or the command line; ``[architecture] synonyms`` is keyed by
  user data and comes from the file alone.
- ``[paths] catalog`` and ``[observability] log_dir`` resolve relative to the
  directory holding the config file.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from edgenode.config.schema import (
    PATH_FIELDS,
    assert_valid_config,
    default_config,
    merge_config,
    redact_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "edgenode.toml"
ENV_PREFIX: Final[str] = "EDGENODE_"

_TRUE_WORDS: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


class ConfigLoadError(ValueError):
    """Raised when config cannot be read or an override cannot be applied."""


@dataclass(frozen=True, slots=True)
class _Setting:
    section: str
    key: str
    kind: type

    @property
    def dotted(self) -> str:
        return f"{self.section}.{self.key}"

    @property
    def env_name(self) -> str:
        return f"{ENV_PREFIX}{self.section.upper()}_{self.key.upper()}"

    def parse_env(self, raw: str) -> object:
        value = raw.strip()
        if self.kind is int:
            try:
                return int(value)
            except ValueError as exc:
                raise ConfigLoadError(
                    f"{self.env_name} -> {self.dotted} must be an integer"
                ) from exc
        if self.kind is bool:
            lowered = value.lower()
            if lowered in _TRUE_WORDS:
                return True
            if lowered in _FALSE_WORDS:
                return False
            raise ConfigLoadError(
                f"{self.env_name} -> {self.dotted} must be a boolean (true/false/1/0/yes/no/on/off)"
            )
        return value


_SETTINGS: Final[tuple[_Setting, ...]] = (
    _Setting("meta", "schema_version", int),
    _Setting("node", "node_id", str),
    _Setting("paths", "catalog", str),
    _Setting("observability", "log_level", str),
    _Setting("observability", "log_dir", str),
    _Setting("observability", "log_to_stdout", bool),
    _Setting("observability", "redact_secrets", bool),
)
_SETTINGS_BY_DOTTED: Final[Mapping[str, _Setting]] = {item.dotted: item for item in _SETTINGS}


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return the validated effective config with paths made absolute.

    A missing default ``edgenode.toml`` is fine; an explicitly named file must
    exist. ``cli_overrides`` is keyed by dotted setting name, for example
    ``{"observability.log_level": "DEBUG"}``.
    """

    if config_path is None:
        source = (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    else:
        source = Path(config_path).expanduser().resolve()

    config = assert_valid_config(
        merge_config(default_config(), _read_toml(source, required=config_path is not None))
    )
    config = merge_config(config, _env_layer(os.environ if environ is None else environ))
    config = merge_config(config, _cli_layer(cli_overrides or {}))
    return normalize_paths(assert_valid_config(config), base_dir=source.parent)


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Resolve the configured path fields against ``base_dir``."""

    normalized = merge_config({}, config)
    for section, key in PATH_FIELDS:
        table = normalized.get(section)
        if isinstance(table, dict) and isinstance(table.get(key), str):
            table[key] = _absolute_path(table[key], base_dir)
    return normalized


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Return deterministic JSON dump of redacted effective config."""

    return json.dumps(
        redact_config(config), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_layer(environ: Mapping[str, str]) -> dict[str, dict[str, object]]:
    layer: dict[str, dict[str, object]] = {}
    for setting in _SETTINGS:
        raw = environ.get(setting.env_name)
        if raw is not None:
            layer.setdefault(setting.section, {})[setting.key] = setting.parse_env(raw)
    return layer


def _cli_layer(overrides: Mapping[str, object]) -> dict[str, dict[str, object]]:
    layer: dict[str, dict[str, object]] = {}
    for dotted in sorted(overrides):
        setting = _SETTINGS_BY_DOTTED.get(dotted)
        if setting is None:
            raise ConfigLoadError(f"unknown config override {dotted!r}")
        layer.setdefault(setting.section, {})[setting.key] = overrides[dotted]
    return layer


def _absolute_path(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "dump_effective_config",
    "load_config",
    "normalize_paths",
]
