"""Canonical JSON helpers shared by every wire model.

Models declare their wire layout as a tuple of :class:`WireField` entries. A
field tagged ``omit_when_unset`` disappears from the serialized object when its
value is ``None``; every other field is emitted as an explicit ``null``. The
distinction is part of the compatibility contract: API error messages key off
field presence, not just value.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import NoReturn, TypeVar

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

TModel = TypeVar("TModel", bound="CanonicalModel")
TEnum = TypeVar("TEnum", bound=Enum)

MAX_TEXT = 8192
MAX_JSON_DEPTH = 16
MAX_JSON_COLLECTION = 512


@dataclass(frozen=True, slots=True)
class WireField:
    """Mapping between a model attribute and its serialized key."""

    attr: str
    key: str
    omit_when_unset: bool = False


class CanonicalModel:
    """Mixin for canonical dict/json serialization."""

    def to_dict(self) -> dict[str, JSONValue]:
        fail(self.__class__.__name__, "to_dict is not implemented for this model type")

    def to_json(self) -> str:
        return canonical_json(self.to_dict())

    @classmethod
    def from_json(cls: type[TModel], raw: str) -> TModel:
        if not isinstance(raw, str):
            fail(cls.__name__, f"expected JSON string, got {type(raw).__name__}")
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            fail(cls.__name__, f"invalid JSON: {exc}")
        if not isinstance(parsed, dict):
            fail(cls.__name__, "JSON root must be an object")
        return cls.from_dict(parsed)

    @classmethod
    def from_dict(cls: type[TModel], data: Mapping[str, object]) -> TModel:
        fail(cls.__name__, "from_dict is not implemented for this model type")


def fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


def canonical_json(value: JSONValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def wire_keys(wire_fields: tuple[WireField, ...]) -> set[str]:
    return {item.key for item in wire_fields}


def serialize_fields(
    model: object,
    wire_fields: tuple[WireField, ...],
    path: str,
) -> dict[str, JSONValue]:
    out: dict[str, JSONValue] = {}
    for item in wire_fields:
        value = getattr(model, item.attr)
        if value is None and item.omit_when_unset:
            continue
        out[item.key] = serialize_value(value, f"{path}.{item.key}")
    return out


def serialize_value(value: object, path: str) -> JSONValue:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            fail(path, "float values must be finite")
        return value
    if isinstance(value, str):
        return value
    if isinstance(value, Enum):
        raw = value.value
        if not isinstance(raw, str):
            fail(path, "enum value must be string")
        return raw
    if isinstance(value, CanonicalModel):
        return value.to_dict()
    if isinstance(value, (tuple, list)):
        return [serialize_value(item, f"{path}[]") for item in value]
    if isinstance(value, Mapping):
        out: dict[str, JSONValue] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                fail(path, "dict keys must be strings")
            out[key] = serialize_value(item, f"{path}.{key}")
        return out

    fail(path, f"cannot serialize value of type {type(value).__name__}")


def expect_object(
    value: object,
    path: str,
    *,
    required: set[str] | None = None,
    optional: set[str] | None = None,
) -> dict[str, object]:
    if not isinstance(value, Mapping):
        fail(path, f"expected object, got {type(value).__name__}")

    parsed: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            fail(path, f"object keys must be strings, got {type(key).__name__}")
        parsed[key] = item

    required_keys = required or set()
    allowed = required_keys | (optional or set())
    unknown = sorted(key for key in parsed if key not in allowed)
    if unknown:
        fail(path, f"unexpected fields: {unknown}")

    missing = sorted(key for key in required_keys if key not in parsed)
    if missing:
        fail(path, f"missing required fields: {missing}")

    return parsed


def as_str(
    value: object,
    path: str,
    *,
    min_len: int = 0,
    max_len: int = MAX_TEXT,
    strip: bool = False,
) -> str:
    if not isinstance(value, str):
        fail(path, f"expected string, got {type(value).__name__}")
    normalized = value.strip() if strip else value
    if len(normalized) < min_len:
        fail(path, f"must be at least {min_len} character(s)")
    if len(normalized) > max_len:
        fail(path, f"must be <= {max_len} characters")
    return normalized


def as_optional_str(value: object, path: str, *, max_len: int = MAX_TEXT) -> str | None:
    if value is None:
        return None
    return as_str(value, path, max_len=max_len)


def as_bool(value: object, path: str) -> bool:
    if isinstance(value, bool):
        return value
    fail(path, f"expected boolean, got {type(value).__name__}")


def as_optional_bool(value: object, path: str) -> bool | None:
    if value is None:
        return None
    return as_bool(value, path)


def as_int(value: object, path: str, *, minimum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        fail(path, f"expected integer, got {type(value).__name__}")
    if minimum is not None and value < minimum:
        fail(path, f"must be >= {minimum}")
    return value


def as_optional_int(value: object, path: str, *, minimum: int | None = None) -> int | None:
    if value is None:
        return None
    return as_int(value, path, minimum=minimum)


def as_enum(enum_type: type[TEnum], value: object, path: str) -> TEnum:
    if isinstance(value, enum_type):
        return value
    if not isinstance(value, str):
        fail(path, f"expected string enum value, got {type(value).__name__}")
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(sorted(item.value for item in enum_type))
        fail(path, f"invalid value {value!r}; expected one of: {allowed}")


def as_sequence(value: object, path: str) -> list[object]:
    if isinstance(value, (list, tuple)):
        return list(value)
    fail(path, f"expected array, got {type(value).__name__}")


def as_str_tuple(value: object, path: str, *, max_len: int = MAX_TEXT) -> tuple[str, ...]:
    values = as_sequence(value, path)
    if len(values) > MAX_JSON_COLLECTION:
        fail(path, f"too many items (>{MAX_JSON_COLLECTION})")
    return tuple(
        as_str(item, f"{path}[{index}]", min_len=1, max_len=max_len)
        for index, item in enumerate(values)
    )


def as_json_value(value: object, path: str, *, depth: int = 0) -> JSONValue:
    if depth > MAX_JSON_DEPTH:
        fail(path, f"JSON nesting exceeds max depth {MAX_JSON_DEPTH}")

    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            fail(path, "float values must be finite")
        return value
    if isinstance(value, str):
        if len(value) > MAX_TEXT:
            fail(path, f"string exceeds max length {MAX_TEXT}")
        return value
    if isinstance(value, (list, tuple)):
        if len(value) > MAX_JSON_COLLECTION:
            fail(path, f"list length exceeds {MAX_JSON_COLLECTION}")
        return [
            as_json_value(item, f"{path}[{idx}]", depth=depth + 1)
            for idx, item in enumerate(value)
        ]
    if isinstance(value, Mapping):
        if len(value) > MAX_JSON_COLLECTION:
            fail(path, f"object size exceeds {MAX_JSON_COLLECTION}")
        parsed: dict[str, JSONValue] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                fail(path, f"object key must be string, got {type(key).__name__}")
            parsed[key] = as_json_value(item, f"{path}.{key}", depth=depth + 1)
        return parsed

    fail(path, f"value is not JSON-serializable ({type(value).__name__})")


def as_json_object(value: object, path: str) -> dict[str, JSONValue]:
    parsed = as_json_value(value, path)
    if not isinstance(parsed, dict):
        fail(path, "expected JSON object")
    return parsed


__all__ = [
    "CanonicalModel",
    "JSONScalar",
    "JSONValue",
    "WireField",
    "as_bool",
    "as_enum",
    "as_int",
    "as_json_object",
    "as_json_value",
    "as_optional_bool",
    "as_optional_int",
    "as_optional_str",
    "as_sequence",
    "as_str",
    "as_str_tuple",
    "canonical_json",
    "expect_object",
    "fail",
    "serialize_fields",
    "serialize_value",
    "wire_keys",
]
