"""Presence-aware formatting for diagnostic ``describe()`` output.

These helpers never raise: an unset value renders as the ``not set`` sentinel
and anything unexpected falls back to ``repr``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence

from edgenode.constants import NOT_SET


def text(value: object) -> str:
    if value is None:
        return NOT_SET
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    if hasattr(value, "value") and isinstance(value.value, str):
        return value.value
    return repr(value)


def sequence_text(values: Sequence[object] | None) -> str:
    if values is None:
        return NOT_SET
    return "[" + ", ".join(text(item) for item in values) + "]"


def mapping_text(values: Mapping[str, object] | None) -> str:
    if values is None:
        return NOT_SET
    try:
        return json.dumps(values, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(dict(values))


__all__ = ["mapping_text", "sequence_text", "text"]
