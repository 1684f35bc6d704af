from __future__ import annotations

import pytest

from edgenode.constants import NOT_SET
from edgenode.domain import rendering
from edgenode.domain.attributes import Attribute
from edgenode.domain.configstate import ConfigPhase, ConfigurationState
from edgenode.domain.device import DeviceIdentityRecord
from edgenode.domain.services import ServiceDescriptor


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, NOT_SET),
        (True, "true"),
        (False, "false"),
        ("", ""),
        (0, "0"),
        (1.5, "1.5"),
        (ConfigPhase.FAILED, "failed"),
    ],
)
def test_text_renders_presence_aware_values(value: object, expected: str) -> None:
    assert rendering.text(value) == expected


def test_collections_render_sentinel_or_content() -> None:
    assert rendering.sequence_text(None) == NOT_SET
    assert rendering.sequence_text(()) == "[]"
    assert rendering.sequence_text(("a", None)) == f"[a, {NOT_SET}]"
    assert rendering.mapping_text(None) == NOT_SET
    assert rendering.mapping_text({}) == "{}"
    assert rendering.mapping_text({"b": 1, "a": [True]}) == '{"a":[true],"b":1}'


def test_unserializable_mapping_falls_back_to_repr() -> None:
    rendered = rendering.mapping_text({"k": {1, 2}})
    assert rendered.startswith("{'k':")


@pytest.mark.parametrize(
    "instance",
    [ConfigurationState(phase=None), Attribute(), ServiceDescriptor(), DeviceIdentityRecord()],
    ids=["configstate", "attribute", "service", "device"],
)
def test_describe_is_total_on_zero_values(instance: object) -> None:
    rendered = instance.describe()  # type: ignore[attr-defined]

    assert NOT_SET in rendered
    assert str(instance) == rendered
