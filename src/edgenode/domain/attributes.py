"""Typed key/value attribute descriptors attached to services.

Visibility rules consumed by the negotiation engine:

* only ``publishable`` attributes may appear in data sent to a counterparty;
* ``host_only`` attributes configure the node locally and never leave it.

The ``mappings`` payload is opaque here; its schema belongs to the attribute
``type``. It is carried as a JSON tagged union so it survives serialization
unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Final

from edgenode.domain import codec, rendering
from edgenode.domain.errors import InvalidAttribute

ATTRIBUTE_WIRE_FIELDS: Final[tuple[codec.WireField, ...]] = (
    codec.WireField("id", "id"),
    codec.WireField("type", "type"),
    codec.WireField("sensor_urls", "sensor_urls"),
    codec.WireField("label", "label"),
    codec.WireField("publishable", "publishable"),
    codec.WireField("host_only", "host_only"),
    codec.WireField("mappings", "mappings"),
)


@dataclass(slots=True)
class Attribute(codec.CanonicalModel):
    id: str | None = None
    type: str | None = None
    sensor_urls: tuple[str, ...] | None = None
    label: str | None = None
    publishable: bool | None = None
    host_only: bool | None = None
    mappings: dict[str, codec.JSONValue] | None = None

    def __post_init__(self) -> None:
        self.id = codec.as_optional_str(self.id, "Attribute.id")
        self.type = codec.as_optional_str(self.type, "Attribute.type")
        if self.sensor_urls is not None:
            self.sensor_urls = codec.as_str_tuple(self.sensor_urls, "Attribute.sensor_urls")
        self.label = codec.as_optional_str(self.label, "Attribute.label")
        self.publishable = codec.as_optional_bool(self.publishable, "Attribute.publishable")
        self.host_only = codec.as_optional_bool(self.host_only, "Attribute.host_only")
        if self.mappings is not None:
            self.mappings = codec.as_json_object(self.mappings, "Attribute.mappings")
        if self.publishable is True and self.host_only is True:
            raise InvalidAttribute(
                "Attribute: publishable and host_only are mutually exclusive"
                f" (type={rendering.text(self.type)})"
            )

    @property
    def is_publishable(self) -> bool:
        return self.publishable is True

    @property
    def is_host_only(self) -> bool:
        return self.host_only is True

    def applies_to(self, sensor_url: str) -> bool:
        """Whether the attribute covers ``sensor_url``; no URLs means all of them."""

        return not self.sensor_urls or sensor_url in self.sensor_urls

    def to_dict(self) -> dict[str, codec.JSONValue]:
        return codec.serialize_fields(self, ATTRIBUTE_WIRE_FIELDS, "Attribute")

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Attribute:
        parsed = codec.expect_object(
            data, "Attribute", optional=codec.wire_keys(ATTRIBUTE_WIRE_FIELDS)
        )
        raw_urls = parsed.get("sensor_urls")
        raw_mappings = parsed.get("mappings")
        return cls(
            id=codec.as_optional_str(parsed.get("id"), "Attribute.id"),
            type=codec.as_optional_str(parsed.get("type"), "Attribute.type"),
            sensor_urls=(
                None
                if raw_urls is None
                else codec.as_str_tuple(raw_urls, "Attribute.sensor_urls")
            ),
            label=codec.as_optional_str(parsed.get("label"), "Attribute.label"),
            publishable=codec.as_optional_bool(
                parsed.get("publishable"), "Attribute.publishable"
            ),
            host_only=codec.as_optional_bool(parsed.get("host_only"), "Attribute.host_only"),
            mappings=(
                None
                if raw_mappings is None
                else codec.as_json_object(raw_mappings, "Attribute.mappings")
            ),
        )

    def describe(self) -> str:
        return (
            f"Id: {rendering.text(self.id)}, "
            f"Type: {rendering.text(self.type)}, "
            f"SensorUrls: {rendering.sequence_text(self.sensor_urls)}, "
            f"Label: {rendering.text(self.label)}, "
            f"Publishable: {rendering.text(self.publishable)}, "
            f"HostOnly: {rendering.text(self.host_only)}, "
            f"Mappings: {rendering.mapping_text(self.mappings)}"
        )

    def __str__(self) -> str:
        return self.describe()


def new_attribute(
    type: str,
    sensor_urls: Sequence[str],
    label: str,
    publishable: bool,
    host_only: bool,
    mappings: Mapping[str, object],
) -> Attribute:
    """Build an attribute with every field set explicitly.

    Raises ``InvalidAttribute`` when ``type`` is blank or when the attribute is
    flagged both publishable and host-only.
    """

    if not isinstance(type, str) or not type.strip():
        raise InvalidAttribute("Attribute.type: required field is not set")
    try:
        return Attribute(
            type=type,
            sensor_urls=tuple(sensor_urls),
            label=label,
            publishable=publishable,
            host_only=host_only,
            mappings=dict(mappings),
        )
    except InvalidAttribute:
        raise
    except ValueError as exc:
        raise InvalidAttribute(str(exc)) from exc


def counterparty_attributes(attributes: Iterable[Attribute]) -> tuple[Attribute, ...]:
    """Attributes that may be disclosed to a negotiation counterparty."""

    return tuple(item for item in attributes if item.is_publishable and not item.is_host_only)


def local_attributes(attributes: Iterable[Attribute]) -> tuple[Attribute, ...]:
    """Attributes restricted to local configuration."""

    return tuple(item for item in attributes if item.is_host_only)


def counterparty_payload(attributes: Iterable[Attribute]) -> list[codec.JSONValue]:
    return [item.to_dict() for item in counterparty_attributes(attributes)]


__all__ = [
    "ATTRIBUTE_WIRE_FIELDS",
    "Attribute",
    "counterparty_attributes",
    "counterparty_payload",
    "local_attributes",
    "new_attribute",
]
