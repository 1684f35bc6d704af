"""Service descriptors: which service versions a node is configured for, and how."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final

from edgenode.constants import DEFAULT_ACTIVE_UPGRADE, DEFAULT_AUTO_UPGRADE, DEFAULT_VERSION_RANGE
from edgenode.domain import codec, rendering
from edgenode.domain.attributes import ATTRIBUTE_WIRE_FIELDS, Attribute, counterparty_attributes
from edgenode.domain.errors import MissingRequiredField
from edgenode.domain.versions import VersionRange, validate_version_range

# Field names are part of the API contract; error messages elsewhere refer to them.
_WIRE_FIELDS: Final[tuple[codec.WireField, ...]] = (
    codec.WireField("url", "url"),
    codec.WireField("org", "organization"),
    codec.WireField("name", "name"),
    codec.WireField("arch", "arch"),
    codec.WireField("version_range", "versionRange"),
    codec.WireField("auto_upgrade", "auto_upgrade"),
    codec.WireField("active_upgrade", "active_upgrade"),
    codec.WireField("attributes", "attributes"),
)
_ATTRIBUTE_KEYS: Final[set[str]] = codec.wire_keys(ATTRIBUTE_WIRE_FIELDS)


@dataclass(slots=True)
class ServiceDescriptor(codec.CanonicalModel):
    """Configuration for one service, scoped to an org, arch and version range.

    ``url``, ``org``, ``arch`` and ``version_range`` together select at most one
    active configuration per device; the resolver enforces that using the
    values exposed here. ``arch`` may be a platform alias and is normalized
    before comparison.
    """

    url: str | None = None
    org: str | None = None
    name: str | None = None
    arch: str | None = None
    version_range: str | None = None
    auto_upgrade: bool | None = None
    active_upgrade: bool | None = None
    attributes: tuple[Attribute, ...] | None = None

    def __post_init__(self) -> None:
        self.url = codec.as_optional_str(self.url, "ServiceDescriptor.url")
        self.org = codec.as_optional_str(self.org, "ServiceDescriptor.organization")
        self.name = codec.as_optional_str(self.name, "ServiceDescriptor.name")
        self.arch = codec.as_optional_str(self.arch, "ServiceDescriptor.arch")
        self.version_range = codec.as_optional_str(
            self.version_range, "ServiceDescriptor.versionRange"
        )
        self.auto_upgrade = codec.as_optional_bool(
            self.auto_upgrade, "ServiceDescriptor.auto_upgrade"
        )
        self.active_upgrade = codec.as_optional_bool(
            self.active_upgrade, "ServiceDescriptor.active_upgrade"
        )
        if self.attributes is not None:
            items = codec.as_sequence(self.attributes, "ServiceDescriptor.attributes")
            for index, item in enumerate(items):
                if not isinstance(item, Attribute):
                    codec.fail(
                        f"ServiceDescriptor.attributes[{index}]",
                        f"expected Attribute, got {type(item).__name__}",
                    )
            self.attributes = tuple(items)

    @property
    def effective_auto_upgrade(self) -> bool:
        return DEFAULT_AUTO_UPGRADE if self.auto_upgrade is None else self.auto_upgrade

    @property
    def effective_active_upgrade(self) -> bool:
        return DEFAULT_ACTIVE_UPGRADE if self.active_upgrade is None else self.active_upgrade

    @property
    def effective_version_range(self) -> VersionRange:
        return VersionRange.parse(
            DEFAULT_VERSION_RANGE if self.version_range is None else self.version_range
        )

    def require_identity(self) -> tuple[str, str]:
        """Return ``(org, url)``, raising ``MissingRequiredField`` when either is unset."""

        if self.url is None or not self.url.strip():
            raise MissingRequiredField("ServiceDescriptor", "url")
        if self.org is None or not self.org.strip():
            raise MissingRequiredField("ServiceDescriptor", "organization")
        return self.org, self.url

    def add_attribute(self, attribute: Attribute) -> ServiceDescriptor:
        """Return a copy with ``attribute`` appended."""

        return ServiceDescriptor(
            url=self.url,
            org=self.org,
            name=self.name,
            arch=self.arch,
            version_range=self.version_range,
            auto_upgrade=self.auto_upgrade,
            active_upgrade=self.active_upgrade,
            attributes=(*(self.attributes or ()), attribute),
        )

    def counterparty_attributes(self) -> tuple[Attribute, ...]:
        return counterparty_attributes(self.attributes or ())

    def to_dict(self) -> dict[str, codec.JSONValue]:
        return codec.serialize_fields(self, _WIRE_FIELDS, "ServiceDescriptor")

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ServiceDescriptor:
        parsed = codec.expect_object(
            data, "ServiceDescriptor", optional=codec.wire_keys(_WIRE_FIELDS)
        )
        raw_attributes = parsed.get("attributes")
        attributes: tuple[Attribute, ...] | None = None
        if raw_attributes is not None:
            attributes = tuple(
                Attribute.from_dict(
                    codec.expect_object(
                        item,
                        f"ServiceDescriptor.attributes[{index}]",
                        optional=_ATTRIBUTE_KEYS,
                    )
                )
                for index, item in enumerate(
                    codec.as_sequence(raw_attributes, "ServiceDescriptor.attributes")
                )
            )
        return cls(
            url=codec.as_optional_str(parsed.get("url"), "ServiceDescriptor.url"),
            org=codec.as_optional_str(
                parsed.get("organization"), "ServiceDescriptor.organization"
            ),
            name=codec.as_optional_str(parsed.get("name"), "ServiceDescriptor.name"),
            arch=codec.as_optional_str(parsed.get("arch"), "ServiceDescriptor.arch"),
            version_range=codec.as_optional_str(
                parsed.get("versionRange"), "ServiceDescriptor.versionRange"
            ),
            auto_upgrade=codec.as_optional_bool(
                parsed.get("auto_upgrade"), "ServiceDescriptor.auto_upgrade"
            ),
            active_upgrade=codec.as_optional_bool(
                parsed.get("active_upgrade"), "ServiceDescriptor.active_upgrade"
            ),
            attributes=attributes,
        )

    def describe(self) -> str:
        attributes = (
            rendering.text(None)
            if self.attributes is None
            else "[" + "; ".join(item.describe() for item in self.attributes) + "]"
        )
        return (
            f"Url: {rendering.text(self.url)}, "
            f"Org: {rendering.text(self.org)}, "
            f"Name: {rendering.text(self.name)}, "
            f"Arch: {rendering.text(self.arch)}, "
            f"VersionRange: {rendering.text(self.version_range)}, "
            f"AutoUpgrade: {rendering.text(self.auto_upgrade)}, "
            f"ActiveUpgrade: {rendering.text(self.active_upgrade)}, "
            f"Attributes: {attributes}"
        )

    def __str__(self) -> str:
        return self.describe()


def new_service_descriptor(
    url: str,
    org: str,
    name: str,
    arch: str,
    version_range: str,
) -> ServiceDescriptor:
    """Programmatic constructor with the default upgrade policy and no attributes."""

    validate_version_range(version_range)
    return ServiceDescriptor(
        url=url,
        org=org,
        name=name,
        arch=arch,
        version_range=version_range,
        auto_upgrade=DEFAULT_AUTO_UPGRADE,
        active_upgrade=DEFAULT_ACTIVE_UPGRADE,
        attributes=(),
    )


__all__ = ["ServiceDescriptor", "new_service_descriptor"]
