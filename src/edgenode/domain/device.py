"""Device identity record and the redaction boundary from the persisted record.

``from_persisted`` is the security boundary of the model. Fields are copied by
name; anything not listed there is omitted, so a new field on
:class:`~edgenode.persistence.records.PersistedDevice` stays private until it is
reviewed and added explicitly. The credential is never copied.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Final

from edgenode.domain import codec, rendering
from edgenode.domain.configstate import (
    Clock,
    ConfigPhase,
    ConfigurationState,
    describe_configuration,
    transition,
)
from edgenode.persistence.records import PersistedDevice
from edgenode.security.redaction import credential_presence

_WIRE_FIELDS: Final[tuple[codec.WireField, ...]] = (
    codec.WireField("id", "id"),
    codec.WireField("org", "organization"),
    codec.WireField("pattern", "pattern"),
    codec.WireField("name", "name", omit_when_unset=True),
    codec.WireField("credential", "token", omit_when_unset=True),
    codec.WireField(
        "credential_last_valid_time", "token_last_valid_time", omit_when_unset=True
    ),
    codec.WireField("credential_valid", "token_valid", omit_when_unset=True),
    codec.WireField("high_availability", "ha", omit_when_unset=True),
    codec.WireField("configuration", "configstate", omit_when_unset=True),
)


@dataclass(slots=True)
class DeviceIdentityRecord(codec.CanonicalModel):
    """Identity, credential and configuration state of one edge device.

    ``credential`` is only present on registration requests; values returned to
    API callers come from :func:`from_persisted` or :meth:`redacted` and never
    carry it.
    """

    id: str | None = None
    org: str | None = None
    pattern: str | None = None
    name: str | None = None
    credential: str | None = None
    credential_last_valid_time: int | None = None
    credential_valid: bool | None = None
    high_availability: bool | None = None
    configuration: ConfigurationState | None = None

    def __post_init__(self) -> None:
        self.id = codec.as_optional_str(self.id, "DeviceIdentityRecord.id")
        self.org = codec.as_optional_str(self.org, "DeviceIdentityRecord.organization")
        self.pattern = codec.as_optional_str(self.pattern, "DeviceIdentityRecord.pattern")
        self.name = codec.as_optional_str(self.name, "DeviceIdentityRecord.name")
        self.credential = codec.as_optional_str(self.credential, "DeviceIdentityRecord.token")
        self.credential_last_valid_time = codec.as_optional_int(
            self.credential_last_valid_time,
            "DeviceIdentityRecord.token_last_valid_time",
            minimum=0,
        )
        self.credential_valid = codec.as_optional_bool(
            self.credential_valid, "DeviceIdentityRecord.token_valid"
        )
        self.high_availability = codec.as_optional_bool(
            self.high_availability, "DeviceIdentityRecord.ha"
        )
        if self.configuration is not None and not isinstance(
            self.configuration, ConfigurationState
        ):
            codec.fail(
                "DeviceIdentityRecord.configstate",
                f"expected ConfigurationState, got {type(self.configuration).__name__}",
            )

    @property
    def has_credential(self) -> bool:
        return bool(self.credential)

    def redacted(self) -> DeviceIdentityRecord:
        """Copy of this record without the credential, safe to return to callers."""

        return replace(self, credential=None)

    def to_dict(self) -> dict[str, codec.JSONValue]:
        return codec.serialize_fields(self, _WIRE_FIELDS, "DeviceIdentityRecord")

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> DeviceIdentityRecord:
        parsed = codec.expect_object(
            data, "DeviceIdentityRecord", optional=codec.wire_keys(_WIRE_FIELDS)
        )
        raw_config = parsed.get("configstate")
        return cls(
            id=codec.as_optional_str(parsed.get("id"), "DeviceIdentityRecord.id"),
            org=codec.as_optional_str(
                parsed.get("organization"), "DeviceIdentityRecord.organization"
            ),
            pattern=codec.as_optional_str(parsed.get("pattern"), "DeviceIdentityRecord.pattern"),
            name=codec.as_optional_str(parsed.get("name"), "DeviceIdentityRecord.name"),
            credential=codec.as_optional_str(parsed.get("token"), "DeviceIdentityRecord.token"),
            credential_last_valid_time=codec.as_optional_int(
                parsed.get("token_last_valid_time"),
                "DeviceIdentityRecord.token_last_valid_time",
                minimum=0,
            ),
            credential_valid=codec.as_optional_bool(
                parsed.get("token_valid"), "DeviceIdentityRecord.token_valid"
            ),
            high_availability=codec.as_optional_bool(
                parsed.get("ha"), "DeviceIdentityRecord.ha"
            ),
            configuration=(
                None
                if raw_config is None
                else ConfigurationState.from_dict(
                    codec.expect_object(
                        raw_config,
                        "DeviceIdentityRecord.configstate",
                        optional={"state", "last_update_time"},
                    )
                )
            ),
        )

    def describe(self) -> str:
        return (
            f"Id: {rendering.text(self.id)}, "
            f"Org: {rendering.text(self.org)}, "
            f"Pattern: {rendering.text(self.pattern)}, "
            f"Name: {rendering.text(self.name)}, "
            f"Token: [{credential_presence(self.credential)}], "
            f"TokenLastValidTime: {rendering.text(self.credential_last_valid_time)}, "
            f"TokenValid: {rendering.text(self.credential_valid)}, "
            f"HA: {rendering.text(self.high_availability)}, "
            f"{describe_configuration(self.configuration)}"
        )

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return f"DeviceIdentityRecord({self.describe()})"


def from_persisted(record: PersistedDevice) -> DeviceIdentityRecord:
    """Convert the canonical persisted record into an API-facing value.

    The token is deliberately not carried over. The stored configuration goes
    through :meth:`ConfigurationState.from_store`, so a non-initial phase
    without a stamp raises ``MissingRequiredField``. Empty text fields are
    copied as empty strings, not as unset.
    """

    config = record.config
    configuration = ConfigurationState.from_store(config.state, config.last_update_time)
    return DeviceIdentityRecord(
        id=record.id,
        org=record.org,
        pattern=record.pattern,
        name=record.name,
        credential_valid=record.token_valid,
        credential_last_valid_time=record.token_last_valid_time,
        high_availability=record.ha,
        configuration=configuration,
    )


def advance_configuration(
    device: DeviceIdentityRecord,
    target: ConfigPhase | str,
    *,
    now: int | None = None,
    clock: Clock = time.time,
) -> DeviceIdentityRecord:
    """Return a copy of ``device`` whose configuration moved to ``target``.

    A device without configuration starts from the initial phase.
    """

    current = device.configuration if device.configuration is not None else ConfigurationState()
    return replace(device, configuration=transition(current, target, now=now, clock=clock))


__all__ = [
    "DeviceIdentityRecord",
    "advance_configuration",
    "from_persisted",
]
