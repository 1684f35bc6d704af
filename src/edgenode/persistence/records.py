"""Canonical device record as held by the storage collaborator.

The store keeps concrete values for every field. Text fields default to the
empty string, which stays an empty string in API-facing values, and ``0`` is a
timestamp that was never stamped. These records are the source of truth;
API-facing values are derived from them through
:func:`edgenode.domain.device.from_persisted`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from edgenode.domain import codec
from edgenode.domain.configstate import ConfigPhase

_CONFIGSTATE_KEYS = {"state", "last_update_time"}
_DEVICE_KEYS = {
    "id",
    "org",
    "pattern",
    "name",
    "token",
    "token_last_valid_time",
    "token_valid",
    "ha",
    "config",
}


@dataclass(frozen=True, slots=True)
class PersistedConfigstate:
    state: ConfigPhase = ConfigPhase.UNCONFIGURED
    last_update_time: int = 0

    def __post_init__(self) -> None:
        # The store writes "" for a device that never started registration.
        state = ConfigPhase.UNCONFIGURED if self.state == "" else self.state
        object.__setattr__(
            self, "state", codec.as_enum(ConfigPhase, state, "PersistedConfigstate.state")
        )
        object.__setattr__(
            self,
            "last_update_time",
            codec.as_int(
                self.last_update_time, "PersistedConfigstate.last_update_time", minimum=0
            ),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> PersistedConfigstate:
        parsed = codec.expect_object(data, "PersistedConfigstate", optional=_CONFIGSTATE_KEYS)
        return cls(
            state=codec.as_enum(
                ConfigPhase,
                parsed.get("state") or ConfigPhase.UNCONFIGURED,
                "PersistedConfigstate.state",
            ),
            last_update_time=codec.as_int(
                parsed.get("last_update_time", 0),
                "PersistedConfigstate.last_update_time",
                minimum=0,
            ),
        )


@dataclass(frozen=True, slots=True)
class PersistedDevice:
    id: str
    org: str
    pattern: str
    name: str
    token: str
    token_last_valid_time: int
    token_valid: bool
    ha: bool
    config: PersistedConfigstate = field(default_factory=PersistedConfigstate)

    def __post_init__(self) -> None:
        for name in ("id", "org", "pattern", "name", "token"):
            codec.as_str(getattr(self, name), f"PersistedDevice.{name}")
        codec.as_int(
            self.token_last_valid_time, "PersistedDevice.token_last_valid_time", minimum=0
        )
        codec.as_bool(self.token_valid, "PersistedDevice.token_valid")
        codec.as_bool(self.ha, "PersistedDevice.ha")
        if not isinstance(self.config, PersistedConfigstate):
            codec.fail(
                "PersistedDevice.config",
                f"expected PersistedConfigstate, got {type(self.config).__name__}",
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> PersistedDevice:
        parsed = codec.expect_object(
            data,
            "PersistedDevice",
            required={"id", "org"},
            optional=_DEVICE_KEYS,
        )
        raw_config = parsed.get("config")
        return cls(
            id=codec.as_str(parsed["id"], "PersistedDevice.id"),
            org=codec.as_str(parsed["org"], "PersistedDevice.org"),
            pattern=codec.as_str(parsed.get("pattern", ""), "PersistedDevice.pattern"),
            name=codec.as_str(parsed.get("name", ""), "PersistedDevice.name"),
            token=codec.as_str(parsed.get("token", ""), "PersistedDevice.token"),
            token_last_valid_time=codec.as_int(
                parsed.get("token_last_valid_time", 0),
                "PersistedDevice.token_last_valid_time",
                minimum=0,
            ),
            token_valid=codec.as_bool(
                parsed.get("token_valid", False), "PersistedDevice.token_valid"
            ),
            ha=codec.as_bool(parsed.get("ha", False), "PersistedDevice.ha"),
            config=(
                PersistedConfigstate()
                if raw_config is None
                else PersistedConfigstate.from_dict(
                    codec.expect_object(
                        raw_config, "PersistedDevice.config", optional=_CONFIGSTATE_KEYS
                    )
                )
            ),
        )


__all__ = ["PersistedConfigstate", "PersistedDevice"]
