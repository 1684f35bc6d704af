"""Device configuration lifecycle: phases, transition table and state values."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Final

import structlog

from edgenode.constants import NOT_SET
from edgenode.domain import codec, rendering
from edgenode.domain.errors import InvalidTransition, MissingRequiredField

Clock = Callable[[], float]


class ConfigPhase(StrEnum):
    UNCONFIGURED = "unconfigured"
    CONFIGURING = "configuring"
    CONFIGURED = "configured"
    FAILED = "failed"


INITIAL_PHASE: Final[ConfigPhase] = ConfigPhase.UNCONFIGURED

_TRANSITIONS: Final[Mapping[ConfigPhase, frozenset[ConfigPhase]]] = {
    ConfigPhase.UNCONFIGURED: frozenset({ConfigPhase.CONFIGURING, ConfigPhase.FAILED}),
    ConfigPhase.CONFIGURING: frozenset({ConfigPhase.CONFIGURED, ConfigPhase.FAILED}),
    # configured -> configuring is explicit re-registration.
    ConfigPhase.CONFIGURED: frozenset({ConfigPhase.CONFIGURING, ConfigPhase.FAILED}),
    ConfigPhase.FAILED: frozenset(),
}

_WIRE_FIELDS: Final[tuple[codec.WireField, ...]] = (
    codec.WireField("phase", "state"),
    codec.WireField("last_update_time", "last_update_time", omit_when_unset=True),
)

_logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class ConfigurationState(codec.CanonicalModel):
    """Coarse lifecycle phase of a device and the epoch second it last changed.

    ``phase=None`` means the phase was not reported (request payloads may omit
    it); the state machine treats it as the initial phase.

    Direct construction and :meth:`from_dict` accept a phase without a stamp
    because a request payload names the phase it asks for, not one that was
    reached. Reached states come from :func:`transition` and
    :meth:`from_store`, which always pair a non-initial phase with a stamp.
    """

    phase: ConfigPhase | None = INITIAL_PHASE
    last_update_time: int | None = None

    def __post_init__(self) -> None:
        if self.phase is not None:
            self.phase = codec.as_enum(ConfigPhase, self.phase, "ConfigurationState.state")
        self.last_update_time = codec.as_optional_int(
            self.last_update_time, "ConfigurationState.last_update_time", minimum=0
        )

    @property
    def effective_phase(self) -> ConfigPhase:
        return INITIAL_PHASE if self.phase is None else self.phase

    def to_dict(self) -> dict[str, codec.JSONValue]:
        return codec.serialize_fields(self, _WIRE_FIELDS, "ConfigurationState")

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ConfigurationState:
        parsed = codec.expect_object(
            data, "ConfigurationState", optional=codec.wire_keys(_WIRE_FIELDS)
        )
        raw_state = parsed.get("state")
        return cls(
            phase=(
                None
                if raw_state is None
                else codec.as_enum(ConfigPhase, raw_state, "ConfigurationState.state")
            ),
            last_update_time=codec.as_optional_int(
                parsed.get("last_update_time"),
                "ConfigurationState.last_update_time",
                minimum=0,
            ),
        )

    @classmethod
    def from_store(cls, phase: ConfigPhase, last_update_time: int) -> ConfigurationState:
        """Build a reached state from store values, where ``0`` is never stamped.

        The initial phase never carries a stamp. Any other phase requires one
        and raises ``MissingRequiredField`` without it.
        """

        phase = codec.as_enum(ConfigPhase, phase, "PersistedConfigstate.state")
        if phase is INITIAL_PHASE:
            return cls(phase=phase, last_update_time=None)
        if last_update_time == 0:
            raise MissingRequiredField("PersistedConfigstate", "last_update_time")
        return cls(phase=phase, last_update_time=last_update_time)

    def describe(self) -> str:
        return (
            f"State: {rendering.text(self.phase)}, "
            f"Time: {rendering.text(self.last_update_time)}"
        )

    def __str__(self) -> str:
        return self.describe()


def describe_configuration(state: ConfigurationState | None) -> str:
    if state is None:
        return f"Configstate: {NOT_SET}"
    return state.describe()


def can_transition(current: ConfigPhase | None, target: ConfigPhase) -> bool:
    source = INITIAL_PHASE if current is None else current
    return target in _TRANSITIONS[source]


def allowed_targets(current: ConfigPhase | None) -> frozenset[ConfigPhase]:
    source = INITIAL_PHASE if current is None else current
    return _TRANSITIONS[source]


def transition(
    current: ConfigurationState,
    target: ConfigPhase | str,
    *,
    now: int | None = None,
    clock: Clock = time.time,
) -> ConfigurationState:
    """Move ``current`` to ``target`` and return the new, time-stamped state.

    Raises ``InvalidTransition`` when the edge is not in the transition table.
    The stamp is never earlier than the previous one, so a clock stepping
    backwards cannot reorder recorded transitions. Callers hold the per-device
    lock; this function does no locking of its own.
    """

    source = current.effective_phase
    try:
        requested = ConfigPhase(target)
    except ValueError:
        raise InvalidTransition(source.value, str(target)) from None

    if not can_transition(source, requested):
        _logger.warning(
            "configstate_transition_rejected",
            current=source.value,
            target=requested.value,
        )
        raise InvalidTransition(source.value, requested.value)

    stamp = int(clock()) if now is None else codec.as_int(now, "transition.now", minimum=0)
    if current.last_update_time is not None and stamp < current.last_update_time:
        stamp = current.last_update_time

    _logger.info(
        "configstate_transition",
        current=source.value,
        target=requested.value,
        last_update_time=stamp,
    )
    return ConfigurationState(phase=requested, last_update_time=stamp)


__all__ = [
    "Clock",
    "ConfigPhase",
    "ConfigurationState",
    "INITIAL_PHASE",
    "allowed_targets",
    "can_transition",
    "describe_configuration",
    "transition",
]
