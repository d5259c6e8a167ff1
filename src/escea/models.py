"""Data models for the escea library."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# ---------------------------------------------------------------------------
# Wire frame
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Frame:
    """A decoded 15-byte wire frame.

    ``data`` is always the full 10-byte data region; ``data_length`` is the
    length byte as sent, which devices do not always keep consistent with
    the meaningful part of the payload.
    """

    code: int
    data_length: int
    data: bytes
    checksum: int

    @property
    def payload(self) -> bytes:
        """Return the data bytes covered by the length byte."""
        return self.data[: self.data_length]


# ---------------------------------------------------------------------------
# Fireplace identity and state
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DeviceIdentity:
    """Serial number and PIN that identify a physical fireplace."""

    serial: int
    pin: int


@dataclass(frozen=True, slots=True)
class DiscoveredFireplace:
    """A fireplace that answered a discovery broadcast."""

    address: str
    port: int
    identity: DeviceIdentity


@dataclass(frozen=True, slots=True)
class Status:
    """Snapshot of a fireplace's reported state."""

    has_timers: bool
    is_on: bool
    fan_boost_is_on: bool
    flame_effect_is_on: bool
    target_temperature: int
    current_temperature: int


# ---------------------------------------------------------------------------
# Response payloads – one class per response code
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DiscoveryReply:
    """Reply to a search broadcast ("I am a fire")."""

    identity: DeviceIdentity


@dataclass(frozen=True, slots=True)
class StatusReply:
    """Reply to a status query."""

    status: Status


@dataclass(frozen=True, slots=True)
class PowerOnAck:
    """Acknowledgement of power on."""


@dataclass(frozen=True, slots=True)
class PowerOffAck:
    """Acknowledgement of power off."""


@dataclass(frozen=True, slots=True)
class FanBoostOnAck:
    """Acknowledgement of fan boost on."""


@dataclass(frozen=True, slots=True)
class FanBoostOffAck:
    """Acknowledgement of fan boost off."""


@dataclass(frozen=True, slots=True)
class FlameEffectOnAck:
    """Acknowledgement of flame effect on."""


@dataclass(frozen=True, slots=True)
class FlameEffectOffAck:
    """Acknowledgement of flame effect off."""


@dataclass(frozen=True, slots=True)
class TemperatureAck:
    """Acknowledgement of a temperature change."""


Payload = (
    DiscoveryReply
    | StatusReply
    | PowerOnAck
    | PowerOffAck
    | FanBoostOnAck
    | FanBoostOffAck
    | FlameEffectOnAck
    | FlameEffectOffAck
    | TemperatureAck
)

# ---------------------------------------------------------------------------
# Controller instructions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SetTemperatureInstruction:
    """Set the target temperature (degrees Celsius)."""

    temperature: int


@dataclass(frozen=True, slots=True)
class SetPowerInstruction:
    """Switch the fireplace on or off."""

    on: bool


@dataclass(frozen=True, slots=True)
class SetFanBoostInstruction:
    """Switch fan boost on or off."""

    on: bool


@dataclass(frozen=True, slots=True)
class SetFlameEffectInstruction:
    """Switch the flame effect on or off."""

    on: bool


Instruction = (
    SetTemperatureInstruction
    | SetPowerInstruction
    | SetFanBoostInstruction
    | SetFlameEffectInstruction
)


class ControllerState(Enum):
    """Lifecycle of a fireplace controller."""

    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"
