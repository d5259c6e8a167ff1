"""Constants for the escea library."""

from __future__ import annotations

from enum import IntEnum

# UDP service port used for discovery and direct device calls.
FIREPLACE_PORT: int = 3300

BROADCAST_ADDRESS: str = "255.255.255.255"

FRAME_SIZE: int = 15
START_BYTE: int = 0x47  # "G"
END_BYTE: int = 0x46  # "F"
MAX_DATA_SIZE: int = 10

# Settable temperature band (degrees Celsius, inclusive).
MIN_TEMPERATURE: int = 3
MAX_TEMPERATURE: int = 31

DEFAULT_TIMEOUT: float = 3.0
DISCOVERY_TIMEOUT: float = 3.0
REFRESH_INTERVAL: float = 30.0


class CommandCode(IntEnum):
    """Outbound command codes sent to a fireplace."""

    STATUS_PLEASE = 0x31
    FAN_BOOST_ON = 0x37
    FAN_BOOST_OFF = 0x38
    POWER_ON = 0x39
    POWER_OFF = 0x3A
    SEARCH_FOR_FIREPLACES = 0x50
    FLAME_EFFECT_OFF = 0x55
    FLAME_EFFECT_ON = 0x56
    SET_TEMPERATURE = 0x57


class ResponseCode(IntEnum):
    """Inbound response codes sent by a fireplace."""

    FLAME_EFFECT_OFF_ACK = 0x60
    FLAME_EFFECT_ON_ACK = 0x61
    TEMPERATURE_ACK = 0x66
    STATUS = 0x80
    FAN_BOOST_ON_ACK = 0x89
    FAN_BOOST_OFF_ACK = 0x8B
    POWER_ON_ACK = 0x8D
    POWER_OFF_ACK = 0x8F
    I_AM_A_FIRE = 0x90
