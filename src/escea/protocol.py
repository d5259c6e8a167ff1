"""Binary wire protocol encoding and decoding for Escea fireplaces."""

from __future__ import annotations

import logging
import struct
from typing import assert_never

from escea.const import (
    END_BYTE,
    FRAME_SIZE,
    MAX_DATA_SIZE,
    START_BYTE,
    CommandCode,
    ResponseCode,
)
from escea.exceptions import EncodeError, InvalidFrameError, UnknownResponseCodeError
from escea.models import (
    DeviceIdentity,
    DiscoveryReply,
    FanBoostOffAck,
    FanBoostOnAck,
    FlameEffectOffAck,
    FlameEffectOnAck,
    Frame,
    Payload,
    PowerOffAck,
    PowerOnAck,
    Status,
    StatusReply,
    TemperatureAck,
)

_LOGGER = logging.getLogger(__name__)

# Checksummed span: command code, data length and the full data region.
_CHECKSUM_START = 1
_CHECKSUM_END = 13
_CHECKSUM_OFFSET = 13

_IDENTITY_STRUCT = struct.Struct(">IH")
_STATUS_STRUCT = struct.Struct(">????BB")

# Payload type each command must be answered with.
EXPECTED_PAYLOAD: dict[CommandCode, type[Payload]] = {
    CommandCode.STATUS_PLEASE: StatusReply,
    CommandCode.POWER_ON: PowerOnAck,
    CommandCode.POWER_OFF: PowerOffAck,
    CommandCode.FAN_BOOST_ON: FanBoostOnAck,
    CommandCode.FAN_BOOST_OFF: FanBoostOffAck,
    CommandCode.FLAME_EFFECT_ON: FlameEffectOnAck,
    CommandCode.FLAME_EFFECT_OFF: FlameEffectOffAck,
    CommandCode.SET_TEMPERATURE: TemperatureAck,
    CommandCode.SEARCH_FOR_FIREPLACES: DiscoveryReply,
}


# ---------------------------------------------------------------------------
# Frame codec
# ---------------------------------------------------------------------------


def checksum(raw: bytes) -> int:
    """Return the checksum of a 15-byte frame (sum of bytes 1..12, mod 256)."""
    return sum(raw[_CHECKSUM_START:_CHECKSUM_END]) & 0xFF


def encode_frame(code: int, data: bytes = b"") -> bytes:
    """Build a 15-byte wire frame.

    Args:
        code: The command code to send.
        data: Up to 10 bytes of payload; the remainder is zero padded.

    Returns:
        The encoded frame.

    Raises:
        EncodeError: If *data* is longer than 10 bytes.
    """
    if len(data) > MAX_DATA_SIZE:
        msg = f"Data too long: {len(data)} bytes (max {MAX_DATA_SIZE})"
        raise EncodeError(msg)

    frame = bytearray(FRAME_SIZE)
    frame[0] = START_BYTE
    frame[1] = code
    frame[2] = len(data)
    frame[3 : 3 + len(data)] = data
    frame[_CHECKSUM_OFFSET] = checksum(frame)
    frame[14] = END_BYTE
    _LOGGER.debug("Encoded frame 0x%02X: %s", code, frame.hex())
    return bytes(frame)


def is_valid_frame(raw: bytes) -> bool:
    """Return True if *raw* has the right size, markers and checksum."""
    return (
        len(raw) == FRAME_SIZE
        and raw[0] == START_BYTE
        and raw[14] == END_BYTE
        and raw[2] <= MAX_DATA_SIZE
        and checksum(raw) == raw[_CHECKSUM_OFFSET]
    )


def decode_frame(raw: bytes) -> Frame:
    """Decode and validate a 15-byte wire frame.

    The command code is not checked here; see :func:`decode_payload`.

    Raises:
        InvalidFrameError: On a wrong length, marker or checksum.
    """
    if not is_valid_frame(raw):
        msg = f"Invalid frame: {raw.hex()}"
        raise InvalidFrameError(msg)

    frame = Frame(
        code=raw[1],
        data_length=raw[2],
        data=bytes(raw[3:13]),
        checksum=raw[_CHECKSUM_OFFSET],
    )
    _LOGGER.debug("Decoded frame 0x%02X: %s", frame.code, raw.hex())
    return frame


# ---------------------------------------------------------------------------
# Payload decoders
# ---------------------------------------------------------------------------


def _decode_discovery(data: bytes) -> DiscoveryReply:
    """Decode an "I am a fire" reply: 4-byte serial + 2-byte PIN."""
    serial, pin = _IDENTITY_STRUCT.unpack_from(data)
    _LOGGER.debug("Decoded discovery reply: serial=%d pin=%d", serial, pin)
    return DiscoveryReply(identity=DeviceIdentity(serial=serial, pin=pin))


def _decode_status(data: bytes) -> StatusReply:
    """Decode a status reply: four flag bytes, target and current temperature."""
    has_timers, is_on, fan_boost, flame_effect, target, current = (
        _STATUS_STRUCT.unpack_from(data)
    )
    status = Status(
        has_timers=has_timers,
        is_on=is_on,
        fan_boost_is_on=fan_boost,
        flame_effect_is_on=flame_effect,
        target_temperature=target,
        current_temperature=current,
    )
    _LOGGER.debug(
        "Decoded status: on=%s target=%d current=%d",
        status.is_on,
        status.target_temperature,
        status.current_temperature,
    )
    return StatusReply(status=status)


def decode_payload(frame: Frame) -> Payload:
    """Classify a decoded frame into its typed response payload.

    Raises:
        UnknownResponseCodeError: If the frame's code is not a response code.
    """
    try:
        code = ResponseCode(frame.code)
    except ValueError:
        raise UnknownResponseCodeError(frame.code) from None

    match code:
        case ResponseCode.I_AM_A_FIRE:
            return _decode_discovery(frame.data)
        case ResponseCode.STATUS:
            return _decode_status(frame.data)
        case ResponseCode.POWER_ON_ACK:
            return PowerOnAck()
        case ResponseCode.POWER_OFF_ACK:
            return PowerOffAck()
        case ResponseCode.FAN_BOOST_ON_ACK:
            return FanBoostOnAck()
        case ResponseCode.FAN_BOOST_OFF_ACK:
            return FanBoostOffAck()
        case ResponseCode.FLAME_EFFECT_ON_ACK:
            return FlameEffectOnAck()
        case ResponseCode.FLAME_EFFECT_OFF_ACK:
            return FlameEffectOffAck()
        case ResponseCode.TEMPERATURE_ACK:
            return TemperatureAck()
        case _:
            assert_never(code)


def decode_response(raw: bytes) -> Payload:
    """Validate a raw frame and classify it in one step."""
    return decode_payload(decode_frame(raw))
