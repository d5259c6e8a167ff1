"""Async Python library for controlling Escea gas fireplaces over UDP."""

from __future__ import annotations

__version__ = "0.1.0"

from escea.const import CommandCode, ResponseCode
from escea.controller import FireplaceController
from escea.exceptions import (
    ControllerStoppedError,
    EncodeError,
    EsceaError,
    InvalidFrameError,
    InvalidTemperatureError,
    ProtocolError,
    ResponseTimeoutError,
    TransportError,
    UnexpectedPayloadError,
    UnknownResponseCodeError,
)
from escea.fireplace import Fireplace, open_fireplace
from escea.models import (
    ControllerState,
    DeviceIdentity,
    DiscoveredFireplace,
    DiscoveryReply,
    FanBoostOffAck,
    FanBoostOnAck,
    FlameEffectOffAck,
    FlameEffectOnAck,
    Frame,
    Instruction,
    Payload,
    PowerOffAck,
    PowerOnAck,
    SetFanBoostInstruction,
    SetFlameEffectInstruction,
    SetPowerInstruction,
    SetTemperatureInstruction,
    Status,
    StatusReply,
    TemperatureAck,
)
from escea.protocol import decode_frame, decode_payload, encode_frame
from escea.transport import FireplaceTransport, discover

__all__ = [
    "__version__",
    # Core API
    "discover",
    "open_fireplace",
    "Fireplace",
    "FireplaceController",
    "FireplaceTransport",
    # Codec
    "decode_frame",
    "decode_payload",
    "encode_frame",
    # Exceptions
    "ControllerStoppedError",
    "EncodeError",
    "EsceaError",
    "InvalidFrameError",
    "InvalidTemperatureError",
    "ProtocolError",
    "ResponseTimeoutError",
    "TransportError",
    "UnexpectedPayloadError",
    "UnknownResponseCodeError",
    # Enums
    "CommandCode",
    "ControllerState",
    "ResponseCode",
    # Dataclasses
    "DeviceIdentity",
    "DiscoveredFireplace",
    "DiscoveryReply",
    "FanBoostOffAck",
    "FanBoostOnAck",
    "FlameEffectOffAck",
    "FlameEffectOnAck",
    "Frame",
    "PowerOffAck",
    "PowerOnAck",
    "SetFanBoostInstruction",
    "SetFlameEffectInstruction",
    "SetPowerInstruction",
    "SetTemperatureInstruction",
    "Status",
    "StatusReply",
    "TemperatureAck",
    # Type aliases
    "Instruction",
    "Payload",
]
