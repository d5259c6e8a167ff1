"""Exception hierarchy for the escea library."""

from __future__ import annotations


class EsceaError(Exception):
    """Base exception for all escea errors."""


class ProtocolError(EsceaError):
    """Raised when wire protocol encoding/decoding fails."""


class EncodeError(ProtocolError):
    """Raised when a frame cannot be encoded."""


class InvalidFrameError(ProtocolError):
    """Raised when a received frame fails length, marker or checksum checks."""


class UnknownResponseCodeError(ProtocolError):
    """Raised when a valid frame carries a response code we do not know."""

    def __init__(self, code: int) -> None:
        self.code = code
        super().__init__(f"Unknown response code: 0x{code:02X}")


class UnexpectedPayloadError(ProtocolError):
    """Raised when a reply does not match the command that was sent."""

    def __init__(self, expected: type, received: object) -> None:
        self.expected = expected
        self.received = received
        super().__init__(
            f"Expected {expected.__name__}, got {type(received).__name__}"
        )


class ResponseTimeoutError(EsceaError):
    """Raised when the fireplace does not reply before the deadline."""


class TransportError(EsceaError):
    """Raised when a UDP socket cannot be opened, written or read."""


class InvalidTemperatureError(EsceaError):
    """Raised when a requested set-point is outside the accepted band."""

    def __init__(self, temperature: object) -> None:
        self.temperature = temperature
        super().__init__(f"Invalid temperature: {temperature!r}")


class ControllerStoppedError(EsceaError):
    """Raised for instructions submitted to a controller that has stopped."""
