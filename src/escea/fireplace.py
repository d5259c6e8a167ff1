"""Device handle for a single Escea fireplace."""

from __future__ import annotations

import logging

from escea.const import (
    DEFAULT_TIMEOUT,
    FIREPLACE_PORT,
    MAX_TEMPERATURE,
    MIN_TEMPERATURE,
    CommandCode,
)
from escea.exceptions import InvalidTemperatureError, UnexpectedPayloadError
from escea.models import (
    DeviceIdentity,
    DiscoveredFireplace,
    Payload,
    Status,
    StatusReply,
)
from escea.protocol import EXPECTED_PAYLOAD
from escea.transport import FireplaceTransport

_LOGGER = logging.getLogger(__name__)


def validate_temperature(temperature: object) -> int:
    """Return *temperature* if it is an integer inside the settable band.

    Raises:
        InvalidTemperatureError: Otherwise.
    """
    if isinstance(temperature, bool) or not isinstance(temperature, int):
        raise InvalidTemperatureError(temperature)
    if not MIN_TEMPERATURE <= temperature <= MAX_TEMPERATURE:
        raise InvalidTemperatureError(temperature)
    return temperature


class Fireplace:
    """A fireplace on the local network.

    Holds the device's address, identity and last known :class:`Status`.
    Each operation performs one request/response exchange through the
    transport. Operations must not run concurrently on the same instance;
    wrap it in a :class:`escea.controller.FireplaceController` when more
    than one task needs to control it.
    """

    def __init__(
        self,
        address: str,
        *,
        port: int = FIREPLACE_PORT,
        identity: DeviceIdentity | None = None,
        transport: FireplaceTransport | None = None,
    ) -> None:
        self.address = address
        self.port = port
        self.identity = identity
        self.status: Status | None = None
        self._transport = transport or FireplaceTransport(port=port)

    @classmethod
    def from_discovery(
        cls,
        found: DiscoveredFireplace,
        transport: FireplaceTransport | None = None,
    ) -> Fireplace:
        """Create a handle for a fireplace returned by discovery."""
        return cls(
            found.address,
            port=found.port,
            identity=found.identity,
            transport=transport,
        )

    def __repr__(self) -> str:
        serial = self.identity.serial if self.identity else None
        return f"Fireplace(address={self.address!r}, serial={serial})"

    async def _call(self, command: CommandCode, data: bytes = b"") -> Payload:
        return await self._transport.call(
            self.address,
            command,
            data,
            port=self.port,
            expect=EXPECTED_PAYLOAD[command],
        )

    async def refresh(self) -> Status:
        """Query the fireplace and replace the cached status.

        The cached status is left untouched if the query fails.
        """
        reply = await self._call(CommandCode.STATUS_PLEASE)
        if not isinstance(reply, StatusReply):
            raise UnexpectedPayloadError(StatusReply, reply)
        self.status = reply.status
        return reply.status

    async def power_on(self) -> None:
        """Turn the fireplace on."""
        _LOGGER.debug("Powering on %s", self.address)
        await self._call(CommandCode.POWER_ON)

    async def power_off(self) -> None:
        """Turn the fireplace off."""
        _LOGGER.debug("Powering off %s", self.address)
        await self._call(CommandCode.POWER_OFF)

    async def set_power(self, on: bool) -> None:
        if on:
            await self.power_on()
        else:
            await self.power_off()

    async def set_temperature(self, temperature: int) -> None:
        """Set the target temperature in degrees Celsius.

        Raises:
            InvalidTemperatureError: If *temperature* is outside the settable
                band. Nothing is sent in that case.
        """
        value = validate_temperature(temperature)
        _LOGGER.debug("Setting %s target temperature to %d", self.address, value)
        await self._call(CommandCode.SET_TEMPERATURE, bytes([value]))

    async def fan_boost_on(self) -> None:
        await self._call(CommandCode.FAN_BOOST_ON)

    async def fan_boost_off(self) -> None:
        await self._call(CommandCode.FAN_BOOST_OFF)

    async def set_fan_boost(self, on: bool) -> None:
        if on:
            await self.fan_boost_on()
        else:
            await self.fan_boost_off()

    async def flame_effect_on(self) -> None:
        await self._call(CommandCode.FLAME_EFFECT_ON)

    async def flame_effect_off(self) -> None:
        await self._call(CommandCode.FLAME_EFFECT_OFF)

    async def set_flame_effect(self, on: bool) -> None:
        if on:
            await self.flame_effect_on()
        else:
            await self.flame_effect_off()


def open_fireplace(
    address: str,
    *,
    port: int = FIREPLACE_PORT,
    local_port: int = FIREPLACE_PORT,
    timeout: float = DEFAULT_TIMEOUT,
) -> Fireplace:
    """Return a handle for the fireplace at *address*."""
    transport = FireplaceTransport(port=port, local_port=local_port, timeout=timeout)
    return Fireplace(address, port=port, transport=transport)
