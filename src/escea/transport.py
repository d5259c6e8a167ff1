"""UDP transport: request/response calls and discovery broadcasts."""

from __future__ import annotations

import asyncio
import logging
import socket

from escea.const import (
    BROADCAST_ADDRESS,
    DEFAULT_TIMEOUT,
    DISCOVERY_TIMEOUT,
    FIREPLACE_PORT,
    CommandCode,
)
from escea.exceptions import (
    EncodeError,
    ProtocolError,
    ResponseTimeoutError,
    TransportError,
    UnexpectedPayloadError,
)
from escea.models import DiscoveredFireplace, DiscoveryReply, Payload
from escea.protocol import EXPECTED_PAYLOAD, decode_response, encode_frame

_LOGGER = logging.getLogger(__name__)

# Not available on every platform.
_REUSE_PORT = hasattr(socket, "SO_REUSEPORT")


class _ReplyProtocol(asyncio.DatagramProtocol):
    """Datagram protocol that resolves a future with the first reply."""

    def __init__(self, reply: asyncio.Future[bytes]) -> None:
        self.reply = reply

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        if self.reply.done():
            _LOGGER.debug("Ignoring extra datagram from %s: %s", addr, data.hex())
            return
        self.reply.set_result(data)

    def error_received(self, exc: Exception) -> None:
        if not self.reply.done():
            self.reply.set_exception(TransportError(f"Socket error: {exc}"))


class _DiscoveryProtocol(asyncio.DatagramProtocol):
    """Datagram protocol that collects discovery replies."""

    def __init__(self) -> None:
        self.found: list[DiscoveredFireplace] = []
        self._seen: set[tuple[str, int]] = set()

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        try:
            payload = decode_response(data)
        except ProtocolError as exc:
            _LOGGER.debug("Ignoring datagram from %s: %s", addr[0], exc)
            return

        if not isinstance(payload, DiscoveryReply):
            _LOGGER.debug(
                "Ignoring %s from %s during discovery",
                type(payload).__name__,
                addr[0],
            )
            return

        key = (addr[0], payload.identity.serial)
        if key in self._seen:
            return
        self._seen.add(key)

        fireplace = DiscoveredFireplace(
            address=addr[0], port=addr[1], identity=payload.identity
        )
        _LOGGER.debug(
            "Found fireplace at %s (serial=%d pin=%d)",
            fireplace.address,
            fireplace.identity.serial,
            fireplace.identity.pin,
        )
        self.found.append(fireplace)

    def error_received(self, exc: Exception) -> None:
        _LOGGER.debug("Socket error during discovery: %s", exc)


class FireplaceTransport:
    """Performs single request/response exchanges with a fireplace.

    Every call opens its own UDP endpoint and closes it before returning.
    The endpoint is bound to the service port because fireplaces reply to
    port 3300 rather than to the sending port; it is bound with
    ``SO_REUSEPORT`` so handles for several fireplaces can share it.
    The protocol carries no request identifiers, so an endpoint is never
    shared between calls; callers must not issue concurrent calls to the
    same fireplace (see :class:`escea.controller.FireplaceController`).
    """

    def __init__(
        self,
        *,
        port: int = FIREPLACE_PORT,
        local_port: int = FIREPLACE_PORT,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.port = port
        self.local_port = local_port
        self.timeout = timeout

    async def call(
        self,
        address: str,
        command: CommandCode,
        data: bytes = b"",
        *,
        port: int | None = None,
        expect: type[Payload] | None = None,
    ) -> Payload:
        """Send one command and wait for its single reply.

        Args:
            address: IP address of the fireplace.
            command: The command to send.
            data: Command payload (at most 10 bytes).
            port: Override the fireplace port for this call.
            expect: Payload type the reply must have; defaults to the
                type registered for *command*.

        Returns:
            The decoded reply payload.

        Raises:
            EncodeError: If *command* is not a known command code.
            ResponseTimeoutError: If no reply arrives within the timeout.
            InvalidFrameError: If the reply is not a valid frame.
            UnknownResponseCodeError: If the reply code is not recognised.
            UnexpectedPayloadError: If the reply is not the expected type.
            TransportError: If the socket cannot be opened or used.
        """
        try:
            command = CommandCode(command)
        except ValueError:
            msg = f"Unknown command code: 0x{command:02X}"
            raise EncodeError(msg) from None
        frame = encode_frame(command, data)
        expected = expect or EXPECTED_PAYLOAD[command]
        remote = (address, port or self.port)

        loop = asyncio.get_running_loop()
        reply: asyncio.Future[bytes] = loop.create_future()
        try:
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _ReplyProtocol(reply),
                local_addr=("0.0.0.0", self.local_port),
                remote_addr=remote,
                reuse_port=_REUSE_PORT,
            )
        except OSError as exc:
            msg = f"Cannot open socket to {remote[0]}:{remote[1]}: {exc}"
            raise TransportError(msg) from exc

        try:
            _LOGGER.debug("Sending %s to %s:%d", command.name, *remote)
            transport.sendto(frame)
            try:
                async with asyncio.timeout(self.timeout):
                    raw = await reply
            except TimeoutError:
                msg = (
                    f"No reply to {command.name} from {remote[0]} "
                    f"within {self.timeout}s"
                )
                raise ResponseTimeoutError(msg) from None
        finally:
            transport.close()

        _LOGGER.debug("Received from %s: %s", remote[0], raw.hex())
        payload = decode_response(raw)
        if not isinstance(payload, expected):
            raise UnexpectedPayloadError(expected, payload)
        return payload


async def discover(
    timeout: float = DISCOVERY_TIMEOUT,
    *,
    broadcast_address: str = BROADCAST_ADDRESS,
    port: int = FIREPLACE_PORT,
    listen_address: str = "0.0.0.0",
    listen_port: int | None = None,
) -> list[DiscoveredFireplace]:
    """Broadcast a search frame and collect the fireplaces that answer.

    A single search frame is sent; replies are gathered until *timeout*
    elapses. Anything that is not a valid discovery reply is ignored, and
    repeated replies from the same address and serial are reported once.

    Args:
        timeout: Seconds to wait for replies.
        broadcast_address: Destination of the search frame.
        port: Fireplace service port the search is sent to.
        listen_address: Local address the reply listener binds to.
        listen_port: Local port for replies; defaults to *port*.

    Returns:
        The discovered fireplaces in the order their replies arrived.

    Raises:
        TransportError: If either socket cannot be opened or used.
    """
    loop = asyncio.get_running_loop()
    bind = (listen_address, port if listen_port is None else listen_port)

    try:
        listener, collector = await loop.create_datagram_endpoint(
            _DiscoveryProtocol,
            local_addr=bind,
            allow_broadcast=True,
            reuse_port=_REUSE_PORT,
        )
    except OSError as exc:
        msg = f"Cannot listen on {bind[0]}:{bind[1]}: {exc}"
        raise TransportError(msg) from exc

    try:
        try:
            sender, _ = await loop.create_datagram_endpoint(
                asyncio.DatagramProtocol,
                remote_addr=(broadcast_address, port),
                allow_broadcast=True,
            )
        except OSError as exc:
            msg = f"Cannot open broadcast socket to {broadcast_address}: {exc}"
            raise TransportError(msg) from exc

        try:
            _LOGGER.debug("Searching for fireplaces via %s:%d", broadcast_address, port)
            sender.sendto(encode_frame(CommandCode.SEARCH_FOR_FIREPLACES))
            await asyncio.sleep(timeout)
        finally:
            sender.close()
    finally:
        listener.close()

    _LOGGER.debug("Discovery finished: %d fireplace(s)", len(collector.found))
    return list(collector.found)
