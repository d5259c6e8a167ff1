"""Tests for the UDP transport and discovery against loopback fake fireplaces."""

from __future__ import annotations

import asyncio
import socket
import sys
from unittest.mock import patch

import pytest

from conftest import DISCOVERY_FRAME, STATUS_FRAME, STATUS_ON, free_udp_port
from escea.const import FIREPLACE_PORT, CommandCode, ResponseCode
from escea.exceptions import (
    EncodeError,
    InvalidFrameError,
    ResponseTimeoutError,
    TransportError,
    UnexpectedPayloadError,
    UnknownResponseCodeError,
)
from escea.models import DeviceIdentity, DiscoveredFireplace, PowerOnAck, StatusReply
from escea.protocol import encode_frame
from escea.transport import FireplaceTransport, discover


def _spy_endpoints(loop: asyncio.AbstractEventLoop, created: list) -> object:
    """Patch *loop* so every datagram transport it creates is recorded."""
    real = loop.create_datagram_endpoint

    async def _spy(*args, **kwargs):
        transport, protocol = await real(*args, **kwargs)
        created.append(transport)
        return transport, protocol

    return patch.object(loop, "create_datagram_endpoint", _spy)


# -------------------------------------------------------------------
# FireplaceTransport.call
# -------------------------------------------------------------------


class TestCall:
    """Single request/response exchanges."""

    async def test_status_query(self, fake_fireplace):
        device, port = await fake_fireplace({CommandCode.STATUS_PLEASE: [STATUS_FRAME]})
        transport = FireplaceTransport(port=port, local_port=0, timeout=1.0)

        payload = await transport.call("127.0.0.1", CommandCode.STATUS_PLEASE)

        assert payload == StatusReply(status=STATUS_ON)
        assert device.received == [encode_frame(CommandCode.STATUS_PLEASE)]

    async def test_sends_data(self, fake_fireplace):
        device, port = await fake_fireplace(
            {CommandCode.SET_TEMPERATURE: [encode_frame(ResponseCode.TEMPERATURE_ACK)]}
        )
        transport = FireplaceTransport(port=port, local_port=0, timeout=1.0)

        await transport.call("127.0.0.1", CommandCode.SET_TEMPERATURE, bytes([22]))

        assert device.received == [bytes.fromhex("475701160000000000000000006e46")]

    async def test_port_override(self, fake_fireplace):
        _, port = await fake_fireplace(
            {CommandCode.POWER_ON: [encode_frame(ResponseCode.POWER_ON_ACK)]}
        )
        transport = FireplaceTransport(local_port=0, timeout=1.0)

        payload = await transport.call("127.0.0.1", CommandCode.POWER_ON, port=port)

        assert payload == PowerOnAck()

    async def test_only_first_reply_is_used(self, fake_fireplace):
        _, port = await fake_fireplace(
            {
                CommandCode.POWER_ON: [
                    encode_frame(ResponseCode.POWER_ON_ACK),
                    STATUS_FRAME,
                ]
            }
        )
        transport = FireplaceTransport(port=port, local_port=0, timeout=1.0)

        payload = await transport.call("127.0.0.1", CommandCode.POWER_ON)

        assert payload == PowerOnAck()

    async def test_timeout(self, fake_fireplace):
        _, port = await fake_fireplace({})
        transport = FireplaceTransport(port=port, local_port=0, timeout=0.2)

        with pytest.raises(ResponseTimeoutError):
            await transport.call("127.0.0.1", CommandCode.STATUS_PLEASE)

    async def test_invalid_reply(self, fake_fireplace):
        _, port = await fake_fireplace({CommandCode.STATUS_PLEASE: [STATUS_FRAME[:-1]]})
        transport = FireplaceTransport(port=port, local_port=0, timeout=1.0)

        with pytest.raises(InvalidFrameError):
            await transport.call("127.0.0.1", CommandCode.STATUS_PLEASE)

    async def test_unknown_reply_code(self, fake_fireplace):
        _, port = await fake_fireplace(
            {CommandCode.STATUS_PLEASE: [encode_frame(0x42)]}
        )
        transport = FireplaceTransport(port=port, local_port=0, timeout=1.0)

        with pytest.raises(UnknownResponseCodeError):
            await transport.call("127.0.0.1", CommandCode.STATUS_PLEASE)

    async def test_unexpected_payload(self, fake_fireplace):
        _, port = await fake_fireplace({CommandCode.POWER_ON: [STATUS_FRAME]})
        transport = FireplaceTransport(port=port, local_port=0, timeout=1.0)

        with pytest.raises(UnexpectedPayloadError) as exc_info:
            await transport.call("127.0.0.1", CommandCode.POWER_ON)

        assert exc_info.value.expected is PowerOnAck
        assert isinstance(exc_info.value.received, StatusReply)

    async def test_explicit_expectation(self, fake_fireplace):
        _, port = await fake_fireplace({CommandCode.STATUS_PLEASE: [STATUS_FRAME]})
        transport = FireplaceTransport(port=port, local_port=0, timeout=1.0)

        with pytest.raises(UnexpectedPayloadError):
            await transport.call(
                "127.0.0.1", CommandCode.STATUS_PLEASE, expect=PowerOnAck
            )

    @pytest.mark.parametrize(
        "replies",
        [
            [STATUS_FRAME],
            [],
            [STATUS_FRAME[:-1]],
            [encode_frame(ResponseCode.POWER_ON_ACK)],
        ],
    )
    async def test_socket_closed_on_every_path(self, fake_fireplace, replies):
        _, port = await fake_fireplace({CommandCode.STATUS_PLEASE: replies})
        transport = FireplaceTransport(port=port, local_port=0, timeout=0.2)
        created: list = []

        with _spy_endpoints(asyncio.get_running_loop(), created):
            try:
                await transport.call("127.0.0.1", CommandCode.STATUS_PLEASE)
            except Exception:  # noqa: BLE001
                pass

        assert len(created) == 1
        assert created[0].is_closing()

    async def test_new_socket_per_call(self, fake_fireplace):
        _, port = await fake_fireplace({CommandCode.STATUS_PLEASE: [STATUS_FRAME]})
        transport = FireplaceTransport(port=port, local_port=0, timeout=1.0)
        created: list = []

        with _spy_endpoints(asyncio.get_running_loop(), created):
            await transport.call("127.0.0.1", CommandCode.STATUS_PLEASE)
            await transport.call("127.0.0.1", CommandCode.STATUS_PLEASE)

        assert len(created) == 2
        assert created[0] is not created[1]

    async def test_socket_error(self):
        loop = asyncio.get_running_loop()
        transport = FireplaceTransport(local_port=0, timeout=0.2)

        async def _fail(*args, **kwargs):
            raise OSError("Network is unreachable")

        with patch.object(loop, "create_datagram_endpoint", _fail):
            with pytest.raises(TransportError, match="unreachable"):
                await transport.call("127.0.0.1", CommandCode.STATUS_PLEASE)

    async def test_binds_service_port_by_default(self):
        loop = asyncio.get_running_loop()
        transport = FireplaceTransport(timeout=0.2)
        seen: dict = {}

        async def _fail(*args, **kwargs):
            seen.update(kwargs)
            raise OSError("Address already in use")

        with patch.object(loop, "create_datagram_endpoint", _fail):
            with pytest.raises(TransportError):
                await transport.call("127.0.0.1", CommandCode.STATUS_PLEASE)

        assert transport.local_port == FIREPLACE_PORT
        assert seen["local_addr"] == ("0.0.0.0", FIREPLACE_PORT)
        assert seen["reuse_port"] == hasattr(socket, "SO_REUSEPORT")

    async def test_reply_to_service_port(self, fake_fireplace):
        service_port = free_udp_port()
        device, port = await fake_fireplace(
            {CommandCode.STATUS_PLEASE: [STATUS_FRAME]},
            reply_to=("127.0.0.1", service_port),
        )
        transport = FireplaceTransport(port=port, local_port=service_port, timeout=1.0)

        payload = await transport.call("127.0.0.1", CommandCode.STATUS_PLEASE)

        assert payload == StatusReply(status=STATUS_ON)
        assert len(device.received) == 1

    @pytest.mark.skipif(
        not sys.platform.startswith("linux"),
        reason="connected sockets sharing a port are matched by peer on Linux",
    )
    async def test_concurrent_calls_share_service_port(self, fake_fireplace):
        service_port = free_udp_port()
        ack = encode_frame(ResponseCode.POWER_ON_ACK)
        _, status_port = await fake_fireplace(
            {CommandCode.STATUS_PLEASE: [STATUS_FRAME]},
            reply_to=("127.0.0.1", service_port),
        )
        _, power_port = await fake_fireplace(
            {CommandCode.POWER_ON: [ack]},
            reply_to=("127.0.0.1", service_port),
        )
        transport = FireplaceTransport(local_port=service_port, timeout=1.0)

        status, power = await asyncio.gather(
            transport.call("127.0.0.1", CommandCode.STATUS_PLEASE, port=status_port),
            transport.call("127.0.0.1", CommandCode.POWER_ON, port=power_port),
        )

        assert status == StatusReply(status=STATUS_ON)
        assert power == PowerOnAck()

    async def test_unknown_command_code(self):
        transport = FireplaceTransport(local_port=0, timeout=0.2)
        created: list = []

        with _spy_endpoints(asyncio.get_running_loop(), created):
            with pytest.raises(EncodeError, match="0x42"):
                await transport.call("127.0.0.1", 0x42)

        assert created == []


# -------------------------------------------------------------------
# discover
# -------------------------------------------------------------------


class TestDiscover:
    """Broadcast discovery."""

    async def test_finds_fireplace(self, fake_fireplace):
        listen_port = free_udp_port()
        device, port = await fake_fireplace(
            {CommandCode.SEARCH_FOR_FIREPLACES: [DISCOVERY_FRAME]},
            reply_to=("127.0.0.1", listen_port),
        )

        found = await discover(
            0.3,
            broadcast_address="127.0.0.1",
            port=port,
            listen_address="127.0.0.1",
            listen_port=listen_port,
        )

        assert found == [
            DiscoveredFireplace(
                address="127.0.0.1",
                port=port,
                identity=DeviceIdentity(serial=107757, pin=1790),
            )
        ]
        assert device.received == [encode_frame(CommandCode.SEARCH_FOR_FIREPLACES)]

    async def test_deduplicates_and_ignores_noise(self, fake_fireplace):
        listen_port = free_udp_port()
        _, port = await fake_fireplace(
            {
                CommandCode.SEARCH_FOR_FIREPLACES: [
                    b"garbage",
                    DISCOVERY_FRAME,
                    STATUS_FRAME,
                    encode_frame(0x42),
                    DISCOVERY_FRAME,
                ]
            },
            reply_to=("127.0.0.1", listen_port),
        )

        found = await discover(
            0.3,
            broadcast_address="127.0.0.1",
            port=port,
            listen_address="127.0.0.1",
            listen_port=listen_port,
        )

        assert [f.identity.serial for f in found] == [107757]

    async def test_distinct_serials_from_one_address(self, fake_fireplace):
        listen_port = free_udp_port()
        other = encode_frame(ResponseCode.I_AM_A_FIRE, bytes([0, 0, 0, 7, 0, 9]))
        _, port = await fake_fireplace(
            {CommandCode.SEARCH_FOR_FIREPLACES: [DISCOVERY_FRAME, other, other]},
            reply_to=("127.0.0.1", listen_port),
        )

        found = await discover(
            0.3,
            broadcast_address="127.0.0.1",
            port=port,
            listen_address="127.0.0.1",
            listen_port=listen_port,
        )

        assert [f.identity for f in found] == [
            DeviceIdentity(serial=107757, pin=1790),
            DeviceIdentity(serial=7, pin=9),
        ]

    async def test_no_replies(self, fake_fireplace):
        _, port = await fake_fireplace({})

        found = await discover(
            0.2,
            broadcast_address="127.0.0.1",
            port=port,
            listen_address="127.0.0.1",
            listen_port=free_udp_port(),
        )

        assert found == []

    async def test_listen_port_in_use(self, fake_fireplace):
        _, port = await fake_fireplace({})

        with pytest.raises(TransportError):
            await discover(
                0.2,
                broadcast_address="127.0.0.1",
                port=port,
                listen_address="127.0.0.1",
                listen_port=port,
            )

    async def test_sockets_closed(self, fake_fireplace):
        _, port = await fake_fireplace({})
        created: list = []

        with _spy_endpoints(asyncio.get_running_loop(), created):
            await discover(
                0.1,
                broadcast_address="127.0.0.1",
                port=port,
                listen_address="127.0.0.1",
                listen_port=free_udp_port(),
            )

        assert len(created) == 2
        assert all(t.is_closing() for t in created)

    async def test_cancellation_closes_sockets(self, fake_fireplace):
        _, port = await fake_fireplace({})
        created: list = []

        with _spy_endpoints(asyncio.get_running_loop(), created):
            task = asyncio.create_task(
                discover(
                    10.0,
                    broadcast_address="127.0.0.1",
                    port=port,
                    listen_address="127.0.0.1",
                    listen_port=free_udp_port(),
                )
            )
            await asyncio.sleep(0.1)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert created
        assert all(t.is_closing() for t in created)
