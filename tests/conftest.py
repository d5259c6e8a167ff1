"""Shared fixtures for escea tests."""

from __future__ import annotations

import asyncio
import socket
from typing import cast
from unittest.mock import AsyncMock

import pytest

from escea.fireplace import Fireplace
from escea.models import Status, StatusReply

# Reference frames captured from a real fireplace.
DISCOVERY_FRAME = bytes.fromhex("4790040001A4ED06FE000000002A46")
STATUS_FRAME = bytes.fromhex("478006000100001B1800000000BA46")

STATUS_ON = Status(
    has_timers=False,
    is_on=True,
    fan_boost_is_on=False,
    flame_effect_is_on=False,
    target_temperature=27,
    current_temperature=24,
)


def free_udp_port() -> int:
    """Return a loopback UDP port that is currently unused."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def mock_transport() -> AsyncMock:
    """Return a transport whose call() answers every status query."""
    transport = AsyncMock()
    transport.call.return_value = StatusReply(status=STATUS_ON)
    return transport


@pytest.fixture
def fireplace(mock_transport: AsyncMock) -> Fireplace:
    """Return a Fireplace wired to the mock transport."""
    return Fireplace("192.0.2.10", transport=mock_transport)


class FakeFireplaceProtocol(asyncio.DatagramProtocol):
    """Loopback stand-in for a fireplace that answers with canned frames."""

    def __init__(
        self,
        replies: dict[int, list[bytes]],
        reply_to: tuple[str, int] | None = None,
    ) -> None:
        self.replies = replies
        self.reply_to = reply_to
        self.received: list[bytes] = []
        self.transport: asyncio.DatagramTransport | None = None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = cast(asyncio.DatagramTransport, transport)

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        self.received.append(data)
        assert self.transport is not None
        for reply in self.replies.get(data[1], []):
            self.transport.sendto(reply, self.reply_to or addr)


@pytest.fixture
async def fake_fireplace():
    """Start a fake fireplace on a loopback port.

    Yields a factory taking ``{command_code: [reply, ...]}`` (and optionally
    the address replies go to) and returning ``(protocol, port)``.
    """
    loop = asyncio.get_running_loop()
    transports: list[asyncio.DatagramTransport] = []

    async def _start(
        replies: dict[int, list[bytes]],
        reply_to: tuple[str, int] | None = None,
    ) -> tuple[FakeFireplaceProtocol, int]:
        transport, protocol = await loop.create_datagram_endpoint(
            lambda: FakeFireplaceProtocol(replies, reply_to),
            local_addr=("127.0.0.1", 0),
        )
        transports.append(transport)
        port: int = transport.get_extra_info("sockname")[1]
        return protocol, port

    yield _start

    for transport in transports:
        transport.close()
