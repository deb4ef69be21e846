"""Shared fixtures for udpcli tests."""
import io
import socket
from typing import List, Optional, Tuple

import pytest
import structlog
import structlog.stdlib

from udpcli.commands import UdpCommands
from udpcli.engine.message import Message, MessagePool
from udpcli.engine.transport import ReceiveCallback, UdpSocket, UdpTransport
from udpcli.exceptions import InvalidStateError, SendError
from udpcli.models import MessageInfo, MessageSettings, PeerEndpoint
from udpcli.output import Output
from udpcli.session import UdpSession


class FakeTransport(UdpTransport):
    """Records transport calls instead of touching the network."""

    def __init__(self, pool_size: int = 4, message_capacity: int = 0xFFFF):
        self.pool = MessagePool(size=pool_size, message_capacity=message_capacity)
        self.calls: List[Tuple] = []
        self.sent: List[Tuple[bytes, MessageInfo, MessageSettings]] = []
        self.fail_next_send = False

    def open(self, udp_socket: UdpSocket, callback: ReceiveCallback) -> None:
        self.calls.append(("open",))
        udp_socket.callback = callback
        udp_socket.sock = object()  # type: ignore[assignment]

    def close(self, udp_socket: UdpSocket) -> None:
        self.calls.append(("close",))
        udp_socket.sock = None
        udp_socket.callback = None
        udp_socket.peer = None

    def is_open(self, udp_socket: UdpSocket) -> bool:
        return udp_socket.sock is not None

    def bind(self, udp_socket: UdpSocket, endpoint: PeerEndpoint) -> None:
        self.calls.append(("bind", endpoint))
        udp_socket.local = endpoint

    def connect(self, udp_socket: UdpSocket, endpoint: PeerEndpoint) -> None:
        self.calls.append(("connect", endpoint))
        udp_socket.peer = endpoint

    def send(self, udp_socket: UdpSocket, message: Message, message_info: MessageInfo) -> None:
        self.calls.append(("send", message_info))
        if udp_socket.sock is None:
            raise InvalidStateError("Socket is not open")
        if message_info.peer is None and udp_socket.peer is None:
            raise InvalidStateError("No destination")
        if self.fail_next_send:
            self.fail_next_send = False
            raise SendError("Send failed")
        self.sent.append((message.payload(), message_info, message.settings))
        message.free()

    def new_message(self, message_settings: MessageSettings) -> Optional[Message]:
        return self.pool.allocate(message_settings)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def stream():
    return io.StringIO()


@pytest.fixture
def output(stream):
    return Output(stream)


@pytest.fixture
def session(transport, output):
    return UdpSession(transport, output, link_security_enabled=True)


@pytest.fixture
def commands(session):
    return UdpCommands(session)


@pytest.fixture(autouse=True, scope="session")
def structlog_to_stdlib():
    """Keep log events off stdout, which carries command output."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def ipv6_loopback():
    """Skip unless a UDP socket can bind to ::1."""
    if not socket.has_ipv6:
        pytest.skip("IPv6 unavailable")
    try:
        with socket.socket(socket.AF_INET6, socket.SOCK_DGRAM) as sock:
            sock.bind(("::1", 0))
    except OSError:
        pytest.skip("IPv6 loopback unavailable")
    return "::1"
