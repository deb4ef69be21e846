"""
Socket session state and the receive notifier.
"""
from __future__ import annotations

from typing import Optional

import structlog

from udpcli.config import settings
from udpcli.engine.message import Message
from udpcli.engine.transport import UdpSocket, UdpTransport
from udpcli.models import MessageInfo
from udpcli.output import Output

logger = structlog.get_logger()


def format_received(message: Message, message_info: MessageInfo, display_limit: Optional[int] = None) -> str:
    """
    Format a received datagram as ``<len> bytes from <addr> <port> <payload>``.

    The length is always the full payload length. The payload text is read
    into a buffer of ``display_limit`` bytes with one slot kept for the
    terminator, so at most ``display_limit - 1`` bytes are shown, and display
    stops at the first NUL byte.
    """
    display_limit = display_limit or settings.receive_display_limit
    payload_length = message.length - message.offset

    shown = message.read(message.offset, display_limit - 1)
    shown = shown.split(b"\x00", 1)[0]

    peer = message_info.peer
    address = str(peer.address) if peer else "::"
    port = peer.port if peer else 0
    return f"{payload_length} bytes from {address} {port} {shown.decode('utf-8', errors='replace')}"


class UdpSession:
    """
    Per-interpreter socket session.

    Holds the socket handle and the link security flag. The transport calls
    ``handle_receive`` on this session for every datagram received while the
    socket is open.
    """

    def __init__(self, transport: UdpTransport, output: Output, link_security_enabled: Optional[bool] = None):
        self.transport = transport
        self.output = output
        self.socket = UdpSocket()
        self.link_security_enabled = (
            settings.link_security_default if link_security_enabled is None else link_security_enabled
        )

    @property
    def is_open(self) -> bool:
        return self.transport.is_open(self.socket)

    def handle_receive(self, message: Message, message_info: MessageInfo) -> None:
        line = format_received(message, message_info)
        logger.debug(
            "udp_datagram_received",
            peer=str(message_info.peer) if message_info.peer else None,
            data_size=message.length - message.offset,
        )
        self.output.output_line(line)

    def teardown(self) -> None:
        self.transport.close(self.socket)
