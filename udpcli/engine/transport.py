"""
Transport Abstraction Layer

The command layer drives a single UDP socket through the UdpTransport
interface. SocketUdpTransport implements it with a standard IPv6 datagram
socket and a daemon thread that delivers received datagrams to the callback
registered at open time.
"""
from __future__ import annotations

import socket
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Optional

import structlog

from udpcli.config import settings
from udpcli.engine.message import Message, MessagePool
from udpcli.exceptions import (
    BindError,
    ConnectError,
    InvalidStateError,
    OpenError,
    SendError,
)
from udpcli.models import MessageInfo, MessageSettings, PeerEndpoint

logger = structlog.get_logger()

ReceiveCallback = Callable[[Message, MessageInfo], None]


@dataclass
class UdpSocket:
    """
    Socket handle owned by a session.

    A fresh handle is closed; the transport fills in the OS socket and the
    receive thread on open and clears them on close.
    """

    sock: Optional[socket.socket] = None
    callback: Optional[ReceiveCallback] = None
    local: Optional[PeerEndpoint] = None
    peer: Optional[PeerEndpoint] = None
    _thread: Optional[threading.Thread] = field(default=None, repr=False)
    _running: threading.Event = field(default_factory=threading.Event, repr=False)


class UdpTransport(ABC):
    """
    Abstract base class for UDP transports.

    Owns message allocation as well as socket operations so that a sent
    message can be handed over to the transport.
    """

    @abstractmethod
    def open(self, udp_socket: UdpSocket, callback: ReceiveCallback) -> None:
        """Open the socket and register the receive callback."""

    @abstractmethod
    def close(self, udp_socket: UdpSocket) -> None:
        """Close the socket. Closing a closed socket does nothing."""

    @abstractmethod
    def is_open(self, udp_socket: UdpSocket) -> bool:
        pass

    @abstractmethod
    def bind(self, udp_socket: UdpSocket, endpoint: PeerEndpoint) -> None:
        pass

    @abstractmethod
    def connect(self, udp_socket: UdpSocket, endpoint: PeerEndpoint) -> None:
        pass

    @abstractmethod
    def send(self, udp_socket: UdpSocket, message: Message, message_info: MessageInfo) -> None:
        """
        Send a message.

        On success the transport owns the message and frees it. On failure
        the caller still owns it.

        Raises:
            InvalidStateError: socket not open, or no destination given and
                the socket is not connected
            SendError: the OS rejected the datagram
        """

    @abstractmethod
    def new_message(self, message_settings: MessageSettings) -> Optional[Message]:
        """Allocate an empty message, or None when no buffers are left."""

    def free_message(self, message: Message) -> None:
        message.free()


class SocketUdpTransport(UdpTransport):
    """
    UDP transport over a standard AF_INET6 datagram socket.

    Received datagrams are delivered on a background thread. Link security
    has no meaning for a plain OS socket; the flag is carried on each
    message and logged with the send.
    """

    def __init__(self, pool: Optional[MessagePool] = None):
        self.pool = pool or MessagePool()
        self._lock = threading.Lock()

    def open(self, udp_socket: UdpSocket, callback: ReceiveCallback) -> None:
        with self._lock:
            if udp_socket.sock is not None:
                raise InvalidStateError("Socket already open")

            try:
                sock = socket.socket(socket.AF_INET6, socket.SOCK_DGRAM)
            except OSError as exc:
                logger.error("udp_open_failed", error=str(exc))
                raise OpenError(
                    "Failed to create UDP socket",
                    details={"errno": exc.errno, "error": str(exc)},
                )
            sock.settimeout(settings.receive_poll_interval)
            udp_socket.sock = sock
            udp_socket.callback = callback
            udp_socket.local = None
            udp_socket.peer = None
            udp_socket._running.set()
            udp_socket._thread = threading.Thread(
                target=self._receive_loop,
                args=(udp_socket, sock),
                name="udp-receive",
                daemon=True,
            )
            udp_socket._thread.start()

        logger.info("udp_socket_opened")

    def close(self, udp_socket: UdpSocket) -> None:
        with self._lock:
            sock = udp_socket.sock
            thread = udp_socket._thread
            if sock is None:
                logger.debug("udp_socket_already_closed")
                return

            udp_socket._running.clear()
            udp_socket.sock = None
            udp_socket.callback = None
            udp_socket.local = None
            udp_socket.peer = None
            udp_socket._thread = None

        try:
            sock.close()
        finally:
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout=settings.receive_poll_interval * 5)

        logger.info("udp_socket_closed")

    def is_open(self, udp_socket: UdpSocket) -> bool:
        return udp_socket.sock is not None

    def bind(self, udp_socket: UdpSocket, endpoint: PeerEndpoint) -> None:
        sock = self._require_open(udp_socket)
        try:
            sock.bind(endpoint.to_sockaddr())
        except OSError as exc:
            logger.error("udp_bind_failed", endpoint=str(endpoint), error=str(exc))
            raise BindError(
                f"Failed to bind to {endpoint}",
                details={"errno": exc.errno, "error": str(exc)},
            )

        udp_socket.local = PeerEndpoint.from_sockaddr(sock.getsockname())
        logger.info("udp_socket_bound", endpoint=str(udp_socket.local))

    def connect(self, udp_socket: UdpSocket, endpoint: PeerEndpoint) -> None:
        sock = self._require_open(udp_socket)
        try:
            sock.connect(endpoint.to_sockaddr())
        except OSError as exc:
            logger.error("udp_connect_failed", endpoint=str(endpoint), error=str(exc))
            raise ConnectError(
                f"Failed to connect to {endpoint}",
                details={"errno": exc.errno, "error": str(exc)},
            )

        udp_socket.peer = endpoint
        logger.info("udp_socket_connected", peer=str(endpoint))

    def send(self, udp_socket: UdpSocket, message: Message, message_info: MessageInfo) -> None:
        sock = self._require_open(udp_socket)
        destination = message_info.peer
        if destination is None and udp_socket.peer is None:
            raise InvalidStateError("No destination given and socket is not connected")

        payload = message.payload()
        try:
            if destination is None:
                sock.send(payload)
            else:
                sock.sendto(payload, destination.to_sockaddr())
        except OSError as exc:
            logger.error(
                "udp_send_failed",
                destination=str(destination or udp_socket.peer),
                error=str(exc),
                data_size=len(payload),
            )
            raise SendError(
                f"Failed to send to {destination or udp_socket.peer}",
                details={"errno": exc.errno, "error": str(exc), "data_size": len(payload)},
            )

        logger.debug(
            "udp_datagram_sent",
            destination=str(destination or udp_socket.peer),
            data_size=len(payload),
            link_security=message.settings.link_security_enabled,
        )
        message.free()

    def new_message(self, message_settings: MessageSettings) -> Optional[Message]:
        return self.pool.allocate(message_settings)

    def _require_open(self, udp_socket: UdpSocket) -> socket.socket:
        sock = udp_socket.sock
        if sock is None:
            raise InvalidStateError("Socket is not open")
        return sock

    def _receive_loop(self, udp_socket: UdpSocket, sock: socket.socket) -> None:
        while udp_socket._running.is_set():
            try:
                data, addr = sock.recvfrom(settings.receive_buffer_size)
            except socket.timeout:
                continue
            except OSError as exc:
                if not udp_socket._running.is_set():
                    break
                logger.debug("udp_receive_error", error=str(exc))
                time.sleep(settings.receive_poll_interval)
                continue

            callback = udp_socket.callback
            if callback is None:
                continue

            message = Message(MessageSettings(), capacity=len(data), data=data)
            message_info = MessageInfo(
                peer=PeerEndpoint.from_sockaddr(addr),
                sock=udp_socket.local,
            )
            try:
                callback(message, message_info)
            except Exception as exc:
                logger.warning(
                    "udp_receive_callback_failed",
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
