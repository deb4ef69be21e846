"""
UDP command table and dispatcher.

Commands:
    bind <addr> <port>                bind the socket to a local endpoint
    close                             close the socket
    connect <addr> <port>             set the default peer for sends
    help                              list command names
    linksecurity [enable|disable]     show or set link security for new messages
    open                              open the socket
    send [<addr> <port>] [-t|-s|-x] <value>
                                      send text, an auto-generated payload of a
                                      given length, or hex-encoded bytes
"""
from __future__ import annotations

from typing import Callable, NamedTuple, Optional, Sequence, Tuple

import structlog

from udpcli.args import parse_enable_or_disable, parse_endpoint, parse_uint16
from udpcli.engine.message import Message
from udpcli.engine.payloads import prepare_auto_generated_payload, prepare_hex_string_payload
from udpcli.exceptions import (
    AlreadyError,
    InvalidArgumentsError,
    InvalidCommandError,
    NoBuffersError,
)
from udpcli.models import MessageInfo, MessageSettings, PeerEndpoint
from udpcli.session import UdpSession

logger = structlog.get_logger()

PAYLOAD_AUTO = "-s"
PAYLOAD_HEX = "-x"
PAYLOAD_TEXT = "-t"


class Command(NamedTuple):
    name: str
    handler: Callable[["UdpCommands", Sequence[str]], None]


def _expect_count(args: Sequence[str], *counts: int) -> None:
    if len(args) not in counts:
        raise InvalidArgumentsError(
            "Wrong number of arguments",
            details={"given": len(args), "expected": list(counts)},
        )


class UdpCommands:
    """Dispatches UDP commands against a single session"""

    COMMANDS: Tuple[Command, ...] = ()

    def __init__(self, session: UdpSession):
        self.session = session
        self.transport = session.transport
        self.output = session.output

    @classmethod
    def command_names(cls) -> list[str]:
        return [command.name for command in cls.COMMANDS]

    @classmethod
    def find(cls, name: str) -> Optional[Command]:
        return next((command for command in cls.COMMANDS if command.name == name), None)

    def process(self, args: Sequence[str]) -> None:
        """
        Run one command.

        With no tokens the command list is printed. Otherwise the first
        token names the command and the rest are passed to its handler;
        whatever the handler raises propagates unchanged.
        """
        if not args:
            self.process_help(())
            return

        command = self.find(args[0])
        if command is None:
            raise InvalidCommandError(f"Unknown command: {args[0]!r}")

        logger.debug("udp_command", command=command.name, args=list(args[1:]))
        command.handler(self, args[1:])

    def process_help(self, args: Sequence[str]) -> None:
        self.output.output_lines(self.command_names())

    def process_bind(self, args: Sequence[str]) -> None:
        _expect_count(args, 2)
        endpoint = parse_endpoint(args[0], args[1])
        self.transport.bind(self.session.socket, endpoint)

    def process_connect(self, args: Sequence[str]) -> None:
        _expect_count(args, 2)
        endpoint = parse_endpoint(args[0], args[1])
        self.transport.connect(self.session.socket, endpoint)

    def process_close(self, args: Sequence[str]) -> None:
        _expect_count(args, 0)
        self.transport.close(self.session.socket)

    def process_open(self, args: Sequence[str]) -> None:
        _expect_count(args, 0)
        if self.transport.is_open(self.session.socket):
            raise AlreadyError("Socket is already open")
        self.transport.open(self.session.socket, self.session.handle_receive)

    def process_link_security(self, args: Sequence[str]) -> None:
        _expect_count(args, 0, 1)
        if not args:
            self.output.output_enabled_disabled_status(self.session.link_security_enabled)
            return

        self.session.link_security_enabled = parse_enable_or_disable(args[0])
        logger.info("udp_link_security_set", enabled=self.session.link_security_enabled)

    def process_send(self, args: Sequence[str]) -> None:
        # send             <text>
        # send             <type> <value>
        # send <ip> <port> <text>
        # send <ip> <port> <type> <value>
        _expect_count(args, 1, 2, 3, 4)

        destination: Optional[PeerEndpoint] = None
        if len(args) > 2:
            destination = parse_endpoint(args[0], args[1])
            args = args[2:]

        message = self.transport.new_message(
            MessageSettings(link_security_enabled=self.session.link_security_enabled)
        )
        if message is None:
            raise NoBuffersError("No message buffers available")

        try:
            self._prepare_payload(message, args)
            self.transport.send(self.session.socket, message, MessageInfo(peer=destination))
        except Exception:
            self.transport.free_message(message)
            raise

    def _prepare_payload(self, message: Message, payload_args: Sequence[str]) -> None:
        marker = payload_args[0]

        if marker == PAYLOAD_AUTO:
            _expect_count(payload_args, 2)
            prepare_auto_generated_payload(message, parse_uint16(payload_args[1]))
        elif marker == PAYLOAD_HEX:
            _expect_count(payload_args, 2)
            prepare_hex_string_payload(message, payload_args[1])
        else:
            if marker == PAYLOAD_TEXT:
                _expect_count(payload_args, 2)
                text = payload_args[1]
            else:
                _expect_count(payload_args, 1)
                text = marker
            message.append(text.encode("utf-8"))


# Kept in alphabetical order
UdpCommands.COMMANDS = (
    Command("bind", UdpCommands.process_bind),
    Command("close", UdpCommands.process_close),
    Command("connect", UdpCommands.process_connect),
    Command("help", UdpCommands.process_help),
    Command("linksecurity", UdpCommands.process_link_security),
    Command("open", UdpCommands.process_open),
    Command("send", UdpCommands.process_send),
)
