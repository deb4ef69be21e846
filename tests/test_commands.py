"""
Tests for the UDP command table and handlers.

Tests cover:
- Help output and dispatch by exact name
- open/close/bind/connect argument validation and state checks
- linksecurity show/set
- send argument shapes, payload types and message ownership
"""
from ipaddress import IPv6Address

import pytest

from udpcli.commands import UdpCommands
from udpcli.exceptions import (
    AlreadyError,
    HexParseError,
    InvalidArgumentsError,
    InvalidCommandError,
    InvalidStateError,
    NoBuffersError,
    SendError,
)
from udpcli.models import PeerEndpoint

COMMAND_NAMES = ["bind", "close", "connect", "help", "linksecurity", "open", "send"]


class TestDispatcher:
    """Tests for command lookup and help."""

    def test_table_order(self):
        assert UdpCommands.command_names() == COMMAND_NAMES

    def test_names_unique(self):
        names = UdpCommands.command_names()
        assert len(names) == len(set(names))

    def test_empty_args_prints_help(self, commands, stream):
        commands.process([])
        assert stream.getvalue().splitlines() == COMMAND_NAMES

    def test_help_command(self, commands, stream):
        commands.process(["help"])
        assert stream.getvalue() == "\n".join(COMMAND_NAMES) + "\n"

    def test_unknown_command(self, commands):
        with pytest.raises(InvalidCommandError):
            commands.process(["sned", "hello"])

    def test_lookup_is_case_sensitive(self, commands):
        with pytest.raises(InvalidCommandError):
            commands.process(["OPEN"])

    def test_handler_errors_propagate(self, commands):
        commands.process(["open"])
        with pytest.raises(AlreadyError):
            commands.process(["open"])


class TestSocketHandlers:
    """Tests for open, close, bind and connect."""

    def test_open_registers_receive_callback(self, commands, session, transport):
        commands.process(["open"])
        assert transport.calls == [("open",)]
        assert session.socket.callback == session.handle_receive
        assert session.is_open

    def test_open_twice_fails(self, commands, transport):
        commands.process(["open"])
        with pytest.raises(AlreadyError):
            commands.process(["open"])
        assert transport.calls == [("open",)]

    def test_open_close_open(self, commands, transport):
        commands.process(["open"])
        commands.process(["close"])
        commands.process(["open"])
        assert [c[0] for c in transport.calls] == ["open", "close", "open"]

    def test_open_rejects_arguments(self, commands, transport):
        with pytest.raises(InvalidArgumentsError):
            commands.process(["open", "now"])
        assert transport.calls == []

    def test_close_when_closed_defers_to_transport(self, commands, transport):
        commands.process(["close"])
        assert transport.calls == [("close",)]

    def test_bind(self, commands, transport):
        commands.process(["open"])
        commands.process(["bind", "::", "1234"])
        assert transport.calls[-1] == ("bind", PeerEndpoint(address=IPv6Address("::"), port=1234))

    def test_connect(self, commands, session, transport):
        commands.process(["open"])
        commands.process(["connect", "fdde:ad00:beef::1", "5683"])
        assert session.socket.peer == PeerEndpoint(address=IPv6Address("fdde:ad00:beef::1"), port=5683)

    @pytest.mark.parametrize("command", ["bind", "connect"])
    @pytest.mark.parametrize(
        "args",
        [
            [],
            ["::1"],
            ["::1", "1234", "extra"],
            ["not-an-ip", "1234"],
            ["127.0.0.1", "1234"],
            ["::1", "65536"],
            ["::1", "-1"],
            ["::1", "port"],
        ],
    )
    def test_bad_endpoint_args_make_no_transport_call(self, commands, transport, command, args):
        with pytest.raises(InvalidArgumentsError):
            commands.process([command, *args])
        assert transport.calls == []


class TestLinkSecurity:
    """Tests for the linksecurity command."""

    def test_default_enabled(self, commands, stream):
        commands.process(["linksecurity"])
        assert stream.getvalue() == "Enabled\n"

    def test_disable_then_show(self, commands, session, stream):
        commands.process(["linksecurity", "disable"])
        assert session.link_security_enabled is False
        commands.process(["linksecurity"])
        assert stream.getvalue() == "Disabled\n"

    def test_invalid_directive(self, commands, session):
        with pytest.raises(InvalidArgumentsError):
            commands.process(["linksecurity", "maybe"])
        assert session.link_security_enabled is True

    def test_applies_to_later_sends(self, commands, transport):
        commands.process(["open"])
        commands.process(["send", "::1", "1234", "a"])
        commands.process(["linksecurity", "disable"])
        commands.process(["send", "::1", "1234", "b"])
        assert [s[2].link_security_enabled for s in transport.sent] == [True, False]


class TestSend:
    """Tests for send argument resolution and payload building."""

    @pytest.fixture(autouse=True)
    def opened(self, commands):
        commands.process(["open"])

    def test_auto_generated_payload(self, commands, transport):
        commands.process(["send", "::1", "1234", "-s", "10"])
        payload, info, _ = transport.sent[-1]
        assert payload == b"0123456789"
        assert info.peer == PeerEndpoint(address=IPv6Address("::1"), port=1234)

    def test_hex_payload(self, commands, transport):
        commands.process(["send", "::1", "1234", "-x", "48656c6c6f"])
        assert transport.sent[-1][0] == b"Hello"

    def test_text_payload_with_destination(self, commands, transport):
        commands.process(["send", "::1", "1234", "hello"])
        assert transport.sent[-1][0] == b"hello"

    def test_explicit_text_marker(self, commands, transport):
        commands.process(["send", "::1", "1234", "-t", "-s"])
        assert transport.sent[-1][0] == b"-s"

    def test_text_is_verbatim(self, commands, transport):
        commands.process(["send", "::1", "7", "a\\x00b%s"])
        assert transport.sent[-1][0] == b"a\\x00b%s"

    def test_connected_peer_used_for_short_forms(self, commands, transport):
        commands.process(["connect", "::1", "9000"])
        commands.process(["send", "hi"])
        commands.process(["send", "-s", "3"])
        assert [s[0] for s in transport.sent] == [b"hi", b"012"]
        assert all(s[1].peer is None for s in transport.sent)

    def test_text_without_connect_fails(self, commands, transport):
        with pytest.raises(InvalidStateError):
            commands.process(["send", "hello"])
        assert transport.pool.outstanding == 0

    @pytest.mark.parametrize(
        "args",
        [
            [],
            ["::1", "1", "-t", "a", "b"],
            ["-s"],
            ["-x"],
            ["-t"],
            ["-s", "65536"],
            ["-s", "ten"],
            ["hello", "world"],
            ["::1", "1234", "-s"],
            ["bad", "1234", "text"],
            ["::1", "99999", "text"],
        ],
    )
    def test_invalid_arguments(self, commands, transport, args):
        with pytest.raises(InvalidArgumentsError):
            commands.process(["send", *args])
        assert transport.sent == []
        assert transport.pool.outstanding == 0

    def test_bad_hex_frees_message(self, commands, transport):
        with pytest.raises(HexParseError):
            commands.process(["send", "::1", "1234", "-x", "abc"])
        assert transport.pool.outstanding == 0

    def test_send_failure_frees_message(self, commands, transport):
        transport.fail_next_send = True
        with pytest.raises(SendError):
            commands.process(["send", "::1", "1234", "hello"])
        assert transport.pool.outstanding == 0

    def test_successful_send_transfers_message(self, commands, transport):
        for _ in range(10):
            commands.process(["send", "::1", "1234", "-s", "5"])
        assert len(transport.sent) == 10
        assert transport.pool.outstanding == 0

    def test_pool_exhausted(self, commands, transport):
        held = [transport.pool.allocate() for _ in range(transport.pool.size)]
        with pytest.raises(NoBuffersError):
            commands.process(["send", "::1", "1234", "hello"])
        assert transport.calls[-1] == ("open",)
        for message in held:
            message.free()
        commands.process(["send", "::1", "1234", "hello"])

    def test_bad_destination_allocates_nothing(self, commands, transport):
        with pytest.raises(InvalidArgumentsError):
            commands.process(["send", "nope", "1234", "-x", "00"])
        assert transport.pool.outstanding == 0
        assert transport.calls == [("open",)]
