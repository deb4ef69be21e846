"""
Interactive shell around the UDP command dispatcher.

Reads one line at a time, splits it into tokens with shell quoting rules,
runs the command and reports ``Done`` or ``Error <code>: <name>``.
"""
from __future__ import annotations

import shlex
from typing import Iterable, Optional, Sequence

import structlog

from udpcli.commands import UdpCommands
from udpcli.config import settings
from udpcli.engine.transport import SocketUdpTransport, UdpTransport
from udpcli.exceptions import InvalidArgumentsError, UdpCliError
from udpcli.output import Output
from udpcli.session import UdpSession

logger = structlog.get_logger()

EXIT_COMMANDS = frozenset({"exit", "quit"})

# One-shot runs open the socket first for every other command
SOCKETLESS_COMMANDS = frozenset({"help", "open", "close", "linksecurity"})


class Interpreter:
    """Owns the session and the command object for one shell"""

    def __init__(self, transport: Optional[UdpTransport] = None, output: Optional[Output] = None):
        self.output = output or Output()
        self.session = UdpSession(transport or SocketUdpTransport(), self.output)
        self.commands = UdpCommands(self.session)

    def run_command(self, tokens: Sequence[str]) -> bool:
        """Run one tokenized command. Returns True on success."""
        try:
            self.commands.process(tokens)
        except UdpCliError as exc:
            self._report_error(tokens, exc)
            return False

        self.output.output_line("Done")
        return True

    def run_one_shot(self, tokens: Sequence[str]) -> bool:
        """
        Run a single command on a fresh session and tear it down.

        Commands that use the socket get it opened first, so
        ``send ::1 1234 hello`` works without a preceding ``open``.
        """
        try:
            if tokens and tokens[0] not in SOCKETLESS_COMMANDS and self.commands.find(tokens[0]):
                try:
                    self.commands.process(["open"])
                except UdpCliError as exc:
                    self._report_error(["open"], exc)
                    return False
            return self.run_command(tokens)
        finally:
            self.teardown()

    def _report_error(self, tokens: Sequence[str], exc: UdpCliError) -> None:
        logger.info(
            "udp_command_failed",
            command=tokens[0] if tokens else None,
            error=exc.message,
            error_type=type(exc).__name__,
            details=exc.details,
        )
        self.output.output_line(f"Error {exc.code}: {exc.name}")

    def process_line(self, line: str) -> bool:
        try:
            tokens = shlex.split(line)
        except ValueError as exc:
            self._report_error((), InvalidArgumentsError(str(exc)))
            return False
        return self.run_command(tokens)

    def run(self, lines: Iterable[str], prompt: Optional[str] = None) -> None:
        """Process lines until exhausted or an exit command is read."""
        prompt = settings.prompt if prompt is None else prompt
        try:
            self.output.output_format(prompt)
            for line in lines:
                stripped = line.strip()
                if stripped in EXIT_COMMANDS:
                    break
                if stripped:
                    self.process_line(stripped)
                self.output.output_format(prompt)
        finally:
            self.teardown()

    def teardown(self) -> None:
        self.session.teardown()
