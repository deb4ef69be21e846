"""
Custom Exception Hierarchy for the UDP CLI

Every command failure is raised as a UdpCliError subclass. The shell reports
each one as ``Error <code>: <name>`` so the numeric codes stay stable.
"""
from typing import Optional


class UdpCliError(Exception):
    """
    Base exception for all UDP CLI errors.

    Subclasses set ``code`` and ``name`` which are what the shell prints
    as the result of a failed command.
    """
    code: int = 1
    name: str = "Failed"

    def __init__(self, message: str = "", details: Optional[dict] = None):
        super().__init__(message or self.name)
        self.message = message or self.name
        self.details = details or {}


class FailedError(UdpCliError):
    """Generic failure with no more specific kind."""
    pass


# Command and argument errors

class InvalidArgumentsError(UdpCliError):
    """
    Wrong argument count or a token that does not parse.

    Raised before any side effect happens.
    """
    code = 7
    name = "InvalidArgs"


class HexParseError(InvalidArgumentsError):
    """Hex string has an odd number of digits or a non-hex character."""
    pass


class InvalidCommandError(UdpCliError):
    """Command name is not in the command table."""
    code = 35
    name = "InvalidCommand"


# Session state errors

class InvalidStateError(UdpCliError):
    """Operation is not valid for the current socket state."""
    code = 13
    name = "InvalidState"


class AlreadyError(UdpCliError):
    """Operation already done (socket already open)."""
    code = 24
    name = "Already"


# Resource errors

class NoBuffersError(UdpCliError):
    """
    Message allocation or append failed.

    Raised when the message pool is exhausted or a message would grow
    past its capacity.
    """
    code = 3
    name = "NoBufs"


# Network and Transport Errors

class TransportError(UdpCliError):
    """
    UDP transport failures.

    Wraps the OSError raised by the socket layer; the errno is kept in
    ``details``.
    """
    pass


class OpenError(TransportError):
    """Failed to create the OS socket."""
    pass


class BindError(TransportError):
    """Failed to bind the socket to a local endpoint."""
    pass


class ConnectError(TransportError):
    """Failed to associate the socket with a peer."""
    pass


class SendError(TransportError):
    """Failed to send a datagram."""
    pass
