"""
Typed parsing of command argument tokens.

Tokens arrive already split by the shell. Every parser raises
InvalidArgumentsError on malformed input so handlers can fail fast before
touching the transport.
"""
from ipaddress import AddressValueError, IPv6Address

from udpcli.exceptions import InvalidArgumentsError
from udpcli.models import PeerEndpoint

_DECIMAL_DIGITS = frozenset("0123456789")


def parse_ip6_address(token: str) -> IPv6Address:
    """
    Parse an IPv6 address in any textual form ``ipaddress`` accepts.

    Scoped addresses (``fe80::1%eth0``) are rejected.
    """
    if "%" in token:
        raise InvalidArgumentsError(f"Scoped IPv6 address not supported: {token!r}")
    try:
        return IPv6Address(token)
    except AddressValueError as exc:
        raise InvalidArgumentsError(
            f"Invalid IPv6 address: {token!r}", details={"error": str(exc)}
        )


def parse_uint16(token: str) -> int:
    """
    Parse an unsigned 16-bit integer.

    Accepts decimal or ``0x`` prefixed hex. Signs, whitespace and
    underscores are rejected.
    """
    if token[:2].lower() == "0x":
        digits, base = token[2:], 16
        valid = bool(digits) and all(c in "0123456789abcdefABCDEF" for c in digits)
    else:
        digits, base = token, 10
        valid = bool(digits) and all(c in _DECIMAL_DIGITS for c in digits)

    if not valid:
        raise InvalidArgumentsError(f"Invalid number: {token!r}")

    value = int(digits, base)
    if value > 0xFFFF:
        raise InvalidArgumentsError(
            f"Value out of range: {token!r}", details={"max": 0xFFFF}
        )
    return value


def parse_enable_or_disable(token: str) -> bool:
    if token == "enable":
        return True
    if token == "disable":
        return False
    raise InvalidArgumentsError(f"Expected 'enable' or 'disable', got {token!r}")


def parse_endpoint(address_token: str, port_token: str) -> PeerEndpoint:
    return PeerEndpoint(
        address=parse_ip6_address(address_token),
        port=parse_uint16(port_token),
    )
