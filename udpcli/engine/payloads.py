"""
Payload builders for outgoing UDP messages.

Two independent builders append bytes to a message:

- an auto-generated repeating ``0-9A-Za-z`` sequence of a given length
- a hex string decoder that works through arbitrarily long input in
  bounded segments so no step holds more than one segment in memory
"""
from __future__ import annotations

import string
from typing import Iterator, Optional

import structlog

from udpcli.config import settings
from udpcli.engine.message import Message
from udpcli.exceptions import HexParseError

logger = structlog.get_logger()

AUTO_PAYLOAD_ALPHABET = (string.digits + string.ascii_uppercase + string.ascii_lowercase).encode("ascii")

_HEX_DIGITS = frozenset(string.hexdigits)


def auto_generated_sequence(length: int) -> bytes:
    """Return ``length`` bytes cycling through 0-9, A-Z, a-z."""
    cycle = len(AUTO_PAYLOAD_ALPHABET)
    repeats, remainder = divmod(length, cycle)
    return AUTO_PAYLOAD_ALPHABET * repeats + AUTO_PAYLOAD_ALPHABET[:remainder]


def prepare_auto_generated_payload(message: Message, length: int) -> None:
    """
    Append an auto-generated payload of ``length`` bytes.

    Appends one alphabet cycle at a time. If an append fails the error
    propagates and bytes appended so far stay in the message; the caller
    discards the whole message.
    """
    cycle = len(AUTO_PAYLOAD_ALPHABET)
    remaining = length
    while remaining > 0:
        chunk = AUTO_PAYLOAD_ALPHABET[:min(cycle, remaining)]
        message.append(chunk)
        remaining -= len(chunk)


def iter_hex_segments(hex_string: str, segment_size: Optional[int] = None) -> Iterator[bytes]:
    """
    Decode a hex string lazily, yielding at most ``segment_size`` bytes per step.

    The generator is exhausted once the final segment has been yielded.

    Raises:
        HexParseError: odd number of digits, or a non-hex character. Raised
            from the step that reaches the bad segment, before that segment
            is yielded.
    """
    segment_size = segment_size or settings.hex_segment_size

    if len(hex_string) % 2 != 0:
        raise HexParseError(
            "Hex string has an odd number of digits",
            details={"digits": len(hex_string)},
        )

    step = segment_size * 2
    for start in range(0, len(hex_string), step):
        digits = hex_string[start:start + step]
        bad = next((c for c in digits if c not in _HEX_DIGITS), None)
        if bad is not None:
            raise HexParseError(
                f"Invalid hex character {bad!r}",
                details={"position": start + digits.index(bad)},
            )
        yield bytes.fromhex(digits)


def prepare_hex_string_payload(
    message: Message, hex_string: str, segment_size: Optional[int] = None
) -> None:
    """
    Append the bytes a hex string decodes to.

    All or nothing: on any failure the message is cut back to the length
    it had on entry before the error propagates.
    """
    start_length = message.length
    try:
        for segment in iter_hex_segments(hex_string, segment_size):
            message.append(segment)
    except Exception:
        message.truncate(start_length)
        logger.debug("hex_payload_rolled_back", length=start_length)
        raise
