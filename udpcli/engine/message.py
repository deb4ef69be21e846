"""
Message buffers and the pool they are allocated from.

A Message is an append-only byte buffer with a fixed capacity.
Messages come from a MessagePool which caps how many may be outstanding at
once; a message goes back to the pool when it is freed, either by its owner
or by the transport after sending it.
"""
from __future__ import annotations

import threading
from typing import Optional

import structlog

from udpcli.config import settings
from udpcli.exceptions import InvalidStateError, NoBuffersError
from udpcli.models import MessageSettings

logger = structlog.get_logger()


class Message:
    """
    Append-only datagram buffer.

    ``offset`` marks where the payload starts. Locally built messages have
    no header so it is 0; the transport may set it on received messages.
    """

    def __init__(
        self,
        message_settings: MessageSettings,
        capacity: int,
        pool: Optional["MessagePool"] = None,
        data: bytes = b"",
        offset: int = 0,
    ):
        self.settings = message_settings
        self.capacity = capacity
        self.offset = offset
        self.freed = False
        self._pool = pool
        self._buffer = bytearray(data)

    @property
    def length(self) -> int:
        return len(self._buffer)

    def append(self, data: bytes) -> None:
        """Append bytes, failing with NoBuffersError if capacity would be exceeded."""
        if self.freed:
            raise InvalidStateError("Message already freed")
        if len(self._buffer) + len(data) > self.capacity:
            raise NoBuffersError(
                "Message capacity exceeded",
                details={"capacity": self.capacity, "length": len(self._buffer), "append": len(data)},
            )
        self._buffer.extend(data)

    def truncate(self, length: int) -> None:
        del self._buffer[length:]

    def read(self, offset: int, max_length: int) -> bytes:
        return bytes(self._buffer[offset:offset + max_length])

    def payload(self) -> bytes:
        return bytes(self._buffer[self.offset:])

    def free(self) -> None:
        if self.freed:
            return
        self.freed = True
        if self._pool is not None:
            self._pool.release(self)


class MessagePool:
    """Bounded allocator for outgoing messages"""

    def __init__(self, size: Optional[int] = None, message_capacity: Optional[int] = None):
        self.size = size if size is not None else settings.message_pool_size
        self.message_capacity = (
            message_capacity if message_capacity is not None else settings.max_message_size
        )
        self._outstanding = 0
        self._lock = threading.Lock()

    @property
    def outstanding(self) -> int:
        return self._outstanding

    def allocate(self, message_settings: Optional[MessageSettings] = None) -> Optional[Message]:
        """Return a fresh message, or None when the pool is exhausted."""
        with self._lock:
            if self._outstanding >= self.size:
                logger.warning("message_pool_exhausted", size=self.size)
                return None
            self._outstanding += 1

        return Message(
            message_settings or MessageSettings(),
            capacity=self.message_capacity,
            pool=self,
        )

    def release(self, message: Message) -> None:
        with self._lock:
            self._outstanding = max(0, self._outstanding - 1)
