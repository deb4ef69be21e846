"""
Line-oriented output surface shared by command handlers and the receive thread.
"""
from __future__ import annotations

import sys
import threading
from typing import Optional, TextIO


class Output:
    """
    Writes whole lines to a text stream.

    Commands run on the shell thread while received datagrams are reported
    from the transport's receive thread, so every write holds a lock and a
    line is never split by another writer.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream
        self._lock = threading.Lock()

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def output_line(self, text: str = "") -> None:
        with self._lock:
            self.stream.write(f"{text}\n")
            self.stream.flush()

    def output_lines(self, lines) -> None:
        with self._lock:
            for text in lines:
                self.stream.write(f"{text}\n")
            self.stream.flush()

    def output_format(self, text: str) -> None:
        """Write a fragment without a line break (prompts)."""
        with self._lock:
            self.stream.write(text)
            self.stream.flush()

    def output_enabled_disabled_status(self, enabled: bool) -> None:
        self.output_line("Enabled" if enabled else "Disabled")
