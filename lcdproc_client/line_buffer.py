"""
Buffering line reader for the inbound byte stream.

TCP delivers data in arbitrary chunks: one chunk may carry several lines, and a
single line (or a multi-byte UTF-8 character) may be split across chunks. The
LineBuffer accumulates raw data and only releases complete lines.
"""

import codecs
import logging
from typing import List

from .protocol import ENCODING, LINE_TERMINATOR

logger = logging.getLogger(__name__)


class LineBuffer:
    """Accumulates decoded text and yields complete, newline-terminated lines."""

    def __init__(self, encoding: str = ENCODING):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    def feed(self, data: bytes) -> List[str]:
        """
        Add a chunk of data and return every line it completes.

        Lines are returned without their terminator; a trailing carriage return
        is stripped and blank lines are skipped. An incomplete trailing line is
        kept until a later chunk completes it.

        Args:
            data: Raw bytes as received from the transport

        Returns:
            List[str]: Completed lines in arrival order
        """
        self._pending += self._decoder.decode(data)
        if LINE_TERMINATOR not in self._pending:
            return []

        *complete, self._pending = self._pending.split(LINE_TERMINATOR)
        lines = [line.rstrip("\r") for line in complete]
        return [line for line in lines if line.strip()]

    @property
    def pending(self) -> str:
        """Text received after the last complete line."""
        return self._pending

    def clear(self) -> None:
        if self._pending:
            logger.debug("Discarding partial line: %r", self._pending)
        self._decoder.reset()
        self._pending = ""
