"""
Transport I/O Boundary

This module provides the Transport classes, which handle the byte stream between
the client and an LCDproc server. It abstracts away the TCP/mock distinction and
exposes the operations the protocol layer needs: connect, write, drain, read and
close.

I/O boundary classes - all socket interaction and connection management lives here.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Union

from .config import ServerConfig
from .errors import LcdprocError
from .protocol import ENCODING


logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096


class TransportError(LcdprocError):
    """Raised for transport-level errors (connect failure, reset, EOF)."""

    pass


class Transport(ABC):
    """
    Abstract base class for the client's byte stream.

    write() is synchronous: it hands the whole buffer to the underlying stream
    before returning, so successive writes reach the wire in call order.
    """

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the connection.

        Raises:
            TransportError: If the connection cannot be established
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """
        Close the connection gracefully.

        Raises:
            TransportError: If closing fails
        """
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the transport is open."""
        pass

    @abstractmethod
    def write(self, data: bytes) -> None:
        """
        Write one complete buffer.

        Raises:
            TransportError: If not connected or the write fails
        """
        pass

    async def drain(self) -> None:
        """
        Wait until buffered writes have been flushed to the peer.

        Raises:
            TransportError: If the connection fails while flushing
        """
        pass

    @abstractmethod
    async def read(self) -> bytes:
        """
        Wait for the next chunk of inbound data.

        Returns:
            bytes: Data received; b"" once the peer has closed the stream

        Raises:
            TransportError: If the connection fails while reading
        """
        pass


class TcpTransport(Transport):
    """
    TCP transport built on asyncio streams.

    Connects to the LCDproc server named in the ServerConfig.
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None

    async def connect(self) -> None:
        """Connect to the LCDproc server."""
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.config.host, self.config.port),
                timeout=self.config.timeout,
            )
            logger.info(f"Connected to {self.config.host}:{self.config.port}")
        except (OSError, asyncio.TimeoutError) as e:
            self._reader = self._writer = None
            raise TransportError(
                f"TCP connect to {self.config.host}:{self.config.port} failed: {e!r}"
            ) from e

    async def close(self) -> None:
        """Close the TCP connection."""
        writer = self._writer
        self._reader = self._writer = None
        if writer is None:
            return
        try:
            writer.close()
            await writer.wait_closed()
            logger.info("Disconnected from %s:%d", self.config.host, self.config.port)
        except OSError as e:
            raise TransportError(f"TCP close failed: {e!r}") from e

    def is_connected(self) -> bool:
        """Check if the TCP connection is open."""
        return self._writer is not None and not self._writer.is_closing()

    def write(self, data: bytes) -> None:
        """Write a buffer to the TCP stream."""
        if not self.is_connected():
            raise TransportError("Not connected to server")
        try:
            self._writer.write(data)
        except (OSError, RuntimeError) as e:
            raise TransportError(f"TCP write failed: {e!r}") from e

    async def drain(self) -> None:
        """Wait for the stream's write buffer to fall below its high-water mark."""
        if not self.is_connected():
            raise TransportError("Not connected to server")
        try:
            await self._writer.drain()
        except OSError as e:
            raise TransportError(f"TCP drain failed: {e!r}") from e

    async def read(self) -> bytes:
        """Read the next chunk from the TCP stream."""
        if self._reader is None:
            raise TransportError("Not connected to server")
        try:
            return await self._reader.read(READ_CHUNK_SIZE)
        except OSError as e:
            raise TransportError(f"TCP read failed: {e!r}") from e


class MockTransport(Transport):
    """
    In-memory transport for testing and development.

    Records every written buffer and serves inbound data queued with push().
    Logs operations for debugging purposes.
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig(mock=True)
        self.written: List[bytes] = []
        self.fail_connect = False
        self.drain_count = 0
        self._connected = False
        self._inbound: "asyncio.Queue[Union[bytes, Exception]]" = asyncio.Queue()

    async def connect(self) -> None:
        """Simulate connecting to a server."""
        await asyncio.sleep(0)
        if self.fail_connect:
            raise TransportError(
                f"[MOCK] Connection to {self.config.host}:{self.config.port} refused"
            )
        self._connected = True
        logger.info(f"[MOCK] Connected to {self.config.host}:{self.config.port}")

    async def close(self) -> None:
        """Simulate closing; a pending read() sees end of stream."""
        if self._connected:
            self._connected = False
            self._inbound.put_nowait(b"")
            logger.info("[MOCK] Disconnected")

    def is_connected(self) -> bool:
        """Check if the mock transport is open."""
        return self._connected

    def write(self, data: bytes) -> None:
        """Record a written buffer."""
        if not self._connected:
            raise TransportError("Not connected to mock server")
        self.written.append(bytes(data))

    async def drain(self) -> None:
        """Count flushes; written data is already recorded."""
        if not self._connected:
            raise TransportError("Not connected to mock server")
        self.drain_count += 1

    async def read(self) -> bytes:
        """Return the next queued chunk, or raise a queued failure."""
        item = await self._inbound.get()
        if isinstance(item, Exception):
            raise item
        return item

    def push(self, data: Union[bytes, str]) -> None:
        """Queue inbound data as if the server had sent it."""
        if isinstance(data, str):
            data = data.encode(ENCODING)
        self._inbound.put_nowait(data)

    def fail(self, error: Optional[Exception] = None) -> None:
        """Queue a transport failure for the next read()."""
        self._connected = False
        self._inbound.put_nowait(error or TransportError("[MOCK] Connection reset"))

    @property
    def lines(self) -> List[str]:
        """Written data as a list of command lines without terminators."""
        text = b"".join(self.written).decode(ENCODING)
        return text.splitlines()


def create_transport(
    config: ServerConfig, use_mock: Optional[bool] = None
) -> Transport:
    """
    Factory function to create the appropriate transport implementation.

    Args:
        config: Server configuration
        use_mock: Force mock (True) or TCP (False). If None, uses config.mock

    Returns:
        Transport: TCP or mock implementation
    """
    if use_mock is None:
        use_mock = config.mock

    if use_mock:
        logger.info("Creating mock transport")
        return MockTransport(config)
    else:
        logger.info("Creating TCP transport")
        return TcpTransport(config)
