"""
Client - Connection and Handshake State Machine

This module contains the Client class, which owns the transport to an LCDproc
server. It is responsible for:
- The hello/connect/client_set handshake and capability negotiation
- Screen id allocation and the screen registry
- Routing inbound listen/ignore notifications to screens
- The send() primitive every screen and widget command goes through

States: DISCONNECTED -> CONNECTING -> HANDSHAKING -> READY -> CLOSED.
Nothing leaves CLOSED; construct a new Client to reconnect.
"""

import asyncio
import logging
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Union

from .config import ClientConfig, default_config
from .errors import ClientStateError, HandshakeError, NotConnectedError
from .events import ConnectionEvent, EventEmitter, ScreenEvent
from .line_buffer import LineBuffer
from .protocol import (
    CMD_CLIENT_SET,
    CMD_HELLO,
    ENCODING,
    Capabilities,
    MessageKind,
    classify_message,
    encode_command,
    parse_connect_line,
    quote,
)
from .screen import Screen
from .transport import Transport, TransportError, create_transport


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Lifecycle of a client connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    HANDSHAKING = "handshaking"
    READY = "ready"
    CLOSED = "closed"

    def __str__(self) -> str:
        return self.value


_SENDABLE_STATES = (ConnectionState.HANDSHAKING, ConnectionState.READY)


class Client:
    """
    LCDproc client.

    All commands are written immediately and synchronously; inbound data is
    consumed by a reader task started by connect().

    Example:
        async with Client(ClientConfig(name="sysmon")) as client:
            screen = client.add_screen(priority="info", heartbeat="off")
            screen.add_title().set_title("System")
            screen.add_string().set(1, 2, "load 0.42")
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[Transport] = None,
        log: Optional[logging.Logger] = None,
        use_mock: Optional[bool] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Client configuration (default: default_config())
            transport: Byte stream to the server (default: auto-created from config)
            log: Logger for this connection and its screens/widgets
                (default: module logger)
            use_mock: Force a mock transport when none is given (default: from config)
        """
        self.config = config or default_config()
        self.transport = transport or create_transport(self.config.server, use_mock)
        self.logger = log or logger
        self.events: EventEmitter[ConnectionEvent] = EventEmitter(
            ConnectionEvent, self.logger
        )

        self.capabilities = Capabilities()
        self.state = ConnectionState.DISCONNECTED

        self._screens: Dict[str, Screen] = {}
        self._screen_count = 0
        self._line_buffer = LineBuffer()
        self._reader_task: Optional[asyncio.Task] = None
        self._ready = asyncio.Event()
        self._closed = asyncio.Event()

    async def __aenter__(self) -> "Client":
        await self.connect()
        try:
            await self.wait_ready(self.config.server.timeout)
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def is_ready(self) -> bool:
        return self.state is ConnectionState.READY

    @property
    def is_closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    @property
    def screens(self) -> Mapping[str, Screen]:
        return MappingProxyType(self._screens)

    def get_screen(self, screen_id: str) -> Optional[Screen]:
        return self._screens.get(screen_id)

    def on(
        self, event: ConnectionEvent, callback: Callable[..., Any]
    ) -> Callable[..., Any]:
        return self.events.on(event, callback)

    def off(self, event: ConnectionEvent, callback: Callable[..., Any]) -> None:
        self.events.off(event, callback)

    async def connect(self) -> None:
        """
        Open the transport and start the handshake.

        Returns once hello has been sent; use wait_ready() (or the async context
        manager) to wait for the server's reply.

        Raises:
            ClientStateError: If connect() was already called
            TransportError: If the transport cannot be opened
        """
        if self.state is not ConnectionState.DISCONNECTED:
            raise ClientStateError(f"Cannot connect from state {self.state}")

        self._set_state(ConnectionState.CONNECTING)
        try:
            await self.transport.connect()
        except TransportError as e:
            self._fail(e)
            raise

        self._set_state(ConnectionState.HANDSHAKING)
        self.send(CMD_HELLO)
        self._reader_task = asyncio.create_task(self._read_loop())

    async def wait_ready(self, timeout: Optional[float] = None) -> None:
        """
        Wait until the handshake has completed.

        Args:
            timeout: Seconds to wait, None for no limit

        Raises:
            NotConnectedError: If the connection closes before becoming ready
            asyncio.TimeoutError: If the timeout expires first
        """
        if self.state is ConnectionState.READY:
            return
        if self.state is ConnectionState.CLOSED:
            raise NotConnectedError("Connection is closed")

        ready = asyncio.ensure_future(self._ready.wait())
        closed = asyncio.ensure_future(self._closed.wait())
        try:
            done, _ = await asyncio.wait(
                {ready, closed}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            ready.cancel()
            closed.cancel()

        if not done:
            raise asyncio.TimeoutError(f"Handshake not completed within {timeout}s")
        if self.state is not ConnectionState.READY:
            raise NotConnectedError("Connection closed before handshake completed")

    async def close(self) -> None:
        """
        Close the connection.

        Idempotent. Pending writes are flushed first, bounded by the server
        timeout. Screens and widgets are left in memory as stale handles.

        Raises:
            TransportError: If the transport fails to close cleanly
        """
        if self.state in _SENDABLE_STATES and self.transport.is_connected():
            try:
                await asyncio.wait_for(
                    self.transport.drain(), timeout=self.config.server.timeout
                )
            except (TransportError, asyncio.TimeoutError) as e:
                self.logger.warning(f"Pending commands not flushed before close: {e!r}")
        was_open = self.state is not ConnectionState.CLOSED
        if was_open:
            self._enter_closed()

        task = self._reader_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        try:
            if self.transport.is_connected():
                await self.transport.close()
        finally:
            if was_open:
                self.logger.info(f"Client {self.name} closed")
                self.events.emit(ConnectionEvent.CLOSED)

    def send(self, *tokens: Any) -> None:
        """
        Write one command line to the server.

        Nested sequences are flattened and all tokens are joined with single
        spaces. The full line is handed to the transport before returning.

        Args:
            *tokens: Command name and arguments

        Raises:
            NotConnectedError: If the connection is not handshaking or ready
            TransportError: If the write fails; the connection is torn down
        """
        if self.state not in _SENDABLE_STATES:
            raise NotConnectedError(f"Cannot send in state {self.state}")

        data = encode_command(*tokens)
        self.logger.debug(f"SEND {data.decode(ENCODING).rstrip()}")
        try:
            self.transport.write(data)
        except TransportError as e:
            self._fail(e)
            raise

    async def drain(self) -> None:
        """
        Wait until commands written by send() have been flushed to the server.

        send() never blocks, so callers issuing long bursts of updates should
        await this between bursts to bound the write buffer. The reader task
        also drains after each inbound chunk.

        Raises:
            NotConnectedError: If the connection is not handshaking or ready
            TransportError: If the flush fails; the connection is torn down
        """
        if self.state not in _SENDABLE_STATES:
            raise NotConnectedError(f"Cannot drain in state {self.state}")
        try:
            await self.transport.drain()
        except TransportError as e:
            self._fail(e)
            raise

    def add_screen(
        self, config: Optional[Mapping[str, Any]] = None, **options: Any
    ) -> Screen:
        """
        Add a screen.

        See the LCDproc developer's guide for screen options.

        Args:
            config: Initial screen options as a mapping
            **options: Initial screen options as keyword arguments

        Returns:
            Screen: The new screen, already registered with the server

        Raises:
            ScreenOptionError: If an option is unknown or invalid
            NotConnectedError: If the connection is not handshaking or ready
        """
        screen_id = self._new_screen_id()
        screen = Screen(self, screen_id, config, **options)
        self._screens[screen_id] = screen
        return screen

    def feed_data(self, data: Union[bytes, str]) -> None:
        """
        Process a chunk of inbound data.

        Called by the reader task for every chunk the transport delivers.
        Complete lines are dispatched in order; a trailing partial line waits
        for the next chunk.
        """
        if self.state is ConnectionState.CLOSED:
            self.logger.debug(f"Ignoring {len(data)} bytes received after close")
            return
        if isinstance(data, str):
            data = data.encode(ENCODING)

        for line in self._line_buffer.feed(data):
            if self.state is ConnectionState.CLOSED:
                break
            self._handle_line(line)

    async def _read_loop(self) -> None:
        try:
            while self.state is not ConnectionState.CLOSED:
                data = await self.transport.read()
                if not data:
                    raise TransportError("Connection closed by server")
                self.feed_data(data)
                if self.state in _SENDABLE_STATES:
                    await self.transport.drain()
        except TransportError as e:
            self._fail(e)

        if self.transport.is_connected():
            try:
                await self.transport.close()
            except TransportError as e:
                self.logger.warning(f"Error closing transport: {e}")

    def _handle_line(self, line: str) -> None:
        self.logger.debug(f"RECV {line}")
        message = classify_message(line)

        if message.kind is MessageKind.CONNECT and self.state is ConnectionState.HANDSHAKING:
            self._handle_connect(line)
        elif message.kind is MessageKind.SUCCESS:
            return
        elif message.kind is MessageKind.LISTEN:
            self._notify_screen(message.argument, ScreenEvent.SHOWN)
        elif message.kind is MessageKind.IGNORE:
            self._notify_screen(message.argument, ScreenEvent.HIDDEN)
        elif message.kind is MessageKind.HUH:
            error = message.argument or ""
            self.logger.warning(f"Server error: {error}")
            self.events.emit(ConnectionEvent.SERVER_ERROR, error)
        else:
            self.logger.warning(f"Unrecognized message: {line}")
            self.events.emit(ConnectionEvent.UNRECOGNIZED_MESSAGE, line)

    def _handle_connect(self, line: str) -> None:
        try:
            capabilities = parse_connect_line(line)
        except HandshakeError as e:
            self._fail(e)
            return

        self.capabilities = capabilities
        self.logger.info(
            "Connected to LCDproc %s (protocol %s), display %dx%d, cell %dx%d",
            capabilities.version,
            capabilities.protocol_version,
            capabilities.size.width,
            capabilities.size.height,
            capabilities.cell_size.width,
            capabilities.cell_size.height,
        )

        self.send(CMD_CLIENT_SET, "-name", quote(self.name))
        self._set_state(ConnectionState.READY)
        self._ready.set()
        self.events.emit(ConnectionEvent.READY)

    def _notify_screen(self, screen_id: Optional[str], event: ScreenEvent) -> None:
        screen = self._screens.get(screen_id) if screen_id else None
        if screen is None:
            self.logger.debug(f"No screen {screen_id} for {event.value} notification")
            return
        screen._dispatch(event)

    def _new_screen_id(self) -> str:
        screen_id = f"{self.name}_s{self._screen_count}"
        self._screen_count += 1
        return screen_id

    def _unref_screen(self, screen_id: str) -> None:
        self._screens.pop(screen_id, None)

    def _set_state(self, state: ConnectionState) -> None:
        self.logger.debug(f"State {self.state} -> {state}")
        self.state = state

    def _enter_closed(self) -> None:
        self._set_state(ConnectionState.CLOSED)
        self._line_buffer.clear()
        self._closed.set()

        task = self._reader_task
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not None and task is not current and not task.done():
            task.cancel()

    def _fail(self, error: Exception) -> None:
        """Tear the connection down after a fatal error. No retry."""
        if self.state is ConnectionState.CLOSED:
            return
        self.logger.error(f"Connection failed: {error}")
        self._enter_closed()
        self.events.emit(ConnectionEvent.TRANSPORT_ERROR, error)
        self.events.emit(ConnectionEvent.CLOSED)
