"""Tests for the connection/handshake state machine and inbound routing."""

import asyncio
import logging

import pytest

from lcdproc_client.client import Client, ConnectionState
from lcdproc_client.errors import ClientStateError, HandshakeError, NotConnectedError
from lcdproc_client.events import ConnectionEvent, ScreenEvent
from lcdproc_client.protocol import Capabilities, Size
from lcdproc_client.transport import MockTransport, TransportError

CONNECT_LINE = "connect LCDproc 0.5.7 protocol 0.3 lcd wid 20 hgt 4 cellwid 5 cellhgt 8\n"


async def settle() -> None:
    """Let the reader task drain queued transport data."""
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_initial_state(test_config, transport):
    client = Client(test_config, transport=transport)
    assert client.state is ConnectionState.DISCONNECTED
    assert client.capabilities == Capabilities()
    assert client.screens == {}
    assert transport.written == []


@pytest.mark.asyncio
async def test_connect_sends_hello(client, transport):
    assert client.state is ConnectionState.HANDSHAKING
    assert transport.lines == ["hello"]


@pytest.mark.asyncio
async def test_handshake_populates_capabilities(client, transport):
    ready = []
    client.on(ConnectionEvent.READY, lambda: ready.append(True))

    client.feed_data("connect LCDproc 0.5.7 protocol 0.3 wid 20 hgt 4 cellwid 5 cellhgt 8\n")

    assert client.capabilities == Capabilities(
        version="0.5.7",
        protocol_version="0.3",
        size=Size(20, 4),
        cell_size=Size(5, 8),
    )
    assert client.state is ConnectionState.READY
    assert ready == [True]
    assert transport.lines == ["hello", "client_set -name {test}"]


@pytest.mark.asyncio
async def test_ready_fires_once(client, transport):
    ready = []
    unrecognized = []
    client.on(ConnectionEvent.READY, lambda: ready.append(True))
    client.on(ConnectionEvent.UNRECOGNIZED_MESSAGE, unrecognized.append)

    client.feed_data(CONNECT_LINE)
    client.feed_data("connect LCDproc 9.9 protocol 9.9 wid 40 hgt 8 cellwid 6 cellhgt 9\n")

    assert ready == [True]
    assert client.capabilities.size == Size(20, 4)
    assert len(unrecognized) == 1
    assert transport.lines.count("client_set -name {test}") == 1


@pytest.mark.asyncio
async def test_handshake_via_reader_task(client, transport):
    transport.push(CONNECT_LINE)
    await client.wait_ready(timeout=1.0)
    assert client.is_ready


@pytest.mark.asyncio
async def test_wait_ready_timeout(client):
    with pytest.raises(asyncio.TimeoutError):
        await client.wait_ready(timeout=0.01)


@pytest.mark.asyncio
async def test_wait_ready_fails_when_closed_first(client, transport):
    transport.push(b"")
    with pytest.raises(NotConnectedError):
        await client.wait_ready(timeout=1.0)
    assert client.is_closed


@pytest.mark.asyncio
async def test_malformed_connect_line_tears_down(client):
    errors = []
    client.on(ConnectionEvent.TRANSPORT_ERROR, errors.append)

    client.feed_data("connect LCDproc 0.5.7 wid twenty hgt 4\n")

    assert client.is_closed
    assert len(errors) == 1
    assert isinstance(errors[0], HandshakeError)


@pytest.mark.asyncio
async def test_connect_twice_rejected(client):
    with pytest.raises(ClientStateError):
        await client.connect()


@pytest.mark.asyncio
async def test_connect_failure(test_config):
    transport = MockTransport(test_config.server)
    transport.fail_connect = True
    client = Client(test_config, transport=transport)
    errors = []
    client.on(ConnectionEvent.TRANSPORT_ERROR, errors.append)

    with pytest.raises(TransportError):
        await client.connect()

    assert client.state is ConnectionState.CLOSED
    assert len(errors) == 1
    with pytest.raises(ClientStateError):
        await client.connect()


@pytest.mark.asyncio
async def test_send_before_connect(test_config, transport):
    client = Client(test_config, transport=transport)
    with pytest.raises(NotConnectedError):
        client.send("hello")


@pytest.mark.asyncio
async def test_send_flattens_nested_tokens(ready_client, transport):
    ready_client.send("widget_set", "s", ["w", [1, (2, "{x y}")]])
    assert transport.lines == ["widget_set s w 1 2 {x y}"]
    assert transport.written == [b"widget_set s w 1 2 {x y}\n"]


@pytest.mark.asyncio
async def test_sends_are_written_in_call_order(ready_client, transport):
    ready_client.add_screen()
    ready_client.add_screen()
    ready_client.add_screen()
    assert transport.lines == [
        "screen_add test_s0",
        "screen_add test_s1",
        "screen_add test_s2",
    ]


@pytest.mark.asyncio
async def test_drain_flushes_transport(ready_client, transport):
    ready_client.add_screen()
    await ready_client.drain()
    assert transport.drain_count == 1


@pytest.mark.asyncio
async def test_reader_drains_after_each_chunk(client, transport):
    transport.push(CONNECT_LINE)
    await client.wait_ready(timeout=1.0)
    await settle()
    assert transport.drain_count >= 1


@pytest.mark.asyncio
async def test_drain_failure_tears_down(ready_client, transport):
    errors = []
    ready_client.on(ConnectionEvent.TRANSPORT_ERROR, errors.append)

    await transport.close()
    with pytest.raises(TransportError):
        await ready_client.drain()

    assert ready_client.is_closed
    assert len(errors) == 1


@pytest.mark.asyncio
async def test_drain_before_connect(test_config, transport):
    client = Client(test_config, transport=transport)
    with pytest.raises(NotConnectedError):
        await client.drain()


@pytest.mark.asyncio
async def test_listen_and_ignore_route_to_screen(ready_client):
    screen = ready_client.add_screen()
    seen = []
    screen.on(ScreenEvent.SHOWN, lambda: seen.append("shown"))
    screen.on(ScreenEvent.HIDDEN, lambda: seen.append("hidden"))

    ready_client.feed_data("success\nlisten test_s0\nsuccess\nignore test_s0\n")

    assert seen == ["shown", "hidden"]


@pytest.mark.asyncio
async def test_line_split_across_chunks_dispatched_once(ready_client):
    screen = ready_client.add_screen()
    seen = []
    screen.on(ScreenEvent.SHOWN, lambda: seen.append("shown"))

    ready_client.feed_data(b"lis")
    assert seen == []
    ready_client.feed_data(b"ten test_s0\n")
    assert seen == ["shown"]


@pytest.mark.asyncio
async def test_notification_for_unknown_screen_is_dropped(ready_client):
    unrecognized = []
    ready_client.on(ConnectionEvent.UNRECOGNIZED_MESSAGE, unrecognized.append)

    ready_client.feed_data("listen nobody_s9\nignore nobody_s9\n")

    assert unrecognized == []


@pytest.mark.asyncio
async def test_server_error_and_unrecognized_events(ready_client):
    server_errors = []
    unrecognized = []
    ready_client.on(ConnectionEvent.SERVER_ERROR, server_errors.append)
    ready_client.on(ConnectionEvent.UNRECOGNIZED_MESSAGE, unrecognized.append)

    ready_client.feed_data("huh? Unknown screen id\nkey Enter\nsuccess\n")

    assert server_errors == ["Unknown screen id"]
    assert unrecognized == ["key Enter"]


@pytest.mark.asyncio
async def test_failing_callback_does_not_stop_dispatch(ready_client):
    screen = ready_client.add_screen()
    seen = []

    def broken():
        raise RuntimeError("observer bug")

    screen.on(ScreenEvent.SHOWN, broken)
    screen.on(ScreenEvent.SHOWN, lambda: seen.append("shown"))

    ready_client.feed_data("listen test_s0\nignore test_s0\n")

    assert seen == ["shown"]


@pytest.mark.asyncio
async def test_transport_failure_tears_down(ready_client, transport):
    errors = []
    closed = []
    ready_client.on(ConnectionEvent.TRANSPORT_ERROR, errors.append)
    ready_client.on(ConnectionEvent.CLOSED, lambda: closed.append(True))

    transport.fail()
    await settle()

    assert ready_client.is_closed
    assert len(errors) == 1 and isinstance(errors[0], TransportError)
    assert closed == [True]
    with pytest.raises(NotConnectedError):
        ready_client.send("screen_add", "x")


@pytest.mark.asyncio
async def test_server_eof_tears_down(ready_client, transport):
    errors = []
    ready_client.on(ConnectionEvent.TRANSPORT_ERROR, errors.append)

    transport.push(b"")
    await settle()

    assert ready_client.is_closed
    assert "closed by server" in str(errors[0])


@pytest.mark.asyncio
async def test_close_is_idempotent(ready_client, transport):
    closed = []
    ready_client.on(ConnectionEvent.CLOSED, lambda: closed.append(True))

    await ready_client.close()
    await ready_client.close()

    assert ready_client.state is ConnectionState.CLOSED
    assert not transport.is_connected()
    assert closed == [True]
    with pytest.raises(ClientStateError):
        await ready_client.connect()


@pytest.mark.asyncio
async def test_data_after_close_is_ignored(ready_client):
    screen = ready_client.add_screen()
    seen = []
    screen.on(ScreenEvent.SHOWN, lambda: seen.append("shown"))

    await ready_client.close()
    ready_client.feed_data("listen test_s0\n")

    assert seen == []


@pytest.mark.asyncio
async def test_async_context_manager(test_config, transport):
    transport.push(CONNECT_LINE)
    async with Client(test_config, transport=transport) as client:
        assert client.is_ready
        client.add_screen(priority="info")

    assert client.is_closed
    assert transport.lines == [
        "hello",
        "client_set -name {test}",
        "screen_add test_s0",
        "screen_set test_s0 -priority info",
    ]
    assert transport.drain_count >= 1


@pytest.mark.asyncio
async def test_injected_logger_receives_protocol_traffic(test_config, transport, caplog):
    log = logging.getLogger("tests.lcd")
    caplog.set_level(logging.DEBUG, logger="tests.lcd")

    client = Client(test_config, transport=transport, log=log)
    await client.connect()
    client.feed_data(CONNECT_LINE)
    await client.close()

    messages = [r.getMessage() for r in caplog.records if r.name == "tests.lcd"]
    assert "SEND hello" in messages
    assert any(m.startswith("RECV connect LCDproc") for m in messages)


if __name__ == "__main__":
    pytest.main([__file__])
