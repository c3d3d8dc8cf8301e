"""Shared fixtures: a client wired to an in-memory transport."""

import pytest
import pytest_asyncio

from lcdproc_client.client import Client
from lcdproc_client.config import ClientConfig, ServerConfig
from lcdproc_client.transport import MockTransport

CONNECT_LINE = "connect LCDproc 0.5.7 protocol 0.3 lcd wid 20 hgt 4 cellwid 5 cellhgt 8\n"


@pytest.fixture
def test_config() -> ClientConfig:
    return ClientConfig(name="test", server=ServerConfig(mock=True, timeout=1.0))


@pytest.fixture
def transport(test_config) -> MockTransport:
    return MockTransport(test_config.server)


@pytest_asyncio.fixture
async def client(test_config, transport):
    """Connected client still waiting for the server's connect line."""
    c = Client(test_config, transport=transport)
    await c.connect()
    yield c
    await c.close()


@pytest_asyncio.fixture
async def ready_client(client, transport):
    """Client past the handshake, with the handshake lines cleared."""
    client.feed_data(CONNECT_LINE)
    assert client.is_ready
    transport.written.clear()
    return client
