# lcdproc_client/config.py
from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .protocol import DEFAULT_HOST, DEFAULT_PORT
from .validation import validate_client_name

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_NAME = "lcdproc_client"


@dataclass(frozen=True)
class ServerConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = 5.0
    mock: bool = False

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("Server host must not be empty")
        if not (0 < self.port <= 0xFFFF):
            raise ValueError(f"Server port must be 1-65535, got {self.port}")
        if self.timeout <= 0:
            raise ValueError("Server timeout must be > 0")


@dataclass(frozen=True)
class ClientConfig:
    name: str = DEFAULT_CLIENT_NAME
    server: ServerConfig = field(default_factory=ServerConfig)

    def __post_init__(self) -> None:
        validate_client_name(self.name)

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port


def load_from_toml(config_path: str | Path) -> ClientConfig:
    """
    Load a ClientConfig from a TOML file.

    Expected TOML structure (every key optional):

    [server]
    host = "localhost"
    port = 13666
    timeout = 5.0
    mock = false

    [client]
    name = "sysmon"
    """
    p = Path(config_path)
    if not p.exists():
        raise FileNotFoundError(f"Configuration file not found: {p}")

    with p.open("rb") as f:
        data = tomllib.load(f)

    server = data.get("server") or {}
    client = data.get("client") or {}

    cfg = ClientConfig(
        name=str(client.get("name", DEFAULT_CLIENT_NAME)),
        server=ServerConfig(
            host=str(server.get("host", DEFAULT_HOST)),
            port=int(server.get("port", DEFAULT_PORT)),
            timeout=float(server.get("timeout", 5.0)),
            mock=bool(server.get("mock", False)),
        ),
    )

    logger.info(
        "Loaded ClientConfig: name=%s, server=%s:%d (mock=%s)",
        cfg.name,
        cfg.server.host,
        cfg.server.port,
        cfg.server.mock,
    )
    return cfg


def default_config() -> ClientConfig:
    """Local defaults: a client named lcdproc_client talking to localhost:13666."""
    return ClientConfig()
