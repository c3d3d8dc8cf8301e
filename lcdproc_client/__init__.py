"""
LCDproc client package.

This package provides:
- The connection/handshake state machine (Client)
- Screens and the six widget kinds they host
- Protocol serialization helpers (quote, flatten, command framing)
- TCP and mock transports, configuration and the error taxonomy
"""

from .client import Client, ConnectionState
from .config import ClientConfig, ServerConfig, default_config, load_from_toml
from .errors import (
    ClientStateError,
    HandshakeError,
    LcdprocError,
    NotConnectedError,
    StaleHandleError,
)
from .events import ConnectionEvent, ScreenEvent
from .protocol import Capabilities, Icon, Size, WidgetType, flatten, quote
from .screen import Screen
from .transport import MockTransport, TcpTransport, Transport, TransportError
from .validation import ScreenOptionError, ValidationError, WidgetParamError
from .widgets import (
    BigNumberWidget,
    HorizontalBarWidget,
    IconWidget,
    StringWidget,
    TitleWidget,
    VerticalBarWidget,
    Widget,
)

__version__ = "0.1.0"

__all__ = [
    "BigNumberWidget",
    "Capabilities",
    "Client",
    "ClientConfig",
    "ClientStateError",
    "ConnectionEvent",
    "ConnectionState",
    "HandshakeError",
    "HorizontalBarWidget",
    "Icon",
    "IconWidget",
    "LcdprocError",
    "MockTransport",
    "NotConnectedError",
    "Screen",
    "ScreenEvent",
    "ScreenOptionError",
    "ServerConfig",
    "Size",
    "StaleHandleError",
    "StringWidget",
    "TcpTransport",
    "TitleWidget",
    "Transport",
    "TransportError",
    "ValidationError",
    "VerticalBarWidget",
    "WidgetParamError",
    "WidgetType",
    "Widget",
    "default_config",
    "flatten",
    "load_from_toml",
    "quote",
]
