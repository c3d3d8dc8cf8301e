"""
Pure Protocol Encoding Logic

This module holds the LCDproc text protocol: command names, the widget and icon
vocabularies, token serialization (quoting, key/value flattening, line framing)
and parsing of the lines the server sends back. Nothing here performs I/O.

Line format: <token> [<token>...]\\n, tokens separated by a single space,
strings that may contain whitespace wrapped in braces ({like this}).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Mapping, NamedTuple, Optional

from .errors import HandshakeError


DEFAULT_HOST = "localhost"
DEFAULT_PORT = 13666
ENCODING = "utf-8"
LINE_TERMINATOR = "\n"

# Client -> server commands
CMD_HELLO = "hello"
CMD_CLIENT_SET = "client_set"
CMD_SCREEN_ADD = "screen_add"
CMD_SCREEN_SET = "screen_set"
CMD_SCREEN_DEL = "screen_del"
CMD_WIDGET_ADD = "widget_add"
CMD_WIDGET_SET = "widget_set"
CMD_WIDGET_DEL = "widget_del"

# Server -> client messages
MSG_CONNECT = "connect"
MSG_SUCCESS = "success"
MSG_LISTEN = "listen"
MSG_IGNORE = "ignore"
MSG_HUH = "huh?"


class WidgetType(Enum):
    """Widget kinds understood by widget_add."""

    TITLE = "title"
    STRING = "string"
    HBAR = "hbar"
    VBAR = "vbar"
    ICON = "icon"
    NUM = "num"

    def __str__(self) -> str:
        return self.value


class Icon(Enum):
    """Named glyphs accepted by icon widgets."""

    BLOCK_FILLED = "BLOCK_FILLED"
    HEART_OPEN = "HEART_OPEN"
    HEART_FILLED = "HEART_FILLED"
    ARROW_UP = "ARROW_UP"
    ARROW_DOWN = "ARROW_DOWN"
    ARROW_LEFT = "ARROW_LEFT"
    ARROW_RIGHT = "ARROW_RIGHT"
    CHECKBOX_OFF = "CHECKBOX_OFF"
    CHECKBOX_ON = "CHECKBOX_ON"
    CHECKBOX_GRAY = "CHECKBOX_GRAY"
    SELECTOR_AT_LEFT = "SELECTOR_AT_LEFT"
    SELECTOR_AT_RIGHT = "SELECTOR_AT_RIGHT"
    ELLIPSIS = "ELLIPSIS"
    STOP = "STOP"
    PAUSE = "PAUSE"
    PLAY = "PLAY"
    PLAYR = "PLAYR"
    FF = "FF"
    FR = "FR"
    NEXT = "NEXT"
    PREV = "PREV"
    REC = "REC"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Size:
    width: int = 0
    height: int = 0

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Size must be non-negative, got ({self.width}x{self.height})"
            )


@dataclass(frozen=True)
class Capabilities:
    """
    Display capabilities reported by the server in its connect line.

    Attributes:
    - version: Server (LCDproc) version string.
    - protocol_version: Protocol version string.
    - size: Display size in character cells.
    - cell_size: Size of one character cell in pixels.
    """

    version: str = ""
    protocol_version: str = ""
    size: Size = field(default_factory=Size)
    cell_size: Size = field(default_factory=Size)


class MessageKind(Enum):
    """Classification of a line received from the server."""

    CONNECT = "connect"
    SUCCESS = "success"
    LISTEN = "listen"
    IGNORE = "ignore"
    HUH = "huh"
    UNKNOWN = "unknown"


class Message(NamedTuple):
    """A classified server line."""

    kind: MessageKind
    argument: Optional[str]
    raw: str


def quote(text: Any) -> str:
    """
    Wrap text in the protocol's brace delimiters.

    Args:
        text: Value to quote (converted with str())

    Returns:
        str: "{text}"
    """
    return "{" + str(text) + "}"


def flatten(mapping: Mapping[str, Any], dash_keys: bool = True) -> List[Any]:
    """
    Flatten a key/value mapping into an alternating token list.

    Insertion order of the mapping is preserved; values are passed through
    untouched.

    Args:
        mapping: Options to flatten
        dash_keys: Prefix every key with "-" (the screen_set option syntax)

    Returns:
        List: [prefix+key1, value1, prefix+key2, value2, ...]
    """
    prefix = "-" if dash_keys else ""
    out: List[Any] = []
    for key, value in mapping.items():
        out.append(prefix + key)
        out.append(value)
    return out


def flatten_tokens(tokens: Iterable[Any]) -> List[Any]:
    """Expand nested lists/tuples into a single flat token list."""
    out: List[Any] = []
    for token in tokens:
        if isinstance(token, (list, tuple)):
            out.extend(flatten_tokens(token))
        else:
            out.append(token)
    return out


def encode_command(*tokens: Any) -> bytes:
    """
    Encode one command line.

    Nested sequences are flattened, every token is converted with str(), tokens
    are joined by a single space and the line terminator is appended.

    Returns:
        bytes: UTF-8 encoded command line ready for transmission
    """
    line = " ".join(str(t) for t in flatten_tokens(tokens))
    return (line + LINE_TERMINATOR).encode(ENCODING)


# connect line key -> Capabilities attribute
_CONNECT_KEYS = {
    "LCDproc": "version",
    "protocol": "protocol_version",
    "wid": "width",
    "hgt": "height",
    "cellwid": "cell_width",
    "cellhgt": "cell_height",
}


def parse_connect_line(line: str) -> Capabilities:
    """
    Parse the server's handshake reply into Capabilities.

    The line is scanned token by token; each recognized key takes the token
    that follows it as its value. Unrecognized tokens (such as the bare "lcd"
    marker real servers send) are skipped.

    Example:
        connect LCDproc 0.5.7 protocol 0.3 lcd wid 20 hgt 4 cellwid 5 cellhgt 8

    Args:
        line: A line starting with "connect"

    Returns:
        Capabilities: Parsed display capabilities; absent keys stay zero/empty

    Raises:
        HandshakeError: If the line is not a connect line or a size is not an integer
    """
    tokens = line.split()
    if not tokens or tokens[0] != MSG_CONNECT:
        raise HandshakeError(f"Not a connect line: {line!r}")

    values = {}
    for i, token in enumerate(tokens[1:-1], start=1):
        name = _CONNECT_KEYS.get(token)
        if name is not None:
            values[name] = tokens[i + 1]

    sizes = {}
    for name in ("width", "height", "cell_width", "cell_height"):
        raw = values.get(name, "0")
        try:
            sizes[name] = int(raw)
        except ValueError as e:
            raise HandshakeError(f"Invalid {name} in connect line: {raw!r}") from e

    try:
        return Capabilities(
            version=values.get("version", ""),
            protocol_version=values.get("protocol_version", ""),
            size=Size(sizes["width"], sizes["height"]),
            cell_size=Size(sizes["cell_width"], sizes["cell_height"]),
        )
    except ValueError as e:
        raise HandshakeError(f"Invalid display geometry in connect line: {e}") from e


def classify_message(line: str) -> Message:
    """
    Classify one line received from the server.

    Args:
        line: A single line without its terminator

    Returns:
        Message: kind, the argument following the keyword (screen id or error
        text, if any) and the raw line
    """
    head, _, rest = line.strip().partition(" ")
    rest = rest.strip()
    argument = rest or None

    if head == MSG_SUCCESS and not rest:
        return Message(MessageKind.SUCCESS, None, line)
    if head == MSG_CONNECT:
        return Message(MessageKind.CONNECT, argument, line)
    if head == MSG_LISTEN and rest:
        return Message(MessageKind.LISTEN, rest.split()[0], line)
    if head == MSG_IGNORE and rest:
        return Message(MessageKind.IGNORE, rest.split()[0], line)
    if head == MSG_HUH:
        return Message(MessageKind.HUH, argument, line)
    return Message(MessageKind.UNKNOWN, argument, line)
