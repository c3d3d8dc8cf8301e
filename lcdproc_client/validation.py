"""
Boundary validation for client, screen and widget inputs.

Values are checked here before any command reaches the wire, so a rejected call
never leaves a half-written command on the connection. Type-local invariants of
the configuration dataclasses stay in their __post_init__ methods.

Rules validated here:
- Client name usable inside screen/widget ids
- Screen options: recognized keys and their accepted values
- Widget positions, bar percentages and big-number values
"""

import numbers
from typing import Any, Callable, Dict, Mapping

from .errors import LcdprocError


class ValidationError(LcdprocError, ValueError):
    """Base exception for validation errors."""

    pass


class ScreenOptionError(ValidationError):
    """Raised when a screen option key or value is invalid."""

    pass


class WidgetParamError(ValidationError):
    """Raised when a widget parameter is out of range."""

    pass


PRIORITY_NAMES = {"hidden", "background", "info", "foreground", "alert", "input"}
HEARTBEAT_VALUES = {"on", "off", "open"}
BACKLIGHT_VALUES = {"on", "off", "toggle", "open", "blink", "flash"}
CURSOR_VALUES = {"on", "off", "under", "block"}

BIG_NUMBER_COLON = 10


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _int_at_least(minimum: int) -> Callable[[str, Any], None]:
    def check(key: str, value: Any) -> None:
        if not _is_int(value) or value < minimum:
            raise ScreenOptionError(
                f"Screen option '{key}' must be an integer >= {minimum}, got {value!r}"
            )

    return check


def _one_of(allowed: set) -> Callable[[str, Any], None]:
    def check(key: str, value: Any) -> None:
        if value not in allowed:
            raise ScreenOptionError(
                f"Screen option '{key}' must be one of {sorted(allowed)}, got {value!r}"
            )

    return check


def _check_name(key: str, value: Any) -> None:
    if not isinstance(value, str):
        raise ScreenOptionError(f"Screen option '{key}' must be a string, got {value!r}")
    inner = value[1:-1] if value.startswith("{") and value.endswith("}") else value
    if "{" in inner or "}" in inner:
        raise ScreenOptionError(
            f"Screen option '{key}' must not contain braces, got {value!r}"
        )


def _check_priority(key: str, value: Any) -> None:
    if _is_int(value):
        if value < 0:
            raise ScreenOptionError(f"Screen option '{key}' must be >= 0, got {value}")
        return
    if value not in PRIORITY_NAMES:
        raise ScreenOptionError(
            f"Screen option '{key}' must be an integer or one of "
            f"{sorted(PRIORITY_NAMES)}, got {value!r}"
        )


# Recognized screen_set options and their validators
SCREEN_OPTIONS: Dict[str, Callable[[str, Any], None]] = {
    "name": _check_name,
    "wid": _int_at_least(1),
    "hgt": _int_at_least(1),
    "priority": _check_priority,
    "heartbeat": _one_of(HEARTBEAT_VALUES),
    "backlight": _one_of(BACKLIGHT_VALUES),
    "duration": _int_at_least(0),
    "timeout": _int_at_least(0),
    "cursor": _one_of(CURSOR_VALUES),
    "cursor_x": _int_at_least(1),
    "cursor_y": _int_at_least(1),
}


def validate_client_name(name: str) -> None:
    """
    Validate a client name.

    The name is embedded verbatim in every screen and widget id, which are sent
    unquoted, so it cannot contain whitespace or brace delimiters.

    Args:
        name: Client name

    Raises:
        ValidationError: If the name is empty or contains forbidden characters
    """
    if not isinstance(name, str) or not name:
        raise ValidationError("Client name must be a non-empty string")
    if any(ch.isspace() for ch in name) or "{" in name or "}" in name:
        raise ValidationError(
            f"Client name must not contain whitespace or braces, got {name!r}"
        )


def validate_screen_options(options: Mapping[str, Any]) -> None:
    """
    Validate a set of screen options against the recognized option table.

    Args:
        options: Option name to value mapping, as supplied by the caller

    Raises:
        ScreenOptionError: On the first unknown key or invalid value
    """
    for key, value in options.items():
        check = SCREEN_OPTIONS.get(key)
        if check is None:
            raise ScreenOptionError(
                f"Unknown screen option '{key}'. Recognized: {sorted(SCREEN_OPTIONS)}"
            )
        check(key, value)


def validate_position(*coords: Any) -> None:
    """Validate 1-based grid coordinates."""
    for c in coords:
        if not _is_int(c) or c < 1:
            raise WidgetParamError(f"Position must be an integer >= 1, got {c!r}")


def validate_percent(percent: Any) -> None:
    """Validate a bar fill fraction in [0, 1]."""
    if (
        isinstance(percent, bool)
        or not isinstance(percent, numbers.Real)
        or not 0 <= percent <= 1
    ):
        raise WidgetParamError(f"Bar percent must be between 0 and 1, got {percent!r}")


def validate_big_number(number: Any) -> None:
    """Validate a big-number glyph: digits 0-9, or 10 for the colon."""
    if not _is_int(number) or not 0 <= number <= BIG_NUMBER_COLON:
        raise WidgetParamError(
            f"Big number must be an integer between 0 and {BIG_NUMBER_COLON}, got {number!r}"
        )
