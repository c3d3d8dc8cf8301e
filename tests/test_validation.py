"""Tests for boundary validation of screen options and widget parameters."""

import pytest

from lcdproc_client.validation import (
    ScreenOptionError,
    WidgetParamError,
    validate_big_number,
    validate_percent,
    validate_position,
    validate_screen_options,
)


def test_valid_screen_options():
    validate_screen_options(
        {
            "name": "{CPU}",
            "wid": 20,
            "hgt": 4,
            "priority": "foreground",
            "heartbeat": "off",
            "backlight": "blink",
            "duration": 32,
            "timeout": 0,
            "cursor": "block",
            "cursor_x": 1,
            "cursor_y": 2,
        }
    )
    validate_screen_options({"priority": 128})


@pytest.mark.parametrize(
    "options",
    [
        {"colour": "red"},
        {"priority": "urgent"},
        {"priority": -1},
        {"heartbeat": "blink"},
        {"backlight": True},
        {"duration": -5},
        {"wid": 0},
        {"cursor_x": "1"},
        {"name": 3},
        {"name": "CPU}load"},
        {"name": "{a{b}"},
    ],
)
def test_invalid_screen_options(options):
    with pytest.raises(ScreenOptionError):
        validate_screen_options(options)


def test_screen_option_error_is_value_error():
    with pytest.raises(ValueError):
        validate_screen_options({"bogus": 1})


def test_position_validation():
    validate_position(1, 1)
    validate_position(20, 4)
    for bad in (0, -1, 1.5, "1", True):
        with pytest.raises(WidgetParamError):
            validate_position(bad)


def test_percent_validation():
    for ok in (0, 0.5, 1, 1.0):
        validate_percent(ok)
    for bad in (-0.1, 1.01, "0.5", None, True):
        with pytest.raises(WidgetParamError):
            validate_percent(bad)


def test_big_number_validation():
    for ok in range(0, 11):
        validate_big_number(ok)
    for bad in (-1, 11, 2.0, "3"):
        with pytest.raises(WidgetParamError):
            validate_big_number(bad)


if __name__ == "__main__":
    pytest.main([__file__])
