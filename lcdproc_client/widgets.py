"""
Widget hierarchy.

A widget is a positioned display primitive on a screen. The common base holds
the shared state (id, owning screen, kind tag, last parameters sent) and the
three wire operations every kind supports: widget_add on construction,
widget_set via set_params() and widget_del via delete(). Each kind only adds
the calls that turn high-level arguments into its positional parameter list.

Partial updates (set_pos, set_text, set_value, set_icon) reuse the values cached
in last_params and fall back to fixed defaults when nothing was sent yet.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple, Type, Union

from .errors import StaleHandleError
from .protocol import (
    CMD_WIDGET_ADD,
    CMD_WIDGET_DEL,
    CMD_WIDGET_SET,
    Capabilities,
    Icon,
    WidgetType,
    quote,
)
from .validation import (
    validate_big_number,
    validate_percent,
    validate_position,
)

if TYPE_CHECKING:
    from .screen import Screen

DEFAULT_POSITION = (1, 1)
# Third parameter used by set_pos() before anything was set
DEFAULT_TEXT = 0


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding up."""
    return int(math.floor(value + 0.5))


class Widget:
    """
    A widget registered on a screen.

    Construction immediately sends widget_add. Usually created through the
    Screen factory methods rather than directly.

    Attributes:
        screen: Owning screen
        id: Widget id, unique within the screen
        type: Widget kind
        last_params: Parameters of the most recent widget_set, or None
    """

    widget_type: Optional[WidgetType] = None

    def __init__(
        self,
        screen: "Screen",
        widget_id: str,
        widget_type: Union[WidgetType, str, None] = None,
    ):
        self.screen = screen
        self.id = widget_id
        self.type = WidgetType(widget_type or self.widget_type)
        self.last_params: Optional[Tuple[Any, ...]] = None
        self.logger = screen.logger
        self._deleted = False

        self.screen.client.send(CMD_WIDGET_ADD, self.screen.id, self.id, self.type)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, params={self.last_params!r})"

    @property
    def screen_id(self) -> str:
        return self.screen.id

    @property
    def is_stale(self) -> bool:
        """True once the widget, its screen or its client is gone."""
        return self._deleted or self.screen.is_stale

    def set_params(self, *values: Any) -> None:
        """
        Send a full parameter set for this widget.

        Args:
            *values: Positional widget_set parameters, already in wire form

        Raises:
            StaleHandleError: If the widget, its screen or its client is gone
        """
        self._require_live()
        self.last_params = tuple(values)
        self.screen.client.send(CMD_WIDGET_SET, self.screen.id, self.id, values)

    def delete(self) -> None:
        """
        Delete this widget from its screen.

        Raises:
            StaleHandleError: If the widget, its screen or its client is gone
        """
        self._require_live()
        self.screen.client.send(CMD_WIDGET_DEL, self.screen.id, self.id)
        self.screen._unref_widget(self.id)
        self._deleted = True

    def _require_live(self) -> None:
        if self._deleted:
            raise StaleHandleError(f"Widget {self.id} has been deleted")
        self.screen._require_live()

    def _last_position(self) -> Tuple[Any, Any]:
        if self.last_params is None:
            return DEFAULT_POSITION
        return self.last_params[0], self.last_params[1]

    def _set_pos_keep_value(self, x: int, y: int) -> None:
        # Reuse the third parameter as last sent, without recomputing it
        validate_position(x, y)
        value = DEFAULT_TEXT if self.last_params is None else self.last_params[2]
        self.set_params(x, y, value)


class TitleWidget(Widget):
    """Screen title bar. One per screen, with a fixed id."""

    widget_type = WidgetType.TITLE

    def set_title(self, text: str) -> None:
        self.set_params(quote(text))


class StringWidget(Widget):
    """A line of text at a grid position."""

    widget_type = WidgetType.STRING

    def set(self, x: int, y: int, text: str) -> None:
        """
        Set position and text.

        Args:
            x: Column, 1-based
            y: Row, 1-based
            text: Text to show
        """
        validate_position(x, y)
        self.set_params(x, y, quote(text))

    def set_pos(self, x: int, y: int) -> None:
        """Move the widget, keeping the last text (0 if none was set)."""
        self._set_pos_keep_value(x, y)

    def set_text(self, text: str) -> None:
        """Change the text, keeping the last position (1,1 if none was set)."""
        x, y = self._last_position()
        self.set(x, y, text)


class _BarWidget(Widget):
    def set(self, x: int, y: int, percent: float) -> None:
        """
        Set position and fill level.

        Args:
            x: Column, 1-based
            y: Row, 1-based
            percent: Fill level between 0 and 1
        """
        validate_position(x, y)
        validate_percent(percent)
        client = self.screen.client
        if not client.is_ready:
            self.logger.warning(
                f"Bar widget {self.id} set before handshake; display size unknown"
            )
        self.set_params(x, y, self.bar_length(client.capabilities, x, y, percent))

    def set_pos(self, x: int, y: int) -> None:
        """Move the bar, keeping the last length (0 if none was set)."""
        self._set_pos_keep_value(x, y)

    def set_value(self, percent: float) -> None:
        """Change the fill level, keeping the last position (1,1 if none was set)."""
        x, y = self._last_position()
        self.set(x, y, percent)

    @staticmethod
    def bar_length(caps: Capabilities, x: int, y: int, percent: float) -> int:
        raise NotImplementedError


class HorizontalBarWidget(_BarWidget):
    """Horizontal bar growing right from x, up to the display edge."""

    widget_type = WidgetType.HBAR

    @staticmethod
    def bar_length(caps: Capabilities, x: int, y: int, percent: float) -> int:
        # Length in pixels: remaining columns times cell width, 0 past the edge
        columns = max(caps.size.width - x + 1, 0)
        return round_half_up(columns * caps.cell_size.width * percent)


class VerticalBarWidget(_BarWidget):
    """Vertical bar growing up from row y."""

    widget_type = WidgetType.VBAR

    @staticmethod
    def bar_length(caps: Capabilities, x: int, y: int, percent: float) -> int:
        return round_half_up(y * caps.cell_size.height * percent)


class IconWidget(Widget):
    """
    A single named glyph.

    Icon names come from a fixed server vocabulary (see protocol.Icon). They are
    not validated locally; unknown names are reported by the server.
    """

    widget_type = WidgetType.ICON

    def set(self, x: int, y: int, icon: Union[Icon, str]) -> None:
        validate_position(x, y)
        self.set_params(x, y, str(icon))

    def set_icon(self, icon: Union[Icon, str]) -> None:
        """Change the glyph, keeping the last position (1,1 if none was set)."""
        x, y = self._last_position()
        self.set(x, y, icon)


class BigNumberWidget(Widget):
    """A full-height digit. The value 10 draws a colon."""

    widget_type = WidgetType.NUM

    def set(self, x: int, number: int) -> None:
        validate_position(x)
        validate_big_number(number)
        self.set_params(x, number)


WIDGET_CLASSES: Dict[WidgetType, Type[Widget]] = {
    WidgetType.TITLE: TitleWidget,
    WidgetType.STRING: StringWidget,
    WidgetType.HBAR: HorizontalBarWidget,
    WidgetType.VBAR: VerticalBarWidget,
    WidgetType.ICON: IconWidget,
    WidgetType.NUM: BigNumberWidget,
}
