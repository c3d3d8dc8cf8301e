"""
Screen registry.

A Screen is a named canvas on the server. It owns its widgets, allocates their
ids, and forwards config and lifecycle commands through its client. Visibility
(SHOWN/HIDDEN) is driven only by listen/ignore lines from the server.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional, Union

from .errors import StaleHandleError
from .events import EventEmitter, ScreenEvent
from .protocol import (
    CMD_SCREEN_ADD,
    CMD_SCREEN_DEL,
    CMD_SCREEN_SET,
    WidgetType,
    flatten,
    quote,
)
from .validation import ValidationError, validate_screen_options
from .widgets import (
    WIDGET_CLASSES,
    BigNumberWidget,
    HorizontalBarWidget,
    IconWidget,
    StringWidget,
    TitleWidget,
    VerticalBarWidget,
    Widget,
)

if TYPE_CHECKING:
    from .client import Client

TITLE_SUFFIX = "_wTITLE"


class Screen:
    """
    A screen registered with the server.

    Construction sends screen_add and applies the initial options. Create
    screens with Client.add_screen().

    Example options:
        priority="info"      # hidden|background|info|foreground|alert|input|<int>
        heartbeat="open"     # on|off|open
        backlight="open"     # on|off|toggle|open|blink|flash
    """

    def __init__(
        self,
        client: "Client",
        screen_id: str,
        config: Optional[Mapping[str, Any]] = None,
        **options: Any,
    ):
        self.client = client
        self.id = screen_id
        self.logger = client.logger
        self.events: EventEmitter[ScreenEvent] = EventEmitter(ScreenEvent, self.logger)
        self._config: Mapping[str, Any] = MappingProxyType({})
        self._widgets: Dict[str, Widget] = {}
        self._widget_count = 0
        self._deleted = False

        supplied = _merge_options(config, options)
        # Reject bad options before the screen exists on the server
        validate_screen_options(supplied)

        self.client.send(CMD_SCREEN_ADD, self.id)
        self.set_config(supplied)

    def __repr__(self) -> str:
        return f"Screen(id={self.id!r}, widgets={len(self._widgets)})"

    @property
    def config(self) -> Mapping[str, Any]:
        """Read-only snapshot of every option set so far."""
        return self._config

    @property
    def widgets(self) -> Mapping[str, Widget]:
        return MappingProxyType(self._widgets)

    @property
    def is_stale(self) -> bool:
        """True once the screen is deleted or its client is closed."""
        return self._deleted or self.client.is_closed

    def on(self, event: ScreenEvent, callback: Callable[..., Any]) -> Callable[..., Any]:
        return self.events.on(event, callback)

    def off(self, event: ScreenEvent, callback: Callable[..., Any]) -> None:
        self.events.off(event, callback)

    def set_config(
        self, config: Optional[Mapping[str, Any]] = None, **options: Any
    ) -> None:
        """
        Set screen options.

        Supplied options are merged into the stored config (existing keys are
        overwritten) and only the supplied ones are sent, in the order given.
        The name option is brace-wrapped on the wire unless already wrapped.
        Nothing is sent when no options are supplied.

        Args:
            config: Options as a mapping
            **options: Options as keyword arguments, applied after config

        Raises:
            ScreenOptionError: If an option is unknown or has an invalid value
            StaleHandleError: If the screen is deleted or its client closed
        """
        self._require_live()
        supplied = _merge_options(config, options)
        if not supplied:
            return

        validate_screen_options(supplied)
        self._config = MappingProxyType({**self._config, **supplied})
        self.client.send(CMD_SCREEN_SET, self.id, flatten(_wire_options(supplied)))

    def delete(self) -> None:
        """
        Delete this screen from the server and from its client.

        Raises:
            StaleHandleError: If the screen is already deleted or its client closed
        """
        self._require_live()
        self.client.send(CMD_SCREEN_DEL, self.id)
        self.client._unref_screen(self.id)
        self._deleted = True

    def add_widget(self, widget_type: Union[WidgetType, str]) -> Widget:
        """
        Add a widget of the given kind.

        Args:
            widget_type: A WidgetType or its protocol name ("string", "hbar", ...)

        Returns:
            Widget: The matching widget class; the screen's title for "title"

        Raises:
            ValidationError: If the widget type is unknown
        """
        try:
            kind = WidgetType(widget_type)
        except ValueError as e:
            raise ValidationError(f"Unknown widget type {widget_type!r}") from e

        if kind is WidgetType.TITLE:
            return self.add_title()
        return self._create(WIDGET_CLASSES[kind])

    def add_title(self) -> TitleWidget:
        """Return the screen's title widget, creating it on first use."""
        self._require_live()
        widget_id = self.id + TITLE_SUFFIX
        existing = self._widgets.get(widget_id)
        if existing is not None:
            return existing  # type: ignore[return-value]

        widget = TitleWidget(self, widget_id)
        self._widgets[widget_id] = widget
        return widget

    def add_string(self) -> StringWidget:
        return self._create(StringWidget)

    def add_horizontal_bar(self) -> HorizontalBarWidget:
        return self._create(HorizontalBarWidget)

    def add_vertical_bar(self) -> VerticalBarWidget:
        return self._create(VerticalBarWidget)

    def add_icon(self) -> IconWidget:
        return self._create(IconWidget)

    def add_big_number(self) -> BigNumberWidget:
        return self._create(BigNumberWidget)

    def get_widget(self, widget_id: str) -> Optional[Widget]:
        return self._widgets.get(widget_id)

    def _create(self, widget_class):
        self._require_live()
        widget_id = self._new_widget_id()
        widget = widget_class(self, widget_id)
        self._widgets[widget_id] = widget
        return widget

    def _new_widget_id(self) -> str:
        widget_id = f"{self.id}_w{self._widget_count}"
        self._widget_count += 1
        return widget_id

    def _unref_widget(self, widget_id: str) -> None:
        self._widgets.pop(widget_id, None)

    def _dispatch(self, event: ScreenEvent) -> None:
        self.logger.debug(f"Screen {self.id} {event.value}")
        self.events.emit(event)

    def _require_live(self) -> None:
        if self._deleted:
            raise StaleHandleError(f"Screen {self.id} has been deleted")
        if self.client.is_closed:
            raise StaleHandleError(f"Screen {self.id} belongs to a closed client")


def _merge_options(
    config: Optional[Mapping[str, Any]], options: Mapping[str, Any]
) -> Dict[str, Any]:
    merged = dict(config or {})
    merged.update(options)
    return merged


def _wire_options(options: Mapping[str, Any]) -> Dict[str, Any]:
    # The free-text name is brace-wrapped unless the caller already did
    wire = dict(options)
    name = wire.get("name")
    if name is not None and not (name.startswith("{") and name.endswith("}")):
        wire["name"] = quote(name)
    return wire
