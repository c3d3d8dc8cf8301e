"""
Event taxonomy and observer registry.

Each entity publishes a fixed, enumerated set of events. Observers register a
callback per event with on() and are called synchronously, in registration
order, from the context that dispatches the event.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

logger = logging.getLogger(__name__)


class ConnectionEvent(Enum):
    """Events published by a Client."""

    READY = "ready"  # handshake complete, capabilities known
    TRANSPORT_ERROR = "transport_error"  # callback(error)
    SERVER_ERROR = "server_error"  # callback(message) for "huh?" replies
    UNRECOGNIZED_MESSAGE = "unrecognized_message"  # callback(line)
    CLOSED = "closed"


class ScreenEvent(Enum):
    """Events published by a Screen, driven by server notifications."""

    SHOWN = "shown"
    HIDDEN = "hidden"


E = TypeVar("E", bound=Enum)
Callback = Callable[..., Any]


class EventEmitter(Generic[E]):
    """
    Observer registry for one entity.

    A failing callback is logged and does not prevent the remaining callbacks,
    or the dispatching reader, from running.
    """

    def __init__(self, event_type: Type[E], log: Optional[logging.Logger] = None):
        self._event_type = event_type
        self._callbacks: Dict[E, List[Callback]] = {e: [] for e in event_type}
        self._logger = log or logger

    def on(self, event: E, callback: Callback) -> Callback:
        """
        Register a callback for an event.

        Returns:
            The callback, unchanged

        Raises:
            TypeError: If event is not a member of this emitter's event enum
        """
        self._check(event)
        self._callbacks[event].append(callback)
        return callback

    def off(self, event: E, callback: Callback) -> None:
        """Unregister a callback; unknown callbacks are ignored."""
        self._check(event)
        try:
            self._callbacks[event].remove(callback)
        except ValueError:
            pass

    def emit(self, event: E, *args: Any) -> None:
        self._check(event)
        for callback in list(self._callbacks[event]):
            try:
                callback(*args)
            except Exception:
                self._logger.exception(f"Error in {event} callback {callback!r}")

    def listeners(self, event: E) -> List[Callback]:
        self._check(event)
        return list(self._callbacks[event])

    def _check(self, event: E) -> None:
        if not isinstance(event, self._event_type):
            raise TypeError(
                f"{event!r} is not a {self._event_type.__name__} member"
            )
