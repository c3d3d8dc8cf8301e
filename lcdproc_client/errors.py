"""
Client error taxonomy.

Every exception raised by this package derives from LcdprocError so callers can
catch the whole family in one place. Transport and validation errors live next
to the code that raises them and subclass the types defined here.
"""


class LcdprocError(Exception):
    """Base exception for all lcdproc client errors."""

    pass


class ClientStateError(LcdprocError):
    """Raised when a lifecycle call is illegal in the current connection state."""

    pass


class NotConnectedError(ClientStateError):
    """Raised when attempting to send while the connection is not open."""

    pass


class HandshakeError(LcdprocError):
    """Raised when the server's connect line cannot be parsed."""

    pass


class StaleHandleError(LcdprocError):
    """Raised when a deleted screen/widget, or any handle of a closed client, is used."""

    pass
