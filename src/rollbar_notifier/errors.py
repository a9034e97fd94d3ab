"""
Custom exceptions for the Rollbar notifier.

These are raised inside the dispatch pipeline and turned into diagnostics;
reporting calls never propagate them to the caller.
"""


class NotifierError(Exception):
    """Base error for the notifier."""

    pass


class QueueClosed(NotifierError):
    """The dispatch queue was shut down and has no items left."""

    pass


class MissingCredentialError(NotifierError):
    """No access token configured at delivery time."""

    pass


class SerializationError(NotifierError):
    """The event record could not be encoded as JSON."""

    pass


class TransportError(NotifierError):
    """Connection failure or timeout while posting a record."""

    pass


def map_transport_error(e: Exception) -> NotifierError:
    import httpx

    if isinstance(e, NotifierError):
        return e
    if isinstance(e, httpx.TimeoutException):
        return TransportError(f"timeout: {e}")
    if isinstance(e, httpx.HTTPError):
        return TransportError(f"{type(e).__name__}: {e}")
    if isinstance(e, OSError):
        return TransportError(str(e))
    return NotifierError(str(e))
