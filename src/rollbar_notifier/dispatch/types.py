from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol, runtime_checkable

from ..errors import QueueClosed

EventRecord = Mapping[str, Any]
"""One fully built item payload. Opaque to the dispatch queue."""

BackpressureCallback = Callable[[], None]
Serializer = Callable[[EventRecord], bytes]
CredentialProvider = Callable[[], str | None]


@runtime_checkable
class Transport(Protocol):
    """Performs the network call for one serialized record.

    Returns the HTTP status code. Connection-level failures raise
    ``TransportError``. Only ever called from a single delivery worker, so
    implementations need no locking of their own.
    """

    def send(self, payload: bytes) -> int: ...


__all__ = [
    "EventRecord",
    "BackpressureCallback",
    "Serializer",
    "CredentialProvider",
    "Transport",
    "QueueClosed",
]
