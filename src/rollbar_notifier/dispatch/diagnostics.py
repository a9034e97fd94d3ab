"""
Diagnostics for the dispatch pipeline.

Every drop or delivery failure is published as a ``DiagnosticEvent`` on the
dispatcher's ``DiagnosticBus``. This is the only place such failures become
visible: reporting calls return nothing and never raise. Subscribers are
plain callables invoked on the thread that observed the condition (a producer
thread for ``queue_full``, the delivery worker for everything else).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from loguru import logger


class DiagnosticKind(str, Enum):
    """What happened to a record, or to the queue."""

    QUEUE_FULL = "queue_full"  # rejected at enqueue, capacity reached
    SHUTDOWN = "shutdown"  # rejected at enqueue, dispatcher closed
    MISSING_CREDENTIAL = "missing_credential"
    SERIALIZATION_FAILED = "serialization_failed"
    DELIVERY_FAILED = "delivery_failed"
    QUEUE_HIGH = "queue_high"  # occupancy reached the high watermark
    QUEUE_RECOVERED = "queue_recovered"  # occupancy back at the low watermark


class BackpressureLevel(str, Enum):
    """Backpressure severity levels."""

    OK = "ok"  # Below low watermark - normal operation
    SOFT = "soft"  # Between low/high watermarks - caution
    HARD = "hard"  # At/above high watermark - new records may be dropped


@dataclass(frozen=True)
class DiagnosticEvent:
    """Immutable diagnostic emitted by a dispatcher.

    Attributes:
        dispatcher_id: Identifies the dispatcher (e.g., "rollbar")
        kind: What happened
        message: Human readable description
        queue_size: Queue depth when the event was emitted
        capacity: Maximum queue capacity
        error: Optional underlying error text
    """

    dispatcher_id: str
    kind: DiagnosticKind
    message: str
    queue_size: int = 0
    capacity: int = 0
    error: str | None = None

    @property
    def is_drop(self) -> bool:
        """True when the event means a record was lost."""
        return self.kind not in (DiagnosticKind.QUEUE_HIGH, DiagnosticKind.QUEUE_RECOVERED)


class DiagnosticSubscriber(Protocol):
    def __call__(self, event: DiagnosticEvent) -> None: ...


class DiagnosticBus:
    """In-process pub/sub for dispatcher diagnostics.

    One subscriber's failure does not affect others, and never reaches the
    thread that published. Thread-safe for publishing; subscribe before
    traffic starts.

    Example:
        bus = DiagnosticBus()
        bus.subscribe(lambda event: dropped.append(event))
        client = Rollbar(token, diagnostics=bus)
    """

    def __init__(self, *, log: bool = True) -> None:
        self._subs: list[DiagnosticSubscriber] = []
        if log:
            self._subs.append(log_diagnostic)

    def subscribe(self, callback: DiagnosticSubscriber) -> None:
        if callback not in self._subs:
            self._subs.append(callback)
            logger.debug(f"Diagnostic subscriber added (total: {len(self._subs)})")

    def unsubscribe(self, callback: DiagnosticSubscriber) -> None:
        """Remove a subscriber. No-op if it was never added."""
        try:
            self._subs.remove(callback)
            logger.debug(f"Diagnostic subscriber removed (total: {len(self._subs)})")
        except ValueError:
            pass

    def publish(self, event: DiagnosticEvent) -> None:
        """Call every subscriber in registration order, swallowing their errors."""
        for callback in list(self._subs):
            try:
                callback(event)
            except Exception as exc:
                logger.debug(f"Diagnostic subscriber error (ignored): {type(exc).__name__}: {exc}")

    @property
    def subscriber_count(self) -> int:
        return len(self._subs)


def log_diagnostic(event: DiagnosticEvent) -> None:
    """Default subscriber: write the event to the loguru logger."""
    text = f"rollbar [{event.dispatcher_id}] {event.kind.value}: {event.message}"
    if event.error:
        text += f" ({event.error})"

    if event.kind in (DiagnosticKind.DELIVERY_FAILED, DiagnosticKind.SERIALIZATION_FAILED):
        logger.error(text)
    elif event.kind is DiagnosticKind.QUEUE_RECOVERED:
        logger.info(text)
    else:
        logger.warning(text)
