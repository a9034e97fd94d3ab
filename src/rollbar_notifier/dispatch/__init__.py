"""Event dispatch pipeline

Producer -> BoundedQueue -> DeliveryWorker -> Transport, with:
- drop-newest backpressure (enqueue never blocks)
- a single in-order delivery thread, no retries
- InFlightTracker for blocking drain()
- DiagnosticBus for drops and delivery failures
- Prometheus metrics
"""

from .types import EventRecord, Transport, BackpressureCallback, QueueClosed
from .queue import BoundedQueue
from .tracker import InFlightTracker
from .diagnostics import (
    BackpressureLevel,
    DiagnosticBus,
    DiagnosticEvent,
    DiagnosticKind,
    log_diagnostic,
)
from .worker import DeliveryWorker, json_serializer
from .dispatcher import Dispatcher, DispatcherHealth, DEFAULT_CAPACITY

__all__ = [
    # types
    "EventRecord",
    "Transport",
    "BackpressureCallback",
    "QueueClosed",
    "DispatcherHealth",
    # diagnostics
    "BackpressureLevel",
    "DiagnosticBus",
    "DiagnosticEvent",
    "DiagnosticKind",
    "log_diagnostic",
    # runtime
    "BoundedQueue",
    "InFlightTracker",
    "DeliveryWorker",
    "Dispatcher",
    "DEFAULT_CAPACITY",
    "json_serializer",
]
