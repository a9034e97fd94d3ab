from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from ..metrics import IN_FLIGHT, QUEUE_DEPTH, RECORDS_DROPPED_TOTAL, RECORDS_ENQUEUED_TOTAL
from .diagnostics import BackpressureLevel, DiagnosticBus, DiagnosticEvent, DiagnosticKind
from .queue import BoundedQueue
from .tracker import InFlightTracker
from .types import CredentialProvider, EventRecord, Serializer, Transport
from .worker import DeliveryWorker, json_serializer

DEFAULT_CAPACITY = 1000


@dataclass(frozen=True)
class DispatcherHealth:
    dispatcher_id: str
    worker_alive: bool
    closed: bool
    queue_size: int
    capacity: int
    in_flight: int
    dropped: int
    delivered: int
    failed: int
    level: BackpressureLevel


class Dispatcher:
    """Bounded, lossy, single-worker dispatch pipeline for event records.

    ``enqueue`` never blocks: a full (or shut down) queue drops the newest
    record and reports it on the diagnostic bus. One worker thread posts
    accepted records in order. ``drain`` blocks until every accepted record
    has been delivered or failed.

    Example:
        with Dispatcher(transport, credential=lambda: token) as d:
            d.enqueue({"data": {...}})
            d.drain()
    """

    def __init__(
        self,
        transport: Transport,
        *,
        capacity: int = DEFAULT_CAPACITY,
        credential: CredentialProvider,
        diagnostics: Optional[DiagnosticBus] = None,
        serializer: Serializer = json_serializer,
        high_watermark: int | None = None,
        low_watermark: int | None = None,
        dispatcher_id: str = "default",
        autostart: bool = True,
    ):
        self._id = dispatcher_id
        self._diagnostics = diagnostics if diagnostics is not None else DiagnosticBus()
        self._queue = BoundedQueue[EventRecord](
            capacity,
            high_watermark,
            low_watermark,
            on_high=self._on_high,
            on_low=self._on_low,
        )
        self._tracker = InFlightTracker()
        self._worker = DeliveryWorker(
            self._queue,
            transport,
            self._tracker,
            credential=credential,
            diagnostics=self._diagnostics,
            serializer=serializer,
            dispatcher_id=dispatcher_id,
        )
        if autostart:
            self.start()

    @property
    def dispatcher_id(self) -> str:
        return self._id

    @property
    def diagnostics(self) -> DiagnosticBus:
        return self._diagnostics

    @property
    def in_flight(self) -> int:
        return self._tracker.count

    def start(self) -> None:
        """Start the delivery worker. Idempotent."""
        self._worker.start()

    def enqueue(self, record: EventRecord) -> bool:
        """Hand ``record`` to the worker without blocking.

        Returns False when the record was dropped; the drop is also published
        as a diagnostic. Never raises for a full or closed queue.
        """
        # count before the record is visible to the worker, undo on rejection
        self._tracker.add()
        IN_FLIGHT.labels(self._id).inc()
        QUEUE_DEPTH.labels(self._id).inc()
        if self._queue.offer(record):
            RECORDS_ENQUEUED_TOTAL.labels(self._id).inc()
            return True

        QUEUE_DEPTH.labels(self._id).dec()
        IN_FLIGHT.labels(self._id).dec()
        self._tracker.done()
        if self._queue.closed:
            self._report_drop(DiagnosticKind.SHUTDOWN, "dispatcher shut down, dropping record")
        else:
            self._report_drop(
                DiagnosticKind.QUEUE_FULL, "buffer full, dropping error on the floor"
            )
        return False

    def drain(self, timeout: float | None = None) -> bool:
        """Block until every accepted record is delivered or failed.

        Returns False only if ``timeout`` elapsed first. Records enqueued by
        other threads after the count reached zero are not waited for.
        """
        if not self._worker.started and self._tracker.count:
            logger.warning(f"Dispatcher {self._id}: drain() called before start()")
        return self._tracker.wait(timeout)

    async def adrain(self, timeout: float | None = None) -> bool:
        """``drain`` for asyncio callers; waits in a thread, not on the loop."""
        return await asyncio.to_thread(self.drain, timeout)

    def shutdown(self, timeout: float | None = None) -> bool:
        """Reject new records, let the worker finish the queue, and stop it.

        An in-progress delivery is never interrupted. Returns False if the
        worker was still running when ``timeout`` elapsed.
        """
        self._queue.close()
        if not self._worker.started:
            # nothing will ever consume what is queued; run it through now
            self._worker.start()
        stopped = self._worker.join(timeout)
        if stopped:
            logger.debug(f"Dispatcher {self._id} shut down")
        else:
            logger.warning(f"Dispatcher {self._id}: worker still running after {timeout}s")
        return stopped

    def health(self) -> DispatcherHealth:
        size = self._queue.size
        capacity = self._queue.capacity
        if capacity == 0 or size >= self._queue.high_watermark:
            level = BackpressureLevel.HARD
        elif size > self._queue.low_watermark:
            level = BackpressureLevel.SOFT
        else:
            level = BackpressureLevel.OK
        return DispatcherHealth(
            dispatcher_id=self._id,
            worker_alive=self._worker.is_alive(),
            closed=self._queue.closed,
            queue_size=size,
            capacity=capacity,
            in_flight=self._tracker.count,
            dropped=self._queue.dropped,
            delivered=self._worker.delivered,
            failed=self._worker.failed,
            level=level,
        )

    def __enter__(self) -> "Dispatcher":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # --- internals

    def _report_drop(self, kind: DiagnosticKind, message: str) -> None:
        RECORDS_DROPPED_TOTAL.labels(self._id, kind.value).inc()
        self._publish(kind, message)

    def _on_high(self) -> None:
        self._publish(DiagnosticKind.QUEUE_HIGH, "queue reached high watermark")

    def _on_low(self) -> None:
        self._publish(DiagnosticKind.QUEUE_RECOVERED, "queue back below low watermark")

    def _publish(self, kind: DiagnosticKind, message: str) -> None:
        self._diagnostics.publish(
            DiagnosticEvent(
                dispatcher_id=self._id,
                kind=kind,
                message=message,
                queue_size=self._queue.size,
                capacity=self._queue.capacity,
            )
        )
