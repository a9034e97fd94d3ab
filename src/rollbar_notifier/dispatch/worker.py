from __future__ import annotations

import json
import threading
import time
from typing import Optional

from loguru import logger

from ..errors import (
    MissingCredentialError,
    SerializationError,
    TransportError,
    map_transport_error,
)
from ..metrics import (
    DELIVERIES_TOTAL,
    DELIVERY_LATENCY_MS,
    IN_FLIGHT,
    QUEUE_DEPTH,
    RECORDS_DROPPED_TOTAL,
)
from .diagnostics import DiagnosticBus, DiagnosticEvent, DiagnosticKind
from .queue import BoundedQueue
from .tracker import InFlightTracker
from .types import CredentialProvider, EventRecord, Serializer, Transport

SUCCESS_STATUS = 200


def json_serializer(record: EventRecord) -> bytes:
    return json.dumps(record).encode("utf-8")


class DeliveryWorker:
    """Single background thread that drains a queue and posts each record.

    Records are handled strictly in queue order, one transport call at a
    time. Every record ends as delivered or failed; failures are published as
    diagnostics and never retried. The in-flight tracker is decremented after
    each record whatever the outcome. The thread exits once the queue is
    closed and empty.
    """

    def __init__(
        self,
        queue: BoundedQueue[EventRecord],
        transport: Transport,
        tracker: InFlightTracker,
        *,
        credential: CredentialProvider,
        diagnostics: DiagnosticBus,
        serializer: Serializer = json_serializer,
        dispatcher_id: str = "default",
    ):
        self._queue = queue
        self._transport = transport
        self._tracker = tracker
        self._credential = credential
        self._diagnostics = diagnostics
        self._serializer = serializer
        self._id = dispatcher_id

        self._thread: Optional[threading.Thread] = None
        self.delivered = 0
        self.failed = 0

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run, name=f"rollbar-delivery-{self._id}", daemon=True
        )
        self._thread.start()
        logger.debug(f"DeliveryWorker started for dispatcher {self._id}")

    @property
    def started(self) -> bool:
        return self._thread is not None

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the thread to exit. Returns False if it is still running."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    # --- internals

    def _run(self) -> None:
        for record in self._queue:
            QUEUE_DEPTH.labels(self._id).dec()
            self._process(record)
        logger.debug(f"DeliveryWorker for dispatcher {self._id} stopped")

    def _process(self, record: EventRecord) -> None:
        t0 = time.perf_counter()
        delivered = False
        try:
            self._deliver(record)
            delivered = True
        except MissingCredentialError as exc:
            self._fail(DiagnosticKind.MISSING_CREDENTIAL, "empty token, dropping record", exc)
        except SerializationError as exc:
            self._fail(DiagnosticKind.SERIALIZATION_FAILED, "failed to encode payload", exc)
        except Exception as exc:
            # a misbehaving transport must not take the worker down
            self._fail(DiagnosticKind.DELIVERY_FAILED, "POST failed", exc)
        finally:
            DELIVERY_LATENCY_MS.labels(self._id).observe((time.perf_counter() - t0) * 1000.0)
            if delivered:
                self.delivered += 1
                DELIVERIES_TOTAL.labels(self._id, "delivered").inc()
            else:
                self.failed += 1
                DELIVERIES_TOTAL.labels(self._id, "failed").inc()
            self._tracker.done()
            IN_FLIGHT.labels(self._id).dec()

    def _deliver(self, record: EventRecord) -> None:
        if not self._credential():
            raise MissingCredentialError("empty token")

        try:
            payload = self._serializer(record)
        except (TypeError, ValueError, RecursionError) as exc:
            raise SerializationError(str(exc)) from exc

        try:
            status = self._transport.send(payload)
        except OSError as exc:
            raise map_transport_error(exc) from exc

        if status != SUCCESS_STATUS:
            raise TransportError(f"received response: {status}")

    def _fail(self, kind: DiagnosticKind, message: str, exc: Exception) -> None:
        RECORDS_DROPPED_TOTAL.labels(self._id, kind.value).inc()
        self._diagnostics.publish(
            DiagnosticEvent(
                dispatcher_id=self._id,
                kind=kind,
                message=message,
                queue_size=self._queue.size,
                capacity=self._queue.capacity,
                error=f"{type(exc).__name__}: {exc}",
            )
        )
