from .registry import (
    DELIVERIES_TOTAL,
    DELIVERY_LATENCY_MS,
    IN_FLIGHT,
    QUEUE_DEPTH,
    RECORDS_DROPPED_TOTAL,
    RECORDS_ENQUEUED_TOTAL,
)

__all__ = [
    "RECORDS_ENQUEUED_TOTAL",
    "RECORDS_DROPPED_TOTAL",
    "DELIVERIES_TOTAL",
    "DELIVERY_LATENCY_MS",
    "QUEUE_DEPTH",
    "IN_FLIGHT",
]
