"""
Prometheus metrics for the dispatch pipeline, registered on the global REGISTRY.

All series are labelled by ``dispatcher`` so several clients in one process
stay distinguishable.
"""

from prometheus_client import Counter, Gauge, Histogram


RECORDS_ENQUEUED_TOTAL = Counter(
    "rollbar_records_enqueued_total",
    "Records accepted into the dispatch queue",
    ["dispatcher"],
)

RECORDS_DROPPED_TOTAL = Counter(
    "rollbar_records_dropped_total",
    "Records dropped before or during delivery",
    ["dispatcher", "reason"],
)

DELIVERIES_TOTAL = Counter(
    "rollbar_deliveries_total",
    "Delivery attempts by outcome",
    ["dispatcher", "outcome"],
)

DELIVERY_LATENCY_MS = Histogram(
    "rollbar_delivery_latency_ms",
    "Time spent serializing and posting one record, in milliseconds",
    ["dispatcher"],
    buckets=[1, 2.5, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000],
)

QUEUE_DEPTH = Gauge(
    "rollbar_queue_depth",
    "Records waiting in the dispatch queue",
    ["dispatcher"],
)

IN_FLIGHT = Gauge(
    "rollbar_in_flight",
    "Records accepted but not yet delivered or failed",
    ["dispatcher"],
)

