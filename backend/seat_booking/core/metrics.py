"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

# Reservation metrics
booking_operations = Counter(
    "seat_booking_operations_total",
    "Reservation operations by outcome",
    ["operation", "outcome"],  # book/cancel/check_in x success/conflict/forbidden/...
)

booking_latency = Histogram(
    "seat_booking_operation_latency_seconds",
    "Reservation operation latency",
    ["operation"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

booking_transitions = Counter(
    "seat_booking_transitions_total",
    "Committed booking lifecycle transitions",
    ["from_status", "to_status"],
)

# Expiry sweeper metrics
sweeper_rows = Counter(
    "seat_booking_sweeper_rows_total",
    "Rows handled by the expiry sweeper",
    ["result"],  # expired, skipped, failed
)

sweeper_last_run = Gauge(
    "seat_booking_sweeper_last_run_timestamp",
    "Unix time of the last completed expiry sweep",
)

# Bulk import metrics
bulk_import_rows = Counter(
    "seat_booking_bulk_import_rows_total",
    "Bulk import rows by entity and result",
    ["entity", "result"],  # created, skipped_duplicate, failed
)

# Cache metrics
cache_operations = Counter(
    "seat_booking_cache_operations_total",
    "Cache operations",
    ["operation", "result"],  # get/set/invalidate, hit/miss/ok/error
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


def record_booking_operation(operation: str, outcome: str):
    """Record a reservation operation. Outcome is an error code or "success"."""
    booking_operations.labels(operation=operation, outcome=outcome).inc()


def record_transition(from_status: str, to_status: str):
    booking_transitions.labels(from_status=from_status, to_status=to_status).inc()


def record_cache_operation(operation: str, result: str):
    cache_operations.labels(operation=operation, result=result).inc()
