"""
Prometheus metrics for the seat inventory.
Exposed at /metrics.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

seat_operations = Counter(
    "seat_operations_total",
    "Seat inventory operations",
    ["operation", "result"],  # result: success, conflict, rejected
)

booking_latency = Histogram(
    "booking_latency_seconds",
    "Time spent inside create_booking",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

cache_operations = Counter(
    "cache_operations_total",
    "Trip cache operations",
    ["operation", "result"],  # get/set, hit/miss
)

notifications_published = Counter(
    "notifications_published_total",
    "Seat change events published to Redis",
    ["result"],  # sent, failed
)

redis_connection_errors = Counter(
    "redis_connection_errors_total",
    "Redis connection errors",
)


def metrics_endpoint() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def record_seat_operation(operation: str, result: str) -> None:
    """Operation: reserve, disable, release, book, cancel, check_in, purge."""
    seat_operations.labels(operation=operation, result=result).inc()


def record_cache_operation(operation: str, hit: bool) -> None:
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()


def record_notification(sent: bool) -> None:
    notifications_published.labels(result="sent" if sent else "failed").inc()
