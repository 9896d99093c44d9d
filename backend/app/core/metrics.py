"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Hold metrics
hold_attempts = Counter(
    'seat_hold_attempts_total',
    'Total seat hold attempts',
    ['result']  # success, conflict, error
)

hold_latency = Histogram(
    'seat_hold_latency_seconds',
    'Seat hold transaction latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Confirmation metrics
confirm_attempts = Counter(
    'booking_confirm_attempts_total',
    'Total booking confirmation attempts',
    ['result']  # success, rejected
)

# Ticket metrics
ticket_scans = Counter(
    'ticket_scans_total',
    'Ticket scans at boarding',
    ['result']  # valid, rejected, invalid
)

# Reaper metrics
reaper_released = Counter(
    'reaper_released_bookings_total',
    'Expired holds released back to the seat pool'
)

reaper_failures = Counter(
    'reaper_sweep_failures_total',
    'Reaper sweep cycles that failed'
)

reaper_last_sweep = Gauge(
    'reaper_last_sweep_timestamp_seconds',
    'Unix time of the last successful reaper sweep'
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_hold_attempt(result: str):
    """Record hold attempt. Result: success, conflict, error"""
    hold_attempts.labels(result=result).inc()


def record_confirm_attempt(confirmed: bool):
    confirm_attempts.labels(result="success" if confirmed else "rejected").inc()


def record_ticket_scan(result: str):
    """Record ticket scan. Result: valid, rejected, invalid"""
    ticket_scans.labels(result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
