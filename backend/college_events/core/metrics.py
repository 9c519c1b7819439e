"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Ticket metrics
ticket_operations = Counter(
    'ticket_operations_total',
    'Ticket booking engine operations',
    ['operation', 'outcome']  # purchase/cancel/redeem, success/sold_out/rejected/error
)

ticket_code_retries = Counter(
    'ticket_code_retries_total',
    'Ticket inserts retried after a ticket_code collision'
)

inventory_lock_wait = Histogram(
    'inventory_lock_wait_seconds',
    'Time spent waiting for a per-entity inventory lock',
    buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
)

# Event request pipeline
event_request_reviews = Counter(
    'event_request_reviews_total',
    'Event request review decisions',
    ['decision']  # approve, reject
)

# HTTP
request_latency = Histogram(
    'http_request_latency_seconds',
    'HTTP request latency',
    ['method', 'status'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Render all registered metrics in the Prometheus text format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_ticket_operation(operation: str, outcome: str):
    ticket_operations.labels(operation=operation, outcome=outcome).inc()


def record_review(decision: str):
    event_request_reviews.labels(decision=decision).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
