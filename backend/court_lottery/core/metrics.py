"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Intake metrics
booking_attempts = Counter(
    'court_booking_attempts_total',
    'Intake attempts by path and outcome',
    ['kind', 'status']  # kind: pooled, direct; status: success, rejected, conflict
)

# Lottery metrics
lottery_runs = Counter(
    'lottery_runs_total',
    'Lottery executions',
    ['result']  # empty, completed, conflict
)

lottery_assignments = Counter(
    'lottery_assignments_total',
    'Requests that won a court in a lottery'
)

lottery_unassigned = Counter(
    'lottery_unassigned_total',
    'Requests left pending after a lottery because courts ran out'
)

lottery_latency = Histogram(
    'lottery_duration_seconds',
    'Wall time of a single lottery run',
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Reservation lifecycle
reservation_transitions = Counter(
    'reservation_transitions_total',
    'Reservation state transitions',
    ['to_status']  # completed, cancelled
)

usage_increments = Counter(
    'usage_increments_total',
    'Usage ledger increments'
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
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(kind: str, status: str):
    """Record intake attempt. Kind: pooled, direct. Status: success, rejected, conflict"""
    booking_attempts.labels(kind=kind, status=status).inc()


def record_lottery_run(result: str, assigned: int = 0, unassigned: int = 0):
    lottery_runs.labels(result=result).inc()
    if assigned:
        lottery_assignments.inc(assigned)
    if unassigned:
        lottery_unassigned.inc(unassigned)


def record_transition(to_status: str):
    reservation_transitions.labels(to_status=to_status).inc()
