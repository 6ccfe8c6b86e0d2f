"""
Prometheus counters for registration, payments and webhooks.
Exposed at /metrics.
"""

from prometheus_client import Counter, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

signup_attempts = Counter(
    'macsync_signup_attempts_total',
    'Direct (free) event signup attempts',
    ['result']  # created, rejected, full
)

checkout_sessions = Counter(
    'macsync_checkout_sessions_total',
    'Stripe checkout session requests',
    ['result']  # created, rejected, full, provider_error
)

webhook_events = Counter(
    'macsync_webhook_events_total',
    'Stripe webhook events received',
    ['event_type', 'outcome']  # processed, duplicate, ignored, failed
)

refunds = Counter(
    'macsync_refunds_total',
    'Refund attempts',
    ['outcome']  # full, partial, failed
)

portal_signups = Counter(
    'macsync_portal_signups_total',
    'Bus, table and RSVP signups',
    ['kind', 'status']  # bus/table/rsvp, confirmed/waitlisted
)

cache_operations = Counter(
    'macsync_cache_operations_total',
    'Event list cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_signup_attempt(result: str):
    signup_attempts.labels(result=result).inc()


def record_checkout(result: str):
    checkout_sessions.labels(result=result).inc()


def record_webhook(event_type: str, outcome: str):
    webhook_events.labels(event_type=event_type, outcome=outcome).inc()


def record_refund(outcome: str):
    refunds.labels(outcome=outcome).inc()


def record_portal_signup(kind: str, status: str):
    portal_signups.labels(kind=kind, status=status).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
