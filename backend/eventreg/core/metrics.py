"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Checkout metrics
registrations_created = Counter(
    'registrations_created_total',
    'Registrations created in pending state'
)

registration_updates = Counter(
    'registration_updates_total',
    'Registration field updates',
    ['field', 'result']  # status/checked_in, applied/missing
)

payment_intents = Counter(
    'payment_intents_total',
    'PaymentIntent creation attempts',
    ['result']  # created, rejected, error
)

# Webhook metrics
webhook_events = Counter(
    'webhook_events_total',
    'Stripe webhook events received',
    ['event_type', 'outcome']  # processed, ignored, skipped, error, rejected
)

# Auth metrics
login_attempts = Counter(
    'login_attempts_total',
    'Admin login attempts',
    ['result']  # success, failure
)

# HTTP metrics
request_latency = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency',
    ['method', 'status_code'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)


def metrics_endpoint() -> Response:
    """Render all registered metrics in the Prometheus text format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
