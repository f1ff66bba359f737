"""
cinerate/observability/metrics.py

This module contains Prometheus metrics definitions.
Keeping metrics in a dedicated module prevents circular imports
between FastAPI app startup (main.py) and the routers and services.
"""

from prometheus_client import Counter, Gauge


"""
Counter for authentication requests.
Labels:
    action: register, login or logout
    result: success or the error kind
"""
AUTH_REQUESTS = Counter(
    name="cinerate_auth_requests_total",
    documentation="Total number of authentication requests.",
    labelnames=["action", "result"],
)

"""
Counter for review mutations.
Labels:
    operation: submit, edit or remove
    result: success or the error kind
"""
REVIEW_OPERATIONS = Counter(
    name="cinerate_review_operations_total",
    documentation="Total number of review create, update and delete operations.",
    labelnames=["operation", "result"],
)

"""
Counter for live events handed to websocket connections.
Labels:
    event: review-added, or dropped for events lost on a full queue
"""
LIVE_EVENTS = Counter(
    name="cinerate_live_events_total",
    documentation="Total number of live events handed to connections.",
    labelnames=["event"],
)

LIVE_SUBSCRIPTIONS = Gauge(
    name="cinerate_live_subscriptions",
    documentation="Current number of (connection, movie) live subscriptions.",
)
