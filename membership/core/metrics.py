"""Application metrics using the Prometheus client library.

All metrics live here so there is one inventory of what the service
measures.  Other modules import a metric and increment it at the point
of action.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Membership engine metrics
# ---------------------------------------------------------------------------

MEMBERSHIP_OPERATIONS = Counter(
    "membership_operations_total",
    "Completed membership mutations",
    ["operation"],  # add_member, remove_member, update_role, create_org, ...
)

MEMBERSHIP_ERRORS = Counter(
    "membership_errors_total",
    "Typed membership errors surfaced to callers",
    ["code"],  # Forbidden, AlreadyMember, CodeAlreadyConsumed, ...
)

PARTIAL_WRITE_FAILURES = Counter(
    "partial_write_failures_total",
    "Multi-step mutations interrupted after at least one write landed",
    ["operation"],
)

INVITE_REDEMPTIONS = Counter(
    "invite_redemptions_total",
    "Invite code redemption attempts by result",
    ["result"],  # redeemed, resumed, rejected
)
