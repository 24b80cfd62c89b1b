"""Prometheus counters for ledger activity."""

from __future__ import annotations

from prometheus_client import Counter

requests_created_total = Counter(
    "aftersales_requests_created_total",
    "Service requests created",
)

requests_updated_total = Counter(
    "aftersales_requests_updated_total",
    "Agent updates applied to service requests",
    ["status"],
)

feedback_added_total = Counter(
    "aftersales_feedback_added_total",
    "Client feedback entries attached to service requests",
)

authorization_failures_total = Counter(
    "aftersales_authorization_failures_total",
    "Calls rejected by the role registry or ownership checks",
    ["operation"],
)

notifications_total = Counter(
    "aftersales_notifications_total",
    "Ledger events delivered to notification channels",
    ["channel", "success"],
)
