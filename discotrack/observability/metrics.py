"""Prometheus metrics for discotrack.

All collectors are registered on the default registry, which the REST API
exposes at ``/metrics``.
"""

from __future__ import annotations

from prometheus_client import Counter

poll_cycles_total = Counter(
    "discotrack_poll_cycles_total",
    "Completed poll cycles.",
)

fetch_failures_total = Counter(
    "discotrack_fetch_failures_total",
    "Discovery document fetches that failed or returned unusable content.",
    ["service"],
)

changes_logged_total = Counter(
    "discotrack_changes_logged_total",
    "Change events appended to the change log.",
    ["service"],
)

notifications_total = Counter(
    "discotrack_notifications_total",
    "Notification delivery attempts.",
    ["channel", "success"],
)
