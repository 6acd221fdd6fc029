"""Metric definitions for the realtime delivery path."""

from __future__ import annotations

from .registry import registry


realtime_connections = registry.gauge(
    "realtime_active_connections",
    "Number of live websocket connections mapped to a user on this node.",
)

realtime_events_total = registry.counter(
    "realtime_events_total",
    "Count of realtime envelopes processed by the router and registry.",
    label_names=("topic", "direction", "action"),
)

realtime_dropped_total = registry.counter(
    "realtime_dropped_total",
    "Envelopes or pushes dropped by the best-effort delivery path.",
    label_names=("reason",),
)

realtime_liveness_terminations_total = registry.counter(
    "realtime_liveness_terminations_total",
    "Connections terminated after exceeding the missed probe ceiling.",
)

notifications_dispatched_total = registry.counter(
    "notifications_dispatched_total",
    "Persisted notifications by type and whether a live push happened.",
    label_names=("type", "delivery"),
)
