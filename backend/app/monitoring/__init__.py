"""Prometheus-style metrics for realtime delivery and notifications."""

from . import metrics, registry

__all__ = ["metrics", "registry"]
