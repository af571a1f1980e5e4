"""Prometheus metrics for tool invocations and guard decisions."""

from __future__ import annotations

from prometheus_client import REGISTRY, Counter, Histogram


def _get_or_create_metric(factory, name: str, documentation: str, **kwargs):
    """Create a collector, reusing an existing one when the module is reloaded."""
    try:
        return factory(name, documentation, **kwargs)
    except ValueError:
        existing = getattr(REGISTRY, "_names_to_collectors", {}).get(name)
        if existing is not None:
            return existing
        raise


tool_calls_total = _get_or_create_metric(
    Counter,
    "kubegate_tool_calls_total",
    "Tool invocations by outcome",
    labelnames=("tool", "outcome"),
)

guard_violations_total = _get_or_create_metric(
    Counter,
    "kubegate_guard_violations_total",
    "Operations refused by the guard or the rate limiter",
    labelnames=("operation", "kind"),
)

tool_duration_seconds = _get_or_create_metric(
    Histogram,
    "kubegate_tool_duration_seconds",
    "Wall-clock duration of tool invocations",
    labelnames=("tool",),
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)
