"""Structured logging and Prometheus metrics."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .logging import bind_correlation_id, clear_correlation_id, configure_logging
from .metrics import METRICS, MetricsManager

__all__ = [
    "METRICS",
    "MetricsManager",
    "bind_correlation_id",
    "clear_correlation_id",
    "configure_logging",
    "export_prometheus",
    "increment",
    "observe",
]


def increment(name: str, value: float = 1.0, labels: Optional[Dict[str, Any]] = None) -> None:
    """Increment a counter metric."""
    if name in METRICS:
        metric = METRICS[name]
        if labels is not None:
            metric.labels(**labels).inc(value)
        else:
            metric.inc(value)


def observe(name: str, value: float, labels: Optional[Dict[str, Any]] = None) -> None:
    """Observe a histogram metric."""
    if name in METRICS:
        metric = METRICS[name]
        if labels is not None:
            metric.labels(**labels).observe(value)
        else:
            metric.observe(value)


def export_prometheus() -> str:
    """Export metrics in Prometheus text format."""
    from prometheus_client import generate_latest

    return generate_latest().decode("utf-8")
