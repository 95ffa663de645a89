"""
Defines and manages Prometheus metrics for the pipeline.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

import structlog
from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import start_http_server

if TYPE_CHECKING:
    from lessongate.config.config import MonitoringConfig

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Collectors live in the process-wide registry, so re-importing this module
# (test collection does) must hand back the collector already registered.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            # Registration lost the race; use the collector that won.
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]

_SCORE_BUCKETS = [10, 20, 30, 40, 50, 60, 70, 80, 90, 100]


def _create_metrics() -> Dict[str, Any]:
    return {
        "page_analyses": Counter(
            "lessongate_page_analyses_total",
            "Page analyses by suitability outcome",
            ["outcome"],
        ),
        "analysis_cache": Counter(
            "lessongate_analysis_cache_total",
            "Analysis cache lookups by result",
            ["result"],
        ),
        "analysis_duration_seconds": Histogram(
            "lessongate_analysis_duration_seconds",
            "Time taken to analyze a page",
            buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
        ),
        "content_validations": Counter(
            "lessongate_content_validations_total",
            "Content validations by outcome",
            ["outcome"],
        ),
        "validation_score": Histogram(
            "lessongate_validation_score",
            "Distribution of validation scores (0-100)",
            ["component"],
            buckets=_SCORE_BUCKETS,
        ),
        "classified_errors": Counter(
            "lessongate_classified_errors_total",
            "External call failures by classified type",
            ["error_type"],
        ),
        "generation_attempts": Counter(
            "lessongate_generation_attempts_total",
            "AI generation attempts by outcome",
            ["outcome"],
        ),
        "section_regenerations": Counter(
            "lessongate_section_regenerations_total",
            "Lesson sections regenerated after failing validation",
            ["section"],
        ),
        "extraction_sessions": Counter(
            "lessongate_extraction_sessions_total",
            "Extraction sessions by terminal status",
            ["status"],
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


class MetricsManager:
    """Manages the lifecycle of the metrics exporter."""

    def __init__(self, config: MonitoringConfig) -> None:
        self.config = config
        self._started = False

    def start(self) -> None:
        """Starts the Prometheus HTTP exporter when a port is configured."""
        if self._started or not self.config.prometheus_port:
            return
        logger.info("Starting Prometheus metrics server", port=self.config.prometheus_port)
        start_http_server(self.config.prometheus_port)
        self._started = True

    @property
    def started(self) -> bool:
        return self._started
