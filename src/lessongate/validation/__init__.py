"""Post-extraction content validation."""

from __future__ import annotations

from .content import ContentQualityMetrics, ContentValidationEngine, calculate_quality_metrics

__all__ = ["ContentQualityMetrics", "ContentValidationEngine", "calculate_quality_metrics"]
