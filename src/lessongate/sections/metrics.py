"""
Per-lesson quality metrics.

A tracker is created for one lesson-generation run. Each section records
its own entry; ``finalize`` produces the lesson report and freezes the
tracker until ``reset``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

import structlog

from lessongate.observability import increment

logger = structlog.get_logger(__name__)


@dataclass(slots=True, frozen=True)
class SectionMetrics:
    section_name: str
    validation_score: float
    attempt_count: int
    generation_time_ms: float
    issue_count: int
    warning_count: int

    @property
    def regenerated(self) -> bool:
        return self.attempt_count > 1


@dataclass(slots=True, frozen=True)
class LessonQualityMetrics:
    overall_score: int
    sections: Tuple[SectionMetrics, ...]
    total_generation_time_ms: float
    total_regenerations: int
    timestamp: datetime


class QualityMetricsTracker:
    """Aggregates section scores and attempts into one lesson report."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._sections: Dict[str, SectionMetrics] = {}
        self._start = clock()
        self._report: Optional[LessonQualityMetrics] = None

    @property
    def finalized(self) -> bool:
        return self._report is not None

    def record_section(
        self,
        name: str,
        score: float,
        attempt_count: int,
        generation_time_ms: float,
        issue_count: int,
        warning_count: int,
    ) -> SectionMetrics:
        if self._report is not None:
            raise RuntimeError("Quality metrics are finalized; call reset() before recording a new run")
        metrics = SectionMetrics(
            section_name=name,
            validation_score=score,
            attempt_count=attempt_count,
            generation_time_ms=generation_time_ms,
            issue_count=issue_count,
            warning_count=warning_count,
        )
        self._sections[name] = metrics
        if metrics.regenerated:
            increment("section_regenerations", labels={"section": name})
        logger.info(
            "Section quality recorded",
            section=name,
            score=score,
            attempts=attempt_count,
            time_ms=round(generation_time_ms, 1),
            issues=issue_count,
            warnings=warning_count,
        )
        return metrics

    def get_section(self, name: str) -> Optional[SectionMetrics]:
        return self._sections.get(name)

    def sections(self) -> List[SectionMetrics]:
        return list(self._sections.values())

    def overall_score(self) -> int:
        if not self._sections:
            return 0
        total = sum(section.validation_score for section in self._sections.values())
        return round(total / len(self._sections))

    def total_regenerations(self) -> int:
        return sum(1 for section in self._sections.values() if section.regenerated)

    def finalize(self) -> LessonQualityMetrics:
        """Build the lesson report. Repeated calls return the same report."""
        if self._report is None:
            self._report = LessonQualityMetrics(
                overall_score=self.overall_score(),
                sections=tuple(self._sections.values()),
                total_generation_time_ms=(self._clock() - self._start) * 1000,
                total_regenerations=self.total_regenerations(),
                timestamp=datetime.now(timezone.utc),
            )
        return self._report

    def log_summary(self) -> None:
        report = self._report or self.finalize()
        logger.info(
            "Lesson quality report",
            overall_score=report.overall_score,
            total_time_s=round(report.total_generation_time_ms / 1000, 2),
            regenerations=report.total_regenerations,
            sections={
                section.section_name: {
                    "score": section.validation_score,
                    "attempts": section.attempt_count,
                    "issues": section.issue_count,
                    "warnings": section.warning_count,
                }
                for section in report.sections
            },
        )

    def reset(self) -> None:
        self._sections.clear()
        self._report = None
        self._start = self._clock()
