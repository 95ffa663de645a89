"""
Common scoring for lesson section validators.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Union

import structlog
from pydantic import ValidationError

from lessongate.observability import observe
from lessongate.protocols import CEFRLevel, Severity, ValidationContext

from .models import SectionIssue, SectionIssueType, SectionValidationResult

logger = structlog.get_logger(__name__)


class SectionValidator(ABC):
    """Base class for section validators.

    Subclasses append to ``issues`` (errors) and ``warnings`` in ``check`` and
    report their completeness bonus from ``bonus``; scoring is shared. Missing
    or malformed content is reported as a format error, never raised.
    """

    section: str = ""
    error_penalty: int = 20
    warning_penalty: int = 5

    def validate(
        self,
        content: Any,
        cefr_level: Union[CEFRLevel, str],
        context: Optional[ValidationContext] = None,
    ) -> SectionValidationResult:
        level = CEFRLevel(cefr_level)
        issues: List[SectionIssue] = []
        warnings: List[SectionIssue] = []
        bonus = 0
        if content is None:
            issues.append(
                self.error(
                    SectionIssueType.FORMAT_ERROR,
                    f"No {self.section} content was provided",
                    suggestion="Regenerate the section",
                )
            )
        else:
            try:
                self.check(content, level, context or ValidationContext(), issues, warnings)
                bonus = self.bonus(content)
            except ValidationError as exc:
                issues.append(
                    self.error(
                        SectionIssueType.FORMAT_ERROR,
                        f"Malformed {self.section} content: {exc.error_count()} invalid fields",
                        suggestion="Regenerate the section in the requested format",
                    )
                )

        score = self.score(issues, warnings, bonus)
        result = SectionValidationResult(
            section=self.section,
            is_valid=not issues,
            issues=tuple(issues),
            warnings=tuple(warnings),
            score=score,
        )
        observe("validation_score", score, labels={"component": self.section})
        logger.debug(
            "Section validated",
            section=self.section,
            level=level.value,
            score=score,
            errors=len(issues),
            warnings=len(warnings),
        )
        return result

    @abstractmethod
    def check(
        self,
        content: Any,
        level: CEFRLevel,
        context: ValidationContext,
        issues: List[SectionIssue],
        warnings: List[SectionIssue],
    ) -> None:
        """Collect every problem with ``content``."""

    @abstractmethod
    def bonus(self, content: Any) -> int:
        """Points added when the section meets its count requirements."""

    def score(self, issues: List[SectionIssue], warnings: List[SectionIssue], bonus: int) -> float:
        raw = 100 - len(issues) * self.error_penalty - len(warnings) * self.warning_penalty + bonus
        return float(max(0, min(100, raw)))

    @staticmethod
    def error(
        issue_type: SectionIssueType,
        message: str,
        item_index: Optional[int] = None,
        suggestion: Optional[str] = None,
    ) -> SectionIssue:
        return SectionIssue(issue_type, Severity.ERROR, message, item_index, suggestion)

    @staticmethod
    def warning(
        issue_type: SectionIssueType,
        message: str,
        item_index: Optional[int] = None,
        suggestion: Optional[str] = None,
    ) -> SectionIssue:
        return SectionIssue(issue_type, Severity.WARNING, message, item_index, suggestion)
