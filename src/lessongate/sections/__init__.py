"""Lesson section validators and quality metrics."""

from __future__ import annotations

from typing import Dict

from .base import SectionValidator
from .metrics import LessonQualityMetrics, QualityMetricsTracker, SectionMetrics
from .models import (
    DialogueLine,
    GrammarExercise,
    GrammarSection,
    PronunciationSection,
    PronunciationWord,
    SectionIssue,
    SectionIssueType,
    SectionValidationResult,
    TongueTwister,
)
from .validators import DialogueValidator, DiscussionValidator, GrammarValidator, PronunciationValidator
from .warmup import QuestionComplexity, WarmupValidator

SECTION_VALIDATORS: Dict[str, type[SectionValidator]] = {
    validator.section: validator
    for validator in (
        WarmupValidator,
        DialogueValidator,
        DiscussionValidator,
        GrammarValidator,
        PronunciationValidator,
    )
}


def get_validator(section: str) -> SectionValidator:
    try:
        return SECTION_VALIDATORS[section]()
    except KeyError:
        raise ValueError(f"Unknown lesson section: {section}") from None


__all__ = [
    "SECTION_VALIDATORS",
    "DialogueLine",
    "DialogueValidator",
    "DiscussionValidator",
    "GrammarExercise",
    "GrammarSection",
    "GrammarValidator",
    "LessonQualityMetrics",
    "PronunciationSection",
    "PronunciationValidator",
    "PronunciationWord",
    "QualityMetricsTracker",
    "QuestionComplexity",
    "SectionIssue",
    "SectionIssueType",
    "SectionMetrics",
    "SectionValidationResult",
    "SectionValidator",
    "TongueTwister",
    "WarmupValidator",
    "get_validator",
]
