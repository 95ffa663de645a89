"""
Lesson section content models and section validation results.

Section content arrives from the AI endpoint as JSON; the pydantic models
accept both the snake_case field names and the camelCase names the prompts
ask for. Missing fields default to empty so that validators, not the parser,
report what is incomplete.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from lessongate.protocols import Severity


class SectionModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class DialogueLine(SectionModel):
    speaker: str
    text: str


class GrammarExercise(SectionModel):
    prompt: str = ""
    answer: str = ""


class GrammarSection(SectionModel):
    rule: str = ""
    form: str = ""
    usage: str = ""
    examples: List[str] = Field(default_factory=list)
    exercises: List[GrammarExercise] = Field(default_factory=list)


class PronunciationWord(SectionModel):
    word: str = ""
    ipa: str = ""
    tips: List[str] = Field(default_factory=list)
    practice_sentence: str = ""


class TongueTwister(SectionModel):
    text: str = ""
    target_sounds: List[str] = Field(default_factory=list)


class PronunciationSection(SectionModel):
    words: List[PronunciationWord] = Field(default_factory=list)
    tongue_twisters: List[TongueTwister] = Field(default_factory=list)


class SectionIssueType(Enum):
    COUNT_ERROR = "count_error"
    FORMAT_ERROR = "format_error"
    COMPLEXITY_MISMATCH = "complexity_mismatch"
    VOCABULARY_INTEGRATION = "vocabulary_integration"
    FLOW_ISSUE = "flow_issue"
    VARIETY_ISSUE = "variety_issue"
    COMPLETENESS_ERROR = "completeness_error"
    COMPLETENESS_WARNING = "completeness_warning"
    QUALITY_ISSUE = "quality_issue"
    CONTENT_ASSUMPTION = "content_assumption"


@dataclass(slots=True, frozen=True)
class SectionIssue:
    type: SectionIssueType
    severity: Severity
    message: str
    item_index: Optional[int] = None
    suggestion: Optional[str] = None


@dataclass(slots=True, frozen=True)
class SectionValidationResult:
    """Errors block acceptance; warnings only cost score."""

    section: str
    is_valid: bool
    issues: Tuple[SectionIssue, ...]
    warnings: Tuple[SectionIssue, ...]
    score: float

    def __post_init__(self) -> None:
        if not 0 <= self.score <= 100:
            raise ValueError("score must be between 0 and 100")
        if self.is_valid != (not self.issues):
            raise ValueError("is_valid must hold exactly when there are no error issues")

    def issue_types(self) -> List[SectionIssueType]:
        return [issue.type for issue in self.issues + self.warnings]
