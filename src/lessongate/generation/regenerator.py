"""
Generate-validate-regenerate loop for lesson sections.

A section is generated, parsed and validated. An invalid section is
regenerated until the attempt budget is spent; the last attempt is accepted
even when it still has issues, and its score is recorded as-is. Unparseable
output is regenerated like an invalid section; generator failures end the
section immediately.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from lessongate.config.config import GenerationConfig
from lessongate.protocols import TextGenerator, ValidationContext
from lessongate.sections import (
    DialogueLine,
    GrammarSection,
    PronunciationSection,
    QualityMetricsTracker,
    SectionValidationResult,
    get_validator,
)

from .prompts import PROMPT_BUILDERS, LessonContext

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

NUMBERING = re.compile(r"^(?:\d+[.)]|[-*•])\s*")
DIALOGUE_LINE = re.compile(r"^\**\s*([^:*\n]{1,40}?)\s*\**\s*:\s*\**\s*(.+)$")
CODE_FENCE = re.compile(r"```(?:json)?")
JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class SectionParseError(ValueError):
    """Generated text could not be read as the requested section."""


class SectionGenerationError(RuntimeError):
    def __init__(self, section: str, attempts: int, message: str) -> None:
        super().__init__(f"Failed to generate {section} section after {attempts} attempts: {message}")
        self.section = section
        self.attempts = attempts


def parse_questions(text: str, limit: Optional[int] = None) -> List[str]:
    questions = []
    for raw in text.splitlines():
        line = NUMBERING.sub("", raw.strip()).strip()
        if line.endswith("?") and len(line) > 10:
            questions.append(line)
    return questions[:limit] if limit is not None else questions


def parse_dialogue(text: str) -> List[DialogueLine]:
    lines = []
    for raw in text.splitlines():
        match = DIALOGUE_LINE.match(raw.strip())
        if match:
            lines.append(DialogueLine(speaker=match.group(1).strip(), text=match.group(2).strip()))
    if not lines:
        raise SectionParseError("No 'Speaker: text' lines found in dialogue response")
    return lines


def parse_json_section(text: str, model: Type[ModelT]) -> ModelT:
    cleaned = CODE_FENCE.sub("", text).strip()
    match = JSON_OBJECT.search(cleaned)
    if match is None:
        raise SectionParseError("No JSON object found in response")
    try:
        return model.model_validate_json(match.group(0))
    except ValidationError as exc:
        raise SectionParseError(f"Invalid {model.__name__} JSON: {exc.error_count()} errors") from exc


PARSERS: dict[str, Callable[[str], Any]] = {
    "warmup": parse_questions,
    "dialogue": parse_dialogue,
    "discussion": lambda text: parse_questions(text, limit=5),
    "grammar": lambda text: parse_json_section(text, GrammarSection),
    "pronunciation": lambda text: parse_json_section(text, PronunciationSection),
}


@dataclass(slots=True, frozen=True)
class SectionOutcome:
    section: str
    content: Any
    validation: SectionValidationResult
    attempts: int


class SectionRegenerator:
    """Runs the regeneration loop for one section at a time.

    Sections share the tracker but each writes only its own entry, so several
    sections may be generated concurrently.
    """

    def __init__(
        self,
        generator: TextGenerator,
        tracker: QualityMetricsTracker,
        config: Optional[GenerationConfig] = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.generator = generator
        self.tracker = tracker
        self.config = config or GenerationConfig()
        self._clock = clock

    async def generate_section(self, section: str, context: LessonContext) -> SectionOutcome:
        if section not in PROMPT_BUILDERS:
            raise ValueError(f"Unknown lesson section: {section}")
        validator = get_validator(section)
        validation_context = ValidationContext(
            vocabulary_words=list(context.vocabulary_words),
            source_title=context.source_title,
        )
        max_attempts = self.config.max_section_attempts
        started = self._clock()
        log = logger.bind(section=section, level=context.level.value)

        attempt = 0
        while True:
            attempt += 1
            log.info("Generating section", attempt=attempt, max_attempts=max_attempts)
            try:
                text = await self.generator.generate(PROMPT_BUILDERS[section](context))
            except Exception as exc:
                # Transport retries already happened inside the generator.
                log.warning("Section generation failed", attempt=attempt, error=str(exc))
                self.tracker.record_section(section, 0, attempt, self._elapsed_ms(started), 1, 0)
                raise

            try:
                content = PARSERS[section](text)
            except SectionParseError as exc:
                log.warning("Section response could not be parsed", attempt=attempt, error=str(exc))
                if attempt < max_attempts:
                    continue
                self.tracker.record_section(section, 0, attempt, self._elapsed_ms(started), 1, 0)
                raise SectionGenerationError(section, attempt, str(exc)) from exc

            validation = validator.validate(content, context.level, validation_context)
            if not validation.is_valid:
                log.info(
                    "Section failed validation",
                    attempt=attempt,
                    issues=[issue.message for issue in validation.issues],
                )
                if attempt < max_attempts:
                    continue
                log.warning("Accepting section despite validation issues", attempts=attempt)

            self.tracker.record_section(
                section,
                validation.score,
                attempt,
                self._elapsed_ms(started),
                len(validation.issues),
                len(validation.warnings),
            )
            return SectionOutcome(section=section, content=content, validation=validation, attempts=attempt)

    def _elapsed_ms(self, started: float) -> float:
        return (self._clock() - started) * 1000
