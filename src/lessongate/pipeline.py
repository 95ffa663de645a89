"""
Lesson pipeline orchestration.

Extracted text is validated before anything is sent to the AI endpoint.
Rejected text becomes an ``ExtractionError`` with recovery options; accepted
text is turned into lesson sections, each going through its own
generate-validate-regenerate loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Union

import structlog

from lessongate.config.config import Config
from lessongate.errors.classifier import ErrorClassifier
from lessongate.generation.prompts import LessonContext
from lessongate.generation.regenerator import SectionOutcome, SectionRegenerator
from lessongate.generation.retry import RetryingGenerator
from lessongate.observability import bind_correlation_id, clear_correlation_id
from lessongate.protocols import CEFRLevel, ContentMetadata, TextGenerator, ValidationResult
from lessongate.recovery.handler import ExtractionError, ExtractionErrorHandler
from lessongate.recovery.sessions import ExtractionSessionManager, SessionStatus
from lessongate.sections.metrics import LessonQualityMetrics, QualityMetricsTracker
from lessongate.validation.content import ContentValidationEngine

logger = structlog.get_logger(__name__)

DEFAULT_SECTIONS = ("warmup", "dialogue", "discussion", "grammar", "pronunciation")


class ContentRejected(Exception):
    """Extracted text did not pass validation; ``error`` is what the user sees."""

    def __init__(self, error: ExtractionError, validation: ValidationResult) -> None:
        super().__init__(error.user_message)
        self.error = error
        self.validation = validation


@dataclass(slots=True, frozen=True)
class LessonDraft:
    session_id: str
    validation: ValidationResult
    sections: Dict[str, SectionOutcome]
    quality: LessonQualityMetrics


class LessonPipeline:
    """Validates extracted content and generates lesson sections from it."""

    def __init__(
        self,
        config: Config,
        generator: TextGenerator,
        *,
        sessions: Optional[ExtractionSessionManager] = None,
        handler: Optional[ExtractionErrorHandler] = None,
        classifier: Optional[ErrorClassifier] = None,
    ) -> None:
        self.config = config
        self.validator = ContentValidationEngine(config.validation)
        self.sessions = sessions or ExtractionSessionManager(config.sessions)
        self.handler = handler or ExtractionErrorHandler(config.retry)
        self.classifier = classifier or ErrorClassifier(config.errors)
        if not isinstance(generator, RetryingGenerator):
            generator = RetryingGenerator(generator, config.retry, self.classifier)
        self.generator = generator

    async def check_content(self, text: str, metadata: ContentMetadata) -> Union[ValidationResult, ExtractionError]:
        """Validation result when the text can proceed, otherwise the user-facing rejection."""
        result = await self.validator.validate(text, metadata)
        if result.can_proceed:
            return result
        return self.handler.handle_validation_error(result)

    async def generate_lesson(
        self,
        text: str,
        metadata: ContentMetadata,
        level: Union[CEFRLevel, str],
        *,
        vocabulary_words: Sequence[str] = (),
        grammar_focus: str = "",
        sections: Sequence[str] = DEFAULT_SECTIONS,
    ) -> LessonDraft:
        session = self.sessions.create_session(metadata.url, metadata.title)
        bind_correlation_id(session.session_id)
        try:
            self.sessions.update_session(session.session_id, SessionStatus.EXTRACTING)
            self.sessions.update_session(session.session_id, SessionStatus.VALIDATING)
            validation = await self.validator.validate(text, metadata)
            if not validation.can_proceed:
                rejection = self.handler.handle_validation_error(validation)
                self.sessions.fail_session(session.session_id, rejection.user_message)
                raise ContentRejected(rejection, validation)
            self.sessions.complete_session(
                session.session_id,
                text,
                content_type=metadata.content_type.value if metadata.content_type else None,
                language=metadata.language,
            )

            context = LessonContext(
                source_title=metadata.title,
                source_text=text,
                level=CEFRLevel(level),
                vocabulary_words=list(vocabulary_words),
                grammar_focus=grammar_focus,
            )
            tracker = QualityMetricsTracker()
            regenerator = SectionRegenerator(self.generator, tracker, self.config.generation)
            try:
                async with asyncio.TaskGroup() as group:
                    tasks = [group.create_task(regenerator.generate_section(name, context)) for name in sections]
            except ExceptionGroup as failures:
                # Remaining sections are cancelled; the first failure is what the user sees.
                logger.error(
                    "Lesson generation failed",
                    session_id=session.session_id,
                    errors=[str(error) for error in failures.exceptions],
                )
                raise failures.exceptions[0]
            outcomes = [task.result() for task in tasks]

            quality = tracker.finalize()
            tracker.log_summary()
            logger.info(
                "Lesson generated",
                session_id=session.session_id,
                sections=len(outcomes),
                overall_score=quality.overall_score,
            )
            return LessonDraft(
                session_id=session.session_id,
                validation=validation,
                sections={result.section: result for result in outcomes},
                quality=quality,
            )
        finally:
            clear_correlation_id()
