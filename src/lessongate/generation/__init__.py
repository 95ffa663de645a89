"""AI section generation: endpoint client, retries and the regeneration loop."""

from __future__ import annotations

from .client import OpenRouterClient, generate_request_id
from .prompts import PROMPT_BUILDERS, LessonContext
from .regenerator import (
    SectionGenerationError,
    SectionOutcome,
    SectionParseError,
    SectionRegenerator,
    parse_dialogue,
    parse_json_section,
    parse_questions,
)
from .retry import RETRYABLE_STATUSES, RetryingGenerator

__all__ = [
    "PROMPT_BUILDERS",
    "RETRYABLE_STATUSES",
    "LessonContext",
    "OpenRouterClient",
    "RetryingGenerator",
    "SectionGenerationError",
    "SectionOutcome",
    "SectionParseError",
    "SectionRegenerator",
    "generate_request_id",
    "parse_dialogue",
    "parse_json_section",
    "parse_questions",
]
