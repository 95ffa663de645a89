"""Error classification for failures at external call boundaries."""

from __future__ import annotations

from .classifier import (
    USER_MESSAGES,
    ClassifiedError,
    ErrorClassifier,
    ErrorContext,
    ErrorType,
    SupportErrorMessage,
    UserErrorMessage,
    generate_error_id,
)
from .exceptions import GenerationError, GenerationFailed

__all__ = [
    "USER_MESSAGES",
    "ClassifiedError",
    "ErrorClassifier",
    "ErrorContext",
    "ErrorType",
    "GenerationError",
    "GenerationFailed",
    "SupportErrorMessage",
    "UserErrorMessage",
    "generate_error_id",
]
