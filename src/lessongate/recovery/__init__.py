"""Recovery decisions, retry bookkeeping and extraction sessions."""

from __future__ import annotations

from .backoff import calculate_backoff_delay
from .handler import (
    ErrorDisplay,
    ExtractionError,
    ExtractionErrorHandler,
    ExtractionErrorType,
    ExtractionFailure,
    RecoveryAction,
    RecoveryOption,
)
from .sessions import (
    AnalyticsSummary,
    ExtractionMethod,
    ExtractionSession,
    ExtractionSessionManager,
    InteractionType,
    InvalidSessionTransition,
    SessionNotFoundError,
    SessionStatus,
)

__all__ = [
    "AnalyticsSummary",
    "ErrorDisplay",
    "ExtractionError",
    "ExtractionErrorHandler",
    "ExtractionErrorType",
    "ExtractionFailure",
    "ExtractionMethod",
    "ExtractionSession",
    "ExtractionSessionManager",
    "InteractionType",
    "InvalidSessionTransition",
    "RecoveryAction",
    "RecoveryOption",
    "SessionNotFoundError",
    "SessionStatus",
    "calculate_backoff_delay",
]
