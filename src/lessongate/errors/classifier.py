"""
Classification of failures at the AI/network boundary.

Every failure is mapped once to a closed ``ErrorType`` and given a shareable
error id. The id is repeated verbatim in the user-facing and support-facing
messages so a support ticket can be matched to logs.
"""

from __future__ import annotations

import json
import time
import traceback
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import aiohttp
import structlog

from lessongate.config.config import ErrorReportingConfig
from lessongate.errors.exceptions import GenerationError
from lessongate.observability import increment

logger = structlog.get_logger(__name__)


class ErrorType(Enum):
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    CONTENT_ISSUE = "CONTENT_ISSUE"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN = "UNKNOWN"


QUOTA_STATUSES = frozenset({429})
NETWORK_STATUSES = frozenset({0, 502, 503, 504})
CONTENT_STATUSES = frozenset({400})

QUOTA_INDICATORS = ("quota", "rate limit", "too many requests", "limit exceeded", "429", "resource_exhausted")
NETWORK_INDICATORS = ("network", "connection", "timeout", "fetch", "econnrefused", "enotfound", "etimedout")
CONTENT_INDICATORS = (
    "invalid input",
    "content too short",
    "unsupported format",
    "parsing error",
    "invalid content",
    "content validation",
    "invalid_argument",
)


@dataclass(slots=True, frozen=True)
class ErrorContext:
    user_id: Optional[str] = None
    content_length: Optional[int] = None
    lesson_type: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: Optional[str] = None
    api_endpoint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"timestamp": self.timestamp.isoformat()}
        for name in ("user_id", "content_length", "lesson_type", "request_id", "api_endpoint"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data


@dataclass(slots=True, frozen=True)
class ClassifiedError:
    type: ErrorType
    original_error: BaseException
    context: ErrorContext
    error_id: str


@dataclass(slots=True, frozen=True)
class UserErrorMessage:
    title: str
    message: str
    actionable_steps: Tuple[str, ...]
    error_id: str
    support_contact: Optional[str] = None


@dataclass(slots=True, frozen=True)
class SupportErrorMessage:
    error_id: str
    type: ErrorType
    technical_details: str
    context: ErrorContext
    stack_trace: Optional[str]
    timestamp: datetime


# Step 1 is always the most likely fix; order is part of the UI contract.
USER_MESSAGES: Dict[ErrorType, Tuple[str, str, Tuple[str, ...], bool]] = {
    ErrorType.QUOTA_EXCEEDED: (
        "API Quota Exceeded",
        "API quota exceeded, please try again later",
        (
            "Wait a few minutes before trying again",
            "Try generating a shorter lesson",
            "Contact support if the issue persists",
        ),
        True,
    ),
    ErrorType.CONTENT_ISSUE: (
        "Content Processing Error",
        "Unable to process this content, please try different text",
        (
            "Ensure the content has at least 100 words",
            "Try selecting different text from the webpage",
            "Check that the content is in a supported language",
            "Remove any special characters or formatting",
        ),
        False,
    ),
    ErrorType.NETWORK_ERROR: (
        "Connection Error",
        "Connection error, please check your internet and try again",
        (
            "Check your internet connection",
            "Try refreshing the page",
            "Wait a moment and try again",
            "Contact support if the problem continues",
        ),
        False,
    ),
    ErrorType.UNKNOWN: (
        "Service Temporarily Unavailable",
        "AI service temporarily unavailable, please try again later",
        (
            "Wait a few minutes and try again",
            "Try refreshing the page",
            "Contact support with the error ID below",
        ),
        True,
    ),
}


def _base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if value == 0:
        return "0"
    out = []
    while value:
        value, remainder = divmod(value, 36)
        out.append(digits[remainder])
    return "".join(reversed(out))


def generate_error_id(now_ms: Optional[int] = None) -> str:
    """``ERR_<base36 milliseconds>_<random>``, uppercased."""
    millis = now_ms if now_ms is not None else int(time.time() * 1000)
    random_part = str(uuid.uuid4()).split("-")[0]
    return f"ERR_{_base36(millis)}_{random_part}".upper()


def error_status(error: BaseException) -> Optional[int]:
    if isinstance(error, GenerationError):
        return error.status
    if isinstance(error, aiohttp.ClientResponseError):
        return error.status
    status = getattr(error, "status", None)
    return status if isinstance(status, int) else None


def error_code(error: BaseException) -> str:
    code = getattr(error, "code", None)
    return str(code) if code is not None else ""


class ErrorClassifier:
    """Maps raw failures to ``ErrorType`` and renders their messages."""

    def __init__(self, config: Optional[ErrorReportingConfig] = None) -> None:
        self.config = config or ErrorReportingConfig()

    def classify(self, error: BaseException, context: Optional[ErrorContext] = None) -> ClassifiedError:
        classified = ClassifiedError(
            type=self.determine_type(error),
            original_error=error,
            context=context or ErrorContext(),
            error_id=generate_error_id(),
        )
        increment("classified_errors", labels={"error_type": classified.type.value})
        logger.warning(
            "External call failed",
            error_id=classified.error_id,
            error_type=classified.type.value,
            status=error_status(error),
            error=str(error),
            request_id=classified.context.request_id,
        )
        return classified

    def determine_type(self, error: BaseException) -> ErrorType:
        status = error_status(error)
        text = str(error).casefold()
        code = error_code(error).casefold()

        def matches(indicators: Tuple[str, ...]) -> bool:
            return any(indicator in text or indicator in code for indicator in indicators)

        if status in QUOTA_STATUSES or matches(QUOTA_INDICATORS):
            return ErrorType.QUOTA_EXCEEDED
        if (
            status in NETWORK_STATUSES
            or isinstance(error, (TimeoutError, ConnectionError, aiohttp.ClientConnectionError))
            or matches(NETWORK_INDICATORS)
        ):
            return ErrorType.NETWORK_ERROR
        if status in CONTENT_STATUSES or matches(CONTENT_INDICATORS):
            return ErrorType.CONTENT_ISSUE
        return ErrorType.UNKNOWN

    def to_user_message(self, classified: ClassifiedError) -> UserErrorMessage:
        title, message, steps, with_contact = USER_MESSAGES[classified.type]
        return UserErrorMessage(
            title=title,
            message=message,
            actionable_steps=steps,
            error_id=classified.error_id,
            support_contact=self.config.support_contact if with_contact else None,
        )

    def to_support_message(self, classified: ClassifiedError) -> SupportErrorMessage:
        error = classified.original_error
        stack_trace = None
        if error.__traceback__ is not None:
            stack_trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        return SupportErrorMessage(
            error_id=classified.error_id,
            type=classified.type,
            technical_details=self.technical_details(error),
            context=classified.context,
            stack_trace=stack_trace,
            timestamp=classified.context.timestamp,
        )

    @staticmethod
    def technical_details(error: BaseException) -> str:
        details = []
        message = str(error)
        if message:
            details.append(f"Message: {message}")
        code = error_code(error)
        if code:
            details.append(f"Code: {code}")
        status = error_status(error)
        if status:
            details.append(f"Status: {status}")
        response = getattr(error, "response", None)
        if response:
            details.append(f"Response: {json.dumps(response, indent=2, default=str)}")
        return "\n".join(details)
