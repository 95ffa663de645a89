"""
Turns failed validations and extraction failures into recovery decisions.

The recovery option tables in this module are the user-facing contract: the
UI renders the options in order and highlights the one marked primary.
"""

from __future__ import annotations

import random
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set, Tuple, Union
from urllib.parse import urlparse

import aiohttp
import structlog

from lessongate.config.config import RetryConfig
from lessongate.errors.classifier import ClassifiedError, ErrorType, generate_error_id
from lessongate.protocols import IssueType, Severity, ValidationIssue, ValidationResult
from lessongate.recovery.backoff import calculate_backoff_delay

logger = structlog.get_logger(__name__)


class ExtractionErrorType(Enum):
    VALIDATION_FAILED = "validation_failed"
    NETWORK_ERROR = "network_error"
    PARSING_ERROR = "parsing_error"
    PERMISSION_DENIED = "permission_denied"
    CONTENT_BLOCKED = "content_blocked"
    TIMEOUT_ERROR = "timeout_error"
    RATE_LIMITED = "rate_limited"
    UNKNOWN_ERROR = "unknown_error"


class RecoveryAction(Enum):
    RETRY_EXTRACTION = "retry_extraction"
    MANUAL_SELECTION = "manual_selection"
    COPY_PASTE_FALLBACK = "copy_paste_fallback"
    TRY_DIFFERENT_PAGE = "try_different_page"
    ADJUST_SETTINGS = "adjust_settings"
    CONTACT_SUPPORT = "contact_support"


NON_RETRYABLE: FrozenSet[ExtractionErrorType] = frozenset(
    {ExtractionErrorType.PERMISSION_DENIED, ExtractionErrorType.CONTENT_BLOCKED}
)


class ExtractionFailure(Exception):
    """Raised by extraction code that already knows what went wrong."""

    def __init__(self, kind: ExtractionErrorType, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind


@dataclass(slots=True, frozen=True)
class RecoveryOption:
    id: str
    label: str
    description: str
    action: RecoveryAction
    primary: bool = False


@dataclass(slots=True, frozen=True)
class ExtractionError:
    type: ExtractionErrorType
    message: str
    user_message: str
    recovery_options: Tuple[RecoveryOption, ...]
    can_retry: bool
    error_id: str
    technical_details: Optional[str] = None

    @property
    def actions(self) -> List[RecoveryAction]:
        return [option.action for option in self.recovery_options]


@dataclass(slots=True, frozen=True)
class ErrorDisplay:
    title: str
    message: str
    actions: Tuple[RecoveryOption, ...]
    can_retry: bool
    error_id: str


ERROR_TITLES: Dict[ExtractionErrorType, str] = {
    ExtractionErrorType.VALIDATION_FAILED: "Content Not Suitable",
    ExtractionErrorType.NETWORK_ERROR: "Connection Problem",
    ExtractionErrorType.PERMISSION_DENIED: "Access Denied",
    ExtractionErrorType.CONTENT_BLOCKED: "Content Blocked",
    ExtractionErrorType.TIMEOUT_ERROR: "Request Timed Out",
    ExtractionErrorType.PARSING_ERROR: "Content Format Issue",
    ExtractionErrorType.RATE_LIMITED: "Too Many Requests",
    ExtractionErrorType.UNKNOWN_ERROR: "Extraction Failed",
}

EXTRACTION_MESSAGES: Dict[ExtractionErrorType, str] = {
    ExtractionErrorType.NETWORK_ERROR: (
        "Unable to connect to the website. Please check your internet connection and try again."
    ),
    ExtractionErrorType.PERMISSION_DENIED: (
        "This website doesn't allow content extraction. Try copying the content manually or use a different source."
    ),
    ExtractionErrorType.CONTENT_BLOCKED: (
        "This website has blocked automatic content extraction. You can still copy and paste the content manually."
    ),
    ExtractionErrorType.TIMEOUT_ERROR: (
        "The extraction took too long and timed out. The website might be slow or overloaded."
    ),
    ExtractionErrorType.PARSING_ERROR: (
        "Unable to understand the page structure. The content might be in an unusual format."
    ),
    ExtractionErrorType.RATE_LIMITED: "Too many requests were made in a short time. Please wait a moment and try again.",
    ExtractionErrorType.VALIDATION_FAILED: (
        "The extracted content doesn't meet the requirements for lesson generation."
    ),
    ExtractionErrorType.UNKNOWN_ERROR: (
        "An unexpected error occurred during content extraction. Please try again or use manual copy-paste."
    ),
}

VALIDATION_MESSAGES: Dict[IssueType, str] = {
    IssueType.INSUFFICIENT_CONTENT: (
        "This page doesn't have enough content for a quality lesson. "
        "Try finding a longer article or selecting additional text."
    ),
    IssueType.POOR_QUALITY: (
        "The content quality is too low for effective lesson generation. "
        "Look for well-written articles or educational content."
    ),
    IssueType.UNSUPPORTED_LANGUAGE: (
        "The content language is not supported or couldn't be detected. "
        "Try content in English, Spanish, French, German, or other supported languages."
    ),
    IssueType.EXTRACTION_FAILED: "No text could be extracted from this page. Try selecting the text manually.",
    IssueType.NO_MAIN_CONTENT: (
        "Unable to find substantial content on this page. Try selecting the main article text manually."
    ),
    IssueType.TOO_MUCH_ADVERTISING: (
        "This page has too much advertising content. "
        "Try educational websites, news articles, or blogs with less advertising."
    ),
    IssueType.SOCIAL_MEDIA_CONTENT: (
        "Social media content isn't suitable for lessons. Try articles, blog posts, or news stories instead."
    ),
    IssueType.NAVIGATION_ONLY: (
        "Only navigation links were found. Try selecting the main article content instead of menu areas."
    ),
    IssueType.LOW_READABILITY: (
        "The content is difficult to read and may not be suitable for language learning. "
        "Try finding clearer, better-structured content."
    ),
}

CLASSIFIED_KINDS: Dict[ErrorType, ExtractionErrorType] = {
    ErrorType.NETWORK_ERROR: ExtractionErrorType.NETWORK_ERROR,
    ErrorType.QUOTA_EXCEEDED: ExtractionErrorType.RATE_LIMITED,
    ErrorType.CONTENT_ISSUE: ExtractionErrorType.PARSING_ERROR,
    ErrorType.UNKNOWN: ExtractionErrorType.UNKNOWN_ERROR,
}

STATUS_KINDS: Dict[int, ExtractionErrorType] = {
    401: ExtractionErrorType.PERMISSION_DENIED,
    403: ExtractionErrorType.CONTENT_BLOCKED,
    408: ExtractionErrorType.TIMEOUT_ERROR,
    429: ExtractionErrorType.RATE_LIMITED,
}

# Keyword fallback for exceptions that carry nothing but a message.
MESSAGE_KINDS: Tuple[Tuple[Tuple[str, ...], ExtractionErrorType], ...] = (
    (("network", "fetch"), ExtractionErrorType.NETWORK_ERROR),
    (("permission", "cors"), ExtractionErrorType.PERMISSION_DENIED),
    (("timeout",), ExtractionErrorType.TIMEOUT_ERROR),
    (("parse", "syntax"), ExtractionErrorType.PARSING_ERROR),
    (("blocked", "forbidden"), ExtractionErrorType.CONTENT_BLOCKED),
)

MANUAL_SELECTION_ISSUES = frozenset(
    {IssueType.INSUFFICIENT_CONTENT, IssueType.NO_MAIN_CONTENT, IssueType.TOO_MUCH_ADVERTISING, IssueType.EXTRACTION_FAILED}
)
DIFFERENT_CONTENT_ISSUES = frozenset(
    {IssueType.POOR_QUALITY, IssueType.SOCIAL_MEDIA_CONTENT, IssueType.NAVIGATION_ONLY, IssueType.LOW_READABILITY}
)

ErrorInput = Union[BaseException, ClassifiedError]


def session_key_for(url: Optional[str]) -> str:
    """Retry counters are kept per site when no explicit session id is given."""
    if not url:
        return "unknown"
    return urlparse(url).hostname or "unknown"


class ExtractionErrorHandler:
    """Builds ``ExtractionError`` decisions and keeps per-session retry counts."""

    def __init__(self, config: Optional[RetryConfig] = None, rng: Optional[random.Random] = None) -> None:
        self.config = config or RetryConfig()
        self._rng = rng or random.Random()
        self._retry_attempts: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # Validation failures
    # ------------------------------------------------------------------

    def handle_validation_error(self, result: ValidationResult) -> ExtractionError:
        errors = result.errors
        if errors:
            contributing: List[ValidationIssue] = errors
        elif not result.meets_minimum_quality:
            contributing = list(result.issues)
        else:
            raise ValueError("Validation passed; there is no failure to handle")

        primary = contributing[0] if contributing else None
        issue_types = {issue.type for issue in result.issues}
        if not errors:
            issue_types.add(IssueType.POOR_QUALITY)

        can_retry = all(issue.severity is Severity.WARNING for issue in contributing)
        if primary is not None and primary.is_error:
            user_message = VALIDATION_MESSAGES.get(primary.type, primary.message)
        else:
            user_message = VALIDATION_MESSAGES[IssueType.POOR_QUALITY]

        extraction_error = ExtractionError(
            type=ExtractionErrorType.VALIDATION_FAILED,
            message=self._validation_summary(errors) if errors else f"Validation score {result.score:.1f} is too low",
            user_message=user_message,
            recovery_options=tuple(self.validation_recovery_options(issue_types, can_retry)),
            can_retry=can_retry,
            error_id=generate_error_id(),
            technical_details=(
                f"Validation score: {result.score:.1f}, Issues: {len(errors)}"
                if self.config.show_technical_details
                else None
            ),
        )
        logger.info(
            "Validation failure handled",
            error_id=extraction_error.error_id,
            issues=sorted(issue.value for issue in issue_types),
            can_retry=can_retry,
        )
        return extraction_error

    def validation_recovery_options(self, issue_types: Set[IssueType], can_retry: bool = False) -> List[RecoveryOption]:
        options: List[RecoveryOption] = []
        if issue_types & MANUAL_SELECTION_ISSUES:
            options.append(
                RecoveryOption(
                    id="manual_selection",
                    label="Select Text Manually",
                    description="Highlight and select the specific text you want to use for the lesson",
                    action=RecoveryAction.MANUAL_SELECTION,
                    primary=True,
                )
            )
        if IssueType.TOO_MUCH_ADVERTISING in issue_types:
            options.append(
                RecoveryOption(
                    id="different_source",
                    label="Try a Different Source",
                    description="Educational and news sites usually carry much less advertising",
                    action=RecoveryAction.TRY_DIFFERENT_PAGE,
                )
            )
        options.append(
            RecoveryOption(
                id="copy_paste",
                label="Copy & Paste Content",
                description="Copy the content and paste it directly into the lesson generator",
                action=RecoveryAction.COPY_PASTE_FALLBACK,
                primary=not options,
            )
        )
        if issue_types & DIFFERENT_CONTENT_ISSUES:
            options.append(
                RecoveryOption(
                    id="different_page",
                    label="Try Different Content",
                    description="Look for articles, blog posts, or news stories with better structure",
                    action=RecoveryAction.TRY_DIFFERENT_PAGE,
                )
            )
        if IssueType.UNSUPPORTED_LANGUAGE in issue_types:
            options.append(
                RecoveryOption(
                    id="supported_language",
                    label="Find Supported Language Content",
                    description="Look for content in English, Spanish, French, German, or other supported languages",
                    action=RecoveryAction.TRY_DIFFERENT_PAGE,
                )
            )
        if can_retry and self.config.enable_retry:
            options.append(
                RecoveryOption(
                    id="retry",
                    label="Try Again",
                    description="Extract the content again",
                    action=RecoveryAction.RETRY_EXTRACTION,
                )
            )
        return options

    @staticmethod
    def _validation_summary(errors: List[ValidationIssue]) -> str:
        if len(errors) == 1:
            return errors[0].message
        types = {issue.type for issue in errors}
        if IssueType.INSUFFICIENT_CONTENT in types:
            return "Content is too short and has quality issues"
        if IssueType.UNSUPPORTED_LANGUAGE in types:
            return "Language not supported and content has quality issues"
        return f"Multiple validation issues: {len(errors)} problems found"

    # ------------------------------------------------------------------
    # Extraction failures
    # ------------------------------------------------------------------

    def handle_extraction_error(
        self,
        error: ErrorInput,
        *,
        session_id: Optional[str] = None,
        url: Optional[str] = None,
    ) -> ExtractionError:
        kind = self.classify(error)
        key = session_id or session_key_for(url)
        can_retry = self.can_retry_extraction(kind, key)

        if isinstance(error, ClassifiedError):
            error_id = error.error_id
            original: BaseException = error.original_error
        else:
            error_id = generate_error_id()
            original = error

        technical_details = None
        if self.config.show_technical_details:
            technical_details = "".join(traceback.format_exception(type(original), original, original.__traceback__))

        extraction_error = ExtractionError(
            type=kind,
            message=str(original) or kind.value,
            user_message=EXTRACTION_MESSAGES[kind],
            recovery_options=tuple(self.extraction_recovery_options(kind, can_retry)),
            can_retry=can_retry,
            error_id=error_id,
            technical_details=technical_details,
        )
        logger.warning(
            "Extraction failure handled",
            error_id=error_id,
            session_id=key,
            kind=kind.value,
            attempts=self.retry_attempts(key),
            can_retry=can_retry,
        )
        return extraction_error

    def classify(self, error: ErrorInput) -> ExtractionErrorType:
        if isinstance(error, ExtractionFailure):
            return error.kind
        if isinstance(error, ClassifiedError):
            return CLASSIFIED_KINDS[error.type]
        if isinstance(error, PermissionError):
            return ExtractionErrorType.PERMISSION_DENIED
        if isinstance(error, TimeoutError):
            return ExtractionErrorType.TIMEOUT_ERROR
        if isinstance(error, aiohttp.ClientResponseError) and error.status in STATUS_KINDS:
            return STATUS_KINDS[error.status]
        if isinstance(error, (ConnectionError, aiohttp.ClientConnectionError)):
            return ExtractionErrorType.NETWORK_ERROR

        message = str(error).lower()
        for keywords, kind in MESSAGE_KINDS:
            if any(keyword in message for keyword in keywords):
                return kind
        return ExtractionErrorType.UNKNOWN_ERROR

    def extraction_recovery_options(self, kind: ExtractionErrorType, can_retry: bool) -> List[RecoveryOption]:
        options: List[RecoveryOption] = []
        if can_retry and self.config.enable_retry:
            options.append(
                RecoveryOption(
                    id="retry",
                    label="Try Again",
                    description="Attempt to extract the content again",
                    action=RecoveryAction.RETRY_EXTRACTION,
                    primary=True,
                )
            )
        if kind in (
            ExtractionErrorType.PARSING_ERROR,
            ExtractionErrorType.CONTENT_BLOCKED,
            ExtractionErrorType.PERMISSION_DENIED,
        ):
            options.append(
                RecoveryOption(
                    id="manual_selection",
                    label="Select Text Manually",
                    description="Highlight the text you want to extract",
                    action=RecoveryAction.MANUAL_SELECTION,
                    primary=not can_retry,
                )
            )
        options.append(
            RecoveryOption(
                id="copy_paste",
                label="Copy & Paste Instead",
                description="Copy the content and paste it into the lesson generator",
                action=RecoveryAction.COPY_PASTE_FALLBACK,
                primary=not options,
            )
        )
        if kind in NON_RETRYABLE:
            options.append(
                RecoveryOption(
                    id="different_page",
                    label="Try Different Website",
                    description="Some websites block content extraction. Try a different source.",
                    action=RecoveryAction.TRY_DIFFERENT_PAGE,
                )
            )
        return options

    # ------------------------------------------------------------------
    # Retry bookkeeping
    # ------------------------------------------------------------------

    def can_retry_extraction(self, kind: ExtractionErrorType, session_id: str) -> bool:
        if not self.config.enable_retry or kind in NON_RETRYABLE:
            return False
        return self.retry_attempts(session_id) < self.config.max_retry_attempts

    def record_retry_attempt(self, session_id: str) -> int:
        attempts = self._retry_attempts.get(session_id, 0) + 1
        self._retry_attempts[session_id] = attempts
        return attempts

    def clear_retry_attempts(self, session_id: str) -> None:
        self._retry_attempts.pop(session_id, None)

    def retry_attempts(self, session_id: str) -> int:
        return self._retry_attempts.get(session_id, 0)

    def get_retry_delay(self, session_id: str) -> float:
        """Milliseconds to wait before the next attempt for this session."""
        return calculate_backoff_delay(
            self.retry_attempts(session_id),
            self.config.retry_base_delay_ms,
            self.config.retry_max_delay_ms,
            rng=self._rng,
        )

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    @staticmethod
    def format_for_display(error: ExtractionError) -> ErrorDisplay:
        return ErrorDisplay(
            title=ERROR_TITLES[error.type],
            message=error.user_message,
            actions=error.recovery_options,
            can_retry=error.can_retry,
            error_id=error.error_id,
        )
