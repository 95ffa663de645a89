"""Tests for recovery decisions on validation and extraction failures."""

import random
from unittest.mock import MagicMock

import aiohttp
import pytest

from lessongate.config import RetryConfig
from lessongate.errors import ErrorClassifier, GenerationError
from lessongate.protocols import IssueType, Severity, ValidationIssue, ValidationResult
from lessongate.recovery import (
    ExtractionErrorHandler,
    ExtractionErrorType,
    ExtractionFailure,
    RecoveryAction,
)


def issue(issue_type, severity=Severity.ERROR, message="problem"):
    return ValidationIssue(type=issue_type, severity=severity, message=message, suggested_action="fix it")


def result(*issues, score=40.0, meets_minimum_quality=None):
    is_valid = not any(i.is_error for i in issues)
    if meets_minimum_quality is None:
        meets_minimum_quality = score >= 60
    return ValidationResult(
        is_valid=is_valid,
        meets_minimum_quality=meets_minimum_quality,
        issues=tuple(issues),
        warnings=(),
        recommendations=(),
        score=score,
    )


@pytest.fixture
def handler():
    return ExtractionErrorHandler(RetryConfig(), rng=random.Random(7))


class TestValidationFailures:
    """Validation results become user-facing rejections."""

    def test_short_content_offers_manual_selection_first(self, handler):
        error = handler.handle_validation_error(result(issue(IssueType.INSUFFICIENT_CONTENT)))

        assert error.type is ExtractionErrorType.VALIDATION_FAILED
        assert not error.can_retry
        assert error.actions == [RecoveryAction.MANUAL_SELECTION, RecoveryAction.COPY_PASTE_FALLBACK]
        assert error.recovery_options[0].primary
        assert not error.recovery_options[1].primary
        assert "enough content" in error.user_message

    def test_advertising_offers_different_source(self, handler):
        error = handler.handle_validation_error(result(issue(IssueType.TOO_MUCH_ADVERTISING)))

        assert [option.id for option in error.recovery_options] == [
            "manual_selection",
            "different_source",
            "copy_paste",
        ]

    def test_unsupported_language(self, handler):
        error = handler.handle_validation_error(result(issue(IssueType.UNSUPPORTED_LANGUAGE)))

        ids = [option.id for option in error.recovery_options]
        assert ids == ["copy_paste", "supported_language"]
        assert error.recovery_options[0].primary

    def test_low_score_without_errors_is_retryable(self, handler):
        warning = issue(IssueType.LOW_READABILITY, Severity.WARNING)

        error = handler.handle_validation_error(result(warning, score=45.0))

        assert error.can_retry
        assert error.message == "Validation score 45.0 is too low"
        assert [option.id for option in error.recovery_options] == ["copy_paste", "different_page", "retry"]

    def test_multiple_errors_are_summarised(self, handler):
        error = handler.handle_validation_error(
            result(issue(IssueType.INSUFFICIENT_CONTENT), issue(IssueType.SOCIAL_MEDIA_CONTENT))
        )

        assert error.message == "Content is too short and has quality issues"

    def test_passing_result_is_rejected(self, handler):
        with pytest.raises(ValueError):
            handler.handle_validation_error(result(score=90.0))

    def test_technical_details_only_when_enabled(self):
        verbose = ExtractionErrorHandler(RetryConfig(show_technical_details=True))

        error = verbose.handle_validation_error(result(issue(IssueType.NAVIGATION_ONLY)))

        assert error.technical_details == "Validation score: 40.0, Issues: 1"


class TestExtractionFailures:
    """Classification and retry budgeting for extraction failures."""

    @pytest.mark.parametrize(
        "error, kind",
        [
            (ExtractionFailure(ExtractionErrorType.CONTENT_BLOCKED), ExtractionErrorType.CONTENT_BLOCKED),
            (PermissionError("nope"), ExtractionErrorType.PERMISSION_DENIED),
            (TimeoutError(), ExtractionErrorType.TIMEOUT_ERROR),
            (ConnectionError("reset"), ExtractionErrorType.NETWORK_ERROR),
            (aiohttp.ClientResponseError(MagicMock(), (), status=403), ExtractionErrorType.CONTENT_BLOCKED),
            (aiohttp.ClientResponseError(MagicMock(), (), status=429), ExtractionErrorType.RATE_LIMITED),
            (RuntimeError("Failed to fetch"), ExtractionErrorType.NETWORK_ERROR),
            (RuntimeError("CORS policy"), ExtractionErrorType.PERMISSION_DENIED),
            (ValueError("could not parse document"), ExtractionErrorType.PARSING_ERROR),
            (RuntimeError("mystery"), ExtractionErrorType.UNKNOWN_ERROR),
        ],
    )
    def test_classify(self, handler, error, kind):
        assert handler.classify(error) is kind

    def test_classified_generation_error_keeps_its_id(self, handler):
        classified = ErrorClassifier().classify(GenerationError("slow down", status=429))

        error = handler.handle_extraction_error(classified, session_id="s1")

        assert error.type is ExtractionErrorType.RATE_LIMITED
        assert error.error_id == classified.error_id

    def test_retry_offered_until_budget_spent(self, handler):
        first = handler.handle_extraction_error(ConnectionError("reset"), session_id="s1")
        assert first.can_retry
        assert first.recovery_options[0].id == "retry"
        assert first.recovery_options[0].primary

        for _ in range(3):
            handler.record_retry_attempt("s1")

        exhausted = handler.handle_extraction_error(ConnectionError("reset"), session_id="s1")
        assert not exhausted.can_retry
        assert RecoveryAction.RETRY_EXTRACTION not in exhausted.actions
        assert exhausted.recovery_options[0].primary

    def test_blocked_pages_are_never_retried(self, handler):
        error = handler.handle_extraction_error(PermissionError("denied"), url="https://example.com/a")

        assert not error.can_retry
        assert [option.id for option in error.recovery_options] == [
            "manual_selection",
            "copy_paste",
            "different_page",
        ]
        assert error.recovery_options[0].primary

    def test_retry_counts_are_per_site_without_session(self, handler):
        handler.record_retry_attempt("example.com")

        assert handler.retry_attempts("example.com") == 1
        handler.handle_extraction_error(ConnectionError("x"), url="https://example.com/page")
        assert handler.retry_attempts("other.org") == 0

    def test_retry_disabled(self):
        handler = ExtractionErrorHandler(RetryConfig(enable_retry=False))

        error = handler.handle_extraction_error(ConnectionError("reset"), session_id="s1")

        assert not error.can_retry
        assert [option.id for option in error.recovery_options] == ["copy_paste"]

    def test_clear_retry_attempts(self, handler):
        handler.record_retry_attempt("s1")
        handler.clear_retry_attempts("s1")

        assert handler.retry_attempts("s1") == 0

    def test_retry_delay_grows_with_attempts(self, handler):
        handler.record_retry_attempt("s1")
        handler.record_retry_attempt("s1")

        assert 4000 <= handler.get_retry_delay("s1") <= 4400


class TestDisplay:
    def test_format_for_display(self, handler):
        error = handler.handle_extraction_error(TimeoutError(), session_id="s1")

        display = ExtractionErrorHandler.format_for_display(error)

        assert display.title == "Request Timed Out"
        assert display.message == error.user_message
        assert display.actions == error.recovery_options
        assert display.error_id == error.error_id
