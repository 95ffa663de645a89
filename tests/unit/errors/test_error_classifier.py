"""Tests for AI boundary error classification."""

import re

import aiohttp
import pytest

from lessongate.config import ErrorReportingConfig
from lessongate.errors import ErrorClassifier, ErrorContext, ErrorType, GenerationError, generate_error_id

ERROR_ID = re.compile(r"^ERR_[0-9A-Z]+_[0-9A-F]{8}$")


@pytest.fixture
def classifier():
    return ErrorClassifier(ErrorReportingConfig(support_contact="help@example.com"))


class TestDetermineType:
    """Status codes take precedence, then message and code indicators."""

    @pytest.mark.parametrize(
        "error, expected",
        [
            (GenerationError("slow down", status=429), ErrorType.QUOTA_EXCEEDED),
            (GenerationError("Quota exceeded for model"), ErrorType.QUOTA_EXCEEDED),
            (GenerationError("failed", code="RESOURCE_EXHAUSTED"), ErrorType.QUOTA_EXCEEDED),
            (GenerationError("bad gateway", status=502), ErrorType.NETWORK_ERROR),
            (GenerationError("unavailable", status=503), ErrorType.NETWORK_ERROR),
            (GenerationError("no response", status=0), ErrorType.NETWORK_ERROR),
            (TimeoutError(), ErrorType.NETWORK_ERROR),
            (aiohttp.ClientConnectionError("refused"), ErrorType.NETWORK_ERROR),
            (GenerationError("Bad request", status=400), ErrorType.CONTENT_ISSUE),
            (GenerationError("Invalid input supplied"), ErrorType.CONTENT_ISSUE),
            (GenerationError("Internal Server Error", status=500), ErrorType.UNKNOWN),
            (ValueError("something odd"), ErrorType.UNKNOWN),
        ],
    )
    def test_classification(self, classifier, error, expected):
        assert classifier.determine_type(error) is expected

    def test_quota_status_beats_network_message(self, classifier):
        error = GenerationError("connection reset", status=429)

        assert classifier.determine_type(error) is ErrorType.QUOTA_EXCEEDED


class TestMessages:
    @pytest.mark.parametrize(
        "error, title, text, steps, contact",
        [
            (
                GenerationError("rate limited", status=429),
                "API Quota Exceeded",
                "API quota exceeded, please try again later",
                (
                    "Wait a few minutes before trying again",
                    "Try generating a shorter lesson",
                    "Contact support if the issue persists",
                ),
                "help@example.com",
            ),
            (
                GenerationError("Bad request", status=400),
                "Content Processing Error",
                "Unable to process this content, please try different text",
                (
                    "Ensure the content has at least 100 words",
                    "Try selecting different text from the webpage",
                    "Check that the content is in a supported language",
                    "Remove any special characters or formatting",
                ),
                None,
            ),
            (
                GenerationError("unavailable", status=503),
                "Connection Error",
                "Connection error, please check your internet and try again",
                (
                    "Check your internet connection",
                    "Try refreshing the page",
                    "Wait a moment and try again",
                    "Contact support if the problem continues",
                ),
                None,
            ),
            (
                GenerationError("Internal Server Error", status=500),
                "Service Temporarily Unavailable",
                "AI service temporarily unavailable, please try again later",
                (
                    "Wait a few minutes and try again",
                    "Try refreshing the page",
                    "Contact support with the error ID below",
                ),
                "help@example.com",
            ),
        ],
    )
    def test_message_for_every_type(self, classifier, error, title, text, steps, contact):
        classified = classifier.classify(error)

        message = classifier.to_user_message(classified)

        assert message.title == title
        assert message.message == text
        assert message.actionable_steps == steps
        assert message.support_contact == contact
        assert message.error_id == classified.error_id

    def test_error_id_shared_between_messages(self, classifier):
        context = ErrorContext(lesson_type="dialogue", request_id="req_1")
        classified = classifier.classify(GenerationError("boom", status=500), context)

        user = classifier.to_user_message(classified)
        support = classifier.to_support_message(classified)

        assert user.error_id == support.error_id == classified.error_id
        assert support.context.lesson_type == "dialogue"
        assert support.timestamp == context.timestamp

    def test_support_message_carries_stack_trace(self, classifier):
        try:
            raise GenerationError("boom", status=500, code="E1", response={"detail": "x"})
        except GenerationError as exc:
            classified = classifier.classify(exc)

        support = classifier.to_support_message(classified)

        assert "GenerationError" in support.stack_trace
        assert "Message: boom" in support.technical_details
        assert "Code: E1" in support.technical_details
        assert "Status: 500" in support.technical_details
        assert '"detail": "x"' in support.technical_details

    def test_unraised_error_has_no_stack_trace(self, classifier):
        support = classifier.to_support_message(classifier.classify(GenerationError("boom")))

        assert support.stack_trace is None


class TestErrorIds:
    def test_format(self):
        assert ERROR_ID.match(generate_error_id())

    def test_timestamp_is_base36(self):
        assert generate_error_id(now_ms=36).startswith("ERR_10_")

    def test_ids_are_unique(self):
        assert len({generate_error_id(now_ms=1) for _ in range(50)}) == 50

    def test_context_to_dict_omits_missing(self):
        data = ErrorContext(content_length=1200).to_dict()

        assert set(data) == {"timestamp", "content_length"}
