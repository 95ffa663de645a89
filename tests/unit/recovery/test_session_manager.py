"""Tests for in-memory extraction sessions."""

import pytest

from lessongate.config import SessionConfig
from lessongate.recovery import (
    ExtractionMethod,
    ExtractionSessionManager,
    InteractionType,
    InvalidSessionTransition,
    SessionNotFoundError,
    SessionStatus,
)

URL = "https://en.wikipedia.org/wiki/Tea"


@pytest.fixture
def manager(fake_date_clock):
    return ExtractionSessionManager(SessionConfig(), clock=fake_date_clock)


class TestLifecycle:
    """Sessions move forward only, with retry as the single way back."""

    def test_create_session(self, manager, fake_date_clock):
        session = manager.create_session(URL, "Tea", ExtractionMethod.SELECTION)

        assert session.session_id.startswith(f"session_{int(fake_date_clock.now.timestamp() * 1000)}_")
        assert session.status is SessionStatus.STARTED
        assert session.metadata.domain == "en.wikipedia.org"
        assert session.metadata.extraction_method is ExtractionMethod.SELECTION
        assert manager.events()[0].event_type is InteractionType.EXTRACTION_STARTED
        assert len(manager) == 1

    def test_happy_path(self, manager, fake_date_clock):
        session = manager.create_session(URL, "Tea")
        manager.update_session(session.session_id, SessionStatus.EXTRACTING)
        manager.update_session(session.session_id, SessionStatus.VALIDATING, word_count=3)
        fake_date_clock.advance(seconds=5)

        done = manager.complete_session(session.session_id, "tea is nice", content_type="article", language="en")

        assert done.status is SessionStatus.COMPLETE
        assert done.metadata.word_count == 3
        assert done.metadata.language == "en"
        assert done.end_time == fake_date_clock.now
        assert manager.history()[-1].status is SessionStatus.COMPLETE
        assert manager.active_sessions() == []

    def test_complete_from_started_fills_in_steps(self, manager):
        session = manager.create_session(URL)

        assert manager.complete_session(session.session_id, "text").status is SessionStatus.COMPLETE

    def test_backwards_transition_is_rejected(self, manager):
        session = manager.create_session(URL)
        manager.update_session(session.session_id, SessionStatus.EXTRACTING)

        with pytest.raises(InvalidSessionTransition):
            manager.update_session(session.session_id, SessionStatus.STARTED)

    def test_terminal_sessions_are_frozen(self, manager):
        session = manager.create_session(URL)
        manager.complete_session(session.session_id, "text")

        with pytest.raises(InvalidSessionTransition):
            manager.fail_session(session.session_id, "late failure")

    def test_unknown_metadata_field(self, manager):
        session = manager.create_session(URL)

        with pytest.raises(AttributeError):
            manager.update_session(session.session_id, colour="green")

    def test_unknown_session(self, manager):
        with pytest.raises(SessionNotFoundError):
            manager.get_session("missing")


class TestRetry:
    def test_retry_restarts_failed_session(self, manager):
        session = manager.create_session(URL)
        manager.fail_session(session.session_id, "Network error")

        assert manager.retry_extraction(session.session_id)

        restarted = manager.get_session(session.session_id)
        assert restarted.status is SessionStatus.STARTED
        assert restarted.retry_count == 1
        assert restarted.error is None
        assert restarted.end_time is None

    def test_retry_budget(self, manager):
        session = manager.create_session(URL)
        for _ in range(3):
            manager.fail_session(session.session_id, "Network error")
            assert manager.retry_extraction(session.session_id)

        manager.fail_session(session.session_id, "Network error")
        assert not manager.retry_extraction(session.session_id)
        assert manager.get_session(session.session_id).status is SessionStatus.FAILED

    def test_only_failed_sessions_can_retry(self, manager):
        session = manager.create_session(URL)

        with pytest.raises(InvalidSessionTransition):
            manager.retry_extraction(session.session_id)


class TestHousekeeping:
    def test_cleanup_removes_old_sessions(self, manager, fake_date_clock):
        finished = manager.create_session(URL)
        manager.complete_session(finished.session_id, "text")
        abandoned = manager.create_session(URL)
        fake_date_clock.advance(hours=23)
        recent = manager.create_session(URL)
        fake_date_clock.advance(hours=2)

        assert manager.cleanup_expired_sessions() == 2
        assert len(manager) == 1
        assert manager.get_session(recent.session_id)
        assert manager.events()[-1].event_type is InteractionType.SESSION_CLEANUP
        with pytest.raises(SessionNotFoundError):
            manager.get_session(abandoned.session_id)

    def test_history_is_bounded(self, fake_date_clock):
        manager = ExtractionSessionManager(SessionConfig(max_history_entries=2), clock=fake_date_clock)
        for _ in range(3):
            session = manager.create_session(URL)
            manager.complete_session(session.session_id, "text")

        assert len(manager.history()) == 2

    def test_analytics_summary(self, manager):
        ok = manager.create_session(URL)
        manager.complete_session(ok.session_id, "text")
        bad = manager.create_session("https://example.com/a")
        manager.fail_session(bad.session_id, "Network error")
        manager.retry_extraction(bad.session_id)
        manager.fail_session(bad.session_id, "Network error")

        summary = manager.analytics_summary()

        assert summary.total_extractions == 3
        assert summary.successful_extractions == 1
        assert summary.failed_extractions == 2
        assert summary.average_retries == pytest.approx(1 / 3)
        assert summary.most_common_errors == [("Network error", 2)]
        assert summary.extractions_by_domain[0] == ("example.com", 2)
