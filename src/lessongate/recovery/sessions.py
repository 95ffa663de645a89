"""
In-memory extraction sessions, interaction events and analytics.

Sessions live only as long as the authoring session that created them:
nothing here is persisted. Expired sessions are purged on an explicit sweep.
"""

from __future__ import annotations

import secrets
import uuid
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional
from urllib.parse import urlparse

import structlog

from lessongate.config.config import SessionConfig
from lessongate.observability import increment

logger = structlog.get_logger(__name__)

DateClock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(Enum):
    STARTED = "started"
    EXTRACTING = "extracting"
    VALIDATING = "validating"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETE, SessionStatus.FAILED)


# Forward-only. FAILED -> STARTED is reserved for retry_extraction().
ALLOWED_TRANSITIONS: Dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.STARTED: frozenset({SessionStatus.EXTRACTING, SessionStatus.FAILED}),
    SessionStatus.EXTRACTING: frozenset({SessionStatus.VALIDATING, SessionStatus.FAILED}),
    SessionStatus.VALIDATING: frozenset({SessionStatus.COMPLETE, SessionStatus.FAILED}),
    SessionStatus.COMPLETE: frozenset(),
    SessionStatus.FAILED: frozenset(),
}


class ExtractionMethod(Enum):
    FULL_PAGE = "full_page"
    SELECTION = "selection"


class InteractionType(Enum):
    BUTTON_SHOWN = "button_shown"
    BUTTON_CLICKED = "button_clicked"
    EXTRACTION_STARTED = "extraction_started"
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FAILED = "extraction_failed"
    RETRY_ATTEMPTED = "retry_attempted"
    LESSON_OPENED = "lesson_opened"
    SESSION_CLEANUP = "session_cleanup"


class InvalidSessionTransition(ValueError):
    """A session was asked to move backwards or out of a terminal state."""


class SessionNotFoundError(KeyError):
    pass


@dataclass(slots=True)
class SessionMetadata:
    page_title: str
    domain: str
    extraction_method: ExtractionMethod = ExtractionMethod.FULL_PAGE
    content_type: Optional[str] = None
    word_count: Optional[int] = None
    language: Optional[str] = None


@dataclass(slots=True)
class ExtractionSession:
    session_id: str
    source_url: str
    start_time: datetime
    metadata: SessionMetadata
    status: SessionStatus = SessionStatus.STARTED
    retry_count: int = 0
    end_time: Optional[datetime] = None
    extracted_text: Optional[str] = None
    error: Optional[str] = None


@dataclass(slots=True, frozen=True)
class HistoryEntry:
    session_id: str
    url: str
    timestamp: datetime
    status: SessionStatus
    error: Optional[str] = None


@dataclass(slots=True, frozen=True)
class InteractionEvent:
    event_id: str
    session_id: str
    event_type: InteractionType
    timestamp: datetime
    url: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class AnalyticsSummary:
    total_extractions: int
    successful_extractions: int
    failed_extractions: int
    average_retries: float
    most_common_errors: List[tuple[str, int]]
    extractions_by_domain: List[tuple[str, int]]


def generate_session_id(now: datetime) -> str:
    return f"session_{int(now.timestamp() * 1000)}_{secrets.token_hex(5)[:9]}"


class ExtractionSessionManager:
    """Tracks extraction sessions for one authoring session."""

    def __init__(self, config: Optional[SessionConfig] = None, clock: DateClock = utc_now) -> None:
        self.config = config or SessionConfig()
        self._clock = clock
        self._sessions: Dict[str, ExtractionSession] = {}
        self._history: Deque[HistoryEntry] = deque(maxlen=self.config.max_history_entries)
        self._events: Deque[InteractionEvent] = deque(maxlen=self.config.max_event_entries)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_session(
        self,
        source_url: str,
        page_title: str = "",
        method: ExtractionMethod = ExtractionMethod.FULL_PAGE,
    ) -> ExtractionSession:
        now = self._clock()
        session = ExtractionSession(
            session_id=generate_session_id(now),
            source_url=source_url,
            start_time=now,
            metadata=SessionMetadata(
                page_title=page_title,
                domain=urlparse(source_url).hostname or "",
                extraction_method=method,
            ),
        )
        self._sessions[session.session_id] = session
        self.record_interaction(InteractionType.EXTRACTION_STARTED, session.session_id, {"method": method.value})
        logger.info("Extraction session created", session_id=session.session_id, url=source_url)
        return session

    def get_session(self, session_id: str) -> ExtractionSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(session_id) from None

    def update_session(self, session_id: str, status: Optional[SessionStatus] = None, **metadata: Any) -> ExtractionSession:
        """Advance a session and/or fill in metadata fields."""
        session = self.get_session(session_id)
        if status is not None and status is not session.status:
            self._transition(session, status)
        for name, value in metadata.items():
            if not hasattr(session.metadata, name):
                raise AttributeError(f"Unknown session metadata field: {name}")
            setattr(session.metadata, name, value)
        return session

    def complete_session(
        self,
        session_id: str,
        text: str,
        *,
        content_type: Optional[str] = None,
        language: Optional[str] = None,
    ) -> ExtractionSession:
        session = self.get_session(session_id)
        # Allow callers that skipped intermediate bookkeeping to finish in one call.
        for step in (SessionStatus.EXTRACTING, SessionStatus.VALIDATING):
            if session.status is not step and step in ALLOWED_TRANSITIONS[session.status]:
                self._transition(session, step)
        self._transition(session, SessionStatus.COMPLETE)
        session.extracted_text = text
        session.metadata.word_count = len(text.split())
        if content_type is not None:
            session.metadata.content_type = content_type
        if language is not None:
            session.metadata.language = language
        self._finish(session)
        self.record_interaction(
            InteractionType.EXTRACTION_COMPLETED,
            session_id,
            {"word_count": session.metadata.word_count},
        )
        return session

    def fail_session(self, session_id: str, error: str) -> ExtractionSession:
        session = self.get_session(session_id)
        self._transition(session, SessionStatus.FAILED)
        session.error = error
        self._finish(session)
        self.record_interaction(InteractionType.EXTRACTION_FAILED, session_id, {"error": error})
        return session

    def retry_extraction(self, session_id: str) -> bool:
        """Restart a failed session; False once the retry budget is spent."""
        session = self.get_session(session_id)
        if session.status is not SessionStatus.FAILED:
            raise InvalidSessionTransition(f"Only failed sessions can be retried (status: {session.status.value})")
        if session.retry_count >= self.config.max_retry_attempts:
            logger.info("Retry budget exhausted", session_id=session_id, retries=session.retry_count)
            return False
        session.retry_count += 1
        session.status = SessionStatus.STARTED
        session.end_time = None
        session.error = None
        self.record_interaction(InteractionType.RETRY_ATTEMPTED, session_id, {"retry_count": session.retry_count})
        return True

    def _transition(self, session: ExtractionSession, status: SessionStatus) -> None:
        if status not in ALLOWED_TRANSITIONS[session.status]:
            raise InvalidSessionTransition(
                f"Cannot move session {session.session_id} from {session.status.value} to {status.value}"
            )
        session.status = status

    def _finish(self, session: ExtractionSession) -> None:
        session.end_time = self._clock()
        self._history.append(
            HistoryEntry(
                session_id=session.session_id,
                url=session.source_url,
                timestamp=session.end_time,
                status=session.status,
                error=session.error,
            )
        )
        increment("extraction_sessions", labels={"status": session.status.value})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def active_sessions(self) -> List[ExtractionSession]:
        return [session for session in self._sessions.values() if not session.status.is_terminal]

    def history(self) -> List[HistoryEntry]:
        return list(self._history)

    def events(self) -> List[InteractionEvent]:
        return list(self._events)

    def record_interaction(
        self,
        event_type: InteractionType,
        session_id: str,
        data: Optional[Dict[str, Any]] = None,
        url: Optional[str] = None,
    ) -> InteractionEvent:
        session = self._sessions.get(session_id)
        event = InteractionEvent(
            event_id=uuid.uuid4().hex,
            session_id=session_id,
            event_type=event_type,
            timestamp=self._clock(),
            url=url if url is not None else (session.source_url if session else ""),
            data=dict(data or {}),
        )
        self._events.append(event)
        return event

    # ------------------------------------------------------------------
    # Maintenance and analytics
    # ------------------------------------------------------------------

    def cleanup_expired_sessions(self) -> int:
        """Purge finished sessions past retention and sessions abandoned mid-flight."""
        cutoff = self._clock() - timedelta(hours=self.config.session_retention_hours)
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if (session.end_time if session.status.is_terminal and session.end_time else session.start_time) < cutoff
        ]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            self.record_interaction(InteractionType.SESSION_CLEANUP, "system", {"removed": len(expired)})
            logger.info("Expired extraction sessions purged", count=len(expired))
        return len(expired)

    def analytics_summary(self) -> AnalyticsSummary:
        history = list(self._history)
        total = len(history)
        retries = sum(1 for event in self._events if event.event_type is InteractionType.RETRY_ATTEMPTED)
        errors = Counter(entry.error for entry in history if entry.error)
        domains = Counter(urlparse(entry.url).hostname for entry in history if urlparse(entry.url).hostname)
        return AnalyticsSummary(
            total_extractions=total,
            successful_extractions=sum(1 for entry in history if entry.status is SessionStatus.COMPLETE),
            failed_extractions=sum(1 for entry in history if entry.status is SessionStatus.FAILED),
            average_retries=retries / max(total, 1),
            most_common_errors=errors.most_common(5),
            extractions_by_domain=domains.most_common(10),
        )

    def __len__(self) -> int:
        return len(self._sessions)
