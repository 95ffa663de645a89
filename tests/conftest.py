"""
Shared fixtures for LessonGate tests.

Clocks and schedulers are replaced with manual fakes so that TTL, throttle
and debounce behaviour can be driven deterministically.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, List

import pytest

from lessongate.config import Config
from lessongate.protocols import ContentMetadata, ContentType

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")


# ============================================================================
# Sample content
# ============================================================================

SENTENCES = (
    "Many people have a favourite cup that they use every morning with this drink.",
    "It is not always easy to grow, but you can find good leaves in many regions.",
    "The history of tea begins in ancient China, where farmers grew the plant for medicine.",
    "Over many centuries, traders carried dried leaves along mountain roads to distant cities.",
    "Scholars who study this period explain that tea slowly became part of daily life.",
    "In the seventeenth century, ships brought the drink to Europe, and it quickly became popular.",
    "Today researchers learn about culture by looking at how people prepare and drink tea.",
    "Some families serve it with milk and sugar, while others prefer it plain and hot.",
    "Understanding this story helps us see how science and travel changed the modern world.",
)


def article_paragraphs(min_words: int) -> List[str]:
    """Paragraphs of nine sentences each, cycling until ``min_words`` is reached."""
    paragraphs: List[str] = []
    current: List[str] = []
    total = 0
    index = 0
    while total < min_words:
        sentence = SENTENCES[index % len(SENTENCES)]
        current.append(sentence)
        total += len(sentence.split())
        index += 1
        if len(current) == len(SENTENCES):
            paragraphs.append(" ".join(current))
            current = []
    if current:
        paragraphs.append(" ".join(current))
    return paragraphs


def article_text(min_words: int = 600) -> str:
    """Well-structured English article text: heading, list, paragraphs and a quote."""
    paragraphs = article_paragraphs(min_words)
    parts = ["# The Story of Tea", paragraphs[0], "- Green tea\n- Black tea\n- White tea"]
    parts.extend(paragraphs[1:])
    parts.append('As one historian wrote, "tea is a quiet teacher."')
    return "\n\n".join(parts)


def article_html(min_words: int = 400, lang: str = "en") -> str:
    body = "\n".join(f"<p>{paragraph}</p>" for paragraph in article_paragraphs(min_words))
    return f"""<!DOCTYPE html>
<html lang="{lang}">
<head>
  <title>The Story of Tea</title>
  <meta name="description" content="Learn the history of tea">
</head>
<body>
  <nav><a href="/">Home</a> <a href="/about">About</a></nav>
  <article>
    <h1>The Story of Tea</h1>
    <h2>Origins</h2>
    {body}
    <h2>Tea today</h2>
    <p>Tea is still one of the most common drinks in the world.</p>
  </article>
  <footer>Footer text that is not part of the article.</footer>
</body>
</html>"""


@pytest.fixture
def sample_text() -> str:
    return article_text(600)


@pytest.fixture
def sample_html() -> str:
    return article_html()


@pytest.fixture
def english_article_metadata() -> ContentMetadata:
    return ContentMetadata(
        title="The Story of Tea",
        url="https://example.org/articles/tea",
        content_type=ContentType.ARTICLE,
        language="en",
        language_confidence=0.9,
    )


@pytest.fixture
def config() -> Config:
    return Config()


# ============================================================================
# Manual time and scheduling
# ============================================================================


class FakeClock:
    """Monotonic clock advanced by hand, in seconds."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDateClock:
    """UTC wall clock advanced by hand."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


class ManualHandle:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose callbacks only run when ``advance`` passes their due time."""

    def __init__(self) -> None:
        self.time = 0.0
        self.handles: List[ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self.time + delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> List[ManualHandle]:
        return [handle for handle in self.handles if not handle.cancelled]

    def advance(self, seconds: float) -> int:
        self.time += seconds
        due = [handle for handle in self.pending if handle.due <= self.time]
        for handle in due:
            self.handles.remove(handle)
            handle.callback()
        return len(due)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_date_clock() -> FakeDateClock:
    return FakeDateClock()


@pytest.fixture
def manual_scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def make_article_html() -> Callable[..., str]:
    return article_html


@pytest.fixture
def make_article_text() -> Callable[..., str]:
    return article_text
