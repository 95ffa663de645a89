"""
Core contracts and value objects for the LessonGate pipeline.

The pipeline is a chain of gates:

- page analysis decides whether extraction should be offered at all,
- content validation decides whether extracted text may go to generation,
- section validators decide whether a generated section is accepted,
- error classification turns failures at the network boundary into typed data.

Everything in this module is shared by more than one of those stages. Page
and generator collaborators are described as protocols so hosts can plug in
their own DOM and AI backends.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, List, Optional, Protocol, Tuple, runtime_checkable

if TYPE_CHECKING:
    from selectolax.parser import HTMLParser

# ============================================================================
# Enums
# ============================================================================


class ContentType(Enum):
    """Page content classification."""

    ARTICLE = "article"
    BLOG = "blog"
    NEWS = "news"
    TUTORIAL = "tutorial"
    ENCYCLOPEDIA = "encyclopedia"
    PRODUCT = "product"
    SOCIAL = "social"
    NAVIGATION = "navigation"
    ECOMMERCE = "ecommerce"
    MULTIMEDIA = "multimedia"
    OTHER = "other"


EDUCATIONAL_CONTENT_TYPES = frozenset(
    {ContentType.ARTICLE, ContentType.TUTORIAL, ContentType.ENCYCLOPEDIA, ContentType.NEWS, ContentType.BLOG}
)

EXCLUDED_CONTENT_TYPES = frozenset(
    {
        ContentType.PRODUCT,
        ContentType.SOCIAL,
        ContentType.NAVIGATION,
        ContentType.ECOMMERCE,
        ContentType.MULTIMEDIA,
    }
)


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


class IssueType(Enum):
    """Closed set of content validation issue kinds."""

    INSUFFICIENT_CONTENT = "insufficient_content"
    POOR_QUALITY = "poor_quality"
    UNSUPPORTED_LANGUAGE = "unsupported_language"
    EXTRACTION_FAILED = "extraction_failed"
    NO_MAIN_CONTENT = "no_main_content"
    TOO_MUCH_ADVERTISING = "too_much_advertising"
    SOCIAL_MEDIA_CONTENT = "social_media_content"
    NAVIGATION_ONLY = "navigation_only"
    LOW_READABILITY = "low_readability"


class CEFRLevel(Enum):
    """Learner proficiency tiers used to calibrate generated sections."""

    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"

    @property
    def is_beginner(self) -> bool:
        return self in (CEFRLevel.A1, CEFRLevel.A2)

    @property
    def is_advanced(self) -> bool:
        return self in (CEFRLevel.B2, CEFRLevel.C1)


# ============================================================================
# Content validation value objects
# ============================================================================


@dataclass(slots=True, frozen=True)
class ContentMetadata:
    """What the extraction layer knows about a piece of text."""

    title: str = ""
    url: str = ""
    content_type: Optional[ContentType] = None
    language: Optional[str] = None
    language_confidence: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.language_confidence <= 1.0:
            raise ValueError("language_confidence must be between 0.0 and 1.0")


@dataclass(slots=True, frozen=True)
class ValidationIssue:
    type: IssueType
    severity: Severity
    message: str
    suggested_action: str
    recoverable: bool = True

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR


@dataclass(slots=True, frozen=True)
class ValidationResult:
    """Outcome of validating extracted content; recomputed, never persisted."""

    is_valid: bool
    meets_minimum_quality: bool
    issues: Tuple[ValidationIssue, ...]
    warnings: Tuple[str, ...]
    recommendations: Tuple[str, ...]
    score: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.score <= 100.0:
            raise ValueError("score must be between 0 and 100")
        if self.is_valid == any(issue.is_error for issue in self.issues):
            raise ValueError("is_valid must hold exactly when no issue has error severity")

    @property
    def errors(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.is_error]

    @property
    def can_proceed(self) -> bool:
        return self.is_valid and self.meets_minimum_quality


# ============================================================================
# Page collaborator
# ============================================================================


@dataclass(slots=True, frozen=True)
class MutationRecord:
    """A structural change reported by the host page."""

    type: str  # "childList" or "attributes"
    added_nodes: int = 0
    removed_nodes: int = 0
    attribute_name: Optional[str] = None


MutationListener = Callable[[List[MutationRecord]], None]


@runtime_checkable
class Page(Protocol):
    """Read-only view of a live page.

    The pipeline never mutates the page; it only reads the document tree and
    listens for mutation batches.
    """

    @property
    def url(self) -> str: ...

    @property
    def title(self) -> str: ...

    @property
    def lang(self) -> Optional[str]: ...

    @property
    def tree(self) -> HTMLParser: ...

    def subscribe(self, listener: MutationListener) -> None: ...

    def unsubscribe(self, listener: MutationListener) -> None: ...


# ============================================================================
# AI generation collaborator
# ============================================================================


@dataclass(slots=True, frozen=True)
class GenerationOptions:
    temperature: float = 0.7
    max_tokens: int = 8000
    top_p: float = 0.9
    system_prompt: Optional[str] = None


class TextGenerator(Protocol):
    """Produces section text from a prompt or raises ``GenerationError``."""

    async def generate(self, prompt: str, options: Optional[GenerationOptions] = None) -> str: ...


@dataclass(slots=True)
class ValidationContext:
    """Lesson-wide facts a section validator may check against."""

    vocabulary_words: List[str] = field(default_factory=list)
    source_title: str = ""
