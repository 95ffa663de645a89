"""
Validation of extracted text before it is sent to lesson generation.

The engine computes four independent metric groups (length, language,
quality and structure). Each group contributes zero or more issues; issues are
always collected exhaustively so the caller can show the complete picture.
The final score starts at 100, loses a fixed amount per issue and, when no
error-severity issue exists, is shaped by floored multiplicative factors.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

import structlog

from lessongate.config.config import ValidationConfig
from lessongate.observability import increment, observe
from lessongate.protocols import (
    EDUCATIONAL_CONTENT_TYPES,
    ContentMetadata,
    IssueType,
    Severity,
    ValidationIssue,
    ValidationResult,
)

logger = structlog.get_logger(__name__)

ERROR_PENALTY = 30
WARNING_PENALTY = 15
LENGTH_BONUS = 10

AD_KEYWORDS = (
    "advertisement",
    "sponsored",
    "buy now",
    "click here",
    "subscribe",
    "sale",
    "discount",
    "offer",
    "deal",
    "promotion",
    "affiliate",
    "buy",
    "purchase",
    "order",
    "shop",
    "cart",
    "checkout",
)

EDUCATIONAL_URL_MARKERS = (
    "wikipedia",
    "edu",
    "bbc",
    "cnn",
    "reuters",
    "guardian",
    "medium",
    "blog",
    "news",
    "article",
    "tutorial",
)

EDUCATIONAL_KEYWORDS = (
    "learn",
    "understand",
    "explain",
    "research",
    "study",
    "analysis",
    "history",
    "science",
    "culture",
    "education",
    "knowledge",
)

SOCIAL_PATTERNS = (
    re.compile(r"(?<![\w.])@\w+"),
    re.compile(r"(?<![\w&])#\w+"),
    re.compile(r"\d+\s*(likes?|shares?|comments?|retweets?)\b"),
    re.compile(r"posted\s+\d+\s+(minutes?|hours?|days?)\s+ago"),
    re.compile(r"\b(reply|retweet|share|like this)\b", re.IGNORECASE),
)

NAVIGATION_PATTERNS = (
    re.compile(r"^(home|about|contact|menu|navigation|sitemap)$", re.IGNORECASE),
    re.compile(r"^(next|previous|back|forward|skip)$", re.IGNORECASE),
    re.compile(r"^\s*(›|»|>|→)\s*$"),
    re.compile(r"^(page\s+\d+|more|load more|see all)$", re.IGNORECASE),
)

HEADING_PATTERN = re.compile(r"^#+\s|<h[1-6]>", re.MULTILINE)
LIST_PATTERN = re.compile(r"^\s*[-*+]\s|^\s*\d+\.\s", re.MULTILINE)
EMPHASIS_PATTERN = re.compile(r"[\"'].*[\"']|_.*_|\*.*\*")

GENERIC_RECOVERY_OPTIONS = (
    "Try manually selecting text from the main article area",
    "Copy and paste content directly into the lesson generator",
    "Look for content on educational or news websites",
)


@dataclass(slots=True, frozen=True)
class ContentQualityMetrics:
    word_count: int
    sentence_count: int
    paragraph_count: int
    readability_score: float
    advertising_ratio: float
    structure_score: float
    language_confidence: float
    educational_value: float


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def readability_score(text: str) -> float:
    """Penalise average sentence length outside the comfortable 10-25 word band."""
    words = len(text.split())
    sentences = len(re.split(r"[.!?]+", text))
    average = words / sentences
    score = 100.0
    if average > 25:
        score -= (average - 25) * 2
    elif average < 10:
        score -= (10 - average) * 3
    return _clamp(score)


def advertising_ratio(text: str) -> float:
    words = text.lower().split()
    if not words:
        return 0.0
    hits = sum(1 for word in words for keyword in AD_KEYWORDS if keyword in word)
    return min(1.0, hits / len(words))


def structure_score(text: str) -> float:
    score = 0.0
    if HEADING_PATTERN.search(text):
        score += 30
    if LIST_PATTERN.search(text):
        score += 20
    if len(re.split(r"\n\s*\n", text)) > 2:
        score += 30
    if EMPHASIS_PATTERN.search(text):
        score += 20
    return min(100.0, score)


def educational_value(text: str, metadata: Optional[ContentMetadata]) -> float:
    score = 50.0
    if metadata is not None:
        if metadata.content_type in EDUCATIONAL_CONTENT_TYPES:
            score += 30
        if metadata.url and any(marker in metadata.url for marker in EDUCATIONAL_URL_MARKERS):
            score += 20
    words = text.lower().split()
    educational_words = sum(1 for word in words if any(keyword in word for keyword in EDUCATIONAL_KEYWORDS))
    if educational_words > len(words) * 0.02:
        score += 20
    return min(100.0, score)


def looks_like_social_media(text: str) -> bool:
    return any(pattern.search(text) for pattern in SOCIAL_PATTERNS)


def looks_like_navigation(text: str) -> bool:
    lines = [line.strip() for line in text.split("\n")]
    nav_lines = sum(1 for line in lines if any(pattern.search(line) for pattern in NAVIGATION_PATTERNS))
    return nav_lines > len(lines) * 0.5


def calculate_quality_metrics(text: str, metadata: Optional[ContentMetadata] = None) -> ContentQualityMetrics:
    return ContentQualityMetrics(
        word_count=len(text.split()),
        sentence_count=sum(1 for s in re.split(r"[.!?]+", text) if s.strip()),
        paragraph_count=sum(1 for p in re.split(r"\n\s*\n", text) if p.strip()),
        readability_score=readability_score(text),
        advertising_ratio=advertising_ratio(text),
        structure_score=structure_score(text),
        language_confidence=metadata.language_confidence if metadata is not None else 0.0,
        educational_value=educational_value(text, metadata),
    )


class ContentValidationEngine:
    """Scores extracted text against minimum-quality rules."""

    def __init__(self, config: Optional[ValidationConfig] = None) -> None:
        self.config = config or ValidationConfig()

    async def validate(self, text: str, metadata: Optional[ContentMetadata] = None) -> ValidationResult:
        return self.validate_sync(text, metadata)

    def validate_sync(self, text: str, metadata: Optional[ContentMetadata] = None) -> ValidationResult:
        issues: List[ValidationIssue] = []
        warnings: List[str] = []
        recommendations: List[str] = []

        metrics = calculate_quality_metrics(text, metadata)

        self._check_length(text, metrics, issues, recommendations)
        self._check_language(metadata, issues)
        self._check_quality(metrics, issues, warnings, recommendations)
        self._check_structure(text, metrics, issues, warnings)

        score = self.score(metrics, issues)
        is_valid = not any(issue.is_error for issue in issues)
        result = ValidationResult(
            is_valid=is_valid,
            meets_minimum_quality=score >= self.config.min_quality_score,
            issues=tuple(issues),
            warnings=tuple(warnings),
            recommendations=tuple(recommendations),
            score=score,
        )

        increment("content_validations", labels={"outcome": "proceed" if result.can_proceed else "rejected"})
        observe("validation_score", score, labels={"component": "content"})
        logger.info(
            "Content validated",
            word_count=metrics.word_count,
            score=round(score, 1),
            is_valid=is_valid,
            issues=[issue.type.value for issue in issues],
        )
        return result

    # ------------------------------------------------------------------
    # Metric groups
    # ------------------------------------------------------------------

    def _check_length(
        self,
        text: str,
        metrics: ContentQualityMetrics,
        issues: List[ValidationIssue],
        recommendations: List[str],
    ) -> None:
        minimum = self.config.min_word_count
        if not text.strip():
            issues.append(
                ValidationIssue(
                    type=IssueType.EXTRACTION_FAILED,
                    severity=Severity.ERROR,
                    message="No text could be extracted from this page.",
                    suggested_action="Select the article text manually or paste it into the lesson generator.",
                )
            )
        if metrics.word_count < minimum:
            issues.append(
                ValidationIssue(
                    type=IssueType.INSUFFICIENT_CONTENT,
                    severity=Severity.ERROR,
                    message=(
                        f"Content is too short ({metrics.word_count} words). "
                        f"Minimum {minimum} words required for quality lesson generation."
                    ),
                    suggested_action="Try selecting a longer article or manually select additional text from the page.",
                )
            )
            recommendations.append("Look for longer articles, blog posts, or news stories")
            recommendations.append("Consider combining multiple short sections of content")
        elif metrics.word_count < minimum * 1.5:
            recommendations.append(
                "Content is on the shorter side. Consider finding additional related content for a "
                "more comprehensive lesson."
            )

    def _check_language(self, metadata: Optional[ContentMetadata], issues: List[ValidationIssue]) -> None:
        supported = self.config.supported_languages
        if metadata is None or not metadata.language:
            issues.append(
                ValidationIssue(
                    type=IssueType.UNSUPPORTED_LANGUAGE,
                    severity=Severity.ERROR,
                    message="Could not detect the language of this content.",
                    suggested_action="Try content in a clearly supported language (English, Spanish, French, German, etc.).",
                )
            )
            return

        if metadata.language not in supported:
            issues.append(
                ValidationIssue(
                    type=IssueType.UNSUPPORTED_LANGUAGE,
                    severity=Severity.ERROR,
                    message=f'Language "{metadata.language}" is not currently supported for lesson generation.',
                    suggested_action=f"Try content in one of these supported languages: {', '.join(supported)}.",
                )
            )
            return

        if metadata.language_confidence < self.config.min_language_confidence:
            issues.append(
                ValidationIssue(
                    type=IssueType.UNSUPPORTED_LANGUAGE,
                    severity=Severity.WARNING,
                    message="Language detection confidence is too low. The content may be mixed-language or unclear.",
                    suggested_action="Try content that is clearly written in a single supported language.",
                )
            )

    def _check_quality(
        self,
        metrics: ContentQualityMetrics,
        issues: List[ValidationIssue],
        warnings: List[str],
        recommendations: List[str],
    ) -> None:
        if metrics.advertising_ratio > self.config.max_advertising_ratio:
            issues.append(
                ValidationIssue(
                    type=IssueType.TOO_MUCH_ADVERTISING,
                    severity=Severity.ERROR,
                    message="This page contains too much advertising or promotional content for quality lesson generation.",
                    suggested_action="Try finding content from educational or news sources with less advertising.",
                )
            )

        if metrics.readability_score < 30:
            issues.append(
                ValidationIssue(
                    type=IssueType.LOW_READABILITY,
                    severity=Severity.WARNING,
                    message="Content appears to have very low readability, which may not be suitable for language learning.",
                    suggested_action="Consider finding content with clearer, more structured writing.",
                )
            )
        elif metrics.readability_score < 50:
            warnings.append("Content readability is below average. Consider finding clearer, more structured content.")

        if metrics.structure_score < 40:
            warnings.append(
                "Content lacks clear structure. Look for articles with headings, paragraphs, and organized sections."
            )
            recommendations.append("Educational articles, news stories, and blog posts typically have better structure")

        if metrics.educational_value < 50:
            if self.config.strict_mode:
                issues.append(
                    ValidationIssue(
                        type=IssueType.POOR_QUALITY,
                        severity=Severity.WARNING,
                        message="Content may have limited educational value for language learning.",
                        suggested_action="Look for informative articles, tutorials, or educational content.",
                    )
                )
            else:
                warnings.append("Content may have limited educational value for language learning.")
            recommendations.append("Look for informative articles, tutorials, or educational content")

    def _check_structure(
        self,
        text: str,
        metrics: ContentQualityMetrics,
        issues: List[ValidationIssue],
        warnings: List[str],
    ) -> None:
        if metrics.paragraph_count < 1 and metrics.word_count < 50:
            issues.append(
                ValidationIssue(
                    type=IssueType.NO_MAIN_CONTENT,
                    severity=Severity.ERROR,
                    message="Content appears to lack substantial paragraphs or main content.",
                    suggested_action="Try extracting from the main article area or select content manually.",
                )
            )

        if metrics.sentence_count < 3 and metrics.word_count > 100:
            warnings.append("Content has very few sentences. Consider finding more substantial content.")

        if looks_like_social_media(text):
            issues.append(
                ValidationIssue(
                    type=IssueType.SOCIAL_MEDIA_CONTENT,
                    severity=Severity.ERROR,
                    message="Content appears to be from social media feeds or comments, which are not suitable for lessons.",
                    suggested_action="Try extracting from articles, blogs, or news content instead of social media.",
                )
            )

        if looks_like_navigation(text):
            issues.append(
                ValidationIssue(
                    type=IssueType.NAVIGATION_ONLY,
                    severity=Severity.ERROR,
                    message="Content appears to be primarily navigation links or menu items.",
                    suggested_action="Try selecting the main article content instead of navigation areas.",
                )
            )

    # ------------------------------------------------------------------
    # Scoring and messaging
    # ------------------------------------------------------------------

    def score(self, metrics: ContentQualityMetrics, issues: List[ValidationIssue]) -> float:
        errors = sum(1 for issue in issues if issue.is_error)
        warnings = len(issues) - errors
        score = 100.0 - ERROR_PENALTY * errors - WARNING_PENALTY * warnings

        if errors == 0:
            score *= (
                max(0.6, metrics.readability_score / 100)
                * max(0.7, metrics.structure_score / 100)
                * max(0.6, metrics.educational_value / 100)
                * max(0.8, metrics.language_confidence)
            )
            if metrics.word_count > self.config.min_word_count * 2:
                score += LENGTH_BONUS

        return _clamp(score)

    @staticmethod
    def error_message(issues: List[ValidationIssue]) -> str:
        errors = [issue for issue in issues if issue.is_error]
        if not errors:
            return ""
        if len(errors) == 1:
            return errors[0].message
        return "Multiple issues found: " + " ".join(issue.message for issue in errors)

    @staticmethod
    def recovery_suggestions(issues: List[ValidationIssue]) -> List[str]:
        suggestions: List[str] = []
        for action in [issue.suggested_action for issue in issues if issue.recoverable] + list(
            GENERIC_RECOVERY_OPTIONS
        ):
            if action not in suggestions:
                suggestions.append(action)
        return suggestions
