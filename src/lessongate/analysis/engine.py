"""
Page-level content analysis and the extraction suitability gate.

``ContentAnalysisEngine.analyze`` reads a page once and summarises it as an
``AnalysisResult``. ``is_suitable`` is a hard AND over independent checks;
when it fails, ``unsuitability_reason`` names the first failing check in a
fixed priority order so that UI messaging is deterministic.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional
from urllib.parse import urlparse

import structlog
from selectolax.parser import HTMLParser

from lessongate.analysis.language import LanguageDetector
from lessongate.analysis.page import MAIN_CONTENT_SELECTOR
from lessongate.config.config import AnalysisConfig
from lessongate.observability import increment, observe
from lessongate.protocols import EDUCATIONAL_CONTENT_TYPES, EXCLUDED_CONTENT_TYPES, ContentType, Page

logger = structlog.get_logger(__name__)

NON_CONTENT_TAGS = ["script", "style", "nav", "header", "footer", "aside"]

EDUCATIONAL_DOMAINS = (
    "wikipedia.org",
    "britannica.com",
    "khanacademy.org",
    "coursera.org",
    "edx.org",
    "mit.edu",
    "stanford.edu",
    "harvard.edu",
    "bbc.com/news",
    "cnn.com",
    "reuters.com",
    "npr.org",
    "medium.com",
    "dev.to",
    "stackoverflow.com",
    "github.com",
    "mozilla.org",
    "w3schools.com",
)

SOCIAL_DOMAINS = (
    "twitter.com",
    "facebook.com",
    "instagram.com",
    "linkedin.com",
    "reddit.com",
    "tiktok.com",
    "snapchat.com",
    "pinterest.com",
)

URL_TYPE_PATTERNS = (
    (("/blog/", "/article/", "/post/"), ContentType.BLOG),
    (("/news/", "/story/", "/breaking/"), ContentType.NEWS),
    (("/tutorial/", "/guide/", "/how-to/", "/learn/"), ContentType.TUTORIAL),
    (("/wiki/", "/encyclopedia/"), ContentType.ENCYCLOPEDIA),
    (("/product/", "/shop/", "/buy/", "/cart/"), ContentType.PRODUCT),
)

JSON_LD_TYPES = {
    "Article": ContentType.ARTICLE,
    "NewsArticle": ContentType.ARTICLE,
    "BlogPosting": ContentType.BLOG,
    "Product": ContentType.PRODUCT,
}

AD_SELECTORS = (
    '[class*="ad"]',
    '[id*="ad"]',
    '[class*="advertisement"]',
    '[class*="banner"]',
    '[class*="sponsor"]',
    ".google-ads",
    'iframe[src*="doubleclick"]',
    'iframe[src*="googlesyndication"]',
)

SOCIAL_FEED_SELECTORS = (
    '[class*="feed"]',
    '[class*="timeline"]',
    '[class*="stream"]',
    '[class*="social"]',
    '[class*="tweet"]',
    '[class*="post-list"]',
)

COMMENT_SELECTORS = (
    '[class*="comment"]',
    '[id*="comment"]',
    '[class*="discussion"]',
    ".disqus",
    "#disqus_thread",
    '[class*="reply"]',
)

ECOMMERCE_SELECTORS = (
    '[class*="price"]',
    '[class*="cart"]',
    '[class*="buy"]',
    '[class*="product"]',
    '[class*="shop"]',
    'button[class*="add-to-cart"]',
)

EDUCATIONAL_KEYWORDS = (
    "learn",
    "education",
    "tutorial",
    "guide",
    "how to",
    "explanation",
    "research",
    "study",
    "analysis",
    "academic",
    "scientific",
)


class SuitabilityCheck(Enum):
    """Suitability checks, declared in reporting priority order."""

    WORD_COUNT = "word_count"
    LANGUAGE = "language"
    EDUCATIONAL = "educational"
    CONTENT_TYPE = "content_type"
    SOCIAL_CONTENT = "social_content"
    ADVERTISING = "advertising"
    QUALITY = "quality"


SUITABILITY_MESSAGES = {
    SuitabilityCheck.WORD_COUNT: "Not enough text on this page to build a lesson.",
    SuitabilityCheck.LANGUAGE: "The page language is not supported or could not be detected reliably.",
    SuitabilityCheck.EDUCATIONAL: "This page does not look like educational content.",
    SuitabilityCheck.CONTENT_TYPE: "Product, social, navigation and media pages are not supported.",
    SuitabilityCheck.SOCIAL_CONTENT: "The page is dominated by social feeds or comment threads.",
    SuitabilityCheck.ADVERTISING: "The page contains too much advertising.",
    SuitabilityCheck.QUALITY: "The page content quality is too low.",
}


@dataclass(slots=True, frozen=True)
class AnalysisResult:
    word_count: int
    content_type: ContentType
    language: str
    language_confidence: float
    quality_score: float
    has_main_content: bool
    is_educational: bool
    advertising_ratio: float
    has_social_media_feeds: bool
    has_comment_sections: bool

    def __post_init__(self) -> None:
        for name in ("language_confidence", "quality_score", "advertising_ratio"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0.0 and 1.0, got {value}")
        if self.word_count < 0:
            raise ValueError("word_count must be non-negative")

    @classmethod
    def empty(cls) -> AnalysisResult:
        """Result used when a page could not be analyzed at all."""
        return cls(
            word_count=0,
            content_type=ContentType.OTHER,
            language="unknown",
            language_confidence=0.0,
            quality_score=0.0,
            has_main_content=False,
            is_educational=False,
            advertising_ratio=1.0,
            has_social_media_feeds=False,
            has_comment_sections=False,
        )


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _count(tree: HTMLParser, selector: str) -> int:
    return len(tree.css(selector))


def _any_match(tree: HTMLParser, selectors: Iterable[str], more_than: int = 0) -> bool:
    return any(_count(tree, selector) > more_than for selector in selectors)


class ContentAnalysisEngine:
    """Scores a page for topical suitability before extraction is offered."""

    def __init__(self, config: Optional[AnalysisConfig] = None, detector: Optional[LanguageDetector] = None) -> None:
        self.config = config or AnalysisConfig()
        self.detector = detector or LanguageDetector(self.config.supported_languages)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze(self, page: Page) -> AnalysisResult:
        started = time.perf_counter()
        tree = page.tree

        text = self.extract_text(tree)
        word_count = len(text.split())
        content_type = self.detect_content_type(page)
        detection = self.detector.detect(text, page.lang)
        has_main_content = self.has_main_content(tree)
        advertising_ratio = self.advertising_ratio(tree)
        quality = self.quality_score(word_count, has_main_content, content_type, advertising_ratio)

        result = AnalysisResult(
            word_count=word_count,
            content_type=content_type,
            language=detection.language,
            language_confidence=detection.confidence,
            quality_score=quality,
            has_main_content=has_main_content,
            is_educational=self.is_educational(content_type, page),
            advertising_ratio=advertising_ratio,
            has_social_media_feeds=_any_match(tree, SOCIAL_FEED_SELECTORS),
            has_comment_sections=_any_match(tree, COMMENT_SELECTORS),
        )

        observe("analysis_duration_seconds", time.perf_counter() - started)
        increment("page_analyses", labels={"outcome": "suitable" if self.is_suitable(result) else "unsuitable"})
        logger.debug(
            "Page analyzed",
            url=page.url,
            word_count=word_count,
            content_type=content_type.value,
            language=detection.language,
            quality=round(quality, 3),
        )
        return result

    def extract_text(self, tree: HTMLParser) -> str:
        """Main-content text with page chrome and scripts removed."""
        clone = HTMLParser(tree.html or "")
        clone.strip_tags(NON_CONTENT_TAGS)
        container = clone.css_first(MAIN_CONTENT_SELECTOR) or clone.body
        if container is None:
            return ""
        return container.text(separator=" ", strip=True)

    def detect_content_type(self, page: Page) -> ContentType:
        tree = page.tree
        parsed = urlparse(page.url)
        path = parsed.path.lower()
        domain = (parsed.hostname or "").lower()

        for patterns, content_type in URL_TYPE_PATTERNS:
            if any(pattern in path for pattern in patterns):
                return content_type
            if content_type is ContentType.ENCYCLOPEDIA and "wikipedia" in domain:
                return content_type

        og_type = tree.css_first('meta[property="og:type"]')
        if og_type is not None and (og_type.attributes.get("content") or "").lower() == "article":
            return ContentType.ARTICLE

        json_ld_type = self._json_ld_type(tree)
        if json_ld_type is not None:
            return json_ld_type

        if self._has_article_structure(tree):
            return ContentType.ARTICLE

        host_and_path = f"{domain}{parsed.path}"
        if any(edu in host_and_path for edu in EDUCATIONAL_DOMAINS):
            return ContentType.ARTICLE

        if any(social in domain for social in SOCIAL_DOMAINS):
            return ContentType.SOCIAL

        if _any_match(tree, ECOMMERCE_SELECTORS, more_than=2):
            return ContentType.ECOMMERCE

        return ContentType.OTHER

    def has_main_content(self, tree: HTMLParser) -> bool:
        container = tree.css_first("main, article, .content, .post")
        return container is not None and _count(tree, "h1, h2, h3, h4, h5, h6") >= 2 and _count(tree, "p") >= 3

    def advertising_ratio(self, tree: HTMLParser) -> float:
        ad_elements = sum(_count(tree, selector) for selector in AD_SELECTORS)
        total = _count(tree, "div, section, article")
        if total == 0:
            return 0.0
        return _clamp(ad_elements / total)

    def is_educational(self, content_type: ContentType, page: Page) -> bool:
        if content_type in EDUCATIONAL_CONTENT_TYPES:
            return True
        description_node = page.tree.css_first('meta[name="description"]')
        description = (description_node.attributes.get("content") or "") if description_node else ""
        haystacks = (page.title.lower(), description.lower())
        return any(keyword in haystack for keyword in EDUCATIONAL_KEYWORDS for haystack in haystacks)

    @staticmethod
    def quality_score(
        word_count: int, has_main_content: bool, content_type: ContentType, advertising_ratio: float
    ) -> float:
        word_score = min(1.0, word_count / 500)
        structure_score = 0.8 if has_main_content else 0.3
        type_score = 0.9 if content_type in EDUCATIONAL_CONTENT_TYPES else 0.3
        ad_score = 1.0 - min(1.0, advertising_ratio * 2)
        return _clamp(0.3 * word_score + 0.3 * structure_score + 0.3 * type_score + 0.1 * ad_score)

    # ------------------------------------------------------------------
    # Suitability gate
    # ------------------------------------------------------------------

    def suitability_failures(self, result: AnalysisResult) -> List[SuitabilityCheck]:
        """Every failing check, in reporting priority order."""
        cfg = self.config
        failed = {
            SuitabilityCheck.WORD_COUNT: result.word_count < cfg.min_word_count,
            SuitabilityCheck.LANGUAGE: (
                result.language not in cfg.supported_languages
                or result.language_confidence < cfg.min_language_confidence
            ),
            SuitabilityCheck.EDUCATIONAL: not result.is_educational,
            SuitabilityCheck.CONTENT_TYPE: result.content_type in EXCLUDED_CONTENT_TYPES,
            SuitabilityCheck.SOCIAL_CONTENT: result.has_social_media_feeds or result.has_comment_sections,
            SuitabilityCheck.ADVERTISING: result.advertising_ratio > cfg.max_advertising_ratio,
            SuitabilityCheck.QUALITY: result.quality_score < cfg.min_quality_score,
        }
        return [check for check in SuitabilityCheck if failed[check]]

    def is_suitable(self, result: AnalysisResult) -> bool:
        return not self.suitability_failures(result)

    def unsuitability_reason(self, result: AnalysisResult) -> Optional[SuitabilityCheck]:
        failures = self.suitability_failures(result)
        return failures[0] if failures else None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _json_ld_type(tree: HTMLParser) -> Optional[ContentType]:
        node = tree.css_first('script[type="application/ld+json"]')
        if node is None:
            return None
        try:
            data: Any = json.loads(node.text())
        except json.JSONDecodeError:
            return None
        if isinstance(data, list):
            data = data[0] if data else {}
        if not isinstance(data, dict):
            return None
        declared = data.get("@type")
        if isinstance(declared, list):
            declared = declared[0] if declared else None
        if not isinstance(declared, str):
            return None
        return JSON_LD_TYPES.get(declared)

    @staticmethod
    def _has_article_structure(tree: HTMLParser) -> bool:
        return tree.css_first("h1") is not None and _count(tree, "p") >= 3 and _count(tree, "h2, h3") >= 1
