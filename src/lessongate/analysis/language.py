"""
Stop-word language identification.

A small, dependency-free heuristic: every supported language carries a list
of very frequent function words, and the language whose list is best covered
by the opening of the text wins. The result is a confidence in [0, 1] that is
good enough to gate pages on, not to label corpora with.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Sequence

import structlog

from lessongate.config.config import SUPPORTED_LANGUAGES

logger = structlog.get_logger(__name__)

SAMPLE_CHARS = 1000
DECLARED_LANGUAGE_CONFIDENCE = 0.8
DECLARED_OVERRIDE_BELOW = 0.5
BOOST_ABOVE = 0.4
BOOST = 0.2


@dataclass(slots=True, frozen=True)
class LanguageDetection:
    language: str
    confidence: float
    from_declared: bool = False

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("confidence must be between 0.0 and 1.0")


class LanguageDetector:
    """
    Scores each supported language by the fraction of its stop words present
    in the first ``SAMPLE_CHARS`` characters of case-folded text.

    Ties go to the language declared first, so the order of
    ``STOP_WORDS`` (and of ``supported_languages``) matters.
    """

    STOP_WORDS: Dict[str, List[str]] = {
        "en": ["the", "and", "that", "have", "for", "not", "with", "you", "this", "but", "is", "a", "of", "to", "in"],
        "es": ["que", "de", "no", "la", "el", "en", "un", "es", "se", "te", "y", "por", "con", "del", "los"],
        "fr": ["que", "de", "et", "le", "la", "les", "des", "un", "une", "du", "dans", "pour", "avec", "sur", "ce"],
        "de": ["der", "die", "und", "in", "den", "von", "zu", "das", "mit", "sich", "ist", "ein", "eine", "auf", "für"],
        "it": ["che", "di", "la", "il", "le", "da", "un", "per", "con", "del", "è", "una", "in", "sono", "alla"],
        "pt": ["que", "de", "não", "um", "da", "em", "do", "se", "na", "por", "é", "uma", "para", "com", "dos"],
        "nl": ["de", "het", "een", "en", "van", "ik", "te", "dat", "die", "in", "is", "niet", "op", "zijn", "voor"],
        "pl": ["i", "w", "nie", "na", "się", "z", "do", "jest", "to", "że", "jak", "co", "ale", "od", "przez"],
        "ru": ["и", "в", "не", "на", "что", "с", "он", "как", "это", "по", "но", "из", "к", "у", "для"],
        "ja": ["の", "に", "は", "を", "た", "が", "で", "て", "と", "し", "れ", "さ", "ある", "いる", "です"],
        "ko": ["이", "는", "을", "의", "에", "가", "하", "고", "다", "를", "은", "로", "있", "서", "한"],
        "zh": ["的", "了", "是", "在", "我", "有", "和", "就", "不", "人", "都", "一", "这", "中", "也"],
    }

    # Scripts written without spaces between words: match by substring.
    UNSEGMENTED = frozenset({"ja", "ko", "zh"})

    def __init__(self, supported_languages: Optional[Sequence[str]] = None) -> None:
        languages = list(supported_languages or SUPPORTED_LANGUAGES)
        unknown = [code for code in languages if code not in self.STOP_WORDS]
        if unknown:
            raise ValueError(f"No stop-word list for languages: {', '.join(unknown)}")
        self.supported_languages = languages
        self._patterns: Dict[str, List[Pattern[str]]] = {
            code: [re.compile(rf"\b{re.escape(word)}\b") for word in self.STOP_WORDS[code]]
            for code in languages
            if code not in self.UNSEGMENTED
        }

    def score(self, text: str) -> Dict[str, float]:
        """Raw per-language stop-word coverage of the text sample."""
        sample = text[:SAMPLE_CHARS].casefold()
        scores: Dict[str, float] = {}
        for code in self.supported_languages:
            words = self.STOP_WORDS[code]
            if code in self.UNSEGMENTED:
                hits = sum(1 for word in words if word in sample)
            else:
                hits = sum(1 for pattern in self._patterns[code] if pattern.search(sample))
            scores[code] = hits / len(words)
        return scores

    def detect(self, text: str, declared_lang: Optional[str] = None) -> LanguageDetection:
        scores = self.score(text)

        best_language = self.supported_languages[0]
        best_confidence = 0.0
        for code in self.supported_languages:
            if scores[code] > best_confidence:
                best_language = code
                best_confidence = scores[code]

        from_declared = False
        declared = (declared_lang or "")[:2].lower()
        if declared in self.supported_languages and best_confidence < DECLARED_OVERRIDE_BELOW:
            best_language = declared
            best_confidence = DECLARED_LANGUAGE_CONFIDENCE
            from_declared = True

        if best_confidence > BOOST_ABOVE:
            best_confidence = min(1.0, best_confidence + BOOST)

        logger.debug(
            "Language detected",
            language=best_language,
            confidence=round(best_confidence, 3),
            declared=declared_lang,
        )
        return LanguageDetection(language=best_language, confidence=best_confidence, from_declared=from_declared)

    def is_supported(self, language: Optional[str]) -> bool:
        return language is not None and language in self.supported_languages
