"""Page analysis: language detection, suitability gate, cache and page monitor."""

from __future__ import annotations

from .cache import AnalysisCache
from .engine import AnalysisResult, ContentAnalysisEngine, SuitabilityCheck
from .language import LanguageDetection, LanguageDetector
from .monitor import AsyncioScheduler, PageMonitor, VisibilityDecision
from .page import HtmlPage, structural_fingerprint

__all__ = [
    "AnalysisCache",
    "AnalysisResult",
    "AsyncioScheduler",
    "ContentAnalysisEngine",
    "HtmlPage",
    "LanguageDetection",
    "LanguageDetector",
    "PageMonitor",
    "SuitabilityCheck",
    "VisibilityDecision",
    "structural_fingerprint",
]
