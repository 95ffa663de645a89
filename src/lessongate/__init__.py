"""
LessonGate - content quality and lesson validation for AI lesson generation.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config
from .pipeline import ContentRejected, LessonDraft, LessonPipeline

__all__ = ["__version__", "Config", "ContentRejected", "LessonDraft", "LessonPipeline"]
