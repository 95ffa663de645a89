"""
TTL cache for page analyses keyed by URL and structural fingerprint.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import structlog

from lessongate.analysis.engine import AnalysisResult
from lessongate.observability import increment

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]


@dataclass(slots=True, frozen=True)
class CacheEntry:
    result: AnalysisResult
    fingerprint: str
    stored_at: float


class AnalysisCache:
    """
    Holds the latest analysis per URL.

    An entry is served only while it is younger than ``ttl_seconds`` and its
    fingerprint matches the one the caller computed for the current DOM.
    """

    def __init__(self, ttl_seconds: float = 300.0, clock: Clock = time.monotonic) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def get(self, url: str, fingerprint: str) -> Optional[AnalysisResult]:
        entry = self._entries.get(url)
        if entry is None:
            return self._miss()
        if self._clock() - entry.stored_at >= self.ttl_seconds:
            del self._entries[url]
            return self._miss()
        if entry.fingerprint != fingerprint:
            return self._miss()
        self._hits += 1
        increment("analysis_cache", labels={"result": "hit"})
        return entry.result

    def put(self, url: str, fingerprint: str, result: AnalysisResult) -> None:
        self._entries[url] = CacheEntry(result=result, fingerprint=fingerprint, stored_at=self._clock())

    def invalidate(self, url: Optional[str] = None) -> None:
        if url is None:
            self._entries.clear()
        else:
            self._entries.pop(url, None)

    def cleanup(self) -> int:
        """Drop expired entries, returning how many were removed."""
        now = self._clock()
        expired = [url for url, entry in self._entries.items() if now - entry.stored_at >= self.ttl_seconds]
        for url in expired:
            del self._entries[url]
        if expired:
            logger.debug("Expired analyses evicted", count=len(expired))
        return len(expired)

    def stats(self) -> Dict[str, int]:
        return {"entries": len(self._entries), "hits": self._hits, "misses": self._misses}

    def __len__(self) -> int:
        return len(self._entries)

    def _miss(self) -> None:
        self._misses += 1
        increment("analysis_cache", labels={"result": "miss"})
        return None


