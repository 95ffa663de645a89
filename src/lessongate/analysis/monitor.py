"""
Keeps a page's extraction decision current as the page changes.

The monitor subscribes to mutation batches from the host page, counts the
structurally significant ones and, once a threshold is reached, schedules a
single debounced re-analysis. Direct calls to :meth:`PageMonitor.evaluate`
are throttled and served from the analysis cache where possible.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

import structlog

from lessongate.analysis.cache import AnalysisCache, Clock
from lessongate.analysis.engine import SUITABILITY_MESSAGES, AnalysisResult, ContentAnalysisEngine, SuitabilityCheck
from lessongate.analysis.page import structural_fingerprint
from lessongate.config.config import AnalysisConfig
from lessongate.protocols import MutationRecord, Page

logger = structlog.get_logger(__name__)

SIGNIFICANT_ATTRIBUTES = frozenset({"class", "id", "style"})
SUITABLE_REASON = "Content is suitable for lesson generation."
FAILED_REASON = "Page analysis failed."


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...


class AsyncioScheduler:
    """Schedules callbacks on the running event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        return asyncio.get_running_loop().call_later(delay, callback)


@dataclass(slots=True, frozen=True)
class VisibilityDecision:
    should_show: bool
    reason: str
    analysis: AnalysisResult
    timestamp: float
    failed_check: Optional[SuitabilityCheck] = None


def is_significant(mutation: MutationRecord) -> bool:
    if mutation.type == "childList":
        return mutation.added_nodes > 0 or mutation.removed_nodes > 0
    if mutation.type == "attributes":
        return mutation.attribute_name in SIGNIFICANT_ATTRIBUTES
    return False


class PageMonitor:
    """Throttled, cached, mutation-aware wrapper around the analysis engine."""

    def __init__(
        self,
        page: Page,
        engine: ContentAnalysisEngine,
        *,
        config: Optional[AnalysisConfig] = None,
        cache: Optional[AnalysisCache] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Clock = time.monotonic,
        on_decision: Optional[Callable[[VisibilityDecision], None]] = None,
    ) -> None:
        self.page = page
        self.engine = engine
        self.config = config or engine.config
        self.cache = cache or AnalysisCache(self.config.cache_ttl_seconds, clock=clock)
        self.scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._clock = clock
        self._on_decision = on_decision

        self._mutation_count = 0
        self._pending: Optional[Cancellable] = None
        self._last_decision: Optional[VisibilityDecision] = None
        self._last_analysis_at: Optional[float] = None
        self._running = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._running:
            return
        self.page.subscribe(self._on_mutations)
        self._running = True
        logger.debug("Page monitor started", url=self.page.url)

    def stop(self) -> None:
        """Detach from the page; a pending re-analysis never fires."""
        if not self._running:
            return
        self.page.unsubscribe(self._on_mutations)
        self._cancel_pending()
        self._mutation_count = 0
        self._running = False
        evicted = self.cache.cleanup()
        logger.debug("Page monitor stopped", url=self.page.url, evicted=evicted, **self.cache.stats())

    @property
    def has_pending_analysis(self) -> bool:
        return self._pending is not None

    @property
    def mutation_count(self) -> int:
        return self._mutation_count

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def evaluate(self) -> VisibilityDecision:
        now = self._clock()
        if (
            self._last_decision is not None
            and self._last_analysis_at is not None
            and (now - self._last_analysis_at) * 1000 < self.config.analysis_throttle_ms
        ):
            return self._last_decision

        fingerprint = structural_fingerprint(self.page.tree)
        result = self.cache.get(self.page.url, fingerprint)
        if result is not None:
            decision = self._decide(result, now)
        else:
            decision = self._analyze(fingerprint, now)

        self._last_decision = decision
        self._last_analysis_at = now
        return decision

    def force_analysis(self) -> VisibilityDecision:
        """Re-analyze now, ignoring the throttle window and the cache."""
        self.cache.invalidate(self.page.url)
        self._last_decision = None
        self._last_analysis_at = None
        return self.evaluate()

    def _analyze(self, fingerprint: str, now: float) -> VisibilityDecision:
        try:
            result = self.engine.analyze(self.page)
        except Exception as exc:
            logger.error("Page analysis failed", url=self.page.url, error=str(exc))
            return VisibilityDecision(
                should_show=False,
                reason=FAILED_REASON,
                analysis=AnalysisResult.empty(),
                timestamp=now,
            )
        self.cache.put(self.page.url, fingerprint, result)
        return self._decide(result, now)

    def _decide(self, result: AnalysisResult, now: float) -> VisibilityDecision:
        failed = self.engine.unsuitability_reason(result)
        if failed is None:
            return VisibilityDecision(should_show=True, reason=SUITABLE_REASON, analysis=result, timestamp=now)
        return VisibilityDecision(
            should_show=False,
            reason=SUITABILITY_MESSAGES[failed],
            analysis=result,
            timestamp=now,
            failed_check=failed,
        )

    # ------------------------------------------------------------------
    # Mutation handling
    # ------------------------------------------------------------------

    def _on_mutations(self, mutations: List[MutationRecord]) -> None:
        self._mutation_count += sum(1 for mutation in mutations if is_significant(mutation))
        if self._mutation_count < self.config.dom_change_threshold:
            return
        logger.debug("Significant page changes detected", url=self.page.url, mutations=self._mutation_count)
        self._mutation_count = 0
        self.cache.invalidate(self.page.url)
        self._schedule_analysis()

    def _schedule_analysis(self) -> None:
        self._cancel_pending()
        self._pending = self.scheduler.call_later(self.config.debounce_ms / 1000, self._run_scheduled)

    def _run_scheduled(self) -> None:
        self._pending = None
        if not self._running:
            return
        decision = self.force_analysis()
        if self._on_decision is not None:
            self._on_decision(decision)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
