"""Tests for the mutation-aware page monitor."""

from unittest.mock import MagicMock

import pytest

from lessongate.analysis import ContentAnalysisEngine, HtmlPage, PageMonitor
from lessongate.analysis.monitor import FAILED_REASON, SUITABLE_REASON, is_significant
from lessongate.config import AnalysisConfig
from lessongate.protocols import MutationRecord

WIKI_URL = "https://en.wikipedia.org/wiki/Tea"

CHILD_ADDED = MutationRecord(type="childList", added_nodes=1)


@pytest.fixture
def page(sample_html):
    return HtmlPage(sample_html, url=WIKI_URL)


@pytest.fixture
def engine():
    return ContentAnalysisEngine(AnalysisConfig())


@pytest.fixture
def monitor(page, engine, manual_scheduler, fake_clock):
    decisions = []
    monitor = PageMonitor(
        page,
        engine,
        scheduler=manual_scheduler,
        clock=fake_clock,
        on_decision=decisions.append,
    )
    monitor.decisions = decisions
    return monitor


class TestSignificance:
    @pytest.mark.parametrize(
        "mutation, expected",
        [
            (MutationRecord(type="childList", added_nodes=2), True),
            (MutationRecord(type="childList", removed_nodes=1), True),
            (MutationRecord(type="childList"), False),
            (MutationRecord(type="attributes", attribute_name="class"), True),
            (MutationRecord(type="attributes", attribute_name="data-x"), False),
            (MutationRecord(type="characterData"), False),
        ],
    )
    def test_is_significant(self, mutation, expected):
        assert is_significant(mutation) is expected


class TestEvaluate:
    """Throttled and cached decisions."""

    def test_suitable_page_is_shown(self, monitor):
        decision = monitor.evaluate()

        assert decision.should_show
        assert decision.reason == SUITABLE_REASON
        assert decision.failed_check is None

    def test_evaluations_inside_throttle_window_reuse_decision(self, monitor, engine, fake_clock):
        first = monitor.evaluate()
        fake_clock.advance(0.5)

        assert monitor.evaluate() is first

    def test_cache_serves_after_throttle_window(self, page, manual_scheduler, fake_clock):
        engine = MagicMock(wraps=ContentAnalysisEngine(AnalysisConfig()))
        engine.config = AnalysisConfig()
        monitor = PageMonitor(page, engine, scheduler=manual_scheduler, clock=fake_clock)

        monitor.evaluate()
        fake_clock.advance(2)
        monitor.evaluate()

        assert engine.analyze.call_count == 1

    def test_force_analysis_bypasses_cache(self, page, manual_scheduler, fake_clock):
        engine = MagicMock(wraps=ContentAnalysisEngine(AnalysisConfig()))
        engine.config = AnalysisConfig()
        monitor = PageMonitor(page, engine, scheduler=manual_scheduler, clock=fake_clock)

        monitor.evaluate()
        monitor.force_analysis()

        assert engine.analyze.call_count == 2

    def test_analysis_failure_hides_button(self, page, manual_scheduler, fake_clock):
        engine = MagicMock()
        engine.config = AnalysisConfig()
        engine.analyze.side_effect = RuntimeError("boom")
        monitor = PageMonitor(page, engine, scheduler=manual_scheduler, clock=fake_clock)

        decision = monitor.evaluate()

        assert not decision.should_show
        assert decision.reason == FAILED_REASON
        assert decision.analysis.word_count == 0


class TestMutationHandling:
    """Debounced re-analysis after significant DOM changes."""

    def test_start_subscribes_once(self, monitor, page):
        monitor.start()
        monitor.start()

        assert page.subscriber_count == 1

    def test_below_threshold_schedules_nothing(self, monitor, page, manual_scheduler):
        monitor.start()
        page.notify([CHILD_ADDED] * 9)

        assert monitor.mutation_count == 9
        assert not monitor.has_pending_analysis
        assert manual_scheduler.pending == []

    def test_threshold_schedules_single_debounced_analysis(self, monitor, page, manual_scheduler):
        monitor.start()
        page.notify([CHILD_ADDED] * 10)
        page.notify([CHILD_ADDED] * 10)

        assert monitor.has_pending_analysis
        assert monitor.mutation_count == 0
        assert len(manual_scheduler.pending) == 1

        assert manual_scheduler.advance(0.5) == 0
        assert manual_scheduler.advance(0.5) == 1
        assert len(monitor.decisions) == 1
        assert monitor.decisions[0].should_show
        assert not monitor.has_pending_analysis

    def test_stop_cancels_pending_analysis(self, monitor, page, manual_scheduler):
        monitor.start()
        page.notify([CHILD_ADDED] * 10)
        monitor.stop()

        assert page.subscriber_count == 0
        assert manual_scheduler.pending == []
        assert manual_scheduler.advance(5) == 0
        assert monitor.decisions == []

    def test_stop_evicts_expired_analyses(self, monitor, fake_clock):
        monitor.start()
        monitor.evaluate()

        monitor.stop()
        assert len(monitor.cache) == 1

        monitor.start()
        fake_clock.advance(300)
        monitor.stop()
        assert len(monitor.cache) == 0

    def test_replaced_page_is_reanalyzed(self, monitor, page, manual_scheduler):
        monitor.start()
        assert monitor.evaluate().should_show

        page.replace_html("<html><body><p>Gone.</p></body></html>", [CHILD_ADDED] * 10)
        manual_scheduler.advance(1)

        assert not monitor.decisions[-1].should_show
