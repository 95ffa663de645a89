"""Tests for per-lesson quality metrics."""

import pytest

from lessongate.sections import QualityMetricsTracker


@pytest.fixture
def tracker(fake_clock):
    return QualityMetricsTracker(clock=fake_clock)


class TestQualityMetricsTracker:
    def test_empty_tracker_scores_zero(self, tracker):
        assert tracker.overall_score() == 0
        assert tracker.finalize().sections == ()

    def test_overall_score_is_rounded_mean(self, tracker):
        tracker.record_section("warmup", 90, 1, 120.0, 0, 1)
        tracker.record_section("dialogue", 75, 2, 340.0, 0, 3)
        tracker.record_section("discussion", 80, 1, 90.0, 0, 0)

        assert tracker.overall_score() == 82
        assert tracker.total_regenerations() == 1
        assert tracker.get_section("dialogue").regenerated
        assert not tracker.get_section("warmup").regenerated

    def test_rerecording_replaces_section(self, tracker):
        tracker.record_section("warmup", 40, 1, 10.0, 2, 0)
        tracker.record_section("warmup", 95, 2, 10.0, 0, 0)

        assert [s.validation_score for s in tracker.sections()] == [95]

    def test_finalize_reports_elapsed_time(self, tracker, fake_clock):
        tracker.record_section("grammar", 100, 1, 50.0, 0, 0)
        fake_clock.advance(2.5)

        report = tracker.finalize()

        assert report.total_generation_time_ms == pytest.approx(2500)
        assert report.overall_score == 100
        assert tracker.finalize() is report

    def test_finalized_tracker_rejects_records_until_reset(self, tracker):
        tracker.record_section("grammar", 100, 1, 50.0, 0, 0)
        tracker.finalize()

        with pytest.raises(RuntimeError):
            tracker.record_section("pronunciation", 90, 1, 50.0, 0, 0)

        tracker.reset()
        assert not tracker.finalized
        assert tracker.sections() == []
        tracker.record_section("pronunciation", 90, 1, 50.0, 0, 0)
        assert tracker.overall_score() == 90

    def test_log_summary_finalizes(self, tracker):
        tracker.record_section("warmup", 70, 1, 10.0, 0, 0)

        tracker.log_summary()

        assert tracker.finalized
