"""Tests for window averages, sustained-breach checks and trends."""

import pytest

from flowscope.persistence.writer import save_sample
from flowscope.telemetry import TelemetryAnalyzer, Trend, averages, sustained, trend

MINUTE = 60_000


def _series(make_sample, base_ms, values, step_ms=1000, metric="cpu"):
    """Samples ending at base_ms, oldest first, one per step."""
    count = len(values)
    keyword = {"cpu": "cpu", "memory": "memory", "eventLoop": "lag"}[metric]
    return [
        make_sample(base_ms - (count - 1 - i) * step_ms, **{keyword: value})
        for i, value in enumerate(values)
    ]


class TestAverages:
    def test_empty_window_is_all_zero(self, base_ms):
        result = averages([], 10, now_ms=base_ms)
        assert (result.cpu, result.memory, result.event_loop) == (0.0, 0.0, 0.0)

    def test_means_over_window(self, make_sample, base_ms):
        samples = [make_sample(base_ms, cpu=10, memory=30, lag=2), make_sample(base_ms - 1000, cpu=30, memory=50, lag=4)]
        result = averages(samples, 10, now_ms=base_ms)
        assert result.cpu == pytest.approx(20.0)
        assert result.memory == pytest.approx(40.0)
        assert result.event_loop == pytest.approx(3.0)

    def test_samples_outside_window_ignored(self, make_sample, base_ms):
        samples = [make_sample(base_ms, cpu=10), make_sample(base_ms - 11 * MINUTE, cpu=90)]
        assert averages(samples, 10, now_ms=base_ms).cpu == pytest.approx(10.0)

    def test_value_by_metric_name(self, make_sample, base_ms):
        result = averages([make_sample(base_ms, lag=7)], 10, now_ms=base_ms)
        assert result.value("eventLoop") == pytest.approx(7.0)
        assert result.to_dict()["eventLoop"] == 7.0


class TestSustained:
    def test_nine_of_ten_is_sustained(self, make_sample, base_ms):
        samples = _series(make_sample, base_ms, [90] * 9 + [10])
        check = sustained(samples, "cpu", 75, MINUTE, now_ms=base_ms)
        assert check.sustained
        assert check.ratio == pytest.approx(0.9)
        assert (check.total, check.exceeding) == (10, 9)

    def test_eight_of_ten_is_not(self, make_sample, base_ms):
        samples = _series(make_sample, base_ms, [90] * 8 + [10, 10])
        assert not sustained(samples, "cpu", 75, MINUTE, now_ms=base_ms).sustained

    def test_single_spike_is_not(self, make_sample, base_ms):
        samples = _series(make_sample, base_ms, [10] * 9 + [99])
        assert not sustained(samples, "cpu", 75, MINUTE, now_ms=base_ms).sustained

    def test_equal_to_threshold_does_not_exceed(self, make_sample, base_ms):
        samples = _series(make_sample, base_ms, [75] * 5)
        assert sustained(samples, "cpu", 75, MINUTE, now_ms=base_ms).exceeding == 0

    def test_empty_window_is_not_sustained(self, base_ms):
        check = sustained([], "memory", 80, MINUTE, now_ms=base_ms)
        assert not check.sustained
        assert check.total == 0

    def test_window_is_inclusive(self, make_sample, base_ms):
        samples = [make_sample(base_ms - MINUTE, memory=95), make_sample(base_ms - MINUTE - 1, memory=5)]
        check = sustained(samples, "memory", 80, MINUTE, now_ms=base_ms)
        assert check.total == 1
        assert check.sustained

    def test_unknown_metric_rejected(self, base_ms):
        with pytest.raises(ValueError):
            sustained([], "disk", 80, MINUTE, now_ms=base_ms)


class TestTrend:
    def test_increasing(self, make_sample, base_ms):
        samples = _series(make_sample, base_ms, [10, 10, 10, 20, 20, 20], step_ms=MINUTE)
        assert trend(samples, "cpu", 60, now_ms=base_ms) is Trend.INCREASING

    def test_decreasing(self, make_sample, base_ms):
        samples = _series(make_sample, base_ms, [20, 20, 20, 10, 10, 10], step_ms=MINUTE)
        assert trend(samples, "cpu", 60, now_ms=base_ms) is Trend.DECREASING

    def test_small_change_is_stable(self, make_sample, base_ms):
        samples = _series(make_sample, base_ms, [10, 10, 10.2, 10.2], step_ms=MINUTE)
        assert trend(samples, "cpu", 60, now_ms=base_ms) is Trend.STABLE

    def test_ordered_by_time_not_input(self, make_sample, base_ms):
        samples = _series(make_sample, base_ms, [10, 10, 20, 20], step_ms=MINUTE)
        assert trend(list(reversed(samples)), "cpu", 60, now_ms=base_ms) is Trend.INCREASING

    def test_single_sample_is_insufficient(self, make_sample, base_ms):
        assert trend([make_sample(base_ms)], "cpu", 60, now_ms=base_ms) is Trend.INSUFFICIENT_DATA

    def test_all_zero_is_stable(self, make_sample, base_ms):
        samples = _series(make_sample, base_ms, [0, 0, 0, 0], step_ms=MINUTE)
        assert trend(samples, "cpu", 60, now_ms=base_ms) is Trend.STABLE

    def test_rise_from_zero_is_increasing(self, make_sample, base_ms):
        samples = _series(make_sample, base_ms, [0, 0, 5, 5], step_ms=MINUTE)
        assert trend(samples, "cpu", 60, now_ms=base_ms) is Trend.INCREASING

    def test_odd_count_splits_at_half(self, make_sample, base_ms):
        # first half [10], second half [10, 40]: mean 25 vs 10
        samples = _series(make_sample, base_ms, [10, 10, 40], metric="eventLoop", step_ms=MINUTE)
        assert trend(samples, "eventLoop", 60, now_ms=base_ms) is Trend.INCREASING


class TestTelemetryAnalyzer:
    def test_reads_window_from_store(self, db, make_sample, base_ms):
        for sample in _series(make_sample, base_ms, [90] * 10):
            save_sample(db.conn, sample)
        save_sample(db.conn, make_sample(base_ms - 20 * MINUTE, cpu=0))

        analyzer = TelemetryAnalyzer(db.conn)
        assert analyzer.averages(10, now_ms=base_ms).cpu == pytest.approx(90.0)
        assert analyzer.sustained("cpu", 75, MINUTE, now_ms=base_ms).sustained
        assert analyzer.trend("cpu", 60, now_ms=base_ms) is Trend.INCREASING
