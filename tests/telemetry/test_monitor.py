"""Tests for the performance monitor tick and lifecycle."""

import asyncio
import logging

from flowscope.config import AnalyzerConfig
from flowscope.persistence.database import AnalyzerDB
from flowscope.persistence.reader import alert_history, recent_samples
from flowscope.persistence.retention import DAY_MS
from flowscope.persistence.writer import save_sample
from flowscope.telemetry import PerformanceMonitor


class FakeSampler:
    """Hands out queued samples in order."""

    def __init__(self, samples):
        self._samples = list(samples)
        self.resets = 0

    def reset(self):
        self.resets += 1

    async def sample(self):
        return self._samples.pop(0)


def _monitor(db_path, samples, **overrides):
    options = {"sustained_alert_duration": 60, "alert_cooldown": 1800}
    options.update(overrides)
    config = AnalyzerConfig(db_path=str(db_path), **options)
    return PerformanceMonitor(config, db_path, sampler=FakeSampler(samples))


class TestTick:
    def test_sample_persisted(self, db_path, make_sample, base_ms):
        monitor = _monitor(db_path, [make_sample(base_ms)])
        result = asyncio.run(monitor.tick())

        assert result.persisted
        assert result.alerts == []
        assert monitor.last_sample == result.sample
        with AnalyzerDB(db_path) as db:
            assert recent_samples(db.conn) == [result.sample]

    def test_sustained_breach_alerts_once_per_cooldown(self, db_path, make_sample, base_ms):
        samples = [make_sample(base_ms, cpu=95), make_sample(base_ms + 10_000, cpu=95)]
        monitor = _monitor(db_path, samples, cpu_threshold=50)

        async def run():
            return [await monitor.tick(), await monitor.tick()]

        first, second = asyncio.run(run())
        assert [a.metric_type for a in first.alerts] == ["cpu"]
        assert first.alerts[0].threshold_value == 50.0
        assert first.alerts[0].duration_minutes == 1.0
        assert second.alerts == []
        with AnalyzerDB(db_path) as db:
            assert len(alert_history(db.conn)) == 1

    def test_quiet_metrics_do_not_alert(self, db_path, make_sample, base_ms):
        monitor = _monitor(db_path, [make_sample(base_ms, cpu=10, memory=10, lag=1)])
        assert asyncio.run(monitor.tick()).alerts == []

    def test_invalid_threshold_disables_metric_and_is_reported_once(
        self, db_path, make_sample, base_ms, caplog
    ):
        samples = [make_sample(base_ms, cpu=95), make_sample(base_ms + 1000, cpu=95)]
        monitor = _monitor(db_path, samples, cpu_threshold=0)

        async def run():
            return [await monitor.tick(), await monitor.tick()]

        with caplog.at_level(logging.WARNING, logger="flowscope"):
            results = asyncio.run(run())

        assert all(result.alerts == [] for result in results)
        reports = [r for r in caplog.records if "alerting for cpu disabled" in r.getMessage()]
        assert len(reports) == 1
        assert "cpu" not in {m.value for m in monitor.active_thresholds()}

    def test_store_failure_still_returns_sample(self, tmp_path, make_sample, base_ms):
        # A directory cannot be opened as a database
        monitor = _monitor(tmp_path, [make_sample(base_ms)])
        result = asyncio.run(monitor.tick())
        assert not result.persisted
        assert result.sample.timestamp == base_ms

    def test_first_tick_prunes_old_samples(self, db_path, make_sample, base_ms):
        with AnalyzerDB(db_path) as db:
            save_sample(db.conn, make_sample(base_ms - 8 * DAY_MS))
        monitor = _monitor(db_path, [make_sample(base_ms)], db_retention_days=7)
        asyncio.run(monitor.tick())
        with AnalyzerDB(db_path) as db:
            assert [s.timestamp for s in recent_samples(db.conn)] == [base_ms]


class TestLifecycle:
    def test_start_and_stop(self, db_path, make_sample, base_ms):
        monitor = _monitor(db_path, [make_sample(base_ms)], performance_interval=60)

        async def run():
            assert monitor.start()
            assert monitor.running
            assert not monitor.start()
            await asyncio.sleep(0.01)
            assert await monitor.stop()
            assert not monitor.running
            assert not await monitor.stop()

        asyncio.run(run())
        assert monitor.sampler.resets == 1
        assert monitor.last_sample is not None

    def test_non_positive_interval_disables_sampling(self, db_path):
        monitor = _monitor(db_path, [], performance_interval=0)

        async def run():
            return monitor.start()

        assert asyncio.run(run()) is False
        assert not monitor.running
