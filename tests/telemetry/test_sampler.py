"""Tests for the psutil-backed sampler."""

import asyncio
from types import SimpleNamespace

import pytest

from flowscope.telemetry import TelemetrySampler, measure_event_loop_lag


class FakeProcess:
    def __init__(self, cpu_seconds, rss=1024):
        self._cpu = list(cpu_seconds)
        self._rss = rss

    def cpu_times(self):
        return SimpleNamespace(user=self._cpu.pop(0), system=0.0)

    def memory_info(self):
        return SimpleNamespace(rss=self._rss)


def _clock(values):
    values = list(values)
    return lambda: values.pop(0)


class TestTelemetrySampler:
    def test_first_sample_reports_zero_cpu(self):
        sampler = TelemetrySampler(process=FakeProcess([5.0]), clock=_clock([100.0]))
        sample = asyncio.run(sampler.sample())
        assert sample.cpu_percent == 0.0
        assert sample.memory_rss == 1024
        assert 0.0 <= sample.memory_percent <= 100.0
        assert sample.event_loop_lag_ms >= 0.0

    def test_cpu_is_share_of_wall_time(self):
        sampler = TelemetrySampler(process=FakeProcess([1.0, 1.5]), clock=_clock([10.0, 11.0]))

        async def run():
            await sampler.sample()
            return await sampler.sample()

        assert asyncio.run(run()).cpu_percent == pytest.approx(50.0)

    def test_cpu_clamped_to_hundred(self):
        sampler = TelemetrySampler(process=FakeProcess([0.0, 4.0]), clock=_clock([0.0, 1.0]))

        async def run():
            await sampler.sample()
            return await sampler.sample()

        assert asyncio.run(run()).cpu_percent == 100.0

    def test_reset_forgets_baseline(self):
        sampler = TelemetrySampler(process=FakeProcess([1.0, 2.0]), clock=_clock([0.0, 1.0]))

        async def run():
            await sampler.sample()
            sampler.reset()
            return await sampler.sample()

        assert asyncio.run(run()).cpu_percent == 0.0

    def test_real_process(self):
        sample = asyncio.run(TelemetrySampler().sample())
        assert sample.memory_rss > 0


class TestEventLoopLag:
    def test_non_negative(self):
        assert asyncio.run(measure_event_loop_lag()) >= 0.0
