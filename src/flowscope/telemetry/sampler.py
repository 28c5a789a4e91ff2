"""Process-health sampler (CPU, memory, event-loop lag) backed by psutil."""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Optional

import psutil

from ..logging_config import get_logger
from ..models import MetricSample, now_ms

logger = get_logger(__name__)


class TelemetrySampler:
    """Takes one ``MetricSample`` per call to :meth:`sample`.

    CPU usage is the share of wall time the process spent on CPU since the
    previous sample, so the very first sample (and the first after
    :meth:`reset`) reports 0.

    Args:
        process: psutil process to observe (defaults to this process)
        clock: monotonic clock in seconds, injectable for tests
    """

    def __init__(
        self,
        process: Optional[psutil.Process] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._process = process or psutil.Process()
        self._clock = clock
        self._total_memory = psutil.virtual_memory().total
        self._last_cpu_seconds: Optional[float] = None
        self._last_wall: Optional[float] = None

    def reset(self) -> None:
        """Forget the CPU baseline (used when monitoring restarts)."""
        self._last_cpu_seconds = None
        self._last_wall = None

    async def sample(self) -> MetricSample:
        lag_ms = await measure_event_loop_lag()

        wall = self._clock()
        cpu_seconds = self._cpu_seconds()
        cpu_percent = self._cpu_percent(cpu_seconds, wall)
        self._last_cpu_seconds = cpu_seconds
        self._last_wall = wall

        rss = int(self._process.memory_info().rss)
        memory_percent = rss / self._total_memory * 100 if self._total_memory else 0.0

        sample = MetricSample(
            timestamp=now_ms(),
            cpu_percent=cpu_percent,
            memory_percent=min(100.0, memory_percent),
            memory_rss=rss,
            event_loop_lag_ms=lag_ms,
        )
        logger.debug(
            "Sample: CPU %.1f%%, Memory %.1f%%, Event Loop %.1fms",
            sample.cpu_percent,
            sample.memory_percent,
            sample.event_loop_lag_ms,
        )
        return sample

    def _cpu_seconds(self) -> float:
        times = self._process.cpu_times()
        return float(times.user + times.system)

    def _cpu_percent(self, cpu_seconds: float, wall: float) -> float:
        if self._last_cpu_seconds is None or self._last_wall is None:
            return 0.0
        elapsed = wall - self._last_wall
        if elapsed <= 0:
            return 0.0
        percent = (cpu_seconds - self._last_cpu_seconds) / elapsed * 100
        return max(0.0, min(100.0, percent))


async def measure_event_loop_lag() -> float:
    """Milliseconds until a deferred no-op gets scheduled again.

    Suspends exactly once. A busy loop delays the resumption, which is what
    this measures.
    """
    start = time.perf_counter()
    await asyncio.sleep(0)
    return max(0.0, (time.perf_counter() - start) * 1000)
