"""Window statistics over telemetry samples: averages, sustained checks, trends.

The functions here are pure and work on any sample sequence; windows are
inclusive on both ends, ``[now - window, now]``. ``TelemetryAnalyzer``
runs them against the store.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Union

import numpy as np

from ..models import MetricSample, MetricType, now_ms as _now_ms
from ..persistence.reader import samples_between

# A condition is sustained when strictly more than this share of samples exceed the threshold
SUSTAINED_RATIO = 0.8

# Mean changes smaller than this percentage count as stable
TREND_STABLE_PERCENT = 5.0

MINUTE_MS = 60 * 1000

MetricLike = Union[MetricType, str]


class Trend(str, Enum):
    STABLE = "stable"
    INCREASING = "increasing"
    DECREASING = "decreasing"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclass(frozen=True)
class MetricAverages:
    cpu: float
    memory: float
    event_loop: float

    def value(self, metric: MetricLike) -> float:
        metric = MetricType(metric)
        if metric is MetricType.CPU:
            return self.cpu
        if metric is MetricType.MEMORY:
            return self.memory
        return self.event_loop

    def to_dict(self) -> dict[str, float]:
        return {
            "cpu": round(self.cpu, 2),
            "memory": round(self.memory, 2),
            "eventLoop": round(self.event_loop, 2),
        }


@dataclass(frozen=True)
class SustainedCheck:
    sustained: bool
    ratio: float
    total: int
    exceeding: int


def in_window(samples: Sequence[MetricSample], window_ms: float, now_ms: int) -> list[MetricSample]:
    """Samples stamped in ``[now_ms - window_ms, now_ms]``, in input order."""
    start = now_ms - window_ms
    return [s for s in samples if start <= s.timestamp <= now_ms]


def averages(
    samples: Sequence[MetricSample], window_minutes: float, now_ms: Optional[int] = None
) -> MetricAverages:
    """Mean of each metric over the window; all zeros when the window is empty."""
    now = now_ms if now_ms is not None else _now_ms()
    window = in_window(samples, window_minutes * MINUTE_MS, now)
    if not window:
        return MetricAverages(cpu=0.0, memory=0.0, event_loop=0.0)
    return MetricAverages(
        cpu=float(np.mean([s.cpu_percent for s in window])),
        memory=float(np.mean([s.memory_percent for s in window])),
        event_loop=float(np.mean([s.event_loop_lag_ms for s in window])),
    )


def sustained(
    samples: Sequence[MetricSample],
    metric: MetricLike,
    threshold: float,
    duration_ms: float,
    now_ms: Optional[int] = None,
) -> SustainedCheck:
    """Whether *metric* stayed above *threshold* over the last *duration_ms*.

    True only when more than ``SUSTAINED_RATIO`` of the in-window samples
    exceed the threshold, so one spike never counts as sustained. An empty
    window is never sustained.
    """
    metric = MetricType(metric)
    now = now_ms if now_ms is not None else _now_ms()
    values = np.array([s.value(metric) for s in in_window(samples, duration_ms, now)], dtype=float)
    total = int(values.size)
    exceeding = int(np.count_nonzero(values > threshold))
    ratio = exceeding / total if total else 0.0
    return SustainedCheck(
        sustained=ratio > SUSTAINED_RATIO,
        ratio=ratio,
        total=total,
        exceeding=exceeding,
    )


def trend(
    samples: Sequence[MetricSample],
    metric: MetricLike,
    window_minutes: float,
    now_ms: Optional[int] = None,
) -> Trend:
    """Direction of *metric* over the window.

    In-window samples are ordered by time and split at ``n // 2``; the
    second half's mean is compared with the first half's. When the first
    half averages exactly zero, any non-zero second half counts as
    increasing.
    """
    metric = MetricType(metric)
    now = now_ms if now_ms is not None else _now_ms()
    window = sorted(in_window(samples, window_minutes * MINUTE_MS, now), key=lambda s: s.timestamp)
    if len(window) < 2:
        return Trend.INSUFFICIENT_DATA

    values = np.array([s.value(metric) for s in window], dtype=float)
    middle = len(values) // 2
    first = float(np.mean(values[:middle]))
    second = float(np.mean(values[middle:]))

    if first == 0:
        return Trend.STABLE if second == 0 else Trend.INCREASING

    change = (second - first) / abs(first) * 100
    if abs(change) < TREND_STABLE_PERCENT:
        return Trend.STABLE
    return Trend.INCREASING if change > 0 else Trend.DECREASING


class TelemetryAnalyzer:
    """Window statistics computed from the samples in the database.

    Parameters
    ----------
    conn:
        An open connection from ``AnalyzerDB.connect()``.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def _window(self, window_ms: float, now: int) -> list[MetricSample]:
        return samples_between(self.conn, int(now - window_ms), now)

    def averages(self, window_minutes: float = 10, now_ms: Optional[int] = None) -> MetricAverages:
        now = now_ms if now_ms is not None else _now_ms()
        return averages(self._window(window_minutes * MINUTE_MS, now), window_minutes, now)

    def sustained(
        self,
        metric: MetricLike,
        threshold: float,
        duration_ms: float,
        now_ms: Optional[int] = None,
    ) -> SustainedCheck:
        now = now_ms if now_ms is not None else _now_ms()
        return sustained(self._window(duration_ms, now), metric, threshold, duration_ms, now)

    def trend(
        self, metric: MetricLike, window_minutes: float = 60, now_ms: Optional[int] = None
    ) -> Trend:
        now = now_ms if now_ms is not None else _now_ms()
        return trend(self._window(window_minutes * MINUTE_MS, now), metric, window_minutes, now)
