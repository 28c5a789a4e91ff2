"""Periodic performance monitor: sample, persist, alert on sustained breaches."""

from __future__ import annotations

import asyncio
import contextlib
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from ..config import AnalyzerConfig
from ..exceptions import PersistenceError, ThresholdConfigError
from ..logging_config import get_logger
from ..models import Alert, MetricSample, MetricType
from ..persistence.database import AnalyzerDB
from ..persistence.retention import prune_old_data
from ..persistence.writer import save_sample
from .aggregate import TelemetryAnalyzer
from .alerts import AlertGate, record_alert
from .sampler import TelemetrySampler

logger = get_logger(__name__)

PRUNE_INTERVAL_MS = 60 * 60 * 1000


@dataclass
class TickResult:
    sample: MetricSample
    persisted: bool = True
    alerts: list[Alert] = field(default_factory=list)


class PerformanceMonitor:
    """Runs the sampler on a fixed interval on the current event loop.

    Each tick stores one sample and then, for every metric with a usable
    threshold, checks whether the breach has been sustained for
    ``sustained_alert_duration`` seconds. Alerts are gated by a per-metric
    cooldown here, not in ``record_alert``. Pass a shared ``gate`` to keep
    the cooldown across monitors built for successive configurations.

    A threshold of zero or below disables that metric; the problem is
    logged once per monitor, not on every tick. An interval of zero or
    below disables sampling altogether.
    """

    def __init__(
        self,
        config: AnalyzerConfig,
        db_path: Union[str, Path],
        sampler: Optional[TelemetrySampler] = None,
        gate: Optional[AlertGate] = None,
    ) -> None:
        self.config = config
        self.db_path = Path(db_path)
        self.sampler = sampler or TelemetrySampler()
        self.last_sample: Optional[MetricSample] = None

        if gate is None:
            gate = AlertGate(config.alert_cooldown * 1000)
        else:
            gate.cooldown_ms = max(0.0, config.alert_cooldown * 1000)
        self._gate = gate
        self._reported: set[str] = set()
        self._last_prune: Optional[int] = None
        self._task: Optional[asyncio.Task] = None

    # ── lifecycle ─────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Schedule the sampling loop on the running event loop.

        Returns:
            False when already running or when sampling is disabled.
        """
        if self.running:
            return False
        if not self.config.sampling_enabled:
            logger.warning(
                "Performance monitoring disabled: interval %s must be positive",
                self.config.performance_interval,
            )
            return False
        self.sampler.reset()
        self._task = asyncio.get_running_loop().create_task(self._run(), name="flowscope-monitor")
        logger.info(
            "Starting performance monitoring every %s seconds", self.config.performance_interval
        )
        return True

    async def stop(self) -> bool:
        """Cancel the sampling loop. Returns False if it was not running."""
        if not self.running:
            return False
        assert self._task is not None
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Performance monitoring stopped")
        return True

    async def _run(self) -> None:
        while True:
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Performance monitoring error")
            await asyncio.sleep(self.config.performance_interval)

    # ── one tick ──────────────────────────────────────────────────

    async def tick(self) -> TickResult:
        """Take, store and evaluate a single sample."""
        sample = await self.sampler.sample()
        self.last_sample = sample
        result = TickResult(sample=sample)

        try:
            with AnalyzerDB(self.db_path) as db:
                save_sample(db.conn, sample)
                result.alerts = self._evaluate(db.conn, sample.timestamp)
                self._maybe_prune(db.conn, sample.timestamp)
        except PersistenceError as e:
            result.persisted = False
            logger.error("Failed to store performance metrics: %s", e)

        return result

    def active_thresholds(self) -> dict[MetricType, float]:
        """Thresholds usable for alerting; invalid ones are reported once."""
        active: dict[MetricType, float] = {}
        for name, threshold in self.config.thresholds.items():
            metric = MetricType(name)
            if threshold is None or threshold <= 0:
                if name not in self._reported:
                    self._reported.add(name)
                    logger.warning("%s; alerting for %s disabled", ThresholdConfigError(name, threshold), name)
                continue
            active[metric] = float(threshold)
        return active

    def _evaluate(self, conn: sqlite3.Connection, now: int) -> list[Alert]:
        analyzer = TelemetryAnalyzer(conn)
        duration_ms = self.config.sustained_alert_duration_ms
        duration_minutes = self.config.sustained_alert_duration / 60
        alerts: list[Alert] = []

        for metric, threshold in self.active_thresholds().items():
            check = analyzer.sustained(metric, threshold, duration_ms, now_ms=now)
            if not check.sustained or not self._gate.ready(metric.value, now):
                continue
            window_minutes = duration_ms / 60000
            actual = analyzer.averages(window_minutes, now_ms=now).value(metric)
            alerts.append(record_alert(conn, metric.value, threshold, actual, duration_minutes, now_ms=now))
            self._gate.mark(metric.value, now)

        return alerts

    def _maybe_prune(self, conn: sqlite3.Connection, now: int) -> None:
        if self._last_prune is not None and now - self._last_prune < PRUNE_INTERVAL_MS:
            return
        self._last_prune = now
        prune_old_data(conn, self.config.db_retention_days, now_ms=now)
