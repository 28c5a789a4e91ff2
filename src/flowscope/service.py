"""Long-running analyzer service: scans on demand or on a timer, plus the monitor.

The HTTP server and the ``serve`` command both drive one ``AnalyzerService``.
Scan passes run in a worker thread; the performance monitor and the scan
timer run as tasks on the event loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional

from .config import DEFAULT_CONFIG, AnalyzerConfig
from .detection import StatusHint
from .exceptions import InvalidConfigError, PartialScanError, PersistenceError
from .logging_config import get_logger
from .models import UnitRecord
from .persistence.database import AnalyzerDB
from .persistence.settings import get_settings, update_setting
from .scan import (
    Readiness,
    ReadinessProbe,
    ScanReport,
    ScanResult,
    ScanScheduler,
    ScanStatus,
    SourceCollector,
    run_scan_pass,
)
from .telemetry import AlertGate, PerformanceMonitor, TelemetrySampler

logger = get_logger(__name__)


class AnalyzerService:
    """Owns the scheduler, the monitor and the current configuration.

    Thread-safe where it has to be: ``scan`` is called from worker
    threads and records status hints under a lock, while the async
    methods are only called from the event loop.
    """

    def __init__(
        self,
        collector: SourceCollector,
        config: Optional[AnalyzerConfig] = None,
        sampler: Optional[TelemetrySampler] = None,
        probe: Optional[ReadinessProbe] = None,
    ) -> None:
        self.collector = collector
        self._config = config or DEFAULT_CONFIG
        self.db_path = Path(self._config.db_path)
        self.scheduler = ScanScheduler()
        self.probe = probe or ReadinessProbe(collector.is_ready)

        self._sampler = sampler or TelemetrySampler()
        self._gate = AlertGate(self._config.alert_cooldown * 1000)
        self.monitor = self._new_monitor(self._config)

        self._lock = threading.RLock()
        self._hints: dict[str, StatusHint] = {}
        self._last_report: Optional[ScanReport] = None
        self._scan_task: Optional[asyncio.Task] = None

    @property
    def config(self) -> AnalyzerConfig:
        return self._config

    # ── scanning ──────────────────────────────────────────────────

    def scan(self) -> ScanResult[ScanReport]:
        """Run one scan pass now, unless one is already running."""
        if not self._config.code_analysis:
            logger.info("Code analysis disabled; scan skipped")
            return ScanResult(status=ScanStatus.DISABLED)
        level = self._config.detection_level

        def _pass(scheduler: ScanScheduler) -> ScanReport:
            with AnalyzerDB(self.db_path) as db:
                return run_scan_pass(
                    self.collector,
                    db,
                    level,
                    on_status=self._record_hint,
                    on_completing=scheduler.completing,
                )

        result = self.scheduler.run(_pass)
        if result.report is not None:
            with self._lock:
                self._last_report = result.report
        elif isinstance(result.error, (PartialScanError, PersistenceError)):
            logger.warning("Scan pass produced no results; previous data kept")
        return result

    def _record_hint(self, record: UnitRecord, hint: StatusHint) -> None:
        with self._lock:
            self._hints[record.unit_id] = hint

    def status_hints(self) -> dict[str, StatusHint]:
        with self._lock:
            return dict(self._hints)

    @property
    def last_report(self) -> Optional[ScanReport]:
        with self._lock:
            return self._last_report

    async def _scan_loop(self) -> None:
        while True:
            await asyncio.sleep(self._config.scan_interval)
            try:
                await asyncio.to_thread(self.scan)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Scheduled scan failed")

    # ── lifecycle ─────────────────────────────────────────────────

    async def start(self, wait_for_host: bool = True) -> Readiness:
        """Load stored settings and start the timers once the host is ready.

        With ``wait_for_host`` the readiness probe polls on the event loop;
        on timeout nothing is started and the services stay available for
        manual start.
        """
        if wait_for_host:
            state = await self.probe.wait_async()
            if state is Readiness.TIMED_OUT:
                return state
        await self.reload_settings()
        return Readiness.READY

    async def stop(self) -> None:
        """Stop the scan timer and the monitor."""
        if self._scan_task is not None:
            self._scan_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._scan_task
            self._scan_task = None
        await self.monitor.stop()

    def _new_monitor(self, config: AnalyzerConfig) -> PerformanceMonitor:
        # Alert cooldowns outlive any single monitor
        return PerformanceMonitor(config, self.db_path, sampler=self._sampler, gate=self._gate)

    async def apply_config(self, config: AnalyzerConfig) -> None:
        """Swap in *config* and restart whatever depends on it."""
        await self.stop()
        self._config = config
        self.monitor = self._new_monitor(config)

        if config.performance_monitoring:
            self.monitor.start()
        if config.code_analysis and config.scan_interval > 0:
            self._scan_task = asyncio.get_running_loop().create_task(
                self._scan_loop(), name="flowscope-scan"
            )
            logger.info("Scheduled scans every %s seconds", config.scan_interval)
        else:
            logger.info("Scanning will be performed on demand")

    async def reload_settings(self) -> AnalyzerConfig:
        """Re-read the settings store and apply it.

        A stored combination that fails validation is logged and the
        current configuration is kept.
        """
        with AnalyzerDB(self.db_path) as db:
            settings = get_settings(db.conn)
        try:
            config = AnalyzerConfig.from_settings(settings, base=self._config)
        except InvalidConfigError as e:
            logger.error("Stored settings rejected, keeping current configuration: %s", e)
            return self._config
        await self.apply_config(config)
        return config

    # ── monitoring ────────────────────────────────────────────────

    async def start_monitoring(self) -> bool:
        """Start the monitor and persist ``performanceMonitoring = true``."""
        if self.monitor.running:
            return False
        config = replace(self._config, performance_monitoring=True)
        if not config.sampling_enabled:
            logger.warning(
                "Performance monitoring disabled: interval %s must be positive",
                config.performance_interval,
            )
            return False
        self._persist_monitoring_flag(True)
        self._config = config
        self.monitor = self._new_monitor(config)
        return self.monitor.start()

    async def stop_monitoring(self) -> bool:
        """Stop the monitor and persist ``performanceMonitoring = false``."""
        if not self.monitor.running:
            return False
        await self.monitor.stop()
        self._persist_monitoring_flag(False)
        self._config = replace(self._config, performance_monitoring=False)
        return True

    def _persist_monitoring_flag(self, enabled: bool) -> None:
        try:
            with AnalyzerDB(self.db_path) as db:
                update_setting(db.conn, "performanceMonitoring", enabled)
        except PersistenceError as e:
            logger.error("Failed to persist monitoring flag: %s", e)

    # ── status ────────────────────────────────────────────────────

    def status(self) -> dict[str, Any]:
        """Service state as reported by the status endpoint."""
        try:
            with AnalyzerDB(self.db_path):
                database = True
        except PersistenceError:
            database = False
        report = self.last_report
        cfg = self._config
        return {
            "services": {
                "database": database,
                "scanning": self.scheduler.is_scanning,
                "scanState": self.scheduler.state.value,
                "performanceMonitoring": self.monitor.running,
                "readiness": self.probe.state.value,
            },
            "settings": {
                "codeAnalysis": cfg.code_analysis,
                "scanInterval": cfg.scan_interval,
                "detectionLevel": cfg.detection_level,
                "performanceMonitoring": cfg.performance_monitoring,
                "performanceInterval": cfg.performance_interval,
            },
            "lastScan": report.to_dict() if report is not None else None,
        }
