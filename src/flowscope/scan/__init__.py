"""Scan orchestration: source collection, single-flight scheduling, passes."""

from .collector import (
    FlowSource,
    FlowsFileCollector,
    SourceCollector,
    SourceSnapshot,
    StaticCollector,
    UnitSource,
    snapshot_from_nodes,
)
from .readiness import Readiness, ReadinessProbe
from .runner import ScanReport, run_scan_pass, scan_unit
from .scheduler import ScanResult, ScanScheduler, ScanState, ScanStatus

__all__ = [
    "FlowSource",
    "FlowsFileCollector",
    "Readiness",
    "ReadinessProbe",
    "ScanReport",
    "ScanResult",
    "ScanScheduler",
    "ScanState",
    "ScanStatus",
    "SourceCollector",
    "SourceSnapshot",
    "StaticCollector",
    "UnitSource",
    "run_scan_pass",
    "scan_unit",
    "snapshot_from_nodes",
]
