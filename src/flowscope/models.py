"""Data models for flowscope.

Records are immutable: a new scan or tick appends new records rather than
editing old ones. Timestamps are epoch milliseconds.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from .detection.traits import Issue


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class MetricType(str, Enum):
    """Telemetry metrics that can be thresholded and alerted on."""

    CPU = "cpu"
    MEMORY = "memory"
    EVENT_LOOP = "eventLoop"

    @property
    def column(self) -> str:
        """Column in ``performance_metrics`` holding this metric."""
        return _METRIC_COLUMNS[self]

    @property
    def attribute(self) -> str:
        """Attribute on ``MetricSample`` holding this metric."""
        return _METRIC_ATTRIBUTES[self]


_METRIC_COLUMNS = {
    MetricType.CPU: "cpu_usage",
    MetricType.MEMORY: "memory_usage",
    MetricType.EVENT_LOOP: "event_loop_lag",
}

_METRIC_ATTRIBUTES = {
    MetricType.CPU: "cpu_percent",
    MetricType.MEMORY: "memory_percent",
    MetricType.EVENT_LOOP: "event_loop_lag_ms",
}


class AlertSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class UnitRecord:
    """Scan result for one function node."""

    flow_id: str
    unit_id: str
    unit_name: str
    lines_of_code: int
    complexity_score: float
    quality_score: float
    issues: Tuple[Issue, ...] = ()
    created_at: int = field(default_factory=now_ms)

    @property
    def issues_count(self) -> int:
        return len(self.issues)


@dataclass(frozen=True)
class FlowRecord:
    """Aggregated scan result for one flow (group of units)."""

    flow_id: str
    flow_name: str
    total_issues: int
    nodes_with_issues: int
    nodes_with_critical_issues: int
    total_units: int
    quality_score: float
    complexity_score: float
    issue_types: Dict[str, int] = field(default_factory=dict)
    created_at: int = field(default_factory=now_ms)


@dataclass(frozen=True)
class MetricSample:
    """One process-health reading."""

    timestamp: int
    cpu_percent: float
    memory_percent: float
    memory_rss: int
    event_loop_lag_ms: float

    def value(self, metric: MetricType) -> float:
        return float(getattr(self, metric.attribute))


@dataclass(frozen=True)
class Alert:
    """A recorded sustained threshold violation."""

    metric_type: str
    threshold_value: float
    actual_value: float
    duration_minutes: float
    created_at: int = field(default_factory=now_ms)
    id: Optional[int] = None
