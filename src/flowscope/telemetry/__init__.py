"""Process-health telemetry: sampling, window statistics and alerting."""

from .aggregate import (
    MetricAverages,
    SustainedCheck,
    TelemetryAnalyzer,
    Trend,
    averages,
    sustained,
    trend,
)
from .alerts import AlertGate, alert_severity, describe_alert, record_alert
from .monitor import PerformanceMonitor, TickResult
from .sampler import TelemetrySampler, measure_event_loop_lag

__all__ = [
    "AlertGate",
    "MetricAverages",
    "PerformanceMonitor",
    "SustainedCheck",
    "TelemetryAnalyzer",
    "TelemetrySampler",
    "TickResult",
    "Trend",
    "alert_severity",
    "averages",
    "describe_alert",
    "measure_event_loop_lag",
    "record_alert",
    "sustained",
    "trend",
]
