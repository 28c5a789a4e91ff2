"""Alert recording, read-time severity and caller-side cooldown gating."""

from __future__ import annotations

import sqlite3
from dataclasses import replace
from typing import Dict, Optional

from ..exceptions import ThresholdConfigError
from ..logging_config import get_logger
from ..models import Alert, AlertSeverity, MetricType, now_ms as _now_ms
from ..persistence.writer import save_alert

logger = get_logger(__name__)

CRITICAL_RATIO = 1.5
WARNING_RATIO = 1.2


def record_alert(
    conn: sqlite3.Connection,
    metric_type: str,
    threshold: float,
    actual_value: float,
    duration_minutes: float,
    now_ms: Optional[int] = None,
) -> Alert:
    """Persist an alert unconditionally.

    Deciding whether the condition is sustained and whether the cooldown
    has passed belongs to the caller (see ``AlertGate``); calling this twice
    records two alerts.
    """
    metric = MetricType(metric_type)
    alert = Alert(
        metric_type=metric.value,
        threshold_value=float(threshold),
        actual_value=float(actual_value),
        duration_minutes=float(duration_minutes),
        created_at=now_ms if now_ms is not None else _now_ms(),
    )
    row_id = save_alert(conn, alert)
    logger.warning(
        "Alert recorded: %s %.2f over threshold %.2f for %.1f min",
        metric.value,
        alert.actual_value,
        alert.threshold_value,
        alert.duration_minutes,
    )
    return replace(alert, id=row_id)


def alert_severity(actual_value: float, threshold: float) -> AlertSeverity:
    """Classify how far *actual_value* overshoots *threshold*.

    Raises:
        ThresholdConfigError: for a threshold of zero or below
    """
    if threshold <= 0:
        raise ThresholdConfigError("alert", threshold)
    ratio = actual_value / threshold
    if ratio >= CRITICAL_RATIO:
        return AlertSeverity.CRITICAL
    if ratio >= WARNING_RATIO:
        return AlertSeverity.WARNING
    return AlertSeverity.INFO


def describe_alert(alert: Alert) -> dict:
    """Alert as served to the dashboard, with its severity derived now."""
    try:
        severity = alert_severity(alert.actual_value, alert.threshold_value).value
    except ThresholdConfigError:
        severity = AlertSeverity.INFO.value
    return {
        "id": alert.id,
        "metric_type": alert.metric_type,
        "threshold_value": alert.threshold_value,
        "actual_value": round(alert.actual_value, 2),
        "duration_minutes": alert.duration_minutes,
        "created_at": alert.created_at,
        "severity": severity,
    }


class AlertGate:
    """Per-metric cooldown bookkeeping for callers of ``record_alert``.

    Args:
        cooldown_ms: minimum gap between two alerts for the same metric
    """

    def __init__(self, cooldown_ms: float) -> None:
        self.cooldown_ms = max(0.0, cooldown_ms)
        self._last: Dict[str, int] = {}

    def ready(self, metric: str, now_ms: int) -> bool:
        last = self._last.get(metric)
        return last is None or now_ms - last >= self.cooldown_ms

    def mark(self, metric: str, now_ms: int) -> None:
        self._last[metric] = now_ms

    def reset(self) -> None:
        self._last.clear()
