"""Read records back from the analyzer database."""

import json
import sqlite3
from typing import Any, Optional

from ..detection.traits import Issue
from ..models import Alert, FlowRecord, MetricSample, UnitRecord

_HOUR_MS = 60 * 60 * 1000


def latest_flow_record(conn: sqlite3.Connection, flow_id: str) -> Optional[FlowRecord]:
    """Most recent aggregate for *flow_id*, or ``None`` if never scanned."""
    row = conn.execute(
        """
        SELECT * FROM flow_quality_metrics
        WHERE flow_id = ?
        ORDER BY created_at DESC, id DESC
        LIMIT 1
        """,
        (flow_id,),
    ).fetchone()
    return _flow_from_row(row) if row is not None else None


def latest_flow_records(conn: sqlite3.Connection) -> list[FlowRecord]:
    """Latest aggregate of every flow ever scanned, newest first."""
    rows = conn.execute(
        """
        SELECT * FROM flow_quality_metrics
        WHERE id IN (
            SELECT MAX(id) FROM flow_quality_metrics GROUP BY flow_id
        )
        ORDER BY created_at DESC, id DESC
        """
    ).fetchall()
    return [_flow_from_row(r) for r in rows]


def latest_unit_records(conn: sqlite3.Connection, flow_id: str) -> list[UnitRecord]:
    """Latest record of every function node in *flow_id*, worst score first."""
    rows = conn.execute(
        """
        SELECT * FROM node_quality_metrics
        WHERE id IN (
            SELECT MAX(id) FROM node_quality_metrics
            WHERE flow_id = ?
            GROUP BY node_id
        )
        ORDER BY quality_score ASC, node_name ASC
        """,
        (flow_id,),
    ).fetchall()
    return [_unit_from_row(r) for r in rows]


def samples_between(
    conn: sqlite3.Connection, start_ms: int, end_ms: int
) -> list[MetricSample]:
    """Samples with ``start_ms <= timestamp <= end_ms`` in chronological order."""
    rows = conn.execute(
        """
        SELECT * FROM performance_metrics
        WHERE timestamp >= ? AND timestamp <= ?
        ORDER BY timestamp ASC, id ASC
        """,
        (start_ms, end_ms),
    ).fetchall()
    return [_sample_from_row(r) for r in rows]


def recent_samples(conn: sqlite3.Connection, count: int = 20) -> list[MetricSample]:
    """The last *count* samples in chronological order."""
    rows = conn.execute(
        """
        SELECT * FROM performance_metrics
        ORDER BY timestamp DESC, id DESC
        LIMIT ?
        """,
        (count,),
    ).fetchall()
    return [_sample_from_row(r) for r in reversed(rows)]


def latest_sample(conn: sqlite3.Connection) -> Optional[MetricSample]:
    samples = recent_samples(conn, 1)
    return samples[0] if samples else None


def alert_history(conn: sqlite3.Connection, limit: int = 50) -> list[Alert]:
    """Most recent alerts, newest first."""
    rows = conn.execute(
        """
        SELECT * FROM performance_alerts
        ORDER BY created_at DESC, id DESC
        LIMIT ?
        """,
        (limit,),
    ).fetchall()
    return [
        Alert(
            metric_type=r["metric_type"],
            threshold_value=r["threshold_value"],
            actual_value=r["actual_value"],
            duration_minutes=r["duration_minutes"],
            created_at=r["created_at"],
            id=r["id"],
        )
        for r in rows
    ]


def sample_stats(conn: sqlite3.Connection) -> dict[str, Any]:
    """Sample count and the oldest/newest timestamps."""
    row = conn.execute(
        """
        SELECT COUNT(*) AS total, MIN(timestamp) AS oldest, MAX(timestamp) AS newest
        FROM performance_metrics
        """
    ).fetchone()
    return {"totalMetrics": row["total"], "oldestMetric": row["oldest"], "newestMetric": row["newest"]}


def quality_history(conn: sqlite3.Connection, since_ms: int) -> list[dict[str, Any]]:
    """Flow aggregates since *since_ms* bucketed per hour, oldest bucket first.

    Each bucket carries the mean flow quality score, summed issue and unit
    counts and the number of distinct flows scanned in that hour.
    """
    rows = conn.execute(
        """
        SELECT
            (created_at / ?) * ?        AS bucket,
            AVG(quality_score)          AS avg_quality_score,
            SUM(total_issues)           AS total_issues,
            SUM(total_units)            AS total_units,
            COUNT(DISTINCT flow_id)     AS active_flows
        FROM flow_quality_metrics
        WHERE created_at >= ?
        GROUP BY bucket
        ORDER BY bucket ASC
        """,
        (_HOUR_MS, _HOUR_MS, since_ms),
    ).fetchall()
    return [
        {
            "bucket": r["bucket"],
            "quality_score": round(r["avg_quality_score"] or 0.0, 2),
            "total_issues": r["total_issues"] or 0,
            "total_units": r["total_units"] or 0,
            "active_flows": r["active_flows"] or 0,
        }
        for r in rows
    ]


# ── hydration ─────────────────────────────────────────────────────


def _flow_from_row(row: sqlite3.Row) -> FlowRecord:
    return FlowRecord(
        flow_id=row["flow_id"],
        flow_name=row["flow_name"],
        total_issues=row["total_issues"],
        nodes_with_issues=row["nodes_with_issues"],
        nodes_with_critical_issues=row["nodes_with_critical_issues"],
        total_units=row["total_units"],
        quality_score=row["quality_score"],
        complexity_score=row["complexity_score"],
        issue_types=json.loads(row["issue_types"] or "{}"),
        created_at=row["created_at"],
    )


def _unit_from_row(row: sqlite3.Row) -> UnitRecord:
    details = json.loads(row["issue_details"] or "[]")
    return UnitRecord(
        flow_id=row["flow_id"],
        unit_id=row["node_id"],
        unit_name=row["node_name"],
        lines_of_code=row["lines_of_code"],
        complexity_score=row["complexity_score"],
        quality_score=row["quality_score"],
        issues=tuple(Issue.from_dict(d) for d in details),
        created_at=row["created_at"],
    )


def _sample_from_row(row: sqlite3.Row) -> MetricSample:
    return MetricSample(
        timestamp=row["timestamp"],
        cpu_percent=row["cpu_usage"],
        memory_percent=row["memory_usage"],
        memory_rss=row["memory_rss"],
        event_loop_lag_ms=row["event_loop_lag"],
    )
