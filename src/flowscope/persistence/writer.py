"""Append records to the analyzer database.

Each function commits on its own so a failed write never takes other
records of the same pass down with it. ``sqlite3`` errors are re-raised as
``PersistenceError``.
"""

import json
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from ..exceptions import PersistenceError
from ..models import Alert, FlowRecord, MetricSample, UnitRecord


@contextmanager
def _write(conn: sqlite3.Connection, operation: str, table: str) -> Iterator[sqlite3.Cursor]:
    cur = conn.cursor()
    try:
        yield cur
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise PersistenceError(operation, str(e), table=table) from e


def save_sample(conn: sqlite3.Connection, sample: MetricSample) -> int:
    """Append a telemetry sample; returns its row id."""
    with _write(conn, "save_sample", "performance_metrics") as cur:
        cur.execute(
            """
            INSERT INTO performance_metrics
                (timestamp, cpu_usage, memory_usage, memory_rss, event_loop_lag)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                sample.timestamp,
                sample.cpu_percent,
                sample.memory_percent,
                sample.memory_rss,
                sample.event_loop_lag_ms,
            ),
        )
        row_id = cur.lastrowid
    assert row_id is not None
    return row_id


def save_alert(conn: sqlite3.Connection, alert: Alert) -> int:
    """Append an alert; returns its row id."""
    with _write(conn, "save_alert", "performance_alerts") as cur:
        cur.execute(
            """
            INSERT INTO performance_alerts
                (metric_type, threshold_value, actual_value, duration_minutes, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                alert.metric_type,
                alert.threshold_value,
                alert.actual_value,
                alert.duration_minutes,
                alert.created_at,
            ),
        )
        row_id = cur.lastrowid
    assert row_id is not None
    return row_id


def save_unit_record(conn: sqlite3.Connection, record: UnitRecord) -> int:
    """Append one function node's scan result."""
    with _write(conn, "save_unit_record", "node_quality_metrics") as cur:
        cur.execute(
            """
            INSERT INTO node_quality_metrics (
                flow_id, node_id, node_name, issues_count, issue_details,
                quality_score, complexity_score, lines_of_code, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.flow_id,
                record.unit_id,
                record.unit_name,
                record.issues_count,
                json.dumps([issue.to_dict() for issue in record.issues]),
                record.quality_score,
                record.complexity_score,
                record.lines_of_code,
                record.created_at,
            ),
        )
        row_id = cur.lastrowid
    assert row_id is not None
    return row_id


def save_flow_record(conn: sqlite3.Connection, record: FlowRecord) -> int:
    """Append one flow's aggregate."""
    with _write(conn, "save_flow_record", "flow_quality_metrics") as cur:
        cur.execute(
            """
            INSERT INTO flow_quality_metrics (
                flow_id, flow_name, total_issues, nodes_with_issues,
                nodes_with_critical_issues, total_units, issue_types,
                quality_score, complexity_score, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.flow_id,
                record.flow_name,
                record.total_issues,
                record.nodes_with_issues,
                record.nodes_with_critical_issues,
                record.total_units,
                json.dumps(record.issue_types),
                record.quality_score,
                record.complexity_score,
                record.created_at,
            ),
        )
        row_id = cur.lastrowid
    assert row_id is not None
    return row_id
