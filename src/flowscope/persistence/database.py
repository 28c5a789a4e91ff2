"""SQLite-backed metrics and quality store."""

import sqlite3
from pathlib import Path
from typing import Optional, Union

from ..exceptions import PersistenceError
from ..logging_config import get_logger
from .settings import seed_defaults

logger = get_logger(__name__)

# Current schema version (bump when tables change).
_SCHEMA_VERSION = 1


class AnalyzerDB:
    """Manages the flowscope SQLite database.

    Every table is append-only except ``settings``. Open one instance per
    scan pass or sampling tick; connections are cheap and this keeps the
    scan thread and the event loop from sharing a connection.

    Usage::

        with AnalyzerDB("flowscope.db") as db:
            save_sample(db.conn, sample)
    """

    def __init__(self, db_path: Union[str, Path]) -> None:
        self.db_path: Path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def conn(self) -> sqlite3.Connection:
        """Return the active connection. Raises if not connected."""
        if self._conn is None:
            raise RuntimeError("AnalyzerDB is not connected. Use as context manager or call connect().")
        return self._conn

    # ── lifecycle ─────────────────────────────────────────────────

    def connect(self) -> sqlite3.Connection:
        """Open (or create) the database and run migrations."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), timeout=10)
            conn.execute("PRAGMA journal_mode=WAL")
            conn.row_factory = sqlite3.Row
            self._conn = conn
            self._migrate()
        except (sqlite3.Error, OSError) as e:
            self.close()
            raise PersistenceError("connect", str(e)) from e
        logger.debug("Analyzer DB connected at %s", self.db_path)
        return conn

    def close(self) -> None:
        """Close the connection if open."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "AnalyzerDB":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ── migration ─────────────────────────────────────────────────

    def _migrate(self) -> None:
        """Idempotently create all tables."""
        c = self.conn

        c.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER NOT NULL
            )
            """
        )
        row = c.execute("SELECT version FROM schema_version").fetchone()
        if row is None:
            c.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (_SCHEMA_VERSION,),
            )

        # ── performance_metrics ──────────────────────────────────
        c.execute(
            """
            CREATE TABLE IF NOT EXISTS performance_metrics (
                id             INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp      INTEGER NOT NULL,
                cpu_usage      REAL    NOT NULL,
                memory_usage   REAL    NOT NULL,
                memory_rss     INTEGER NOT NULL,
                event_loop_lag REAL    NOT NULL
            )
            """
        )

        # ── performance_alerts ───────────────────────────────────
        c.execute(
            """
            CREATE TABLE IF NOT EXISTS performance_alerts (
                id               INTEGER PRIMARY KEY AUTOINCREMENT,
                metric_type      TEXT    NOT NULL,
                threshold_value  REAL    NOT NULL,
                actual_value     REAL    NOT NULL,
                duration_minutes REAL    NOT NULL,
                created_at       INTEGER NOT NULL
            )
            """
        )

        # ── flow_quality_metrics ─────────────────────────────────
        c.execute(
            """
            CREATE TABLE IF NOT EXISTS flow_quality_metrics (
                id                         INTEGER PRIMARY KEY AUTOINCREMENT,
                flow_id                    TEXT    NOT NULL,
                flow_name                  TEXT    NOT NULL,
                total_issues               INTEGER NOT NULL,
                nodes_with_issues          INTEGER NOT NULL,
                nodes_with_critical_issues INTEGER NOT NULL,
                total_units                INTEGER NOT NULL,
                issue_types                TEXT    NOT NULL DEFAULT '{}',
                quality_score              REAL    NOT NULL,
                complexity_score           REAL    NOT NULL,
                created_at                 INTEGER NOT NULL
            )
            """
        )

        # ── node_quality_metrics ─────────────────────────────────
        c.execute(
            """
            CREATE TABLE IF NOT EXISTS node_quality_metrics (
                id               INTEGER PRIMARY KEY AUTOINCREMENT,
                flow_id          TEXT    NOT NULL,
                node_id          TEXT    NOT NULL,
                node_name        TEXT    NOT NULL,
                issues_count     INTEGER NOT NULL,
                issue_details    TEXT    NOT NULL DEFAULT '[]',
                quality_score    REAL    NOT NULL,
                complexity_score REAL    NOT NULL,
                lines_of_code    INTEGER NOT NULL,
                created_at       INTEGER NOT NULL
            )
            """
        )

        # ── settings ─────────────────────────────────────────────
        c.execute(
            """
            CREATE TABLE IF NOT EXISTS settings (
                key         TEXT PRIMARY KEY,
                value       TEXT NOT NULL,
                type        TEXT NOT NULL DEFAULT 'string',
                category    TEXT,
                description TEXT
            )
            """
        )

        # ── indexes ──────────────────────────────────────────────
        c.execute(
            "CREATE INDEX IF NOT EXISTS idx_performance_metrics_timestamp "
            "ON performance_metrics(timestamp)"
        )
        c.execute(
            "CREATE INDEX IF NOT EXISTS idx_performance_alerts_created_at "
            "ON performance_alerts(created_at)"
        )
        c.execute(
            "CREATE INDEX IF NOT EXISTS idx_flow_quality_flow ON flow_quality_metrics(flow_id)"
        )
        c.execute(
            "CREATE INDEX IF NOT EXISTS idx_flow_quality_created_at "
            "ON flow_quality_metrics(created_at)"
        )
        c.execute(
            "CREATE INDEX IF NOT EXISTS idx_node_quality_flow ON node_quality_metrics(flow_id)"
        )
        c.execute(
            "CREATE INDEX IF NOT EXISTS idx_node_quality_node ON node_quality_metrics(node_id)"
        )

        c.commit()
        seed_defaults(c)

    # ── statistics ────────────────────────────────────────────────

    def stats(self) -> dict[str, int]:
        """Row counts per table, as shown on the database status page."""
        c = self.conn
        return {
            "performanceMetrics": c.execute("SELECT COUNT(*) FROM performance_metrics").fetchone()[0],
            "performanceAlerts": c.execute("SELECT COUNT(*) FROM performance_alerts").fetchone()[0],
            "qualityMetrics": c.execute("SELECT COUNT(*) FROM flow_quality_metrics").fetchone()[0],
            "nodeMetrics": c.execute("SELECT COUNT(*) FROM node_quality_metrics").fetchone()[0],
        }
