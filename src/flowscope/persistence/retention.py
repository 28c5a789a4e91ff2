"""Retention bound for telemetry samples and alerts."""

import sqlite3
from dataclasses import dataclass
from typing import Optional

from ..exceptions import PersistenceError
from ..logging_config import get_logger
from ..models import now_ms as _now_ms

logger = get_logger(__name__)

DAY_MS = 24 * 60 * 60 * 1000


@dataclass(frozen=True)
class PruneResult:
    retention_days: float
    cutoff: int
    metrics_deleted: int
    alerts_deleted: int

    @property
    def message(self) -> str:
        return (
            f"Pruned {self.metrics_deleted} performance metrics and {self.alerts_deleted} "
            f"alerts older than {self.retention_days:g} days"
        )


def prune_old_data(
    conn: sqlite3.Connection, retention_days: float, now_ms: Optional[int] = None
) -> PruneResult:
    """Delete samples and alerts older than ``now - retention_days``.

    Rows stamped exactly at the cutoff are kept. Quality history is not
    touched: the latest record per flow must survive however old it is.
    """
    now = now_ms if now_ms is not None else _now_ms()
    cutoff = int(now - retention_days * DAY_MS)

    try:
        metrics = conn.execute(
            "DELETE FROM performance_metrics WHERE timestamp < ?", (cutoff,)
        ).rowcount
        alerts = conn.execute(
            "DELETE FROM performance_alerts WHERE created_at < ?", (cutoff,)
        ).rowcount
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise PersistenceError("prune_old_data", str(e)) from e

    result = PruneResult(
        retention_days=retention_days,
        cutoff=cutoff,
        metrics_deleted=metrics,
        alerts_deleted=alerts,
    )
    logger.info(result.message)
    return result
