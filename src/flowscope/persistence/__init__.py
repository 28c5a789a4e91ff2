"""SQLite persistence for quality records, telemetry samples, alerts and settings."""

from .database import AnalyzerDB
from .retention import PruneResult, prune_old_data

__all__ = ["AnalyzerDB", "PruneResult", "prune_old_data"]
