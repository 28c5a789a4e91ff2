"""Persistence exceptions."""

from typing import Optional

from .base import FlowscopeError


class PersistenceError(FlowscopeError):
    """Raised when the metrics/quality store rejects a read or write."""

    def __init__(self, operation: str, reason: str, table: Optional[str] = None):
        details = {"operation": operation, "reason": reason}
        if table is not None:
            details["table"] = table
        super().__init__(f"Store operation failed: {operation}", details=details)
        self.operation = operation
        self.reason = reason
        self.table = table
