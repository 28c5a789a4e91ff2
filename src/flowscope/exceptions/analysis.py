"""Analysis-related exceptions: unreadable input, source collection, aborted passes."""

from typing import Optional

from .base import FlowscopeError


class AnalysisError(FlowscopeError):
    """Base class for analysis-related errors."""
    pass


class InputError(AnalysisError):
    """Raised when a unit's source text is empty or cannot be scanned.

    The detector itself never lets this escape; it is used internally to
    short-circuit to an empty issue list.
    """

    def __init__(self, reason: str, unit_id: Optional[str] = None):
        details = {"reason": reason}
        if unit_id is not None:
            details["unit_id"] = unit_id
        super().__init__(f"Unscannable source: {reason}", details=details)
        self.reason = reason
        self.unit_id = unit_id


class CollectorError(AnalysisError):
    """Raised when the source collector cannot enumerate flows or units."""

    def __init__(self, source: str, reason: str):
        super().__init__(
            f"Cannot collect sources from {source}",
            details={"source": source, "reason": reason},
        )
        self.source = source
        self.reason = reason


class PartialScanError(AnalysisError):
    """Raised when a scan pass is aborted before any of its results are committed."""

    def __init__(self, reason: str, cause: Optional[BaseException] = None):
        super().__init__(f"Scan pass aborted: {reason}", details={"reason": reason})
        self.reason = reason
        self.cause = cause
