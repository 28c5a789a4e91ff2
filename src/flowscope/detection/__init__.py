"""Trait detection and quality scoring for function-node source."""

from .detector import detect_traits
from .scoring import (
    GRADE_BANDS,
    StatusHint,
    complexity_score,
    count_lines,
    has_critical,
    node_quality_score,
    quality_grade,
    severity_of,
    status_hint,
    summarize_by_severity,
)
from .traits import Issue, IssueType, Severity

__all__ = [
    "detect_traits",
    "Issue",
    "IssueType",
    "Severity",
    "StatusHint",
    "GRADE_BANDS",
    "complexity_score",
    "count_lines",
    "has_critical",
    "node_quality_score",
    "quality_grade",
    "severity_of",
    "status_hint",
    "summarize_by_severity",
]
