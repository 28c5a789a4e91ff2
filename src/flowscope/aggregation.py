"""Flow-level aggregation of unit scores."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Optional, Sequence

from .detection.scoring import has_critical, quality_grade
from .models import FlowRecord, UnitRecord, now_ms

# A flow with any critical unit reports at most this score
CRITICAL_SCORE_CAP = 50.0


def aggregate_flow(
    flow_id: str,
    flow_name: str,
    units: Sequence[UnitRecord],
    created_at: Optional[int] = None,
) -> Optional[FlowRecord]:
    """Combine one flow's unit records into a flow record.

    Quality and complexity are plain means over units. One unit with a
    critical issue caps the flow's quality at ``CRITICAL_SCORE_CAP``
    however clean the others are.

    Returns:
        The aggregate, or ``None`` for a flow without units.
    """
    if not units:
        return None

    total_units = len(units)
    total_issues = sum(unit.issues_count for unit in units)
    nodes_with_issues = sum(1 for unit in units if unit.issues)
    nodes_with_critical = sum(1 for unit in units if has_critical(unit.issues))

    quality = sum(unit.quality_score for unit in units) / total_units
    if nodes_with_critical > 0:
        quality = min(quality, CRITICAL_SCORE_CAP)
    complexity = sum(unit.complexity_score for unit in units) / total_units

    issue_types = Counter(issue.type.tag for unit in units for issue in unit.issues)

    return FlowRecord(
        flow_id=flow_id,
        flow_name=flow_name,
        total_issues=total_issues,
        nodes_with_issues=nodes_with_issues,
        nodes_with_critical_issues=nodes_with_critical,
        total_units=total_units,
        quality_score=round(max(0.0, quality), 2),
        complexity_score=round(complexity, 2),
        issue_types=dict(sorted(issue_types.items())),
        created_at=created_at if created_at is not None else now_ms(),
    )


@dataclass
class QualitySummary:
    """Installation-wide quality roll-up across the latest flow records."""

    average_quality_score: float
    quality_grade: str
    total_issues: int
    total_flows: int
    total_units: int
    nodes_with_issues: int
    critical_issues: int
    technical_debt_ratio: float

    def to_dict(self) -> dict:
        return {
            "averageQualityScore": self.average_quality_score,
            "qualityGrade": self.quality_grade,
            "totalIssues": self.total_issues,
            "totalFlows": self.total_flows,
            "totalFunctionNodes": self.total_units,
            "nodesWithIssues": self.nodes_with_issues,
            "criticalIssues": self.critical_issues,
            "technicalDebtRatio": self.technical_debt_ratio,
        }


def summarize_flows(records: Sequence[FlowRecord]) -> QualitySummary:
    """Roll flow records up, weighting each flow by its unit count.

    With no records the installation counts as perfectly clean (100).
    """
    total_units = sum(r.total_units for r in records)
    total_issues = sum(r.total_issues for r in records)
    weighted = sum(r.quality_score * r.total_units for r in records)

    score = weighted / total_units if total_units > 0 else 100.0
    debt_ratio = total_issues / total_units if total_units > 0 else 0.0

    return QualitySummary(
        average_quality_score=round(score, 2),
        quality_grade=quality_grade(score),
        total_issues=total_issues,
        total_flows=len(records),
        total_units=total_units,
        nodes_with_issues=sum(r.nodes_with_issues for r in records),
        critical_issues=sum(r.nodes_with_critical_issues for r in records),
        technical_debt_ratio=round(debt_ratio, 3),
    )
