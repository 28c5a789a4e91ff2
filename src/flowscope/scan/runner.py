"""One scan pass: collect, detect, score, persist, aggregate."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from ..aggregation import aggregate_flow
from ..detection import (
    StatusHint,
    complexity_score,
    count_lines,
    detect_traits,
    node_quality_score,
    status_hint,
)
from ..exceptions import CollectorError, PartialScanError, PersistenceError
from ..logging_config import get_logger
from ..models import FlowRecord, UnitRecord, now_ms
from ..persistence.database import AnalyzerDB
from ..persistence.writer import save_flow_record, save_unit_record
from .collector import SourceCollector, UnitSource

logger = get_logger(__name__)

StatusCallback = Callable[[UnitRecord, StatusHint], None]


@dataclass
class ScanReport:
    """What a completed pass produced."""

    started_at: int
    units: list[UnitRecord] = field(default_factory=list)
    flows: list[FlowRecord] = field(default_factory=list)
    skipped_units: list[str] = field(default_factory=list)
    persistence_failures: int = 0

    @property
    def flows_processed(self) -> int:
        return len(self.flows)

    def to_dict(self) -> dict:
        return {
            "startedAt": self.started_at,
            "unitsScanned": len(self.units),
            "flowsProcessed": self.flows_processed,
            "skippedUnits": list(self.skipped_units),
            "persistenceFailures": self.persistence_failures,
        }


def scan_unit(unit: UnitSource, detection_level: int, created_at: Optional[int] = None) -> UnitRecord:
    """Detect and score a single unit. Pure apart from the timestamp."""
    issues = detect_traits(unit.source, detection_level)
    lines = count_lines(unit.source)
    return UnitRecord(
        flow_id=unit.flow_id,
        unit_id=unit.unit_id,
        unit_name=unit.unit_name,
        lines_of_code=lines,
        complexity_score=complexity_score(unit.source),
        quality_score=node_quality_score(issues, lines),
        issues=tuple(issues),
        created_at=created_at if created_at is not None else now_ms(),
    )


def run_scan_pass(
    collector: SourceCollector,
    db: AnalyzerDB,
    detection_level: int,
    on_status: Optional[StatusCallback] = None,
    on_completing: Optional[Callable[[], None]] = None,
) -> ScanReport:
    """Run one scan pass against an open database.

    Units are scored and written one by one; a failing unit is logged and
    skipped, and a failing write is logged and absorbed. Flow records are
    built only once every unit of the pass has been scored, and flows
    without units produce no record.

    Raises:
        PartialScanError: the collector failed; nothing from this pass
            has been written.
    """
    try:
        snapshot = collector.collect()
    except CollectorError as e:
        raise PartialScanError(str(e), cause=e) from e

    started = now_ms()
    report = ScanReport(started_at=started)
    flow_names = {flow.flow_id: flow.flow_name for flow in snapshot.flows}
    scored: dict[str, list[UnitRecord]] = {flow_id: [] for flow_id in flow_names}

    for flow_id, units in snapshot.units_by_flow().items():
        for unit in units:
            try:
                record = scan_unit(unit, detection_level, created_at=started)
            except Exception:
                logger.exception("Error analyzing unit %s", unit.unit_id)
                report.skipped_units.append(unit.unit_id)
                continue

            try:
                save_unit_record(db.conn, record)
            except PersistenceError as e:
                report.persistence_failures += 1
                logger.error("Failed to store unit %s: %s", unit.unit_id, e)

            scored[flow_id].append(record)
            report.units.append(record)
            if on_status is not None:
                try:
                    on_status(record, status_hint(record.issues))
                except Exception:
                    logger.exception("Status callback failed for unit %s", unit.unit_id)

    if on_completing is not None:
        on_completing()

    for flow_id, records in scored.items():
        flow = aggregate_flow(flow_id, flow_names[flow_id], records, created_at=started)
        if flow is None:
            continue
        try:
            save_flow_record(db.conn, flow)
        except PersistenceError as e:
            report.persistence_failures += 1
            logger.error("Failed to store flow %s: %s", flow_id, e)
        report.flows.append(flow)

    logger.info("Scan completed: %d flows processed", report.flows_processed)
    return report
