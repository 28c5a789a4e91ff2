"""``flowscope scan`` -- score every function node in a flows.json export."""

import json
from pathlib import Path
from typing import Optional

import typer

from ..detection import quality_grade, status_hint
from ..exceptions import PartialScanError, PersistenceError
from ..persistence.database import AnalyzerDB
from ..scan import FlowsFileCollector, ScanReport, run_scan_pass
from . import app
from ._common import console, get_config, styled_grade, styled_hint


@app.command()
def scan(
    ctx: typer.Context,
    flows_json: Path = typer.Argument(
        ..., help="Node-RED flows.json export", exists=True, dir_okay=False, readable=True
    ),
    level: Optional[int] = typer.Option(
        None, "--level", "-l", min=1, max=3, help="Detection level (default: from config)"
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
) -> None:
    """
    Run one scan pass and store unit and flow records in the database.

    [bold cyan]Examples:[/bold cyan]

      flowscope scan flows.json

      flowscope scan flows.json --level 3 --json
    """
    cfg = get_config(ctx)
    detection_level = level if level is not None else cfg.detection_level

    try:
        with AnalyzerDB(cfg.db_path) as db:
            report = run_scan_pass(FlowsFileCollector(flows_json), db, detection_level)
    except PartialScanError as e:
        console.print(f"[red]Scan aborted:[/red] {e}")
        raise typer.Exit(1)
    except PersistenceError as e:
        console.print(f"[red]Database error:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        _output_json(report)
    else:
        _output_rich(report, detection_level)


def _output_json(report: ScanReport) -> None:
    """Machine-readable JSON output."""
    data = report.to_dict()
    data["flows"] = [
        {
            "flowId": f.flow_id,
            "flowName": f.flow_name,
            "qualityScore": f.quality_score,
            "qualityGrade": quality_grade(f.quality_score),
            "totalIssues": f.total_issues,
            "criticalNodes": f.nodes_with_critical_issues,
            "issueTypes": f.issue_types,
        }
        for f in report.flows
    ]
    data["units"] = [
        {
            "flowId": u.flow_id,
            "nodeId": u.unit_id,
            "nodeName": u.unit_name,
            "qualityScore": u.quality_score,
            "issues": [i.to_dict() for i in u.issues],
        }
        for u in report.units
    ]
    print(json.dumps(data, indent=2))


def _output_rich(report: ScanReport, detection_level: int) -> None:
    """Human-readable Rich table output."""
    from rich.table import Table

    if not report.flows:
        console.print("[yellow]No function nodes found.[/yellow]")
        return

    flows = Table(title=f"Flow Quality (level {detection_level})", pad_edge=True)
    flows.add_column("Flow", style="bold")
    flows.add_column("Score", justify="right")
    flows.add_column("Grade", justify="center")
    flows.add_column("Nodes", justify="right")
    flows.add_column("Issues", justify="right", style="yellow")
    flows.add_column("Critical", justify="right", style="red")

    for f in sorted(report.flows, key=lambda f: f.quality_score):
        flows.add_row(
            f.flow_name,
            f"{f.quality_score:.2f}",
            styled_grade(quality_grade(f.quality_score)),
            str(f.total_units),
            str(f.total_issues),
            str(f.nodes_with_critical_issues),
        )

    console.print()
    console.print(flows)

    flagged = [u for u in report.units if u.issues]
    if flagged:
        units = Table(title="Flagged Nodes", pad_edge=True)
        units.add_column("Node", style="bold")
        units.add_column("Score", justify="right")
        units.add_column("Issues", justify="right")
        units.add_column("Status")
        for u in sorted(flagged, key=lambda u: u.quality_score):
            units.add_row(
                u.unit_name,
                f"{u.quality_score:.2f}",
                str(u.issues_count),
                styled_hint(status_hint(u.issues)),
            )
        console.print(units)

    if report.skipped_units:
        console.print(f"[yellow]{len(report.skipped_units)} node(s) could not be analyzed[/yellow]")
    if report.persistence_failures:
        console.print(
            f"[yellow]{report.persistence_failures} record(s) could not be stored[/yellow]"
        )
    console.print()
