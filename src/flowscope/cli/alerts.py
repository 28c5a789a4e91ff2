"""``flowscope alerts`` -- recent alerts, window averages and trends."""

import json

import typer

from ..exceptions import PersistenceError
from ..models import MetricType
from ..persistence.database import AnalyzerDB
from ..persistence.reader import alert_history
from ..telemetry import TelemetryAnalyzer, Trend, describe_alert
from . import app
from ._common import console, get_config, styled_severity

_TREND_STYLES = {
    Trend.INCREASING: "red",
    Trend.DECREASING: "green",
    Trend.STABLE: "white",
    Trend.INSUFFICIENT_DATA: "dim",
}


@app.command()
def alerts(
    ctx: typer.Context,
    limit: int = typer.Option(
        10,
        "--limit",
        "-n",
        help="Maximum number of alerts to list",
        min=1,
        max=1000,
    ),
    window: float = typer.Option(
        10, "--window", "-w", min=1, help="Minutes covered by the averages"
    ),
    trend_window: float = typer.Option(
        60, "--trend-window", min=1, help="Minutes covered by the trend classification"
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
) -> None:
    """
    List recent alerts with their severity, plus current averages and trends.

    [bold cyan]Examples:[/bold cyan]

      flowscope alerts

      flowscope alerts --limit 50 --json
    """
    cfg = get_config(ctx)
    try:
        with AnalyzerDB(cfg.db_path) as db:
            analyzer = TelemetryAnalyzer(db.conn)
            averages = analyzer.averages(window)
            trends = {m: analyzer.trend(m, trend_window) for m in MetricType}
            rows = [describe_alert(a) for a in alert_history(db.conn, limit=limit)]
    except PersistenceError as e:
        console.print(f"[red]Database error:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        print(
            json.dumps(
                {
                    "averages": averages.to_dict(),
                    "trends": {m.value: t.value for m, t in trends.items()},
                    "alerts": rows,
                },
                indent=2,
            )
        )
        return

    from rich.table import Table

    console.print()
    for metric in MetricType:
        t = trends[metric]
        style = _TREND_STYLES[t]
        console.print(
            f"  {metric.value:<10} avg {averages.value(metric):8.2f}  "
            f"trend [{style}]{t.value}[/{style}]"
        )
    console.print()

    if not rows:
        console.print("[green]No alerts recorded.[/green]")
        return

    table = Table(title="Performance Alerts", pad_edge=True)
    table.add_column("ID", style="bold", justify="right")
    table.add_column("Metric", style="cyan")
    table.add_column("Actual", justify="right")
    table.add_column("Threshold", justify="right")
    table.add_column("Minutes", justify="right")
    table.add_column("Severity")
    for row in rows:
        table.add_row(
            str(row["id"]),
            row["metric_type"],
            f"{row['actual_value']:.2f}",
            f"{row['threshold_value']:g}",
            f"{row['duration_minutes']:g}",
            styled_severity(row["severity"]),
        )
    console.print(table)
    console.print()
