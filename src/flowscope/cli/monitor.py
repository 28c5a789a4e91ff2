"""``flowscope monitor`` -- sample this process and alert on sustained breaches."""

import asyncio
from dataclasses import replace
from typing import Optional

import typer

from ..config import AnalyzerConfig
from ..telemetry import PerformanceMonitor, TickResult
from . import app
from ._common import console, get_config


@app.command()
def monitor(
    ctx: typer.Context,
    samples: int = typer.Option(
        0, "--samples", "-n", min=0, help="Stop after this many samples (0 = until Ctrl+C)"
    ),
    interval: Optional[float] = typer.Option(
        None, "--interval", "-i", help="Seconds between samples (default: from config)"
    ),
) -> None:
    """
    Run the performance monitor in the foreground.

    Each sample is stored; alerts are recorded when a threshold is exceeded
    for the configured sustained duration.

    [bold cyan]Examples:[/bold cyan]

      flowscope monitor --samples 30 --interval 2
    """
    cfg = get_config(ctx)
    if interval is not None:
        cfg = replace(cfg, performance_interval=interval)

    if not cfg.sampling_enabled:
        console.print(
            f"[red]Sampling disabled:[/red] interval {cfg.performance_interval} must be positive"
        )
        raise typer.Exit(1)

    try:
        asyncio.run(_run(cfg, samples))
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")


async def _run(cfg: AnalyzerConfig, samples: int) -> None:
    perf = PerformanceMonitor(cfg, cfg.db_path)
    perf.active_thresholds()  # report unusable thresholds up front
    taken = 0
    while samples == 0 or taken < samples:
        _print_tick(await perf.tick())
        taken += 1
        if samples == 0 or taken < samples:
            await asyncio.sleep(cfg.performance_interval)


def _print_tick(result: TickResult) -> None:
    s = result.sample
    stored = "" if result.persisted else "  [red](not stored)[/red]"
    console.print(
        f"cpu [bold]{s.cpu_percent:6.2f}%[/bold]  "
        f"mem [bold]{s.memory_percent:6.2f}%[/bold]  "
        f"lag [bold]{s.event_loop_lag_ms:7.3f} ms[/bold]{stored}"
    )
    for alert in result.alerts:
        console.print(
            f"  [red]ALERT[/red] {alert.metric_type} averaged {alert.actual_value:.2f} "
            f"over {alert.duration_minutes:g} min (threshold {alert.threshold_value:g})"
        )
