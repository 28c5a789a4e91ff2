"""``flowscope serve`` -- dashboard API with scanning and performance monitoring."""

from pathlib import Path

import typer

from . import app
from ._common import console, get_config


@app.command()
def serve(
    ctx: typer.Context,
    flows: Path = typer.Option(
        Path("flows.json"), "--flows", "-f", help="Node-RED flows.json to scan"
    ),
    port: int = typer.Option(8765, help="Port to listen on"),
    host: str = typer.Option("127.0.0.1", help="Host to bind to"),
) -> None:
    """Serve the dashboard API; scans run on demand or on the configured interval."""
    # Check dependencies
    try:
        from ..server import _check_deps

        _check_deps()
    except ImportError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)

    import uvicorn

    from ..scan import FlowsFileCollector
    from ..server.app import create_app
    from ..service import AnalyzerService

    cfg = get_config(ctx)
    service = AnalyzerService(FlowsFileCollector(flows), config=cfg)

    url = f"http://{host}:{port}/api/status"
    console.print(f"[bold]Scanning[/bold] {flows}  database {cfg.db_path}")
    console.print(f"[bold]API[/bold] → [link={url}]{url}[/link]")
    console.print("[dim]Press Ctrl+C to stop[/dim]")

    try:
        uvicorn.run(
            create_app(service),
            host=host,
            port=port,
            log_level="info" if cfg.verbosity == "verbose" else "warning",
        )
    except KeyboardInterrupt:
        pass
    finally:
        console.print("\n[dim]Stopped.[/dim]")
