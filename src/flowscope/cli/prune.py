"""``flowscope prune`` -- apply the retention bound to samples and alerts."""

from typing import Optional

import typer

from ..exceptions import PersistenceError
from ..persistence import AnalyzerDB, prune_old_data
from . import app
from ._common import console, get_config


@app.command()
def prune(
    ctx: typer.Context,
    days: Optional[int] = typer.Option(
        None, "--days", "-d", min=1, help="Retention in days (default: from config)"
    ),
) -> None:
    """Delete performance samples and alerts older than the retention period."""
    cfg = get_config(ctx)
    retention = days if days is not None else cfg.db_retention_days
    try:
        with AnalyzerDB(cfg.db_path) as db:
            result = prune_old_data(db.conn, retention)
    except PersistenceError as e:
        console.print(f"[red]Database error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]{result.message}[/green]")
