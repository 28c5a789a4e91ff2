"""CLI entry point: registers all subcommands."""

from pathlib import Path
from typing import Optional

import typer

from .. import __version__
from ..exceptions import FlowscopeError
from ..logging_config import setup_logging
from ._common import console, resolve_config

app = typer.Typer(
    name="flowscope",
    help="flowscope - function-node quality scanner and runtime health monitor",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"flowscope {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "-c", "--config", help="TOML config file", exists=True, dir_okay=False
    ),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable DEBUG logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also write logs to this file"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    """
    Scan Node-RED function nodes for debugging residue and watch process health.

    [bold cyan]Examples:[/bold cyan]

      flowscope scan ~/.node-red/flows.json

      flowscope check snippet.js --level 3

      flowscope serve --flows ~/.node-red/flows.json
    """
    setup_logging(verbose=verbose, quiet=quiet, log_file=str(log_file) if log_file else None)
    try:
        cfg = resolve_config(config=config, db=db, verbose=verbose, quiet=quiet)
    except FlowscopeError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(2)
    ctx.obj = {"config": cfg, "config_file": config}


# Import subcommands to register them
from .scan import scan as _scan  # noqa: F401, E402
from .check import check as _check  # noqa: F401, E402
from .monitor import monitor as _monitor  # noqa: F401, E402
from .alerts import alerts as _alerts  # noqa: F401, E402
from .prune import prune as _prune  # noqa: F401, E402
from .serve import serve as _serve  # noqa: F401, E402
