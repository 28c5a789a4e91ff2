"""Shared CLI helpers."""

from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console

from ..config import AnalyzerConfig, load_config
from ..detection import Severity, StatusHint

console = Console()

_GRADE_STYLES = {"A": "green", "B": "green", "C": "yellow", "D": "red", "F": "bold red"}

_SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "blue",
    "critical": "bold red",
    "warning": "yellow",
    "info": "blue",
}


def resolve_config(
    config: Optional[Path] = None,
    db: Optional[Path] = None,
    verbose: bool = False,
    quiet: bool = False,
    **overrides: Any,
) -> AnalyzerConfig:
    """Build configuration from CLI options."""
    if db is not None:
        overrides["db_path"] = str(db)
    return load_config(config_file=config, verbose=verbose, quiet=quiet, **overrides)


def get_config(ctx: typer.Context) -> AnalyzerConfig:
    return ctx.obj["config"]


def styled_grade(grade: str) -> str:
    style = _GRADE_STYLES.get(grade, "white")
    return f"[{style}]{grade}[/{style}]"


def styled_severity(severity: Any) -> str:
    style = _SEVERITY_STYLES.get(severity, "white")
    label = severity.value if isinstance(severity, Severity) else str(severity)
    return f"[{style}]{label}[/{style}]"


def styled_hint(hint: StatusHint) -> str:
    if hint.is_clear:
        return "[green]clean[/green]"
    return f"[{hint.color}]{hint.text}[/{hint.color}]"
