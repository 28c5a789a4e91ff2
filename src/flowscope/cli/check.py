"""``flowscope check`` -- score a single source file without storing anything."""

import json
from pathlib import Path
from typing import Optional

import typer

from ..detection import (
    complexity_score,
    count_lines,
    detect_traits,
    node_quality_score,
    quality_grade,
    status_hint,
)
from . import app
from ._common import console, get_config, styled_grade, styled_hint, styled_severity


@app.command()
def check(
    ctx: typer.Context,
    file: Path = typer.Argument(
        ..., help="Function-node source file", exists=True, dir_okay=False, readable=True
    ),
    level: Optional[int] = typer.Option(
        None, "--level", "-l", min=1, max=3, help="Detection level (default: from config)"
    ),
    fail_under: Optional[float] = typer.Option(
        None,
        "--fail-under",
        min=0,
        max=100,
        help="Exit with code 1 when the quality score is below this value",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
) -> None:
    """
    Detect debugging traits in one file and print its score.

    [bold cyan]Examples:[/bold cyan]

      flowscope check node.js

      flowscope check node.js --level 3 --fail-under 75
    """
    cfg = get_config(ctx)
    detection_level = level if level is not None else cfg.detection_level

    try:
        source = file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]Cannot read {file}:[/red] {e}")
        raise typer.Exit(1)

    issues = detect_traits(source, detection_level)
    lines = count_lines(source)
    score = node_quality_score(issues, lines)
    grade = quality_grade(score)

    if json_output:
        print(
            json.dumps(
                {
                    "file": str(file),
                    "linesOfCode": lines,
                    "complexityScore": complexity_score(source),
                    "qualityScore": score,
                    "qualityGrade": grade,
                    "issues": [i.to_dict() for i in issues],
                },
                indent=2,
            )
        )
    else:
        console.print()
        console.print(
            f"[bold]{file}[/bold]  score [bold]{score:.2f}[/bold] {styled_grade(grade)}  "
            f"complexity {complexity_score(source):.2f}  {lines} line(s)"
        )
        for issue in issues:
            where = f"line {issue.line}" if issue.line is not None else "-"
            console.print(f"  {where:>9}  {styled_severity(issue.severity)}  {issue.message}")
        if issues:
            console.print(f"  {styled_hint(status_hint(issues))}")
        else:
            console.print("  [green]No issues found[/green]")
        console.print()

    if fail_under is not None and score < fail_under:
        raise typer.Exit(1)
