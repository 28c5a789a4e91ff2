"""Quality scoring: complexity, per-unit quality, grades and status hints.

All tunable numbers live in the module constants below. The binding
contract is the shape, not the exact values:

- complexity is non-negative and grows with branching, loops and nesting
- unit quality stays in [0, 100] and never rises as issues accumulate
- grades step down as the score falls

The density term (``DENSITY_WEIGHT * decisions / lines``) rewards spreading
the same branching over more lines: adding plain statements to a unit
lowers its complexity, while adding a branch never does. Size alone is
therefore not a complexity driver; unit length is handled by the size
factor in ``node_quality_score`` instead.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Sequence, Union

from .lexer import lex
from .traits import Issue, IssueType, Severity

# Points removed per issue, before size scaling
SEVERITY_WEIGHTS: dict[Severity, float] = {
    Severity.CRITICAL: 30.0,
    Severity.WARNING: 8.0,
    Severity.INFO: 2.0,
}

# Maximum total penalty a single severity class can contribute
SEVERITY_CAPS: dict[Severity, float] = {
    Severity.CRITICAL: 100.0,
    Severity.WARNING: 50.0,
    Severity.INFO: 20.0,
}

# Units longer than this get their warning/info weights scaled down
SIZE_REFERENCE_LINES = 50
MIN_SIZE_FACTOR = 0.5

# (minimum score, grade), checked top to bottom
GRADE_BANDS: tuple[tuple[float, str], ...] = (
    (90.0, "A"),
    (75.0, "B"),
    (50.0, "C"),
    (25.0, "D"),
)
FAILING_GRADE = "F"

NESTING_WEIGHT = 0.5
# Decisions per line; more plain lines dilute it
DENSITY_WEIGHT = 10.0

_DECISION_KEYWORDS = re.compile(r"(?<![\w$.])(if|for|while|case|catch|do)(?![\w$])")
_DECISION_OPERATORS = re.compile(r"&&|\|\||\?\?|\?(?![.?])")


@dataclass(frozen=True)
class StatusHint:
    """Presentation hint for a scored unit (colour of the status dot)."""

    color: str  # "red" | "yellow" | "blue" | "none"
    text: str

    @property
    def is_clear(self) -> bool:
        return self.color == "none"


STATUS_SEVERE = StatusHint("red", "Severe debugging traits")
STATUS_IMPORTANT = StatusHint("yellow", "Important debugging traits")
STATUS_MINOR = StatusHint("blue", "Minor debug traits noticed")
STATUS_CLEAN = StatusHint("none", "")


def count_lines(source: str) -> int:
    """Lines of code as the dashboard reports them (physical lines)."""
    if not source:
        return 0
    return len(source.split("\n"))


def complexity_score(source: str) -> float:
    """Estimate structural complexity of a unit.

    decisions + 0.5 * max nesting depth + 10 * decisions / lines

    Decisions are branch and loop keywords plus short-circuit and ternary
    operators found in code (strings and comments excluded).
    """
    if not isinstance(source, str) or not source.strip():
        return 0.0

    lines = lex(source)
    decisions = 0
    max_depth = 0
    for line in lines:
        decisions += len(_DECISION_KEYWORDS.findall(line.code))
        decisions += len(_DECISION_OPERATORS.findall(line.code))
        max_depth = max(max_depth, _max_depth(line.start_depth, line.code))

    loc = max(len(lines), 1)
    score = decisions + NESTING_WEIGHT * max_depth + DENSITY_WEIGHT * decisions / loc
    return round(score, 2)


def _max_depth(start: int, code: str) -> int:
    depth = peak = start
    for ch in code:
        if ch == "{":
            depth += 1
            peak = max(peak, depth)
        elif ch == "}":
            depth = max(0, depth - 1)
    return peak


def node_quality_score(issues: Sequence[Issue], lines_of_code: int) -> float:
    """Score a unit from 100 down to 0 by its issues.

    Each issue costs its severity weight. Warning and info weights shrink
    for units longer than ``SIZE_REFERENCE_LINES``; critical weights never
    do. Every severity class is capped, so a pile of informational issues
    cannot sink a unit on its own.
    """
    counts = Counter(issue.type.severity for issue in issues)
    size_factor = _size_factor(lines_of_code)

    penalty = 0.0
    for severity, count in counts.items():
        weight = SEVERITY_WEIGHTS[severity]
        if severity is not Severity.CRITICAL:
            weight *= size_factor
        penalty += min(SEVERITY_CAPS[severity], weight * count)

    return round(max(0.0, min(100.0, 100.0 - penalty)), 2)


def _size_factor(lines_of_code: int) -> float:
    if lines_of_code <= SIZE_REFERENCE_LINES:
        return 1.0
    return max(MIN_SIZE_FACTOR, SIZE_REFERENCE_LINES / lines_of_code)


def quality_grade(score: float) -> str:
    """Letter grade for a 0-100 score using ``GRADE_BANDS``."""
    for minimum, grade in GRADE_BANDS:
        if score >= minimum:
            return grade
    return FAILING_GRADE


def severity_of(issue_type: Union[IssueType, str]) -> Severity:
    """Severity for an issue type or its string tag.

    Raises:
        ValueError: for a tag outside the catalog
    """
    if isinstance(issue_type, IssueType):
        return issue_type.severity
    return IssueType.from_tag(issue_type).severity


def summarize_by_severity(issues: Iterable[Issue]) -> dict[Severity, int]:
    """Issue counts per severity, with every severity present."""
    counts = {severity: 0 for severity in Severity}
    for issue in issues:
        counts[issue.type.severity] += 1
    return counts


def has_critical(issues: Iterable[Issue]) -> bool:
    return any(issue.type.severity is Severity.CRITICAL for issue in issues)


def status_hint(issues: Sequence[Issue]) -> StatusHint:
    """Colour-coded status for a unit, driven only by its issue severities."""
    severities = {issue.type.severity for issue in issues}
    if Severity.CRITICAL in severities:
        return STATUS_SEVERE
    if Severity.WARNING in severities:
        return STATUS_IMPORTANT
    if Severity.INFO in severities:
        return STATUS_MINOR
    return STATUS_CLEAN
