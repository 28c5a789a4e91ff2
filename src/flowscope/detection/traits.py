"""Trait catalog: issue types, severities and the Issue record.

Each ``IssueType`` member carries the detection level that surfaces it,
its severity and its message template, so the detector, the scorer and the
status-hint mapping all read from the same table.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class Severity(str, Enum):
    """How much a trait matters for unit health."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class IssueType(Enum):
    """Closed catalog of detectable traits.

    Value tuple: (tag, detection level, severity, message template).
    """

    TOP_LEVEL_RETURN = (
        "top-level-return",
        1,
        Severity.CRITICAL,
        "Bare return at top level stops the function before it does any work",
    )
    CONSOLE_LOG = (
        "console-log",
        2,
        Severity.WARNING,
        "console.{method}() call left in code",
    )
    NODE_WARN = (
        "node-warn",
        2,
        Severity.WARNING,
        "node.{method}() debug output left in code",
    )
    DEBUGGER_STATEMENT = (
        "debugger-statement",
        2,
        Severity.CRITICAL,
        "debugger statement will pause execution",
    )
    TODO_COMMENT = (
        "todo-comment",
        2,
        Severity.WARNING,
        "{marker} comment marks unfinished work",
    )
    UNUSED_VARIABLE = (
        "unused-variable",
        3,
        Severity.INFO,
        "Variable '{name}' is declared but never used",
    )
    HARDCODED_TEST = (
        "hardcoded-test",
        3,
        Severity.INFO,
        "Hardcoded test value '{value}'",
    )
    MULTIPLE_EMPTY_LINES = (
        "multiple-empty-lines",
        3,
        Severity.INFO,
        "{count} consecutive empty lines",
    )

    def __init__(self, tag: str, level: int, severity: Severity, template: str) -> None:
        self.tag = tag
        self.level = level
        self.severity = severity
        self.template = template

    def __str__(self) -> str:
        return self.tag

    def message(self, **params: Any) -> str:
        return self.template.format(**params)

    @classmethod
    def from_tag(cls, tag: str) -> "IssueType":
        for member in cls:
            if member.tag == tag:
                return member
        raise ValueError(f"Unknown issue type: {tag!r}")


@dataclass(frozen=True)
class Issue:
    """A single detected trait."""

    type: IssueType
    message: str
    line: Optional[int] = None

    @property
    def severity(self) -> Severity:
        return self.type.severity

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.tag,
            "message": self.message,
            "line": self.line,
            "severity": self.type.severity.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Issue":
        return cls(
            type=IssueType.from_tag(data["type"]),
            message=data.get("message", ""),
            line=data.get("line"),
        )
