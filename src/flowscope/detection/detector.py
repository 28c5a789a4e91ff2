"""Trait detector: source text + detection level -> ordered issues.

Detection is heuristic and line-oriented. Every trait in the catalog is
looked for regardless of level; the level only filters the final list, so
a wider level always returns a superset of a narrower one.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterator

from ..exceptions import InputError
from .lexer import SourceLine, lex
from .traits import Issue, IssueType

MIN_LEVEL = 1
MAX_LEVEL = 3

_RETURN = re.compile(r"(?<![\w$.])return(?![\w$])")
_CONSOLE = re.compile(r"(?<![\w$.])console\s*\.\s*(log|info|debug|error|warn|trace)\s*\(")
_NODE_WARN = re.compile(r"(?<![\w$.])node\s*\.\s*(warn|debug)\s*\(")
_DEBUGGER = re.compile(r"(?<![\w$.])debugger(?![\w$])")
_TODO = re.compile(r"\b(TODO|FIXME|XXX|HACK)\b")
_DECLARATION = re.compile(r"(?<![\w$.])(?:var|let|const)\s+([A-Za-z_$][\w$]*)")
_IDENTIFIER = re.compile(r"(?<![\w$.])([A-Za-z_$][\w$]*)")
_CONTROL_HEADER = re.compile(r"(?<![\w$.])(?:if|for|while)\s*\(")
_BARE_CONTROL = re.compile(r"(?<![\w$.])(?:else|do)$")

PLACEHOLDER_VALUES = frozenset(
    {
        "test",
        "testing",
        "foo",
        "bar",
        "baz",
        "foobar",
        "dummy",
        "placeholder",
        "asdf",
        "qwerty",
        "xxx",
        "changeme",
        "1234",
        "12345",
        "123456",
        "password",
        "lorem ipsum",
        "hello world",
    }
)
_PLACEHOLDER_PATTERNS = (
    re.compile(r"^(?:test|dummy|fake|mock)[\s_-]\w+$"),
    re.compile(r"^[\w.+-]+@(?:example|test)\.(?:com|org|net)$"),
    re.compile(r"^lorem ipsum\b"),
)


def detect_traits(source: str, detection_level: int = 1) -> list[Issue]:
    """Detect debugging traits in one unit of source.

    Args:
        source: Function-node body
        detection_level: 1 (critical only) to 3 (everything). Out-of-range
            values are clamped.

    Returns:
        Issues ordered by line number, then by detection order within the
        line. Empty or non-string input yields an empty list.
    """
    level = _clamp_level(detection_level)
    try:
        lines = _prepare(source)
    except InputError:
        return []

    found = list(_scan(lines))
    # Stable sort keeps per-line detection order
    found.sort(key=lambda issue: issue.line or 0)
    return [issue for issue in found if issue.type.level <= level]


def _clamp_level(detection_level: object) -> int:
    try:
        level = int(detection_level)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return MIN_LEVEL
    return max(MIN_LEVEL, min(MAX_LEVEL, level))


def _prepare(source: object) -> list[SourceLine]:
    if not isinstance(source, str):
        raise InputError(f"expected text, got {type(source).__name__}")
    if not source.strip():
        raise InputError("empty source")
    return lex(source)


def _scan(lines: list[SourceLine]) -> Iterator[Issue]:
    usage = _identifier_usage(lines)
    blank_run: list[int] = []
    previous = ""

    for line in lines:
        if line.is_blank:
            blank_run.append(line.number)
            continue
        if len(blank_run) >= 2:
            yield _empty_lines_issue(blank_run)
        blank_run = []

        yield from _line_issues(line, usage, previous)
        if line.code.strip():
            previous = line.code

    if len(blank_run) >= 2:
        yield _empty_lines_issue(blank_run)


def _line_issues(line: SourceLine, usage: Counter, previous: str = "") -> Iterator[Issue]:
    code = line.code

    for match in _RETURN.finditer(code):
        if (
            line.depth_at(match.start()) == 0
            and _starts_statement(code[: match.start()], previous)
            and _is_bare_return(code[match.end() :])
        ):
            yield Issue(
                IssueType.TOP_LEVEL_RETURN,
                IssueType.TOP_LEVEL_RETURN.message(),
                line.number,
            )

    for match in _CONSOLE.finditer(code):
        yield Issue(
            IssueType.CONSOLE_LOG,
            IssueType.CONSOLE_LOG.message(method=match.group(1)),
            line.number,
        )

    for match in _NODE_WARN.finditer(code):
        yield Issue(
            IssueType.NODE_WARN,
            IssueType.NODE_WARN.message(method=match.group(1)),
            line.number,
        )

    for _match in _DEBUGGER.finditer(code):
        yield Issue(
            IssueType.DEBUGGER_STATEMENT,
            IssueType.DEBUGGER_STATEMENT.message(),
            line.number,
        )

    marker = _TODO.search(line.comment)
    if marker:
        yield Issue(
            IssueType.TODO_COMMENT,
            IssueType.TODO_COMMENT.message(marker=marker.group(1)),
            line.number,
        )

    for match in _DECLARATION.finditer(code):
        name = match.group(1)
        if usage[name] <= 1:
            yield Issue(
                IssueType.UNUSED_VARIABLE,
                IssueType.UNUSED_VARIABLE.message(name=name),
                line.number,
            )

    for value in line.strings:
        if _is_placeholder(value):
            yield Issue(
                IssueType.HARDCODED_TEST,
                IssueType.HARDCODED_TEST.message(value=value.strip()),
                line.number,
            )


def _starts_statement(before: str, previous: str = "") -> bool:
    """False for ``if (x) return;`` style guards, which sit in a brace-less block.

    The guard's header may also end the previous code line, as in
    ``if (!msg.payload)`` followed by an indented ``return;``.
    """
    before = before.rstrip()
    if before:
        return before[-1] in ";}"
    return not _opens_braceless_body(previous)


def _opens_braceless_body(code: str) -> bool:
    """True when *code* ends with a control header and no body of its own."""
    text = code.rstrip()
    if _BARE_CONTROL.search(text):
        return True
    if not text.endswith(")"):
        return False
    # The header's closing paren must be the last character: ``if (a) b()`` has a body
    return any(
        _closing_paren(text, match.end() - 1) == len(text) - 1
        for match in _CONTROL_HEADER.finditer(text)
    )


def _closing_paren(text: str, start: int) -> int:
    depth = 0
    for i in range(start, len(text)):
        if text[i] == "(":
            depth += 1
        elif text[i] == ")":
            depth -= 1
            if depth == 0:
                return i
    return -1


def _is_bare_return(rest: str) -> bool:
    """A return with nothing (or only a terminator) after it.

    A ``return`` at the end of a line is bare too: automatic semicolon
    insertion ends the statement there.
    """
    rest = rest.lstrip()
    return rest == "" or rest[0] in ";}"


def _identifier_usage(lines: list[SourceLine]) -> Counter:
    counts: Counter = Counter()
    for line in lines:
        counts.update(_IDENTIFIER.findall(line.code))
        for expression in line.interpolations:
            counts.update(_IDENTIFIER.findall(expression))
    return counts


def _is_placeholder(value: str) -> bool:
    text = value.strip().lower()
    if not text:
        return False
    if text in PLACEHOLDER_VALUES:
        return True
    return any(pattern.search(text) for pattern in _PLACEHOLDER_PATTERNS)


def _empty_lines_issue(run: list[int]) -> Issue:
    return Issue(
        IssueType.MULTIPLE_EMPTY_LINES,
        IssueType.MULTIPLE_EMPTY_LINES.message(count=len(run)),
        run[0],
    )
