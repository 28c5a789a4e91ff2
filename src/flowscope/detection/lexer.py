"""Line-oriented lexer for function-node source.

Splits each line into code, string literals and comment text while
tracking block comments and template literals across lines, plus brace
depth at the start of every line. This is all the structure the detector
and the complexity score need; no parse tree is built.

A ``/`` where an expression can start (line start, after an operator,
an opening bracket, a comma or a keyword such as ``return``) opens a regex
literal, which is replaced by a placeholder so quotes and braces inside it
disturb neither strings nor depth. Any other ``/`` is division. Regex
literals never span lines.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

STRING_PLACEHOLDER = '""'
REGEX_PLACEHOLDER = "/./"

_INTERPOLATION = re.compile(r"\$\{([^}]*)\}")
_REGEX_PRECEDERS = frozenset("(,=:[!&|?{};+-*%<>~^")
_REGEX_KEYWORD = re.compile(r"(?<![\w$.])(?:return|typeof|case|in|of|void|delete|new|throw)$")


@dataclass
class SourceLine:
    """One physical line after lexing."""

    number: int
    raw: str
    code: str
    comment: str
    strings: list[str] = field(default_factory=list)
    interpolations: list[str] = field(default_factory=list)
    start_depth: int = 0
    # True when the line starts inside a block comment or template literal
    continued: bool = False

    @property
    def is_blank(self) -> bool:
        return not self.continued and not self.raw.strip()

    def depth_at(self, column: int) -> int:
        """Brace depth just before *column* of ``code``."""
        prefix = self.code[:column]
        return max(0, self.start_depth + prefix.count("{") - prefix.count("}"))


def lex(source: str) -> list[SourceLine]:
    """Lex *source* into ``SourceLine`` records (1-based line numbers)."""
    result: list[SourceLine] = []
    state: str | None = None  # None, "block", or the open quote character
    buf: list[str] = []
    depth = 0

    for number, raw in enumerate(source.split("\n"), start=1):
        text = raw.rstrip("\r")
        line = SourceLine(
            number=number,
            raw=text,
            code="",
            comment="",
            start_depth=depth,
            continued=state is not None,
        )
        code: list[str] = []
        comment: list[str] = []
        i = 0
        n = len(text)

        while i < n:
            ch = text[i]
            nxt = text[i + 1] if i + 1 < n else ""

            if state == "block":
                end = text.find("*/", i)
                if end == -1:
                    comment.append(text[i:])
                    i = n
                else:
                    comment.append(text[i:end])
                    code.append(" ")
                    state = None
                    i = end + 2
                continue

            if state is not None:
                if ch == "\\":
                    buf.append(text[i : i + 2])
                    i += 2
                    continue
                if ch == state:
                    _close_string(line, state, buf, code)
                    state = None
                    buf = []
                else:
                    buf.append(ch)
                i += 1
                continue

            if ch == "/" and nxt == "/":
                comment.append(text[i + 2 :])
                break
            if ch == "/" and nxt == "*":
                state = "block"
                i += 2
                continue
            if ch == "/" and _regex_allowed(code):
                end = _regex_end(text, i)
                if end != -1:
                    code.append(REGEX_PLACEHOLDER)
                    i = end
                    continue
            if ch in "'\"`":
                state = ch
                buf = []
                i += 1
                continue

            if ch == "{":
                depth += 1
            elif ch == "}":
                depth = max(0, depth - 1)
            code.append(ch)
            i += 1

        # Plain quotes never span lines; template literals do
        if state in ("'", '"'):
            _close_string(line, state, buf, code)
            state = None
            buf = []
        elif state == "`":
            buf.append("\n")

        line.code = "".join(code)
        line.comment = " ".join(part.strip() for part in comment if part.strip())
        result.append(line)

    return result


def _close_string(line: SourceLine, quote: str, buf: list[str], code: list[str]) -> None:
    value = "".join(buf)
    line.strings.append(value)
    if quote == "`":
        line.interpolations.extend(_INTERPOLATION.findall(value))
    code.append(STRING_PLACEHOLDER)


def _regex_allowed(code: list[str]) -> bool:
    """True when a ``/`` at this point starts an expression rather than dividing."""
    before = "".join(code).rstrip()
    if not before:
        return True
    return before[-1] in _REGEX_PRECEDERS or _REGEX_KEYWORD.search(before) is not None


def _regex_end(text: str, start: int) -> int:
    """Index just past the regex literal opening at *start* (flags included), or -1."""
    in_class = False
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if in_class:
            if ch == "]":
                in_class = False
        elif ch == "[":
            in_class = True
        elif ch == "/":
            i += 1
            while i < n and text[i].isalpha():
                i += 1
            return i
        i += 1
    return -1
