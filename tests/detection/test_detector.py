"""Tests for the trait detector."""

import pytest

from flowscope.detection import IssueType, detect_traits


def _types(issues):
    return [issue.type for issue in issues]


class TestLevels:
    def test_level_one_reports_only_top_level_return(self, debug_source):
        issues = detect_traits(debug_source, 1)
        assert _types(issues) == [IssueType.TOP_LEVEL_RETURN]
        assert issues[0].line == 8

    def test_level_two_adds_debug_output_and_markers(self, debug_source):
        issues = detect_traits(debug_source, 2)
        assert _types(issues) == [
            IssueType.TODO_COMMENT,
            IssueType.CONSOLE_LOG,
            IssueType.NODE_WARN,
            IssueType.TOP_LEVEL_RETURN,
        ]

    def test_level_three_reports_everything_in_line_order(self, debug_source):
        issues = detect_traits(debug_source, 3)
        assert [(i.type, i.line) for i in issues] == [
            (IssueType.TODO_COMMENT, 1),
            (IssueType.UNUSED_VARIABLE, 2),
            (IssueType.CONSOLE_LOG, 3),
            (IssueType.NODE_WARN, 4),
            (IssueType.MULTIPLE_EMPTY_LINES, 5),
            (IssueType.HARDCODED_TEST, 7),
            (IssueType.TOP_LEVEL_RETURN, 8),
        ]

    @pytest.mark.parametrize("narrow,wide", [(1, 2), (2, 3), (1, 3)])
    def test_wider_level_is_superset(self, debug_source, narrow, wide):
        narrow_issues = detect_traits(debug_source, narrow)
        wide_issues = detect_traits(debug_source, wide)
        assert all(issue in wide_issues for issue in narrow_issues)

    def test_every_issue_is_within_its_level(self, debug_source):
        for level in (1, 2, 3):
            assert all(i.type.level <= level for i in detect_traits(debug_source, level))

    @pytest.mark.parametrize("level,expected", [(0, 1), (-5, 1), (4, 3), (99, 3)])
    def test_out_of_range_levels_are_clamped(self, debug_source, level, expected):
        assert detect_traits(debug_source, level) == detect_traits(debug_source, expected)

    def test_default_level_is_one(self, debug_source):
        assert detect_traits(debug_source) == detect_traits(debug_source, 1)


class TestDegenerateInput:
    @pytest.mark.parametrize("source", ["", "   ", "\n\n\n", "\t \n  "])
    def test_empty_or_whitespace_yields_nothing(self, source):
        assert detect_traits(source, 3) == []

    @pytest.mark.parametrize("source", [None, 42, b"return;", ["return;"]])
    def test_non_string_yields_nothing(self, source):
        assert detect_traits(source, 3) == []

    def test_deterministic(self, debug_source):
        assert detect_traits(debug_source, 3) == detect_traits(debug_source, 3)

    def test_clean_source_has_no_issues(self, clean_source):
        assert detect_traits(clean_source, 3) == []


class TestTopLevelReturn:
    def test_bare_return_with_semicolon(self):
        assert _types(detect_traits("return;", 1)) == [IssueType.TOP_LEVEL_RETURN]

    def test_bare_return_without_semicolon(self):
        assert _types(detect_traits("return\nmsg.payload = 1;", 1)) == [IssueType.TOP_LEVEL_RETURN]

    def test_return_with_value_is_not_flagged(self):
        assert detect_traits("return msg;", 1) == []

    def test_return_inside_function_is_not_flagged(self):
        source = "function helper() {\n    return;\n}\nreturn msg;"
        assert detect_traits(source, 1) == []

    def test_return_inside_block_is_not_flagged(self):
        source = "if (!msg.payload) {\n    return;\n}\nreturn msg;"
        assert detect_traits(source, 1) == []

    def test_guard_clause_is_not_flagged(self):
        assert detect_traits("if (!msg.payload) return;\nreturn msg;", 1) == []

    @pytest.mark.parametrize(
        "header",
        [
            "if (!msg.payload)",
            'else if (msg.topic === "skip")',
            "for (var i = 0; i < n; i++)",
            "} else",
            "while (busy())",
        ],
    )
    def test_guard_body_on_next_line_is_not_flagged(self, header):
        source = f"{header}\n    return;\nmsg.payload = 1;\nreturn msg;"
        assert detect_traits(source, 1) == []

    def test_guard_header_across_comment_line(self):
        source = "if (!msg.payload)\n    // nothing to do\n    return;\nreturn msg;"
        assert detect_traits(source, 1) == []

    def test_return_after_completed_guard_is_flagged(self):
        source = "if (a) b()\nreturn;"
        assert [(i.type, i.line) for i in detect_traits(source, 1)] == [(IssueType.TOP_LEVEL_RETURN, 2)]

    def test_return_after_call_is_flagged(self):
        source = "node.send(msg)\nreturn;"
        assert _types(detect_traits(source, 1)) == [IssueType.TOP_LEVEL_RETURN]

    def test_brace_in_regex_does_not_hide_return(self):
        source = "var re = /\\{/;\nmsg.ok = re.test(msg.payload);\nreturn;"
        assert _types(detect_traits(source, 1)) == [IssueType.TOP_LEVEL_RETURN]

    def test_return_after_closed_block_is_flagged(self):
        issues = detect_traits("if (x) { y(); } return;", 1)
        assert _types(issues) == [IssueType.TOP_LEVEL_RETURN]

    def test_return_in_string_or_comment_is_ignored(self):
        source = 'msg.payload = "return;";\n// return;\nreturn msg;'
        assert detect_traits(source, 1) == []


class TestDebugOutput:
    @pytest.mark.parametrize("method", ["log", "info", "debug", "error", "warn", "trace"])
    def test_console_methods(self, method):
        issues = detect_traits(f"console.{method}(msg);\nreturn msg;", 2)
        assert _types(issues) == [IssueType.CONSOLE_LOG]
        assert method in issues[0].message

    @pytest.mark.parametrize("method", ["warn", "debug"])
    def test_node_debug_output(self, method):
        assert _types(detect_traits(f"node.{method}(msg);", 2)) == [IssueType.NODE_WARN]

    def test_node_error_and_send_are_not_debug_output(self):
        assert detect_traits("node.error(err, msg);\nnode.send(msg);", 2) == []

    def test_debugger_statement(self):
        issues = detect_traits("debugger;\nreturn msg;", 2)
        assert _types(issues) == [IssueType.DEBUGGER_STATEMENT]
        assert issues[0].line == 1

    def test_console_in_comment_is_ignored(self):
        assert detect_traits("// console.log(msg);\nreturn msg;", 2) == []

    def test_two_calls_on_one_line_keep_detection_order(self):
        issues = detect_traits("console.log(a); node.warn(b);", 2)
        assert _types(issues) == [IssueType.CONSOLE_LOG, IssueType.NODE_WARN]


class TestTodoComments:
    @pytest.mark.parametrize("marker", ["TODO", "FIXME", "XXX", "HACK"])
    def test_markers_in_line_comments(self, marker):
        issues = detect_traits(f"// {marker}: tidy up\nreturn msg;", 2)
        assert _types(issues) == [IssueType.TODO_COMMENT]
        assert marker in issues[0].message

    def test_marker_in_block_comment(self):
        issues = detect_traits("/*\n * FIXME later\n */\nreturn msg;", 2)
        assert [(i.type, i.line) for i in issues] == [(IssueType.TODO_COMMENT, 2)]

    def test_marker_in_string_is_ignored(self):
        assert detect_traits('msg.payload = "TODO list";\nreturn msg;', 2) == []


class TestLevelThreeTraits:
    def test_unused_variable(self):
        issues = detect_traits("const spare = 1;\nreturn msg;", 3)
        assert _types(issues) == [IssueType.UNUSED_VARIABLE]
        assert "spare" in issues[0].message

    def test_used_variable_is_not_flagged(self):
        assert detect_traits("let total = 1;\nmsg.payload = total;\nreturn msg;", 3) == []

    def test_variable_used_in_template_literal_is_not_flagged(self):
        source = "const name = msg.name;\nmsg.payload = `hi ${name}`;\nreturn msg;"
        assert detect_traits(source, 3) == []

    def test_property_with_same_name_does_not_count_as_use(self):
        issues = detect_traits("var topic = 1;\nmsg.topic = 2;\nreturn msg;", 3)
        assert _types(issues) == [IssueType.UNUSED_VARIABLE]

    @pytest.mark.parametrize(
        "literal",
        ['"test"', "'foo'", '"dummy"', '"Lorem ipsum dolor"', '"test@example.com"', '"123456"'],
    )
    def test_placeholder_literals(self, literal):
        issues = detect_traits(f"msg.payload = {literal};\nreturn msg;", 3)
        assert _types(issues) == [IssueType.HARDCODED_TEST]

    def test_ordinary_literals_are_not_placeholders(self):
        assert detect_traits('msg.topic = "sensors/temperature";\nreturn msg;', 3) == []

    def test_one_issue_per_run_of_blank_lines(self):
        source = "a();\n\n\n\nb();\n\n\nreturn msg;"
        issues = detect_traits(source, 3)
        assert [(i.type, i.line) for i in issues] == [
            (IssueType.MULTIPLE_EMPTY_LINES, 2),
            (IssueType.MULTIPLE_EMPTY_LINES, 6),
        ]
        assert "3" in issues[0].message

    def test_single_blank_line_is_fine(self):
        assert detect_traits("a();\n\nreturn msg;", 3) == []

    def test_blank_lines_inside_template_literal_are_not_empty_lines(self):
        source = "msg.payload = `line one\n\n\nline two`;\nreturn msg;"
        assert detect_traits(source, 3) == []
