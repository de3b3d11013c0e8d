"""
Unit tests for tap_runner/parsing/tap_grammar.py
"""

import textwrap

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tap_runner.errors import ProtocolParseError
from tap_runner.models import AnnotationKind, Group, LeafOutcome, Other
from tap_runner.parsing import TapGrammar, parse


def tap(text: str) -> str:
    return textwrap.dedent(text).lstrip("\n")


class TestFlatStream:
    """Stream senza subtest"""

    def test_results_and_yaml_block(self):
        document = parse(tap("""
            TAP version 14
            1..3
            ok 1 - first
            not ok 2 - second
              ---
              at:
                file: src/lib.c
                line: 42
              ...
            ok 3 - third # SKIP slow
        """))

        assert len(document) == 3
        assert all(isinstance(node, LeafOutcome) for node in document)

        first, second, third = document
        assert first.passed is True
        assert first.explicit_number == 1
        assert first.description == "first"
        assert first.diagnostic_text == ""

        assert second.passed is False
        assert second.diagnostic_text == "at:\n  file: src/lib.c\n  line: 42"

        assert third.annotation.kind == AnnotationKind.SKIP
        assert third.annotation.reason == "slow"

    def test_version_and_plan_are_not_statements(self):
        document = parse("TAP version 13\n1..1\nok 1\n")
        assert len(document) == 1

    def test_missing_numbers(self):
        document = parse("ok\nnot ok\n")
        assert [n.explicit_number for n in document] == [None, None]
        assert [n.passed for n in document] == [True, False]
        assert document[0].description is None

    def test_todo_directive(self):
        (leaf,) = parse("not ok 4 - later # TODO not done\n")
        assert leaf.annotation.kind == AnnotationKind.TODO
        assert leaf.annotation.reason == "not done"

    def test_comments_and_bail_out_are_kept(self):
        document = parse("# hello\nok 1\nBail out! no database\n")
        assert isinstance(document[0], Other)
        assert document[0].kind == "diagnostic"
        assert isinstance(document[1], LeafOutcome)
        assert document[2].kind == "bail"

    def test_blank_lines_ignored(self):
        document = parse("ok 1\n\n\nok 2\n")
        assert len(document) == 2

    def test_empty_output(self):
        assert parse("") == []


class TestSubtests:
    """Subtest indentati"""

    def test_group_with_summary(self):
        document = parse(tap("""
            # Subtest: group
                ok 1 - inner pass
                not ok 2 - inner fail
                1..2
            not ok 1 - group
            ok 2 - after
        """))

        assert len(document) == 2
        group = document[0]
        assert isinstance(group, Group)
        assert group.name == "group"
        assert [c.description for c in group.children] == ["inner pass", "inner fail"]
        assert group.summary.passed is False
        assert group.summary.description == "group"
        assert isinstance(document[1], LeafOutcome)

    def test_header_inside_block(self):
        (group,) = parse(tap("""
                # Subtest: inner
                ok 1 - a
                1..1
            ok 1 - inner
        """))
        assert group.name == "inner"
        assert len(group.children) == 1

    def test_nested_groups(self):
        (outer,) = parse(tap("""
            # Subtest: outer
                # Subtest: inner
                    ok 1 - deep
                    1..1
                ok 1 - inner
                1..1
            ok 1 - outer
        """))
        inner = outer.children[0]
        assert isinstance(inner, Group)
        assert inner.children[0].description == "deep"
        assert outer.name == "outer"
        assert inner.name == "inner"

    def test_yaml_block_inside_subtest(self):
        (group,) = parse(tap("""
                not ok 1 - a
                  ---
                  message: boom
                  ...
                1..1
            not ok 1 - suite
        """))
        assert group.children[0].diagnostic_text == "message: boom"


class TestMalformed:
    """Errori di protocollo"""

    def test_subtest_without_summary(self):
        with pytest.raises(ProtocolParseError):
            parse("ok 1 - a\n    ok 1 - nested\n")

    def test_subtest_closed_by_comment(self):
        with pytest.raises(ProtocolParseError):
            parse("    ok 1 - nested\n# not a test line\n")

    def test_unterminated_yaml_block(self):
        with pytest.raises(ProtocolParseError) as exc:
            parse("not ok 1\n  ---\n  message: boom\n")
        assert exc.value.line == 2

    def test_old_version_rejected(self):
        with pytest.raises(ProtocolParseError):
            TapGrammar().parse("TAP version 12\nok 1\n")
