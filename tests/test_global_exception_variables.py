"""Tests for Style/GlobalExceptionVariables."""

import pytest

from rubystyle_cli.global_exception_variables import (
    GlobalExceptionVariables,
    ReferenceContext,
    classify_reference,
)
from rubystyle_cli.syntax import NodeKind, TreeBuilder


@pytest.fixture
def rule() -> GlobalExceptionVariables:
    return GlobalExceptionVariables()


class TestClassifyReference:
    """Context selection on hand-built trees."""

    def _reference_under(self, *kinds):
        source = "$!" + " " * 20
        builder = TreeBuilder(source)
        parent = builder.add(NodeKind.STATEMENTS, 0, len(source))
        for kind in kinds:
            parent = builder.add(kind, 0, len(source), parent=parent)
        reference = builder.add(NodeKind.REFERENCE, 0, 2, parent=parent, name="$!")
        return builder.build(), reference

    def test_unscoped(self):
        tree, ref = self._reference_under(NodeKind.METHOD_DEF, NodeKind.STATEMENTS)
        assert classify_reference(tree, ref) is ReferenceContext.UNSCOPED

    def test_rescue_body(self):
        tree, ref = self._reference_under(NodeKind.EXCEPTION_BLOCK, NodeKind.RESCUE_BODY)
        assert classify_reference(tree, ref) is ReferenceContext.RESCUE_BLOCK

    def test_rescue_modifier(self):
        tree, ref = self._reference_under(NodeKind.RESCUE_CLAUSE)
        assert classify_reference(tree, ref) is ReferenceContext.RESCUE_MODIFIER

    def test_ensure_inside_rescue_is_ensure(self):
        tree, ref = self._reference_under(
            NodeKind.RESCUE_BODY, NodeKind.EXCEPTION_BLOCK, NodeKind.ENSURE_CLAUSE,
        )
        assert classify_reference(tree, ref) is ReferenceContext.ENSURE_BLOCK

    def test_rescue_inside_ensure_is_rescue(self):
        tree, ref = self._reference_under(
            NodeKind.EXCEPTION_BLOCK, NodeKind.ENSURE_CLAUSE, NodeKind.RESCUE_BODY,
        )
        assert classify_reference(tree, ref) is ReferenceContext.RESCUE_BLOCK

    def test_parameter_default_wins_over_everything(self):
        tree, ref = self._reference_under(
            NodeKind.ENSURE_CLAUSE, NodeKind.PARAMETER_LIST, NodeKind.OPTIONAL_PARAMETER,
        )
        assert classify_reference(tree, ref) is ReferenceContext.PARAMETER_DEFAULT

    def test_rescue_clause_with_handler_body_is_not_modifier(self):
        source = "$!" + " " * 20
        builder = TreeBuilder(source)
        root = builder.add(NodeKind.STATEMENTS, 0, len(source))
        clause = builder.add(NodeKind.RESCUE_CLAUSE, 0, len(source), parent=root)
        ref = builder.add(NodeKind.REFERENCE, 0, 2, parent=clause, name="$!")
        builder.add(NodeKind.RESCUE_BODY, 3, 10, parent=clause)

        assert classify_reference(builder.build(), ref) is ReferenceContext.UNSCOPED


class TestGlobalExceptionVariables:
    """Exception variables in real Ruby sources."""

    @pytest.mark.parametrize("source", [
        "begin\n\trisky_operation\nrescue\n\tputs $!.message\nend\n",
        "begin\n\trisky_operation\nrescue\n\tputs $@.first\nend\n",
        "begin\n\trisky_operation\nrescue\n\tputs $!.message\n\tputs $@.join(\"\\n\")\nend\n",
        "result = risky_operation rescue $!\n",
        "def foo(error = $!)\n\tputs error\nend\n\ndef bar(error: $!)\n\tputs error\nend\n",
        "begin\n\trisky_operation\nrescue => error\n\tputs error.message\nend\n",
        "begin\n\trisky_operation\nrescue StandardError => e\n\tputs e.message\nend\n",
        "puts $stdout\nputs $stderr\nputs $LOAD_PATH\n",
        "def run\n\twork\nrescue\n\tlog $ERROR_INFO\nend\n",
    ])
    def test_no_offense(self, rule, inspect_source, source):
        assert inspect_source(rule, source) == []

    def test_ensure_block(self, rule, inspect_source):
        source = "begin\n\trisky\nensure\n\tlog($!.message) if $!\nend\n"
        offenses = inspect_source(rule, source)

        assert len(offenses) == 2
        for offense in offenses:
            assert "extremely unsafe" in offense.message
            assert "`$!`" in offense.message
            assert offense.line == 4
            assert not offense.correctable

    def test_outside_rescue(self, rule, inspect_source):
        source = "def log_last_error\n\tputs $!.message if $!\nend\n"
        offenses = inspect_source(rule, source)

        assert len(offenses) == 2
        assert offenses[0].message == (
            "Avoid using global exception variable `$!` in this context. "
            "Use explicit exception handling with `rescue => error` instead."
        )

    def test_english_aliases_flagged(self, rule, inspect_source):
        offenses = inspect_source(rule, "warn $ERROR_POSITION\n")

        assert len(offenses) == 1
        assert "`$ERROR_POSITION`" in offenses[0].message
        assert (offenses[0].start, offenses[0].end) == (5, 20)

    def test_else_of_begin_is_not_rescue(self, rule, inspect_source):
        source = "begin\n\tx\nrescue\n\ty\nelse\n\tputs $!\nend\n"

        assert len(inspect_source(rule, source)) == 1

    def test_rescue_modifier_inside_ensure_allowed(self, rule, inspect_source):
        source = "begin\n\twork\nensure\n\tresult = cleanup rescue $!\nend\n"

        assert inspect_source(rule, source) == []

    def test_ensure_nested_in_rescue_handler(self, rule, inspect_source):
        source = (
            "begin\n"
            "\tx\n"
            "rescue\n"
            "\tbegin\n"
            "\t\ty\n"
            "\tensure\n"
            "\t\tputs $@\n"
            "\tend\n"
            "end\n"
        )
        offenses = inspect_source(rule, source)

        assert len(offenses) == 1
        assert "extremely unsafe" in offenses[0].message
