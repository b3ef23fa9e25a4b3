"""Spacing before the opening brace of ``{ ... }`` blocks.

Style enforced:

- ``foo {bar}``                 space for a statement-level call without parentheses
- ``foo(1, 2) {bar}``           one space after the closing parenthesis
- ``x = foo{bar}``              no space when the block is part of an expression
- ``array.each{|x| x}.reverse`` no space in method chains, parenthesized or not
- ``->(x){x}``, ``lambda{x}``, ``proc{x}``, ``Proc.new{x}``  never a space

``do ... end`` blocks are not checked.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator, List, Optional

from .models import Offense
from .rules import AnalysisUnit, Rule, register
from .syntax import NodeKind, SyntaxNode, SyntaxTree

MSG_ADD_SPACE = "Add a space before the opening brace."
MSG_REMOVE_SPACE = "Remove space before the opening brace for method chains."
MSG_REMOVE_SPACE_LAMBDA = "Remove space before the opening brace for lambdas/procs."
MSG_REMOVE_SPACE_EXPRESSION = "Remove space before the opening brace for expressions."

LAMBDA_METHODS = frozenset({"lambda", "proc"})
PROC_CONSTANT = "Proc"
HORIZONTAL_WHITESPACE = " \t"

# Parents that hold a sequence of statements: a call placed directly in one
# of them is a statement, not a sub-expression.
STATEMENT_PARENTS = frozenset({
    NodeKind.STATEMENTS,
    NodeKind.EXCEPTION_BLOCK,
    NodeKind.ENSURE_CLAUSE,
    NodeKind.RESCUE_BODY,
    NodeKind.CLASS_DEF,
    NodeKind.MODULE_DEF,
    NodeKind.SINGLETON_CLASS,
    NodeKind.METHOD_DEF,
    NodeKind.SINGLETON_METHOD_DEF,
})


class BlockSpacingCategory(str, Enum):
    LAMBDA = "lambda"
    METHOD_CHAIN = "method-chain"
    EXPRESSION = "expression"
    PARENTHESIZED_STANDALONE = "parenthesized-standalone"
    BARE_STANDALONE = "bare-standalone"


NO_SPACE_MESSAGES = {
    BlockSpacingCategory.LAMBDA: MSG_REMOVE_SPACE_LAMBDA,
    BlockSpacingCategory.METHOD_CHAIN: MSG_REMOVE_SPACE,
    BlockSpacingCategory.EXPRESSION: MSG_REMOVE_SPACE_EXPRESSION,
}


# ------------------------------------------------------------------
# Structural predicates
# ------------------------------------------------------------------

def invoked_call(tree: SyntaxTree, block: SyntaxNode) -> Optional[SyntaxNode]:
    """The call (or lambda literal) the block is attached to."""
    parent = tree.parent(block)
    if parent is not None and parent.kind in (NodeKind.CALL, NodeKind.LAMBDA):
        return parent
    return None


def is_lambda_or_proc(tree: SyntaxTree, call: SyntaxNode) -> bool:
    if call.kind is NodeKind.LAMBDA:
        return True
    if call.name in LAMBDA_METHODS:
        return True
    if call.name == "new":
        receiver = tree.child_by_field(call, "receiver")
        return (
            receiver is not None
            and receiver.kind is NodeKind.CONSTANT
            and receiver.name == PROC_CONSTANT
        )
    return False


def is_method_chain(tree: SyntaxTree, call: SyntaxNode) -> bool:
    """A call follows the block (``foo{}.bar``) or the call has a receiver (``x.each{}``)."""
    parent = tree.parent(call)
    if parent is not None and parent.kind is NodeKind.CALL:
        if tree.child_by_field(parent, "receiver") is call:
            return True
    return tree.child_by_field(call, "receiver") is not None


def is_expression(tree: SyntaxTree, call: SyntaxNode) -> bool:
    """True unless the call sits directly in a statement sequence."""
    parent = tree.parent(call)
    if parent is None:
        return False
    if parent.kind in STATEMENT_PARENTS:
        return False
    if parent.kind is NodeKind.BLOCK and not parent.braces:
        return False
    return True


def parenthesized_arguments(tree: SyntaxTree, call: SyntaxNode) -> Optional[SyntaxNode]:
    arguments = tree.child_by_field(call, "arguments")
    if arguments is not None and arguments.opening_text == "(" and arguments.closing is not None:
        return arguments
    return None


def classify(tree: SyntaxTree, block: SyntaxNode) -> BlockSpacingCategory:
    """Select the single spacing policy for a brace block; first match wins.

    Raises:
        ValueError: if *block* is not attached to a call or lambda literal.
    """
    call = invoked_call(tree, block)
    if call is None:
        raise ValueError(f"block at line {block.first_line} has no invoking call")
    if is_lambda_or_proc(tree, call):
        return BlockSpacingCategory.LAMBDA
    if is_method_chain(tree, call):
        return BlockSpacingCategory.METHOD_CHAIN
    if is_expression(tree, call):
        return BlockSpacingCategory.EXPRESSION
    if parenthesized_arguments(tree, call) is not None:
        return BlockSpacingCategory.PARENTHESIZED_STANDALONE
    return BlockSpacingCategory.BARE_STANDALONE


def whitespace_before(source: str, offset: int) -> int:
    """Start of the run of spaces/tabs ending at *offset* (never crosses a line)."""
    start = offset
    while start > 0 and source[start - 1] in HORIZONTAL_WHITESPACE:
        start -= 1
    return start


# ------------------------------------------------------------------
# Rule
# ------------------------------------------------------------------

@register
class BlockDelimiterSpacing(Rule):
    """Enforce context-dependent spacing before ``{`` of brace blocks."""

    name = "Layout/BlockDelimiterSpacing"
    description = "Space before a block's opening brace depends on the block's context."
    autocorrectable = True

    def check(self, unit: AnalysisUnit) -> List[Offense]:
        offenses: List[Offense] = []
        for node in unit.tree.walk():
            if node.kind is NodeKind.BLOCK and node.braces and node.opening is not None:
                offenses.extend(self.guarded(unit, node, self._inspect_block))
        return offenses

    def _inspect_block(self, unit: AnalysisUnit, block: SyntaxNode) -> Iterator[Offense]:
        tree = unit.tree
        call = invoked_call(tree, block)
        if call is None:
            return
        category = classify(tree, block)
        brace = block.opening.start_offset
        gap_start = whitespace_before(unit.source, brace)

        if category in NO_SPACE_MESSAGES:
            if gap_start < brace:
                yield self.offense(unit, gap_start, brace, NO_SPACE_MESSAGES[category], "")
            return

        if category is BlockSpacingCategory.PARENTHESIZED_STANDALONE:
            paren_end = parenthesized_arguments(tree, call).closing.end_offset
            if paren_end > brace:
                return
            gap_start = paren_end
            if unit.source[gap_start:brace].strip(HORIZONTAL_WHITESPACE):
                return
        elif brace == 0 or (gap_start == brace and unit.source[brace - 1] in "\r\n"):
            return

        gap = unit.source[gap_start:brace]
        if gap == " ":
            return
        if not gap:
            yield self.offense(unit, brace, brace + 1, MSG_ADD_SPACE, " {")
        else:
            yield self.offense(unit, gap_start, brace, MSG_ADD_SPACE, " ")
