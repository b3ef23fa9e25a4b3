"""Context-sensitive use of the global exception variables.

``$!`` and ``$@`` (and their English aliases) hold the exception currently
being handled.  Inside a ``rescue`` body or a rescue modifier that is the
exception the code is looking at; elsewhere, and above all in ``ensure``,
the value depends on whatever happened last and is unreliable.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator, List

from .models import Offense
from .rules import AnalysisUnit, Rule, register
from .syntax import NodeKind, SyntaxNode, SyntaxTree

MSG_AVOID = (
    "Avoid using global exception variable `%s` in this context. "
    "Use explicit exception handling with `rescue => error` instead."
)
MSG_ENSURE = "Using global exception variable `%s` in an ensure block is extremely unsafe."

EXCEPTION_VARIABLES = frozenset({"$!", "$@", "$ERROR_INFO", "$ERROR_POSITION"})


class ReferenceContext(str, Enum):
    PARAMETER_DEFAULT = "parameter-default"
    ENSURE_BLOCK = "ensure-block"
    RESCUE_BLOCK = "rescue-block"
    RESCUE_MODIFIER = "rescue-modifier"
    UNSCOPED = "unscoped"


ALLOWED_CONTEXTS = frozenset({
    ReferenceContext.PARAMETER_DEFAULT,
    ReferenceContext.RESCUE_BLOCK,
    ReferenceContext.RESCUE_MODIFIER,
})


def exception_variable_name(tree: SyntaxTree, node: SyntaxNode) -> str:
    """The variable name of a reference node, or ``""``."""
    if node.kind is not NodeKind.REFERENCE:
        return ""
    name = node.name or tree.text(node)
    return name if name in EXCEPTION_VARIABLES else ""


def classify_reference(tree: SyntaxTree, node: SyntaxNode) -> ReferenceContext:
    """Context of a reference; a parameter default anywhere above wins outright."""
    ancestors = list(tree.ancestors(node))
    for ancestor in ancestors:
        if ancestor.kind in (NodeKind.PARAMETER_LIST, NodeKind.OPTIONAL_PARAMETER):
            return ReferenceContext.PARAMETER_DEFAULT

    for ancestor in ancestors:
        if ancestor.kind is NodeKind.ENSURE_CLAUSE:
            return ReferenceContext.ENSURE_BLOCK
        if ancestor.kind is NodeKind.RESCUE_BODY:
            return ReferenceContext.RESCUE_BLOCK
        if ancestor.kind is NodeKind.RESCUE_CLAUSE:
            children = tree.children(ancestor)
            if not any(child.kind is NodeKind.RESCUE_BODY for child in children):
                return ReferenceContext.RESCUE_MODIFIER
    return ReferenceContext.UNSCOPED


@register
class GlobalExceptionVariables(Rule):
    """Flag ``$!``/``$@`` outside the exception handling that sets them."""

    name = "Style/GlobalExceptionVariables"
    description = "Global exception variables are only reliable inside rescue."
    autocorrectable = False

    def check(self, unit: AnalysisUnit) -> List[Offense]:
        offenses: List[Offense] = []
        for node in unit.tree.walk():
            if node.kind is NodeKind.REFERENCE and node.span is not None:
                offenses.extend(self.guarded(unit, node, self._inspect_reference))
        return offenses

    def _inspect_reference(self, unit: AnalysisUnit, node: SyntaxNode) -> Iterator[Offense]:
        variable = exception_variable_name(unit.tree, node)
        if not variable:
            return
        context = classify_reference(unit.tree, node)
        if context in ALLOWED_CONTEXTS:
            return
        template = MSG_ENSURE if context is ReferenceContext.ENSURE_BLOCK else MSG_AVOID
        yield self.offense(
            unit, node.span.start_offset, node.span.end_offset, template % variable,
        )
