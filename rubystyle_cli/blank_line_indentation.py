"""Blank-line indentation derived from the structure of the syntax tree.

The expected indentation of a blank line is the nesting depth of the
constructs enclosing it, never the whitespace of a neighbouring line.  A
single pre-order walk records, per line, how many tracked constructs open
(+1) and close (-1) there; a linear scan over the lines then keeps a running
level and compares every blank line with ``level * width`` indentation
characters.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List

from .models import Offense
from .rules import AnalysisUnit, Rule, register
from .syntax import STRUCTURAL_KINDS, SyntaxTree

MESSAGE = "Blank lines must have the correct indentation."

INDENTATION_STYLES = {"tab": "\t", "space": " "}


def compute_deltas(tree: SyntaxTree) -> Dict[int, int]:
    """Map line number -> (constructs opening there) - (constructs closing there).

    Nodes without location information contribute nothing.
    """
    deltas: Dict[int, int] = defaultdict(int)
    for node in tree.walk():
        if node.kind not in STRUCTURAL_KINDS or node.span is None:
            continue
        deltas[node.first_line] += 1
        deltas[node.last_line] -= 1
    return dict(deltas)


@register
class BlankLineIndentation(Rule):
    """Blank lines carry exactly the indentation of their nesting level."""

    name = "Layout/BlankLineIndentation"
    description = "Blank lines must be indented to the structural nesting level."
    autocorrectable = True

    def __init__(self, indentation_width: int = 1, indentation_style: str = "tab") -> None:
        self.indentation_width = indentation_width
        self.indentation_style = indentation_style
        self._unit_char = INDENTATION_STYLES[indentation_style]

    def options(self) -> Dict[str, object]:
        return {
            "indentation_width": self.indentation_width,
            "indentation_style": self.indentation_style,
        }

    def indentation(self, level: int) -> str:
        return self._unit_char * (max(level, 0) * self.indentation_width)

    def check(self, unit: AnalysisUnit) -> List[Offense]:
        deltas = compute_deltas(unit.tree)
        offenses: List[Offense] = []
        level = 0

        for number in range(1, len(unit.lines) + 1):
            if unit.lines.is_blank(number):
                expected = self.indentation(level)
                if unit.lines.content(number) != expected:
                    start, end = unit.lines.content_range(number)
                    offenses.append(self.offense(unit, start, end, MESSAGE, expected))
            level += deltas.get(number, 0)

        return offenses
