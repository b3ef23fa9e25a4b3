"""Rule interface, analysis unit and the built-in rule registry."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Type

from .models import Offense
from .source import LineIndex
from .syntax import SyntaxNode, SyntaxTree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisUnit:
    """One parsed unit of source handed to every rule."""

    tree: SyntaxTree
    source: str
    lines: LineIndex
    path: str = "<source>"

    @classmethod
    def from_tree(cls, tree: SyntaxTree, path: str = "<source>") -> "AnalysisUnit":
        return cls(tree=tree, source=tree.source, lines=LineIndex(tree.source), path=path)


# ===================================================================
# Abstract Rule Interface
# ===================================================================

class Rule(ABC):
    """Base class for all style rules.

    A rule is a pure function of its analysis unit and its options: it
    keeps no state between ``check`` calls and never raises.
    """

    name: str = ""
    description: str = ""
    autocorrectable: bool = False

    @abstractmethod
    def check(self, unit: AnalysisUnit) -> List[Offense]:
        """Return the offenses found in *unit*, ordered by source position."""
        ...

    def options(self) -> Dict[str, Any]:
        return {}

    def offense(
        self,
        unit: AnalysisUnit,
        start: int,
        end: int,
        message: str,
        replacement: Optional[str] = None,
    ) -> Offense:
        line, column = unit.lines.position(start)
        return Offense(
            rule=self.name,
            message=message,
            start=start,
            end=end,
            line=line,
            column=column,
            replacement=replacement,
        )

    def guarded(
        self,
        unit: AnalysisUnit,
        node: SyntaxNode,
        inspect: Callable[[AnalysisUnit, SyntaxNode], Iterable[Offense]],
    ) -> List[Offense]:
        """Run *inspect* on one node; an unexpected construct yields no offense."""
        try:
            return list(inspect(unit, node))
        except Exception as exc:
            logger.warning(
                "%s skipped %s node at line %s in %s: %s",
                self.name, node.type, node.first_line, unit.path, exc,
            )
            return []


def sort_offenses(offenses: Iterable[Offense]) -> List[Offense]:
    return sorted(offenses, key=lambda o: (o.start, o.end))


# ===================================================================
# Registry
# ===================================================================

RULES: Dict[str, Type[Rule]] = {}


def register(cls: Type[Rule]) -> Type[Rule]:
    """Class decorator adding a rule to the registry under its ``name``."""
    RULES[cls.name] = cls
    return cls


def available_rules() -> Dict[str, Type[Rule]]:
    """All registered rules, keyed by name, sorted by name."""
    from . import (  # noqa: F401
        blank_line_indentation,
        block_delimiter_spacing,
        global_exception_variables,
    )
    return {name: RULES[name] for name in sorted(RULES)}


def build_rules(
    rule_config: Mapping[str, Mapping[str, Any]],
    only: Optional[Iterable[str]] = None,
) -> List[Rule]:
    """Instantiate the enabled rules with their options.

    Args:
        rule_config: Validated per-rule sections (``enabled`` plus options).
        only: When given, restrict to these rule names regardless of ``enabled``.

    Returns:
        Rule instances sorted by rule name.
    """
    selected = set(only) if only else None
    rules: List[Rule] = []
    for name, cls in available_rules().items():
        section = dict(rule_config.get(name, {}))
        enabled = section.pop("enabled", True)
        if selected is not None:
            if name not in selected:
                continue
        elif not enabled:
            continue
        rules.append(cls(**section))
        logger.debug("Enabled rule %s with options %s", name, section)
    return rules
