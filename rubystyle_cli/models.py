"""Core data models shared by rules, the runner and the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Offense:
    rule: str
    message: str
    start: int
    end: int
    line: int
    column: int
    replacement: Optional[str] = None

    @property
    def correctable(self) -> bool:
        return self.replacement is not None

    def to_dict(self) -> Dict[str, object]:
        return {
            "rule": self.rule,
            "message": self.message,
            "line": self.line,
            "column": self.column,
            "start": self.start,
            "end": self.end,
            "correctable": self.correctable,
            "replacement": self.replacement,
        }


@dataclass
class FileReport:
    path: str
    offenses: List[Offense] = field(default_factory=list)
    original_source: Optional[str] = None
    corrected_source: Optional[str] = None
    parse_errors: List[str] = field(default_factory=list)
    corrected_count: int = 0

    @property
    def clean(self) -> bool:
        return not self.offenses and not self.parse_errors

    def to_dict(self) -> Dict[str, object]:
        return {
            "path": self.path,
            "offenses": [o.to_dict() for o in self.offenses],
            "corrected": self.corrected_count,
            "parse_errors": list(self.parse_errors),
        }

    @property
    def changed(self) -> bool:
        return self.corrected_source is not None and self.corrected_source != self.original_source
