"""Run the configured rules over files and sources.

``StyleRunner`` owns one parser and one set of rule instances.  Rules are
pure functions of their analysis unit, so the same runner serves any
number of files.
"""

from __future__ import annotations

import fnmatch
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .corrector import apply_offenses
from .models import FileReport, Offense
from .parser import SOURCE_ENCODING, SOURCE_ERRORS, RubyParser
from .rules import AnalysisUnit, Rule, build_rules, sort_offenses

logger = logging.getLogger(__name__)

DEFAULT_MAX_PASSES = 10


def _matches(rel_path: str, pattern: str) -> bool:
    if fnmatch.fnmatch(rel_path, pattern):
        return True
    # "**/" also matches at the top level
    return pattern.startswith("**/") and fnmatch.fnmatch(rel_path, pattern[3:])


def read_source(path: Path) -> str:
    return path.read_bytes().decode(SOURCE_ENCODING, SOURCE_ERRORS)


def write_source(path: Path, source: str) -> None:
    path.write_bytes(source.encode(SOURCE_ENCODING, SOURCE_ERRORS))


class StyleRunner:
    """Discover files, run rules and apply corrections."""

    def __init__(
        self,
        config: Dict[str, Any],
        only: Optional[Sequence[str]] = None,
        parser: Optional[RubyParser] = None,
        max_passes: int = DEFAULT_MAX_PASSES,
    ) -> None:
        self.config = config
        self.rules: List[Rule] = build_rules(config.get("rules", {}), only)
        self.include: List[str] = list(config.get("files", {}).get("include", []))
        self.exclude: List[str] = list(config.get("files", {}).get("exclude", []))
        self.parser = parser or RubyParser()
        self.max_passes = max_passes

    # ------------------------------------------------------------------
    # File discovery
    # ------------------------------------------------------------------

    def is_included(self, rel_path: str) -> bool:
        if any(_matches(rel_path, pattern) for pattern in self.exclude):
            return False
        return any(_matches(rel_path, pattern) for pattern in self.include)

    def discover(self, paths: Iterable[Path]) -> List[Path]:
        """Expand directories with the include/exclude globs.

        Files named explicitly are always analyzed.
        """
        found: List[Path] = []
        for path in paths:
            if path.is_dir():
                for candidate in sorted(path.rglob("*")):
                    if not candidate.is_file():
                        continue
                    rel_path = candidate.relative_to(path).as_posix()
                    if self.is_included(rel_path):
                        found.append(candidate)
            else:
                found.append(path)
        return found

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def run_rules(self, source: str, path: str = "<source>") -> FileReport:
        tree = self.parser.parse(source, path)
        unit = AnalysisUnit.from_tree(tree, path=path)
        offenses: List[Offense] = []
        for rule in self.rules:
            offenses.extend(rule.check(unit))
        report = FileReport(path=path, offenses=sort_offenses(offenses), original_source=source)
        if tree.error_count:
            report.parse_errors.append(f"{tree.error_count} syntax error(s)")
        return report

    def autocorrect(self, source: str, path: str = "<source>") -> FileReport:
        """Apply corrections until none applies or ``max_passes`` is reached.

        The returned report lists the offenses left in the corrected source.
        """
        current = source
        corrected = 0
        report = self.run_rules(current, path)
        for number in range(1, self.max_passes + 1):
            if not any(o.correctable for o in report.offenses):
                break
            updated, applied = apply_offenses(current, report.offenses)
            if not applied or updated == current:
                break
            logger.debug("%s: pass %d applied %d correction(s)", path, number, applied)
            current = updated
            corrected += applied
            report = self.run_rules(current, path)
        else:
            if any(o.correctable for o in report.offenses):
                logger.warning("%s: corrections did not settle after %d passes", path, self.max_passes)

        report.original_source = source
        report.corrected_source = current
        report.corrected_count = corrected
        return report

    def check_file(self, path: Path, fix: bool = False) -> FileReport:
        try:
            source = read_source(path)
        except OSError as exc:
            logger.warning("Failed to read %s: %s", path, exc)
            return FileReport(path=str(path), parse_errors=[f"cannot read file: {exc}"])
        if fix:
            return self.autocorrect(source, str(path))
        return self.run_rules(source, str(path))

    def check_paths(self, paths: Iterable[Path], fix: bool = False) -> List[FileReport]:
        return [self.check_file(path, fix=fix) for path in self.discover(paths)]
