"""Apply offense replacements to source text and preview the result."""

from __future__ import annotations

import difflib
import logging
from typing import Iterable, List, Tuple

from .models import Offense

logger = logging.getLogger(__name__)


def apply_offenses(source: str, offenses: Iterable[Offense]) -> Tuple[str, int]:
    """Apply every correctable offense to *source*.

    Edits are applied from the end of the buffer towards the start so that
    earlier offsets stay valid.  An edit overlapping one already applied is
    left for a later pass.

    Args:
        source: Text the offsets refer to.
        offenses: Offenses found in *source*; uncorrectable ones are ignored.

    Returns:
        ``(corrected_source, applied_count)``
    """
    edits = sorted(
        (o for o in offenses if o.correctable),
        key=lambda o: (o.start, o.end),
        reverse=True,
    )
    result = source
    applied = 0
    boundary = len(source)
    for offense in edits:
        if offense.end > boundary:
            logger.debug(
                "Deferring overlapping %s edit at %d:%d", offense.rule, offense.line, offense.column,
            )
            continue
        result = result[:offense.start] + offense.replacement + result[offense.end:]
        boundary = offense.start
        applied += 1
    return result, applied


def unified_diff(original: str, corrected: str, path: str = "file") -> str:
    """Unified diff between two versions of a file, empty when unchanged."""
    original_lines = _diff_lines(original)
    corrected_lines = _diff_lines(corrected)
    diff = difflib.unified_diff(
        original_lines,
        corrected_lines,
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
    )
    return "".join(diff)


def _diff_lines(text: str) -> List[str]:
    lines = text.splitlines(keepends=True)
    if lines and not lines[-1].endswith(("\n", "\r")):
        lines[-1] += "\n\\ No newline at end of file\n"
    return lines
