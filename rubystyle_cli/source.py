"""Line-indexed view over a raw source buffer."""

from __future__ import annotations

import bisect
import re
from typing import List, Tuple

_LINE_RE = re.compile(r"[^\n]*\n|[^\n]+\Z")


class LineIndex:
    """Ordered lines of a source buffer with their starting offsets.

    Lines keep their original terminators, so ``"".join(index.lines)`` is
    always the source it was built from.  Line numbers are 1-based and
    columns are 0-based; offsets index into the decoded ``str``.
    """

    def __init__(self, source: str) -> None:
        self.source = source
        self.lines: List[str] = []
        self.starts: List[int] = []
        for match in _LINE_RE.finditer(source):
            self.lines.append(match.group(0))
            self.starts.append(match.start())

    def __len__(self) -> int:
        return len(self.lines)

    def line(self, number: int) -> str:
        """Raw text of line *number*, terminator included."""
        return self.lines[number - 1]

    def content(self, number: int) -> str:
        """Text of line *number* without its ``\\n`` / ``\\r\\n`` terminator."""
        text = self.line(number)
        if text.endswith("\r\n"):
            return text[:-2]
        if text.endswith("\n"):
            return text[:-1]
        return text

    def start_of(self, number: int) -> int:
        return self.starts[number - 1]

    def content_range(self, number: int) -> Tuple[int, int]:
        """Half-open offset range of the content of line *number*."""
        start = self.start_of(number)
        return start, start + len(self.content(number))

    def is_blank(self, number: int) -> bool:
        return not self.line(number).strip()

    def position(self, offset: int) -> Tuple[int, int]:
        """Resolve *offset* to a ``(line, column)`` pair."""
        if not self.starts:
            return 1, offset
        index = bisect.bisect_right(self.starts, offset) - 1
        index = max(index, 0)
        return index + 1, offset - self.starts[index]
