"""
Line-level rendering diff for block content.

This is a display aid, not a correctness-bearing comparison: it walks both
line lists with independent cursors and pairs lines by position. Differing
lines at the same position are shown as a removal followed by an addition;
there is no longest-common-subsequence alignment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

MAX_DIFF_LINES = 15


class DiffLineKind(Enum):
    CONTEXT = "CONTEXT"
    ADDED = "ADDED"
    REMOVED = "REMOVED"


@dataclass
class DiffLine:
    kind: DiffLineKind
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "text": self.text}


@dataclass
class LineDiff:
    """Diff lines plus the count of input lines left unconsumed by truncation."""

    lines: list[DiffLine] = field(default_factory=list)
    remaining: int = 0

    @property
    def truncated(self) -> bool:
        return self.remaining > 0

    def to_dict(self) -> dict[str, Any]:
        return {"lines": [line.to_dict() for line in self.lines], "remaining": self.remaining}


def line_diff(old: str, new: str, max_lines: int = MAX_DIFF_LINES) -> LineDiff:
    """Positional line diff of two texts, truncated after ``max_lines`` output lines."""
    old_lines = old.split("\n")
    new_lines = new.split("\n")
    result = LineDiff()

    old_index = 0
    new_index = 0
    displayed = 0

    while (old_index < len(old_lines) or new_index < len(new_lines)) and displayed < max_lines:
        old_line = old_lines[old_index] if old_index < len(old_lines) else None
        new_line = new_lines[new_index] if new_index < len(new_lines) else None

        if old_line is None:
            result.lines.append(DiffLine(DiffLineKind.ADDED, new_line))
            new_index += 1
            displayed += 1
        elif new_line is None:
            result.lines.append(DiffLine(DiffLineKind.REMOVED, old_line))
            old_index += 1
            displayed += 1
        elif old_line == new_line:
            result.lines.append(DiffLine(DiffLineKind.CONTEXT, old_line))
            old_index += 1
            new_index += 1
            displayed += 1
        else:
            result.lines.append(DiffLine(DiffLineKind.REMOVED, old_line))
            result.lines.append(DiffLine(DiffLineKind.ADDED, new_line))
            old_index += 1
            new_index += 1
            displayed += 2

    result.remaining = (len(old_lines) - old_index) + (len(new_lines) - new_index)
    return result


def content_lines(content: str, sign: DiffLineKind) -> list[DiffLine]:
    """Render a whole block as added or removed lines (for ADDED/DELETED changes)."""
    return [DiffLine(sign, line) for line in content.split("\n")]
