"""
Diff generator — line-level unified diff between pre- and post-edit
canonical content.
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from typing import Optional


@dataclass
class DiffResult:
    diff: str = ""
    first_changed_line: Optional[int] = None


def first_changed_line(before_lines: list[str], after_lines: list[str]) -> Optional[int]:
    """1-indexed line where the two sequences first diverge, or None."""
    matcher = difflib.SequenceMatcher(None, before_lines, after_lines, autojunk=False)
    for tag, i1, _i2, _j1, _j2 in matcher.get_opcodes():
        if tag != "equal":
            return i1 + 1
    return None


def generate_diff(
    before: str,
    after: str,
    path: str = "file",
    context: int = 3,
) -> DiffResult:
    """Compute a unified-style diff of two LF-normalized texts."""
    if before == after:
        return DiffResult()

    before_lines = before.split("\n")
    after_lines = after.split("\n")

    diff = difflib.unified_diff(
        before_lines, after_lines,
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
        n=context,
        lineterm="",
    )
    return DiffResult(
        diff="\n".join(diff),
        first_changed_line=first_changed_line(before_lines, after_lines),
    )
