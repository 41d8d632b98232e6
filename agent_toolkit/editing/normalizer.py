"""
Document normalizer — strips the byte-order marker and canonicalizes line
endings so matching works on a single terminator, then restores both on output.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

BOM = "\ufeff"


class LineEnding(str, Enum):
    LF = "\n"
    CRLF = "\r\n"


@dataclass(frozen=True)
class NormalizedDocument:
    """Canonical (LF-only) content plus what is needed to rebuild the raw text."""
    content: str
    bom: str = ""
    line_ending: LineEnding = LineEnding.LF
    mixed: bool = False

    def restore(self, content: str | None = None) -> str:
        """Re-apply the BOM and line ending to *content* (default: unchanged)."""
        text = self.content if content is None else content
        return restore(text, self.bom, self.line_ending)


def strip_bom(raw: str) -> tuple[str, str]:
    """Split a leading BOM off *raw*. Returns ``(bom, text)``."""
    if raw.startswith(BOM):
        return BOM, raw[len(BOM):]
    return "", raw


def detect_line_ending(text: str) -> tuple[LineEnding, bool]:
    """Return the dominant line ending and whether the text mixes both kinds.

    Ties between CRLF and bare LF go to LF.
    """
    crlf = text.count("\r\n")
    lf = text.count("\n") - crlf
    if crlf == 0:
        return LineEnding.LF, False
    if lf == 0:
        return LineEnding.CRLF, False
    dominant = LineEnding.CRLF if crlf > lf else LineEnding.LF
    return dominant, True


def normalize_to_lf(text: str) -> str:
    # Lone CR is kept so uniform files survive the round trip byte for byte.
    return text.replace("\r\n", "\n")


def restore_line_endings(text: str, ending: LineEnding) -> str:
    if ending is LineEnding.CRLF:
        return text.replace("\n", "\r\n")
    return text


def normalize(raw: str) -> NormalizedDocument:
    """Normalize raw file text for matching.

    Total over any input, including the empty string.
    """
    bom, text = strip_bom(raw)
    ending, mixed = detect_line_ending(text)
    return NormalizedDocument(
        content=normalize_to_lf(text),
        bom=bom,
        line_ending=ending,
        mixed=mixed,
    )


def restore(content: str, bom: str, ending: LineEnding) -> str:
    """Inverse of :func:`normalize` for uniform line endings."""
    return bom + restore_line_endings(content, ending)
