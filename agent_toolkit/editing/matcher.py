"""
Match engine — locates an old-text fragment in canonical content.

Exact occurrences win.  When there are none, a token-window scan scores
spans by whitespace-insensitive similarity so indentation and spacing drift
is tolerated while identifier or content changes are not.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_FUZZY_THRESHOLD = 0.95

# Candidates below this score are only kept as the closest near-miss.
CANDIDATE_FLOOR = 0.5
MAX_CANDIDATES = 20

# Starts scored for a near-miss once no window can reach the floor.
NEAR_MISS_BUDGET = 64

_TOKEN_PATTERN = re.compile(r"\w+|[^\w\s]")


class MatchKind(str, Enum):
    EXACT = "exact"
    APPROXIMATE = "approximate"


@dataclass(frozen=True)
class MatchCandidate:
    """A located span of the content."""
    start: int
    length: int
    text: str
    confidence: float
    kind: MatchKind = MatchKind.APPROXIMATE

    @property
    def end(self) -> int:
        return self.start + self.length


@dataclass
class MatchOutcome:
    """Result of :func:`find_match`.

    ``occurrences`` counts exact occurrences only; ``closest`` and
    ``candidates`` are populated by the approximate scan for diagnostics.
    """
    match: Optional[MatchCandidate] = None
    occurrences: int = 0
    closest: Optional[MatchCandidate] = None
    candidates: list[MatchCandidate] = field(default_factory=list)


@dataclass(frozen=True)
class _Token:
    text: str
    start: int
    end: int


def tokenize(text: str) -> list[_Token]:
    """Split *text* into word runs and single punctuation characters."""
    return [_Token(m.group(), m.start(), m.end()) for m in _TOKEN_PATTERN.finditer(text)]


def line_number_at(content: str, offset: int) -> int:
    """1-indexed line number of *offset* in *content*."""
    return content.count("\n", 0, offset) + 1


def find_match(
    content: str,
    fragment: str,
    allow_fuzzy: bool = True,
    threshold: float = DEFAULT_FUZZY_THRESHOLD,
) -> MatchOutcome:
    """Find *fragment* in *content*.

    Parameters
    ----------
    content:
        Canonical (LF) document text.
    fragment:
        Canonical text to locate.  Must be non-empty.
    allow_fuzzy:
        Whether an approximate candidate may be chosen as the match.  The
        approximate scan still runs for diagnostics when this is False.
    threshold:
        Minimum confidence for an approximate candidate to be chosen.

    Returns
    -------
    MatchOutcome
        With ``match`` set when exactly one exact occurrence or a
        qualifying approximate candidate exists.
    """
    if not fragment:
        return MatchOutcome()

    occurrences = content.count(fragment)
    if occurrences == 1:
        start = content.index(fragment)
        exact = MatchCandidate(
            start=start,
            length=len(fragment),
            text=fragment,
            confidence=1.0,
            kind=MatchKind.EXACT,
        )
        return MatchOutcome(match=exact, occurrences=1, closest=exact)
    if occurrences > 1:
        return MatchOutcome(occurrences=occurrences)

    candidates, closest = scan_approximate(content, fragment)
    outcome = MatchOutcome(occurrences=0, closest=closest, candidates=candidates)

    if allow_fuzzy and closest is not None and closest.confidence >= threshold:
        outcome.match = closest
        qualifying = sum(1 for c in candidates if c.confidence >= threshold)
        if qualifying > 1:
            logger.warning(
                "[Match] %d approximate candidates above threshold, "
                "choosing offset %d (%.3f)",
                qualifying, closest.start, closest.confidence,
            )
        else:
            logger.debug(
                "[Match] Approximate match at offset %d (%.3f)",
                closest.start, closest.confidence,
            )
    return outcome


# ------------------------------------------------------------------
# Approximate scan
# ------------------------------------------------------------------

def scan_approximate(
    content: str,
    fragment: str,
) -> tuple[list[MatchCandidate], Optional[MatchCandidate]]:
    """Score token windows of *content* against *fragment*.

    Returns ``(candidates, closest)``: the non-overlapping candidates at or
    above :data:`CANDIDATE_FLOOR` ordered best first, and the best-scoring
    span overall (leftmost on ties).  ``closest`` is None only for empty
    content.

    Window starts are visited in order of an upper bound on their score and
    the scan stops once no remaining start can change the result.  When no
    span reaches the floor, the near-miss search is limited to
    :data:`NEAR_MISS_BUDGET` starts.
    """
    if not content:
        return [], None

    frag_tokens = [t.text for t in tokenize(fragment)]
    doc_tokens = tokenize(content)
    if not frag_tokens or not doc_tokens:
        return [], _fallback_candidate(content, fragment)

    doc_texts = [t.text for t in doc_tokens]
    n = len(doc_texts)
    m = len(frag_tokens)
    tolerance = max(1, m // 10)
    min_len = max(1, min(m - tolerance, n))
    max_len = m + tolerance

    masks = _pattern_masks(frag_tokens)
    bounds = _start_bounds(frag_tokens, doc_texts, max_len)
    order = sorted(range(n - min_len + 1), key=lambda s: (-bounds[s], s))

    def score(s: int) -> tuple[float, int, int]:
        return _best_window(masks, m, doc_texts, s, min_len, min(max_len, n - s))

    best = score(order[0])
    per_start: list[tuple[float, int, int]] = []
    if best[0] >= CANDIDATE_FLOOR:
        per_start.append(best)
    kept_floor: Optional[float] = None  # score of the last kept candidate once full
    near_misses = 0

    for s in order[1:]:
        bound = bounds[s]
        if bound < CANDIDATE_FLOOR:
            if bound < best[0] or near_misses >= NEAR_MISS_BUDGET:
                break
            near_misses += 1
        elif kept_floor is not None and bound < kept_floor:
            kept = _suppress_overlaps(per_start)
            kept_floor = kept[-1][0] if len(kept) >= MAX_CANDIDATES else None
            if kept_floor is not None and bound < kept_floor:
                break

        scored = score(s)
        if scored[0] > best[0] or (scored[0] == best[0] and s < best[1]):
            best = scored
        if scored[0] >= CANDIDATE_FLOOR:
            per_start.append(scored)
            if len(per_start) % MAX_CANDIDATES == 0:
                kept = _suppress_overlaps(per_start)
                kept_floor = kept[-1][0] if len(kept) >= MAX_CANDIDATES else None

    closest = _to_candidate(content, fragment, doc_tokens, best)
    candidates = [
        _to_candidate(content, fragment, doc_tokens, entry)
        for entry in _suppress_overlaps(per_start)
    ]
    return candidates, closest


# Token-level edit distance uses Myers' bit-parallel recurrence: bit i of the
# vectors tracks row i of the Levenshtein table, one column per document token.

def _pattern_masks(tokens: list[str]) -> dict[str, int]:
    masks: dict[str, int] = {}
    for i, tok in enumerate(tokens):
        masks[tok] = masks.get(tok, 0) | (1 << i)
    return masks


def _myers_step(
    eq: int,
    pv: int,
    mv: int,
    full: int,
    high: int,
    anchored: int,
) -> tuple[int, int, int]:
    """Advance one column; returns ``(pv, mv, delta)`` of the last row.

    ``anchored`` is 1 when the fragment must align from the first column
    (global distance) and 0 when it may start anywhere (search).
    """
    xv = eq | mv
    xh = ((((eq & pv) + pv) & full) ^ pv) | eq
    ph = mv | (~(xh | pv) & full)
    mh = pv & xh
    if ph & high:
        delta = 1
    elif mh & high:
        delta = -1
    else:
        delta = 0
    ph = ((ph << 1) | anchored) & full
    mh = (mh << 1) & full
    return mh | (~(xv | ph) & full), ph & xv, delta


def _start_bounds(frag: list[str], doc: list[str], longest: int) -> list[float]:
    """Upper bound on the score of any window starting at each offset.

    Searching the reversed fragment in the reversed document gives, per
    start, the smallest distance between the fragment and any span that
    begins there.
    """
    m = len(frag)
    masks = _pattern_masks(frag[::-1])
    full = (1 << m) - 1
    high = 1 << (m - 1)
    pv, mv, dist = full, 0, m
    bounds = [0.0] * len(doc)
    for j in range(len(doc) - 1, -1, -1):
        pv, mv, delta = _myers_step(masks.get(doc[j], 0), pv, mv, full, high, 0)
        dist += delta
        bounds[j] = 1.0 - dist / longest
    return bounds


def _best_window(
    masks: dict[str, int],
    m: int,
    doc: list[str],
    start: int,
    min_len: int,
    max_len: int,
) -> tuple[float, int, int]:
    """Best ``(score, start, length)`` over window lengths at *start*."""
    full = (1 << m) - 1
    high = 1 << (m - 1)
    pv, mv, dist = full, 0, m
    best_score = -1.0
    best_len = min_len
    for i in range(max_len):
        pv, mv, delta = _myers_step(masks.get(doc[start + i], 0), pv, mv, full, high, 1)
        dist += delta
        length = i + 1
        if length >= min_len:
            score = 1.0 - dist / max(m, length)
            if score > best_score:
                best_score = score
                best_len = length
    return best_score, start, best_len


def _suppress_overlaps(
    scored: list[tuple[float, int, int]],
) -> list[tuple[float, int, int]]:
    ordered = sorted(scored, key=lambda e: (-e[0], e[1]))
    kept: list[tuple[float, int, int]] = []
    for entry in ordered:
        _, s, length = entry
        end = s + length
        if any(s < k_s + k_len and k_s < end for _, k_s, k_len in kept):
            continue
        kept.append(entry)
        if len(kept) >= MAX_CANDIDATES:
            break
    return kept


def _to_candidate(
    content: str,
    fragment: str,
    doc_tokens: list[_Token],
    entry: tuple[float, int, int],
) -> MatchCandidate:
    score, s, length = entry
    start = doc_tokens[s].start
    end = doc_tokens[s + length - 1].end
    start, end = _extend_whitespace(content, start, end, fragment)
    return MatchCandidate(
        start=start,
        length=end - start,
        text=content[start:end],
        confidence=max(0.0, score),
        kind=MatchKind.APPROXIMATE,
    )


def _extend_whitespace(content: str, start: int, end: int, fragment: str) -> tuple[int, int]:
    """Grow the span over surrounding whitespace the fragment also carries.

    Horizontal whitespace is absorbed freely; line breaks only as many as
    the fragment's own leading/trailing whitespace contains.
    """
    stripped = fragment.lstrip()
    lead = fragment[: len(fragment) - len(stripped)]
    trail = fragment[len(fragment.rstrip()):]

    if lead:
        breaks = lead.count("\n")
        while start > 0 and content[start - 1].isspace():
            if content[start - 1] == "\n":
                if breaks == 0:
                    break
                breaks -= 1
            start -= 1

    if trail:
        breaks = trail.count("\n")
        while end < len(content) and content[end].isspace():
            if content[end] == "\n":
                if breaks == 0:
                    break
                breaks -= 1
            end += 1

    return start, end


def _fallback_candidate(content: str, fragment: str) -> MatchCandidate:
    """Closest candidate when either side has no tokens to compare."""
    length = min(len(content), max(len(fragment), 1))
    return MatchCandidate(
        start=0,
        length=length,
        text=content[:length],
        confidence=0.0,
        kind=MatchKind.APPROXIMATE,
    )
