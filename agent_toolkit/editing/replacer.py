"""
Replacement engine — applies one substitution (unique match required) or
replaces every occurrence, scanning left to right past each replacement.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .errors import AmbiguousMatchError, NoEffectiveChangeError, NoMatchError
from .matcher import (
    DEFAULT_FUZZY_THRESHOLD,
    MatchCandidate,
    MatchKind,
    MatchOutcome,
    find_match,
    line_number_at,
    scan_approximate,
    tokenize,
)

logger = logging.getLogger(__name__)


@dataclass
class ReplaceResult:
    """Content after replacement and what it took to get there."""
    content: str
    replacements: int
    match_kind: MatchKind = MatchKind.EXACT
    confidence: float = 1.0


def apply_replacement(content: str, match: MatchCandidate, new_text: str) -> str:
    """Splice *new_text* over the matched span."""
    return content[: match.start] + new_text + content[match.end:]


class Replacer:
    """Apply old-text/new-text substitutions to canonical content."""

    def __init__(
        self,
        allow_fuzzy: bool = True,
        threshold: float = DEFAULT_FUZZY_THRESHOLD,
    ) -> None:
        self._allow_fuzzy = allow_fuzzy
        self._threshold = threshold

    def replace_one(
        self,
        content: str,
        old_text: str,
        new_text: str,
        path: str = "file",
    ) -> ReplaceResult:
        """Replace the single location of *old_text*.

        Raises
        ------
        AmbiguousMatchError
            More than one exact occurrence.
        NoMatchError
            No exact or qualifying approximate match.
        NoEffectiveChangeError
            The substitution left the content unchanged.
        """
        outcome = find_match(
            content, old_text,
            allow_fuzzy=self._allow_fuzzy, threshold=self._threshold,
        )
        if outcome.occurrences > 1:
            raise AmbiguousMatchError(path, outcome.occurrences)
        if outcome.match is None:
            raise self._no_match(content, old_text, outcome, path)

        match = outcome.match
        updated = apply_replacement(content, match, new_text)
        self._require_change(content, updated, path)
        return ReplaceResult(
            content=updated,
            replacements=1,
            match_kind=match.kind,
            confidence=match.confidence,
        )

    def replace_all(
        self,
        content: str,
        old_text: str,
        new_text: str,
        path: str = "file",
    ) -> ReplaceResult:
        """Replace every occurrence of *old_text*.

        Exact occurrences are replaced in one pass.  Without any, qualifying
        approximate matches are replaced left to right.  Each search resumes
        after the previous replacement, so the new text is never matched
        again and every pass consumes part of the original content.
        """
        exact_count = content.count(old_text) if old_text else 0
        if exact_count > 0:
            updated = content.replace(old_text, new_text)
            self._require_change(content, updated, path)
            return ReplaceResult(content=updated, replacements=exact_count)

        updated = content
        cursor = 0
        count = 0
        matched = False
        lowest = 1.0
        cap = len(tokenize(content)) + 1

        for _ in range(cap):
            candidates, closest = scan_approximate(updated[cursor:], old_text)
            match = self._leftmost_qualifying(candidates)
            if match is None:
                if not matched:
                    outcome = MatchOutcome(closest=closest, candidates=candidates)
                    raise self._no_match(content, old_text, outcome, path)
                break

            matched = True
            start = cursor + match.start
            end = cursor + match.end
            if match.text == new_text:
                # Already in the requested form.
                cursor = end
                continue
            updated = updated[:start] + new_text + updated[end:]
            cursor = start + len(new_text)
            lowest = min(lowest, match.confidence)
            count += 1
        else:
            logger.warning(
                "[Edit] Replace-all in %s stopped after %d iterations",
                path, cap,
            )

        self._require_change(content, updated, path)
        return ReplaceResult(
            content=updated,
            replacements=count,
            match_kind=MatchKind.APPROXIMATE,
            confidence=lowest,
        )

    # ------------------------------------------------------------------

    def _leftmost_qualifying(
        self,
        candidates: list[MatchCandidate],
    ) -> Optional[MatchCandidate]:
        if not self._allow_fuzzy:
            return None
        qualifying = [c for c in candidates if c.confidence >= self._threshold]
        return min(qualifying, key=lambda c: c.start) if qualifying else None

    def _no_match(
        self,
        content: str,
        old_text: str,
        outcome: MatchOutcome,
        path: str,
    ) -> NoMatchError:
        closest = outcome.closest
        return NoMatchError(
            path,
            old_text,
            closest,
            threshold=self._threshold,
            allow_fuzzy=self._allow_fuzzy,
            closest_line=line_number_at(content, closest.start) if closest else None,
            candidates=outcome.candidates,
        )

    @staticmethod
    def _require_change(before: str, after: str, path: str) -> None:
        if before == after:
            raise NoEffectiveChangeError(path)
