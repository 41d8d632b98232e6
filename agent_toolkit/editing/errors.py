"""
Edit errors — one exception type per failure mode, each tagged with an
:class:`EditErrorKind` so the tool boundary can report it uniformly.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .matcher import MatchCandidate


class EditErrorKind(str, Enum):
    INVALID_REQUEST = "invalid_request"
    UNSUPPORTED_FORMAT = "unsupported_format"
    NOT_FOUND = "not_found"
    AMBIGUOUS_MATCH = "ambiguous_match"
    NO_MATCH = "no_match"
    NO_EFFECTIVE_CHANGE = "no_effective_change"
    COLLABORATOR_FAILURE = "collaborator_failure"


class EditError(Exception):
    """Base class for every edit failure surfaced to the caller."""
    kind: EditErrorKind = EditErrorKind.INVALID_REQUEST


class InvalidEditRequestError(EditError):
    kind = EditErrorKind.INVALID_REQUEST


class UnsupportedFormatError(EditError):
    kind = EditErrorKind.UNSUPPORTED_FORMAT

    def __init__(self, path: str, hint: str = "") -> None:
        self.path = path
        message = f"Cannot edit {path} with the edit tool."
        if hint:
            message += f" {hint}"
        super().__init__(message)


class TargetNotFoundError(EditError):
    kind = EditErrorKind.NOT_FOUND

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"File not found: {path}")


class AmbiguousMatchError(EditError):
    kind = EditErrorKind.AMBIGUOUS_MATCH

    def __init__(self, path: str, occurrences: int) -> None:
        self.path = path
        self.occurrences = occurrences
        super().__init__(
            f"Found {occurrences} occurrences of the text in {path}. "
            f"The text must be unique. Please provide more context to make "
            f"it unique, or use all: true to replace all."
        )


class NoMatchError(EditError):
    """No exact or qualifying approximate match.

    Carries the closest near-miss so the caller can adjust its old text.
    """
    kind = EditErrorKind.NO_MATCH

    def __init__(
        self,
        path: str,
        old_text: str,
        closest: Optional["MatchCandidate"] = None,
        *,
        threshold: float,
        allow_fuzzy: bool = True,
        closest_line: int | None = None,
        candidates: Optional[list["MatchCandidate"]] = None,
    ) -> None:
        self.path = path
        self.old_text = old_text
        self.closest = closest
        self.threshold = threshold
        self.allow_fuzzy = allow_fuzzy
        self.closest_line = closest_line
        self.candidates = list(candidates or [])
        super().__init__(self._format())

    def _format(self) -> str:
        message = (
            f"Could not find the text to replace in {self.path}. "
            f"The old text must match the file content"
        )
        if self.allow_fuzzy:
            message += " (whitespace and indentation differences are tolerated)."
        else:
            message += " exactly, including all whitespace and newlines."

        if self.closest is None:
            return message

        where = f" at line {self.closest_line}" if self.closest_line else ""
        message += (
            f"\n\nClosest match{where} "
            f"({self.closest.confidence:.0%} similar, "
            f"threshold {self.threshold:.0%}):\n"
        )
        message += "\n".join(f"  {line}" for line in self.closest.text.split("\n"))
        if len(self.candidates) > 1:
            message += f"\n\n{len(self.candidates)} candidate locations were considered."
        return message


class NoEffectiveChangeError(EditError):
    kind = EditErrorKind.NO_EFFECTIVE_CHANGE

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"No changes made to {path}. The replacement produced identical "
            f"content. Check that the new text actually differs from the "
            f"text being replaced."
        )


class CollaboratorError(EditError):
    """Failure raised by the writethrough step, message kept verbatim."""
    kind = EditErrorKind.COLLABORATOR_FAILURE


class EditCancelledError(CollaboratorError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Edit of {path} was cancelled before the write was confirmed.")


class EditRejectedError(CollaboratorError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Edit of {path} was rejected during review.")
