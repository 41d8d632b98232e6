"""Text-patch editing — locate an old-text fragment and rewrite it safely."""

from .normalizer import NormalizedDocument, LineEnding, normalize, restore
from .matcher import (
    DEFAULT_FUZZY_THRESHOLD, MatchCandidate, MatchKind, MatchOutcome, find_match,
)
from .replacer import Replacer, ReplaceResult, apply_replacement
from .diff_generator import DiffResult, generate_diff
from .errors import (
    EditError, EditErrorKind, InvalidEditRequestError, UnsupportedFormatError,
    TargetNotFoundError, AmbiguousMatchError, NoMatchError,
    NoEffectiveChangeError, CollaboratorError, EditCancelledError,
    EditRejectedError,
)
from .writethrough import (
    FileDiagnostics, LocalFile, Writethrough, writethrough_noop,
    make_command_writethrough, make_review_writethrough,
)
from .edit_tool import (
    EditTool, EditToolOptions, EditToolResult, EditToolDetails, EditRequest,
    EditResult, ToolResponse, EDIT_TOOL_SCHEMA,
)
from .metrics import log_edit_metric, read_edit_stats

__all__ = [
    "NormalizedDocument", "LineEnding", "normalize", "restore",
    "DEFAULT_FUZZY_THRESHOLD", "MatchCandidate", "MatchKind", "MatchOutcome",
    "find_match",
    "Replacer", "ReplaceResult", "apply_replacement",
    "DiffResult", "generate_diff",
    "EditError", "EditErrorKind", "InvalidEditRequestError",
    "UnsupportedFormatError", "TargetNotFoundError", "AmbiguousMatchError",
    "NoMatchError", "NoEffectiveChangeError", "CollaboratorError",
    "EditCancelledError", "EditRejectedError",
    "FileDiagnostics", "LocalFile", "Writethrough", "writethrough_noop",
    "make_command_writethrough", "make_review_writethrough",
    "EditTool", "EditToolOptions", "EditToolResult", "EditToolDetails",
    "EditRequest", "EditResult", "ToolResponse", "EDIT_TOOL_SCHEMA",
    "log_edit_metric", "read_edit_stats",
]
