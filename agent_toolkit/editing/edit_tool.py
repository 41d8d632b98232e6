"""
Edit tool — replaces text in a file on behalf of the agent loop.

Sequences normalization, matching, replacement, writethrough and diffing,
and converts failures into caller-facing messages at the tool boundary.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional

from ..path_utils import resolve_to_cwd
from .diff_generator import generate_diff
from .errors import (
    CollaboratorError,
    EditCancelledError,
    EditError,
    InvalidEditRequestError,
    TargetNotFoundError,
    UnsupportedFormatError,
)
from .matcher import DEFAULT_FUZZY_THRESHOLD, MatchKind
from .metrics import log_edit_metric
from .normalizer import normalize, normalize_to_lf
from .replacer import Replacer
from .writethrough import FileDiagnostics, LocalFile, Writethrough, writethrough_noop

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)

EDIT_TOOL_DESCRIPTION = (
    "Replace text in a file. oldText must identify a unique location unless "
    "all is true. Whitespace and indentation differences are tolerated when "
    "the match is high-confidence."
)

EDIT_TOOL_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "path": {
            "type": "string",
            "description": "Path to the file to edit (relative or absolute)",
        },
        "oldText": {
            "type": "string",
            "description": (
                "Text to find and replace (high-confidence fuzzy matching "
                "for whitespace/indentation is always on)"
            ),
        },
        "newText": {
            "type": "string",
            "description": "New text to replace the old text with",
        },
        "all": {
            "type": "boolean",
            "description": "Replace all occurrences instead of requiring unique match",
        },
    },
    "required": ["path", "oldText", "newText"],
    "additionalProperties": False,
}

# Document types that have their own structured editor.
UNSUPPORTED_SUFFIXES = {
    ".ipynb": "Jupyter notebooks must be edited with the notebook tool instead.",
}


@dataclass(frozen=True)
class EditRequest:
    path: str
    old_text: str
    new_text: str
    replace_all: bool = False

    @classmethod
    def from_params(cls, params: dict) -> "EditRequest":
        """Build a request from tool-call parameters.

        Accepts the schema's camelCase keys and snake_case aliases.
        """
        if not isinstance(params, dict):
            raise InvalidEditRequestError("Edit parameters must be an object.")

        def _text(*keys: str) -> str:
            for key in keys:
                if key in params:
                    value = params[key]
                    if not isinstance(value, str):
                        raise InvalidEditRequestError(f"'{keys[0]}' must be a string.")
                    return value
            raise InvalidEditRequestError(f"Missing required parameter '{keys[0]}'.")

        replace_all = params.get("all", params.get("replace_all", False))
        if replace_all is None:
            replace_all = False
        if not isinstance(replace_all, bool):
            raise InvalidEditRequestError("'all' must be a boolean.")

        return cls(
            path=_text("path"),
            old_text=_text("oldText", "old_text"),
            new_text=_text("newText", "new_text"),
            replace_all=replace_all,
        )


@dataclass
class EditResult:
    diff: str
    first_changed_line: Optional[int]
    replacements: int


@dataclass
class EditToolDetails:
    diff: str
    first_changed_line: Optional[int] = None
    diagnostics: Optional[FileDiagnostics] = None


@dataclass
class EditToolResult:
    """Successful edit: summary text, structured details and match info."""
    text: str
    details: EditToolDetails
    result: EditResult
    match_kind: MatchKind = MatchKind.EXACT
    confidence: float = 1.0


@dataclass
class ToolResponse:
    """What the agent loop receives from :meth:`EditTool.run`."""
    text: str
    is_error: bool = False
    error_kind: Optional[str] = None
    details: Optional[EditToolDetails] = None


@dataclass
class EditToolOptions:
    """Explicit configuration for one :class:`EditTool`."""
    cwd: str = "."
    fuzzy_match: bool = True
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD
    writethrough: Writethrough = writethrough_noop
    file_factory: Callable[[str], LocalFile] = field(default=LocalFile)
    metrics_root: Optional[str] = None

    @classmethod
    def from_config(
        cls,
        cfg: "Config",
        cwd: str = ".",
        writethrough: Optional[Writethrough] = None,
    ) -> "EditToolOptions":
        if writethrough is None and cfg.DIAGNOSTICS_COMMAND:
            from .writethrough import make_command_writethrough
            writethrough = make_command_writethrough(
                cfg.DIAGNOSTICS_COMMAND, timeout=cfg.DIAGNOSTICS_TIMEOUT,
            )
        return cls(
            cwd=cwd,
            fuzzy_match=cfg.FUZZY_MATCH,
            fuzzy_threshold=cfg.FUZZY_THRESHOLD,
            writethrough=writethrough or writethrough_noop,
            metrics_root=(cfg.METRICS_DIR or cwd) if cfg.EDIT_METRICS else None,
        )


class EditTool:
    """The ``edit`` tool."""

    name = "edit"
    label = "Edit"
    description = EDIT_TOOL_DESCRIPTION
    parameters = EDIT_TOOL_SCHEMA

    def __init__(self, options: Optional[EditToolOptions] = None) -> None:
        self._options = options or EditToolOptions()
        self._replacer = Replacer(
            allow_fuzzy=self._options.fuzzy_match,
            threshold=self._options.fuzzy_threshold,
        )

    @property
    def options(self) -> EditToolOptions:
        return self._options

    def run(
        self,
        params: dict,
        signal: Optional[threading.Event] = None,
    ) -> ToolResponse:
        """Tool boundary: never raises :class:`EditError`."""
        try:
            request = EditRequest.from_params(params)
            outcome = self.execute(
                request.path, request.old_text, request.new_text,
                replace_all=request.replace_all, signal=signal,
            )
        except EditError as exc:
            return ToolResponse(text=str(exc), is_error=True, error_kind=exc.kind.value)
        return ToolResponse(text=outcome.text, details=outcome.details)

    def execute(
        self,
        path: str,
        old_text: str,
        new_text: str,
        replace_all: bool = False,
        signal: Optional[threading.Event] = None,
    ) -> EditToolResult:
        """Replace *old_text* with *new_text* in *path*.

        Raises
        ------
        EditError
            One subclass per failure mode; nothing is retried.
        """
        request = EditRequest(path, old_text, new_text, bool(replace_all))
        try:
            outcome = self._execute(request, signal)
        except EditError as exc:
            logger.info("[Edit] %s failed (%s): %s",
                        path, exc.kind.value, str(exc).split("\n", 1)[0])
            self._record(request, error=exc)
            raise
        self._record(request, outcome=outcome)
        return outcome

    # ------------------------------------------------------------------

    def _execute(
        self,
        request: EditRequest,
        signal: Optional[threading.Event],
    ) -> EditToolResult:
        path = request.path
        if not request.old_text:
            raise InvalidEditRequestError("oldText must not be empty.")
        self._check_format(path)

        abs_path = resolve_to_cwd(path, self._options.cwd)
        file = self._options.file_factory(abs_path)
        if not file.exists():
            raise TargetNotFoundError(path)

        doc = normalize(file.read_text())
        if doc.mixed:
            logger.info("[Edit] %s has mixed line endings, writing %r",
                        path, doc.line_ending.value)
        old_text = normalize_to_lf(request.old_text)
        new_text = normalize_to_lf(request.new_text)

        if request.replace_all:
            replaced = self._replacer.replace_all(doc.content, old_text, new_text, path)
        else:
            replaced = self._replacer.replace_one(doc.content, old_text, new_text, path)

        final_content = doc.restore(replaced.content)
        diagnostics = self._write(path, abs_path, final_content, signal, file)

        diff = generate_diff(doc.content, replaced.content, path)
        logger.info("[Edit] %s: %d replacement(s), %s match (%.3f)",
                    path, replaced.replacements, replaced.match_kind.value,
                    replaced.confidence)

        return EditToolResult(
            text=self._summary(path, replaced.replacements, diagnostics),
            details=EditToolDetails(
                diff=diff.diff,
                first_changed_line=diff.first_changed_line,
                diagnostics=diagnostics,
            ),
            result=EditResult(
                diff=diff.diff,
                first_changed_line=diff.first_changed_line,
                replacements=replaced.replacements,
            ),
            match_kind=replaced.match_kind,
            confidence=replaced.confidence,
        )

    @staticmethod
    def _check_format(path: str) -> None:
        lowered = path.lower()
        for suffix, hint in UNSUPPORTED_SUFFIXES.items():
            if lowered.endswith(suffix):
                raise UnsupportedFormatError(path, hint)

    def _write(
        self,
        path: str,
        abs_path: str,
        content: str,
        signal: Optional[threading.Event],
        file: LocalFile,
    ) -> Optional[FileDiagnostics]:
        if signal is not None and signal.is_set():
            raise EditCancelledError(path)
        try:
            diagnostics = self._options.writethrough(abs_path, content, signal, file)
        except EditError:
            raise
        except Exception as exc:
            raise CollaboratorError(str(exc) or type(exc).__name__) from exc
        # A signal raised while the collaborator ran still abandons the edit.
        if signal is not None and signal.is_set():
            raise EditCancelledError(path)
        return diagnostics

    @staticmethod
    def _summary(
        path: str,
        replacements: int,
        diagnostics: Optional[FileDiagnostics],
    ) -> str:
        if replacements > 1:
            text = f"Successfully replaced {replacements} occurrences in {path}."
        else:
            text = f"Successfully replaced text in {path}."

        if diagnostics is not None and diagnostics.messages:
            text += f"\n\nDiagnostics ({diagnostics.summary}):\n"
            text += "\n".join(f"  {message}" for message in diagnostics.messages)
        return text

    def _record(
        self,
        request: EditRequest,
        outcome: Optional[EditToolResult] = None,
        error: Optional[EditError] = None,
    ) -> None:
        if not self._options.metrics_root:
            return
        entry: dict[str, Any] = {
            "file": request.path,
            "replace_all": request.replace_all,
            "success": outcome is not None,
        }
        if outcome is not None:
            entry.update(
                replacements=outcome.result.replacements,
                match_kind=outcome.match_kind.value,
                confidence=round(outcome.confidence, 4),
            )
        if error is not None:
            entry["error_kind"] = error.kind.value
        log_edit_metric(entry, project_root=self._options.metrics_root)
