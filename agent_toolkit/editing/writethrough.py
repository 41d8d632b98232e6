"""
Writethrough collaborators — persist the edited content and optionally
report post-edit diagnostics.

A writethrough is any callable ``(path, content, signal, file)`` returning
:class:`FileDiagnostics` or None.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from .diff_generator import generate_diff
from .errors import EditCancelledError, EditRejectedError
from .normalizer import normalize

logger = logging.getLogger(__name__)

# Seconds between cancellation checks while a diagnostics command runs.
_POLL_INTERVAL = 0.05


@dataclass
class FileDiagnostics:
    """Diagnostics reported for a file after it was written."""
    summary: str = ""
    messages: list[str] = field(default_factory=list)
    errored: bool = False


class LocalFile:
    """Handle to a file on the local filesystem.

    Text is read and written as UTF-8 without newline translation, with
    undecodable bytes carried through as surrogates so content round-trips.
    """

    def __init__(self, path: str) -> None:
        self.path = path

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def size(self) -> int:
        return os.path.getsize(self.path)

    def read_text(self) -> str:
        with open(self.path, "r", encoding="utf-8",
                  errors="surrogateescape", newline="") as f:
            return f.read()

    def write_text(self, content: str) -> None:
        """Write atomically via temp file + rename."""
        abs_path = os.path.abspath(self.path)
        tmp_path = abs_path + ".agent_toolkit_tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8",
                      errors="surrogateescape", newline="") as f:
                f.write(content)
            os.replace(tmp_path, abs_path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def __repr__(self) -> str:
        return f"LocalFile({self.path!r})"


Writethrough = Callable[
    [str, str, Optional[threading.Event], LocalFile],
    Optional[FileDiagnostics],
]


def writethrough_noop(
    path: str,
    content: str,
    signal: Optional[threading.Event],
    file: LocalFile,
) -> Optional[FileDiagnostics]:
    """Persist the content; no diagnostics."""
    file.write_text(content)
    return None


def _build_command(command: str, path: str) -> list[str]:
    args = shlex.split(command)
    if any("{path}" in arg for arg in args):
        return [arg.replace("{path}", path) for arg in args]
    return args + [path]


def _run_diagnostics(
    args: list[str],
    path: str,
    signal: Optional[threading.Event],
    timeout: float,
) -> tuple[str, int]:
    """Run *args*, killing the process on cancellation or timeout.

    Returns the combined stdout/stderr text and the exit code.
    """
    deadline = time.monotonic() + timeout
    proc = subprocess.Popen(
        args,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        errors="replace",
        cwd=os.path.dirname(path) or None,
    )
    while True:
        try:
            stdout, stderr = proc.communicate(timeout=_POLL_INTERVAL)
            return (stdout or "") + (stderr or ""), proc.returncode
        except subprocess.TimeoutExpired:
            cancelled = signal is not None and signal.is_set()
            if not cancelled and time.monotonic() < deadline:
                continue
            proc.kill()
            proc.communicate()
            if cancelled:
                logger.info("[Edit] Diagnostics for %s cancelled", path)
                raise EditCancelledError(path)
            raise subprocess.TimeoutExpired(args, timeout)


def make_command_writethrough(command: str, timeout: float = 30.0) -> Writethrough:
    """Writethrough that runs a diagnostics command after writing.

    *command* may contain a ``{path}`` placeholder; otherwise the file path
    is appended.  Every non-empty output line becomes a diagnostic message.
    The command is killed when the cancellation signal fires.  Timeouts and
    missing executables propagate to the caller.
    """

    def _writethrough(
        path: str,
        content: str,
        signal: Optional[threading.Event],
        file: LocalFile,
    ) -> Optional[FileDiagnostics]:
        file.write_text(content)

        args = _build_command(command, path)
        logger.debug("[Edit] Running diagnostics: %s", args)
        output, returncode = _run_diagnostics(args, path, signal, timeout)
        messages = [line.rstrip() for line in output.splitlines() if line.strip()]
        if returncode == 0:
            summary = "clean" if not messages else f"{len(messages)} note(s)"
        else:
            summary = f"{len(messages)} issue(s), exit code {returncode}"
        logger.info("[Edit] Diagnostics for %s: %s", path, summary)
        return FileDiagnostics(
            summary=summary,
            messages=messages,
            errored=returncode != 0,
        )

    return _writethrough


def make_review_writethrough(
    inner: Writethrough = writethrough_noop,
    auto: bool = False,
) -> Writethrough:
    """Writethrough that asks for approval of the pending diff first.

    Rejection raises :class:`EditRejectedError` and nothing is written.
    """

    def _writethrough(
        path: str,
        content: str,
        signal: Optional[threading.Event],
        file: LocalFile,
    ) -> Optional[FileDiagnostics]:
        from ..diff_display import prompt_edit_approval

        before = normalize(file.read_text()).content if file.exists() else ""
        after = normalize(content).content
        diff = generate_diff(before, after, os.path.basename(path)).diff

        if not prompt_edit_approval(path, diff, auto=auto):
            raise EditRejectedError(path)
        return inner(path, content, signal, file)

    return _writethrough
