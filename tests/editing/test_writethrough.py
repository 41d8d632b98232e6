"""Tests for writethrough collaborators."""

import shlex
import subprocess
import sys
import threading
import time
from unittest.mock import patch

import pytest

from agent_toolkit.editing.errors import EditCancelledError, EditRejectedError
from agent_toolkit.editing.writethrough import (
    LocalFile,
    _build_command,
    make_command_writethrough,
    make_review_writethrough,
    writethrough_noop,
)


class TestLocalFile:
    def test_exists_and_size(self, tmp_path):
        target = tmp_path / "a.txt"
        file = LocalFile(str(target))
        assert not file.exists()
        target.write_bytes(b"abc")
        assert file.exists()
        assert file.size() == 3

    def test_directory_is_not_a_file(self, tmp_path):
        assert not LocalFile(str(tmp_path)).exists()

    def test_newlines_are_not_translated(self, tmp_path):
        target = tmp_path / "crlf.txt"
        target.write_bytes(b"a\r\nb\r\n")
        file = LocalFile(str(target))
        assert file.read_text() == "a\r\nb\r\n"
        file.write_text("x\r\ny\r\n")
        assert target.read_bytes() == b"x\r\ny\r\n"

    def test_undecodable_bytes_round_trip(self, tmp_path):
        target = tmp_path / "latin.txt"
        target.write_bytes(b"caf\xe9\n")
        file = LocalFile(str(target))
        file.write_text(file.read_text().replace("caf", "CAF"))
        assert target.read_bytes() == b"CAF\xe9\n"

    def test_write_leaves_no_temp_file(self, tmp_path):
        target = tmp_path / "a.txt"
        LocalFile(str(target)).write_text("content")
        assert [p.name for p in tmp_path.iterdir()] == ["a.txt"]


class TestNoopWritethrough:
    def test_writes_and_reports_nothing(self, tmp_path):
        target = tmp_path / "a.txt"
        file = LocalFile(str(target))
        assert writethrough_noop(str(target), "hello", None, file) is None
        assert target.read_text() == "hello"


class TestBuildCommand:
    def test_path_appended(self):
        assert _build_command("flake8 --quiet", "/x/a.py") == ["flake8", "--quiet", "/x/a.py"]

    def test_placeholder_substituted(self):
        assert _build_command("lint --file={path} -v", "/x/a.py") == [
            "lint", "--file=/x/a.py", "-v",
        ]


class TestCommandWritethrough:
    def _command(self, code):
        return shlex.join([sys.executable, "-c", code])

    def test_clean_run(self, tmp_path):
        target = tmp_path / "a.py"
        writethrough = make_command_writethrough(self._command("pass"))
        diagnostics = writethrough(str(target), "x = 1\n", None, LocalFile(str(target)))

        assert target.read_text() == "x = 1\n"
        assert diagnostics.summary == "clean"
        assert diagnostics.messages == []
        assert not diagnostics.errored

    def test_path_appended_as_last_argument(self, tmp_path):
        target = tmp_path / "a.py"
        writethrough = make_command_writethrough(
            self._command("import sys; print(sys.argv[-1])"))
        diagnostics = writethrough(str(target), "x\n", None, LocalFile(str(target)))
        assert diagnostics.messages == [str(target)]

    def test_failing_run_reports_issues(self, tmp_path):
        target = tmp_path / "a.py"
        code = (
            "import sys; print('a.py:1:1: E999 syntax error'); print(); "
            "print('a.py:2:1: W291 trailing space'); sys.exit(1)"
        )
        writethrough = make_command_writethrough(self._command(code))
        diagnostics = writethrough(str(target), "x = (\n", None, LocalFile(str(target)))

        assert diagnostics.errored
        assert diagnostics.summary == "2 issue(s), exit code 1"
        assert diagnostics.messages == [
            "a.py:1:1: E999 syntax error",
            "a.py:2:1: W291 trailing space",
        ]

    def test_notes_on_success(self, tmp_path):
        target = tmp_path / "a.py"
        writethrough = make_command_writethrough(
            self._command("import sys; sys.stderr.write('formatted 1 file\\n')"))
        diagnostics = writethrough(str(target), "x\n", None, LocalFile(str(target)))
        assert diagnostics.summary == "1 note(s)"
        assert not diagnostics.errored

    def test_placeholder_command(self, tmp_path):
        target = tmp_path / "a.txt"
        command = f'"{sys.executable}" -c "print(open(\'{{path}}\').read().strip())"'
        writethrough = make_command_writethrough(command, timeout=30)
        diagnostics = writethrough(str(target), "hello\n", None, LocalFile(str(target)))
        assert diagnostics.messages == ["hello"]
        assert diagnostics.summary == "1 note(s)"

    def test_signal_kills_running_command(self, tmp_path):
        target = tmp_path / "a.py"
        writethrough = make_command_writethrough(
            self._command("import time; time.sleep(30)"), timeout=60)
        signal = threading.Event()
        timer = threading.Timer(0.2, signal.set)
        timer.start()
        started = time.monotonic()
        try:
            with pytest.raises(EditCancelledError):
                writethrough(str(target), "x\n", signal, LocalFile(str(target)))
        finally:
            timer.cancel()
        assert time.monotonic() - started < 10

    def test_timeout_kills_command(self, tmp_path):
        target = tmp_path / "a.py"
        writethrough = make_command_writethrough(
            self._command("import time; time.sleep(30)"), timeout=0.3)
        with pytest.raises(subprocess.TimeoutExpired):
            writethrough(str(target), "x\n", None, LocalFile(str(target)))


class TestReviewWritethrough:
    def test_approved_writes(self, tmp_path):
        target = tmp_path / "a.txt"
        target.write_text("old\n")
        writethrough = make_review_writethrough()
        with patch("agent_toolkit.diff_display.prompt_edit_approval",
                   return_value=True) as prompt:
            writethrough(str(target), "new\n", None, LocalFile(str(target)))

        assert target.read_text() == "new\n"
        path, diff = prompt.call_args[0]
        assert path == str(target)
        assert "-old" in diff and "+new" in diff

    def test_rejected_does_not_write(self, tmp_path):
        target = tmp_path / "a.txt"
        target.write_text("old\n")
        writethrough = make_review_writethrough()
        with patch("agent_toolkit.diff_display.prompt_edit_approval",
                   return_value=False):
            with pytest.raises(EditRejectedError):
                writethrough(str(target), "new\n", None, LocalFile(str(target)))
        assert target.read_text() == "old\n"

    def test_auto_approves_without_prompting(self, tmp_path):
        target = tmp_path / "a.txt"
        target.write_text("old\n")
        writethrough = make_review_writethrough(auto=True)
        writethrough(str(target), "new\n", None, LocalFile(str(target)))
        assert target.read_text() == "new\n"
