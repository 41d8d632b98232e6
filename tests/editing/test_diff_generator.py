"""Tests for the diff generator."""

from agent_toolkit.editing.diff_generator import first_changed_line, generate_diff


class TestGenerateDiff:
    def test_identical_input(self):
        result = generate_diff("a\nb\n", "a\nb\n")
        assert result.diff == ""
        assert result.first_changed_line is None

    def test_single_line_change(self):
        result = generate_diff("a\nb\nc\n", "a\nB\nc\n", path="f.txt")
        assert result.first_changed_line == 2
        lines = result.diff.split("\n")
        assert lines[0] == "--- a/f.txt"
        assert lines[1] == "+++ b/f.txt"
        assert "-b" in lines
        assert "+B" in lines

    def test_no_trailing_line_terminators(self):
        result = generate_diff("x\n", "y\n")
        assert not result.diff.endswith("\n")
        assert "\n\n" not in result.diff

    def test_context_lines(self):
        before = "\n".join(str(i) for i in range(20))
        after = before.replace("10", "ten")
        result = generate_diff(before, after, context=1)
        body = result.diff.split("\n")[3:]
        assert body == [" 9", "-10", "+ten", " 11"]

    def test_insertion_at_end(self):
        result = generate_diff("a\n", "a\nb\n")
        assert result.first_changed_line == 2


class TestFirstChangedLine:
    def test_equal_sequences(self):
        assert first_changed_line(["a", "b"], ["a", "b"]) is None

    def test_first_line_changed(self):
        assert first_changed_line(["a", "b"], ["z", "b"]) == 1

    def test_deletion(self):
        assert first_changed_line(["a", "b", "c"], ["a", "c"]) == 2
