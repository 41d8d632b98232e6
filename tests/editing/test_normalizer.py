"""Tests for the document normalizer."""

import pytest

from agent_toolkit.editing.normalizer import (
    BOM,
    LineEnding,
    detect_line_ending,
    normalize,
    normalize_to_lf,
    restore,
    strip_bom,
)


class TestStripBom:
    def test_strips_leading_bom(self):
        bom, text = strip_bom(BOM + "hello")
        assert bom == BOM
        assert text == "hello"

    def test_no_bom(self):
        assert strip_bom("hello") == ("", "hello")

    def test_bom_in_the_middle_is_content(self):
        bom, text = strip_bom("a" + BOM)
        assert bom == ""
        assert text == "a" + BOM


class TestDetectLineEnding:
    def test_lf(self):
        assert detect_line_ending("a\nb\n") == (LineEnding.LF, False)

    def test_crlf(self):
        assert detect_line_ending("a\r\nb\r\n") == (LineEnding.CRLF, False)

    def test_no_newlines_is_lf(self):
        assert detect_line_ending("single line") == (LineEnding.LF, False)

    def test_mixed_majority_crlf(self):
        assert detect_line_ending("a\r\nb\r\nc\n") == (LineEnding.CRLF, True)

    def test_mixed_majority_lf(self):
        assert detect_line_ending("a\nb\nc\r\n") == (LineEnding.LF, True)

    def test_mixed_tie_goes_to_lf(self):
        assert detect_line_ending("a\r\nb\n") == (LineEnding.LF, True)


class TestNormalize:
    def test_empty_file(self):
        doc = normalize("")
        assert doc.content == ""
        assert doc.bom == ""
        assert doc.line_ending is LineEnding.LF

    def test_crlf_canonicalized(self):
        doc = normalize("a\r\nb\r\n")
        assert doc.content == "a\nb\n"
        assert doc.line_ending is LineEnding.CRLF

    def test_lone_cr_left_alone(self):
        assert normalize_to_lf("a\rb\r\n") == "a\rb\n"

    def test_mixed_restores_majority(self):
        doc = normalize("a\r\nb\r\nc\n")
        assert doc.mixed is True
        assert doc.restore() == "a\r\nb\r\nc\r\n"


class TestRoundTrip:
    @pytest.mark.parametrize("raw", [
        "",
        "no newline",
        "a\nb\nc\n",
        "a\r\nb\r\nc\r\n",
        BOM + "a\r\nb\r\n",
        BOM + "x\ny",
        "carriage\rreturn\r\nonly crlf\r\n",
        "\r\r\n",
    ])
    def test_uniform_content_round_trips(self, raw):
        doc = normalize(raw)
        assert restore(doc.content, doc.bom, doc.line_ending) == raw

    def test_bom_never_duplicated(self):
        doc = normalize(BOM + "a\n")
        assert doc.restore("b\n") == BOM + "b\n"
        assert doc.restore("b\n").count(BOM) == 1
