"""Tests for the replacement engine."""

import pytest

from agent_toolkit.editing.errors import (
    AmbiguousMatchError,
    EditErrorKind,
    NoEffectiveChangeError,
    NoMatchError,
)
from agent_toolkit.editing.matcher import MatchCandidate, MatchKind
from agent_toolkit.editing.replacer import Replacer, apply_replacement


class TestApplyReplacement:
    def test_splice(self):
        match = MatchCandidate(2, 1, "b", 1.0, MatchKind.EXACT)
        assert apply_replacement("a\nb\nc\n", match, "B") == "a\nB\nc\n"

    def test_deletion(self):
        match = MatchCandidate(0, 2, "a\n", 1.0, MatchKind.EXACT)
        assert apply_replacement("a\nb\n", match, "") == "b\n"


class TestReplaceOne:
    def test_exact_single_match(self):
        result = Replacer().replace_one("a\nb\nc\n", "b", "B")
        assert result.content == "a\nB\nc\n"
        assert result.replacements == 1
        assert result.match_kind is MatchKind.EXACT

    def test_ambiguous(self):
        with pytest.raises(AmbiguousMatchError) as exc_info:
            Replacer().replace_one("x=1\nx=1\n", "x=1", "x=2", path="conf.py")
        assert exc_info.value.occurrences == 2
        assert exc_info.value.kind is EditErrorKind.AMBIGUOUS_MATCH
        assert "Found 2 occurrences" in str(exc_info.value)
        assert "conf.py" in str(exc_info.value)

    def test_approximate_replaces_real_span(self):
        result = Replacer().replace_one(
            "function foo() {\n  return 1;\n}\n",
            "function foo(){",
            "function foo(a) {",
        )
        assert result.content == "function foo(a) {\n  return 1;\n}\n"
        assert result.match_kind is MatchKind.APPROXIMATE

    def test_different_identifier_is_no_match(self):
        with pytest.raises(NoMatchError) as exc_info:
            Replacer().replace_one("function foo() {\n", "function bar(){", "x")
        err = exc_info.value
        assert err.closest is not None
        assert err.closest_line == 1
        assert err.threshold == 0.95
        assert "Closest match at line 1" in str(err)

    def test_fuzzy_disabled_requires_exact(self):
        replacer = Replacer(allow_fuzzy=False)
        with pytest.raises(NoMatchError) as exc_info:
            replacer.replace_one("function foo() {\n", "function foo(){", "x")
        assert "exactly" in str(exc_info.value)

    def test_no_op_rejected(self):
        with pytest.raises(NoEffectiveChangeError):
            Replacer().replace_one("a\nb\n", "b", "b")

    def test_approximate_no_op_rejected(self):
        # The approximate span already reads exactly like the new text.
        with pytest.raises(NoEffectiveChangeError):
            Replacer().replace_one("foo( x )\n", "foo(x)", "foo( x )")

    def test_failure_is_idempotent(self):
        replacer = Replacer()
        first = replacer.replace_one("alpha = 1\nbeta = 2\n", "alpha = 1", "gamma = 3")
        with pytest.raises(NoMatchError):
            replacer.replace_one(first.content, "alpha = 1", "gamma = 3")


class TestReplaceAll:
    def test_exact_replace_all(self):
        result = Replacer().replace_all("x=1\nx=1\n", "x=1", "x=2")
        assert result.content == "x=2\nx=2\n"
        assert result.replacements == 2
        assert result.match_kind is MatchKind.EXACT

    def test_exact_single_occurrence(self):
        result = Replacer().replace_all("a\nb\n", "b", "c")
        assert result.replacements == 1

    def test_approximate_iterative(self):
        content = "call( a )\nother()\ncall(  a  )\n"
        result = Replacer().replace_all(content, "call(a)", "call(b)")
        assert result.content == "call(b)\nother()\ncall(b)\n"
        assert result.replacements == 2
        assert result.match_kind is MatchKind.APPROXIMATE

    def test_no_match_in_all_mode(self):
        with pytest.raises(NoMatchError):
            Replacer().replace_all("a\nb\n", "zzz", "y")

    def test_no_op_in_all_mode(self):
        with pytest.raises(NoEffectiveChangeError):
            Replacer().replace_all("x=1\nx=1\n", "x=1", "x=1")

    def test_new_text_containing_fragment_is_not_rematched(self):
        result = Replacer().replace_all("tick( )\n", "tick()", "tick() tick()")
        assert result.content == "tick() tick()\n"
        assert result.replacements == 1

    def test_reformat_reaches_every_occurrence(self):
        # The new text still matches the fragment with full confidence.
        content = "foo( a )\nbar()\nfoo(  a )\n"
        result = Replacer().replace_all(content, "foo(a)", "foo( a)")
        assert result.content == "foo( a)\nbar()\nfoo( a)\n"
        assert result.replacements == 2

    def test_span_already_in_target_form_is_skipped(self):
        content = "foo( x )\nfoo(x )\n"
        result = Replacer().replace_all(content, "foo(x)", "foo( x )")
        assert result.content == "foo( x )\nfoo( x )\n"
        assert result.replacements == 1

    def test_every_span_already_in_target_form(self):
        with pytest.raises(NoEffectiveChangeError):
            Replacer().replace_all("foo( x )\n", "foo(x)", "foo( x )")

    def test_deletion_at_start(self):
        content = "drop( 1 )\nkeep\ndrop(  1 )\n"
        result = Replacer().replace_all(content, "drop(1)", "")
        assert result.content == "\nkeep\n\n"
        assert result.replacements == 2

    def test_leftmost_qualifying_candidate_first(self):
        # The later occurrence scores higher but both clear the threshold.
        content = (
            "value = compute(alpha, beta, gamma, delta, eps, zeta, eta, theta, iota, kappa ,)\n"
            "value = compute(alpha, beta, gamma, delta, eps, zeta, eta, theta, iota, kappa)\n"
        )
        fragment = "value = compute(alpha, beta, gamma, delta, eps, zeta, eta, theta, iota, kappa )"
        result = Replacer(threshold=0.9).replace_all(content, fragment, "value = 0")
        assert result.content == "value = 0\nvalue = 0\n"
        assert result.replacements == 2
