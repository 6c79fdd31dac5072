"""Tests for LIKE pattern matching of catalog names."""

import pytest

from libs.bigquery_access.patterns import compile_pattern, matches


class TestMatches:
    """Test wildcard semantics."""

    def test_none_pattern_matches_everything(self):
        assert matches("anything", None)
        assert matches("", None)
        assert compile_pattern(None) is None

    @pytest.mark.parametrize(
        "value,pattern,expected",
        [
            ("sales_2024", "sales%", True),
            ("sales", "sales%", True),
            ("presales", "sales%", False),
            ("abc", "a_c", True),
            ("ac", "a_c", False),
            ("abbc", "a_c", False),
            ("orders", "orders", True),
            ("Orders", "orders", False),
            ("", "%", True),
            ("", "_", False),
        ],
    )
    def test_wildcards(self, value, pattern, expected):
        assert matches(value, pattern) is expected

    def test_escaped_underscore_is_literal(self):
        assert matches("a_c", r"a\_c")
        assert not matches("abc", r"a\_c")

    def test_escaped_percent_is_literal(self):
        assert matches("100%", r"100\%")
        assert not matches("1000", r"100\%")

    def test_escaped_backslash(self):
        assert matches("a\\b", r"a\\b")
        assert not matches("ab", r"a\\b")

    def test_trailing_backslash_is_literal(self):
        assert matches("abc\\", "abc\\")
        assert not matches("abc", "abc\\")

    def test_regex_metacharacters_are_literal(self):
        assert matches("a.b", "a.b")
        assert not matches("axb", "a.b")
        assert matches("x(1)+[y]", "x(1)+[y]")
        assert matches("$^", "$^")

    def test_anchored_at_both_ends(self):
        assert not matches("xorders", "orders")
        assert not matches("ordersx", "orders")

    def test_never_raises_on_odd_input(self):
        for pattern in ["\\", "%%__", "[", "(", "\\x", "*?"]:
            matches("whatever", pattern)
