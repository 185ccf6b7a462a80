#!/usr/bin/env python3
"""
Tests for the inscription desugarer.
"""

import re

import pytest
from hypothesis import given, strategies as st

from lamella.inscriptions import (
    PreparedInscription,
    desugar,
    expand_all_marking,
    multiplicity,
    prepare_inscription,
    split_delay,
    split_union,
)

ARRAY = re.compile(r"^\[.*\]$", re.DOTALL)


def top_level_elements(literal: str) -> int:
    """Count the elements of an array literal, ignoring nested commas"""
    body = literal[1:-1]
    if not body.strip():
        return 0
    depth = 0
    count = 1
    for ch in body:
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        elif ch == "," and depth == 0:
            count += 1
    return count


identifiers = st.from_regex(r"[a-z][a-z0-9_]{0,5}", fullmatch=True)
tuples = st.lists(identifiers, min_size=2, max_size=3).map(lambda xs: "(" + ", ".join(xs) + ")")
counted_parts = st.tuples(st.integers(min_value=1, max_value=6), identifiers | tuples)


# ==================================================================================
# Desugaring
# ==================================================================================


class TestDesugar:
    def test_union_of_counts(self):
        assert desugar("1`x++2`y") == "[x, y, y]"

    def test_tuple_expression(self):
        assert desugar("3`(a, b)") == "[(a, b), (a, b), (a, b)]"

    def test_bare_expression_is_one_copy(self):
        assert desugar("x") == "[x]"

    def test_whitespace_around_parts(self):
        assert desugar(" 2`x ++ y ") == "[x, x, y]"

    def test_zero_count(self):
        assert desugar("0`x") == "[]"

    def test_union_inside_call_not_split(self):
        assert desugar("f(a++b)") == "[f(a++b)]"

    def test_union_inside_string_not_split(self):
        assert desugar('"a++b"++1`c') == '["a++b", c]'

    def test_malformed_count_kept_literal(self):
        assert desugar("3`") == "[3`]"
        assert desugar("x`2") == "[x`2]"

    def test_empty(self):
        assert desugar("") == "[]"

    def test_split_union(self):
        assert split_union("f(a++b)++2`c") == ["f(a++b)", "2`c"]

    def test_multiplicity(self):
        assert multiplicity("1`x++2`y++z") == 4

    @given(st.lists(counted_parts, min_size=1, max_size=5))
    def test_element_count_matches_declared_multiplicity(self, parts):
        text = "++".join(f"{count}`{expr}" for count, expr in parts)
        result = desugar(text)
        assert ARRAY.match(result)
        assert top_level_elements(result) == sum(count for count, _ in parts)

    @given(st.text(max_size=30))
    def test_output_is_always_an_array_literal(self, text):
        assert ARRAY.match(desugar(text))


# ==================================================================================
# Delays and engine preparation
# ==================================================================================


class TestPrepare:
    def test_split_delay(self):
        assert split_delay("2`x@+5") == ("2`x", "5")
        assert split_delay("x") == ("x", None)

    def test_delay_inside_brackets_ignored(self):
        assert split_delay("f(x@+1)") == ("f(x@+1)", None)

    def test_prepare_desugars_and_splits(self):
        assert prepare_inscription("2`x @+ 10") == PreparedInscription("[x, x]", "10")

    @pytest.mark.parametrize("text", ["", None])
    def test_empty_passes_through(self, text):
        assert prepare_inscription(text) == PreparedInscription("", None)

    def test_array_literal_passes_through(self):
        assert prepare_inscription("[1, 2]").expression == "[1, 2]"


# ==================================================================================
# Color set enumeration
# ==================================================================================

COLOR_SETS = [
    {"id": "cs1", "name": "INT", "type": "basic", "definition": "colset INT = int;"},
    {"id": "cs2", "name": "SMALL", "type": "basic", "definition": "colset SMALL = int with 2..5;"},
    {"id": "cs3", "name": "BOOL", "type": "basic", "definition": "colset BOOL = bool;"},
]


class TestExpandAll:
    def test_int_range_enumerated(self):
        assert expand_all_marking("SMALL.all()", COLOR_SETS) == [2, 3, 4, 5]

    def test_surrounding_whitespace(self):
        assert expand_all_marking("  SMALL .all() ", COLOR_SETS) == [2, 3, 4, 5]

    @pytest.mark.parametrize("text", ["", None, "1`1++1`2", "[1, 2]"])
    def test_other_expressions_untouched(self, text):
        assert expand_all_marking(text, COLOR_SETS) is None

    @pytest.mark.parametrize("text", ["INT.all()", "BOOL.all()", "MISSING.all()"])
    def test_unenumerable_color_set_is_empty(self, text, caplog):
        assert expand_all_marking(text, COLOR_SETS) == []
        assert any(r.levelname == "WARNING" for r in caplog.records)
