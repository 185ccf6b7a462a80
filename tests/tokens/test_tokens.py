#!/usr/bin/env python3
"""
Tests for the token normalizer and comparator.
"""

from dataclasses import dataclass
from enum import Enum

import pytest
from hypothesis import given, strategies as st
from pydantic import BaseModel

from lamella.tokens import (
    Token,
    TokenKind,
    canonical_serialize,
    equality_key,
    normalize,
    remove_token,
    remove_tokens,
    tokens_equal,
)


class Color(Enum):
    RED = "red"


class Order(BaseModel):
    qty: int
    sku: str


@dataclass
class Pair:
    left: int
    right: int


json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text(max_size=5),
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(st.text(max_size=4), children, max_size=4),
    max_leaves=12,
)


# ==================================================================================
# Normalization
# ==================================================================================


class TestNormalize:
    def test_primitives_unchanged(self):
        assert normalize(3) == 3
        assert normalize("x") == "x"
        assert normalize(True) is True
        assert normalize(None) is None

    def test_record_keys_sorted(self):
        assert list(normalize({"b": 1, "a": 2})) == ["a", "b"]

    def test_nested_records_sorted(self):
        token = {"z": {"y": 1, "x": [{"d": 1, "c": 2}]}}
        assert canonical_serialize(normalize(token)) == '{"z":{"x":[{"c":2,"d":1}],"y":1}}'

    def test_tuples_become_lists(self):
        assert normalize((1, (2, 3))) == [1, [2, 3]]

    def test_pydantic_and_dataclass_records(self):
        assert normalize(Order(qty=2, sku="a")) == {"qty": 2, "sku": "a"}
        assert normalize(Pair(1, 2)) == {"left": 1, "right": 2}

    def test_enum_uses_value(self):
        assert normalize(Color.RED) == "red"

    def test_non_json_values_use_string_form(self):
        assert normalize(object) == str(object)

    @given(json_values)
    def test_normalize_is_idempotent(self, value):
        once = normalize(value)
        assert normalize(once) == once


# ==================================================================================
# Equality
# ==================================================================================


class TestEqualityKey:
    def test_key_order_does_not_matter(self):
        a = {"name": "x", "inner": {"p": 1, "q": [1, {"s": 2, "r": 3}]}}
        b = {"inner": {"q": [1, {"r": 3, "s": 2}], "p": 1}, "name": "x"}
        assert equality_key(a) == equality_key(b)
        assert tokens_equal(a, b)

    def test_list_order_matters(self):
        assert not tokens_equal([1, 2], [2, 1])

    def test_unit_token(self):
        assert equality_key(None) == "null"

    def test_engine_record_equals_plain_dict(self):
        assert tokens_equal(Order(qty=1, sku="k"), {"sku": "k", "qty": 1})

    @given(st.dictionaries(st.text(max_size=4), json_values, max_size=6))
    def test_invariant_under_key_permutation(self, record):
        reversed_record = dict(reversed(list(record.items())))
        assert equality_key(record) == equality_key(reversed_record)


# ==================================================================================
# Removal
# ==================================================================================


class TestRemoval:
    def test_removes_first_match_only(self):
        marking = [1, {"a": 1, "b": 2}, {"b": 2, "a": 1}]
        result, found = remove_token(marking, {"a": 1, "b": 2})
        assert found
        assert result == [1, {"b": 2, "a": 1}]

    def test_input_not_modified(self):
        marking = [1, 2]
        remove_token(marking, 1)
        assert marking == [1, 2]

    def test_missing_token_reported(self):
        result, found = remove_token([1, 2], 3)
        assert not found
        assert result == [1, 2]

    def test_remove_many_counts_occurrences(self):
        result, missing = remove_tokens([1, 1, 2], [1, 1, 1])
        assert result == [2]
        assert missing == [1]


# ==================================================================================
# Tagged union
# ==================================================================================


class TestToken:
    @pytest.mark.parametrize(
        "raw,kind",
        [
            (None, TokenKind.UNIT),
            (True, TokenKind.BOOL),
            (4.5, TokenKind.NUMBER),
            ("s", TokenKind.STRING),
            ([1], TokenKind.LIST),
            ({"a": 1}, TokenKind.RECORD),
        ],
    )
    def test_kind(self, raw, kind):
        assert Token.of(raw).kind == kind

    def test_structural_equality_and_hash(self):
        a = Token.of({"b": 1, "a": 2})
        b = Token.of({"a": 2, "b": 1})
        assert a == b
        assert len({a, b}) == 1

    def test_unit(self):
        assert Token.unit() == Token.of(None)

    def test_to_json_is_a_copy(self):
        token = Token.of({"a": [1]})
        value = token.to_json()
        value["a"].append(2)
        assert token.to_json() == {"a": [1]}

    def test_normalize_unwraps_token(self):
        assert normalize(Token.of({"b": 1, "a": 2})) == {"a": 2, "b": 1}
