#!/usr/bin/env python3
"""
Token Normalizer/Comparator

Tokens are arbitrary JSON-shaped values: numbers, strings, booleans, None
(the unit token), lists and keyed records. The engine hands records back in
its own container types while the model stores plain dicts, so equality is
decided on a canonical form rather than on Python identity or key order.

    normalize({"b": 1, "a": [2, None]})    -> {"a": [2, None], "b": 1}
    equality_key({"b": 1, "a": 2}) == equality_key({"a": 2, "b": 1})
"""

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, List, Sequence, Tuple

from pydantic import BaseModel

logger = logging.getLogger(__name__)


def normalize(token: Any) -> Any:
    """
    Return the canonical form of a token.

    - None -> None (the unit token)
    - any Mapping -> dict with str keys, sorted, values normalized
    - pydantic models and dataclass instances -> normalized dict of their fields
    - lists and tuples -> list, element-wise normalized, order preserved
    - primitives unchanged
    """
    if token is None:
        return None
    if isinstance(token, (bool, int, float, str)):
        return token
    if isinstance(token, Token):
        return token.value
    if isinstance(token, Mapping):
        return _normalize_record(token.items())
    if isinstance(token, BaseModel):
        return _normalize_record(token.model_dump().items())
    if dataclasses.is_dataclass(token) and not isinstance(token, type):
        return _normalize_record(
            (f.name, getattr(token, f.name)) for f in dataclasses.fields(token)
        )
    if isinstance(token, (list, tuple)):
        return [normalize(item) for item in token]
    if isinstance(token, Enum):
        return normalize(token.value)
    # Anything else is not JSON-shaped; compare by its string form
    return str(token)


def _normalize_record(items) -> dict:
    pairs = [(str(k), normalize(v)) for k, v in items]
    pairs.sort(key=lambda kv: kv[0])
    return dict(pairs)


def canonical_serialize(value: Any) -> str:
    """Deterministic compact JSON for an already-normalized value"""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def equality_key(token: Any) -> str:
    """Equality key of a token: equal tokens have equal keys."""
    return canonical_serialize(normalize(token))


def tokens_equal(a: Any, b: Any) -> bool:
    return equality_key(a) == equality_key(b)


def remove_token(marking: Sequence[Any], token: Any) -> Tuple[List[Any], bool]:
    """
    Remove exactly one occurrence of token from marking.

    Returns the new marking and whether a match was found. The input
    sequence is not modified.
    """
    key = equality_key(token)
    result = list(marking)
    for index, candidate in enumerate(result):
        if equality_key(candidate) == key:
            del result[index]
            return result, True
    return result, False


def remove_tokens(marking: Sequence[Any], tokens: Sequence[Any]) -> Tuple[List[Any], List[Any]]:
    """
    Remove each of tokens from marking, one occurrence per consumed token.

    Returns the new marking and the tokens that had no match. A missing token
    is a consistency warning, not an error: the marking is left as it is for
    that token.
    """
    result = list(marking)
    missing = []
    for token in tokens:
        result, found = remove_token(result, token)
        if not found:
            missing.append(token)
    return result, missing


# ============================================================================
# Tagged-union token value
# ============================================================================

class TokenKind(Enum):
    UNIT = "unit"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    LIST = "list"
    RECORD = "record"


class Token:
    """
    A token as a tagged union with structural equality.

    Token.of() accepts any JSON-shaped value (or engine/application record)
    and keeps its normalized form. Two tokens are equal iff their keys are.

    Example:
        >>> Token.of({"b": 1, "a": 2}) == Token.of({"a": 2, "b": 1})
        True
        >>> Token.of(None).kind
        <TokenKind.UNIT: 'unit'>
    """

    __slots__ = ("kind", "value", "_key")

    def __init__(self, kind: TokenKind, value: Any):
        self.kind = kind
        self.value = value
        self._key = canonical_serialize(value)

    @classmethod
    def of(cls, raw: Any) -> "Token":
        if isinstance(raw, Token):
            return raw
        value = normalize(raw)
        return cls(cls._kind_of(value), value)

    @classmethod
    def unit(cls) -> "Token":
        return cls(TokenKind.UNIT, None)

    @staticmethod
    def _kind_of(value: Any) -> TokenKind:
        if value is None:
            return TokenKind.UNIT
        if isinstance(value, bool):
            return TokenKind.BOOL
        if isinstance(value, (int, float)):
            return TokenKind.NUMBER
        if isinstance(value, str):
            return TokenKind.STRING
        if isinstance(value, list):
            return TokenKind.LIST
        return TokenKind.RECORD

    @property
    def key(self) -> str:
        return self._key

    def to_json(self) -> Any:
        """Plain JSON value (fresh copy for containers)"""
        return json.loads(self._key)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Token):
            return self._key == other._key
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._key)

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self._key})"
