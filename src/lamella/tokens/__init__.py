"""
Token Normalizer/Comparator: canonical form and equality of JSON-shaped tokens.
"""

from .core import (
    normalize,
    canonical_serialize,
    equality_key,
    tokens_equal,
    remove_token,
    remove_tokens,
    TokenKind,
    Token,
)

__all__ = [
    "normalize",
    "canonical_serialize",
    "equality_key",
    "tokens_equal",
    "remove_token",
    "remove_tokens",
    "TokenKind",
    "Token",
]
