"""
Inscription Desugarer: CPN multiset arc inscriptions to array literals.
"""

from .core import (
    split_union,
    desugar,
    multiplicity,
    split_delay,
    PreparedInscription,
    prepare_inscription,
    expand_all_marking,
)

__all__ = [
    "split_union",
    "desugar",
    "multiplicity",
    "split_delay",
    "PreparedInscription",
    "prepare_inscription",
    "expand_all_marking",
]
