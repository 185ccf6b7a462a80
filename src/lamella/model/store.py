#!/usr/bin/env python3
"""
Model Store seam.

The flattener and synchronizer never reach into a global store: they read a
snapshot in and write marking updates out through this protocol.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from lamella.common.exceptions import ModelError
from .core import HierarchicalModel

logger = logging.getLogger(__name__)


@runtime_checkable
class ModelStore(Protocol):
    """
    Protocol for the owner of the committed hierarchical model.

    Required Methods:
        snapshot(): Deep copy of the current model
        get_marking(place_id): Current marking of a place
        set_marking(place_id, tokens): Replace a place's marking
        reset_markings(): Clear every marking back to unevaluated
        structural_signature(): Identity of the model's structure
    """

    def snapshot(self) -> HierarchicalModel:
        ...

    def get_marking(self, place_id: str) -> List[Any]:
        ...

    def set_marking(self, place_id: str, tokens: Sequence[Any]) -> None:
        ...

    def reset_markings(self) -> None:
        ...

    def structural_signature(self) -> Tuple:
        ...


class InMemoryModelStore:
    """ModelStore holding a HierarchicalModel in memory."""

    def __init__(self, model: Optional[HierarchicalModel] = None):
        self.model = model if model is not None else HierarchicalModel()

    def snapshot(self) -> HierarchicalModel:
        return self.model.model_copy(deep=True)

    def get_marking(self, place_id: str) -> List[Any]:
        _, place = self.model.find_place(place_id)
        if place is None:
            raise ModelError(f"Place {place_id} not found")
        return copy.deepcopy(place.marking)

    def set_marking(self, place_id: str, tokens: Sequence[Any]) -> None:
        _, place = self.model.find_place(place_id)
        if place is None:
            raise ModelError(f"Place {place_id} not found")
        # Stored markings never alias the caller's list
        place.marking = copy.deepcopy(list(tokens))

    def has_place(self, place_id: str) -> bool:
        return self.model.find_place(place_id)[1] is not None

    def reset_markings(self) -> None:
        count = 0
        for _, place in self.model.iter_places():
            place.marking = []
            count += 1
        logger.debug(f"Reset markings of {count} places")

    def structural_signature(self) -> Tuple:
        return self.model.structural_signature()
