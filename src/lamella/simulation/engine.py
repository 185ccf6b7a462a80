#!/usr/bin/env python3
"""
Simulation engine seam.

The token-game engine (firing rule, guard and inscription evaluation) is an
external collaborator. It is built from one engine document per session and
driven synchronously: one call in, one event or a list of events out.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Protocol, Sequence, runtime_checkable


@runtime_checkable
class SimulationEngine(Protocol):
    """
    Protocol for token-game engines.

    Required Methods:
        initial_markings(): Evaluated initial marking per flattened place id
        run_step(): Fire one enabled transition; the raw firing event, or
            None when nothing is enabled
        fast_forward(steps): Fire up to steps transitions; raw events in order
    """

    def initial_markings(self) -> Mapping[str, Sequence[Any]]:
        ...

    def run_step(self) -> Optional[Any]:
        ...

    def fast_forward(self, steps: int) -> Sequence[Any]:
        ...


# Builds an engine from the engine document (JSON text)
EngineFactory = Callable[[str], SimulationEngine]
