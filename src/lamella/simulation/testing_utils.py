#!/usr/bin/env python3
"""
Testing utilities for simulation sessions.

ScriptedEngine stands in for the external token-game engine: it records the
engine document it was built from and replays a fixed script of firing
events, so reconciliation can be tested without a real engine.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, Sequence


class ScriptedEngine:
    """Engine double replaying scripted events in order"""

    def __init__(
        self,
        document: str,
        events: Optional[Sequence[Any]] = None,
        initial: Optional[Mapping[str, Sequence[Any]]] = None,
    ):
        self.document = json.loads(document)
        self._events = list(events or [])
        self._initial = dict(initial or {})
        self.steps_requested = 0

    def initial_markings(self) -> Dict[str, List[Any]]:
        return {k: list(v) for k, v in self._initial.items()}

    def run_step(self) -> Optional[Any]:
        self.steps_requested += 1
        if not self._events:
            return None
        return self._events.pop(0)

    def fast_forward(self, steps: int) -> List[Any]:
        batch = self._events[:steps]
        self._events = self._events[steps:]
        return batch

    @property
    def remaining(self) -> int:
        return len(self._events)


class ScriptedEngineFactory:
    """
    EngineFactory producing ScriptedEngines.

    Every built engine is kept in `engines` so tests can inspect the
    documents the session produced.
    """

    def __init__(
        self,
        events: Optional[Sequence[Any]] = None,
        initial: Optional[Mapping[str, Sequence[Any]]] = None,
        fail_with: Optional[Exception] = None,
    ):
        self.events = list(events or [])
        self.initial = dict(initial or {})
        self.fail_with = fail_with
        self.engines: List[ScriptedEngine] = []

    def __call__(self, document: str) -> ScriptedEngine:
        if self.fail_with is not None:
            raise self.fail_with
        engine = ScriptedEngine(document, self.events, self.initial)
        self.engines.append(engine)
        return engine

    @property
    def last(self) -> Optional[ScriptedEngine]:
        return self.engines[-1] if self.engines else None
