#!/usr/bin/env python3
"""
Firing events and the event log.

The engine reports each firing as

    {transitionId, simulationTimeMs, consumed: {placeId: [tokens]},
     produced: {placeId: [tokens]}}

or a list of those for a batched fast-forward. The session reconciles them
into the model and appends one EventLogEntry per event.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, Iterator, List, Optional, Tuple

from pydantic import Field, ValidationError

from lamella.common.diagnostics import Diagnostic, DiagnosticCode
from lamella.common.timebase import format_duration_ms, format_timestamp
from lamella.model import CamelModel
from lamella.tokens import canonical_serialize, normalize

logger = logging.getLogger(__name__)


class FiringEvent(CamelModel):
    """One transition firing reported by the engine"""
    transition_id: str
    simulation_time_ms: float = 0.0
    consumed: Dict[str, List[Any]] = Field(default_factory=dict)
    produced: Dict[str, List[Any]] = Field(default_factory=dict)


def parse_events(raw: Any) -> Tuple[List[FiringEvent], List[Diagnostic]]:
    """
    Parse whatever the engine returned into firing events.

    Accepts None, a single event (mapping or FiringEvent) or a list or tuple of
    them. Malformed events are skipped and reported.
    """
    if raw is None:
        return [], []
    if isinstance(raw, (FiringEvent, Mapping)):
        raw = [raw]

    events: List[FiringEvent] = []
    diagnostics: List[Diagnostic] = []
    if not isinstance(raw, (list, tuple)):
        message = f"Skipping malformed engine result of type {type(raw).__name__}"
        logger.warning(message)
        diagnostics.append(Diagnostic(DiagnosticCode.MALFORMED_EVENT, message))
        return events, diagnostics

    for item in raw:
        if isinstance(item, FiringEvent):
            events.append(item)
            continue
        try:
            if isinstance(item, Mapping):
                item = dict(item)
            events.append(FiringEvent.model_validate(item))
        except ValidationError as e:
            message = f"Skipping malformed firing event: {e.error_count()} validation error(s)"
            logger.warning(message)
            diagnostics.append(Diagnostic(DiagnosticCode.MALFORMED_EVENT, message))
    return events, diagnostics


@dataclass(frozen=True)
class TokenSummary:
    """Tokens moved from or to one place by one firing"""
    place_id: str
    place_name: str
    tokens: str

    @classmethod
    def of(cls, place_id: str, place_name: str, tokens: List[Any]) -> "TokenSummary":
        return cls(place_id, place_name, canonical_serialize([normalize(t) for t in tokens]))

    def __str__(self) -> str:
        return f"{self.place_name or self.place_id}: {self.tokens}"


@dataclass
class EventLogEntry:
    """A derived, append-only record of one firing"""
    step: int
    time_ms: float
    transition_id: str
    transition_name: str
    consumed: List[TokenSummary] = field(default_factory=list)
    produced: List[TokenSummary] = field(default_factory=list)
    timestamp: Optional[datetime] = None

    @property
    def consumed_summary(self) -> str:
        return "; ".join(str(s) for s in self.consumed)

    @property
    def produced_summary(self) -> str:
        return "; ".join(str(s) for s in self.produced)

    def __str__(self) -> str:
        when = format_timestamp(self.timestamp) if self.timestamp else format_duration_ms(self.time_ms)
        return (
            f"#{self.step} {when} {self.transition_name}: "
            f"consumed [{self.consumed_summary}] produced [{self.produced_summary}]"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "time": self.time_ms,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "transitionId": self.transition_id,
            "transitionName": self.transition_name,
            "consumed": self.consumed_summary,
            "produced": self.produced_summary,
        }


class EventLog:
    """Append-only event log, optionally bounded to the most recent entries"""

    def __init__(self, capacity: Optional[int] = None):
        self._entries: Deque[EventLogEntry] = deque(maxlen=capacity)

    def append(self, entry: EventLogEntry) -> None:
        self._entries.append(entry)

    def clear(self) -> None:
        self._entries.clear()

    @property
    def last(self) -> Optional[EventLogEntry]:
        return self._entries[-1] if self._entries else None

    def entries(self) -> List[EventLogEntry]:
        return list(self._entries)

    def __iter__(self) -> Iterator[EventLogEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
