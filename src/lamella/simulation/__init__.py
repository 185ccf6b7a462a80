"""
Simulation session: engine seam, engine document, firing-event reconciliation
and the event log.
"""

from .engine import SimulationEngine, EngineFactory
from .events import (
    FiringEvent,
    parse_events,
    TokenSummary,
    EventLogEntry,
    EventLog,
)
from .export import EngineDocument, export_page, build_engine_document
from .session import RunState, SessionConfig, SimulationSession

__all__ = [
    # Engine
    "SimulationEngine",
    "EngineFactory",
    # Events
    "FiringEvent",
    "parse_events",
    "TokenSummary",
    "EventLogEntry",
    "EventLog",
    # Export
    "EngineDocument",
    "export_page",
    "build_engine_document",
    # Session
    "RunState",
    "SessionConfig",
    "SimulationSession",
]
