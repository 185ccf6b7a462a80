"""
Common utilities for Lamella.

Shared by the model, hierarchy and simulation layers:
- Exceptions and diagnostics
- Mermaid formatting
- Timebases and simulation-time formatting
"""

import logging

# Library does not configure handlers; callers may configure logging.
logging.getLogger("lamella").addHandler(logging.NullHandler())

from lamella.common.exceptions import (
    LamellaError,
    ModelError,
    SubstitutionCycleError,
    SubpageExtractionError,
    EngineInitializationError,
)

from lamella.common.diagnostics import (
    Diagnostic,
    DiagnosticCode,
)

from lamella.common.mermaid import (
    format_place_node,
    format_transition_node,
    format_arc,
    format_subgraph,
    format_comment,
)

from lamella.common.timebase import (
    Timebase,
    MonotonicClock,
    StepClock,
)

__all__ = [
    # Exceptions
    "LamellaError",
    "ModelError",
    "SubstitutionCycleError",
    "SubpageExtractionError",
    "EngineInitializationError",
    # Diagnostics
    "Diagnostic",
    "DiagnosticCode",
    # Mermaid
    "format_place_node",
    "format_transition_node",
    "format_arc",
    "format_subgraph",
    "format_comment",
    # Time
    "Timebase",
    "MonotonicClock",
    "StepClock",
]
