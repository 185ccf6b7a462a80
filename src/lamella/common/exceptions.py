#!/usr/bin/env python3
"""
Lamella exceptions.

All Lamella exceptions inherit from LamellaError for easy catching.
Most structural problems are reported as diagnostics instead; these are
reserved for conditions the caller must handle.
"""


class LamellaError(Exception):
    """Base exception for all Lamella errors."""


class ModelError(LamellaError):
    """A page, node or arc referenced by an operation does not exist."""


class SubstitutionCycleError(LamellaError):
    """A substitution transition (transitively) refers back to an ancestor page."""

    def __init__(self, cycle):
        self.cycle = list(cycle)
        super().__init__(f"Substitution cycle detected: {' -> '.join(self.cycle)}")


class SubpageExtractionError(LamellaError):
    """A selection cannot be carved out into a subpage."""


class EngineInitializationError(LamellaError):
    """The simulation engine could not be constructed for a flattened net."""
