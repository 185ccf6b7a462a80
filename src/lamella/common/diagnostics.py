#!/usr/bin/env python3
"""
Diagnostics for fail-soft recoveries.

Flattening, fusion resolution, extraction and reconciliation never abort on
inconsistent input. Each recovery is recorded as a Diagnostic so callers can
surface it, and is logged at warning level by the component that made it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional


class DiagnosticCode(Enum):
    """Kinds of recoverable inconsistency."""
    MISSING_SUBPAGE = "missing_subpage"
    UNBOUND_PORT = "unbound_port"
    DANGLING_SOCKET = "dangling_socket"
    NODE_ID_COLLISION = "node_id_collision"
    DANGLING_SUBPAGE_REFERENCE = "dangling_subpage_reference"
    INSCRIPTION_DROPPED = "inscription_dropped"
    TOKEN_NOT_FOUND = "token_not_found"
    UNKNOWN_PLACE = "unknown_place"
    MALFORMED_EVENT = "malformed_event"


@dataclass(frozen=True)
class Diagnostic:
    """
    A single recoverable problem.

    Attributes:
        code: What kind of problem this is
        message: Human-readable description
        subject_id: Id of the page, node or arc concerned, if any
    """
    code: DiagnosticCode
    message: str
    subject_id: Optional[str] = None

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"


def codes(diagnostics: Iterable[Diagnostic]) -> List[DiagnosticCode]:
    """Return the codes of a diagnostics sequence, in order."""
    return [d.code for d in diagnostics]
