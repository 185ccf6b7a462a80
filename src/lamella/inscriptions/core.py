#!/usr/bin/env python3
"""
Inscription Desugarer

Arc inscriptions use CPN multiset notation:

    x               one copy of x
    3`x             three copies of x
    1`x++2`y        multiset union

The engine only understands flat array literals, so inscriptions are
rewritten before a flattened net is handed over:

    desugar("1`x++2`y")  -> "[x, y, y]"
    desugar("3`(a, b)")  -> "[(a, b), (a, b), (a, b)]"

Desugaring never fails. Parts that do not match the count syntax are kept
as a single literal copy and the engine reports anything it cannot parse.

Initial markings of the form ``INT_RANGE.all()`` are expanded from the
int range of the named color set (``colset INT_RANGE = int with 1..3;``
gives [1, 2, 3]) since the engine cannot enumerate color sets itself.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

_OPENERS = "([{"
_CLOSERS = ")]}"
_COUNTED = re.compile(r"^(\d+)`(.+)$", re.DOTALL)
_DELAY_MARK = "@+"
_ALL_SUFFIX = ".all()"
_INT_RANGE = re.compile(r"with\s+(\d+)\.\.(\d+);")


def _scan_top_level(text: str, marker: str) -> List[int]:
    """Offsets of marker occurring at bracket depth 0 and outside string literals"""
    hits = []
    depth = 0
    in_string = False
    i = 0
    while i < len(text):
        ch = text[i]
        if in_string:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
        elif depth == 0 and text.startswith(marker, i):
            hits.append(i)
            i += len(marker)
            continue
        i += 1
    return hits


def split_union(text: str) -> List[str]:
    """
    Split an inscription at top-level ``++`` operators.

    Example:
        >>> split_union("f(a++b)++2`c")
        ['f(a++b)', '2`c']
    """
    parts = []
    start = 0
    for offset in _scan_top_level(text, "++"):
        parts.append(text[start:offset])
        start = offset + 2
    parts.append(text[start:])
    return parts


def _expand_part(part: str) -> List[str]:
    part = part.strip()
    if not part:
        return []
    match = _COUNTED.match(part)
    if match:
        count = int(match.group(1))
        expr = match.group(2).strip()
        return [expr] * count
    return [part]


def desugar(text: str) -> str:
    """Rewrite a multiset inscription into an array literal."""
    elements: List[str] = []
    for part in split_union(text or ""):
        elements.extend(_expand_part(part))
    return "[" + ", ".join(elements) + "]"


def multiplicity(text: str) -> int:
    """Total number of token copies an inscription declares."""
    return sum(len(_expand_part(part)) for part in split_union(text or ""))


def split_delay(text: str) -> Tuple[str, Optional[str]]:
    """
    Split a trailing ``@+ delay`` suffix off an inscription.

    Example:
        >>> split_delay("2`x@+5")
        ('2`x', '5')
        >>> split_delay("x")
        ('x', None)
    """
    hits = _scan_top_level(text or "", _DELAY_MARK)
    if not hits:
        return (text or "").strip(), None
    offset = hits[-1]
    delay = text[offset + len(_DELAY_MARK):].strip()
    return text[:offset].strip(), (delay or None)


@dataclass(frozen=True)
class PreparedInscription:
    """An inscription ready for the engine"""
    expression: str
    delay: Optional[str] = None


def prepare_inscription(text: Optional[str]) -> PreparedInscription:
    """
    Caller-side pre-pass: separate the delay, then desugar.

    Empty inscriptions and ones already shaped as ``[...]`` pass through.
    """
    body, delay = split_delay(text or "")
    if not body or (body.startswith("[") and body.endswith("]")):
        return PreparedInscription(body, delay)
    return PreparedInscription(desugar(body), delay)


def expand_all_marking(text: Optional[str], color_sets: Sequence[Dict[str, Any]]) -> Optional[List[int]]:
    """
    Expand a ``<ColorSet>.all()`` initial marking into explicit tokens.

    Returns None when text is not an ``.all()`` expression. Only int color
    sets declared with a ``with a..b;`` range can be enumerated; anything
    else expands to an empty marking with a warning.

    Example:
        >>> expand_all_marking("SMALL.all()", [{"name": "SMALL", "definition": "colset SMALL = int with 1..3;"}])
        [1, 2, 3]
    """
    text = (text or "").strip()
    if not text.endswith(_ALL_SUFFIX):
        return None

    name = text[:-len(_ALL_SUFFIX)].strip()
    color_set = next((cs for cs in color_sets if cs.get("name") == name), None)
    definition = str(color_set.get("definition") or "") if color_set is not None else ""
    if color_set is None or "int" not in definition:
        logger.warning(f"Cannot apply '.all()' to color set {name}: not found or not an int color set")
        return []

    match = _INT_RANGE.search(definition)
    if match is None:
        logger.warning(f"No valid range found in color set definition: {definition!r}")
        return []
    start, end = int(match.group(1)), int(match.group(2))
    return list(range(start, end + 1))
