#!/usr/bin/env python3
"""
Fusion Resolver

Places sharing a fusion-set id represent one piece of state drawn on several
pages. Before simulation every such group is merged into a single canonical
place: arcs to the other members are redirected to it and the other members
are deleted.

Only the canonical place's marking survives. Markings of the other members
are discarded, not unioned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from lamella.model import FusionSet, Page, Place

logger = logging.getLogger(__name__)


class CanonicalPolicy(Enum):
    """How the surviving member of a fusion set is chosen"""
    FIRST_DISCOVERED = "first_discovered"  # page order, then node order
    LOWEST_ID = "lowest_id"


@dataclass
class FusionResult:
    """
    Outcome of fusion resolution.

    Attributes:
        aliases: Removed member id -> canonical place id
        canonical: Fusion set id -> canonical place id (merged sets only)
    """
    aliases: Dict[str, str] = field(default_factory=dict)
    canonical: Dict[str, str] = field(default_factory=dict)


def discover_fusion_ids(pages: Sequence[Page]) -> List[str]:
    """Fusion-set ids in use, in order of first appearance"""
    seen: Dict[str, None] = {}
    for page in pages:
        for place in page.places():
            if place.fusion_set_id:
                seen.setdefault(place.fusion_set_id, None)
    return list(seen)


def _members(pages: Sequence[Page], fusion_id: str) -> List[Tuple[Page, Place]]:
    return [
        (page, place)
        for page in pages
        for place in page.places()
        if place.fusion_set_id == fusion_id
    ]


def _choose_canonical(
    members: List[Tuple[Page, Place]],
    designated: Optional[str],
    policy: CanonicalPolicy,
    origins: Mapping[str, str],
) -> Tuple[Page, Place]:
    if designated:
        for member in members:
            place = member[1]
            if place.id == designated or origins.get(place.id) == designated:
                return member
        logger.warning(f"Designated canonical place {designated} is not a member; falling back to {policy.value}")
    if policy == CanonicalPolicy.LOWEST_ID:
        return min(members, key=lambda m: m[1].id)
    return members[0]


def resolve_fusion_sets(
    pages: Sequence[Page],
    fusion_sets: Iterable[FusionSet] = (),
    policy: CanonicalPolicy = CanonicalPolicy.FIRST_DISCOVERED,
    origins: Optional[Mapping[str, str]] = None,
) -> FusionResult:
    """
    Merge fusion-set places in place, across all given pages.

    Args:
        pages: Flattened pages, mutated in place
        fusion_sets: Declared fusion sets (for explicit canonical designation)
        policy: Canonical choice when no member is designated
        origins: Flattened id -> hierarchical id, so a designation made on
            the hierarchical model still matches namespaced copies

    Returns:
        FusionResult describing the merges that took place
    """
    declared = {fs.id: fs for fs in fusion_sets}
    origins = origins or {}
    result = FusionResult()

    for fusion_id in discover_fusion_ids(pages):
        members = _members(pages, fusion_id)
        if len(members) < 2:
            continue

        fs = declared.get(fusion_id)
        _, canonical = _choose_canonical(
            members, fs.canonical_place_id if fs else None, policy, origins
        )
        result.canonical[fusion_id] = canonical.id

        for page, place in members:
            if place is canonical:
                continue
            for arc in page.arcs:
                if arc.source == place.id:
                    arc.source = canonical.id
                if arc.target == place.id:
                    arc.target = canonical.id
            page.remove_node(place.id, with_arcs=False)
            result.aliases[place.id] = canonical.id
            if place.marking:
                logger.debug(f"Discarding marking of fused place {place.id} ({len(place.marking)} tokens)")

        logger.debug(f"Fusion set {fusion_id}: merged {len(members)} places into {canonical.id}")

    return result
