#!/usr/bin/env python3
"""
Engine document export.

One JSON document per session describes the flattened net to the engine:
- one entry per flattened (root) page, keyed by page id, plus page order
- place markings stringified as JSON arrays; initial markings stay source
  expressions for the engine to evaluate, except ``<ColorSet>.all()`` which
  is expanded into an explicit token list sent as both initial and current
  marking
- arc inscriptions desugared to array literals, delays split into their
  own field
- declarations and fusion sets passed through, with the simulation epoch
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from pydantic import Field

from lamella.hierarchy import FlattenedNet
from lamella.inscriptions import expand_all_marking, prepare_inscription
from lamella.model import CamelModel, HierarchicalModel, Page
from lamella.tokens import canonical_serialize, normalize

logger = logging.getLogger(__name__)


class EngineDocument(CamelModel):
    petri_nets_by_id: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    petri_net_order: List[str] = Field(default_factory=list)
    color_sets: List[Dict[str, Any]] = Field(default_factory=list)
    variables: List[Dict[str, Any]] = Field(default_factory=list)
    priorities: List[Dict[str, Any]] = Field(default_factory=list)
    functions: List[Dict[str, Any]] = Field(default_factory=list)
    uses: List[Dict[str, Any]] = Field(default_factory=list)
    fusion_sets: List[Dict[str, Any]] = Field(default_factory=list)
    simulation_epoch: Optional[datetime] = None

    def to_json(self, indent: Optional[int] = None) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)


def export_page(page: Page, color_sets: Sequence[Dict[str, Any]] = ()) -> Dict[str, Any]:
    """Engine-facing form of one flattened page"""
    data = page.model_dump(by_alias=True, mode="json")
    markings = {p.id: p.marking for p in page.places()}
    for node in data["nodes"]:
        if node["type"] != "place":
            continue
        expanded = expand_all_marking(node.get("initialMarking"), color_sets)
        if expanded is not None:
            node["initialMarking"] = node["marking"] = canonical_serialize(expanded)
        else:
            node["marking"] = canonical_serialize([normalize(t) for t in markings[node["id"]]])

    for arc in data["arcs"]:
        prepared = prepare_inscription(arc.get("inscription"))
        arc["inscription"] = prepared.expression
        # An explicit delay on the arc wins over an inline "@+" suffix
        arc["delay"] = arc.get("delay") or prepared.delay
    return data


def build_engine_document(model: HierarchicalModel, net: FlattenedNet) -> EngineDocument:
    """Assemble the engine document for a flattened snapshot of model."""
    leftover = [t.id for t in net.transitions() if t.is_substitution]
    if leftover:
        logger.warning(f"Engine document still contains substitution transitions: {', '.join(leftover)}")

    decls = model.declarations
    return EngineDocument(
        petri_nets_by_id={page.id: export_page(page, decls.color_sets) for page in net.pages},
        petri_net_order=[page.id for page in net.pages],
        color_sets=decls.color_sets,
        variables=decls.variables,
        priorities=decls.priorities,
        functions=decls.functions,
        uses=decls.uses,
        fusion_sets=[fs.model_dump(by_alias=True) for fs in model.fusion_sets],
        simulation_epoch=model.simulation_epoch,
    )
