#!/usr/bin/env python3
"""
Hierarchy Flattener

Inlines every substitution transition into its parent page so the engine
sees one hierarchy-free net per root page. Works on a deep clone: the
committed model is never touched.

For each substitution transition T on page P with subpage S:
- S is flattened first, so nested hierarchies unfold bottom-up
- every non-port node of S is copied into P, offset by T's position
- every arc of S is copied into P under the id "T.arc", with port
  endpoints replaced by the socket places bound to them
- T and its own arcs are removed from P

Fusion sets are resolved afterwards (flatten_model), since inlining
introduces the arc endpoints that fusion then has to redirect.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Union

from lamella.common.diagnostics import Diagnostic, DiagnosticCode
from lamella.common.exceptions import SubstitutionCycleError
from lamella.common.mermaid import format_comment, format_subgraph
from lamella.model import HierarchicalModel, Page, Place, Transition
from .fusion import CanonicalPolicy, resolve_fusion_sets

logger = logging.getLogger(__name__)


@dataclass
class FlattenOptions:
    """Options for flatten_model"""
    canonical_policy: CanonicalPolicy = CanonicalPolicy.FIRST_DISCOVERED
    resolve_fusion: bool = True


@dataclass
class FlattenedNet:
    """
    Derived, ephemeral output of flattening.

    Attributes:
        pages: One flattened page per root page, in model page order
        origins: Flattened node id -> hierarchical node id, for copies whose
            id had to be namespaced
        fusion_aliases: Fused-away place id -> canonical place id
        diagnostics: Fail-soft recoveries made while flattening
    """
    pages: List[Page]
    origins: Dict[str, str] = field(default_factory=dict)
    fusion_aliases: Dict[str, str] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def node(self, node_id: str) -> Optional[Union[Place, Transition]]:
        for page in self.pages:
            node = page.node(node_id)
            if node is not None:
                return node
        return None

    def places(self) -> List[Place]:
        return [p for page in self.pages for p in page.places()]

    def transitions(self) -> List[Transition]:
        return [t for page in self.pages for t in page.transitions()]

    def hierarchical_id(self, node_id: str) -> str:
        """Map a flattened node id back to the model node it came from"""
        return self.origins.get(node_id, node_id)

    def resolve(self, place_id: str) -> str:
        """Map a hierarchical place id to the flattened place holding its state"""
        seen = set()
        while place_id in self.fusion_aliases and place_id not in seen:
            seen.add(place_id)
            place_id = self.fusion_aliases[place_id]
        return place_id

    def to_mermaid(self) -> str:
        lines = ["graph TD", format_comment("flattened net")]
        for page in self.pages:
            lines.append(format_subgraph(page.id, page.name or page.id, page._mermaid_lines()))
        return "\n".join(lines)


class HierarchyFlattener:
    """Recursive inliner over a private clone of a hierarchical model"""

    def __init__(self, model: HierarchicalModel):
        self.model = model.model_copy(deep=True)
        self.pages: Dict[str, Page] = {p.id: p for p in self.model.pages}
        self.roots: List[Page] = self.model.root_pages()
        self.origins: Dict[str, str] = {}
        self.diagnostics: List[Diagnostic] = []
        self._done: Set[str] = set()
        self._active: List[str] = []

    def flatten(self) -> FlattenedNet:
        # Every page is visited, not just roots, so that a cycle with no
        # root page above it is still reported
        for page in self.model.pages:
            self._inline(page.id)

        for root in self.roots:
            leftover = root.substitution_transitions()
            if leftover:
                logger.warning(
                    f"Page {root.id} keeps {len(leftover)} un-inlined substitution transition(s)"
                )
        return FlattenedNet(
            pages=self.roots,
            origins=dict(self.origins),
            diagnostics=list(self.diagnostics),
        )

    def _diagnose(self, code: DiagnosticCode, message: str, subject_id: Optional[str] = None):
        diagnostic = Diagnostic(code, message, subject_id)
        if diagnostic in self.diagnostics:
            return
        self.diagnostics.append(diagnostic)
        if code == DiagnosticCode.NODE_ID_COLLISION:
            logger.debug(message)
        else:
            logger.warning(message)

    def _inline(self, page_id: str) -> None:
        if page_id in self._active:
            cycle = self._active[self._active.index(page_id):] + [page_id]
            raise SubstitutionCycleError(cycle)
        if page_id in self._done:
            return
        page = self.pages.get(page_id)
        if page is None:
            return

        self._active.append(page_id)
        try:
            for trans in page.substitution_transitions():
                if trans.sub_page_id in self.pages:
                    self._inline(trans.sub_page_id)

            skipped: Set[str] = set()
            while True:
                pending = [t for t in page.substitution_transitions() if t.id not in skipped]
                if not pending:
                    break
                trans = pending[0]
                subpage = self.pages.get(trans.sub_page_id)
                if subpage is None:
                    self._diagnose(
                        DiagnosticCode.MISSING_SUBPAGE,
                        f"Substitution transition {trans.id} on page {page.id} refers to "
                        f"missing page {trans.sub_page_id}; left un-inlined",
                        trans.id,
                    )
                    skipped.add(trans.id)
                    continue
                self._splice(page, trans, subpage)
        finally:
            self._active.pop()

        self._done.add(page_id)

    def _port_table(self, page: Page, trans: Transition, subpage: Page) -> Dict[str, str]:
        table: Dict[str, str] = {}
        for sa in trans.socket_assignments:
            port = subpage.node(sa.port_place_id)
            if not isinstance(port, Place) or not port.is_port:
                self._diagnose(
                    DiagnosticCode.UNBOUND_PORT,
                    f"Socket assignment of {trans.id} names {sa.port_place_id}, "
                    f"which is not a port place of page {subpage.id}",
                    sa.port_place_id,
                )
                continue
            if not isinstance(page.node(sa.socket_place_id), Place):
                self._diagnose(
                    DiagnosticCode.DANGLING_SOCKET,
                    f"Socket place {sa.socket_place_id} of {trans.id} is not on page {page.id}",
                    sa.socket_place_id,
                )
                continue
            table[sa.port_place_id] = sa.socket_place_id
        return table

    def _taken_ids(self, page: Page) -> Set[str]:
        taken = page.node_ids()
        for root in self.roots:
            if root is not page:
                taken |= root.node_ids()
        return taken

    def _splice(self, page: Page, trans: Transition, subpage: Page) -> None:
        table = self._port_table(page, trans, subpage)
        taken = self._taken_ids(page)
        id_map: Dict[str, str] = {}

        for node in subpage.nodes:
            if isinstance(node, Place) and node.id in table:
                continue
            copied = node.model_copy(deep=True)
            copied.position = node.position.offset(trans.position)
            if isinstance(copied, Place) and copied.is_port:
                self._diagnose(
                    DiagnosticCode.UNBOUND_PORT,
                    f"Port place {node.id} of page {subpage.id} has no socket on {trans.id}; "
                    f"inlined as an ordinary place",
                    node.id,
                )
                copied.port_type = None
            if copied.id in taken:
                copied.id = f"{trans.id}.{node.id}"
                self._diagnose(
                    DiagnosticCode.NODE_ID_COLLISION,
                    f"Node {node.id} of page {subpage.id} inlined more than once; "
                    f"copy via {trans.id} renamed to {copied.id}",
                    copied.id,
                )
            id_map[node.id] = copied.id
            origin = self.origins.get(node.id, node.id)
            if copied.id != origin:
                self.origins[copied.id] = origin
            taken.add(copied.id)
            page.nodes.append(copied)

        for arc in subpage.arcs:
            copied = arc.model_copy(deep=True)
            copied.id = f"{trans.id}.{arc.id}"
            copied.source = table.get(arc.source) or id_map.get(arc.source, arc.source)
            copied.target = table.get(arc.target) or id_map.get(arc.target, arc.target)
            page.arcs.append(copied)

        page.remove_node(trans.id)
        logger.debug(
            f"Inlined page {subpage.id} into {page.id} via {trans.id}: "
            f"{len(id_map)} nodes, {len(subpage.arcs)} arcs"
        )


def flatten_hierarchy(model: HierarchicalModel) -> FlattenedNet:
    """
    Inline every substitution transition of model.

    Raises:
        SubstitutionCycleError: If a page (transitively) substitutes itself
    """
    return HierarchyFlattener(model).flatten()


def flatten_model(model: HierarchicalModel, options: Optional[FlattenOptions] = None) -> FlattenedNet:
    """
    Flatten model and then merge its fusion sets.

    This is the full transformation applied when a simulation is initialized.
    """
    options = options or FlattenOptions()
    net = flatten_hierarchy(model)
    if options.resolve_fusion:
        fusion = resolve_fusion_sets(
            net.pages,
            model.fusion_sets,
            policy=options.canonical_policy,
            origins=net.origins,
        )
        net.fusion_aliases = fusion.aliases
    return net
