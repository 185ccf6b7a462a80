#!/usr/bin/env python3
"""
Subpage Extraction

Editor-side hierarchy operations on the committed model:

- move_transition_to_subpage: push one transition down into a new subpage
- move_nodes_to_subpage: carve an arbitrary selection out into a new subpage
- flatten_substitution_transition: pull a subpage back up into its parent

These mutate the model passed in and are independent of any live
simulation session (the session is invalidated by the structural change).
"""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from lamella.common.diagnostics import Diagnostic, DiagnosticCode
from lamella.common.exceptions import ModelError, SubpageExtractionError
from lamella.model import (
    Arc,
    HierarchicalModel,
    Page,
    Place,
    PortType,
    Position,
    SocketAssignment,
    Transition,
)

logger = logging.getLogger(__name__)

_PORT_SPACING = 80.0


@dataclass
class ExtractionResult:
    """
    Outcome of a hierarchy edit.

    Attributes:
        page_id: The subpage created (or removed, for flattening)
        transition_id: The substitution transition created or flattened
        diagnostics: Fail-soft problems met along the way
    """
    page_id: str
    transition_id: str
    diagnostics: List[Diagnostic] = field(default_factory=list)


def new_id() -> str:
    return str(uuid.uuid4())


def _require_page(model: HierarchicalModel, page_id: str) -> Page:
    page = model.page(page_id)
    if page is None:
        raise ModelError(f"Page {page_id} not found")
    return page


def _require_transition(page: Page, transition_id: str) -> Transition:
    node = page.node(transition_id)
    if not isinstance(node, Transition):
        raise ModelError(f"Transition {transition_id} not found on page {page.id}")
    return node


def _port_type(incoming: bool, outgoing: bool) -> PortType:
    if incoming and outgoing:
        return PortType.IO
    return PortType.IN if incoming else PortType.OUT


def _centroid(positions: Sequence[Position]) -> Position:
    if not positions:
        return Position()
    return Position(
        x=sum(p.x for p in positions) / len(positions),
        y=sum(p.y for p in positions) / len(positions),
    )


def _relative(pos: Position, origin: Position) -> Position:
    return Position(x=pos.x - origin.x, y=pos.y - origin.y)


def _make_port(socket: Place, port_type: PortType, position: Position) -> Place:
    return Place(
        id=new_id(),
        name=socket.name,
        position=position,
        color_set=socket.color_set,
        marking=list(socket.marking),
        port_type=port_type,
    )


def _diagnose(diagnostics: List[Diagnostic], code: DiagnosticCode, message: str, subject_id: Optional[str]):
    diagnostics.append(Diagnostic(code, message, subject_id))
    logger.warning(message)


# ============================================================================
# Single transition
# ============================================================================

def move_transition_to_subpage(
    model: HierarchicalModel,
    page_id: str,
    transition_id: str,
    name: Optional[str] = None,
) -> ExtractionResult:
    """
    Turn a transition into a substitution transition for a new subpage.

    The subpage holds a copy of the transition and one port place per place
    directly connected to it. The original transition keeps its arcs on the
    parent page: they are exactly what flattening re-derives.

    Raises:
        ModelError: If the page or transition does not exist
        SubpageExtractionError: If the transition already substitutes a page
    """
    page = _require_page(model, page_id)
    trans = _require_transition(page, transition_id)
    if trans.is_substitution:
        raise SubpageExtractionError(f"Transition {trans.id} already substitutes page {trans.sub_page_id}")

    arcs = page.arcs_touching(trans.id)

    # place id -> (incoming, outgoing), in arc order
    directions: "OrderedDict[str, Tuple[bool, bool]]" = OrderedDict()
    for arc in arcs:
        if arc.target == trans.id:
            place_id = arc.source
            incoming, outgoing = directions.get(place_id, (False, False))
            directions[place_id] = (True, outgoing)
        else:
            place_id = arc.target
            incoming, outgoing = directions.get(place_id, (False, False))
            directions[place_id] = (incoming, True)

    inner = trans.model_copy(deep=True)
    inner.id = new_id()
    inner.position = Position()

    ports: Dict[str, Place] = {}
    counts = {PortType.IN: 0, PortType.OUT: 0, PortType.IO: 0}
    columns = {PortType.IN: -2 * _PORT_SPACING, PortType.OUT: 2 * _PORT_SPACING, PortType.IO: 0.0}
    for place_id, (incoming, outgoing) in directions.items():
        socket = page.node(place_id)
        if not isinstance(socket, Place):
            logger.warning(f"Arc of {trans.id} connects to {place_id}, which is not a place on {page.id}")
            continue
        port_type = _port_type(incoming, outgoing)
        row = counts[port_type]
        counts[port_type] += 1
        y = row * _PORT_SPACING if port_type != PortType.IO else -2 * _PORT_SPACING - row * _PORT_SPACING
        ports[place_id] = _make_port(socket, port_type, Position(x=columns[port_type], y=y))

    sub_arcs = []
    for arc in arcs:
        if (arc.source not in ports and arc.source != trans.id) or (arc.target not in ports and arc.target != trans.id):
            continue
        mirrored = arc.model_copy(deep=True)
        mirrored.id = new_id()
        mirrored.source = ports[arc.source].id if arc.source in ports else inner.id
        mirrored.target = ports[arc.target].id if arc.target in ports else inner.id
        sub_arcs.append(mirrored)

    subpage = Page(
        id=new_id(),
        name=name or trans.name or "Subpage",
        nodes=list(ports.values()) + [inner],
        arcs=sub_arcs,
    )
    model.pages.append(subpage)

    trans.sub_page_id = subpage.id
    trans.socket_assignments = [
        SocketAssignment(port_place_id=port.id, socket_place_id=place_id)
        for place_id, port in ports.items()
    ]

    logger.debug(f"Moved transition {trans.id} to new subpage {subpage.id} with {len(ports)} port(s)")
    return ExtractionResult(subpage.id, trans.id)


# ============================================================================
# Arbitrary selection
# ============================================================================

def move_nodes_to_subpage(
    model: HierarchicalModel,
    page_id: str,
    node_ids: Iterable[str],
    name: Optional[str] = None,
) -> ExtractionResult:
    """
    Carve a selection out into a new subpage behind one substitution transition.

    Selected places whose arcs all stay inside the selection move with it.
    Places with an arc crossing the selection are boundary places: they stay
    on the parent page as sockets and get one port place each in the subpage.
    The new substitution transition gets one arc per boundary place and
    direction; if several original arcs shared that direction, only the
    first inscription is kept and the rest are reported.

    Raises:
        ModelError: If the page does not exist
        SubpageExtractionError: If the selection names unknown nodes, has no
            transition, or contains a substitution transition
    """
    page = _require_page(model, page_id)
    selection = list(OrderedDict.fromkeys(node_ids))
    unknown = [nid for nid in selection if page.node(nid) is None]
    if unknown:
        raise SubpageExtractionError(f"Nodes not on page {page.id}: {', '.join(unknown)}")

    selected = {nid: page.node(nid) for nid in selection}
    moved_transitions = [n for n in selected.values() if isinstance(n, Transition)]
    if not moved_transitions:
        raise SubpageExtractionError("Selection must contain at least one transition")
    nested = [t.id for t in moved_transitions if t.is_substitution]
    if nested:
        raise SubpageExtractionError(f"Selection contains substitution transition(s): {', '.join(nested)}")

    moved_trans_ids = {t.id for t in moved_transitions}

    def crosses(arc: Arc) -> bool:
        return (arc.source in selected) != (arc.target in selected)

    # Classify places touching the selection, in page order
    boundary: List[Place] = []
    internal: List[Place] = []
    for place in page.places():
        arcs = page.arcs_touching(place.id)
        to_moved = [a for a in arcs if a.source in moved_trans_ids or a.target in moved_trans_ids]
        if place.id in selected:
            if any(crosses(a) for a in arcs):
                if to_moved:
                    boundary.append(place)
            else:
                internal.append(place)
        elif to_moved:
            boundary.append(place)

    boundary_ids = {p.id for p in boundary}
    moved_ids = moved_trans_ids | {p.id for p in internal}
    origin = _centroid([n.position for n in selected.values()])
    diagnostics: List[Diagnostic] = []

    sub_nodes = []
    for node in page.nodes:
        if node.id in moved_ids:
            copied = node.model_copy(deep=True)
            copied.position = _relative(node.position, origin)
            sub_nodes.append(copied)

    subst = Transition(
        id=new_id(),
        name=name or "Subpage",
        position=origin,
    )
    sub_page_id = new_id()

    ports: Dict[str, Place] = {}
    parent_arcs: List[Arc] = []
    for place in boundary:
        mediated = [
            a for a in page.arcs
            if (a.source == place.id and a.target in moved_trans_ids)
            or (a.target == place.id and a.source in moved_trans_ids)
        ]
        inputs = [a for a in mediated if a.source == place.id]
        outputs = [a for a in mediated if a.target == place.id]
        port = _make_port(
            place,
            _port_type(bool(inputs), bool(outputs)),
            _relative(place.position, origin),
        )
        ports[place.id] = port

        for group, is_input in ((inputs, True), (outputs, False)):
            if not group:
                continue
            representative = group[0]
            if len(group) > 1:
                dropped = [a.inscription for a in group[1:]]
                _diagnose(
                    diagnostics,
                    DiagnosticCode.INSCRIPTION_DROPPED,
                    f"{len(group)} arcs {'from' if is_input else 'to'} boundary place {place.id} merged into one; "
                    f"kept inscription {representative.inscription!r}, dropped {dropped!r}",
                    place.id,
                )
            parent_arc = representative.model_copy(deep=True)
            parent_arc.id = new_id()
            if is_input:
                parent_arc.target = subst.id
            else:
                parent_arc.source = subst.id
            parent_arcs.append(parent_arc)

    sub_arcs = []
    for arc in page.arcs:
        if arc.source in moved_ids and arc.target in moved_ids:
            sub_arcs.append(arc.model_copy(deep=True))
        elif arc.source in boundary_ids and arc.target in moved_trans_ids:
            mirrored = arc.model_copy(deep=True)
            mirrored.source = ports[arc.source].id
            sub_arcs.append(mirrored)
        elif arc.target in boundary_ids and arc.source in moved_trans_ids:
            mirrored = arc.model_copy(deep=True)
            mirrored.target = ports[arc.target].id
            sub_arcs.append(mirrored)

    for node_id in moved_ids:
        page.remove_node(node_id)

    subst.sub_page_id = sub_page_id
    subst.socket_assignments = [
        SocketAssignment(port_place_id=port.id, socket_place_id=place_id)
        for place_id, port in ports.items()
    ]
    page.nodes.append(subst)
    page.arcs.extend(parent_arcs)

    model.pages.append(
        Page(
            id=sub_page_id,
            name=name or "Subpage",
            nodes=list(ports.values()) + sub_nodes,
            arcs=sub_arcs,
        )
    )

    logger.debug(
        f"Moved {len(moved_ids)} node(s) from {page.id} to new subpage {sub_page_id} "
        f"({len(boundary)} boundary place(s))"
    )
    return ExtractionResult(sub_page_id, subst.id, diagnostics)


# ============================================================================
# Inverse: flatten one substitution transition
# ============================================================================

def flatten_substitution_transition(
    model: HierarchicalModel,
    page_id: str,
    transition_id: str,
) -> ExtractionResult:
    """
    Inline one substitution transition's subpage into its parent and delete
    the subpage.

    A missing subpage leaves the model unchanged. Other transitions still
    referring to the deleted subpage are reported, not repaired.

    Raises:
        ModelError: If the page or transition does not exist
        SubpageExtractionError: If the transition is not a substitution
    """
    page = _require_page(model, page_id)
    trans = _require_transition(page, transition_id)
    if not trans.is_substitution:
        raise SubpageExtractionError(f"Transition {trans.id} is not a substitution transition")

    diagnostics: List[Diagnostic] = []
    subpage = model.page(trans.sub_page_id)
    if subpage is None:
        _diagnose(
            diagnostics,
            DiagnosticCode.MISSING_SUBPAGE,
            f"Substitution transition {trans.id} refers to missing page {trans.sub_page_id}; nothing to flatten",
            trans.id,
        )
        return ExtractionResult(trans.sub_page_id, trans.id, diagnostics)

    table: Dict[str, str] = {}
    for port_id, socket_id in trans.port_to_socket().items():
        port = subpage.node(port_id)
        if isinstance(port, Place) and port.is_port and isinstance(page.node(socket_id), Place):
            table[port_id] = socket_id
        else:
            _diagnose(
                diagnostics,
                DiagnosticCode.DANGLING_SOCKET,
                f"Socket assignment {port_id} -> {socket_id} of {trans.id} cannot be resolved",
                port_id,
            )

    inner = [n for n in subpage.nodes if n.id not in table]
    origin = _centroid([n.position for n in inner])

    for node in inner:
        copied = node.model_copy(deep=True)
        copied.position = _relative(node.position, origin).offset(trans.position)
        if isinstance(copied, Place) and copied.is_port:
            _diagnose(
                diagnostics,
                DiagnosticCode.UNBOUND_PORT,
                f"Port place {node.id} has no socket on {trans.id}; kept as an ordinary place",
                node.id,
            )
            copied.port_type = None
        page.nodes.append(copied)

    page.remove_node(trans.id)
    for arc in subpage.arcs:
        copied = arc.model_copy(deep=True)
        copied.source = table.get(arc.source, arc.source)
        copied.target = table.get(arc.target, arc.target)
        page.arcs.append(copied)

    model.pages = [p for p in model.pages if p.id != subpage.id]

    for other_page, other in model.substitution_transitions():
        if other.sub_page_id == subpage.id:
            _diagnose(
                diagnostics,
                DiagnosticCode.DANGLING_SUBPAGE_REFERENCE,
                f"Transition {other.id} on page {other_page.id} still refers to deleted page {subpage.id}",
                other.id,
            )

    logger.debug(f"Flattened {trans.id}: inlined page {subpage.id} into {page.id}")
    return ExtractionResult(subpage.id, trans.id, diagnostics)
