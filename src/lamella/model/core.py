#!/usr/bin/env python3
"""
Lamella Model - Hierarchical CPN data model

pydantic models for a hierarchical Colored Petri Net: pages holding places,
transitions and arcs, substitution transitions linking pages, and fusion sets
sharing places across pages.

Field names are snake_case in Python and camelCase on the wire, so a model
snapshot exported by the editor loads directly:

    model = HierarchicalModel.model_validate_json(text)
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, Iterator, List, Literal, Optional, Set, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from lamella.common.mermaid import (
    format_arc,
    format_comment,
    format_place_node,
    format_subgraph,
    format_transition_node,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=False,
    )


class PortType(str, Enum):
    """Direction of a port place relative to its subpage"""
    IN = "in"
    OUT = "out"
    IO = "io"


class ArcType(str, Enum):
    NORMAL = "normal"
    INHIBITOR = "inhibitor"
    RESET = "reset"


class Position(CamelModel):
    x: float = 0.0
    y: float = 0.0

    def offset(self, other: "Position") -> "Position":
        return Position(x=self.x + other.x, y=self.y + other.y)


class SocketAssignment(CamelModel):
    """Binds a port place of a subpage to a socket place of the parent page"""
    port_place_id: str
    socket_place_id: str


class Place(CamelModel):
    type: Literal["place"] = "place"
    id: str
    name: str = ""
    position: Position = Field(default_factory=Position)
    color_set: str = ""
    initial_marking: str = ""
    marking: List[Any] = Field(default_factory=list)
    fusion_set_id: Optional[str] = None
    port_type: Optional[PortType] = None

    @property
    def is_port(self) -> bool:
        return self.port_type is not None


class Transition(CamelModel):
    type: Literal["transition"] = "transition"
    id: str
    name: str = ""
    position: Position = Field(default_factory=Position)
    guard: str = ""
    time: str = ""
    priority: str = ""
    code_segment: str = ""
    sub_page_id: Optional[str] = None
    socket_assignments: List[SocketAssignment] = Field(default_factory=list)

    @property
    def is_substitution(self) -> bool:
        return self.sub_page_id is not None

    def port_to_socket(self) -> Dict[str, str]:
        """Port place id -> socket place id for this substitution"""
        return {sa.port_place_id: sa.socket_place_id for sa in self.socket_assignments}


Node = Annotated[Union[Place, Transition], Field(discriminator="type")]


class Arc(CamelModel):
    id: str
    source: str
    target: str
    inscription: str = ""
    arc_type: ArcType = ArcType.NORMAL
    delay: Optional[str] = None

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id


class Page(CamelModel):
    """One self-contained Petri net graph (a.k.a. PetriNet) of the hierarchy"""
    id: str
    name: str = ""
    nodes: List[Node] = Field(default_factory=list)
    arcs: List[Arc] = Field(default_factory=list)

    def places(self) -> List[Place]:
        return [n for n in self.nodes if isinstance(n, Place)]

    def transitions(self) -> List[Transition]:
        return [n for n in self.nodes if isinstance(n, Transition)]

    def port_places(self) -> List[Place]:
        return [p for p in self.places() if p.is_port]

    def substitution_transitions(self) -> List[Transition]:
        return [t for t in self.transitions() if t.is_substitution]

    def node(self, node_id: str) -> Optional[Union[Place, Transition]]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_ids(self) -> Set[str]:
        return {n.id for n in self.nodes}

    def arcs_touching(self, node_id: str) -> List[Arc]:
        return [a for a in self.arcs if a.touches(node_id)]

    def remove_node(self, node_id: str, with_arcs: bool = True) -> None:
        self.nodes = [n for n in self.nodes if n.id != node_id]
        if with_arcs:
            self.arcs = [a for a in self.arcs if not a.touches(node_id)]

    def to_mermaid(self) -> str:
        """Generate a Mermaid diagram of this page"""
        return "\n".join(["graph TD"] + self._mermaid_lines())

    def _mermaid_lines(self) -> List[str]:
        lines = []
        for node in self.nodes:
            if isinstance(node, Place):
                port = node.port_type.value if node.port_type else None
                lines.append(format_place_node(node.id, node.name or node.id, port))
            else:
                lines.append(format_transition_node(node.id, node.name or node.id, node.is_substitution))
        for arc in self.arcs:
            lines.append(format_arc(arc.source, arc.target, arc.inscription or None))
        return lines


class FusionSet(CamelModel):
    """
    A named group of places sharing state across pages.

    Membership is derived from Place.fusion_set_id; canonical_place_id lets
    the user designate which member survives fusion resolution.
    """
    id: str
    name: str = ""
    canonical_place_id: Optional[str] = None


class Declarations(CamelModel):
    """Opaque declarations handed through to the engine unchanged"""
    color_sets: List[Dict[str, Any]] = Field(default_factory=list)
    variables: List[Dict[str, Any]] = Field(default_factory=list)
    priorities: List[Dict[str, Any]] = Field(default_factory=list)
    functions: List[Dict[str, Any]] = Field(default_factory=list)
    uses: List[Dict[str, Any]] = Field(default_factory=list)


class HierarchicalModel(CamelModel):
    """The committed, user-visible hierarchical model"""
    pages: List[Page] = Field(default_factory=list)
    declarations: Declarations = Field(default_factory=Declarations)
    fusion_sets: List[FusionSet] = Field(default_factory=list)
    simulation_epoch: Optional[datetime] = None

    def page(self, page_id: str) -> Optional[Page]:
        for page in self.pages:
            if page.id == page_id:
                return page
        return None

    def page_ids(self) -> List[str]:
        return [p.id for p in self.pages]

    def fusion_set(self, fusion_set_id: str) -> Optional[FusionSet]:
        for fs in self.fusion_sets:
            if fs.id == fusion_set_id:
                return fs
        return None

    def find_node(self, node_id: str) -> Tuple[Optional[Page], Optional[Union[Place, Transition]]]:
        for page in self.pages:
            node = page.node(node_id)
            if node is not None:
                return page, node
        return None, None

    def find_place(self, place_id: str) -> Tuple[Optional[Page], Optional[Place]]:
        page, node = self.find_node(place_id)
        if isinstance(node, Place):
            return page, node
        return None, None

    def iter_places(self) -> Iterator[Tuple[Page, Place]]:
        for page in self.pages:
            for place in page.places():
                yield page, place

    def substitution_transitions(self) -> List[Tuple[Page, Transition]]:
        return [(page, t) for page in self.pages for t in page.substitution_transitions()]

    def referenced_page_ids(self) -> Set[str]:
        return {t.sub_page_id for _, t in self.substitution_transitions() if t.sub_page_id}

    def root_pages(self) -> List[Page]:
        """Pages never referenced by any substitution transition, in page order"""
        referenced = self.referenced_page_ids()
        return [p for p in self.pages if p.id not in referenced]

    def structural_signature(self) -> Tuple:
        """
        Identity of the model's structure, ignoring markings and positions.

        Two snapshots with equal signatures can share one flattened net.
        """
        pages = tuple(
            (
                page.id,
                tuple(
                    (n.id, n.type, getattr(n, "sub_page_id", None), getattr(n, "fusion_set_id", None))
                    for n in page.nodes
                ),
                tuple((a.id, a.source, a.target) for a in page.arcs),
            )
            for page in self.pages
        )
        declarations = tuple(
            (kind, tuple(str(d.get("id", d.get("name", ""))) for d in getattr(self.declarations, kind)))
            for kind in ("color_sets", "variables", "priorities", "functions", "uses")
        )
        fusion = tuple(fs.id for fs in self.fusion_sets)
        return pages, declarations, fusion

    def to_mermaid(self) -> str:
        """Generate a Mermaid diagram with one subgraph per page"""
        lines = ["graph TD"]
        for page in self.pages:
            lines.append(format_subgraph(page.id, page.name or page.id, page._mermaid_lines()))
        for page, t in self.substitution_transitions():
            lines.append(format_comment(f"{t.id} substitutes {t.sub_page_id}"))
        return "\n".join(lines)
