#!/usr/bin/env python3
"""
Lamella Model - Builder Layer

ModelBuilder provides a compact API for constructing hierarchical models in
code (tests, examples, importers):

    mb = ModelBuilder()
    main = mb.page("main", "Main")
    a = main.place("A", initial_marking="1`5")
    t = main.substitution("T1", "sub", sockets={"PortIn": "A"})
    main.arc(a, t, "x")

    sub = mb.page("sub", "Sub")
    port = sub.port("PortIn", "in")
    work = sub.transition("Work")
    sub.arc(port, work, "x")

    model = mb.build()
"""

from typing import Any, Dict, List, Optional, Sequence, Union

from .core import (
    Arc,
    Declarations,
    FusionSet,
    HierarchicalModel,
    Page,
    Place,
    PortType,
    Position,
    SocketAssignment,
    Transition,
)


class ArcChain:
    """Fluent interface for chaining arc definitions"""

    def __init__(self, builder: "PageBuilder", last: Union[Place, Transition]):
        self.builder = builder
        self.last = last

    def arc(self, target: Union[Place, Transition], inscription: str = "", **kwargs: Any) -> "ArcChain":
        """Chain another arc from the last node to target"""
        return self.builder.arc(self.last, target, inscription, **kwargs)


class PageBuilder:
    """Builder for one page"""

    def __init__(self, page: Page):
        self.page = page
        self._arc_count = 0

    @property
    def id(self) -> str:
        return self.page.id

    def place(
        self,
        place_id: str,
        name: Optional[str] = None,
        *,
        x: float = 0.0,
        y: float = 0.0,
        color_set: str = "INT",
        initial_marking: str = "",
        marking: Optional[Sequence[Any]] = None,
        fusion_set_id: Optional[str] = None,
        port_type: Optional[Union[PortType, str]] = None,
    ) -> Place:
        """Declare a place"""
        place = Place(
            id=place_id,
            name=name if name is not None else place_id,
            position=Position(x=x, y=y),
            color_set=color_set,
            initial_marking=initial_marking,
            marking=list(marking or []),
            fusion_set_id=fusion_set_id,
            port_type=PortType(port_type) if port_type is not None else None,
        )
        self.page.nodes.append(place)
        return place

    def port(self, place_id: str, port_type: Union[PortType, str], name: Optional[str] = None, **kwargs: Any) -> Place:
        """Declare a port place"""
        return self.place(place_id, name, port_type=port_type, **kwargs)

    def transition(
        self,
        transition_id: str,
        name: Optional[str] = None,
        *,
        x: float = 0.0,
        y: float = 0.0,
        guard: str = "",
        time: str = "",
        priority: str = "",
    ) -> Transition:
        """Declare an ordinary transition"""
        trans = Transition(
            id=transition_id,
            name=name if name is not None else transition_id,
            position=Position(x=x, y=y),
            guard=guard,
            time=time,
            priority=priority,
        )
        self.page.nodes.append(trans)
        return trans

    def substitution(
        self,
        transition_id: str,
        sub_page_id: str,
        sockets: Optional[Dict[str, str]] = None,
        name: Optional[str] = None,
        *,
        x: float = 0.0,
        y: float = 0.0,
    ) -> Transition:
        """Declare a substitution transition; sockets maps port id -> socket id"""
        trans = self.transition(transition_id, name, x=x, y=y)
        trans.sub_page_id = sub_page_id
        trans.socket_assignments = [
            SocketAssignment(port_place_id=port, socket_place_id=socket)
            for port, socket in (sockets or {}).items()
        ]
        return trans

    def arc(
        self,
        source: Union[Place, Transition, str],
        target: Union[Place, Transition, str],
        inscription: str = "",
        *,
        arc_id: Optional[str] = None,
        delay: Optional[str] = None,
    ) -> ArcChain:
        """Create an arc and return chainable ArcChain"""
        source_node = self._resolve(source)
        target_node = self._resolve(target)
        if type(source_node) is type(target_node):
            raise ValueError(
                f"Cannot connect {type(source_node).__name__} to {type(target_node).__name__} directly. "
                f"Arcs must alternate between places and transitions."
            )

        self._arc_count += 1
        arc = Arc(
            id=arc_id or f"{self.page.id}.a{self._arc_count}",
            source=source_node.id,
            target=target_node.id,
            inscription=inscription,
            delay=delay,
        )
        self.page.arcs.append(arc)
        return ArcChain(self, target_node)

    def _resolve(self, ref: Union[Place, Transition, str]) -> Union[Place, Transition]:
        if isinstance(ref, (Place, Transition)):
            return ref
        node = self.page.node(ref)
        if node is None:
            raise ValueError(f"No node named {ref} on page {self.page.id}")
        return node


class ModelBuilder:
    """Builder for a whole hierarchical model"""

    def __init__(self):
        self._pages: List[PageBuilder] = []
        self._fusion_sets: List[FusionSet] = []
        self.declarations = Declarations()

    def page(self, page_id: str, name: Optional[str] = None) -> PageBuilder:
        builder = PageBuilder(Page(id=page_id, name=name if name is not None else page_id))
        self._pages.append(builder)
        return builder

    def fusion_set(self, fusion_set_id: str, name: Optional[str] = None,
                   canonical_place_id: Optional[str] = None) -> FusionSet:
        fs = FusionSet(id=fusion_set_id, name=name or fusion_set_id, canonical_place_id=canonical_place_id)
        self._fusion_sets.append(fs)
        return fs

    def build(self) -> HierarchicalModel:
        return HierarchicalModel(
            pages=[b.page for b in self._pages],
            declarations=self.declarations,
            fusion_sets=list(self._fusion_sets),
        ).model_copy(deep=True)
