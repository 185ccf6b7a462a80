"""
Hierarchical CPN data model and the Model Store seam.
"""

from .core import (
    CamelModel,
    PortType,
    ArcType,
    Position,
    SocketAssignment,
    Place,
    Transition,
    Node,
    Arc,
    Page,
    FusionSet,
    Declarations,
    HierarchicalModel,
)

from .store import (
    ModelStore,
    InMemoryModelStore,
)

from .builder import (
    ArcChain,
    PageBuilder,
    ModelBuilder,
)

__all__ = [
    "CamelModel",
    "PortType",
    "ArcType",
    "Position",
    "SocketAssignment",
    "Place",
    "Transition",
    "Node",
    "Arc",
    "Page",
    "FusionSet",
    "Declarations",
    "HierarchicalModel",
    "ModelStore",
    "InMemoryModelStore",
    "ArcChain",
    "PageBuilder",
    "ModelBuilder",
]
