"""
Hierarchy transformations.

- Hierarchy Flattener: inline substitution transitions (flatten.py)
- Fusion Resolver: merge fusion-set places (fusion.py)
- Socket/Port Synchronizer: mirror socket markings to ports (sync.py)
- Subpage Extraction: editor-side hierarchy edits (extraction.py)
"""

from .fusion import (
    CanonicalPolicy,
    FusionResult,
    discover_fusion_ids,
    resolve_fusion_sets,
)

from .flatten import (
    FlattenOptions,
    FlattenedNet,
    HierarchyFlattener,
    flatten_hierarchy,
    flatten_model,
)

from .sync import SocketPortMap

from .extraction import (
    ExtractionResult,
    move_transition_to_subpage,
    move_nodes_to_subpage,
    flatten_substitution_transition,
)

__all__ = [
    # Fusion
    "CanonicalPolicy",
    "FusionResult",
    "discover_fusion_ids",
    "resolve_fusion_sets",
    # Flattening
    "FlattenOptions",
    "FlattenedNet",
    "HierarchyFlattener",
    "flatten_hierarchy",
    "flatten_model",
    # Synchronization
    "SocketPortMap",
    # Extraction
    "ExtractionResult",
    "move_transition_to_subpage",
    "move_nodes_to_subpage",
    "flatten_substitution_transition",
]
