#!/usr/bin/env python3
"""
Socket/Port Synchronizer

In the flattened net a port place does not exist: its socket place stands in
for it. The hierarchical view still shows the port, so whenever a socket's
marking changes, every port bound to it is overwritten with an independent
copy of the new marking.

Propagation is one-directional (socket -> port) and transitive: a port that
is in turn the socket of a deeper substitution mirrors further down.
"""

from __future__ import annotations

import copy
import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from lamella.common.exceptions import ModelError
from lamella.model import HierarchicalModel, ModelStore

logger = logging.getLogger(__name__)


class SocketPortMap:
    """socket place id -> mirrored place ids, built once per session"""

    def __init__(self, mirrors: Optional[Mapping[str, Iterable[str]]] = None):
        self._direct: Dict[str, List[str]] = defaultdict(list)
        for source, targets in (mirrors or {}).items():
            for target in targets:
                self.add(source, target)

    @classmethod
    def from_model(
        cls,
        model: HierarchicalModel,
        fusion_aliases: Optional[Mapping[str, str]] = None,
    ) -> "SocketPortMap":
        """
        Invert every substitution transition's socket assignments.

        Args:
            model: The hierarchical model (snapshot)
            fusion_aliases: Fused-away place id -> canonical id; fused-away
                members then mirror their canonical place
        """
        mapping = cls()
        for _, trans in model.substitution_transitions():
            for sa in trans.socket_assignments:
                mapping.add(sa.socket_place_id, sa.port_place_id)
        for member, canonical in (fusion_aliases or {}).items():
            mapping.add(canonical, member)
        return mapping

    def add(self, source: str, target: str) -> None:
        if source == target or target in self._direct[source]:
            return
        self._direct[source].append(target)

    def ports_of(self, socket_id: str) -> List[str]:
        """All places mirroring socket_id, nearest first, each once"""
        result: List[str] = []
        seen = {socket_id}
        frontier = [socket_id]
        while frontier:
            nxt = []
            for current in frontier:
                for target in self._direct.get(current, ()):
                    if target not in seen:
                        seen.add(target)
                        result.append(target)
                        nxt.append(target)
            frontier = nxt
        return result

    def sockets(self) -> List[str]:
        return [s for s, targets in self._direct.items() if targets]

    def __contains__(self, socket_id: object) -> bool:
        return bool(self._direct.get(socket_id))  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self.sockets())

    def propagate(self, socket_id: str, marking: Sequence[Any], store: ModelStore) -> List[str]:
        """
        Overwrite every port mirroring socket_id with a copy of marking.

        Returns the ids of the places that were updated.
        """
        updated = []
        for port_id in self.ports_of(socket_id):
            try:
                store.set_marking(port_id, copy.deepcopy(list(marking)))
            except ModelError as e:
                logger.warning(f"Cannot mirror {socket_id} to port {port_id}: {e}")
                continue
            updated.append(port_id)
        return updated

    def seed(self, initial_markings: Mapping[str, Sequence[Any]], store: ModelStore) -> List[str]:
        """Seed ports once from every socket with a non-empty initial marking"""
        updated = []
        for socket_id, marking in initial_markings.items():
            if marking and socket_id in self:
                updated.extend(self.propagate(socket_id, marking, store))
        if updated:
            logger.debug(f"Seeded {len(updated)} port place(s) from initial markings")
        return updated

    def clear(self, initial_markings: Mapping[str, Sequence[Any]], store: ModelStore) -> List[str]:
        """Empty the ports of every socket whose initial marking is empty"""
        updated = []
        for socket_id, marking in initial_markings.items():
            if not marking and socket_id in self:
                updated.extend(self.propagate(socket_id, [], store))
        if updated:
            logger.debug(f"Cleared {len(updated)} port place(s) of stale markings")
        return updated
