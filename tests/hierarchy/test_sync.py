#!/usr/bin/env python3
"""
Tests for socket/port marking synchronization.
"""

from lamella.model import InMemoryModelStore
from lamella.hierarchy import SocketPortMap


class TestSocketPortMap:
    def test_built_from_socket_assignments(self, socket_port_model):
        mapping = SocketPortMap.from_model(socket_port_model)
        assert mapping.ports_of("PlaceA") == ["PortIn"]
        assert "PlaceA" in mapping
        assert "PortIn" not in mapping
        assert len(mapping) == 1

    def test_transitive_through_nesting(self, nested_model):
        mapping = SocketPortMap.from_model(nested_model)
        assert mapping.ports_of("Src") == ["MidIn", "LeafIn"]
        assert mapping.ports_of("MidIn") == ["LeafIn"]

    def test_fused_members_mirror_canonical(self, fusion_model):
        mapping = SocketPortMap.from_model(fusion_model, {"P2": "P1"})
        assert mapping.ports_of("P1") == ["P2"]

    def test_each_port_listed_once(self):
        mapping = SocketPortMap({"a": ["b", "c"], "b": ["c"], "c": ["a"]})
        assert mapping.ports_of("a") == ["b", "c"]


class TestPropagation:
    def test_port_reports_socket_marking(self, socket_port_model):
        store = InMemoryModelStore(socket_port_model)
        mapping = SocketPortMap.from_model(socket_port_model)

        store.set_marking("PlaceA", [1, 2, 3])
        updated = mapping.propagate("PlaceA", store.get_marking("PlaceA"), store)

        assert updated == ["PortIn"]
        assert store.get_marking("PortIn") == [1, 2, 3]

    def test_port_marking_is_independent_copy(self, socket_port_model):
        store = InMemoryModelStore(socket_port_model)
        mapping = SocketPortMap.from_model(socket_port_model)

        marking = [{"id": 1}, {"id": 2}]
        store.set_marking("PlaceA", marking)
        mapping.propagate("PlaceA", marking, store)

        _, port = socket_port_model.find_place("PortIn")
        _, socket = socket_port_model.find_place("PlaceA")
        port.marking[0]["id"] = 99
        port.marking.append(3)
        assert socket.marking == [{"id": 1}, {"id": 2}]
        marking.append("later")
        assert port.marking == [{"id": 99}, {"id": 2}, 3]

    def test_propagates_down_every_level(self, nested_model):
        store = InMemoryModelStore(nested_model)
        mapping = SocketPortMap.from_model(nested_model)

        mapping.propagate("Src", [7], store)
        assert store.get_marking("MidIn") == [7]
        assert store.get_marking("LeafIn") == [7]

    def test_unknown_port_skipped(self, socket_port_model):
        store = InMemoryModelStore(socket_port_model)
        mapping = SocketPortMap({"PlaceA": ["Ghost", "PortIn"]})
        assert mapping.propagate("PlaceA", [1], store) == ["PortIn"]

    def test_seed_ignores_empty_markings(self, socket_port_model):
        store = InMemoryModelStore(socket_port_model)
        mapping = SocketPortMap.from_model(socket_port_model)

        assert mapping.seed({"PlaceA": []}, store) == []
        assert mapping.seed({"PlaceA": [5]}, store) == ["PortIn"]
        assert store.get_marking("PortIn") == [5]

    def test_clear_empties_ports_of_empty_sockets(self, nested_model):
        store = InMemoryModelStore(nested_model)
        mapping = SocketPortMap.from_model(nested_model)
        mapping.propagate("Src", [7], store)

        assert mapping.clear({"Src": [7]}, store) == []
        assert mapping.clear({"Src": []}, store) == ["MidIn", "LeafIn"]
        assert store.get_marking("LeafIn") == []
