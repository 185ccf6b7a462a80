"""Shared fixtures: small hierarchical models built with ModelBuilder"""

import pytest

from lamella.model import HierarchicalModel, InMemoryModelStore, ModelBuilder


def build_flat() -> HierarchicalModel:
    """P1 -> T -> P2 on a single page"""
    mb = ModelBuilder()
    main = mb.page("main", "Main")
    p1 = main.place("P1", "Input", x=0, y=0, initial_marking="1`1++1`2")
    t = main.transition("T", "Move", x=100, y=0)
    p2 = main.place("P2", "Output", x=200, y=0)
    main.arc(p1, t, "x").arc(p2, "x")
    return mb.build()


def build_socket_port() -> HierarchicalModel:
    """
    Main: PlaceA -> T1 (substitutes Sub, PortIn bound to PlaceA)
    Sub:  PortIn -> Inner -> Done
    """
    mb = ModelBuilder()
    main = mb.page("main", "Main")
    place_a = main.place("PlaceA", "Place A", initial_marking="1`5")
    t1 = main.substitution("T1", "sub", sockets={"PortIn": "PlaceA"}, x=100, y=50)
    main.arc(place_a, t1, "x")

    sub = mb.page("sub", "Sub")
    port = sub.port("PortIn", "in", "Port In", x=-50)
    inner = sub.transition("Inner", "Inner Work", x=0)
    done = sub.place("Done", "Done", x=50)
    sub.arc(port, inner, "x").arc(done, "x")
    return mb.build()


def build_fusion() -> HierarchicalModel:
    """Two root pages sharing place state through fusion set F"""
    mb = ModelBuilder()
    mb.fusion_set("F", "Shared")
    a = mb.page("a", "Page A")
    ta = a.transition("TA", "Producer")
    p1 = a.place("P1", "Shared A", fusion_set_id="F", marking=[1])
    a.arc(ta, p1, "x")

    b = mb.page("b", "Page B")
    p2 = b.place("P2", "Shared B", fusion_set_id="F", marking=[2])
    tb = b.transition("TB", "Consumer")
    b.arc(p2, tb, "x")
    return mb.build()


def build_nested() -> HierarchicalModel:
    """Main -> Mid -> Leaf, one port per level"""
    mb = ModelBuilder()
    main = mb.page("main", "Main")
    src = main.place("Src", "Source")
    t = main.substitution("T", "mid", sockets={"MidIn": "Src"})
    main.arc(src, t, "x")

    mid = mb.page("mid", "Mid")
    mid_in = mid.port("MidIn", "in")
    u = mid.substitution("U", "leaf", sockets={"LeafIn": "MidIn"})
    mid.arc(mid_in, u, "x")

    leaf = mb.page("leaf", "Leaf")
    leaf_in = leaf.port("LeafIn", "in")
    work = leaf.transition("Work")
    leaf.arc(leaf_in, work, "x")
    return mb.build()


def build_two_instances() -> HierarchicalModel:
    """Main substitutes Sub twice, through T1 and T2"""
    mb = ModelBuilder()
    main = mb.page("main", "Main")
    pa = main.place("PA")
    pb = main.place("PB")
    t1 = main.substitution("T1", "sub", sockets={"PortIn": "PA"})
    t2 = main.substitution("T2", "sub", sockets={"PortIn": "PB"})
    main.arc(pa, t1, "x")
    main.arc(pb, t2, "x")

    sub = mb.page("sub", "Sub")
    port = sub.port("PortIn", "in")
    inner = sub.transition("Inner")
    sub.arc(port, inner, "x")
    return mb.build()


def build_cycle() -> HierarchicalModel:
    """A substitutes B, B substitutes A"""
    mb = ModelBuilder()
    mb.page("a", "A").substitution("TA", "b")
    mb.page("b", "B").substitution("TB", "a")
    return mb.build()


@pytest.fixture
def flat_model():
    return build_flat()


@pytest.fixture
def socket_port_model():
    return build_socket_port()


@pytest.fixture
def fusion_model():
    return build_fusion()


@pytest.fixture
def nested_model():
    return build_nested()


@pytest.fixture
def two_instance_model():
    return build_two_instances()


@pytest.fixture
def cycle_model():
    return build_cycle()


@pytest.fixture
def flat_store(flat_model):
    return InMemoryModelStore(flat_model)


@pytest.fixture
def socket_port_store(socket_port_model):
    return InMemoryModelStore(socket_port_model)


@pytest.fixture
def fusion_store(fusion_model):
    return InMemoryModelStore(fusion_model)
