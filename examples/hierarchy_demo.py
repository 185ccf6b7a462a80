#!/usr/bin/env python3
"""
Hierarchy demo

A two-page order pipeline:
- Main holds the order queue and the shipped orders
- Process (substitution transition) hides a Pack -> Ship subpage

Prints the hierarchical and flattened nets as Mermaid, then replays two
firings through a simulation session and prints the event log and the
markings the hierarchical view ends up with.
"""

import asyncio
import logging
from datetime import datetime, timezone

from lamella.common import StepClock
from lamella.model import InMemoryModelStore, ModelBuilder
from lamella.simulation import SimulationSession
from lamella.simulation.testing_utils import ScriptedEngineFactory


def build_model():
    mb = ModelBuilder()

    main = mb.page("main", "Orders")
    queue = main.place("Queue", "Order Queue", x=0, initial_marking='1`{"id": 1}++1`{"id": 2}')
    process = main.substitution(
        "Process", "packing", sockets={"In": "Queue", "Out": "Shipped"}, x=150
    )
    shipped = main.place("Shipped", "Shipped", x=300)
    main.arc(queue, process, "order").arc(shipped, "order")

    packing = mb.page("packing", "Packing")
    port_in = packing.port("In", "in", "Incoming", x=-100)
    pack = packing.transition("Pack", "Pack Order", x=-50)
    boxed = packing.place("Boxed", "Boxed", x=0)
    ship = packing.transition("Ship", "Ship Order", x=50, time="@+30")
    port_out = packing.port("Out", "out", "Outgoing", x=100)
    packing.arc(port_in, pack, "order").arc(boxed, "order").arc(ship, "order").arc(port_out, "order@+30")

    model = mb.build()
    model.simulation_epoch = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
    return model


async def main():
    logging.basicConfig(level=logging.INFO)

    model = build_model()
    print("Hierarchical model:")
    print(model.to_mermaid())

    order = {"id": 1}
    factory = ScriptedEngineFactory(
        initial={"Queue": [{"id": 1}, {"id": 2}]},
        events=[
            {"transitionId": "Pack", "simulationTimeMs": 0, "consumed": {"Queue": [order]}, "produced": {"Boxed": [order]}},
            {"transitionId": "Ship", "simulationTimeMs": 30000, "consumed": {"Boxed": [order]}, "produced": {"Shipped": [order]}},
        ],
    )
    store = InMemoryModelStore(model)
    session = SimulationSession(store, factory)

    if not session.initialize():
        print(f"Simulation not initialized: {session.last_error}")
        return

    print("\nFlattened net:")
    print(session.flattened_net.to_mermaid())

    await session.run(10, timebase=StepClock(), interval=1.0)

    print("\nEvent log:")
    for entry in session.event_log:
        print(f"  {entry}")

    print("\nMarkings:")
    for place_id in ("Queue", "In", "Boxed", "Out", "Shipped"):
        print(f"  {place_id}: {store.get_marking(place_id)}")


if __name__ == "__main__":
    asyncio.run(main())
