#!/usr/bin/env python3
"""
Simulation session.

Owns the ephemeral side of a simulation: the flattened net, the live engine
handle and the socket/port map. The committed hierarchical model stays in the
ModelStore; the session only reads snapshots from it and writes marking
updates back.

Lifecycle:
    initialize()            flatten + fuse a snapshot, build the engine
    run_step() / run()      fire transitions, reconcile each event
    notify_model_changed()  structural edit -> tear down, reset markings
    reset()                 tear down, reset markings

Reconciliation of one event is total: every consumed token is removed
before any produced token is added, and both finish before the next event.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Sequence, Tuple

from lamella.common.diagnostics import Diagnostic, DiagnosticCode
from lamella.common.exceptions import EngineInitializationError, ModelError
from lamella.common.timebase import Timebase, simulation_timestamp
from lamella.hierarchy import FlattenOptions, FlattenedNet, SocketPortMap, flatten_model
from lamella.model import ModelStore
from lamella.tokens import normalize, remove_tokens
from .engine import EngineFactory, SimulationEngine
from .events import EventLog, EventLogEntry, FiringEvent, TokenSummary, parse_events
from .export import build_engine_document

logger = logging.getLogger(__name__)


class RunState(Enum):
    IDLE = auto()
    RUNNING = auto()


@dataclass
class SessionConfig:
    """
    Session configuration.

    Attributes:
        flatten: Options for flattening and fusion resolution
        fast_forward_steps: Steps fired by fast_forward() when none are given
        event_log_capacity: Keep only this many log entries (None: unbounded)
    """
    flatten: FlattenOptions = field(default_factory=FlattenOptions)
    fast_forward_steps: int = 100
    event_log_capacity: Optional[int] = None


class SimulationSession:
    """One simulation session over a model store (single owner, single flight)"""

    def __init__(
        self,
        store: ModelStore,
        engine_factory: EngineFactory,
        config: Optional[SessionConfig] = None,
    ):
        self.store = store
        self.engine_factory = engine_factory
        self.config = config or SessionConfig()
        self.event_log = EventLog(self.config.event_log_capacity)
        self.diagnostics: List[Diagnostic] = []
        self.last_error: Optional[Exception] = None

        self._engine: Optional[SimulationEngine] = None
        self._net: Optional[FlattenedNet] = None
        self._sync: SocketPortMap = SocketPortMap()
        self._signature: Optional[Tuple] = None
        self._epoch = None
        self._step = 0
        self._state = RunState.IDLE
        self._stop_requested = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    @property
    def running(self) -> bool:
        return self._state == RunState.RUNNING

    @property
    def flattened_net(self) -> Optional[FlattenedNet]:
        return self._net

    @property
    def socket_port_map(self) -> SocketPortMap:
        return self._sync

    @property
    def step_count(self) -> int:
        return self._step

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> bool:
        """
        (Re)build the flattened net and the engine from a fresh snapshot.

        Returns False when anything fails; the session is then left
        uninitialized with no partial flattened state, and the cause is kept
        in last_error.
        """
        self._teardown()
        self.last_error = None
        try:
            snapshot = self.store.snapshot()
            net = flatten_model(snapshot, self.config.flatten)
            document = build_engine_document(snapshot, net)
            try:
                engine = self.engine_factory(document.to_json())
                initial = dict(engine.initial_markings() or {})
            except Exception as e:
                raise EngineInitializationError(f"Engine construction failed: {e}") from e
        except Exception as e:
            self.last_error = e
            logger.error(f"Simulation not initialized: {e}")
            self._teardown()
            return False

        self._net = net
        self._engine = engine
        self._signature = snapshot.structural_signature()
        self._epoch = snapshot.simulation_epoch
        self.diagnostics = list(net.diagnostics)
        self._sync = SocketPortMap.from_model(
            snapshot,
            {net.hierarchical_id(k): net.hierarchical_id(v) for k, v in net.fusion_aliases.items()},
        )
        self._step = 0
        self.event_log.clear()

        seeded: Dict[str, List[Any]] = {}
        for place in net.places():
            tokens = [normalize(t) for t in initial.get(place.id, ())]
            place_id = net.hierarchical_id(place.id)
            try:
                self.store.set_marking(place_id, tokens)
            except ModelError as e:
                logger.warning(f"Cannot apply initial marking of {place_id}: {e}")
                continue
            seeded[place_id] = tokens
        self._sync.seed(seeded, self.store)
        self._sync.clear(seeded, self.store)

        logger.info(
            f"Simulation initialized: {len(net.pages)} page(s), {len(net.places())} place(s), "
            f"{len(net.transitions())} transition(s), {len(self.diagnostics)} diagnostic(s)"
        )
        return True

    def ensure_initialized(self) -> bool:
        if self.initialized:
            return True
        return self.initialize()

    def _teardown(self) -> None:
        self._engine = None
        self._net = None
        self._sync = SocketPortMap()
        self._signature = None
        self._epoch = None

    def reset(self) -> None:
        """Discard the session and reset every marking to unevaluated."""
        self._stop_requested = True
        self._teardown()
        self.store.reset_markings()
        self.event_log.clear()
        self.diagnostics = []
        self._step = 0
        logger.info("Simulation reset")

    def notify_model_changed(self) -> bool:
        """
        Tell the session the committed model was edited.

        A structural change (node, arc or declaration identity) while the
        session is live invalidates it. Returns True if it was torn down.
        """
        if not self.initialized:
            return False
        if self.store.structural_signature() == self._signature:
            return False
        logger.info("Model structure changed; tearing down simulation session")
        self._stop_requested = True
        self._teardown()
        self.store.reset_markings()
        return True

    def stop(self) -> None:
        """Request a multi-step run to stop after the current step."""
        self._stop_requested = True

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def _acquire(self) -> bool:
        if self._state == RunState.RUNNING:
            logger.warning("Simulation already running; request rejected")
            return False
        self._state = RunState.RUNNING
        return True

    def _release(self) -> None:
        self._state = RunState.IDLE

    def run_step(self) -> Optional[EventLogEntry]:
        """Fire one transition. None if rejected, uninitialized or dead."""
        if not self._acquire():
            return None
        try:
            return self._step_once()
        finally:
            self._release()

    def fast_forward(self, steps: Optional[int] = None) -> List[EventLogEntry]:
        """Let the engine fire up to steps transitions in one batch."""
        if steps is None:
            steps = self.config.fast_forward_steps
        if not self._acquire():
            return []
        try:
            if not self.ensure_initialized():
                return []
            try:
                raw = self._engine.fast_forward(steps)
            except Exception as e:
                logger.error(f"Engine fast-forward failed: {e}")
                return []
            return self._apply_raw(raw)
        finally:
            self._release()

    async def run(
        self,
        steps: int,
        timebase: Optional[Timebase] = None,
        interval: float = 0.0,
    ) -> List[EventLogEntry]:
        """
        Fire up to steps transitions one at a time.

        stop() is honoured between steps only; a started step completes.
        """
        if not self._acquire():
            return []
        self._stop_requested = False
        entries: List[EventLogEntry] = []
        try:
            for _ in range(steps):
                if self._stop_requested:
                    logger.debug(f"Run stopped after {len(entries)} step(s)")
                    break
                entry = self._step_once()
                if entry is None:
                    break
                entries.append(entry)
                if timebase is not None:
                    await timebase.sleep(interval)
                else:
                    await asyncio.sleep(interval)
        finally:
            self._release()
        return entries

    def _step_once(self) -> Optional[EventLogEntry]:
        if not self.ensure_initialized():
            return None
        try:
            raw = self._engine.run_step()
        except Exception as e:
            logger.error(f"Engine step failed: {e}")
            return None
        entries = self._apply_raw(raw)
        return entries[-1] if entries else None

    def _apply_raw(self, raw: Any) -> List[EventLogEntry]:
        events, diagnostics = parse_events(raw)
        self.diagnostics.extend(diagnostics)
        return [self.apply_event(event) for event in events]

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def _place_info(self, flat_id: str) -> Tuple[str, str]:
        """Hierarchical id and display name for a flattened place id"""
        if self._net is None:
            return flat_id, flat_id
        # Fused-away members report against the canonical place
        flat_id = self._net.resolve(flat_id)
        node = self._net.node(flat_id)
        name = node.name if node is not None and node.name else flat_id
        return self._net.hierarchical_id(flat_id), name

    def _write_marking(self, place_id: str, marking: Sequence[Any]) -> None:
        self.store.set_marking(place_id, marking)
        self._sync.propagate(place_id, marking, self.store)

    def _warn(self, code: DiagnosticCode, message: str, subject_id: Optional[str]) -> None:
        logger.warning(message)
        self.diagnostics.append(Diagnostic(code, message, subject_id))

    def apply_event(self, event: FiringEvent) -> EventLogEntry:
        """
        Reconcile one firing event into the model store.

        Consumed tokens are removed one occurrence each, produced tokens are
        appended; every touched place mirrors to its ports. Inconsistencies
        are reported, never raised.
        """
        consumed: List[TokenSummary] = []
        for flat_id, tokens in event.consumed.items():
            place_id, name = self._place_info(flat_id)
            try:
                marking = self.store.get_marking(place_id)
            except ModelError:
                self._warn(DiagnosticCode.UNKNOWN_PLACE, f"Consumed from unknown place {flat_id}", flat_id)
                continue
            updated, missing = remove_tokens(marking, tokens)
            for token in missing:
                self._warn(
                    DiagnosticCode.TOKEN_NOT_FOUND,
                    f"Token {token!r} not found for removal in place {place_id}",
                    place_id,
                )
            self._write_marking(place_id, updated)
            consumed.append(TokenSummary.of(place_id, name, tokens))

        produced: List[TokenSummary] = []
        for flat_id, tokens in event.produced.items():
            place_id, name = self._place_info(flat_id)
            try:
                marking = self.store.get_marking(place_id)
            except ModelError:
                self._warn(DiagnosticCode.UNKNOWN_PLACE, f"Produced into unknown place {flat_id}", flat_id)
                continue
            marking.extend(normalize(t) for t in tokens)
            self._write_marking(place_id, marking)
            produced.append(TokenSummary.of(place_id, name, tokens))

        self._step += 1
        transition = self._net.node(event.transition_id) if self._net else None
        entry = EventLogEntry(
            step=self._step,
            time_ms=event.simulation_time_ms,
            transition_id=event.transition_id,
            transition_name=(transition.name if transition is not None and transition.name else event.transition_id),
            consumed=consumed,
            produced=produced,
            timestamp=simulation_timestamp(self._epoch, event.simulation_time_ms),
        )
        self.event_log.append(entry)
        return entry
