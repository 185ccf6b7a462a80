#!/usr/bin/env python3
"""
Tests for firing-event parsing and the event log.
"""

from datetime import datetime, timezone

from lamella.common.diagnostics import DiagnosticCode
from lamella.simulation import EventLog, EventLogEntry, FiringEvent, TokenSummary, parse_events


def entry(step, **kwargs):
    defaults = dict(time_ms=0.0, transition_id="t", transition_name="Fire")
    defaults.update(kwargs)
    return EventLogEntry(step=step, **defaults)


class TestParseEvents:
    def test_none_is_no_event(self):
        assert parse_events(None) == ([], [])

    def test_single_mapping(self):
        events, diagnostics = parse_events(
            {"transitionId": "t1", "simulationTimeMs": 5, "consumed": {"p": [1]}}
        )
        assert diagnostics == []
        assert events == [FiringEvent(transition_id="t1", simulation_time_ms=5, consumed={"p": [1]})]

    def test_snake_case_accepted(self):
        events, _ = parse_events([{"transition_id": "t1"}])
        assert events[0].transition_id == "t1"

    def test_batch_with_malformed_item(self):
        events, diagnostics = parse_events([{"transitionId": "a"}, {"produced": 3}, {"transitionId": "b"}])
        assert [e.transition_id for e in events] == ["a", "b"]
        assert [d.code for d in diagnostics] == [DiagnosticCode.MALFORMED_EVENT]

    def test_parsed_events_pass_through(self):
        event = FiringEvent(transition_id="x")
        assert parse_events(event) == ([event], [])

    def test_scalar_result_is_one_malformed_event(self):
        events, diagnostics = parse_events(0)
        assert events == []
        assert [d.code for d in diagnostics] == [DiagnosticCode.MALFORMED_EVENT]

    def test_string_result_not_iterated(self):
        events, diagnostics = parse_events("abc")
        assert events == []
        assert len(diagnostics) == 1


class TestEventLogEntry:
    def test_summaries(self):
        e = entry(
            1,
            consumed=[TokenSummary.of("p1", "Input", [{"b": 1, "a": 2}]), TokenSummary.of("p2", "", [1])],
            produced=[TokenSummary.of("p3", "Output", [None])],
        )
        assert e.consumed_summary == 'Input: [{"a":2,"b":1}]; p2: [1]'
        assert e.produced_summary == "Output: [null]"

    def test_str_uses_duration_without_epoch(self):
        assert str(entry(3, time_ms=3723004)) == "#3 01:02:03.004 Fire: consumed [] produced []"

    def test_str_uses_timestamp_with_epoch(self):
        ts = datetime(2026, 2, 14, 14, 45, 12, 347000, tzinfo=timezone.utc)
        assert str(entry(1, timestamp=ts)).startswith("#1 2026-02-14 - 14:45:12.347 +00:00 Fire")

    def test_to_dict(self):
        data = entry(2, time_ms=10.0).to_dict()
        assert data == {
            "step": 2,
            "time": 10.0,
            "timestamp": None,
            "transitionId": "t",
            "transitionName": "Fire",
            "consumed": "",
            "produced": "",
        }


class TestEventLog:
    def test_append_and_last(self):
        log = EventLog()
        assert log.last is None
        log.append(entry(1))
        log.append(entry(2))
        assert len(log) == 2
        assert log.last.step == 2
        assert [e.step for e in log] == [1, 2]

    def test_bounded_capacity_keeps_recent(self):
        log = EventLog(capacity=2)
        for step in range(1, 5):
            log.append(entry(step))
        assert [e.step for e in log.entries()] == [3, 4]

    def test_clear(self):
        log = EventLog()
        log.append(entry(1))
        log.clear()
        assert len(log) == 0
