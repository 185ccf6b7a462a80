#!/usr/bin/env python3
"""
Tests for shared utilities: timebases, time formatting, Mermaid helpers,
exceptions.
"""

from datetime import datetime, timedelta, timezone

from lamella.common import StepClock, SubstitutionCycleError
from lamella.common.mermaid import format_arc, format_place_node, format_transition_node, mermaid_id
from lamella.common.timebase import format_duration_ms, format_timestamp, simulation_timestamp


class TestTimeFormatting:
    def test_timestamp_with_offset(self):
        tz = timezone(timedelta(hours=-5, minutes=-30))
        ts = datetime(2026, 3, 1, 8, 5, 9, 7000, tzinfo=tz)
        assert format_timestamp(ts) == "2026-03-01 - 08:05:09.007 -05:30"

    def test_duration(self):
        assert format_duration_ms(0) == "00:00:00.000"
        assert format_duration_ms(3723004) == "01:02:03.004"

    def test_simulation_timestamp(self):
        epoch = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert simulation_timestamp(epoch, 1500) == epoch + timedelta(milliseconds=1500)
        assert simulation_timestamp(None, 1500) is None

    def test_naive_epoch_treated_as_utc(self):
        ts = simulation_timestamp(datetime(2026, 1, 1), 0)
        assert ts.tzinfo == timezone.utc


class TestStepClock:
    async def test_sleep_advances_virtual_time(self):
        clock = StepClock(start=10.0)
        await clock.sleep(2.5)
        assert clock.now() == 12.5


class TestMermaid:
    def test_ids_sanitized(self):
        assert mermaid_id("T1.arc-3") == "T1_arc_3"

    def test_shapes(self):
        assert format_place_node("p", 'say "hi"') == '    p(("say #quot;hi#quot;"))'
        assert format_transition_node("t", "Go", is_substitution=True) == '    t[["Go"]]'
        assert format_arc("T1.a", "p") == "    T1_a --> p"


class TestExceptions:
    def test_cycle_message(self):
        error = SubstitutionCycleError(["a", "b", "a"])
        assert str(error) == "Substitution cycle detected: a -> b -> a"
        assert error.cycle == ["a", "b", "a"]
