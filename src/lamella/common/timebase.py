#!/usr/bin/env python3
"""
Timebases and simulation-time formatting.

A Timebase paces multi-step runs between steps; the simulation clock itself
is owned by the external engine and reported in milliseconds on every
firing event.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from time import monotonic
from typing import Optional
import asyncio


class Timebase(ABC):
    @abstractmethod
    def now(self) -> float:
        pass

    @abstractmethod
    async def sleep(self, duration: float):
        pass


class MonotonicClock(Timebase):
    def now(self) -> float:
        return monotonic()

    async def sleep(self, duration: float):
        await asyncio.sleep(duration)


class StepClock(Timebase):
    """Virtual clock: sleeping advances time instantly. Useful in tests."""

    def __init__(self, start: float = 0.0):
        self.value = start

    def now(self) -> float:
        return self.value

    async def sleep(self, duration: float):
        self.value += duration
        # Still yield so that stop requests get a chance to run
        await asyncio.sleep(0)


def simulation_timestamp(epoch: Optional[datetime], time_ms: float) -> Optional[datetime]:
    """Absolute timestamp of a simulation time, or None without an epoch."""
    if epoch is None:
        return None
    if epoch.tzinfo is None:
        epoch = epoch.replace(tzinfo=timezone.utc)
    return epoch + timedelta(milliseconds=time_ms)


def format_timestamp(ts: datetime) -> str:
    """
    Format a timestamp as ``YYYY-MM-DD - HH:mm:ss.SSS +HH:MM``.

    Example:
        >>> format_timestamp(datetime(2026, 2, 14, 14, 45, 12, 347000, tzinfo=timezone.utc))
        '2026-02-14 - 14:45:12.347 +00:00'
    """
    offset = ts.utcoffset() or timedelta(0)
    minutes = int(offset.total_seconds() // 60)
    sign = "+" if minutes >= 0 else "-"
    hours, mins = divmod(abs(minutes), 60)
    millis = ts.microsecond // 1000
    return f"{ts:%Y-%m-%d - %H:%M:%S}.{millis:03d} {sign}{hours:02d}:{mins:02d}"


def format_duration_ms(time_ms: float) -> str:
    """
    Format a simulation time in milliseconds as ``HH:MM:SS.mmm``.

    Example:
        >>> format_duration_ms(3723004)
        '01:02:03.004'
    """
    total_ms = int(round(time_ms))
    seconds, ms = divmod(total_ms, 1000)
    minutes, secs = divmod(seconds, 60)
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}:{secs:02d}.{ms:03d}"
