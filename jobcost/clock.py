"""Injectable time source.

Engine code asks a ``Clock`` for "now" instead of calling ``datetime.now()``
so timer math can be replayed deterministically in tests.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Return the current instant as a timezone-aware UTC datetime."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, fixed_time: datetime | None = None) -> None:
        self._time = ensure_utc(fixed_time or datetime(2024, 1, 1, 8, 0, 0, tzinfo=timezone.utc))

    def now(self) -> datetime:
        return self._time

    def set_time(self, value: datetime) -> None:
        self._time = ensure_utc(value)

    def advance(self, hours: float = 0.0, seconds: float = 0.0) -> datetime:
        self._time = self._time + timedelta(hours=hours, seconds=seconds)
        return self._time


def ensure_utc(value: datetime) -> datetime:
    # naive values coming back from storage are UTC by convention
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
