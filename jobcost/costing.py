"""Cost of a single time entry.

Pure arithmetic: no rounding and no validation of the interval. Callers only
pass ``end >= start``; rounding for display happens at the edges.
"""
from __future__ import annotations

from datetime import datetime

from .models import EntryCost, RatePair

SECONDS_PER_HOUR = 3600.0


def duration_hours(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_HOUR


def cost_for_duration(hours: float, rates: RatePair) -> EntryCost:
    return EntryCost(duration_hours=hours, total_cost=hours * rates.hourly_total)


def compute(start: datetime, end: datetime, rates: RatePair) -> EntryCost:
    return cost_for_duration(duration_hours(start, end), rates)
