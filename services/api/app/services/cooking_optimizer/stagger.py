"""Staggered start times so every item in a phase finishes together.

Example: chicken (25 min), potatoes (20 min), broccoli (8 min)
- phase duration = 25 min (longest item)
- chicken goes in at 0:00, potatoes at 5:00, broccoli at 17:00
- everything comes out at 25:00

Offsets are kept on whole seconds so fractional cook times stay exact.
"""

from __future__ import annotations

import math

from ...schemas import SessionItem

PREHEAT_OVERHEAD_MINUTES = 3  # re-preheat between items when cooking one at a time


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (182.5 -> 183)."""
    return math.floor(value + 0.5)


def cook_minutes(item: SessionItem) -> float:
    """Cook time with non-positive durations treated as instant."""
    return max(0.0, item.time_minutes)


def cook_seconds(item: SessionItem) -> int:
    return round_half_up(cook_minutes(item) * 60)


def calculate_staggered_times(items: list[SessionItem]) -> tuple[list[SessionItem], float]:
    """Return (staggered copies of items, phase duration).

    Copies carry start/end offsets from phase start; end offset equals the
    phase duration for every item. Copies are ordered by start offset.
    """
    if not items:
        return [], 0

    duration_seconds = max(cook_seconds(item) for item in items)
    duration = duration_seconds / 60

    staggered = []
    for item in items:
        staggered.append(item.model_copy(update={
            "start_offset_minutes": (duration_seconds - cook_seconds(item)) / 60,
            "end_offset_minutes": duration,
        }))

    staggered.sort(key=lambda i: i.start_offset_minutes)
    return staggered, duration


def calculate_time_saved(items: list[SessionItem], phase_duration: float) -> float:
    """Minutes saved by batching vs cooking each item on its own."""
    sequential = sum(cook_minutes(item) for item in items)
    preheat_overhead = max(0, len(items) - 1) * PREHEAT_OVERHEAD_MINUTES
    return max(0, sequential + preheat_overhead - phase_duration)


def split_minutes(minutes: float) -> tuple[int, int]:
    """Whole (minutes, seconds) of a minute offset."""
    total_seconds = round_half_up(minutes * 60)
    return total_seconds // 60, total_seconds % 60


def format_minute_offset(minutes: float) -> str:
    """Format a minute offset as MM:SS."""
    mins, secs = split_minutes(minutes)
    return f"{mins:02d}:{secs:02d}"
