"""Cooking session optimizer.

Turns a flat list of items into sequential phases for a single-basket
appliance:
1. Group items by temperature, or take the user's manual batches as-is
2. Stagger start times inside each phase so everything finishes together
3. Generate the consolidated instruction timeline for guided cooking

Example:
    chicken 25min @ 200C, potatoes 20min @ 200C,
    brussels 12min @ 180C, broccoli 8min @ 180C

    Phase 1 (200C, 25min): chicken at 0:00, potatoes at 5:00
    Phase 2 (180C, 12min): brussels at 0:00, broccoli at 4:00
"""

from __future__ import annotations

import logging
from typing import Literal, Optional

from ...schemas import CookingBatch, CookingPhase, OptimizationResult, SessionItem, generate_id
from .events import consolidate_events, generate_phase_events, get_event_description
from .grouping import TemperatureGroup, calculate_grouping_stats, group_by_temperature
from .stagger import (
    calculate_staggered_times,
    calculate_time_saved,
    cook_minutes,
    format_minute_offset,
    round_half_up,
)
from .temperature_hints import calculate_temperature_hint, get_average_temperature

logger = logging.getLogger("fryplan.optimizer")

__all__ = [
    "TemperatureGroup",
    "calculate_staggered_times",
    "calculate_temperature_hint",
    "consolidate_events",
    "estimate_total_time",
    "format_minute_offset",
    "generate_phase_events",
    "get_event_description",
    "get_optimization_summary",
    "group_by_temperature",
    "optimize_cooking_session",
    "round_half_up",
]


def optimize_cooking_session(
    items: list[SessionItem],
    mode: Literal["auto", "manual-batches"] = "auto",
    batches: Optional[list[CookingBatch]] = None,
    tolerance: float = 0,
    rest_minutes: float = 0,
) -> OptimizationResult:
    """Build the phase plan for a session.

    "auto" groups items by temperature. "manual-batches" keeps the user's
    batches (one phase per non-empty batch, in batch order) and only
    optimizes timing inside each.
    """
    if not items:
        return OptimizationResult()

    if mode == "manual-batches" and batches:
        return _optimize_manual_batches(items, batches, rest_minutes)

    return _optimize_auto_grouped(items, tolerance, rest_minutes)


def _optimize_manual_batches(
    items: list[SessionItem],
    batches: list[CookingBatch],
    rest_minutes: float,
) -> OptimizationResult:
    by_id = {item.id: item for item in items}
    planned = []
    for batch in sorted(batches, key=lambda b: b.order):
        batch_items = [by_id[item_id] for item_id in batch.item_ids if item_id in by_id]
        if not batch_items:
            continue
        temperature = batch.target_temperature
        if temperature is None:
            temperature = get_average_temperature(batch_items)
        planned.append((batch.id, temperature, batch_items))

    return _build_result(planned, rest_minutes)


def _optimize_auto_grouped(items: list[SessionItem], tolerance: float, rest_minutes: float) -> OptimizationResult:
    groups = group_by_temperature(items, tolerance=tolerance)
    stats = calculate_grouping_stats(groups)
    logger.debug(f"Grouped {stats['total_items']} items into {stats['temperature_groups']} temperature groups")

    planned = [(generate_id(), group.target_temperature, group.items) for group in groups]
    return _build_result(planned, rest_minutes)


def _build_result(planned: list[tuple[str, float, list[SessionItem]]], rest_minutes: float) -> OptimizationResult:
    phases = []
    total_minutes = 0.0
    time_saved = 0.0
    parallel_items = 0

    for index, (phase_id, temperature, phase_items) in enumerate(planned):
        staggered, duration = calculate_staggered_times(phase_items)
        events = consolidate_events(generate_phase_events(staggered, temperature))
        is_last = index == len(planned) - 1

        phases.append(CookingPhase(
            id=phase_id,
            order=index,
            target_temperature=temperature,
            total_duration_minutes=duration,
            item_ids=[item.id for item in phase_items],
            rest_minutes_after=0 if is_last else rest_minutes,
            events=events,
        ))

        # Phases run back to back in one basket
        total_minutes += duration
        time_saved += calculate_time_saved(phase_items, duration)
        if len(phase_items) > 1:
            parallel_items += len(phase_items)

    return OptimizationResult(
        phases=phases,
        total_minutes=total_minutes,
        temperature_groups=len(phases),
        parallel_items=parallel_items,
        efficiency_gain=time_saved,
    )


def estimate_total_time(items: list[SessionItem], tolerance: float = 0, rest_minutes: float = 0) -> float:
    """Quick total without building events, rest between phases included."""
    groups = group_by_temperature(items, tolerance=tolerance)
    total = sum(max(cook_minutes(item) for item in group.items) for group in groups)
    return total + rest_minutes * max(0, len(groups) - 1)


def get_optimization_summary(result: OptimizationResult) -> str:
    if not result.phases:
        return "No items to cook"

    rest = sum(phase.rest_minutes_after for phase in result.phases)
    lines = [f"Total time: {result.total_minutes:g} minutes"]
    if rest:
        lines.append(f"With rest between phases: {result.total_minutes + rest:g} minutes")
    lines.append(f"Temperature phases: {result.temperature_groups}")

    if result.parallel_items > 0:
        lines.append(f"Items cooking in parallel: {result.parallel_items}")

    if result.efficiency_gain > 0:
        lines.append(f"Time saved vs sequential: ~{result.efficiency_gain:g} min")

    return "\n".join(lines)
