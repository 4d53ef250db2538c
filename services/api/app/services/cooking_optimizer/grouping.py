"""Temperature batching for single-basket cooking sessions."""

from __future__ import annotations

from dataclasses import dataclass, field

from ...schemas import SessionItem
from .stagger import round_half_up


@dataclass
class TemperatureGroup:
    target_temperature: float
    items: list[SessionItem] = field(default_factory=list)


def group_by_temperature(items: list[SessionItem], tolerance: float = 0) -> list[TemperatureGroup]:
    """Partition items into the fewest temperature-compatible groups.

    Items are scanned hottest first. Each group is anchored at its hottest
    item and accepts every following item within `tolerance` degrees of that
    anchor, so all members also sit within `tolerance` of the group average.
    With tolerance 0 this is an exact-match grouping.

    Groups come back hottest first; items keep their input order inside a
    group. The group temperature is the rounded average of its members.
    """
    if not items:
        return []

    tolerance = max(0.0, tolerance)
    # sorted() is stable, so equal temperatures keep input order
    ordered = sorted(items, key=lambda item: -item.temperature)

    anchored: list[tuple[float, list[SessionItem]]] = []
    for item in ordered:
        if anchored and anchored[-1][0] - item.temperature <= tolerance:
            anchored[-1][1].append(item)
        else:
            anchored.append((item.temperature, [item]))

    position = {id(item): i for i, item in enumerate(items)}
    groups = []
    for _, members in anchored:
        members.sort(key=lambda item: position[id(item)])
        groups.append(TemperatureGroup(target_temperature=_average(members), items=members))

    # anchors are more than the window apart, so averages descend too
    return groups


def calculate_grouping_stats(groups: list[TemperatureGroup]) -> dict:
    total_items = sum(len(g.items) for g in groups)
    parallel_items = sum(len(g.items) for g in groups if len(g.items) > 1)

    return {
        "temperature_groups": len(groups),
        "total_items": total_items,
        "parallel_items": parallel_items,
        # one phase per item vs one phase per group
        "sequential_phases": total_items,
        "batched_phases": len(groups),
    }


def _average(items: list[SessionItem]) -> float:
    return round_half_up(sum(i.temperature for i in items) / len(items))
