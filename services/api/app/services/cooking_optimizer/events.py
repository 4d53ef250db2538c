"""Timeline events for a cooking phase.

A phase timeline is: preheat, add each item at its start offset, optional
shake halfway through, remove at the end offset, then phase complete.
Same-kind events at the same minute are merged into one instruction.
"""

from __future__ import annotations

import math

from ...schemas import PhaseEvent, SessionItem
from .stagger import cook_minutes, split_minutes

MERGED_VERBS = {
    "add_item": "Add",
    "remove_item": "Remove",
    "shake_reminder": "Shake/flip",
}


def format_temperature(temperature: float) -> str:
    return f"{temperature:g}C"


def generate_phase_events(staggered_items: list[SessionItem], phase_temperature: float) -> list[PhaseEvent]:
    """Build the ordered event list for one phase of staggered items."""
    events = [PhaseEvent(
        minute_offset=0,
        event_type="preheat_start",
        instruction=f"Preheat air fryer to {format_temperature(phase_temperature)}",
    )]

    for item in staggered_items:
        start = item.start_offset_minutes or 0
        end = item.end_offset_minutes if item.end_offset_minutes is not None else start + cook_minutes(item)

        events.append(_item_event(item, start, "add_item", f"Add {item.name} to air fryer"))

        if item.shake_halfway:
            shake_at = start + math.floor(cook_minutes(item) / 2)
            events.append(_item_event(item, shake_at, "shake_reminder", f"Shake/flip {item.name}"))

        events.append(_item_event(item, end, "remove_item", f"Remove {item.name} - it's done!"))

    events.sort(key=lambda e: e.minute_offset)

    events.append(PhaseEvent(
        minute_offset=max(e.minute_offset for e in events),
        event_type="phase_complete",
        instruction="Phase complete! All items ready.",
    ))
    return events


def consolidate_events(events: list[PhaseEvent]) -> list[PhaseEvent]:
    """Merge events of the same kind at the same offset.

    Running this on its own output returns an equal list.
    """
    by_key: dict[tuple[float, str], list[PhaseEvent]] = {}
    for event in events:
        by_key.setdefault((event.minute_offset, event.event_type), []).append(event)

    consolidated = []
    for (offset, event_type), group in by_key.items():
        if len(group) == 1:
            consolidated.append(group[0])
            continue

        names = ", ".join(e.item_name for e in group if e.item_name)
        verb = MERGED_VERBS.get(event_type)
        item_ids = [item_id for e in group for item_id in e.item_ids]

        consolidated.append(PhaseEvent(
            minute_offset=offset,
            event_type=event_type,
            item_ids=item_ids,
            instruction=f"{verb}: {names}" if verb else group[0].instruction,
        ))

    consolidated.sort(key=lambda e: e.minute_offset)
    return consolidated


def get_event_description(event: PhaseEvent) -> str:
    """Human-readable line, e.g. '5:30 - Add fries to air fryer'."""
    mins, secs = split_minutes(event.minute_offset)
    return f"{mins}:{secs:02d} - {event.instruction}"


def _item_event(item: SessionItem, offset: float, event_type: str, instruction: str) -> PhaseEvent:
    return PhaseEvent(
        minute_offset=offset,
        event_type=event_type,
        item_id=item.id,
        item_name=item.name,
        item_ids=[item.id],
        instruction=instruction,
    )
