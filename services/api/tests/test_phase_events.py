from app.schemas import PhaseEvent, SessionItem
from app.services.cooking_optimizer.events import (
    consolidate_events,
    generate_phase_events,
    get_event_description,
)
from app.services.cooking_optimizer.stagger import calculate_staggered_times


def make_item(name, minutes, shake=False):
    return SessionItem(name=name, temperature=200, time_minutes=minutes, shake_halfway=shake)


def build_events(items, temperature=200):
    staggered, _ = calculate_staggered_times(items)
    return generate_phase_events(staggered, temperature)


def test_basic_timeline():
    events = build_events([make_item("chicken", 25), make_item("potatoes", 20)])
    summary = [(e.minute_offset, e.event_type, e.item_name) for e in events]

    assert summary == [
        (0, "preheat_start", None),
        (0, "add_item", "chicken"),
        (5, "add_item", "potatoes"),
        (25, "remove_item", "chicken"),
        (25, "remove_item", "potatoes"),
        (25, "phase_complete", None),
    ]
    assert events[0].instruction == "Preheat air fryer to 200C"
    assert events[1].instruction == "Add chicken to air fryer"
    assert events[3].instruction == "Remove chicken - it's done!"


def test_shake_reminder_halfway():
    # 10 min item starting at 5 shakes at 5 + floor(10 / 2)
    events = build_events([make_item("wings", 15), make_item("fries", 10, shake=True)])
    shakes = [e for e in events if e.event_type == "shake_reminder"]

    assert len(shakes) == 1
    assert shakes[0].minute_offset == 10
    assert shakes[0].item_name == "fries"
    assert shakes[0].instruction == "Shake/flip fries"


def test_shake_uses_floor_for_odd_durations():
    events = build_events([make_item("tots", 13, shake=True)])
    shake = next(e for e in events if e.event_type == "shake_reminder")
    assert shake.minute_offset == 6


def test_events_are_ordered_and_end_with_one_phase_complete():
    items = [make_item("a", 12, True), make_item("b", 7), make_item("c", 20, True), make_item("d", 3)]
    events = consolidate_events(build_events(items))
    offsets = [e.minute_offset for e in events]

    assert offsets == sorted(offsets)
    assert events[-1].event_type == "phase_complete"
    assert events[-1].minute_offset == max(offsets) == 20
    assert sum(1 for e in events if e.event_type == "phase_complete") == 1


def test_fractional_temperature_in_preheat():
    events = build_events([make_item("a", 5)], temperature=182.5)
    assert events[0].instruction == "Preheat air fryer to 182.5C"


def test_consolidation_merges_same_kind_same_offset():
    events = consolidate_events(build_events([
        make_item("chicken wings", 20),
        make_item("fries", 12),
        make_item("onion rings", 12),
    ]))

    adds_at_8 = [e for e in events if e.minute_offset == 8 and e.event_type == "add_item"]
    assert len(adds_at_8) == 1
    assert adds_at_8[0].instruction == "Add: fries, onion rings"
    assert adds_at_8[0].item_id is None
    assert len(adds_at_8[0].item_ids) == 2

    removes = [e for e in events if e.event_type == "remove_item"]
    assert len(removes) == 1
    assert removes[0].instruction == "Remove: chicken wings, fries, onion rings"


def test_consolidation_keeps_different_kinds_apart():
    # add at 0 and preheat at 0 stay separate
    events = consolidate_events(build_events([make_item("a", 10)]))
    at_zero = [e.event_type for e in events if e.minute_offset == 0]
    assert at_zero == ["preheat_start", "add_item"]


def test_consolidation_merges_shakes():
    events = consolidate_events(build_events([make_item("a", 10, True), make_item("b", 10, True)]))
    shakes = [e for e in events if e.event_type == "shake_reminder"]
    assert len(shakes) == 1
    assert shakes[0].instruction == "Shake/flip: a, b"


def test_single_events_pass_through_unchanged():
    raw = build_events([make_item("a", 10, shake=True)])
    consolidated = consolidate_events(raw)
    assert consolidated == raw


def test_consolidation_is_idempotent():
    once = consolidate_events(build_events([
        make_item("a", 15, True),
        make_item("b", 15, True),
        make_item("c", 9),
        make_item("d", 9),
    ]))
    twice = consolidate_events(once)
    assert twice == once


def test_event_description():
    event = PhaseEvent(minute_offset=5.5, event_type="add_item", instruction="Add fries to air fryer")
    assert get_event_description(event) == "5:30 - Add fries to air fryer"
    event = PhaseEvent(minute_offset=12, event_type="phase_complete", instruction="Done")
    assert get_event_description(event) == "12:00 - Done"
    event = PhaseEvent(minute_offset=4.9999, event_type="remove_item", instruction="Remove fries")
    assert get_event_description(event) == "5:00 - Remove fries"
