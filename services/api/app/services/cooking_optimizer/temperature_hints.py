from __future__ import annotations

from ...schemas import SessionItem, TemperatureHint, TemperatureRange
from .stagger import round_half_up

DEFAULT_TEMPERATURE = 180
OK_RANGE = 10
WARNING_RANGE = 25


def calculate_temperature_hint(items: list[SessionItem]) -> TemperatureHint:
    """Rate how well a hand-made batch shares one temperature.

    ok: within 10C, warning: within 25C, mismatch: wider than that.
    """
    if not items:
        return TemperatureHint(
            severity="ok",
            message="No items",
            temperature_range=TemperatureRange(min=0, max=0),
        )

    temps = [item.temperature for item in items]
    low, high = min(temps), max(temps)

    if len(items) == 1:
        return TemperatureHint(
            severity="ok",
            message=f"{low:g}C",
            temperature_range=TemperatureRange(min=low, max=high),
        )

    spread = high - low
    midpoint = round_half_up((low + high) / 2)
    temperature_range = TemperatureRange(min=low, max=high)

    if spread <= OK_RANGE:
        return TemperatureHint(
            severity="ok",
            message=f"Good match ({midpoint}C)",
            temperature_range=temperature_range,
        )

    if spread <= WARNING_RANGE:
        return TemperatureHint(
            severity="warning",
            message=f"{spread:g}C range - cook at {midpoint}C",
            temperature_range=temperature_range,
        )

    return TemperatureHint(
        severity="mismatch",
        message=f"{spread:g}C gap - consider separate batches",
        temperature_range=temperature_range,
    )


def get_average_temperature(items: list[SessionItem]) -> float:
    if not items:
        return DEFAULT_TEMPERATURE
    return round_half_up(sum(item.temperature for item in items) / len(items))


def get_longest_cook_time(items: list[SessionItem]) -> float:
    if not items:
        return 0
    return max(item.time_minutes for item in items)
