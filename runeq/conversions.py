"""
Fixed cross-modality conversion ratios.

Every running/cross-training equivalence in the engine goes through these
constants. Nothing estimates a ratio ad hoc.
"""

from typing import Union

from runeq.paces import round_half_up

# Cross-training minutes per running minute, by running zone
EASY_TIME_FACTOR = 2.0
THRESHOLD_TIME_FACTOR = 2.5

# Stand-up bike miles per running mile
BIKE_TO_RUN_DISTANCE_RATIO = 3.0

# Average riding minutes per RunEQ mile
MINUTES_PER_RUNEQ_MILE = 9

# Zones converted at the threshold factor; everything else is easy
THRESHOLD_ZONES = frozenset({"marathon", "threshold", "tempo", "interval", "intervals", "hills"})


def time_factor(zone: str) -> float:
    """Cross-training minutes per running minute in ``zone``."""
    return THRESHOLD_TIME_FACTOR if zone.lower() in THRESHOLD_ZONES else EASY_TIME_FACTOR


def bike_minutes_for_run_minutes(minutes: Union[int, float], zone: str = "easy") -> int:
    """
    Cross-training minutes matching a run of ``minutes`` in ``zone``.

    Easy running converts at 2.0x; marathon pace and harder at 2.5x.
    """
    return round_half_up(minutes * time_factor(zone))


def run_miles_from_bike_miles(bike_miles: Union[int, float]) -> float:
    return round(bike_miles / BIKE_TO_RUN_DISTANCE_RATIO, 1)


def bike_miles_for_runeq_miles(runeq_miles: Union[int, float]) -> int:
    return round_half_up(runeq_miles * BIKE_TO_RUN_DISTANCE_RATIO)


def minutes_for_runeq_miles(runeq_miles: Union[int, float]) -> int:
    return round_half_up(runeq_miles * MINUTES_PER_RUNEQ_MILE)
