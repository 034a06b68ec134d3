"""
Tests for structure range resolution.

Covers:
- Rep x duration ranges with week progression
- Recovery windows (midpoint, seconds under two minutes)
- Distance and generic ranges
- Pass-through of time ranges and ladders
- Idempotence
"""

import pytest

from runeq.structure import (
    convert_workout_structures,
    has_unresolved_range,
    progression,
    resolve_structure,
    resolve_value,
)


@pytest.fixture
def samples():
    """Structure strings taken from catalog-style templates."""
    return [
        "4-6 x 3-8 min easy",
        "6 x 800m with 2-3 min jog recovery",
        "Warm up 1-2 miles, 20-25 min at tempo, cool down",
        "8-10 x 30 sec hill sprints, recovery: 2-3 min",
        "Threshold 8:07-8:56/mile, 3-4 sets",
        "Ladder 1-2-3-2-1 min, then 400-800-1200",
        "8-10% grade",
    ]


class TestProgression:
    def test_no_week_data(self):
        assert progression(None, 12) is None
        assert progression(3, None) is None
        assert progression(0, 12) is None

    def test_caps_at_three_quarters_of_plan(self):
        assert progression(9, 12) == 1.0
        assert progression(12, 12) == 1.0
        assert progression(1, 12) == pytest.approx(1 / 9)

    def test_resolve_value(self):
        assert resolve_value(4, 6, None) == 5
        assert resolve_value(4, 6, 0.0) == 4
        assert resolve_value(4, 6, 1.0) == 6


class TestRepDuration:
    """The "N-M x A-B min" pattern resolves both halves together."""

    def test_early_week_toward_lower_bounds(self):
        """Week 1 of 12 stays near the lower bounds."""
        assert resolve_structure("4-6 x 3-8 min easy", 1, 12) == "4 x 4 min easy"

    def test_final_week_hits_upper_bounds(self):
        assert resolve_structure("4-6 x 3-8 min easy", 12, 12) == "6 x 8 min easy"

    def test_midpoint_without_week(self):
        assert resolve_structure("4-6 x 3-8 min easy") == "5 x 6 min easy"

    def test_progressive_values_never_decrease(self):
        values = [resolve_structure("4-6 x 3-8 min", week, 12) for week in range(1, 13)]
        reps = [int(v.split(" x ")[0]) for v in values]
        durations = [int(v.split(" x ")[1].split()[0]) for v in values]
        assert reps == sorted(reps)
        assert durations == sorted(durations)


class TestRecovery:
    def test_short_recovery_in_seconds(self):
        assert resolve_structure("6 x 400m, 1-2 min recovery") == "6 x 400m, 90 sec recovery"

    def test_recovery_uses_midpoint_regardless_of_week(self):
        text = "6 x 800m with 2-3 min jog recovery"
        assert resolve_structure(text, 1, 12) == "6 x 800m with 3 min jog recovery"
        assert resolve_structure(text, 12, 12) == "6 x 800m with 3 min jog recovery"

    def test_recovery_prefix(self):
        assert resolve_structure("8 x 30 sec hills, recovery: 2-3 min") == "8 x 30 sec hills, recovery: 3 min"


class TestDistanceAndGeneric:
    def test_distance_range(self):
        assert resolve_structure("6-8 miles easy") == "7 miles easy"
        assert resolve_structure("6-8 miles easy", 1, 12) == "6 miles easy"

    def test_generic_range(self):
        assert resolve_structure("8-10% grade") == "9% grade"
        assert resolve_structure("3-4 sets") == "4 sets"


class TestPassThrough:
    def test_time_ranges_untouched(self):
        text = "Threshold 8:07-8:56/mile"
        assert resolve_structure(text, 3, 12) == text

    def test_ladders_untouched(self):
        text = "Ladder 1-2-3-2-1 min, then 400-800-1200"
        assert resolve_structure(text) == text

    def test_empty_text(self):
        assert resolve_structure("") == ""


class TestIdempotence:
    """Resolving twice gives the same result as resolving once."""

    @pytest.mark.parametrize("week", [None, 1, 6, 12])
    def test_idempotent(self, samples, week):
        for text in samples:
            once = resolve_structure(text, week, 12 if week else None)
            assert resolve_structure(once, week, 12 if week else None) == once

    def test_no_residual_ranges(self, samples):
        resolvable = [s for s in samples if "8:07" not in s and "Ladder" not in s]
        for text in resolvable:
            assert not has_unresolved_range(resolve_structure(text, 5, 12))


def test_convert_workout_structures():
    """Every string value of a mapping is resolved; other values pass through."""
    converted = convert_workout_structures({"main": "8-10 x 30 sec", "sets": 3}, 1, 12)
    assert converted == {"main": "8 x 30 sec", "sets": 3}
