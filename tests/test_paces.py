"""
Tests for goal pace calculation.

Covers:
- Exact table rows returned unchanged
- Interpolation between bounding rows
- Out-of-range goals and their valid-range message
- Distance aliases and time parsing
- Current-fitness estimation and pace blending
"""

import pytest

from runeq.errors import OutOfRangeGoal, PrescriptionError
from runeq.paces import (
    PaceCalculator,
    load_pace_table,
    pace_to_seconds,
    seconds_to_pace,
    seconds_to_time,
    time_to_seconds,
)
from runeq.schemas import RaceDistance


@pytest.fixture
def calculator():
    """Calculator over the packaged pace table."""
    return PaceCalculator()


def _all_rows():
    return [
        (distance, row)
        for distance, rows in load_pace_table().items()
        for row in rows
    ]


def _adjacent_pairs():
    pairs = []
    for distance, rows in load_pace_table().items():
        for faster, slower in zip(rows, rows[1:]):
            pairs.append((distance, faster, slower))
    return pairs


class TestTimeHelpers:
    """Parsing and formatting of times and paces."""

    def test_time_to_seconds(self):
        assert time_to_seconds("4:00:00") == 14400
        assert time_to_seconds("45:00") == 2700
        assert time_to_seconds("1:05:30") == 3930

    @pytest.mark.parametrize("bad", ["", "4", "4:00:00:00", "ab:cd", "4:75:00", "45:60"])
    def test_invalid_times_rejected(self, bad):
        with pytest.raises(ValueError):
            time_to_seconds(bad)

    def test_seconds_to_pace_rounds_before_splitting(self):
        """539.7 seconds is 9:00, never 8:60."""
        assert seconds_to_pace(539.7) == "9:00"
        assert seconds_to_pace(549.2) == "9:09"

    def test_seconds_to_time(self):
        assert seconds_to_time(14400) == "4:00:00"
        assert seconds_to_time(2700) == "45:00"

    def test_pace_round_trip(self):
        assert seconds_to_pace(pace_to_seconds("8:32")) == "8:32"


class TestExactRows:
    """A goal time matching a table row returns that row's paces."""

    def test_marathon_four_hours(self, calculator):
        """Marathon 4:00:00 returns the tabulated row, not an interpolation."""
        profile = calculator.calculate_from_goal("Marathon", "4:00:00")

        assert profile.interpolated is False
        assert profile.interpolated_between is None
        assert profile.paces.marathon.pace == "9:09"
        assert profile.paces.threshold.pace == "8:32"
        assert profile.paces.interval.pace == "7:50"
        assert profile.paces.easy.min == "10:11"
        assert profile.paces.easy.max == "11:11"
        assert profile.track_intervals.interval["400m"] == "1:57"

    @pytest.mark.parametrize("distance,row", _all_rows(), ids=lambda v: getattr(v, "goal_time", str(v)))
    def test_every_row_round_trips(self, calculator, distance, row):
        """Every tabulated goal returns exactly its own row."""
        profile = calculator.calculate_from_goal(distance, row.goal_time)

        assert profile.interpolated is False
        assert profile.paces.easy.min == row.easy[0]
        assert profile.paces.easy.max == row.easy[1]
        assert profile.paces.marathon.pace == row.marathon
        assert profile.paces.threshold.pace == row.threshold
        assert profile.paces.interval.pace == row.interval
        assert profile.track_intervals == row.track_intervals

    def test_race_pace_is_goal_over_distance(self, calculator):
        profile = calculator.calculate_from_goal(RaceDistance.HALF_MARATHON, "2:00:00")
        expected = seconds_to_pace(7200 / RaceDistance.HALF_MARATHON.miles)
        assert profile.paces.race.pace == expected


class TestInterpolation:
    """Goals between rows are interpolated per zone."""

    def test_midpoint_marathon(self, calculator):
        """4:07:30 sits halfway between the 4:00 and 4:15 rows."""
        profile = calculator.calculate_from_goal("marathon", "4:07:30")

        assert profile.interpolated is True
        assert profile.interpolated_between == ("4:00:00", "4:15:00")
        # (9:09 + 9:43) / 2 = 9:26
        assert profile.paces.marathon.pace == "9:26"

    @pytest.mark.parametrize("distance,faster,slower", _adjacent_pairs())
    def test_paces_between_bounding_rows(self, calculator, distance, faster, slower):
        """Every interpolated pace lies between the two bounding rows."""
        low = time_to_seconds(faster.goal_time)
        high = time_to_seconds(slower.goal_time)
        goal = seconds_to_time((low + high) / 2)

        profile = calculator.calculate_from_goal(distance, goal)
        assert profile.interpolated is True

        def between(value, a, b):
            v, a_s, b_s = pace_to_seconds(value), pace_to_seconds(a), pace_to_seconds(b)
            return min(a_s, b_s) <= v <= max(a_s, b_s)

        paces = profile.paces
        assert between(paces.easy.min, faster.easy[0], slower.easy[0])
        assert between(paces.easy.max, faster.easy[1], slower.easy[1])
        assert between(paces.marathon.pace, faster.marathon, slower.marathon)
        assert between(paces.threshold.pace, faster.threshold, slower.threshold)
        assert between(paces.interval.pace, faster.interval, slower.interval)
        for split, value in profile.track_intervals.interval.items():
            assert between(value, faster.track_intervals.interval[split], slower.track_intervals.interval[split])


class TestOutOfRange:
    """Goals outside the table raise OutOfRangeGoal."""

    @pytest.mark.parametrize(
        "distance,goal",
        [
            ("Marathon", "1:59:59"),
            ("Marathon", "6:00:01"),
            ("Half", "0:59:00"),
            ("Half", "3:30:00"),
            ("10K", "31:00"),
            ("10K", "1:30:00"),
        ],
    )
    def test_out_of_range(self, calculator, distance, goal):
        with pytest.raises(OutOfRangeGoal):
            calculator.calculate_from_goal(distance, goal)

    def test_message_states_valid_range(self, calculator):
        with pytest.raises(OutOfRangeGoal) as exc_info:
            calculator.calculate_from_goal("Marathon", "7:00:00")

        error = exc_info.value
        assert error.fastest == "2:00:00"
        assert error.slowest == "6:00:00"
        assert "2:00:00 to 6:00:00" in str(error)

    def test_out_of_range_is_a_value_error(self, calculator):
        """Callers catching ValueError or the engine base class both see it."""
        with pytest.raises(ValueError):
            calculator.calculate_from_goal("10K", "20:00")
        with pytest.raises(PrescriptionError):
            calculator.calculate_from_goal("10K", "20:00")

    def test_unknown_distance(self, calculator):
        with pytest.raises(ValueError, match="Unsupported race distance"):
            calculator.calculate_from_goal("5K", "25:00")

    def test_range_message(self, calculator):
        assert calculator.range_message("half_marathon") == "Half Marathon: 1:00:00 to 3:00:00"


class TestDistanceAliases:
    @pytest.mark.parametrize(
        "alias,expected",
        [
            ("10K", RaceDistance.TEN_K),
            ("10 k", RaceDistance.TEN_K),
            ("Half", RaceDistance.HALF_MARATHON),
            ("halfMarathon", RaceDistance.HALF_MARATHON),
            ("Half Marathon", RaceDistance.HALF_MARATHON),
            ("MARATHON", RaceDistance.MARATHON),
        ],
    )
    def test_aliases(self, alias, expected):
        assert RaceDistance.parse(alias) == expected


class TestCurrentFitness:
    """Fitness estimation and progressive blending."""

    def test_vdot_from_long_run(self):
        assert PaceCalculator.estimate_current_vdot(18, 40) == 42
        assert PaceCalculator.estimate_current_vdot(10, 55) == 38
        assert PaceCalculator.estimate_current_vdot(6, 15) == 30

    def test_vdot_from_mileage_only(self):
        assert PaceCalculator.estimate_current_vdot(None, 45) == 40
        assert PaceCalculator.estimate_current_vdot(0, 10) == 30

    def test_current_fitness_stays_in_table(self, calculator):
        """Even a very low estimate produces a valid profile."""
        profile = calculator.calculate_from_current_fitness(2, 5, "10K")
        fastest, slowest = calculator.valid_range("10K")
        assert time_to_seconds(fastest) <= time_to_seconds(profile.goal_time) <= time_to_seconds(slowest)

    def test_blend_endpoints(self, calculator):
        """Week 1 uses current paces and the final week uses goal paces."""
        current = calculator.calculate_from_goal("Marathon", "5:00:00")
        goal = calculator.calculate_from_goal("Marathon", "4:00:00")

        first = calculator.blend_paces(current, goal, 1, 16)
        last = calculator.blend_paces(current, goal, 16, 16)

        assert first.paces.threshold.pace == current.paces.threshold.pace
        assert last.paces.threshold.pace == goal.paces.threshold.pace
        assert first.paces.race == goal.paces.race
        assert first.progression_ratio == 0.0
        assert last.progression_ratio == pytest.approx(1.0, abs=0.01)

    def test_progression_curve_monotonic(self):
        points = [PaceCalculator.smooth_progression_curve(i / 20) for i in range(21)]
        assert points == sorted(points)
        assert points[0] == 0.0
        assert points[-1] == pytest.approx(1.0, abs=0.01)
