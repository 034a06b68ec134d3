"""
Tests for alternative workout generation.

Covers:
- At least one category for every day type
- Equipment-dependent categories (stand-up bike, bricks, cross-training)
- Cross-training time sized by the run it replaces
- A failing library lookup skips only its own category
- Replace vs add modes and weather flag
- Rest-day alternative sets
- Applying a chosen alternative to a plan
"""

import json
import random
from pathlib import Path

import pytest

from runeq.alternatives import AlternativeGenerator, apply_alternative, distance_from_name
from runeq.catalog import get_random
from runeq.compiler import PrescriptionOptions, prescribe
from runeq.errors import WorkoutNotFound
from runeq.paces import PaceCalculator
from runeq.plan_schemas import DayEntry, PrescribedWorkout
from runeq.planner import TrainingPlanGenerator
from runeq.schemas import Modality, UserProfile, Weekday, WorkoutType

FIXTURES = Path(__file__).parent / "fixtures"


def make_day(workout_type, name="Scheduled Workout", distance=6.0, **workout_fields):
    return DayEntry(
        day=Weekday.TUESDAY,
        type=workout_type,
        workout=PrescribedWorkout(name=name, **workout_fields),
        distance=0.0 if workout_type.is_rest else distance,
    )


def ids(categories):
    return [c.id for c in categories]


@pytest.fixture
def generator():
    """Seeded generator."""
    return AlternativeGenerator(rng=random.Random(42))


@pytest.fixture
def runner():
    """Marathoner with no equipment."""
    return UserProfile(race_distance="Marathon", goal_time="4:00:00")


@pytest.fixture
def cyclete_owner():
    """Half marathoner with a Cyclete and an elliptical."""
    return UserProfile(
        race_distance="Half",
        goal_time="1:50:00",
        standup_bike_type="cyclete",
        equipment={"elliptical": True},
    )


@pytest.fixture
def tempo_day():
    """A compiled Classic Tempo Run day."""
    paces = PaceCalculator().calculate_from_goal("Marathon", "4:00:00")
    workout = prescribe(Modality.TEMPO, "Classic Tempo Run", PrescriptionOptions(paces=paces))
    return DayEntry(day=Weekday.TUESDAY, type=WorkoutType.TEMPO, workout=workout, distance=7)


class TestEveryDayType:
    @pytest.mark.parametrize("workout_type", list(WorkoutType))
    def test_never_empty(self, generator, runner, workout_type):
        categories = generator.generate(make_day(workout_type), runner)
        assert categories
        for category in categories:
            assert category.options

    @pytest.mark.parametrize("workout_type", list(WorkoutType))
    def test_never_empty_with_equipment(self, generator, cyclete_owner, workout_type):
        assert generator.generate(make_day(workout_type), cyclete_owner)

    def test_invalid_mode(self, generator, runner):
        with pytest.raises(ValueError, match="mode must be one of"):
            generator.generate(make_day(WorkoutType.EASY), runner, mode="swap")


class TestTrainingDayCategories:
    def test_runner_order(self, generator, runner, tempo_day):
        assert ids(generator.generate(tempo_day, runner)) == [
            "same-intensity",
            "easier",
            "harder",
            "contextual",
        ]

    def test_bike_owner_gets_equipment_and_bricks(self, generator, cyclete_owner, tempo_day):
        categories = generator.generate(tempo_day, cyclete_owner)
        titles = [c.title for c in categories]

        assert "Switch to Cyclete" in titles
        assert "Brick Workouts" in titles
        assert "Cross-Training: Elliptical" in titles

        equipment = next(c for c in categories if c.id == "equipment")
        assert all(o.workout_type == WorkoutType.BIKE for o in equipment.options)
        assert all(o.workout.equipment == "cyclete" for o in equipment.options)

    def test_cross_training_matches_stimulus(self, generator, cyclete_owner, tempo_day):
        categories = generator.generate(tempo_day, cyclete_owner)
        cross = next(c for c in categories if c.id == "cross-training-elliptical")

        assert cross.subtitle == "Same tempo stimulus without running impact"
        assert 1 <= len(cross.options) <= 3
        assert all(o.workout.modality == Modality.ELLIPTICAL for o in cross.options)

    def test_same_intensity_excludes_scheduled_workout(self, generator, runner, tempo_day):
        same = generator.generate(tempo_day, runner)[0]
        assert same.id == "same-intensity"
        assert all(o.workout_type == WorkoutType.TEMPO for o in same.options)
        assert not any(o.workout.name.startswith("Classic Tempo Run") for o in same.options)

    def test_long_run_alternatives_keep_distance(self, generator, runner):
        day = make_day(WorkoutType.LONG_RUN, name="14-Mile Classic Easy Long Run", distance=14)
        same = generator.generate(day, runner)[0]
        assert all(o.workout.name.startswith("14-Mile ") for o in same.options)

    def test_harder_limited(self, generator, runner):
        harder = next(c for c in generator.generate(make_day(WorkoutType.EASY), runner) if c.id == "harder")
        assert len(harder.options) <= 4
        assert harder.options[0].workout_type == WorkoutType.INTERVALS

    def test_weather_only_when_flagged(self, generator, runner, tempo_day):
        assert "weather" not in ids(generator.generate(tempo_day, runner))
        assert "weather" in ids(generator.generate(tempo_day, runner, weather_extreme=True))


class TestCrossTrainingSizing:
    def _cross(self, generator, profile, day):
        categories = generator.generate(day, profile)
        cross = next(c for c in categories if c.id == "cross-training-elliptical")
        assert cross.options
        return cross

    def test_tempo_uses_threshold_factor(self, generator, cyclete_owner):
        """40 minutes of tempo running = 100 elliptical minutes."""
        day = make_day(WorkoutType.TEMPO, name="Tempo Run", duration="40 minutes")
        for option in self._cross(generator, cyclete_owner, day).options:
            assert option.workout.estimated_minutes == 100
            assert option.workout.details["conversion"] == "2.5x tempo running time"
            assert option.workout.details["replaces"] == "40 minute tempo run"

    def test_easy_uses_easy_factor(self, generator, cyclete_owner):
        day = make_day(WorkoutType.EASY, name="Easy Run", duration="40 minutes")
        for option in self._cross(generator, cyclete_owner, day).options:
            assert option.workout.estimated_minutes == 80
            assert option.workout.details["conversion"] == "2x easy running time"

    def test_unknown_run_length_keeps_template(self, generator, cyclete_owner):
        day = make_day(WorkoutType.TEMPO, name="Tempo Run")
        for option in self._cross(generator, cyclete_owner, day).options:
            assert "conversion" not in option.workout.details


class TestCategoryFailures:
    @pytest.fixture
    def hills_unavailable(self, monkeypatch):
        """Every hills library lookup fails; other libraries work."""

        def lookup(modality, category, rng=None):
            if modality == Modality.HILLS:
                raise WorkoutNotFound(modality.value, category)
            return get_random(modality, category, rng)

        monkeypatch.setattr("runeq.alternatives.get_random", lookup)

    def test_hills_day_keeps_other_categories(self, generator, runner, hills_unavailable):
        categories = generator.generate(make_day(WorkoutType.HILLS, name="Hill Repeats"), runner)

        assert ids(categories) == ["same-intensity", "easier", "harder", "contextual"]
        same = categories[0]
        assert same.options
        assert not any(o.workout.modality == Modality.HILLS for o in same.options)

    def test_tempo_day_harder_falls_back(self, generator, runner, tempo_day, hills_unavailable):
        categories = generator.generate(tempo_day, runner)

        assert ids(categories) == ["same-intensity", "easier", "harder", "contextual"]
        harder = categories[2]
        assert harder.options
        assert not any(o.workout.modality == Modality.HILLS for o in harder.options)


class TestModes:
    def test_replace_mode_offers_rest(self, generator, runner):
        categories = generator.generate(make_day(WorkoutType.EASY), runner, mode="replace")
        types = {o.workout_type for c in categories for o in c.options}
        assert WorkoutType.REST_OR_XT in types

    def test_add_mode_drops_rest_options(self, generator, runner):
        categories = generator.generate(make_day(WorkoutType.EASY), runner, mode="add")
        for category in categories:
            assert not any(o.workout_type.is_rest for o in category.options)
        easier = next(c for c in categories if c.id == "easier")
        assert [o.workout.name for o in easier.options] == ["Easy Recovery Run", "Walk-Run Intervals"]


class TestContextual:
    def test_easy_day_keeps_duration(self, generator, runner):
        day = make_day(WorkoutType.EASY, name="Easy Run", duration="45 minutes")
        contextual = next(c for c in generator.generate(day, runner) if c.id == "contextual")

        durations = [o.workout.duration for o in contextual.options]
        assert durations == ["45 minutes", "45 minutes", "20 minutes"]

    def test_long_run_options_scale_with_distance(self, generator, runner):
        day = make_day(WorkoutType.LONG_RUN, name="Long Run", distance=14)
        contextual = next(c for c in generator.generate(day, runner) if c.id == "contextual")

        names = [o.workout.name for o in contextual.options]
        assert names == ["14 Miles on Treadmill", "Split Long Run", "11 Mile Moderate", "Easy Long Walk/Run"]
        assert contextual.options[1].workout.description == "7 miles morning + 7 miles evening"

    def test_unknown_type_uses_universal(self, generator, runner):
        day = make_day(WorkoutType.RACE, name="RACE DAY - Marathon")
        contextual = next(c for c in generator.generate(day, runner) if c.id == "contextual")
        assert [o.workout.name for o in contextual.options] == ["Rest Day", "Light Cross Training"]


class TestBikeDay:
    def test_run_instead_uses_distance_ratio(self, generator, cyclete_owner):
        """6 RunEQ miles = 18 bike miles = 6 running miles."""
        day = make_day(
            WorkoutType.BIKE,
            name="6 RunEQ Miles - Conversational Pace Cruise",
            distance=6,
            runeq_miles=6,
        )
        categories = generator.generate(day, cyclete_owner)
        run = next(c for c in categories if c.id == "run-instead")

        assert run.title == "Switch to Running"
        assert [o.workout.name for o in run.options] == [
            "6-Mile Easy Run",
            "4-Mile Tempo Run",
            "Fartlek Run",
            "5 Miles Progressive",
        ]
        assert [o.workout.distance_miles for o in run.options] == [6.0, 4.0, None, 5.0]
        assert "equipment" not in ids(categories)


class TestRestDay:
    def test_rest_day_sets(self, generator, runner):
        categories = generator.generate(make_day(WorkoutType.REST), runner)
        assert ids(categories) == ["light-easy", "active-recovery", "cross-training", "short-sweet"]

    def test_rest_day_with_equipment(self, generator, cyclete_owner):
        categories = generator.generate(make_day(WorkoutType.REST_OR_XT), cyclete_owner)
        assert ids(categories) == [
            "light-easy",
            "active-recovery",
            "equipment-easy",
            "cross-training",
            "short-sweet",
        ]

        bike = categories[2]
        assert bike.title == "Easy Cyclete"
        assert [o.workout.name for o in bike.options] == ["Easy Cyclete Spin", "Recovery Cyclete Ride"]
        assert all(o.workout_type == WorkoutType.BIKE for o in bike.options)

        cross = categories[3]
        assert cross.options[0].workout.modality == Modality.ELLIPTICAL
        assert cross.options[0].workout_type == WorkoutType.REST_OR_XT
        assert cross.options[-1].workout.name == "Strength Training (Light)"

    def test_rest_day_add_mode_keeps_rest_options(self, generator, runner):
        categories = generator.generate(make_day(WorkoutType.REST), runner, mode="add")
        assert "active-recovery" in ids(categories)


class TestApplyAlternative:
    @pytest.fixture
    def plan(self):
        with open(FIXTURES / "beginner_10k.json") as f:
            profile = UserProfile(**json.load(f))
        return TrainingPlanGenerator(rng=random.Random(1)).generate(profile)

    @pytest.fixture
    def wednesday(self, plan):
        return plan.get_week(1).entry_for(Weekday.WEDNESDAY)

    def _option(self, categories, category_id, name):
        category = next(c for c in categories if c.id == category_id)
        option = next(o for o in category.options if o.workout.name == name)
        return category, option

    def test_replace(self, generator, plan, wednesday):
        profile = UserProfile(race_distance="10K", goal_time="60:00", runs_per_week=3)
        category, option = self._option(
            generator.generate(wednesday, profile), "easier", "Easy Recovery Run"
        )

        updated = apply_alternative(plan, 1, Weekday.WEDNESDAY, option, category.title)

        assert updated.type == WorkoutType.EASY
        assert updated.workout.name == "Easy Recovery Run"
        assert updated.replacement_reason == "Make It Easier"
        assert updated.focus == "Aerobic Base"
        assert updated.distance == wednesday.distance
        assert plan.get_week(1).entry_for(Weekday.WEDNESDAY) == updated

    def test_replace_with_rest_zeroes_distance(self, generator, plan, wednesday):
        profile = UserProfile(race_distance="10K", goal_time="60:00", runs_per_week=3)
        category, option = self._option(generator.generate(wednesday, profile), "easier", "Yoga Flow")

        updated = apply_alternative(plan, 1, Weekday.WEDNESDAY, option, category.title)
        assert updated.type == WorkoutType.REST_OR_XT
        assert updated.distance == 0

    def test_add(self, generator, plan, wednesday):
        profile = UserProfile(race_distance="10K", goal_time="60:00", runs_per_week=3)
        original_type = wednesday.type
        category, option = self._option(
            generator.generate(wednesday, profile, mode="add"), "easier", "Walk-Run Intervals"
        )

        entry = apply_alternative(plan, 1, Weekday.WEDNESDAY, option, category.title, mode="add")
        assert entry.type == original_type
        assert [w.name for w in entry.added_sessions] == ["Walk-Run Intervals"]

    def test_unknown_week(self, generator, plan, wednesday, runner):
        option = generator.generate(wednesday, runner)[0].options[0]
        with pytest.raises(KeyError):
            apply_alternative(plan, 99, Weekday.WEDNESDAY, option, "Keep Running - Same Intensity")

    def test_invalid_mode(self, generator, plan, wednesday, runner):
        option = generator.generate(wednesday, runner)[0].options[0]
        with pytest.raises(ValueError):
            apply_alternative(plan, 1, Weekday.WEDNESDAY, option, "x", mode="swap")


@pytest.mark.parametrize(
    "name,miles",
    [
        ("8-Mile Progressive Run", 8.0),
        ("14 miles easy", 14.0),
        ("6.5 mi recovery", 6.5),
        ("Classic Tempo Run", None),
    ],
)
def test_distance_from_name(name, miles):
    assert distance_from_name(name) == miles
