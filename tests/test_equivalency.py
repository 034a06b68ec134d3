"""
Tests for cross-modality equivalence.

Covers:
- Fixed conversion ratios
- Workout type -> stimulus mapping
- Stimulus -> library category mapping and fallbacks
- Equivalent workout selection and equipment ownership
"""

import pytest

from runeq.compiler import PrescriptionOptions
from runeq.equivalency import (
    bike_miles_for_runeq_miles,
    bike_minutes_for_run_minutes,
    category_for,
    equivalent_workouts,
    minutes_for_runeq_miles,
    run_miles_from_bike_miles,
    stimulus_for,
)
from runeq.errors import MissingEquipmentData
from runeq.paces import PaceCalculator
from runeq.schemas import (
    CROSS_TRAINING_MODALITIES,
    CrossTrainingEquipment,
    Modality,
    StandUpBikeType,
    StimulusCategory,
    WorkoutType,
)


@pytest.fixture
def all_equipment():
    """An athlete who owns every piece of cross-training equipment."""
    return CrossTrainingEquipment(
        aqua_running=True, elliptical=True, rowing=True, swimming=True, stationary_bike=True
    )


class TestConversions:
    def test_easy_minutes_double(self):
        assert bike_minutes_for_run_minutes(30) == 60

    def test_threshold_minutes(self):
        assert bike_minutes_for_run_minutes(30, "tempo") == 75
        assert bike_minutes_for_run_minutes(20, "Intervals") == 50

    def test_distance_ratios(self):
        assert run_miles_from_bike_miles(20) == 6.7
        assert bike_miles_for_runeq_miles(5) == 15

    def test_minutes_per_runeq_mile(self):
        assert minutes_for_runeq_miles(5) == 45
        assert minutes_for_runeq_miles(6.5) == 59


class TestStimulusMapping:
    @pytest.mark.parametrize(
        "workout_type,stimulus",
        [
            (WorkoutType.TEMPO, StimulusCategory.TEMPO),
            (WorkoutType.INTERVALS, StimulusCategory.INTERVALS),
            (WorkoutType.HILLS, StimulusCategory.HILLS),
            (WorkoutType.LONG_RUN, StimulusCategory.LONG),
            (WorkoutType.EASY, StimulusCategory.EASY),
            (WorkoutType.BIKE, StimulusCategory.EASY),
            (WorkoutType.REST, StimulusCategory.RECOVERY),
            ("rest_or_xt", StimulusCategory.RECOVERY),
        ],
    )
    def test_stimulus_for(self, workout_type, stimulus):
        assert stimulus_for(workout_type) == stimulus

    def test_every_workout_type_has_a_stimulus(self):
        for workout_type in WorkoutType:
            assert isinstance(stimulus_for(workout_type), StimulusCategory)


class TestCategoryMapping:
    def test_bike_overrides(self):
        assert category_for(StimulusCategory.TEMPO, Modality.STANDUP_BIKE) == "tempo_bike"
        assert category_for(StimulusCategory.LONG, Modality.STANDUP_BIKE) == "long_endurance_rides"
        assert category_for(StimulusCategory.RECOVERY, Modality.STANDUP_BIKE) == "recovery_specific"

    def test_rowing_hills_use_power(self):
        assert category_for(StimulusCategory.HILLS, Modality.ROWING) == "power"

    def test_missing_category_falls_back_to_tempo(self):
        """Swimming has no hills category."""
        assert category_for(StimulusCategory.HILLS, Modality.SWIMMING) == "tempo"

    def test_fallback_to_first_category(self):
        """Brick workouts have neither an easy nor a tempo category."""
        assert category_for(StimulusCategory.EASY, Modality.BRICK) == "aerobic_brick"

    @pytest.mark.parametrize("modality", CROSS_TRAINING_MODALITIES + [Modality.STANDUP_BIKE])
    @pytest.mark.parametrize("stimulus", list(StimulusCategory))
    def test_every_pair_maps(self, modality, stimulus):
        assert category_for(stimulus, modality) is not None


class TestEquivalentWorkouts:
    def test_elliptical_tempo(self, all_equipment):
        workouts = equivalent_workouts(
            StimulusCategory.TEMPO, Modality.ELLIPTICAL, limit=2, equipment=all_equipment
        )
        assert [w.name for w in workouts] == ["Sustained Tempo Effort", "Tempo Intervals"]
        assert all(w.modality == Modality.ELLIPTICAL for w in workouts)

    def test_limit_respected(self, all_equipment):
        workouts = equivalent_workouts(
            StimulusCategory.INTERVALS, Modality.ROWING, limit=3, equipment=all_equipment
        )
        assert len(workouts) == 3

    def test_duration_and_intensity_always_filled(self, all_equipment):
        for modality in CROSS_TRAINING_MODALITIES:
            for workout in equivalent_workouts(
                StimulusCategory.EASY, modality, limit=5, equipment=all_equipment
            ):
                assert workout.duration
                assert workout.intensity

    def test_unowned_equipment_raises(self):
        with pytest.raises(MissingEquipmentData) as exc_info:
            equivalent_workouts(StimulusCategory.EASY, Modality.ROWING, equipment=CrossTrainingEquipment())
        assert exc_info.value.equipment == "rowing"

    def test_standup_bike_needs_bike_type(self):
        with pytest.raises(MissingEquipmentData):
            equivalent_workouts(StimulusCategory.TEMPO, Modality.STANDUP_BIKE)

    def test_standup_bike_prescribed_in_runeq_miles(self):
        paces = PaceCalculator().calculate_from_goal("Half", "1:45:00")
        options = PrescriptionOptions(
            paces=paces, distance_miles=6, standup_bike_type=StandUpBikeType.CYCLETE
        )
        workouts = equivalent_workouts(StimulusCategory.TEMPO, Modality.STANDUP_BIKE, options=options)

        assert len(workouts) == 2
        assert workouts[0].name.startswith("6 RunEQ Miles - ")
        assert workouts[0].runeq_miles == 6
