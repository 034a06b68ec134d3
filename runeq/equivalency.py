"""
Cross-modality equivalence.

Maps a scheduled day's training stimulus onto any library (stand-up bike,
pool running, elliptical, rowing, swimming, stationary bike) and selects
equivalent workouts there. Time and distance conversions use only the fixed
ratios in runeq.conversions, re-exported here.
"""

import logging
from typing import Dict, List, Optional, Union

from runeq.catalog import get_by_category, load_catalog
from runeq.compiler import PrescriptionOptions, compile_template
from runeq.conversions import (
    BIKE_TO_RUN_DISTANCE_RATIO,
    EASY_TIME_FACTOR,
    MINUTES_PER_RUNEQ_MILE,
    THRESHOLD_TIME_FACTOR,
    bike_miles_for_runeq_miles,
    bike_minutes_for_run_minutes,
    minutes_for_runeq_miles,
    run_miles_from_bike_miles,
    time_factor,
)
from runeq.errors import MissingEquipmentData
from runeq.plan_schemas import PrescribedWorkout
from runeq.schemas import (
    CROSS_TRAINING_MODALITIES,
    CrossTrainingEquipment,
    Modality,
    StimulusCategory,
    WorkoutType,
)

__all__ = [
    "BIKE_TO_RUN_DISTANCE_RATIO",
    "EASY_TIME_FACTOR",
    "MINUTES_PER_RUNEQ_MILE",
    "THRESHOLD_TIME_FACTOR",
    "STIMULUS_BY_WORKOUT_TYPE",
    "CATEGORY_OVERRIDES",
    "bike_miles_for_runeq_miles",
    "bike_minutes_for_run_minutes",
    "category_for",
    "equivalent_workouts",
    "minutes_for_runeq_miles",
    "run_miles_from_bike_miles",
    "stimulus_for",
    "time_factor",
]

logger = logging.getLogger(__name__)

DEFAULT_DURATION = "30-45 minutes"
DEFAULT_INTENSITY = "moderate"

STIMULUS_BY_WORKOUT_TYPE: Dict[WorkoutType, StimulusCategory] = {
    WorkoutType.TEMPO: StimulusCategory.TEMPO,
    WorkoutType.INTERVALS: StimulusCategory.INTERVALS,
    WorkoutType.HILLS: StimulusCategory.HILLS,
    WorkoutType.LONG_RUN: StimulusCategory.LONG,
    WorkoutType.EASY: StimulusCategory.EASY,
    WorkoutType.BIKE: StimulusCategory.EASY,
    WorkoutType.BRICK: StimulusCategory.EASY,
    WorkoutType.RACE: StimulusCategory.EASY,
    WorkoutType.REST: StimulusCategory.RECOVERY,
    WorkoutType.REST_OR_XT: StimulusCategory.RECOVERY,
}

# Libraries whose category keys differ from the stimulus names
CATEGORY_OVERRIDES: Dict[Modality, Dict[StimulusCategory, str]] = {
    Modality.STANDUP_BIKE: {
        StimulusCategory.TEMPO: "tempo_bike",
        StimulusCategory.INTERVALS: "interval_bike",
        StimulusCategory.HILLS: "power_resistance",
        StimulusCategory.LONG: "long_endurance_rides",
        StimulusCategory.EASY: "aerobic_base",
        StimulusCategory.RECOVERY: "recovery_specific",
    },
    Modality.ROWING: {
        StimulusCategory.HILLS: "power",
    },
}


def stimulus_for(workout_type: Union[WorkoutType, str]) -> StimulusCategory:
    """Training stimulus of a scheduled day type."""
    return STIMULUS_BY_WORKOUT_TYPE[WorkoutType(workout_type)]


def category_for(stimulus: StimulusCategory, modality: Modality) -> Optional[str]:
    """
    Library category that delivers ``stimulus`` on ``modality``.

    Falls back to the tempo category, then easy, then the first non-empty
    category when the library has no direct match.

    Returns:
        Category key, or None for a library with no templates at all
    """
    categories = load_catalog(modality).categories
    preferred = CATEGORY_OVERRIDES.get(modality, {}).get(stimulus, stimulus.value)
    for candidate in (preferred, "tempo", "easy"):
        if categories.get(candidate):
            if candidate != preferred:
                logger.debug(
                    "%s has no %s category; using %s", modality.value, preferred, candidate
                )
            return candidate
    return next((key for key, templates in categories.items() if templates), None)


def _check_ownership(
    modality: Modality,
    equipment: Optional[CrossTrainingEquipment],
    options: PrescriptionOptions,
) -> None:
    if modality == Modality.STANDUP_BIKE and options.standup_bike_type is None:
        raise MissingEquipmentData(modality.value)
    if modality in CROSS_TRAINING_MODALITIES and not (equipment and equipment.owns(modality)):
        raise MissingEquipmentData(modality.value)


def equivalent_workouts(
    stimulus: StimulusCategory,
    modality: Modality,
    limit: int = 2,
    options: Optional[PrescriptionOptions] = None,
    equipment: Optional[CrossTrainingEquipment] = None,
) -> List[PrescribedWorkout]:
    """
    Prescribe workouts on ``modality`` that deliver ``stimulus``.

    Args:
        stimulus: Training effect to preserve
        modality: Target library
        limit: Maximum number of workouts
        options: Athlete paces, week and preferences
        equipment: Cross-training equipment the athlete owns

    Returns:
        Up to ``limit`` prescriptions in catalog order

    Raises:
        MissingEquipmentData: If the athlete does not own the modality's equipment
    """
    options = options or PrescriptionOptions()
    _check_ownership(modality, equipment, options)

    category = category_for(stimulus, modality)
    if category is None:
        return []

    workouts = []
    for template in get_by_category(modality, category)[:limit]:
        filled = template.model_copy(
            update={
                "duration": template.duration or DEFAULT_DURATION,
                "intensity": template.intensity or DEFAULT_INTENSITY,
            }
        )
        workouts.append(compile_template(modality, filled, options))
    return workouts
