"""
Alternative workouts for a scheduled day.

Given a plan day and the athlete's profile, builds an ordered list of titled
categories (same intensity, easier, harder, stand-up bike, situational,
weather, brick, cross-training) the athlete can swap in. Rest days get their
own set. Each category builder runs in isolation: a library failure drops or
replaces only that category.
"""

import json
import logging
import random
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from runeq.catalog import get_by_category, get_random
from runeq.compiler import PrescriptionOptions, compile_template
from runeq.conversions import (
    bike_miles_for_runeq_miles,
    bike_minutes_for_run_minutes,
    run_miles_from_bike_miles,
    time_factor,
)
from runeq.equivalency import equivalent_workouts, stimulus_for
from runeq.errors import MissingEquipmentData, PrescriptionError
from runeq.paces import PaceCalculator, round_half_up
from runeq.plan_schemas import (
    AlternativeCategory,
    AlternativeOption,
    DayEntry,
    PrescribedWorkout,
    TrainingPlan,
)
from runeq.planner import focus_for
from runeq.schemas import (
    Modality,
    PaceProfile,
    StimulusCategory,
    UserProfile,
    Weekday,
    WorkoutType,
    duration_minutes,
)

logger = logging.getLogger(__name__)

ALTERNATIVES_PATH = Path(__file__).parent / "data" / "alternatives.json"

MODES = ("replace", "add")

SAME_INTENSITY_LIMIT = 6
HARDER_LIMIT = 4
EQUIPMENT_LIMIT = 6

SAME_INTENSITY_CATEGORIES: Dict[WorkoutType, List[str]] = {
    WorkoutType.TEMPO: ["traditional_tempo", "alternating_tempo", "progressive_tempo"],
    WorkoutType.INTERVALS: ["short_speed", "vo2_max", "long_intervals"],
    WorkoutType.HILLS: ["short_power", "long_strength", "hill_circuits"],
    WorkoutType.LONG_RUN: ["traditional_easy", "progressive_runs", "mixed_pace_long"],
    WorkoutType.BRICK: ["aerobic_brick", "tempo_brick", "interval_brick", "recovery_brick"],
}

# Library holding each day type's running workouts
LIBRARY_BY_TYPE: Dict[WorkoutType, Modality] = {
    WorkoutType.TEMPO: Modality.TEMPO,
    WorkoutType.INTERVALS: Modality.INTERVALS,
    WorkoutType.HILLS: Modality.HILLS,
    WorkoutType.LONG_RUN: Modality.LONG_RUN,
    WorkoutType.BRICK: Modality.BRICK,
}

# Brick categories offered by session length, shortest first
BRICK_SHORT = ["recovery_brick"]
BRICK_MEDIUM = ["recovery_brick", "aerobic_brick"]
BRICK_ALL = ["recovery_brick", "aerobic_brick", "tempo_brick", "interval_brick"]

DEFAULT_LONG_RUN_MILES = 8
DEFAULT_CONTEXT_LONG_MILES = 10
DEFAULT_BIKE_MILES = 12

_NAME_MILES = re.compile(r"(\d+(?:\.\d+)?)\s*-?\s*(?:miles?|mi)\b", re.IGNORECASE)

# Name keywords that identify a workout's kind when its type does not
_CONTEXT_KEYWORDS = [
    ("intervals", ("interval", "speed", "track")),
    ("tempo", ("tempo", "threshold")),
    ("long_run", ("long", "endurance")),
    ("hills", ("hill", "incline")),
    ("easy", ("easy", "recovery")),
]


@lru_cache(maxsize=None)
def load_alternative_texts(path: Path = ALTERNATIVES_PATH) -> Dict[str, Any]:
    """Static option texts (easier, situational, weather, rest-day sets)."""
    with open(path) as f:
        return json.load(f)


def distance_from_name(name: str) -> Optional[float]:
    """Miles mentioned in a workout name ("8-Mile Progressive Run" -> 8.0)."""
    match = _NAME_MILES.search(name or "")
    return float(match.group(1)) if match else None


def generic_option(
    item: Dict[str, Any],
    default_type: WorkoutType,
    equipment: Optional[str] = None,
    **fmt: str,
) -> AlternativeOption:
    """
    Option built from a static text entry.

    Args:
        item: Entry with name, description, duration, intensity, benefits,
            reason and an optional workout_type
        default_type: Day type when the entry does not name one
        equipment: Equipment the option needs, if any
        fmt: Values substituted into the name ("{bike}")
    """
    name = item["name"].format(**fmt) if fmt else item["name"]
    workout = PrescribedWorkout(
        name=name,
        category="generic",
        description=item.get("description", ""),
        duration=item.get("duration", ""),
        intensity=item.get("intensity", ""),
        benefits=item.get("benefits", ""),
        equipment=equipment,
    )
    return AlternativeOption(
        workout=workout,
        workout_type=WorkoutType(item.get("workout_type", default_type)),
        reason=item.get("reason"),
        equipment_specific=equipment is not None,
    )


class AlternativeGenerator:
    """
    Builds alternative workout categories for a plan day.

    Categories are produced in a fixed order; a category whose library
    lookup fails is skipped or replaced with generic options, so the result
    is never empty.
    """

    def __init__(
        self,
        calculator: Optional[PaceCalculator] = None,
        rng: Optional[random.Random] = None,
    ):
        self.calculator = calculator or PaceCalculator()
        self.rng = rng
        self.texts = load_alternative_texts()

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    def generate(
        self,
        day: DayEntry,
        profile: UserProfile,
        weather_extreme: bool = False,
        mode: str = "replace",
        paces: Optional[PaceProfile] = None,
    ) -> List[AlternativeCategory]:
        """
        Alternatives for one scheduled day.

        Args:
            day: The scheduled day to replace or add to
            profile: Athlete profile (paces, equipment, preferences)
            weather_extreme: Include weather-safe options
            mode: "replace" to swap the day's workout, "add" for a second session
            paces: Paces to prescribe with (defaults to the profile's goal paces)

        Returns:
            Ordered categories, at least one

        Raises:
            ValueError: If mode is not "replace" or "add"
        """
        if mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {mode!r}")

        if paces is None:
            paces = self._goal_paces(profile)
        options = PrescriptionOptions(
            paces=paces,
            distance_miles=day.distance or None,
            cross_training_preference=profile.cross_training_preference,
            standup_bike_type=profile.standup_bike_type,
            has_garmin=profile.has_garmin,
            experience_level=profile.experience_level,
        )

        if day.type.is_rest:
            builders = self._rest_day_builders(day, profile, options)
        else:
            builders = self._training_day_builders(day, profile, options, weather_extreme)

        categories = []
        for build in builders:
            category = build()
            if category is None:
                continue
            if mode == "add" and not day.type.is_rest:
                kept = [o for o in category.options if not o.workout_type.is_rest]
                if not kept:
                    continue
                category = category.model_copy(update={"options": kept})
            categories.append(category)

        if not categories:
            categories.append(self._universal_category(day))

        logger.debug(
            "%d alternative categories for %s %s",
            len(categories),
            day.day.value,
            day.type.value,
        )
        return categories

    def _goal_paces(self, profile: UserProfile) -> Optional[PaceProfile]:
        try:
            return self.calculator.calculate_from_goal(profile.race_distance, profile.goal_time)
        except PrescriptionError as e:
            logger.warning("Alternatives without paces: %s", e)
            return None

    # ------------------------------------------------------------------
    # Category assembly
    # ------------------------------------------------------------------

    def _category(
        self,
        category_id: str,
        title: str,
        subtitle: str,
        build: Callable[[], List[AlternativeOption]],
        fallback: Optional[Callable[[], List[AlternativeOption]]] = None,
    ) -> Callable[[], Optional[AlternativeCategory]]:
        """
        Wrap an option builder so its failure affects only its own category.

        Missing equipment skips the category silently; any other library
        error logs a warning and uses ``fallback`` (or skips).
        """

        def run() -> Optional[AlternativeCategory]:
            try:
                options = build()
            except MissingEquipmentData as e:
                logger.debug("Skipping %s alternatives: %s", category_id, e)
                return None
            except (PrescriptionError, LookupError, ValueError) as e:
                logger.warning("Alternative category %s failed: %s", category_id, e)
                if fallback is None:
                    return None
                options = fallback()
            if not options:
                return None
            return AlternativeCategory(id=category_id, title=title, subtitle=subtitle, options=options)

        return run

    def _training_day_builders(
        self,
        day: DayEntry,
        profile: UserProfile,
        options: PrescriptionOptions,
        weather_extreme: bool,
    ) -> List[Callable[[], Optional[AlternativeCategory]]]:
        label = day.type.value.replace("_", " ")
        builders = [
            self._category(
                "same-intensity",
                "Keep Running - Same Intensity",
                f"Alternative {label} workouts",
                lambda: self._same_intensity(day, options),
                fallback=lambda: self._static("conversational", day.type),
            ),
            self._category(
                "easier",
                "Make It Easier",
                "Lower intensity alternatives",
                lambda: self._static("easier", day.type),
            ),
            self._category(
                "harder",
                "Make It Harder",
                "Higher intensity challenges",
                lambda: self._harder(day, options),
                fallback=lambda: self._static("harder", day.type),
            ),
        ]

        bike = profile.standup_bike_type
        if bike is not None:
            if day.type == WorkoutType.BIKE:
                builders.append(
                    self._category(
                        "run-instead",
                        "Switch to Running",
                        "Run instead of bike",
                        lambda: self._run_instead(day),
                    )
                )
            else:
                builders.append(
                    self._category(
                        "equipment",
                        f"Switch to {bike.display_name}",
                        "Equipment-specific alternatives",
                        lambda: self._equipment(day, options),
                    )
                )

        builders.append(
            self._category(
                "contextual",
                "Quick Adaptations",
                "Situational alternatives for real life",
                lambda: self._contextual(day),
            )
        )

        if weather_extreme:
            builders.append(
                self._category(
                    "weather",
                    "Weather Alternatives",
                    "Safe options for extreme conditions",
                    lambda: self._static("weather", day.type),
                )
            )

        if bike is not None:
            builders.append(
                self._category(
                    "brick",
                    "Brick Workouts",
                    "Run + bike combinations",
                    lambda: self._bricks(day, options),
                )
            )

        stimulus = stimulus_for(day.type)
        for modality in profile.equipment.owned_modalities():
            builders.append(
                self._category(
                    f"cross-training-{modality.value}",
                    f"Cross-Training: {modality.display_name}",
                    f"Same {stimulus.value} stimulus without running impact",
                    self._cross_training_builder(day, profile, options, modality, stimulus),
                )
            )
        return builders

    def _rest_day_builders(
        self,
        day: DayEntry,
        profile: UserProfile,
        options: PrescriptionOptions,
    ) -> List[Callable[[], Optional[AlternativeCategory]]]:
        builders = [
            self._category(
                "light-easy",
                "Light & Easy",
                "Gentle movement that won't interfere with recovery",
                lambda: self._static("rest_light", day.type),
            ),
            self._category(
                "active-recovery",
                "Active Recovery",
                "Movement that actually helps recovery",
                lambda: self._static("rest_active", day.type),
            ),
        ]

        bike = profile.standup_bike_type
        if bike is not None:
            builders.append(
                self._category(
                    "equipment-easy",
                    f"Easy {bike.display_name}",
                    "Low-impact equipment workout",
                    lambda: [
                        generic_option(item, WorkoutType.BIKE, equipment=bike.value, bike=bike.display_name)
                        for item in self.texts["rest_bike"]
                    ],
                )
            )

        builders.append(
            self._category(
                "cross-training",
                "Cross-Training",
                "Non-running activities for variety",
                lambda: self._rest_cross_training(day, profile, options),
                fallback=lambda: self._static("rest_strength", day.type),
            )
        )
        builders.append(
            self._category(
                "short-sweet",
                "Short & Sweet",
                "15-30 minutes max - just enough to move",
                lambda: self._static("rest_short", day.type),
            )
        )
        return builders

    def _universal_category(self, day: DayEntry) -> AlternativeCategory:
        return AlternativeCategory(
            id="contextual",
            title="Quick Adaptations",
            subtitle="Situational alternatives for real life",
            options=self._static_contextual("universal", day.type),
        )

    # ------------------------------------------------------------------
    # Option builders
    # ------------------------------------------------------------------

    def _static(self, key: str, default_type: WorkoutType) -> List[AlternativeOption]:
        return [generic_option(item, default_type) for item in self.texts[key]]

    def _static_contextual(self, key: str, default_type: WorkoutType) -> List[AlternativeOption]:
        return [generic_option(item, default_type) for item in self.texts["contextual"][key]]

    def _compiled(
        self,
        modality: Modality,
        category: str,
        options: PrescriptionOptions,
        workout_type: WorkoutType,
        exclude: str = "",
    ) -> Optional[AlternativeOption]:
        template = get_random(modality, category, self.rng)
        if exclude and template.name.lower() in exclude.lower():
            return None
        return AlternativeOption(
            workout=compile_template(modality, template, options),
            workout_type=workout_type,
            equipment_specific=modality in (Modality.STANDUP_BIKE, Modality.BRICK),
        )

    def _same_intensity(self, day: DayEntry, options: PrescriptionOptions) -> List[AlternativeOption]:
        categories = SAME_INTENSITY_CATEGORIES.get(day.type)
        if not categories:
            return self._static("conversational", day.type)

        if day.type == WorkoutType.LONG_RUN:
            miles = day.distance or distance_from_name(day.workout.name) or DEFAULT_LONG_RUN_MILES
            options = options.model_copy(update={"distance_miles": miles})

        modality = LIBRARY_BY_TYPE[day.type]
        found = []
        for category in categories:
            option = self._compiled(modality, category, options, day.type, exclude=day.workout.name)
            if option is not None:
                found.append(option)
        return found[:SAME_INTENSITY_LIMIT]

    def _harder(self, day: DayEntry, options: PrescriptionOptions) -> List[AlternativeOption]:
        harder = []
        if day.type in (WorkoutType.EASY, WorkoutType.TEMPO):
            harder.append(self._compiled(Modality.INTERVALS, "short_speed", options, WorkoutType.INTERVALS))
        if day.type != WorkoutType.HILLS:
            harder.append(self._compiled(Modality.HILLS, "short_power", options, WorkoutType.HILLS))
        harder.extend(self._static("harder", day.type))
        return [o for o in harder if o is not None][:HARDER_LIMIT]

    def _equipment(self, day: DayEntry, options: PrescriptionOptions) -> List[AlternativeOption]:
        """Stand-up bike rides matched to the day's intensity."""
        if options.standup_bike_type is None:
            raise MissingEquipmentData(Modality.STANDUP_BIKE.value)

        def first(category: str, count: int):
            return get_by_category(Modality.STANDUP_BIKE, category)[:count]

        if day.type in (WorkoutType.TEMPO, WorkoutType.INTERVALS):
            templates = first("tempo_bike", 3) + first("interval_bike", 2)
        elif day.type == WorkoutType.HILLS:
            templates = first("power_resistance", 3)
        elif day.type == WorkoutType.LONG_RUN:
            templates = first("long_endurance_rides", 3)
        else:
            templates = first("long_endurance_rides", 1) + get_by_category(Modality.STANDUP_BIKE, "tempo_bike")[-1:]

        return [
            AlternativeOption(
                workout=compile_template(Modality.STANDUP_BIKE, template, options),
                workout_type=WorkoutType.BIKE,
                equipment_specific=True,
            )
            for template in templates[:EQUIPMENT_LIMIT]
        ]

    def _run_instead(self, day: DayEntry) -> List[AlternativeOption]:
        """Running options for a bike day, at the 3:1 bike-to-run distance ratio."""
        runeq = day.workout.runeq_miles or day.distance
        if runeq:
            bike_miles = bike_miles_for_runeq_miles(runeq)
        else:
            bike_miles = distance_from_name(day.workout.name) or DEFAULT_BIKE_MILES
        miles = max(1, round_half_up(run_miles_from_bike_miles(bike_miles)))
        tempo_miles = max(3, miles - 2)
        progressive_miles = max(2, miles - 1)

        items = [
            {
                "name": f"{miles}-Mile Easy Run",
                "description": "Equivalent running distance for today's bike workout - same aerobic benefit",
                "duration": f"{miles * 8}-{miles * 10} minutes",
                "intensity": "easy",
                "workout_type": "easy",
            },
            {
                "name": f"{tempo_miles}-Mile Tempo Run",
                "description": "Shorter but higher intensity - builds lactate threshold",
                "duration": f"{tempo_miles * 7}-{tempo_miles * 8} minutes",
                "intensity": "moderate-hard",
                "workout_type": "tempo",
            },
            {
                "name": "Fartlek Run",
                "description": "Playful speed play - develops speed and mental toughness",
                "duration": "30-40 minutes",
                "intensity": "variable",
                "workout_type": "intervals",
            },
            {
                "name": f"{progressive_miles} Miles Progressive",
                "description": "Start easy, build to moderate-hard finish",
                "duration": f"{progressive_miles * 7}-{progressive_miles * 9} minutes",
                "intensity": "easy to moderate-hard",
                "workout_type": "easy",
            },
        ]
        options = [generic_option(item, WorkoutType.EASY) for item in items]
        for option, run_miles in zip(options, (miles, tempo_miles, None, progressive_miles)):
            if run_miles is not None:
                option.workout.distance_miles = float(run_miles)
        return options

    def _context_key(self, day: DayEntry) -> Optional[str]:
        if day.type.value in self.texts["contextual"] or day.type == WorkoutType.LONG_RUN:
            return day.type.value
        name = day.workout.name.lower()
        for key, words in _CONTEXT_KEYWORDS:
            if any(word in name for word in words):
                return key
        return None

    def _contextual(self, day: DayEntry) -> List[AlternativeOption]:
        key = self._context_key(day)
        if key == "long_run":
            return self._long_run_contextual(day)
        if key is None:
            return self._static_contextual("universal", day.type)

        options = self._static_contextual(key, day.type)
        if key == "easy" and day.workout.duration:
            # Indoor run and walk keep the scheduled duration
            for option in options[:2]:
                option.workout.duration = day.workout.duration
        return options

    def _long_run_contextual(self, day: DayEntry) -> List[AlternativeOption]:
        miles = round_half_up(
            day.distance or distance_from_name(day.workout.name) or DEFAULT_CONTEXT_LONG_MILES
        )
        half = round_half_up(miles / 2)
        items = [
            {
                "name": f"{miles} Miles on Treadmill",
                "description": "Complete long run indoors with A/C and entertainment - same endurance benefit",
                "duration": f"{round_half_up(miles * 8.5)}-{miles * 10} minutes",
                "reason": "too hot / weather",
            },
            {
                "name": "Split Long Run",
                "description": f"{half} miles morning + {half} miles evening",
                "duration": "Split sessions",
                "reason": "too hot / time constraint",
            },
            {
                "name": f"{round_half_up(miles * 0.75)} Mile Moderate",
                "description": (
                    f"Shorter distance but at marathon pace for last {round_half_up(miles * 0.25)} miles"
                ),
                "duration": f"{round_half_up(miles * 6.5)}-{miles * 8} minutes",
                "reason": "time constraint",
            },
            {
                "name": "Easy Long Walk/Run",
                "description": f"{miles} miles with walk breaks every 2 miles - active recovery style",
                "duration": f"{miles * 10}-{miles * 12} minutes",
                "reason": "too tired",
            },
        ]
        return [generic_option(item, day.type) for item in items]

    def _brick_categories(self, day: DayEntry) -> List[str]:
        """Brick categories suited to the length of the scheduled session."""
        miles = day.distance or distance_from_name(day.workout.name) or 0
        minutes = day.workout.estimated_minutes or duration_minutes(day.workout.duration)
        if miles < 5 or (minutes is not None and minutes < 30):
            return BRICK_SHORT
        if miles < 10 or (minutes is not None and minutes < 60):
            return BRICK_MEDIUM
        return BRICK_ALL

    def _bricks(self, day: DayEntry, options: PrescriptionOptions) -> List[AlternativeOption]:
        if options.standup_bike_type is None:
            raise MissingEquipmentData(Modality.STANDUP_BIKE.value)
        bricks = []
        for category in self._brick_categories(day):
            option = self._compiled(Modality.BRICK, category, options, WorkoutType.BRICK)
            if option is not None:
                bricks.append(option)
        return bricks

    def _cross_training_builder(
        self,
        day: DayEntry,
        profile: UserProfile,
        options: PrescriptionOptions,
        modality: Modality,
        stimulus: StimulusCategory,
    ) -> Callable[[], List[AlternativeOption]]:
        def build() -> List[AlternativeOption]:
            workouts = equivalent_workouts(
                stimulus, modality, limit=3, options=options, equipment=profile.equipment
            )
            run_minutes = day.workout.estimated_minutes or duration_minutes(day.workout.duration)
            if run_minutes:
                workouts = [self._sized(w, run_minutes, stimulus) for w in workouts]
            return [
                AlternativeOption(workout=w, workout_type=day.type, equipment_specific=True)
                for w in workouts
            ]

        return build

    @staticmethod
    def _sized(
        workout: PrescribedWorkout, run_minutes: float, stimulus: StimulusCategory
    ) -> PrescribedWorkout:
        """Cross-training time matching the scheduled run at the stimulus's conversion factor."""
        minutes = bike_minutes_for_run_minutes(run_minutes, stimulus.value)
        details = dict(workout.details)
        details["replaces"] = f"{round_half_up(run_minutes)} minute {stimulus.value} run"
        details["conversion"] = f"{time_factor(stimulus.value):g}x {stimulus.value} running time"
        details["equivalent_time"] = f"{minutes} minutes"
        return workout.model_copy(update={"estimated_minutes": minutes, "details": details})

    def _rest_cross_training(
        self, day: DayEntry, profile: UserProfile, options: PrescriptionOptions
    ) -> List[AlternativeOption]:
        """Recovery sessions on owned equipment, plus light strength work."""
        found = []
        for modality in profile.equipment.owned_modalities():
            for workout in equivalent_workouts(
                StimulusCategory.RECOVERY, modality, limit=1, options=options, equipment=profile.equipment
            ):
                found.append(
                    AlternativeOption(
                        workout=workout,
                        workout_type=WorkoutType.REST_OR_XT,
                        reason="low impact recovery",
                        equipment_specific=True,
                    )
                )
        return found + self._static("rest_strength", day.type)


# ============================================================================
# Applying a choice
# ============================================================================

def apply_alternative(
    plan: TrainingPlan,
    week_number: int,
    day: Weekday,
    option: AlternativeOption,
    category_title: str,
    mode: str = "replace",
) -> DayEntry:
    """
    Apply a chosen alternative to a plan day in place.

    In replace mode the day's workout is swapped, its type and focus follow
    the option, and the category title is kept as the replacement reason.
    Cross-training metadata on the chosen workout (details, equipment, RunEQ
    miles) is carried over for display. In add mode the option becomes an
    extra session on the same day and the original is untouched.

    Args:
        plan: Plan to modify
        week_number: 1-based week
        day: Day to change
        option: Chosen alternative
        category_title: Title of the category the option came from
        mode: "replace" or "add"

    Returns:
        The updated DayEntry

    Raises:
        KeyError: If the plan has no such week
        ValueError: If mode is not "replace" or "add"
    """
    if mode not in MODES:
        raise ValueError(f"mode must be one of {MODES}, got {mode!r}")

    week = plan.get_week(week_number)
    index = next(i for i, entry in enumerate(week.workouts) if entry.day == day)
    entry = week.workouts[index]

    if mode == "add":
        entry.added_sessions.append(option.workout)
        logger.info("Added %r to week %d %s", option.workout.name, week_number, day.value)
        return entry

    workout = option.workout
    distance = workout.runeq_miles or workout.distance_miles
    if distance is None:
        distance = 0.0 if option.workout_type.is_rest else entry.distance
    updated = entry.model_copy(
        update={
            "type": option.workout_type,
            "workout": workout,
            "distance": distance,
            "focus": focus_for(option.workout_type.value),
            "equipment_specific": option.equipment_specific or workout.equipment is not None,
            "replacement_reason": category_title,
        }
    )
    week.workouts[index] = updated
    logger.info(
        "Replaced week %d %s with %r (%s)", week_number, day.value, workout.name, category_title
    )
    return updated
