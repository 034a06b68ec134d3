"""
Pydantic models for the prescription engine's inputs and static data.

This module defines:
- Enumerations shared across the engine (distances, days, workout types)
- Pace profiles derived from goal race times
- Workout templates and catalogs (static, read-only library data)
- The athlete profile consumed by plan generation and alternatives
"""

import re
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ============================================================================
# Enumerations
# ============================================================================

class RaceDistance(str, Enum):
    """Goal race distances covered by the pace table."""

    TEN_K = "10k"
    HALF_MARATHON = "half_marathon"
    MARATHON = "marathon"

    @property
    def display_name(self) -> str:
        return {
            RaceDistance.TEN_K: "10K",
            RaceDistance.HALF_MARATHON: "Half Marathon",
            RaceDistance.MARATHON: "Marathon",
        }[self]

    @property
    def miles(self) -> float:
        return RACE_MILES[self]

    @classmethod
    def parse(cls, value: Any) -> "RaceDistance":
        """
        Resolve a distance from its value or a common alias.

        Accepts "10K", "10 k", "Half", "Half Marathon", "halfMarathon",
        "Marathon" and the enum values themselves, case-insensitively.

        Raises:
            ValueError: If the distance is not supported
        """
        if isinstance(value, cls):
            return value
        key = re.sub(r"[\s_\-]", "", str(value)).lower()
        aliases = {
            "10k": cls.TEN_K,
            "10km": cls.TEN_K,
            "half": cls.HALF_MARATHON,
            "halfmarathon": cls.HALF_MARATHON,
            "marathon": cls.MARATHON,
            "full": cls.MARATHON,
            "fullmarathon": cls.MARATHON,
        }
        if key not in aliases:
            raise ValueError(
                f"Unsupported race distance: {value!r}. "
                "Choose from 10K, Half Marathon, Marathon."
            )
        return aliases[key]


# Race distances in miles, used for race pace
RACE_MILES: Dict[RaceDistance, float] = {
    RaceDistance.TEN_K: 6.2137,
    RaceDistance.HALF_MARATHON: 13.1094,
    RaceDistance.MARATHON: 26.2188,
}


class Weekday(str, Enum):
    """Days of the week."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def index(self) -> int:
        """Calendar position, Monday = 0."""
        return WEEKDAY_ORDER.index(self)

    @property
    def display_name(self) -> str:
        return self.value.title()


WEEKDAY_ORDER: List[Weekday] = [
    Weekday.MONDAY,
    Weekday.TUESDAY,
    Weekday.WEDNESDAY,
    Weekday.THURSDAY,
    Weekday.FRIDAY,
    Weekday.SATURDAY,
    Weekday.SUNDAY,
]


class TrainingPhase(str, Enum):
    """Training plan phases."""

    BASE = "base"  # Aerobic foundation
    BUILD = "build"  # Threshold and tempo work
    PEAK = "peak"  # Race-specific sharpening
    TAPER = "taper"  # Volume reduction before race


class WorkoutType(str, Enum):
    """Type of a scheduled day."""

    TEMPO = "tempo"
    INTERVALS = "intervals"
    HILLS = "hills"
    LONG_RUN = "long_run"
    EASY = "easy"
    REST = "rest"
    REST_OR_XT = "rest_or_xt"
    BIKE = "bike"
    BRICK = "brick"
    RACE = "race"

    @property
    def is_hard(self) -> bool:
        """Tempo, interval and hill sessions are hard sessions."""
        return self in HARD_WORKOUT_TYPES

    @property
    def is_rest(self) -> bool:
        return self in (WorkoutType.REST, WorkoutType.REST_OR_XT)


HARD_WORKOUT_TYPES = frozenset(
    {WorkoutType.TEMPO, WorkoutType.INTERVALS, WorkoutType.HILLS}
)


class StimulusCategory(str, Enum):
    """Physiological training-effect bucket, independent of modality."""

    EASY = "easy"
    TEMPO = "tempo"
    INTERVALS = "intervals"
    LONG = "long"
    HILLS = "hills"
    RECOVERY = "recovery"


class Modality(str, Enum):
    """Workout library / equipment modality."""

    TEMPO = "tempo"
    INTERVALS = "intervals"
    HILLS = "hills"
    LONG_RUN = "long_run"
    STANDUP_BIKE = "standup_bike"
    AQUA_RUNNING = "aqua_running"
    ELLIPTICAL = "elliptical"
    ROWING = "rowing"
    SWIMMING = "swimming"
    STATIONARY_BIKE = "stationary_bike"
    BRICK = "brick"

    @property
    def is_running(self) -> bool:
        return self in RUNNING_MODALITIES

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


RUNNING_MODALITIES = frozenset(
    {Modality.TEMPO, Modality.INTERVALS, Modality.HILLS, Modality.LONG_RUN}
)

# Equipment-backed modalities other than the stand-up bike
CROSS_TRAINING_MODALITIES: List[Modality] = [
    Modality.AQUA_RUNNING,
    Modality.ELLIPTICAL,
    Modality.ROWING,
    Modality.SWIMMING,
    Modality.STATIONARY_BIKE,
]


class StandUpBikeType(str, Enum):
    """Stand-up bike models with RunEQ support."""

    CYCLETE = "cyclete"
    ELLIPTIGO = "elliptigo"

    @property
    def display_name(self) -> str:
        return "Cyclete" if self == StandUpBikeType.CYCLETE else "ElliptiGO"


class ExperienceLevel(str, Enum):
    """Self-reported running experience."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class RunningStatus(str, Enum):
    """Whether the athlete is currently running."""

    ACTIVE = "active"
    BIKE_ONLY = "bike_only"  # injured or choosing not to run
    TRANSITIONING = "transitioning"  # returning to running


# ============================================================================
# Pace Profiles
# ============================================================================

class PaceZone(BaseModel):
    """Target pace for one training zone, per mile."""

    model_config = ConfigDict(frozen=True)

    pace: str = Field(..., description="Pace per mile, or 'min-max' for ranged zones")
    min: Optional[str] = Field(default=None, description="Faster end of a ranged zone")
    max: Optional[str] = Field(default=None, description="Slower end of a ranged zone")
    description: str = Field(default="")
    heart_rate: Optional[str] = Field(default=None)


class TrainingPaces(BaseModel):
    """Per-zone paces derived from a goal race time."""

    model_config = ConfigDict(frozen=True)

    easy: PaceZone
    marathon: PaceZone
    threshold: PaceZone
    interval: PaceZone
    race: PaceZone


class TrackIntervals(BaseModel):
    """Split times for standard track repeats (e.g. {"400m": "1:52"})."""

    model_config = ConfigDict(frozen=True)

    threshold: Dict[str, str] = Field(default_factory=dict)
    interval: Dict[str, str] = Field(default_factory=dict)


class PaceProfile(BaseModel):
    """
    Complete pace profile for one goal.

    Derived once per (distance, goal time) and never mutated.
    """

    model_config = ConfigDict(frozen=True)

    distance: RaceDistance
    goal_time: str
    paces: TrainingPaces
    track_intervals: TrackIntervals
    interpolated: bool = Field(
        default=False, description="True when the goal fell between table rows"
    )
    interpolated_between: Optional[Tuple[str, str]] = Field(
        default=None, description="Bounding goal times (faster, slower) used for interpolation"
    )
    progression_ratio: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Share of the way from current fitness to goal paces (blended profiles)",
    )


class PaceTableRow(BaseModel):
    """One tabulated goal time with its reference paces."""

    model_config = ConfigDict(frozen=True)

    goal_time: str
    easy: Tuple[str, str]
    marathon: str
    threshold: str
    interval: str
    track_intervals: TrackIntervals


# ============================================================================
# Workout Templates
# ============================================================================

_DURATION = re.compile(
    r"(\d+(?:\.\d+)?)(?:\s*-\s*(\d+(?:\.\d+)?))?\s*(min|minutes|hour|hours)\b"
)


def duration_minutes(text: Optional[str]) -> Optional[float]:
    """Midpoint in minutes of a duration such as "30-45 minutes" or "1-1.5 hours"."""
    match = _DURATION.search(text or "")
    if not match:
        return None
    low = float(match.group(1))
    high = float(match.group(2)) if match.group(2) else low
    midpoint = (low + high) / 2
    if match.group(3).startswith("hour"):
        midpoint *= 60
    return midpoint


class HillRequirement(BaseModel):
    """Terrain needed for a hill workout."""

    model_config = ConfigDict(frozen=True)

    grade: str
    distance: str
    description: str = ""


class WorkoutTemplate(BaseModel):
    """
    Static catalog workout.

    Numeric fields may hold ranges ("4-6 x 3-8 min") that are resolved
    at prescription time.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    category: str = Field(..., description="Catalog category key")
    intensity: str = Field(default="")
    duration: str = Field(default="")
    structure: str = Field(default="")
    description: str = Field(default="")
    benefits: str = Field(default="")
    source: str = Field(default="")
    focus: Optional[str] = None
    equipment: Optional[str] = None

    # Interval templates
    repetitions: Optional[str] = None
    distance: Optional[str] = None
    recovery: Optional[str] = None
    pace: Optional[str] = None

    # Hill templates
    hill_requirement: Optional[HillRequirement] = None
    sets: Dict[str, str] = Field(default_factory=dict)

    # Cross-training effort targets (heart_rate, perceived, ...)
    effort: Dict[str, Any] = Field(default_factory=dict)

    # Everything else: equipment notes, coaching tips, segments, progressions
    details: Dict[str, Any] = Field(default_factory=dict)

    def duration_midpoint(self) -> Optional[float]:
        """
        Midpoint of the template's duration in minutes.

        Returns:
            Minutes, or None when the duration has no parseable minutes
        """
        return duration_minutes(self.duration)


class WorkoutCatalog(BaseModel):
    """One modality's workout library: category -> ordered templates."""

    model_config = ConfigDict(frozen=True)

    modality: Modality
    title: str
    categories: Dict[str, List[WorkoutTemplate]]
    guidelines: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def attach_category_keys(cls, data: Any) -> Any:
        """Stamp each raw template with the category it is filed under."""
        if isinstance(data, dict) and isinstance(data.get("categories"), dict):
            categories = {}
            for key, templates in data["categories"].items():
                categories[key] = [
                    {**t, "category": key} if isinstance(t, dict) else t
                    for t in templates
                ]
            data = {**data, "categories": categories}
        return data


# ============================================================================
# Athlete Profile
# ============================================================================

class CrossTrainingEquipment(BaseModel):
    """Cross-training equipment the athlete can use."""

    aqua_running: bool = Field(default=False, description="Pool with deep water running belt")
    elliptical: bool = Field(default=False)
    rowing: bool = Field(default=False)
    swimming: bool = Field(default=False)
    stationary_bike: bool = Field(default=False)

    def owned_modalities(self) -> List[Modality]:
        """Owned modalities in a stable display order."""
        return [m for m in CROSS_TRAINING_MODALITIES if getattr(self, m.value)]

    def owns(self, modality: Modality) -> bool:
        return modality in self.owned_modalities()


# Default training days when the athlete does not choose them
DEFAULT_AVAILABLE_DAYS: Dict[int, List[Weekday]] = {
    3: [Weekday.MONDAY, Weekday.WEDNESDAY, Weekday.SATURDAY],
    4: [Weekday.MONDAY, Weekday.WEDNESDAY, Weekday.FRIDAY, Weekday.SATURDAY],
    5: [
        Weekday.MONDAY,
        Weekday.WEDNESDAY,
        Weekday.THURSDAY,
        Weekday.FRIDAY,
        Weekday.SATURDAY,
    ],
    6: [d for d in WEEKDAY_ORDER if d != Weekday.THURSDAY],
    7: list(WEEKDAY_ORDER),
}


class UserProfile(BaseModel):
    """
    Athlete goal, schedule and equipment.

    Consumed by TrainingPlanGenerator and AlternativeGenerator.
    """

    athlete_id: str = Field(
        default="athlete",
        pattern=r"^[a-zA-Z0-9_-]+$",
        description="Unique identifier for the athlete",
    )
    race_distance: RaceDistance = Field(..., description="Goal race distance")
    goal_time: str = Field(
        ...,
        pattern=r"^(\d{1,2}:)?\d{1,3}:\d{2}$",
        description="Goal finish time as H:MM:SS or MM:SS",
    )
    experience_level: ExperienceLevel = Field(default=ExperienceLevel.INTERMEDIATE)
    runs_per_week: int = Field(default=4, ge=3, le=7)
    available_days: Optional[List[Weekday]] = Field(
        default=None,
        description="Training days; defaults depend on runs_per_week",
    )
    hard_session_days: List[Weekday] = Field(
        default_factory=list,
        description="Preferred days for tempo/interval/hill sessions",
    )
    long_run_day: Weekday = Field(default=Weekday.SATURDAY)
    preferred_bike_days: List[Weekday] = Field(
        default_factory=list,
        description="Days to ride the stand-up bike instead of running",
    )
    equipment: CrossTrainingEquipment = Field(default_factory=CrossTrainingEquipment)
    standup_bike_type: Optional[StandUpBikeType] = None
    cross_training_preference: int = Field(
        default=0, ge=0, le=100, description="0 = all running, 100 = maximum cross-training"
    )
    running_status: RunningStatus = Field(default=RunningStatus.ACTIVE)
    current_weekly_mileage: Optional[int] = Field(default=None, ge=0, le=200)
    current_long_run_distance: Optional[int] = Field(default=None, ge=0, le=40)
    weeks_available: Optional[int] = Field(default=None, ge=4, le=30)
    race_date: Optional[date] = None
    has_garmin: bool = Field(
        default=True, description="Garmin RunEQ data field available for bike rides"
    )

    @field_validator("race_distance", mode="before")
    @classmethod
    def parse_race_distance(cls, v: Any) -> RaceDistance:
        """Accept common aliases such as 'Half' or '10K'."""
        return RaceDistance.parse(v)

    @field_validator("available_days", "hard_session_days", "preferred_bike_days")
    @classmethod
    def no_duplicate_days(cls, v: Optional[List[Weekday]]) -> Optional[List[Weekday]]:
        """Each day may appear once."""
        if v is not None and len(set(v)) != len(v):
            raise ValueError("Days must not repeat")
        return v

    @model_validator(mode="after")
    def validate_schedule(self) -> "UserProfile":
        """Ensure the chosen days form a consistent schedule."""
        if self.available_days is not None:
            if len(self.available_days) != self.runs_per_week:
                raise ValueError(
                    f"available_days has {len(self.available_days)} days but "
                    f"runs_per_week is {self.runs_per_week}"
                )
            if self.long_run_day not in self.available_days:
                raise ValueError("long_run_day must be one of the available days")
        days = self.training_days
        for label, chosen in (
            ("hard_session_days", self.hard_session_days),
            ("preferred_bike_days", self.preferred_bike_days),
        ):
            outside = [d.value for d in chosen if d not in days]
            if outside:
                raise ValueError(f"{label} must be training days, got {outside}")
        if self.long_run_day in self.hard_session_days:
            raise ValueError("long_run_day cannot also be a hard session day")
        if self.running_status == RunningStatus.BIKE_ONLY and self.standup_bike_type is None:
            raise ValueError("bike_only training requires a standup_bike_type")
        return self

    @property
    def training_days(self) -> List[Weekday]:
        """Available days in calendar order, filling in defaults."""
        if self.available_days is not None:
            days = list(self.available_days)
        else:
            days = list(DEFAULT_AVAILABLE_DAYS[self.runs_per_week])
            if self.long_run_day not in days:
                # Swap the default weekend long day for the chosen one
                days = [d for d in days if d != Weekday.SATURDAY] + [self.long_run_day]
        return sorted(days, key=lambda d: d.index)

    @property
    def owns_standup_bike(self) -> bool:
        return self.standup_bike_type is not None

    @property
    def owns_any_cross_training(self) -> bool:
        return self.owns_standup_bike or bool(self.equipment.owned_modalities())
