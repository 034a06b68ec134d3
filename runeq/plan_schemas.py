"""
Data schemas for generated training plans.

This module contains Pydantic models for prescribed workouts, the days and
weeks of a plan, plan metadata, and the alternative sets offered for a day.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from runeq.schemas import (
    ExperienceLevel,
    Modality,
    RaceDistance,
    RunningStatus,
    StandUpBikeType,
    TrackIntervals,
    TrainingPaces,
    TrainingPhase,
    Weekday,
    WorkoutType,
)


class PrescribedWorkout(BaseModel):
    """
    A template resolved for one athlete and week.

    Ranges are resolved to single values and the athlete's paces are
    injected into the name and structure.
    """

    name: str = Field(..., description="Pace-annotated workout name")
    modality: Optional[Modality] = Field(default=None, description="Library the workout came from")
    category: Optional[str] = Field(default=None, description="Catalog category key")
    structure: str = Field(default="", description="Concrete session structure")
    description: str = Field(default="")
    duration: str = Field(default="")
    intensity: str = Field(default="")
    benefits: str = Field(default="")
    source: str = Field(default="")
    paces: Optional[TrainingPaces] = None
    safety_notes: List[str] = Field(default_factory=list)
    alternatives: Dict[str, Any] = Field(
        default_factory=dict, description="Situational substitutions (treadmill, bad weather, ...)"
    )
    distance_miles: Optional[float] = Field(default=None, ge=0)
    estimated_minutes: Optional[int] = Field(default=None, ge=0)
    runeq_miles: Optional[float] = Field(
        default=None, ge=0, description="Prescribed RunEQ miles for stand-up bike rides"
    )
    runeq_recommendation: Optional[str] = None
    equipment: Optional[str] = None
    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Library-specific extras (equipment notes, sets, terrain, segments)",
    )


class DayEntry(BaseModel):
    """One scheduled day of a plan week."""

    day: Weekday
    type: WorkoutType
    workout: PrescribedWorkout
    distance: float = Field(default=0.0, ge=0, description="Planned miles (RunEQ miles for bike days)")
    focus: str = Field(default="")
    equipment_specific: bool = Field(default=False)
    replacement_reason: Optional[str] = Field(
        default=None, description="Title of the alternative category this day was swapped from"
    )
    added_sessions: List[PrescribedWorkout] = Field(
        default_factory=list, description="Extra sessions added alongside the scheduled workout"
    )


class PlanWeek(BaseModel):
    """Single week of a plan."""

    week_number: int = Field(..., ge=1)
    phase: TrainingPhase
    total_mileage: int = Field(..., ge=0)
    is_rest_week: bool = Field(default=False, description="Step-back week")
    workouts: List[DayEntry] = Field(..., description="Exactly one entry per weekday")
    week_focus: str = Field(default="")
    notes: List[str] = Field(default_factory=list)

    @field_validator("workouts")
    @classmethod
    def validate_days(cls, v: List[DayEntry]) -> List[DayEntry]:
        """Every weekday appears exactly once."""
        days = [entry.day for entry in v]
        if len(days) != 7 or len(set(days)) != 7:
            raise ValueError("A plan week must contain exactly one entry for each weekday")
        return v

    def entry_for(self, day: Weekday) -> DayEntry:
        for entry in self.workouts:
            if entry.day == day:
                return entry
        raise KeyError(day)

    def hard_days(self) -> List[Weekday]:
        return [e.day for e in self.workouts if e.type.is_hard]


class PhaseBlock(BaseModel):
    """Contiguous run of weeks in one phase."""

    phase: TrainingPhase
    weeks: int = Field(..., ge=1)
    start_week: int = Field(..., ge=1)
    end_week: int = Field(..., ge=1)


class PlanOverview(BaseModel):
    """Headline facts about a plan."""

    race_distance: RaceDistance
    goal_time: str
    total_weeks: int = Field(..., ge=1)
    runs_per_week: int
    experience_level: ExperienceLevel
    peak_weekly_mileage: int
    cross_training_preference: int = Field(default=0, ge=0, le=100)
    standup_bike_type: Optional[StandUpBikeType] = None
    running_status: RunningStatus = RunningStatus.ACTIVE
    phases: List[PhaseBlock] = Field(default_factory=list)


class PlanSummary(BaseModel):
    """Aggregate statistics over all weeks."""

    total_workouts: int
    total_miles: int
    workout_breakdown: Dict[str, int]
    average_weekly_miles: int
    peak_week_miles: int
    variety_score: float = Field(
        ..., ge=0.0, le=1.0, description="Distinct workout names / scheduled workouts"
    )


class PlanDecision(BaseModel):
    """
    Documents a specific decision made during plan generation.

    Provides transparency into why certain plan choices were made.
    """

    decision_point: str = Field(..., description="What decision was made")
    input_factors: List[str] = Field(
        ..., description="Factors that influenced the decision"
    )
    reasoning: str = Field(..., description="Why this decision was made")
    outcome: str = Field(..., description="Result of the decision")


class TrainingPlan(BaseModel):
    """
    Complete multi-week training plan.

    Owned by one athlete profile. Only alternative swaps mutate it after
    generation.
    """

    athlete_id: str
    plan_overview: PlanOverview
    training_paces: TrainingPaces = Field(..., description="Goal paces")
    track_intervals: TrackIntervals
    current_fitness_paces: Optional[TrainingPaces] = Field(
        default=None, description="Estimated current paces when progression is used"
    )
    weeks: List[PlanWeek] = Field(..., min_length=1)
    current_week: int = Field(default=1, ge=1)
    plan_summary: Optional[PlanSummary] = None
    plan_decisions: List[PlanDecision] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)

    def get_week(self, week_number: int) -> PlanWeek:
        """
        Look up a week by number.

        Raises:
            KeyError: If the plan has no such week
        """
        for week in self.weeks:
            if week.week_number == week_number:
                return week
        raise KeyError(f"Week {week_number} not in plan")

    def get_phase_breakdown(self) -> Dict[str, int]:
        """Count weeks per phase."""
        breakdown = {phase.value: 0 for phase in TrainingPhase}
        for week in self.weeks:
            breakdown[week.phase.value] += 1
        return breakdown

    def weekly_mileage(self) -> List[int]:
        return [week.total_mileage for week in self.weeks]


# ============================================================================
# Alternatives
# ============================================================================

class AlternativeOption(BaseModel):
    """One selectable substitute for a scheduled day."""

    workout: PrescribedWorkout
    workout_type: WorkoutType = Field(..., description="Day type after applying this option")
    reason: Optional[str] = Field(default=None, description="Situation this option addresses")
    equipment_specific: bool = Field(default=False)


class AlternativeCategory(BaseModel):
    """A titled group of alternatives shown together."""

    id: str
    title: str
    subtitle: str = ""
    options: List[AlternativeOption] = Field(..., min_length=1)
