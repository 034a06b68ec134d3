"""
Configuration for the prescription engine.

Two layers:
- Settings: environment-driven runtime settings (database, logging, API)
- PlanRules: plan-generation rules with sensible defaults, passed to
  TrainingPlanGenerator so alternate rule sets can be tested in isolation
"""

from functools import lru_cache
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from runeq.schemas import ExperienceLevel, RaceDistance, TrainingPhase


class Settings(BaseSettings):
    """Application settings loaded from RUNEQ_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RUNEQ_",
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Storage
    DATABASE_URL: str = Field(default="sqlite:///runeq_plans.db")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="text")  # "text" or "json"

    # API
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000)
    CORS_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ]
    )

    # Seed for workout selection; unset means a fresh draw every run
    DEFAULT_SEED: Optional[int] = Field(default=None)

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Only text and json formatters exist."""
        if v not in ("text", "json"):
            raise ValueError("LOG_FORMAT must be 'text' or 'json'")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()


# ============================================================================
# PLAN GENERATION RULES
# ============================================================================


class RaceTemplate(BaseModel):
    """Volume targets for one race distance, indexed by runs per week."""

    weeks_recommended: int = Field(..., ge=4, le=30)
    runs_per_week: List[int] = Field(..., description="Allowed runs per week, ascending")
    peak_weekly_mileage: List[int] = Field(
        ..., description="Peak weekly miles, one entry per runs_per_week option"
    )
    long_run_max: List[int] = Field(
        ..., description="Long run cap in miles, one entry per runs_per_week option"
    )
    focus_areas: List[str] = Field(default_factory=list)

    def index_for(self, runs_per_week: int) -> int:
        """
        Position of a runs-per-week option in the template.

        Raises:
            ValueError: If this distance does not support that many runs
        """
        if runs_per_week not in self.runs_per_week:
            raise ValueError(
                f"{runs_per_week} runs per week not supported. "
                f"Choose from: {self.runs_per_week}"
            )
        return self.runs_per_week.index(runs_per_week)


class PhaseSplit(BaseModel):
    """Share of the plan spent in each phase, with per-phase minimums."""

    base_percent: float = Field(..., ge=0.0, le=1.0)
    build_percent: float = Field(..., ge=0.0, le=1.0)
    peak_percent: float = Field(..., ge=0.0, le=1.0)
    taper_percent: float = Field(..., ge=0.0, le=1.0)
    min_base_weeks: int = Field(default=1, ge=1)
    min_build_weeks: int = Field(default=1, ge=1)
    min_peak_weeks: int = Field(default=1, ge=1)
    min_taper_weeks: int = Field(default=1, ge=1)


class ExperienceScaling(BaseModel):
    """Multipliers applied to the template's peak mileage and long run cap."""

    peak_mileage: float = Field(default=1.0, gt=0.0)
    long_run: float = Field(default=1.0, gt=0.0)


def _default_race_templates() -> Dict[RaceDistance, RaceTemplate]:
    return {
        RaceDistance.TEN_K: RaceTemplate(
            weeks_recommended=10,
            runs_per_week=[3, 4, 5, 6],
            peak_weekly_mileage=[20, 30, 40, 50],
            long_run_max=[10, 12, 15, 18],
            focus_areas=["vo2max", "lactate_threshold", "aerobic_power"],
        ),
        RaceDistance.HALF_MARATHON: RaceTemplate(
            weeks_recommended=12,
            runs_per_week=[4, 5, 6, 7],
            peak_weekly_mileage=[25, 35, 45, 55],
            long_run_max=[13, 15, 18, 20],
            focus_areas=["lactate_threshold", "aerobic_power", "endurance"],
        ),
        RaceDistance.MARATHON: RaceTemplate(
            weeks_recommended=16,
            runs_per_week=[4, 5, 6, 7],
            peak_weekly_mileage=[35, 45, 60, 70],
            long_run_max=[20, 22, 24, 26],
            focus_areas=["endurance", "lactate_threshold", "aerobic_power"],
        ),
    }


def _default_experience_scaling() -> Dict[ExperienceLevel, ExperienceScaling]:
    return {
        ExperienceLevel.BEGINNER: ExperienceScaling(peak_mileage=0.8, long_run=0.9),
        ExperienceLevel.INTERMEDIATE: ExperienceScaling(),
        ExperienceLevel.ADVANCED: ExperienceScaling(peak_mileage=1.15, long_run=1.1),
    }


class PlanRules(BaseModel):
    """
    Rules that drive TrainingPlanGenerator.

    Defaults reproduce the standard RunEQ periodization: base/build/peak/taper,
    a step-back week every fourth week, and a two-to-three week taper.
    """

    race_templates: Dict[RaceDistance, RaceTemplate] = Field(
        default_factory=_default_race_templates
    )
    experience_scaling: Dict[ExperienceLevel, ExperienceScaling] = Field(
        default_factory=_default_experience_scaling
    )

    # Phase distribution by plan length
    short_plan_phases: PhaseSplit = Field(
        default_factory=lambda: PhaseSplit(
            base_percent=0.35, build_percent=0.35, peak_percent=0.15, taper_percent=0.15
        ),
        description="Plans of 8 weeks or fewer",
    )
    medium_plan_phases: PhaseSplit = Field(
        default_factory=lambda: PhaseSplit(
            base_percent=0.4, build_percent=0.35, peak_percent=0.15, taper_percent=0.1
        ),
        description="Plans of 9-12 weeks",
    )
    long_plan_phases: PhaseSplit = Field(
        default_factory=lambda: PhaseSplit(
            base_percent=0.4, build_percent=0.35, peak_percent=0.15, taper_percent=0.1
        ),
        description="Plans longer than 12 weeks",
    )
    short_plan_max_weeks: int = Field(default=8)
    medium_plan_max_weeks: int = Field(default=12)
    min_plan_weeks: int = Field(default=4)
    max_plan_weeks: int = Field(default=30)

    # Step-back weeks
    step_back_interval: int = Field(default=4, ge=3, le=4)
    step_back_multiplier: float = Field(default=0.75, gt=0.0, lt=1.0)
    skip_step_back_before_taper: bool = Field(default=True)

    # Taper fractions of peak mileage, applied to the final weeks in order
    taper_fractions: List[float] = Field(default=[0.85, 0.8, 0.7, 0.6])

    # Starting volume when current mileage is unknown
    default_start_fraction: float = Field(default=0.5, gt=0.0, le=1.0)

    # Long run share of the week
    long_run_fraction_low_frequency: float = Field(default=0.35)
    long_run_fraction_high_frequency: float = Field(default=0.30)
    low_frequency_max_runs: int = Field(default=4)

    # Distance multipliers relative to an average non-long run
    distance_multipliers: Dict[str, float] = Field(
        default={
            "tempo": 1.4,
            "intervals": 1.25,
            "hills": 1.2,
            "bike": 0.8,
            "easy": 1.0,
        }
    )

    # Hard session rotation per phase
    hard_rotation: Dict[TrainingPhase, List[str]] = Field(
        default={
            TrainingPhase.BASE: ["tempo", "hills"],
            TrainingPhase.BUILD: ["tempo", "intervals", "hills"],
            TrainingPhase.PEAK: ["intervals", "tempo", "hills"],
            TrainingPhase.TAPER: ["tempo", "intervals"],
        }
    )

    # Catalog category per workout type and phase
    phase_categories: Dict[str, Dict[TrainingPhase, str]] = Field(
        default={
            "tempo": {
                TrainingPhase.BASE: "traditional_tempo",
                TrainingPhase.BUILD: "tempo_intervals",
                TrainingPhase.PEAK: "race_specific",
                TrainingPhase.TAPER: "alternating_tempo",
            },
            "intervals": {
                TrainingPhase.BASE: "long_intervals",
                TrainingPhase.BUILD: "vo2_max",
                TrainingPhase.PEAK: "short_speed",
                TrainingPhase.TAPER: "mixed_intervals",
            },
            "hills": {
                TrainingPhase.BASE: "long_strength",
                TrainingPhase.BUILD: "medium_vo2",
                TrainingPhase.PEAK: "short_power",
                TrainingPhase.TAPER: "short_power",
            },
            "long_run": {
                TrainingPhase.BASE: "traditional_easy",
                TrainingPhase.BUILD: "progressive_runs",
                TrainingPhase.PEAK: "race_simulation",
                TrainingPhase.TAPER: "traditional_easy",
            },
        }
    )

    # Stand-up bike category per hard type, used for bike days
    bike_hard_categories: Dict[str, str] = Field(
        default={
            "tempo": "tempo_bike",
            "intervals": "interval_bike",
            "hills": "power_resistance",
        }
    )

    # Number of days remembered when avoiding repeated workouts
    workout_history_size: int = Field(default=5)
    avoid_recent: int = Field(default=2)

    # Cross-training preference at which easy days alternate onto owned equipment
    cross_training_threshold: int = Field(default=50, ge=0, le=100)

    def phase_split_for(self, total_weeks: int) -> PhaseSplit:
        """Phase distribution for a plan of the given length."""
        if total_weeks <= self.short_plan_max_weeks:
            return self.short_plan_phases
        if total_weeks <= self.medium_plan_max_weeks:
            return self.medium_plan_phases
        return self.long_plan_phases
