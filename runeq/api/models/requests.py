"""
API Request Models

Pydantic models for API request validation.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from runeq.plan_schemas import AlternativeOption, DayEntry
from runeq.schemas import Modality, RaceDistance, UserProfile, Weekday


class PaceRequest(BaseModel):
    """Request model for goal pace calculation."""

    distance: RaceDistance = Field(..., description="Race distance (accepts '10K', 'Half', 'Marathon')")
    goal_time: str = Field(..., description="Goal time as H:MM:SS or MM:SS")

    @field_validator("distance", mode="before")
    @classmethod
    def parse_distance(cls, v):
        return RaceDistance.parse(v)


class PlanGenerationRequest(BaseModel):
    """Request model for training plan generation."""

    user_profile: UserProfile = Field(..., description="User profile")
    seed: Optional[int] = Field(default=None, description="Random seed for reproducible workout selection")


class PrescribeRequest(BaseModel):
    """Request model for a single workout prescription."""

    modality: Modality = Field(..., description="Workout library")
    name: str = Field(..., min_length=1, description="Template name (substring match)")
    distance: Optional[RaceDistance] = Field(default=None, description="Goal distance for paces")
    goal_time: Optional[str] = Field(default=None, description="Goal time for paces")
    week_number: Optional[int] = Field(default=None, ge=1)
    total_weeks: Optional[int] = Field(default=None, ge=1)
    distance_miles: Optional[float] = Field(default=None, ge=0)

    @field_validator("distance", mode="before")
    @classmethod
    def parse_distance(cls, v):
        return None if v is None else RaceDistance.parse(v)


class AlternativesRequest(BaseModel):
    """Request model for alternatives to one plan day."""

    user_profile: UserProfile = Field(..., description="User profile")
    day: DayEntry = Field(..., description="The scheduled day to replace or add to")
    weather_extreme: bool = Field(default=False, description="Include weather-safe options")
    mode: Literal["replace", "add"] = Field(default="replace")
    seed: Optional[int] = Field(default=None)


class SwapRequest(BaseModel):
    """Request model for applying a chosen alternative to a saved plan."""

    week_number: int = Field(..., ge=1, description="1-based plan week")
    day: Weekday = Field(..., description="Day to change")
    option: AlternativeOption = Field(..., description="Chosen alternative")
    category_title: str = Field(..., min_length=1, description="Title of the category the option came from")
    mode: Literal["replace", "add"] = Field(default="replace")
