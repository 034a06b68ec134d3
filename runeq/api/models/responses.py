"""
API Response Models

Pydantic models for API responses.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from runeq.plan_schemas import AlternativeCategory, DayEntry, TrainingPlan
from runeq.schemas import Modality, WorkoutTemplate


class PlanGenerationResponse(BaseModel):
    """Response for POST /api/plans."""

    plan: TrainingPlan = Field(..., description="Generated training plan")
    plan_id: Optional[int] = Field(default=None, description="Stored record id when save=true")


class CatalogResponse(BaseModel):
    """Response for GET /api/catalogs/{modality}."""

    modality: Modality
    title: str
    categories: Dict[str, List[WorkoutTemplate]] = Field(..., description="Category -> templates")
    guidelines: Dict[str, Any] = Field(default_factory=dict)
    count: int = Field(..., description="Total templates returned")


class AlternativesResponse(BaseModel):
    """Response for POST /api/alternatives."""

    categories: List[AlternativeCategory] = Field(..., description="Ordered alternative categories")
    count: int = Field(..., description="Number of categories")


class SwapResponse(BaseModel):
    """Response for POST /api/plans/{athlete_id}/swap."""

    day: DayEntry = Field(..., description="The updated plan day")
    plan_id: int = Field(..., description="Record id of the saved plan")
