"""
Paces API Routes

Endpoints for goal pace calculation.
"""

from fastapi import APIRouter

from runeq.api.models.requests import PaceRequest
from runeq.paces import PaceCalculator
from runeq.schemas import PaceProfile

router = APIRouter()

calculator = PaceCalculator()


@router.post("/paces", response_model=PaceProfile)
async def calculate_paces(request: PaceRequest) -> PaceProfile:
    """
    Calculate training paces for a goal race time.

    Exact table rows are returned unchanged; other goals are interpolated
    between the bounding rows. A goal outside the table is answered with
    422 and the valid range.
    """
    return calculator.calculate_from_goal(request.distance, request.goal_time)
