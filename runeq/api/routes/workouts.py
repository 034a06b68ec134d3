"""
Workouts API Routes

Endpoints for single workout prescriptions.
"""

from fastapi import APIRouter, HTTPException, status

from runeq.api.models.requests import PrescribeRequest
from runeq.compiler import PrescriptionOptions, prescribe
from runeq.paces import PaceCalculator
from runeq.plan_schemas import PrescribedWorkout

router = APIRouter()


@router.post("/workouts/prescribe", response_model=PrescribedWorkout)
async def prescribe_workout(request: PrescribeRequest) -> PrescribedWorkout:
    """
    Resolve a template by name and compile it.

    Paces are injected when both distance and goal_time are given; week
    and total_weeks enable range progression.

    Raises:
        HTTPException: 400 if only one of distance and goal_time is given
    """
    if (request.distance is None) != (request.goal_time is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="distance and goal_time must be given together",
        )

    paces = None
    if request.distance is not None:
        paces = PaceCalculator().calculate_from_goal(request.distance, request.goal_time)

    options = PrescriptionOptions(
        paces=paces,
        week_number=request.week_number,
        total_weeks=request.total_weeks,
        distance_miles=request.distance_miles,
    )
    return prescribe(request.modality, request.name, options)
