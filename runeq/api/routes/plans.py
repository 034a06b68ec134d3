"""
Training Plans API Routes

Endpoints for training plan generation, retrieval and workout swaps.
"""

import logging
import random
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, status

from runeq.alternatives import apply_alternative
from runeq.api.models.requests import PlanGenerationRequest, SwapRequest
from runeq.api.models.responses import PlanGenerationResponse, SwapResponse
from runeq.errors import OutOfRangeGoal
from runeq.plan_schemas import TrainingPlan
from runeq.planner import TrainingPlanGenerator
from runeq.storage import PlanStore, SqlAlchemyPlanStore

logger = logging.getLogger(__name__)

router = APIRouter()


@lru_cache()
def get_plan_store() -> PlanStore:
    """Process-wide plan store; override in tests via dependency_overrides."""
    return SqlAlchemyPlanStore()


@router.post("/plans", response_model=PlanGenerationResponse)
async def generate_plan(
    request: PlanGenerationRequest,
    save: bool = False,
    store: PlanStore = Depends(get_plan_store),
) -> PlanGenerationResponse:
    """
    Generate a training plan for a user profile.

    Args:
        request: PlanGenerationRequest with profile and optional seed
        save: Persist the plan as the athlete's active plan

    Returns:
        PlanGenerationResponse with the plan and, when saved, its record id

    Raises:
        HTTPException: 400 if the schedule cannot hold a plan
    """
    rng = random.Random(request.seed) if request.seed is not None else None
    generator = TrainingPlanGenerator(rng=rng)
    try:
        plan = generator.generate(request.user_profile)
    except OutOfRangeGoal:
        raise
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    plan_id = None
    if save:
        plan_id = await store.save_plan(plan)
        logger.info("Plan %d saved for %s", plan_id, plan.athlete_id)
    return PlanGenerationResponse(plan=plan, plan_id=plan_id)


@router.get("/plans/{athlete_id}", response_model=TrainingPlan)
async def get_active_plan(
    athlete_id: str,
    store: PlanStore = Depends(get_plan_store),
) -> TrainingPlan:
    """Most recently saved active plan for an athlete."""
    plan = await store.load_plan(athlete_id)
    if plan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No active plan for athlete '{athlete_id}'",
        )
    return plan


@router.post("/plans/{athlete_id}/swap", response_model=SwapResponse)
async def swap_workout(
    athlete_id: str,
    request: SwapRequest,
    store: PlanStore = Depends(get_plan_store),
) -> SwapResponse:
    """
    Apply a chosen alternative to the athlete's active plan and save it.

    Args:
        athlete_id: Athlete whose active plan is changed
        request: SwapRequest with the week, day, chosen option and mode

    Returns:
        SwapResponse with the updated day and the new record id

    Raises:
        HTTPException: 404 if there is no active plan or no such week
    """
    plan = await store.load_plan(athlete_id)
    if plan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No active plan for athlete '{athlete_id}'",
        )

    try:
        entry = apply_alternative(
            plan,
            request.week_number,
            request.day,
            request.option,
            request.category_title,
            request.mode,
        )
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Plan for '{athlete_id}' has no week {request.week_number}",
        )

    plan_id = await store.save_plan(plan)
    logger.info(
        "Swapped week %d %s for %s (plan %d)",
        request.week_number,
        request.day.value,
        athlete_id,
        plan_id,
    )
    return SwapResponse(day=entry, plan_id=plan_id)
