"""
Alternatives API Routes

Endpoints for day-level workout alternatives.
"""

import random

from fastapi import APIRouter

from runeq.alternatives import AlternativeGenerator
from runeq.api.models.requests import AlternativesRequest
from runeq.api.models.responses import AlternativesResponse

router = APIRouter()


@router.post("/alternatives", response_model=AlternativesResponse)
async def list_alternatives(request: AlternativesRequest) -> AlternativesResponse:
    """
    Alternatives for one scheduled day.

    Categories come back in display order and there is always at least one.
    """
    rng = random.Random(request.seed) if request.seed is not None else None
    generator = AlternativeGenerator(rng=rng)
    categories = generator.generate(
        request.day,
        request.user_profile,
        weather_extreme=request.weather_extreme,
        mode=request.mode,
    )
    return AlternativesResponse(categories=categories, count=len(categories))
