"""
Catalogs API Routes

Endpoints for browsing the workout libraries.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, status

from runeq.api.models.responses import CatalogResponse
from runeq.catalog import get_by_category, guidelines, load_catalog
from runeq.schemas import Modality

router = APIRouter()


@router.get("/catalogs/{modality}", response_model=CatalogResponse)
async def get_catalog(modality: Modality, category: Optional[str] = None) -> CatalogResponse:
    """
    List a library's templates, optionally limited to one category.

    Raises:
        HTTPException: 404 if the category does not exist
    """
    library = load_catalog(modality)
    if category is None:
        categories = dict(library.categories)
    else:
        templates = get_by_category(modality, category)
        if not templates:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No workouts found in category: {category}. Available: {list(library.categories)}",
            )
        categories = {category: templates}

    return CatalogResponse(
        modality=modality,
        title=library.title,
        categories=categories,
        guidelines=guidelines(modality),
        count=sum(len(t) for t in categories.values()),
    )
