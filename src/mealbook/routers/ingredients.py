"""API routes for ingredient identities: listing, admin edits and merging."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from mealbook.database import get_db
from mealbook.ingredients.resolver import IngredientResolver
from mealbook.logging_config import get_logger
from mealbook.schemas import (
    IdentityResult,
    IngredientFilters,
    IngredientPage,
    IngredientUpdate,
    MergeRequest,
    MergeResult,
    SimilarIngredient,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/ingredients", tags=["ingredients"])


class ResolveRequest(BaseModel):
    """Request to resolve a free-text ingredient name."""

    name: str = Field(min_length=1)


@router.get("", response_model=IngredientPage)
async def list_ingredients(
    search: Annotated[str | None, Query(description="Substring of the name")] = None,
    category: Annotated[str | None, Query(description="Exact category")] = None,
    page: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    db: AsyncSession = Depends(get_db),
) -> IngredientPage:
    """List ingredients, newest first, with how many recipe lines use each."""
    filters = IngredientFilters(search=search, category=category)
    return await IngredientResolver(db).list(filters, page, limit)


@router.get("/categories", response_model=list[str])
async def list_categories(db: AsyncSession = Depends(get_db)) -> list[str]:
    """Get all categories in use."""
    return await IngredientResolver(db).list_categories()


@router.post("/resolve", response_model=IdentityResult)
async def resolve_ingredient(
    request: ResolveRequest,
    db: AsyncSession = Depends(get_db),
) -> IdentityResult:
    """Find or create the identity for a name."""
    return await IngredientResolver(db).find_or_create(request.name)


@router.post("/merge", response_model=MergeResult)
async def merge_ingredients(
    request: MergeRequest,
    db: AsyncSession = Depends(get_db),
) -> MergeResult:
    """
    Merge the source ingredient into the target.

    All recipe lines move to the target and the source is deleted.
    """
    logger.info(f"Merge requested: {request.source_id} -> {request.target_id}")
    return await IngredientResolver(db).merge(request.source_id, request.target_id)


@router.patch("/{ingredient_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_ingredient(
    ingredient_id: str,
    patch: IngredientUpdate,
    db: AsyncSession = Depends(get_db),
) -> None:
    """Rename or recategorize an ingredient."""
    await IngredientResolver(db).update(ingredient_id, patch)


@router.get("/{ingredient_id}/similar", response_model=list[SimilarIngredient])
async def similar_ingredients(
    ingredient_id: str,
    limit: Annotated[int, Query(ge=1, le=20)] = 5,
    min_score: Annotated[float | None, Query(ge=0, le=100)] = None,
    db: AsyncSession = Depends(get_db),
) -> list[SimilarIngredient]:
    """Suggest likely duplicates to merge."""
    return await IngredientResolver(db).find_similar(ingredient_id, limit, min_score)
