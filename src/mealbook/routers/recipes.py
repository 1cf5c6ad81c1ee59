"""API routes for saving and reading recipes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from mealbook.database import get_db
from mealbook.logging_config import LoggingContext, get_logger
from mealbook.normalize.urls import canonicalize, detect_source_type, extract_video_id
from mealbook.recipes.repository import RecipeRepository
from mealbook.schemas import (
    ExtractedRecipe,
    RecipeDetail,
    RecipeSummary,
    SaveRecipeResult,
    SourceType,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/recipes", tags=["recipes"])


# =============================================================================
# Request/Response Schemas
# =============================================================================


class SaveRecipeRequest(BaseModel):
    """A recipe produced by the extraction step, with the URL it came from."""

    user_id: str = Field(default="default-user")
    source_url: str = Field(min_length=1)
    recipe: ExtractedRecipe


class CanonicalizeRequest(BaseModel):
    url: str
    keep_query: bool = False


class CanonicalizeResponse(BaseModel):
    """Deduplication key for a URL."""

    url: str
    normalized_url: str
    source_type: SourceType
    video_id: str | None = None


# =============================================================================
# Endpoints
# =============================================================================


@router.post("", response_model=SaveRecipeResult)
async def save_recipe(
    request: SaveRecipeRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> SaveRecipeResult:
    """
    Save an extracted recipe.

    Returns 201 for a new recipe and 200 with the existing recipe when the
    user already saved one from the same source.
    """
    with LoggingContext(user_id=request.user_id):
        result = await RecipeRepository(db).create_recipe(
            request.user_id, request.source_url, request.recipe
        )
    response.status_code = status.HTTP_201_CREATED if result.was_created else status.HTTP_200_OK
    return result


@router.get("", response_model=list[RecipeSummary])
async def list_recipes(
    user_id: Annotated[str, Query(description="Owner of the recipes")] = "default-user",
    search: Annotated[str | None, Query(description="Substring of the title")] = None,
    db: AsyncSession = Depends(get_db),
) -> list[RecipeSummary]:
    """List the user's recipes by title, e.g. to pick one for a meal plan slot."""
    return await RecipeRepository(db).list_recipes(user_id, search)


@router.post("/canonicalize", response_model=CanonicalizeResponse)
async def canonicalize_url(request: CanonicalizeRequest) -> CanonicalizeResponse:
    """Show the key a URL deduplicates under."""
    return CanonicalizeResponse(
        url=request.url,
        normalized_url=canonicalize(request.url, keep_query=request.keep_query),
        source_type=detect_source_type(request.url),
        video_id=extract_video_id(request.url),
    )


@router.get("/{recipe_id}", response_model=RecipeDetail)
async def get_recipe(
    recipe_id: str,
    db: AsyncSession = Depends(get_db),
) -> RecipeDetail:
    """Get a recipe with its steps and ingredients."""
    return await RecipeRepository(db).get_recipe(recipe_id)


@router.delete("/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recipe(
    recipe_id: str,
    user_id: Annotated[str, Query(description="Owner of the recipe")] = "default-user",
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a recipe. It also disappears from any meal plan."""
    await RecipeRepository(db).delete_recipe(recipe_id, user_id)
