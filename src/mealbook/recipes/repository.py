"""Recipe persistence: saving extracted recipes with deduplicated sources."""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mealbook.database import transaction
from mealbook.errors import NotFoundError
from mealbook.ingredients.resolver import IngredientResolver
from mealbook.logging_config import get_logger
from mealbook.models import Ingredient, Recipe, RecipeIngredient, RecipeStep
from mealbook.normalize.urls import canonicalize, detect_source_type, extract_video_id
from mealbook.schemas import (
    ExtractedRecipe,
    Macros,
    RecipeDetail,
    RecipeIngredientDetail,
    RecipeStepDetail,
    RecipeSummary,
    SaveRecipeResult,
)

logger = get_logger(__name__)


class RecipeRepository:
    """Stores recipes produced by the extraction step."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.ingredients = IngredientResolver(session)

    async def find_by_url(self, user_id: str, url: str) -> Recipe | None:
        """Find a user's recipe saved from the same source, in any URL variant."""
        normalized_url = canonicalize(url)
        result = await self.session.execute(
            select(Recipe)
            .where(Recipe.user_id == user_id, Recipe.normalized_url == normalized_url)
            .order_by(Recipe.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_recipes(self, user_id: str, search: str | None = None) -> list[RecipeSummary]:
        """List a user's recipes by title, optionally filtered by a title substring."""
        query = select(Recipe).where(Recipe.user_id == user_id)
        if search and search.strip():
            query = query.where(
                func.lower(Recipe.title).contains(search.strip().lower(), autoescape=True)
            )

        result = await self.session.execute(query.order_by(Recipe.title, Recipe.id))
        return [RecipeSummary.model_validate(recipe) for recipe in result.scalars()]

    async def create_recipe(
        self,
        user_id: str,
        source_url: str,
        extracted: ExtractedRecipe,
    ) -> SaveRecipeResult:
        """
        Save an extracted recipe for a user.

        If the user already saved a recipe from the same source, that recipe
        is returned unchanged. Otherwise the recipe, its steps and one line per
        ingredient are written in a single transaction, resolving each
        ingredient name to its canonical identity.

        Args:
            user_id: Owner of the recipe.
            source_url: URL the recipe was extracted from, as given.
            extracted: Output of the extraction step.

        Returns:
            SaveRecipeResult with ``was_created=False`` for a duplicate.
        """
        normalized_url = canonicalize(source_url)

        async with transaction(self.session):
            existing = await self.find_by_url(user_id, source_url)
            if existing:
                logger.info(f"Recipe for {normalized_url} already saved as {existing.id}")
                return SaveRecipeResult(
                    id=existing.id, normalized_url=normalized_url, was_created=False
                )

            # Resolve identities first so the recipe is flushed in one piece
            identities = [
                await self.ingredients.find_or_create(line.name) for line in extracted.ingredients
            ]

            macros = extracted.macros or Macros()
            recipe = Recipe(
                id=str(uuid.uuid4()),
                user_id=user_id,
                title=extracted.title,
                description=extracted.description,
                source_url=source_url,
                normalized_url=normalized_url,
                source_type=detect_source_type(source_url),
                youtube_video_id=extract_video_id(source_url),
                thumbnail_url=extracted.thumbnail_url,
                servings=extracted.servings,
                prep_time_minutes=extracted.prep_time_minutes,
                cook_time_minutes=extracted.cook_time_minutes,
                steps=[
                    RecipeStep(id=str(uuid.uuid4()), **step.model_dump())
                    for step in extracted.steps
                ],
                ingredient_lines=[
                    RecipeIngredient(
                        id=str(uuid.uuid4()),
                        ingredient_id=identity.id,
                        quantity=line.quantity,
                        unit=line.unit,
                        notes=line.notes,
                    )
                    for line, identity in zip(extracted.ingredients, identities)
                ],
                **macros.model_dump(),
            )
            self.session.add(recipe)

        logger.info(
            f"Saved recipe '{recipe.title}' ({recipe.id}) with "
            f"{len(extracted.ingredients)} ingredients and {len(extracted.steps)} steps"
        )
        return SaveRecipeResult(id=recipe.id, normalized_url=normalized_url, was_created=True)

    async def get_recipe(self, recipe_id: str) -> RecipeDetail:
        """Get a recipe with its steps and ingredient lines."""
        result = await self.session.execute(
            select(Recipe).options(selectinload(Recipe.steps)).where(Recipe.id == recipe_id)
        )
        recipe = result.scalar_one_or_none()
        if recipe is None:
            raise NotFoundError("recipe", recipe_id)

        lines = await self.session.execute(
            select(
                RecipeIngredient.id,
                RecipeIngredient.ingredient_id,
                Ingredient.name.label("ingredient_name"),
                Ingredient.category,
                RecipeIngredient.quantity,
                RecipeIngredient.unit,
                RecipeIngredient.notes,
            )
            .join(Ingredient, RecipeIngredient.ingredient_id == Ingredient.id)
            .where(RecipeIngredient.recipe_id == recipe_id)
            .order_by(Ingredient.name)
        )

        return RecipeDetail(
            id=recipe.id,
            user_id=recipe.user_id,
            title=recipe.title,
            description=recipe.description,
            source_url=recipe.source_url,
            normalized_url=recipe.normalized_url,
            source_type=recipe.source_type,
            youtube_video_id=recipe.youtube_video_id,
            thumbnail_url=recipe.thumbnail_url,
            servings=recipe.servings,
            prep_time_minutes=recipe.prep_time_minutes,
            cook_time_minutes=recipe.cook_time_minutes,
            macros=Macros(
                calories=recipe.calories,
                protein=recipe.protein,
                carbs=recipe.carbs,
                fat=recipe.fat,
                fiber=recipe.fiber,
            ),
            steps=[RecipeStepDetail.model_validate(step) for step in recipe.steps],
            ingredients=[RecipeIngredientDetail(**row._mapping) for row in lines],
            created_at=recipe.created_at,
        )

    async def delete_recipe(self, recipe_id: str, user_id: str) -> None:
        """Delete a user's recipe; its steps, lines and meal plan entries go with it."""
        async with transaction(self.session):
            recipe = await self.session.get(Recipe, recipe_id)
            if recipe is None or recipe.user_id != user_id:
                raise NotFoundError("recipe", recipe_id)
            await self.session.delete(recipe)

        logger.info(f"Deleted recipe {recipe_id}")
