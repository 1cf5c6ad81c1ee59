"""Grocery list aggregation across a week's scheduled recipes."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mealbook.errors import NotFoundError
from mealbook.logging_config import get_logger
from mealbook.models import Ingredient, MealPlan, MealPlanEntry, RecipeIngredient
from mealbook.normalize.quantities import QuantityItem, combine_quantities
from mealbook.schemas import GroceryList, GroceryListItem, QuantityEntrySchema

logger = get_logger(__name__)


class ScheduledRecipe(Protocol):
    """Anything that names a scheduled recipe, e.g. a MealPlanEntry."""

    recipe_id: str


@dataclass
class GroceryLine:
    """One recipe ingredient line joined to its ingredient identity."""

    recipe_id: str
    ingredient_id: str
    ingredient_name: str
    category: str | None
    quantity: str | None
    unit: str | None
    notes: str | None = None


def _sort_key(item: GroceryListItem) -> tuple[bool, str, str]:
    # Uncategorized items go last
    return (item.category is None, item.category or "", item.display_name)


def build_grocery_list(lines: Iterable[GroceryLine]) -> GroceryList:
    """
    Fold ingredient lines into a grocery list.

    Lines are grouped by ingredient identity and their quantities combined,
    so every line appears in exactly one item and in exactly one quantity
    entry of that item.
    """
    groups: dict[str, list[GroceryLine]] = {}
    for line in lines:
        groups.setdefault(line.ingredient_id, []).append(line)

    items = []
    all_recipe_ids: set[str] = set()
    for ingredient_id, group in groups.items():
        combined = combine_quantities(
            [QuantityItem.from_text(line.quantity, line.unit, line.notes) for line in group]
        )
        recipe_ids = list(dict.fromkeys(line.recipe_id for line in group))
        all_recipe_ids.update(recipe_ids)

        items.append(
            GroceryListItem(
                ingredient_id=ingredient_id,
                display_name=group[0].ingredient_name,
                category=group[0].category,
                quantities=[QuantityEntrySchema.model_validate(e) for e in combined.entries],
                display_quantity=combined.display(),
                recipe_count=len(recipe_ids),
                source_recipe_ids=recipe_ids,
            )
        )

    items.sort(key=_sort_key)
    return GroceryList(
        items=items,
        total_ingredients=len(items),
        recipe_count=len(all_recipe_ids),
    )


class GroceryAggregator:
    """
    Builds consolidated grocery lists from meal plan entries.

    Read-only. A recipe scheduled in several slots contributes its lines once.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def compute(self, entries: Iterable[ScheduledRecipe]) -> GroceryList:
        """
        Compute the grocery list for a set of scheduled recipes.

        Args:
            entries: Meal plan entries (or anything with a ``recipe_id``).

        Returns:
            GroceryList sorted by category then name, uncategorized last.
        """
        recipe_ids = sorted({entry.recipe_id for entry in entries})
        if not recipe_ids:
            return GroceryList()

        lines = await self._load_lines(recipe_ids)
        grocery_list = build_grocery_list(lines)

        logger.info(
            f"Aggregated {len(lines)} lines from {len(recipe_ids)} recipes "
            f"into {grocery_list.total_ingredients} grocery items"
        )
        return grocery_list

    async def _load_lines(self, recipe_ids: list[str]) -> list[GroceryLine]:
        # One statement, so each line is read with the identity it points at
        result = await self.session.execute(
            select(
                RecipeIngredient.recipe_id,
                RecipeIngredient.ingredient_id,
                Ingredient.name.label("ingredient_name"),
                Ingredient.category,
                RecipeIngredient.quantity,
                RecipeIngredient.unit,
                RecipeIngredient.notes,
            )
            .join(Ingredient, RecipeIngredient.ingredient_id == Ingredient.id)
            .where(RecipeIngredient.recipe_id.in_(recipe_ids))
            .order_by(RecipeIngredient.recipe_id, RecipeIngredient.id)
        )
        return [GroceryLine(**row._mapping) for row in result]

    async def get_grocery_list(self, meal_plan_id: str, user_id: str | None = None) -> GroceryList:
        """
        Get the grocery list for a meal plan.

        With ``user_id``, a plan owned by someone else is reported as not
        found, the same as a plan that does not exist.
        """
        criteria = [MealPlan.id == meal_plan_id]
        if user_id is not None:
            criteria.append(MealPlan.user_id == user_id)
        plan_id = await self.session.scalar(select(MealPlan.id).where(*criteria))
        if plan_id is None:
            raise NotFoundError("meal_plan", meal_plan_id)

        result = await self.session.execute(
            select(MealPlanEntry).where(MealPlanEntry.meal_plan_id == meal_plan_id)
        )
        entries = result.scalars().all()
        logger.debug(f"Meal plan {meal_plan_id} has {len(entries)} entries")
        return await self.compute(entries)


async def get_grocery_list(
    session: AsyncSession, meal_plan_id: str, user_id: str | None = None
) -> GroceryList:
    """Get the consolidated grocery list for a meal plan, optionally owner-scoped."""
    return await GroceryAggregator(session).get_grocery_list(meal_plan_id, user_id)
