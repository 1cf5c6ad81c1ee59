"""API routes for weekly meal plans and their grocery lists."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mealbook.database import get_db
from mealbook.logging_config import LoggingContext, get_logger
from mealbook.plan.grocery import GroceryAggregator
from mealbook.plan.meal_plans import MealPlanRepository
from mealbook.schemas import (
    GroceryList,
    MealPlanEntryCreate,
    MealPlanEntrySchema,
    MealPlanSchema,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/meal-plans", tags=["meal-plans"])


@router.put("/weeks/{week_start}", response_model=MealPlanSchema)
async def get_or_create_week(
    week_start: date,
    user_id: Annotated[str, Query(description="Owner of the plan")] = "default-user",
    db: AsyncSession = Depends(get_db),
) -> MealPlanSchema:
    """Get the plan for the week starting on a Monday, creating it if needed."""
    with LoggingContext(user_id=user_id):
        plan = await MealPlanRepository(db).get_or_create(user_id, week_start)
    return MealPlanSchema.model_validate(plan)


@router.post(
    "/{meal_plan_id}/entries",
    response_model=MealPlanEntrySchema,
    status_code=status.HTTP_201_CREATED,
)
async def add_entry(
    meal_plan_id: str,
    request: MealPlanEntryCreate,
    db: AsyncSession = Depends(get_db),
) -> MealPlanEntrySchema:
    """Schedule a recipe, replacing whatever occupied the slot."""
    with LoggingContext(meal_plan_id=meal_plan_id):
        entry = await MealPlanRepository(db).add_entry(
            meal_plan_id, request.recipe_id, request.day_of_week, request.meal_type
        )
    return MealPlanEntrySchema.model_validate(entry)


@router.delete("/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_entry(
    entry_id: str,
    user_id: Annotated[str, Query(description="Owner of the plan")] = "default-user",
    db: AsyncSession = Depends(get_db),
) -> None:
    """Remove a scheduled recipe."""
    await MealPlanRepository(db).remove_entry(entry_id, user_id)


@router.get("/{meal_plan_id}/grocery-list", response_model=GroceryList)
async def get_grocery_list(
    meal_plan_id: str,
    user_id: Annotated[str, Query(description="Owner of the plan")] = "default-user",
    db: AsyncSession = Depends(get_db),
) -> GroceryList:
    """Get the consolidated grocery list for every recipe in the user's plan."""
    with LoggingContext(meal_plan_id=meal_plan_id, user_id=user_id):
        return await GroceryAggregator(db).get_grocery_list(meal_plan_id, user_id)
