"""Weekly meal plans and their day/meal-type slots."""

import uuid
from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mealbook.database import dialect_insert, transaction
from mealbook.errors import NotFoundError, ValidationError
from mealbook.logging_config import get_logger
from mealbook.models import MealPlan, MealPlanEntry, Recipe
from mealbook.schemas import MealType

logger = get_logger(__name__)


class MealPlanRepository:
    """Reads and writes meal plans. One plan per user per Monday-Sunday week."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _load(self, *criteria) -> MealPlan | None:
        # populate_existing refreshes entries already held by the session
        result = await self.session.execute(
            select(MealPlan)
            .options(selectinload(MealPlan.entries))
            .where(*criteria)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get(self, meal_plan_id: str) -> MealPlan:
        """Get a meal plan with its entries."""
        plan = await self._load(MealPlan.id == meal_plan_id)
        if plan is None:
            raise NotFoundError("meal_plan", meal_plan_id)
        return plan

    async def get_or_create(self, user_id: str, week_start_date: date) -> MealPlan:
        """
        Get the user's plan for a week, creating an empty one if needed.

        Args:
            user_id: Owner of the plan.
            week_start_date: Monday the week starts on.

        Returns:
            The plan with its entries loaded.
        """
        if week_start_date.weekday() != 0:
            raise ValidationError(
                "meal_plan",
                f"Week must start on a Monday, got {week_start_date}",
                "week_start_date",
            )

        async with transaction(self.session):
            created = await self.session.execute(
                dialect_insert(self.session, MealPlan)
                .values(id=str(uuid.uuid4()), user_id=user_id, week_start_date=week_start_date)
                .on_conflict_do_nothing(index_elements=["user_id", "week_start_date"])
                .returning(MealPlan.id)
            )
            created_id = created.scalar_one_or_none()
            if created_id:
                logger.info(f"Created meal plan {created_id} for week of {week_start_date}")

            plan = await self._load(
                MealPlan.user_id == user_id, MealPlan.week_start_date == week_start_date
            )

        return plan

    async def list_entries(self, meal_plan_id: str) -> list[MealPlanEntry]:
        """Get the entries of a plan, in day then meal-type order."""
        await self.get(meal_plan_id)
        result = await self.session.execute(
            select(MealPlanEntry)
            .where(MealPlanEntry.meal_plan_id == meal_plan_id)
            .order_by(MealPlanEntry.day_of_week, MealPlanEntry.meal_type)
        )
        return list(result.scalars().all())

    async def add_entry(
        self,
        meal_plan_id: str,
        recipe_id: str,
        day_of_week: int,
        meal_type: MealType,
    ) -> MealPlanEntry:
        """Put a recipe into a slot, replacing whatever was there."""
        if not 0 <= day_of_week <= 6:
            raise ValidationError("meal_plan_entry", "day_of_week must be 0-6", "day_of_week")

        async with transaction(self.session):
            if await self.session.get(MealPlan, meal_plan_id) is None:
                raise NotFoundError("meal_plan", meal_plan_id)
            if await self.session.get(Recipe, recipe_id) is None:
                raise NotFoundError("recipe", recipe_id)

            await self.session.execute(
                delete(MealPlanEntry).where(
                    MealPlanEntry.meal_plan_id == meal_plan_id,
                    MealPlanEntry.day_of_week == day_of_week,
                    MealPlanEntry.meal_type == meal_type,
                )
            )
            entry = MealPlanEntry(
                id=str(uuid.uuid4()),
                meal_plan_id=meal_plan_id,
                recipe_id=recipe_id,
                day_of_week=day_of_week,
                meal_type=meal_type,
            )
            self.session.add(entry)

        logger.info(f"Scheduled recipe {recipe_id} on day {day_of_week} {meal_type}")
        return entry

    async def remove_entry(self, entry_id: str, user_id: str) -> None:
        """Remove an entry from one of the user's plans."""
        async with transaction(self.session):
            result = await self.session.execute(
                select(MealPlanEntry)
                .join(MealPlan, MealPlanEntry.meal_plan_id == MealPlan.id)
                .where(MealPlanEntry.id == entry_id, MealPlan.user_id == user_id)
            )
            entry = result.scalar_one_or_none()
            if entry is None:
                raise NotFoundError("meal_plan_entry", entry_id)
            await self.session.delete(entry)

        logger.info(f"Removed meal plan entry {entry_id}")
