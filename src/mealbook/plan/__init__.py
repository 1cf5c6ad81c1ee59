"""Meal plans and grocery list aggregation."""

from mealbook.plan.grocery import (
    GroceryAggregator,
    GroceryLine,
    build_grocery_list,
    get_grocery_list,
)
from mealbook.plan.meal_plans import MealPlanRepository

__all__ = [
    "GroceryAggregator",
    "GroceryLine",
    "MealPlanRepository",
    "build_grocery_list",
    "get_grocery_list",
]
