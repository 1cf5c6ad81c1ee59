"""Recipe storage."""

from mealbook.recipes.repository import RecipeRepository

__all__ = ["RecipeRepository"]
