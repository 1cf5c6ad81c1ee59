"""Canonical ingredient identities."""

from mealbook.ingredients.resolver import (
    IngredientResolver,
    find_or_create_ingredient,
    list_ingredients,
    merge_ingredients,
    normalize_name,
    update_ingredient,
)

__all__ = [
    "IngredientResolver",
    "find_or_create_ingredient",
    "list_ingredients",
    "merge_ingredients",
    "normalize_name",
    "update_ingredient",
]
