"""Recipe source deduplication, ingredient identities and grocery lists."""

from mealbook.ingredients.resolver import (
    find_or_create_ingredient,
    list_ingredients,
    merge_ingredients,
    update_ingredient,
)
from mealbook.normalize.urls import canonicalize
from mealbook.plan.grocery import get_grocery_list

__all__ = [
    "canonicalize",
    "find_or_create_ingredient",
    "get_grocery_list",
    "list_ingredients",
    "merge_ingredients",
    "update_ingredient",
]
