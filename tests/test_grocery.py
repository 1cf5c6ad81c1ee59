"""Tests for grocery list aggregation."""

from types import SimpleNamespace

import pytest
from conftest import save_recipe

from mealbook import (
    find_or_create_ingredient,
    get_grocery_list,
    merge_ingredients,
    update_ingredient,
)
from mealbook.errors import NotFoundError
from mealbook.plan.grocery import GroceryAggregator, GroceryLine, build_grocery_list
from mealbook.plan.meal_plans import MealPlanRepository
from mealbook.schemas import IngredientUpdate


def entry(recipe_id: str) -> SimpleNamespace:
    return SimpleNamespace(recipe_id=recipe_id)


# =============================================================================
# Pure Aggregation Tests
# =============================================================================


class TestBuildGroceryList:
    """Tests for folding lines without a database."""

    def test_groups_by_ingredient(self):
        """Test lines of one ingredient become one item with combined quantities."""
        lines = [
            GroceryLine("r1", "i-flour", "flour", "Baking", "1", "cup"),
            GroceryLine("r2", "i-flour", "flour", "Baking", "1/2", "cup"),
            GroceryLine("r2", "i-egg", "egg", "Dairy", "2", None),
        ]

        grocery_list = build_grocery_list(lines)

        assert grocery_list.total_ingredients == 2
        assert grocery_list.recipe_count == 2
        flour = next(i for i in grocery_list.items if i.ingredient_id == "i-flour")
        assert flour.display_quantity == "1.5 cup"
        assert flour.recipe_count == 2
        assert flour.source_recipe_ids == ["r1", "r2"]

    def test_sorted_by_category_then_name_uncategorized_last(self):
        """Test ordering puts items without a category at the end."""
        lines = [
            GroceryLine("r1", "a", "zucchini", "Produce", "1", None),
            GroceryLine("r1", "b", "water", None, "1", "l"),
            GroceryLine("r1", "c", "apple", "Produce", "2", None),
            GroceryLine("r1", "d", "milk", "Dairy", "1", "l"),
            GroceryLine("r1", "e", "ice", None, "1", "bag"),
        ]

        names = [i.display_name for i in build_grocery_list(lines).items]

        assert names == ["milk", "apple", "zucchini", "ice", "water"]

    def test_one_recipe_with_repeated_ingredient(self):
        """Test two lines of one recipe count the recipe once."""
        lines = [
            GroceryLine("r1", "i-sugar", "sugar", None, "1", "tbsp"),
            GroceryLine("r1", "i-sugar", "sugar", None, "100", "g"),
        ]

        item = build_grocery_list(lines).items[0]

        assert item.recipe_count == 1
        assert [q.kind for q in item.quantities] == ["literal", "literal"]
        assert item.display_quantity == "1 tbsp + 100 g"

    def test_out_of_range_quantity(self):
        """Test a number too large to add up is listed, not a crash."""
        lines = [
            GroceryLine("r1", "i-rice", "rice", None, "9" * 400, "g"),
            GroceryLine("r2", "i-rice", "rice", None, "1", "g"),
        ]

        item = build_grocery_list(lines).items[0]

        assert [q.kind for q in item.quantities] == ["literal", "literal"]
        assert item.display_quantity.endswith("+ 1 g")

    def test_notes_kept(self):
        """Test preparation notes travel with their quantities."""
        lines = [
            GroceryLine("r1", "i-onion", "onion", None, "1", "cup", "diced"),
            GroceryLine("r2", "i-onion", "onion", None, "1", "cup", "sliced"),
            GroceryLine("r2", "i-onion", "onion", None, "1", None, "for garnish"),
        ]

        quantities = build_grocery_list(lines).items[0].quantities

        assert [q.notes for q in quantities] == [["diced", "sliced"], ["for garnish"]]

    def test_no_lines(self):
        """Test an empty input is a valid empty list."""
        grocery_list = build_grocery_list([])
        assert grocery_list.items == []
        assert grocery_list.total_ingredients == 0
        assert grocery_list.recipe_count == 0


# =============================================================================
# Aggregator Tests
# =============================================================================


class TestGroceryAggregator:
    """Tests for aggregating stored recipes."""

    @pytest.mark.asyncio
    async def test_compute_empty(self, session):
        """Test no entries give an empty list."""
        grocery_list = await GroceryAggregator(session).compute([])
        assert grocery_list.items == []
        assert grocery_list.total_ingredients == 0
        assert grocery_list.recipe_count == 0

    @pytest.mark.asyncio
    async def test_combines_across_recipes(self, session):
        """Test shared ingredients are combined across recipes."""
        soup = await save_recipe(
            session,
            "Soup",
            [("Onion", "1", "cup"), ("Stock", "1", "l"), ("Salt", "a pinch", None)],
        )
        stew = await save_recipe(session, "Stew", [("onion", "1/2", "Cup"), ("beef", "500", "g")])

        grocery_list = await GroceryAggregator(session).compute([entry(soup), entry(stew)])
        items = {i.display_name: i for i in grocery_list.items}

        assert set(items) == {"onion", "stock", "salt", "beef"}
        assert items["onion"].display_quantity == "1.5 cup"
        assert items["onion"].recipe_count == 2
        assert sorted(items["onion"].source_recipe_ids) == sorted([soup, stew])
        assert items["salt"].display_quantity == "a pinch"
        assert grocery_list.total_ingredients == 4
        assert grocery_list.recipe_count == 2

    @pytest.mark.asyncio
    async def test_recipe_in_two_slots_counted_once(self, session):
        """Test a recipe scheduled twice contributes its quantities once."""
        chili = await save_recipe(session, "Chili", [("beans", "2", "can")])

        grocery_list = await GroceryAggregator(session).compute(
            [entry(chili), entry(chili)]
        )

        beans = grocery_list.items[0]
        assert beans.display_quantity == "2 can"
        assert beans.quantities[0].kind == "literal"
        assert beans.recipe_count == 1
        assert grocery_list.recipe_count == 1

    @pytest.mark.asyncio
    async def test_every_line_represented(self, session):
        """Test no contributing line is lost in aggregation."""
        a = await save_recipe(
            session, "A", [("rice", "1", "cup"), ("rice", "some", "cup"), ("egg", "2", None)]
        )
        b = await save_recipe(session, "B", [("rice", "200", "g"), ("egg", "1", None)])

        grocery_list = await GroceryAggregator(session).compute([entry(a), entry(b)])

        line_count = sum(q.line_count for i in grocery_list.items for q in i.quantities)
        assert line_count == 5

    @pytest.mark.asyncio
    async def test_uses_category_and_merged_identity(self, session):
        """Test items reflect current categories and merges."""
        r1 = await save_recipe(session, "Bruschetta", [("tomatoes", "4", None)])
        r2 = await save_recipe(session, "Gazpacho", [("tomato", "6", None)])
        source = await find_or_create_ingredient(session, "tomatoes")
        target = await find_or_create_ingredient(session, "tomato")
        await update_ingredient(session, target.id, IngredientUpdate(category="Produce"))
        await merge_ingredients(session, source.id, target.id)

        grocery_list = await GroceryAggregator(session).compute([entry(r1), entry(r2)])

        assert len(grocery_list.items) == 1
        item = grocery_list.items[0]
        assert item.ingredient_id == target.id
        assert item.category == "Produce"
        assert sorted(q.raw_text for q in item.quantities) == ["4", "6"]
        assert item.recipe_count == 2


class TestGetGroceryList:
    """Tests for grocery lists of stored meal plans."""

    @pytest.mark.asyncio
    async def test_unknown_plan(self, session):
        """Test a missing plan is not found rather than empty."""
        with pytest.raises(NotFoundError):
            await get_grocery_list(session, "missing-plan")

    @pytest.mark.asyncio
    async def test_other_users_plan(self, session, week_plan):
        """Test an owner-scoped request cannot read someone else's plan."""
        plan_id = week_plan.id

        with pytest.raises(NotFoundError):
            await get_grocery_list(session, plan_id, user_id="user-2")

        grocery_list = await get_grocery_list(session, plan_id, user_id="user-1")
        assert grocery_list.items == []

    @pytest.mark.asyncio
    async def test_empty_plan(self, session, week_plan):
        """Test a plan with no entries has an empty list."""
        grocery_list = await get_grocery_list(session, week_plan.id)
        assert grocery_list.items == []

    @pytest.mark.asyncio
    async def test_plan_entries_aggregated(self, session, week_plan):
        """Test every scheduled recipe contributes, each once."""
        pasta = await save_recipe(session, "Pasta", [("spaghetti", "200", "g")])
        pesto = await save_recipe(
            session, "Pesto", [("spaghetti", "250", "g"), ("basil", "1", "bunch")]
        )
        plans = MealPlanRepository(session)
        await plans.add_entry(week_plan.id, pasta, 0, "dinner")
        await plans.add_entry(week_plan.id, pesto, 1, "dinner")
        await plans.add_entry(week_plan.id, pasta, 2, "lunch")

        grocery_list = await get_grocery_list(session, week_plan.id)
        items = {i.display_name: i for i in grocery_list.items}

        assert items["spaghetti"].display_quantity == "450 g"
        assert items["basil"].display_quantity == "1 bunch"
        assert grocery_list.recipe_count == 2
