"""Common data schemas shared by the core and the API."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MealType = Literal["breakfast", "lunch", "dinner", "snacks"]
SourceType = Literal["youtube", "blog"]


# =============================================================================
# Ingredient identities
# =============================================================================


class IdentityResult(BaseModel):
    """Outcome of resolving a free-text ingredient name."""

    id: str
    canonical_name: str
    was_created: bool


class IngredientFilters(BaseModel):
    """Filters for listing ingredients."""

    search: str | None = None
    category: str | None = None


class IngredientWithUsage(BaseModel):
    """Ingredient with the number of recipe lines that reference it."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    category: str | None = None
    created_at: datetime
    usage_count: int = 0


class IngredientPage(BaseModel):
    """One page of ingredients."""

    ingredients: list[IngredientWithUsage]
    total: int
    page: int
    limit: int
    total_pages: int


class IngredientUpdate(BaseModel):
    """
    Patch for an ingredient.

    Only fields that were explicitly set are applied, so ``category=None``
    clears the category while an omitted category leaves it alone.
    """

    name: str | None = None
    category: str | None = None


class MergeRequest(BaseModel):
    """Request to fold one ingredient into another."""

    source_id: str
    target_id: str


class MergeResult(BaseModel):
    """Outcome of a merge."""

    merged_count: int


class SimilarIngredient(BaseModel):
    """A merge candidate with its name similarity score (0-100)."""

    id: str
    name: str
    category: str | None = None
    score: float


# =============================================================================
# Extraction output
# =============================================================================


class Macros(BaseModel):
    """Macros per serving."""

    calories: int | None = None
    protein: int | None = None
    carbs: int | None = None
    fat: int | None = None
    fiber: int | None = None


class ExtractedIngredient(BaseModel):
    """One ingredient line as produced by the extraction step."""

    name: str = Field(min_length=1)
    quantity: str | None = None
    unit: str | None = None
    notes: str | None = None


class ExtractedStep(BaseModel):
    """One instruction step as produced by the extraction step."""

    step_number: int = Field(ge=1)
    instruction: str
    timestamp_seconds: int | None = None
    duration_seconds: int | None = None


class ExtractedRecipe(BaseModel):
    """Draft recipe produced by the extraction collaborator from a video or article."""

    title: str = Field(min_length=1)
    description: str | None = None
    thumbnail_url: str | None = None
    servings: int | None = Field(None, ge=1)
    prep_time_minutes: int | None = Field(None, ge=0)
    cook_time_minutes: int | None = Field(None, ge=0)
    macros: Macros | None = None
    ingredients: list[ExtractedIngredient] = Field(default_factory=list)
    steps: list[ExtractedStep] = Field(default_factory=list)


# =============================================================================
# Recipes
# =============================================================================


class SaveRecipeResult(BaseModel):
    """Outcome of saving a recipe; an existing recipe for the same source is reused."""

    id: str
    normalized_url: str
    was_created: bool


class RecipeSummary(BaseModel):
    """A recipe as shown in a picker."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    thumbnail_url: str | None = None
    source_type: SourceType
    normalized_url: str


class RecipeIngredientDetail(BaseModel):
    """A recipe's ingredient line joined to its identity."""

    id: str
    ingredient_id: str
    ingredient_name: str
    category: str | None = None
    quantity: str | None = None
    unit: str | None = None
    notes: str | None = None


class RecipeStepDetail(BaseModel):
    """A recipe step."""

    model_config = ConfigDict(from_attributes=True)

    step_number: int
    instruction: str
    timestamp_seconds: int | None = None
    duration_seconds: int | None = None


class RecipeDetail(BaseModel):
    """Recipe with its steps and ingredient lines."""

    id: str
    user_id: str
    title: str
    description: str | None = None
    source_url: str
    normalized_url: str
    source_type: SourceType
    youtube_video_id: str | None = None
    thumbnail_url: str | None = None
    servings: int | None = None
    prep_time_minutes: int | None = None
    cook_time_minutes: int | None = None
    macros: Macros
    steps: list[RecipeStepDetail]
    ingredients: list[RecipeIngredientDetail]
    created_at: datetime


# =============================================================================
# Meal plans
# =============================================================================


class MealPlanEntryCreate(BaseModel):
    """Request to put a recipe into a slot."""

    recipe_id: str
    day_of_week: int = Field(ge=0, le=6, description="0=Monday, 6=Sunday")
    meal_type: MealType


class MealPlanEntrySchema(BaseModel):
    """A scheduled recipe."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    meal_plan_id: str
    recipe_id: str
    day_of_week: int
    meal_type: MealType


class MealPlanSchema(BaseModel):
    """A week's plan with its entries."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    week_start_date: date
    name: str | None = None
    entries: list[MealPlanEntrySchema] = Field(default_factory=list)


# =============================================================================
# Grocery list
# =============================================================================


class QuantityEntrySchema(BaseModel):
    """One entry of a combined quantity."""

    model_config = ConfigDict(from_attributes=True)

    kind: Literal["sum", "literal"]
    unit: str | None = None
    total: float | None = None
    total_max: float | None = None
    raw_text: str | None = None
    line_count: int = 1
    notes: list[str] = Field(default_factory=list)


class GroceryListItem(BaseModel):
    """One ingredient on the grocery list."""

    ingredient_id: str
    display_name: str
    category: str | None = None
    quantities: list[QuantityEntrySchema]
    display_quantity: str
    recipe_count: int
    source_recipe_ids: list[str]


class GroceryList(BaseModel):
    """Consolidated shopping list for a set of scheduled recipes."""

    items: list[GroceryListItem] = Field(default_factory=list)
    total_ingredients: int = 0
    recipe_count: int = 0
