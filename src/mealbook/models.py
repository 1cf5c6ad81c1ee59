"""SQLAlchemy database models."""

from datetime import date, datetime

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mealbook.database import Base


class Ingredient(Base):
    """Canonical ingredient identity, keyed by its normalized name."""

    __tablename__ = "ingredients"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    # Always stored lowercased and trimmed; the resolver normalizes before writing
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    category: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    lines: Mapped[list["RecipeIngredient"]] = relationship(
        "RecipeIngredient", back_populates="ingredient", passive_deletes="all"
    )

    __table_args__ = (
        Index("idx_ingredients_category", "category"),
        Index("idx_ingredients_created_at", "created_at"),
    )


class Recipe(Base):
    """Recipe saved by a user from a video or article."""

    __tablename__ = "recipes"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_url: Mapped[str] = mapped_column(Text, nullable=False)
    normalized_url: Mapped[str] = mapped_column(Text, nullable=False)
    source_type: Mapped[str] = mapped_column(String(20), nullable=False)  # youtube, blog
    youtube_video_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    servings: Mapped[int | None] = mapped_column(Integer, nullable=True)
    prep_time_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cook_time_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Macros per serving
    calories: Mapped[int | None] = mapped_column(Integer, nullable=True)
    protein: Mapped[int | None] = mapped_column(Integer, nullable=True)  # grams
    carbs: Mapped[int | None] = mapped_column(Integer, nullable=True)  # grams
    fat: Mapped[int | None] = mapped_column(Integer, nullable=True)  # grams
    fiber: Mapped[int | None] = mapped_column(Integer, nullable=True)  # grams
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    steps: Mapped[list["RecipeStep"]] = relationship(
        "RecipeStep",
        back_populates="recipe",
        order_by="RecipeStep.step_number",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    ingredient_lines: Mapped[list["RecipeIngredient"]] = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_recipes_user_id", "user_id"),
        Index("idx_recipes_user_normalized_url", "user_id", "normalized_url"),
    )


class RecipeStep(Base):
    """One instruction step of a recipe."""

    __tablename__ = "recipe_steps"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    recipe_id: Mapped[str] = mapped_column(
        String, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    step_number: Mapped[int] = mapped_column(Integer, nullable=False)
    instruction: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="steps")


class RecipeIngredient(Base):
    """One ingredient usage within one recipe."""

    __tablename__ = "recipe_ingredients"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    recipe_id: Mapped[str] = mapped_column(
        String, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    # RESTRICT: an ingredient can only be deleted once nothing points at it
    ingredient_id: Mapped[str] = mapped_column(
        String, ForeignKey("ingredients.id", ondelete="RESTRICT"), nullable=False
    )
    quantity: Mapped[str | None] = mapped_column(Text, nullable=True)  # free text, "1/2"
    unit: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="ingredient_lines")
    ingredient: Mapped["Ingredient"] = relationship("Ingredient", back_populates="lines")

    __table_args__ = (
        Index("idx_recipe_ingredients_recipe_id", "recipe_id"),
        Index("idx_recipe_ingredients_ingredient_id", "ingredient_id"),
    )


class MealPlan(Base):
    """A user's plan for one Monday-Sunday week."""

    __tablename__ = "meal_plans"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False)  # always a Monday
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    entries: Mapped[list["MealPlanEntry"]] = relationship(
        "MealPlanEntry",
        back_populates="plan",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "week_start_date", name="uq_meal_plan_user_week"),
    )


class MealPlanEntry(Base):
    """A recipe assigned to one day/meal-type slot of a plan."""

    __tablename__ = "meal_plan_entries"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    meal_plan_id: Mapped[str] = mapped_column(
        String, ForeignKey("meal_plans.id", ondelete="CASCADE"), nullable=False
    )
    recipe_id: Mapped[str] = mapped_column(
        String, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)  # 0=Monday, 6=Sunday
    meal_type: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # breakfast, lunch, dinner, snacks

    plan: Mapped["MealPlan"] = relationship("MealPlan", back_populates="entries")
    recipe: Mapped["Recipe"] = relationship("Recipe")

    __table_args__ = (
        UniqueConstraint("meal_plan_id", "day_of_week", "meal_type", name="uq_meal_plan_slot"),
        Index("idx_meal_plan_entries_plan_id", "meal_plan_id"),
    )
