"""Pytest configuration and shared fixtures."""

import os

# Must be set before mealbook is imported: settings and the module engine read it
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"

from collections.abc import AsyncIterator  # noqa: E402
from datetime import date  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402

from mealbook.database import Base, build_engine, get_db  # noqa: E402
from mealbook.main import app  # noqa: E402
from mealbook.plan.meal_plans import MealPlanRepository  # noqa: E402
from mealbook.recipes.repository import RecipeRepository  # noqa: E402
from mealbook.schemas import ExtractedIngredient, ExtractedRecipe, ExtractedStep  # noqa: E402

# A Monday
WEEK_START = date(2024, 3, 4)


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (require external services)"
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    """SQLite database file per test, with all tables created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'mealbook.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncIterator[AsyncSession]:
    """A session for one test."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncIterator[AsyncClient]:
    """HTTP client for the app, using the test database."""

    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# =============================================================================
# Recipe Fixtures
# =============================================================================


def make_extracted(
    title: str,
    ingredients: list[tuple[str, str | None, str | None]],
    steps: list[str] | None = None,
) -> ExtractedRecipe:
    """Build extraction output from (name, quantity, unit) tuples."""
    return ExtractedRecipe(
        title=title,
        ingredients=[
            ExtractedIngredient(name=name, quantity=quantity, unit=unit)
            for name, quantity, unit in ingredients
        ],
        steps=[
            ExtractedStep(step_number=i, instruction=text)
            for i, text in enumerate(steps or [], start=1)
        ],
    )


async def save_recipe(
    session: AsyncSession,
    title: str,
    ingredients: list[tuple[str, str | None, str | None]],
    user_id: str = "user-1",
    url: str | None = None,
) -> str:
    """Save a recipe through the repository and return its id."""
    url = url or f"https://example.com/{title.lower().replace(' ', '-')}"
    result = await RecipeRepository(session).create_recipe(
        user_id, url, make_extracted(title, ingredients)
    )
    return result.id


@pytest.fixture
def pancake_recipe() -> ExtractedRecipe:
    """A typical extraction result."""
    return ExtractedRecipe(
        title="Fluffy Pancakes",
        description="Weekend pancakes",
        servings=4,
        prep_time_minutes=10,
        cook_time_minutes=15,
        macros={"calories": 350, "protein": 9, "carbs": 50, "fat": 12},
        ingredients=[
            ExtractedIngredient(name="Flour", quantity="1 1/2", unit="cup"),
            ExtractedIngredient(name=" Milk ", quantity="1 1/4", unit="cup"),
            ExtractedIngredient(name="Egg", quantity="1", unit=None),
            ExtractedIngredient(name="salt", quantity="a pinch", unit=None, notes="fine"),
        ],
        steps=[
            ExtractedStep(step_number=1, instruction="Whisk the dry ingredients."),
            ExtractedStep(step_number=2, instruction="Add milk and egg.", timestamp_seconds=42),
        ],
    )


@pytest_asyncio.fixture
async def week_plan(session):
    """An empty plan for the test week."""
    return await MealPlanRepository(session).get_or_create("user-1", WEEK_START)
