"""Ingredient identity resolution: find-or-create, listing, update and merge."""

import math
import uuid

from rapidfuzz import fuzz, process
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from mealbook.config import get_settings
from mealbook.database import dialect_insert, transaction
from mealbook.errors import ConflictError, IdentityRaceError, NotFoundError, ValidationError
from mealbook.logging_config import get_logger
from mealbook.models import Ingredient, RecipeIngredient
from mealbook.schemas import (
    IdentityResult,
    IngredientFilters,
    IngredientPage,
    IngredientUpdate,
    IngredientWithUsage,
    MergeResult,
    SimilarIngredient,
)

logger = get_logger(__name__)
settings = get_settings()


def normalize_name(name: str) -> str:
    """Normalize an ingredient name to its canonical form: trimmed and lowercased."""
    return name.strip().lower()


def _usage_count_column():
    """Correlated count of recipe lines referencing the outer ingredient row."""
    return (
        select(func.count(RecipeIngredient.id))
        .where(RecipeIngredient.ingredient_id == Ingredient.id)
        .correlate(Ingredient)
        .scalar_subquery()
        .label("usage_count")
    )


class IngredientResolver:
    """
    Resolves free-text ingredient names to canonical identities.

    One identity exists per normalized name. Identities are created on demand
    when recipes are saved and removed only by merging them into another.
    Usage counts are always computed on read.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # =========================================================================
    # Find or create
    # =========================================================================

    async def find_or_create(self, name: str) -> IdentityResult:
        """
        Return the identity for a name, creating it if needed.

        Safe under concurrent callers: the insert is ``ON CONFLICT DO NOTHING``
        against the unique name, and a caller that loses the race re-reads the
        winner's row. If that row is gone by then (merged away in between) the
        whole transaction is retried.
        """
        normalized = normalize_name(name)
        if not normalized:
            raise ValidationError("ingredient", "Ingredient name must not be blank", "name")

        @retry(
            retry=retry_if_exception_type(IdentityRaceError),
            stop=stop_after_attempt(settings.identity_retry_attempts),
            reraise=True,
        )
        async def _attempt() -> IdentityResult:
            async with transaction(self.session):
                return await self._lookup_or_insert(normalized)

        return await _attempt()

    async def _lookup(self, normalized: str) -> str | None:
        result = await self.session.execute(
            select(Ingredient.id).where(Ingredient.name == normalized)
        )
        return result.scalar_one_or_none()

    async def _insert_if_absent(self, normalized: str) -> str | None:
        """Insert a new identity; returns its id, or None if the name already exists."""
        new_id = str(uuid.uuid4())
        stmt = (
            dialect_insert(self.session, Ingredient)
            .values(id=new_id, name=normalized, category=None)
            .on_conflict_do_nothing(index_elements=["name"])
            .returning(Ingredient.id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _lookup_or_insert(self, normalized: str) -> IdentityResult:
        existing_id = await self._lookup(normalized)
        if existing_id:
            return IdentityResult(id=existing_id, canonical_name=normalized, was_created=False)

        created_id = await self._insert_if_absent(normalized)
        if created_id:
            logger.info(f"Created ingredient '{normalized}' ({created_id})")
            return IdentityResult(id=created_id, canonical_name=normalized, was_created=True)

        # Lost the race: someone committed this name after our lookup
        winner_id = await self._lookup(normalized)
        if winner_id is None:
            logger.warning(f"Ingredient '{normalized}' vanished after insert conflict, retrying")
            raise IdentityRaceError(normalized)

        logger.debug(f"Ingredient '{normalized}' created concurrently, using {winner_id}")
        return IdentityResult(id=winner_id, canonical_name=normalized, was_created=False)

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, ingredient_id: str) -> Ingredient:
        """Get an ingredient by id."""
        ingredient = await self.session.get(Ingredient, ingredient_id)
        if ingredient is None:
            raise NotFoundError("ingredient", ingredient_id)
        return ingredient

    async def usage_count(self, ingredient_id: str) -> int:
        """Count recipe lines that reference an ingredient."""
        count = await self.session.scalar(
            select(func.count(RecipeIngredient.id)).where(
                RecipeIngredient.ingredient_id == ingredient_id
            )
        )
        return count or 0

    async def list_categories(self) -> list[str]:
        """Get all distinct categories in use."""
        result = await self.session.execute(
            select(Ingredient.category)
            .where(Ingredient.category.is_not(None))
            .distinct()
            .order_by(Ingredient.category)
        )
        return list(result.scalars().all())

    async def find_similar(
        self,
        ingredient_id: str,
        limit: int = 5,
        min_score: float | None = None,
    ) -> list[SimilarIngredient]:
        """
        Suggest other ingredients that are probably the same thing.

        Scores names with rapidfuzz's token-set ratio, so "tomatoes" and
        "ripe tomato" rank close to "tomato". Suggestions only; nothing is
        merged.
        """
        ingredient = await self.get(ingredient_id)
        min_score = settings.similar_ingredient_min_score if min_score is None else min_score

        result = await self.session.execute(
            select(Ingredient.id, Ingredient.name, Ingredient.category).where(
                Ingredient.id != ingredient_id
            )
        )
        candidates = {row.id: row for row in result}
        if not candidates:
            return []

        matches = process.extract(
            ingredient.name,
            {cid: row.name for cid, row in candidates.items()},
            scorer=fuzz.token_set_ratio,
            score_cutoff=min_score,
            limit=limit,
        )

        return [
            SimilarIngredient(
                id=cid,
                name=candidates[cid].name,
                category=candidates[cid].category,
                score=round(score, 1),
            )
            for _name, score, cid in matches
        ]

    # =========================================================================
    # Writes
    # =========================================================================

    async def update(self, ingredient_id: str, patch: IngredientUpdate) -> None:
        """
        Apply a patch to an ingredient.

        A new name is normalized before it is saved. Names are not checked
        against other identities up front; if the store's unique constraint
        rejects the rename, a ConflictError is raised so the admin can merge
        instead.
        """
        changes = patch.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("ingredient", "Update must set name or category")

        if "name" in changes:
            if changes["name"] is None or not normalize_name(changes["name"]):
                raise ValidationError("ingredient", "Ingredient name must not be blank", "name")
            changes["name"] = normalize_name(changes["name"])

        try:
            async with transaction(self.session):
                await self.get(ingredient_id)
                await self.session.execute(
                    update(Ingredient)
                    .where(Ingredient.id == ingredient_id)
                    .values(**changes)
                )
        except IntegrityError as e:
            logger.warning(f"Rename of ingredient {ingredient_id} collided: {e.orig}")
            raise ConflictError(
                "ingredient",
                f"Another ingredient is already named '{changes['name']}'; merge them instead",
            ) from e

        logger.info(f"Updated ingredient {ingredient_id}: {changes}")

    async def merge(self, source_id: str, target_id: str) -> MergeResult:
        """
        Fold the source ingredient into the target.

        Every recipe line on the source is repointed to the target and then
        the source is deleted, in one transaction, so no reader ever sees a
        line pointing at a deleted ingredient.

        Returns:
            MergeResult with the number of repointed lines.
        """
        if source_id == target_id:
            raise ValidationError("ingredient", "Cannot merge ingredient with itself", "source_id")

        async with transaction(self.session):
            source = await self.session.get(Ingredient, source_id)
            if source is None:
                raise NotFoundError("ingredient", source_id, "Source ingredient not found")
            target = await self.session.get(Ingredient, target_id)
            if target is None:
                raise NotFoundError("ingredient", target_id, "Target ingredient not found")

            source_name = source.name
            repointed = await self.session.execute(
                update(RecipeIngredient)
                .where(RecipeIngredient.ingredient_id == source_id)
                .values(ingredient_id=target_id)
            )
            merged_count = repointed.rowcount

            await self.session.execute(
                delete(Ingredient).where(Ingredient.id == source_id)
            )

        logger.info(
            f"Merged ingredient '{source_name}' ({source_id}) into "
            f"'{target.name}' ({target_id}): {merged_count} lines moved"
        )
        return MergeResult(merged_count=merged_count)

    # =========================================================================
    # Listing (kept last: the name shadows the builtin in the class body)
    # =========================================================================

    async def list(
        self,
        filters: IngredientFilters | None = None,
        page: int = 0,
        limit: int = 20,
    ) -> IngredientPage:
        """
        List ingredients, newest first, with usage counts.

        Args:
            filters: Optional name substring and exact category.
            page: Zero-indexed page number.
            limit: Page size, between 1 and the configured maximum.

        Returns:
            The page with total and total_pages.
        """
        if page < 0:
            raise ValidationError("ingredient", "page must be >= 0", "page")
        if not 1 <= limit <= settings.ingredient_page_limit_max:
            raise ValidationError(
                "ingredient",
                f"limit must be between 1 and {settings.ingredient_page_limit_max}",
                "limit",
            )

        filters = filters or IngredientFilters()
        conditions = []
        if filters.search:
            conditions.append(
                Ingredient.name.contains(normalize_name(filters.search), autoescape=True)
            )
        if filters.category:
            conditions.append(Ingredient.category == filters.category)

        total = await self.session.scalar(
            select(func.count(Ingredient.id)).where(*conditions)
        )
        total = total or 0

        result = await self.session.execute(
            select(
                Ingredient.id,
                Ingredient.name,
                Ingredient.category,
                Ingredient.created_at,
                _usage_count_column(),
            )
            .where(*conditions)
            .order_by(Ingredient.created_at.desc(), Ingredient.id)
            .offset(page * limit)
            .limit(limit)
        )
        ingredients = [IngredientWithUsage.model_validate(dict(row._mapping)) for row in result]

        return IngredientPage(
            ingredients=ingredients,
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        )


# =============================================================================
# Library surface
# =============================================================================


async def find_or_create_ingredient(session: AsyncSession, name: str) -> IdentityResult:
    """Resolve a free-text ingredient name to its canonical identity."""
    return await IngredientResolver(session).find_or_create(name)


async def list_ingredients(
    session: AsyncSession,
    filters: IngredientFilters | None = None,
    page: int = 0,
    limit: int = 20,
) -> IngredientPage:
    """List ingredients with usage counts, newest first."""
    return await IngredientResolver(session).list(filters, page, limit)


async def update_ingredient(
    session: AsyncSession, ingredient_id: str, patch: IngredientUpdate
) -> None:
    """Rename or recategorize an ingredient."""
    await IngredientResolver(session).update(ingredient_id, patch)


async def merge_ingredients(session: AsyncSession, source_id: str, target_id: str) -> MergeResult:
    """Fold one ingredient into another."""
    return await IngredientResolver(session).merge(source_id, target_id)
