"""
application.services.recipe_library - A user's stored recipes.

Listing, retrieval, lifecycle updates (saved flag, portion size) and
deletion. Stored recipe content is never re-scraped or re-formatted here;
only the lifecycle fields change.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from domain.entities import StoredRecipe
from domain.ports import RecipeRepository
from domain.exceptions import RecipeNotFoundError
from application.dto import RecipeUpdate

logger = logging.getLogger(__name__)


class RecipeLibraryService:
    """Manages stored recipes for one user at a time."""

    def __init__(self, recipe_repo: RecipeRepository):
        self._recipe_repo = recipe_repo

    async def list_recipes(self, user_id: str, saved_only: bool = False) -> list[StoredRecipe]:
        """Newest first."""
        return await self._recipe_repo.list_by_user(user_id, saved_only=saved_only)

    async def get_recipe(self, recipe_id: str, user_id: str) -> StoredRecipe:
        recipe = await self._recipe_repo.get(recipe_id, user_id)
        if recipe is None:
            raise RecipeNotFoundError(f"Recipe {recipe_id} not found")
        return recipe

    async def update_recipe(
        self,
        recipe_id: str,
        user_id: str,
        update: RecipeUpdate,
    ) -> StoredRecipe:
        """Apply a partial update.

        A positive user_portion_size sets it; clear_portion_size resets it to
        None. Zero or negative sizes are ignored.
        """
        recipe = await self.get_recipe(recipe_id, user_id)

        if update.is_saved is not None:
            recipe.is_saved = update.is_saved
        if update.clear_portion_size:
            recipe.user_portion_size = None
        elif update.user_portion_size is not None and update.user_portion_size > 0:
            recipe.user_portion_size = float(update.user_portion_size)

        recipe.updated_at = datetime.now(timezone.utc).isoformat()
        recipe = await self._recipe_repo.replace(recipe)
        logger.info("Updated recipe %s for user %s", recipe_id, user_id)
        return recipe

    async def delete_recipe(self, recipe_id: str, user_id: str) -> None:
        """Ownership is enforced by looking the recipe up under the caller's user_id."""
        await self.get_recipe(recipe_id, user_id)
        await self._recipe_repo.delete(recipe_id, user_id)
        logger.info("Deleted recipe %s for user %s", recipe_id, user_id)
