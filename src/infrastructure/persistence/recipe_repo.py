"""
infrastructure.persistence.recipe_repo - SQLite stored-recipe repository.

Implements RecipeRepository. Records are partitioned by user_id: every
lookup, update and delete is scoped to (recipe_id, user_id). RecipeData is
stored as JSON.
"""

from __future__ import annotations

import json
import logging

from domain.models import RecipeData
from domain.entities import StoredRecipe
from domain.exceptions import RecipeNotFoundError
from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)

_COLUMNS = """id, user_id, recipe_name_lower, source_url_lower, conversation_id,
              recipe_data, is_saved, user_portion_size, has_substitutions,
              created_at, updated_at"""


class SQLiteRecipeRepository:
    """Async SQLite implementation of RecipeRepository."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def create(self, recipe: StoredRecipe) -> StoredRecipe:
        async with self._conn.acquire() as conn:
            await conn.execute(
                f"INSERT INTO recipes ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                self._entity_to_params(recipe),
            )
        return recipe

    async def get(self, recipe_id: str, user_id: str) -> StoredRecipe | None:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                f"SELECT {_COLUMNS} FROM recipes WHERE id = ? AND user_id = ?",
                (recipe_id, user_id),
            )
        return self._row_to_entity(rows[0]) if rows else None

    async def replace(self, recipe: StoredRecipe) -> StoredRecipe:
        async with self._conn.acquire() as conn:
            cursor = await conn.execute(
                """UPDATE recipes
                   SET recipe_name_lower = ?, source_url_lower = ?, conversation_id = ?,
                       recipe_data = ?, is_saved = ?, user_portion_size = ?,
                       has_substitutions = ?, updated_at = ?
                   WHERE id = ? AND user_id = ?""",
                (
                    recipe.recipe_name_lower,
                    recipe.source_url_lower,
                    recipe.conversation_id,
                    self._dump_data(recipe.recipe_data),
                    int(recipe.is_saved),
                    recipe.user_portion_size,
                    int(recipe.has_substitutions),
                    recipe.updated_at,
                    recipe.id,
                    recipe.user_id,
                ),
            )
            if cursor.rowcount == 0:
                raise RecipeNotFoundError(f"Recipe {recipe.id} not found")
        return recipe

    async def find_by_source_url(
        self, user_id: str, source_url_lower: str,
    ) -> list[StoredRecipe]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                f"""SELECT {_COLUMNS} FROM recipes
                    WHERE user_id = ? AND source_url_lower = ?
                    ORDER BY created_at ASC""",
                (user_id, source_url_lower),
            )
        return [self._row_to_entity(r) for r in rows]

    async def list_by_user(
        self, user_id: str, saved_only: bool = False,
    ) -> list[StoredRecipe]:
        query = f"SELECT {_COLUMNS} FROM recipes WHERE user_id = ?"
        if saved_only:
            query += " AND is_saved = 1"
        query += " ORDER BY created_at DESC"
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(query, (user_id,))
        return [self._row_to_entity(r) for r in rows]

    async def delete(self, recipe_id: str, user_id: str) -> None:
        async with self._conn.acquire() as conn:
            await conn.execute(
                "DELETE FROM recipes WHERE id = ? AND user_id = ?",
                (recipe_id, user_id),
            )

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _dump_data(data: RecipeData | None) -> str | None:
        return json.dumps(data.to_dict()) if data is not None else None

    @classmethod
    def _entity_to_params(cls, recipe: StoredRecipe) -> tuple:
        return (
            recipe.id,
            recipe.user_id,
            recipe.recipe_name_lower,
            recipe.source_url_lower,
            recipe.conversation_id,
            cls._dump_data(recipe.recipe_data),
            int(recipe.is_saved),
            recipe.user_portion_size,
            int(recipe.has_substitutions),
            recipe.created_at,
            recipe.updated_at,
        )

    @staticmethod
    def _row_to_entity(row) -> StoredRecipe:
        data = json.loads(row[5]) if row[5] else None
        return StoredRecipe(
            id=row[0],
            user_id=row[1],
            recipe_name_lower=row[2] or "",
            source_url_lower=row[3] or "",
            conversation_id=row[4],
            recipe_data=RecipeData.from_dict(data) if data else None,
            is_saved=bool(row[6]),
            user_portion_size=row[7],
            has_substitutions=bool(row[8]),
            created_at=row[9] or "",
            updated_at=row[10] or "",
        )
