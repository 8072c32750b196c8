"""
infrastructure.persistence.profile_repo - SQLite food profile repository.

Implements ProfileRepository (read-only here; profiles are edited by the
profile service). List columns are stored as JSON arrays.
"""

from __future__ import annotations

import json
import logging

from domain.entities import FoodProfile
from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


class SQLiteProfileRepository:
    """Async SQLite implementation of ProfileRepository."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def get(self, user_id: str) -> FoodProfile | None:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                """SELECT user_id, likes, dislikes, allergens, restrictions,
                          unavailable_equipment, cooking_proficiency, is_premium, updated_at
                   FROM food_profiles WHERE user_id = ?""",
                (user_id,),
            )
        return self._row_to_profile(rows[0]) if rows else None

    @staticmethod
    def _row_to_profile(row) -> FoodProfile:
        return FoodProfile(
            user_id=row[0],
            likes=_json_list(row[1]),
            dislikes=_json_list(row[2]),
            allergens=_json_list(row[3]),
            restrictions=_json_list(row[4]),
            unavailable_equipment=_json_list(row[5]),
            cooking_proficiency=row[6],
            is_premium=bool(row[7]),
            updated_at=row[8] or "",
        )


def _json_list(value: str | None) -> list[str]:
    if not value:
        return []
    try:
        items = json.loads(value)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed profile list column: %r", value[:80])
        return []
    return [str(i) for i in items] if isinstance(items, list) else []
