"""
infrastructure.persistence.pantry_repo - SQLite pantry repository (read side).
"""

from __future__ import annotations

from infrastructure.persistence.connection import AsyncSQLiteConnection


class SQLitePantryRepository:
    """Async SQLite implementation of PantryRepository."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def get_item_names(self, user_id: str) -> list[str]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT name FROM pantry_items WHERE user_id = ? ORDER BY id ASC",
                (user_id,),
            )
        return [r[0] for r in rows if r[0]]
