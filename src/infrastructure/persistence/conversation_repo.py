"""
infrastructure.persistence.conversation_repo - SQLite conversation repository.

Only the resolver-owned fields are written here: the decided dish and
search phrase, the linked recipe and the status transitions
active → decided → recipe_found. Missing conversations are a no-op.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from domain.entities import Conversation
from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


class SQLiteConversationRepository:
    """Async SQLite implementation of ConversationRepository."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def get(self, conversation_id: str) -> Optional[Conversation]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                """SELECT conversation_id, user_id, status, decided_dish, search_query,
                          recipe_id, created_at, updated_at
                   FROM conversations WHERE conversation_id = ?""",
                (conversation_id,),
            )
        return self._row_to_entity(rows[0]) if rows else None

    async def mark_decided(
        self, conversation_id: str, dish: str, search_query: str,
    ) -> None:
        async with self._conn.acquire() as conn:
            cursor = await conn.execute(
                """UPDATE conversations
                   SET decided_dish = ?, search_query = ?, status = 'decided', updated_at = ?
                   WHERE conversation_id = ?""",
                (dish, search_query, _now(), conversation_id),
            )
            if cursor.rowcount == 0:
                logger.debug("Conversation %s not found, not marking decided", conversation_id)

    async def link_recipe(self, conversation_id: str, recipe_id: str) -> None:
        async with self._conn.acquire() as conn:
            cursor = await conn.execute(
                """UPDATE conversations
                   SET recipe_id = ?, status = 'recipe_found', updated_at = ?
                   WHERE conversation_id = ?""",
                (recipe_id, _now(), conversation_id),
            )
            if cursor.rowcount == 0:
                logger.debug("Conversation %s not found, recipe %s not linked", conversation_id, recipe_id)

    @staticmethod
    def _row_to_entity(row) -> Conversation:
        return Conversation(
            conversation_id=row[0],
            user_id=row[1] or "",
            status=row[2] or "active",
            decided_dish=row[3] or "",
            search_query=row[4] or "",
            recipe_id=row[5],
            created_at=row[6] or "",
            updated_at=row[7] or "",
        )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
