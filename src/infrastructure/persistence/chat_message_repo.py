"""
infrastructure.persistence.chat_message_repo - SQLite chat message repository.

Read side only: messages are written by the chat service.
"""

from __future__ import annotations

import logging

from domain.entities import ChatMessage
from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


class SQLiteChatMessageRepository:
    """Async SQLite implementation of ChatMessageRepository."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def get_by_conversation(
        self, conversation_id: str,
    ) -> list[ChatMessage]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                """SELECT id, conversation_id, message_index, role, content, created_at
                   FROM chat_messages
                   WHERE conversation_id = ?
                   ORDER BY message_index ASC, id ASC""",
                (conversation_id,),
            )
            return [self._row_to_entity(r) for r in rows]

    @staticmethod
    def _row_to_entity(row) -> ChatMessage:
        return ChatMessage(
            id=row[0],
            conversation_id=row[1] or "",
            message_index=row[2] or 0,
            role=row[3] or "",
            content=row[4] or "",
            created_at=row[5] or "",
        )
