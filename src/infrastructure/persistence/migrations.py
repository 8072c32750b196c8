"""
infrastructure.persistence.migrations - Database schema creation.

Called once at startup by the adapter or factory. Idempotent.
"""

from __future__ import annotations

import logging

from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)

_TABLES = [
    """CREATE TABLE IF NOT EXISTS food_profiles (
        user_id TEXT PRIMARY KEY,
        likes TEXT,
        dislikes TEXT,
        allergens TEXT,
        restrictions TEXT,
        unavailable_equipment TEXT,
        cooking_proficiency INTEGER,
        is_premium INTEGER DEFAULT 0,
        updated_at TEXT
    )""",
    """CREATE TABLE IF NOT EXISTS conversations (
        conversation_id TEXT PRIMARY KEY,
        user_id TEXT,
        status TEXT DEFAULT 'active',
        decided_dish TEXT,
        search_query TEXT,
        recipe_id TEXT,
        created_at TEXT,
        updated_at TEXT
    )""",
    """CREATE TABLE IF NOT EXISTS chat_messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        conversation_id TEXT,
        message_index INTEGER,
        role TEXT,
        content TEXT,
        created_at TEXT
    )""",
    """CREATE TABLE IF NOT EXISTS pantry_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT,
        name TEXT,
        created_at TEXT
    )""",
    """CREATE TABLE IF NOT EXISTS recipes (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        recipe_name_lower TEXT,
        source_url_lower TEXT,
        conversation_id TEXT,
        recipe_data TEXT,
        is_saved INTEGER DEFAULT 0,
        user_portion_size REAL,
        has_substitutions INTEGER DEFAULT 0,
        created_at TEXT,
        updated_at TEXT
    )""",
]

_INDEXES = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_recipes_user_recipe ON recipes (user_id, id)",
    "CREATE INDEX IF NOT EXISTS idx_recipes_user_source ON recipes (user_id, source_url_lower)",
    "CREATE INDEX IF NOT EXISTS idx_messages_conversation ON chat_messages (conversation_id, message_index)",
    "CREATE INDEX IF NOT EXISTS idx_pantry_user ON pantry_items (user_id)",
]


async def run_migrations(connection: AsyncSQLiteConnection) -> None:
    """Create all tables and indexes if they don't exist."""
    async with connection.acquire() as conn:
        for ddl in _TABLES + _INDEXES:
            await conn.execute(ddl)
    logger.info("Database migrations complete (%d tables).", len(_TABLES))
