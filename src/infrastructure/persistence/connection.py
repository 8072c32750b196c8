"""
infrastructure.persistence.connection - Async SQLite connection manager.

Wraps aiosqlite in an async context manager. Driver errors never leave this
module untranslated: they surface as RepositoryError (or
DatabaseUnavailableError when the file can't be opened at all).
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import asynccontextmanager
from typing import AsyncIterator

import aiosqlite

from domain.exceptions import DatabaseUnavailableError, RepositoryError

logger = logging.getLogger(__name__)


class AsyncSQLiteConnection:
    """Async SQLite connection provider with auto-commit/rollback."""

    def __init__(self, db_path: str):
        self._db_path = db_path

    @property
    def db_path(self) -> str:
        return self._db_path

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield an async SQLite connection.

        Commits on success, rolls back on exception.
        """
        try:
            conn = await aiosqlite.connect(self._db_path)
        except sqlite3.Error as e:
            raise DatabaseUnavailableError(f"Database not available: {e}") from e

        try:
            conn.row_factory = aiosqlite.Row
            try:
                yield conn
                await conn.commit()
            except sqlite3.Error as e:
                await conn.rollback()
                logger.exception("Database operation failed, transaction rolled back.")
                raise RepositoryError(f"Database operation failed: {e}") from e
            except Exception:
                await conn.rollback()
                raise
        finally:
            await conn.close()
