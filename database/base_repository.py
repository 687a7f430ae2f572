"""Base repository pattern for database operations."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

import aiosqlite

from database.connection import OptimizedSQLitePool, get_db_pool


class BaseRepository:
    """Base repository with common database operations.

    Repositories use the pool they were built with, or the process-wide
    pool when none was given.
    """

    def __init__(self, pool: Optional[OptimizedSQLitePool] = None) -> None:
        self._pool = pool

    @property
    def pool(self) -> OptimizedSQLitePool:
        return self._pool or get_db_pool()

    async def execute(self, query: str, params: Sequence[Any] = ()) -> int:
        """Execute a query and return the number of affected rows."""
        async with self.pool.connection() as conn:
            cursor = await conn.execute(query, params)
            await conn.commit()
            return cursor.rowcount

    async def insert(self, query: str, params: Sequence[Any] = ()) -> int:
        """Execute an INSERT and return the new row id."""
        async with self.pool.connection() as conn:
            cursor = await conn.execute(query, params)
            await conn.commit()
            return cursor.lastrowid

    async def fetch_one(self, query: str, params: Sequence[Any] = ()) -> Optional[aiosqlite.Row]:
        """Fetch a single row."""
        async with self.pool.connection() as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchone()

    async def fetch_all(self, query: str, params: Sequence[Any] = ()) -> List[aiosqlite.Row]:
        """Fetch all rows."""
        async with self.pool.connection() as conn:
            cursor = await conn.execute(query, params)
            return list(await cursor.fetchall())

    async def fetch_value(self, query: str, params: Sequence[Any] = ()) -> Optional[Any]:
        """Fetch a single value from a single row."""
        row = await self.fetch_one(query, params)
        return row[0] if row else None

