"""Shared aiosqlite connection for the SQLite stores."""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

from projecthub_ai.exceptions import DatabaseError
from projecthub_ai.logger import get_logger

logger = get_logger(__name__)

PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA foreign_keys = ON",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA busy_timeout = 5000",
)


class SQLiteConnection:
    """
    One lazily opened SQLite connection shared by the credit and history stores.

    The connection runs in autocommit mode. Writes go through
    ``immediate_transaction()``, which takes the database write lock at
    ``BEGIN`` and serializes transactions issued on this connection.
    """

    def __init__(self, db_path: str, **kwargs):
        """
        Args:
            db_path: Database file (``:memory:`` allowed)
            **kwargs: Passed through to ``aiosqlite.connect``
        """
        self.db_path = db_path
        self.connect_kwargs = kwargs
        self._connection: Optional[aiosqlite.Connection] = None
        self._tx_lock = asyncio.Lock()

        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    async def connect(self) -> aiosqlite.Connection:
        if self._connection is not None:
            return self._connection

        try:
            conn = await aiosqlite.connect(self.db_path, isolation_level=None, **self.connect_kwargs)
        except Exception as e:
            raise DatabaseError(f"Failed to open SQLite database {self.db_path}: {str(e)}")

        conn.row_factory = aiosqlite.Row
        for pragma in PRAGMAS:
            await conn.execute(pragma)

        self._connection = conn
        logger.info("Opened SQLite database", extra={"db_path": self.db_path})
        return conn

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("Closed SQLite database", extra={"db_path": self.db_path})

    async def execute(self, query: str, parameters: tuple = ()) -> aiosqlite.Cursor:
        """Run one statement outside an explicit transaction (reads)."""
        conn = await self.connect()
        return await conn.execute(query, parameters)

    async def executescript(self, script: str) -> None:
        conn = await self.connect()
        await conn.executescript(script)

    @asynccontextmanager
    async def immediate_transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Write transaction holding the database lock from the start.

        Usage:
            async with connection.immediate_transaction() as conn:
                await conn.execute(...)

        Commits when the block exits normally and rolls back otherwise.
        """
        async with self._tx_lock:
            conn = await self.connect()
            await conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            else:
                await conn.commit()

    async def __aenter__(self) -> "SQLiteConnection":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
