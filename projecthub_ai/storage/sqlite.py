"""
SQLite-backed credit and chat history stores.

Every credit mutation runs inside one ``BEGIN IMMEDIATE`` transaction and is
expressed as a conditional ``UPDATE`` so the database itself refuses an
overdraft or a second reset on the same day.
"""

from datetime import datetime
from typing import List, Optional, Tuple

import aiosqlite

from projecthub_ai.config import settings
from projecthub_ai.constants import CREDIT_HISTORY_PAGE, LedgerAction
from projecthub_ai.credits.meter import local_date
from projecthub_ai.credits.models import CreditAccount, LedgerEntry, utc_now
from projecthub_ai.exceptions import DatabaseError, ValidationError
from projecthub_ai.logger import get_logger
from projecthub_ai.storage.base import ChatHistoryStore, CreditStore, StoredMessage
from projecthub_ai.storage.connection import SQLiteConnection

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS credit_accounts (
    user_id TEXT PRIMARY KEY,
    balance REAL NOT NULL CHECK (balance >= 0),
    daily_limit REAL NOT NULL,
    is_premium INTEGER NOT NULL DEFAULT 0,
    last_reset_at TEXT NOT NULL,
    last_reset_day TEXT NOT NULL,
    lifetime_used REAL NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS credit_ledger (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL REFERENCES credit_accounts(user_id) ON DELETE CASCADE,
    action TEXT NOT NULL,
    delta REAL NOT NULL,
    note TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_credit_ledger_user ON credit_ledger(user_id, id);

CREATE TABLE IF NOT EXISTS chat_messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    mode TEXT NOT NULL DEFAULT 'general',
    is_quick_response INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_chat_messages_user ON chat_messages(user_id, id);
"""


async def initialize_schema(connection: SQLiteConnection) -> None:
    """Create tables and indexes if they do not exist."""
    try:
        await connection.executescript(SCHEMA)
    except aiosqlite.Error as e:
        raise DatabaseError(f"Failed to initialize schema: {str(e)}")


class SQLiteCreditStore(CreditStore):
    """Credit accounts persisted in SQLite."""

    def __init__(self, connection: SQLiteConnection, daily_limit: Optional[float] = None):
        """
        Initialize the store.

        Args:
            connection: Shared SQLite connection
            daily_limit: Balance granted to new accounts and on each reset
        """
        self.connection = connection
        self.daily_limit = settings.daily_credit_limit if daily_limit is None else daily_limit

    async def initialize(self) -> None:
        await initialize_schema(self.connection)

    async def close(self) -> None:
        await self.connection.close()

    async def _ensure_row(self, conn: aiosqlite.Connection, user_id: str, now: datetime) -> None:
        await conn.execute(
            """
            INSERT OR IGNORE INTO credit_accounts (
                user_id, balance, daily_limit, is_premium,
                last_reset_at, last_reset_day, lifetime_used, created_at
            ) VALUES (?, ?, ?, 0, ?, ?, 0, ?)
            """,
            (
                user_id, self.daily_limit, self.daily_limit,
                now.isoformat(), local_date(now).isoformat(), now.isoformat()
            )
        )

    async def _apply_reset(self, conn: aiosqlite.Connection, user_id: str, now: datetime) -> bool:
        today = local_date(now).isoformat()
        cursor = await conn.execute(
            """
            UPDATE credit_accounts
            SET balance = daily_limit, last_reset_at = ?, last_reset_day = ?
            WHERE user_id = ? AND is_premium = 0 AND last_reset_day < ?
            """,
            (now.isoformat(), today, user_id, today)
        )
        if cursor.rowcount != 1:
            return False

        await conn.execute(
            """
            INSERT INTO credit_ledger (user_id, action, delta, note, created_at)
            SELECT user_id, ?, daily_limit, ?, ? FROM credit_accounts WHERE user_id = ?
            """,
            (LedgerAction.RESET.value, "Daily credits reset", now.isoformat(), user_id)
        )
        logger.debug(f"Daily credits reset for {user_id}")
        return True

    async def _insert_ledger(
        self,
        conn: aiosqlite.Connection,
        user_id: str,
        action: LedgerAction,
        delta: float,
        note: Optional[str],
        now: datetime
    ) -> None:
        await conn.execute(
            "INSERT INTO credit_ledger (user_id, action, delta, note, created_at) VALUES (?, ?, ?, ?, ?)",
            (user_id, action.value, delta, note, now.isoformat())
        )

    async def _fetch(self, conn: aiosqlite.Connection, user_id: str) -> CreditAccount:
        cursor = await conn.execute("SELECT * FROM credit_accounts WHERE user_id = ?", (user_id,))
        row = await cursor.fetchone()
        if row is None:
            raise DatabaseError(f"Credit account missing for {user_id}")

        return CreditAccount(
            user_id=row["user_id"],
            balance=row["balance"],
            daily_limit=row["daily_limit"],
            is_premium=bool(row["is_premium"]),
            last_reset_date=datetime.fromisoformat(row["last_reset_at"]),
            lifetime_used=row["lifetime_used"]
        )

    async def get_or_create(self, user_id: str, now: Optional[datetime] = None) -> CreditAccount:
        return await self.ensure_daily_reset(user_id, now)

    async def ensure_daily_reset(self, user_id: str, now: Optional[datetime] = None) -> CreditAccount:
        now = now or utc_now()
        try:
            async with self.connection.immediate_transaction() as conn:
                await self._ensure_row(conn, user_id, now)
                await self._apply_reset(conn, user_id, now)
                return await self._fetch(conn, user_id)
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to load credit account: {str(e)}")

    async def debit(self, user_id: str, amount: float, now: Optional[datetime] = None) -> Tuple[bool, CreditAccount]:
        now = now or utc_now()
        try:
            async with self.connection.immediate_transaction() as conn:
                await self._ensure_row(conn, user_id, now)

                cursor = await conn.execute(
                    "UPDATE credit_accounts SET lifetime_used = lifetime_used + ? WHERE user_id = ? AND is_premium = 1",
                    (amount, user_id)
                )
                if cursor.rowcount == 1:
                    return True, await self._fetch(conn, user_id)

                await self._apply_reset(conn, user_id, now)

                cursor = await conn.execute(
                    """
                    UPDATE credit_accounts
                    SET balance = balance - ?, lifetime_used = lifetime_used + ?
                    WHERE user_id = ? AND is_premium = 0 AND balance >= ?
                    """,
                    (amount, amount, user_id, amount)
                )
                applied = cursor.rowcount == 1
                if applied:
                    await self._insert_ledger(
                        conn, user_id, LedgerAction.USE, -amount,
                        f"Used {amount} credits for AI chat", now
                    )
                return applied, await self._fetch(conn, user_id)
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to debit credits: {str(e)}")

    async def history(self, user_id: str, limit: int = CREDIT_HISTORY_PAGE) -> List[LedgerEntry]:
        try:
            cursor = await self.connection.execute(
                "SELECT action, delta, note, created_at FROM credit_ledger WHERE user_id = ? ORDER BY id DESC LIMIT ?",
                (user_id, limit)
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to read credit history: {str(e)}")

        return [
            LedgerEntry(
                action=LedgerAction(row["action"]),
                delta=row["delta"],
                note=row["note"],
                timestamp=datetime.fromisoformat(row["created_at"])
            )
            for row in rows
        ]

    async def grant(self, user_id: str, amount: float, note: Optional[str] = None) -> CreditAccount:
        if amount <= 0:
            raise ValidationError("Grant amount must be positive")
        now = utc_now()
        async with self.connection.immediate_transaction() as conn:
            await self._ensure_row(conn, user_id, now)
            await conn.execute(
                "UPDATE credit_accounts SET balance = balance + ? WHERE user_id = ?",
                (amount, user_id)
            )
            await self._insert_ledger(
                conn, user_id, LedgerAction.ADMIN_ADD, amount,
                note or f"Admin added {amount} credits", now
            )
            return await self._fetch(conn, user_id)

    async def activate_premium(self, user_id: str) -> CreditAccount:
        now = utc_now()
        async with self.connection.immediate_transaction() as conn:
            await self._ensure_row(conn, user_id, now)
            cursor = await conn.execute(
                "UPDATE credit_accounts SET is_premium = 1 WHERE user_id = ? AND is_premium = 0",
                (user_id,)
            )
            if cursor.rowcount == 1:
                await self._insert_ledger(
                    conn, user_id, LedgerAction.PREMIUM_ACTIVATED, 0, "Premium activated", now
                )
            return await self._fetch(conn, user_id)


class SQLiteChatHistoryStore(ChatHistoryStore):
    """Chat transcripts persisted in SQLite, capped per user."""

    def __init__(self, connection: SQLiteConnection, max_messages: Optional[int] = None):
        self.connection = connection
        self.max_messages = max_messages or settings.chat_history_limit

    async def initialize(self) -> None:
        await initialize_schema(self.connection)

    async def close(self) -> None:
        await self.connection.close()

    async def append(
        self,
        user_id: str,
        role: str,
        content: str,
        mode: str = "general",
        is_quick_response: bool = False
    ) -> None:
        try:
            async with self.connection.immediate_transaction() as conn:
                await conn.execute(
                    """
                    INSERT INTO chat_messages (user_id, role, content, mode, is_quick_response, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (user_id, role, content, mode, int(is_quick_response), utc_now().isoformat())
                )
                await conn.execute(
                    """
                    DELETE FROM chat_messages
                    WHERE user_id = ? AND id NOT IN (
                        SELECT id FROM chat_messages WHERE user_id = ? ORDER BY id DESC LIMIT ?
                    )
                    """,
                    (user_id, user_id, self.max_messages)
                )
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to save chat message: {str(e)}")

    async def recent(self, user_id: str, limit: int) -> List[StoredMessage]:
        if limit <= 0:
            return []
        try:
            cursor = await self.connection.execute(
                """
                SELECT role, content, mode, is_quick_response, created_at FROM (
                    SELECT * FROM chat_messages WHERE user_id = ? ORDER BY id DESC LIMIT ?
                ) ORDER BY id ASC
                """,
                (user_id, limit)
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to read chat history: {str(e)}")

        return [
            StoredMessage(
                role=row["role"],
                content=row["content"],
                mode=row["mode"],
                is_quick_response=bool(row["is_quick_response"]),
                timestamp=datetime.fromisoformat(row["created_at"])
            )
            for row in rows
        ]

    async def clear(self, user_id: str) -> int:
        try:
            async with self.connection.immediate_transaction() as conn:
                cursor = await conn.execute("DELETE FROM chat_messages WHERE user_id = ?", (user_id,))
                return cursor.rowcount
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to clear chat history: {str(e)}")
