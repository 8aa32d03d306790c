"""
Storage backends for credits and chat history.

``create_stores`` picks the backend named by ``settings.storage_backend``.
"""

from typing import Optional, Tuple

from projecthub_ai.config import Settings, settings as default_settings
from projecthub_ai.credits.meter import CreditMeter
from projecthub_ai.storage.base import ChatHistoryStore, CreditStore, StoredMessage
from projecthub_ai.storage.connection import SQLiteConnection
from projecthub_ai.storage.memory import InMemoryChatHistoryStore, InMemoryCreditStore
from projecthub_ai.storage.sqlite import SQLiteChatHistoryStore, SQLiteCreditStore


def create_stores(settings: Optional[Settings] = None) -> Tuple[CreditStore, ChatHistoryStore]:
    """
    Build the credit and chat history stores for the configured backend.

    Both SQLite stores share one connection so their transactions are serialized.
    """
    settings = settings or default_settings

    if settings.storage_backend == "sqlite":
        connection = SQLiteConnection(settings.database_path)
        return (
            SQLiteCreditStore(connection, daily_limit=settings.daily_credit_limit),
            SQLiteChatHistoryStore(connection, max_messages=settings.chat_history_limit),
        )

    return (
        InMemoryCreditStore(
            meter=CreditMeter(settings.long_message_threshold),
            daily_limit=settings.daily_credit_limit
        ),
        InMemoryChatHistoryStore(max_messages=settings.chat_history_limit),
    )


__all__ = [
    "ChatHistoryStore",
    "CreditStore",
    "InMemoryChatHistoryStore",
    "InMemoryCreditStore",
    "SQLiteChatHistoryStore",
    "SQLiteConnection",
    "SQLiteCreditStore",
    "StoredMessage",
    "create_stores",
]
