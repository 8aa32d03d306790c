"""
Persistence interfaces for credits and chat history.

Credit stores must make every read-modify-write on one account atomic: two
concurrent debits can never both succeed against a balance that covers only
one of them.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from projecthub_ai.constants import CREDIT_HISTORY_PAGE
from projecthub_ai.credits.models import CreditAccount, LedgerEntry, utc_now


class StoredMessage(BaseModel):
    """A chat message persisted for a user."""

    role: str
    content: str
    mode: str = "general"
    is_quick_response: bool = False
    timestamp: datetime = Field(default_factory=utc_now)

    def to_wire(self) -> dict:
        return {
            "role": self.role,
            "content": self.content,
            "mode": self.mode,
            "isQuickResponse": self.is_quick_response,
            "timestamp": self.timestamp.isoformat(),
        }


class CreditStore(ABC):
    """Storage for credit accounts and their ledgers."""

    async def initialize(self) -> None:
        """Prepare the backing store."""
        return None

    async def close(self) -> None:
        """Release resources."""
        return None

    @abstractmethod
    async def get_or_create(self, user_id: str, now: Optional[datetime] = None) -> CreditAccount:
        """
        Load an account, creating it with a full daily balance if missing.

        The daily reset is applied before the account is returned.
        """
        pass

    @abstractmethod
    async def ensure_daily_reset(self, user_id: str, now: Optional[datetime] = None) -> CreditAccount:
        """Apply the daily reset if due and return the account."""
        pass

    @abstractmethod
    async def debit(self, user_id: str, amount: float, now: Optional[datetime] = None) -> Tuple[bool, CreditAccount]:
        """
        Atomically debit an account.

        Returns:
            Tuple[bool, CreditAccount]: Whether the debit applied and the account afterwards
        """
        pass

    @abstractmethod
    async def history(self, user_id: str, limit: int = CREDIT_HISTORY_PAGE) -> List[LedgerEntry]:
        """Most recent ledger entries, newest first."""
        pass

    @abstractmethod
    async def grant(self, user_id: str, amount: float, note: Optional[str] = None) -> CreditAccount:
        """Administrative top-up."""
        pass

    @abstractmethod
    async def activate_premium(self, user_id: str) -> CreditAccount:
        """Switch the account to unmetered usage."""
        pass


class ChatHistoryStore(ABC):
    """Bounded per-user chat transcript."""

    async def initialize(self) -> None:
        return None

    async def close(self) -> None:
        return None

    @abstractmethod
    async def append(
        self,
        user_id: str,
        role: str,
        content: str,
        mode: str = "general",
        is_quick_response: bool = False
    ) -> None:
        """Append one message, discarding the oldest beyond the cap."""
        pass

    @abstractmethod
    async def recent(self, user_id: str, limit: int) -> List[StoredMessage]:
        """Last ``limit`` messages in chronological order."""
        pass

    @abstractmethod
    async def clear(self, user_id: str) -> int:
        """Delete a user's transcript and return how many messages were removed."""
        pass
