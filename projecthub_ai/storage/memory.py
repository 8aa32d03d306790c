"""In-process stores for credits and chat history."""

import asyncio
from collections import defaultdict, deque
from datetime import datetime
from typing import Deque, Dict, List, Optional, Tuple

from projecthub_ai.config import settings
from projecthub_ai.constants import CREDIT_HISTORY_PAGE
from projecthub_ai.credits.meter import CreditMeter
from projecthub_ai.credits.models import CreditAccount, LedgerEntry, utc_now
from projecthub_ai.storage.base import ChatHistoryStore, CreditStore, StoredMessage


class InMemoryCreditStore(CreditStore):
    """
    Dictionary-backed credit store.

    Each account has its own ``asyncio.Lock`` so that the check and the
    debit happen as one step even when handlers interleave at await points.
    """

    def __init__(self, meter: Optional[CreditMeter] = None, daily_limit: Optional[float] = None):
        self.meter = meter or CreditMeter()
        self.daily_limit = settings.daily_credit_limit if daily_limit is None else daily_limit
        self._accounts: Dict[str, CreditAccount] = {}
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def _load(self, user_id: str, now: Optional[datetime]) -> CreditAccount:
        account = self._accounts.get(user_id)
        if account is None:
            account = CreditAccount(
                user_id=user_id,
                balance=self.daily_limit,
                daily_limit=self.daily_limit,
                last_reset_date=now or utc_now()
            )
            self._accounts[user_id] = account
        return account

    async def get_or_create(self, user_id: str, now: Optional[datetime] = None) -> CreditAccount:
        return await self.ensure_daily_reset(user_id, now)

    async def ensure_daily_reset(self, user_id: str, now: Optional[datetime] = None) -> CreditAccount:
        async with self._locks[user_id]:
            account = self._load(user_id, now)
            self.meter.ensure_daily_reset(account, now)
            return account.model_copy(deep=True)

    async def debit(self, user_id: str, amount: float, now: Optional[datetime] = None) -> Tuple[bool, CreditAccount]:
        async with self._locks[user_id]:
            account = self._load(user_id, now)
            applied = self.meter.try_debit(account, amount, now)
            return applied, account.model_copy(deep=True)

    async def history(self, user_id: str, limit: int = CREDIT_HISTORY_PAGE) -> List[LedgerEntry]:
        account = self._accounts.get(user_id)
        if account is None:
            return []
        return list(reversed(account.ledger[-limit:]))

    async def grant(self, user_id: str, amount: float, note: Optional[str] = None) -> CreditAccount:
        async with self._locks[user_id]:
            account = self._load(user_id, None)
            self.meter.grant(account, amount, note)
            return account.model_copy(deep=True)

    async def activate_premium(self, user_id: str) -> CreditAccount:
        async with self._locks[user_id]:
            account = self._load(user_id, None)
            self.meter.activate_premium(account)
            return account.model_copy(deep=True)


class InMemoryChatHistoryStore(ChatHistoryStore):
    """Bounded deques of messages keyed by user."""

    def __init__(self, max_messages: Optional[int] = None):
        self.max_messages = max_messages or settings.chat_history_limit
        self._messages: Dict[str, Deque[StoredMessage]] = {}

    async def append(
        self,
        user_id: str,
        role: str,
        content: str,
        mode: str = "general",
        is_quick_response: bool = False
    ) -> None:
        transcript = self._messages.setdefault(user_id, deque(maxlen=self.max_messages))
        transcript.append(
            StoredMessage(role=role, content=content, mode=mode, is_quick_response=is_quick_response)
        )

    async def recent(self, user_id: str, limit: int) -> List[StoredMessage]:
        if limit <= 0:
            return []
        transcript = self._messages.get(user_id)
        if not transcript:
            return []
        return list(transcript)[-limit:]

    async def clear(self, user_id: str) -> int:
        transcript = self._messages.pop(user_id, None)
        return len(transcript) if transcript else 0
