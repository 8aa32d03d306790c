"""Credit account and ledger models."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from projecthub_ai.constants import LedgerAction


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LedgerEntry(BaseModel):
    """One change to a credit balance."""

    action: LedgerAction
    delta: float
    timestamp: datetime = Field(default_factory=utc_now)
    note: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "amount": self.delta,
            "timestamp": self.timestamp.isoformat(),
            "message": self.note,
        }


class CreditAccount(BaseModel):
    """
    Per-user daily credit balance.

    Non-premium balances never go negative. Premium accounts are unmetered;
    only ``lifetime_used`` moves for them.
    """

    user_id: str
    balance: float = Field(default=50, ge=0)
    daily_limit: float = 50
    is_premium: bool = False
    last_reset_date: datetime = Field(default_factory=utc_now)
    lifetime_used: float = 0
    ledger: List[LedgerEntry] = Field(default_factory=list)

    def record(self, action: LedgerAction, delta: float, note: Optional[str] = None, now: Optional[datetime] = None) -> LedgerEntry:
        entry = LedgerEntry(action=action, delta=delta, timestamp=now or utc_now(), note=note)
        self.ledger.append(entry)
        return entry
