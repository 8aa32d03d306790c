"""
Credit metering rules.

The meter holds the pricing and reset rules and applies them to a
``CreditAccount`` in memory. Stores are responsible for making each
read-modify-write atomic per account.
"""

from datetime import date, datetime
from typing import Optional, Union

from projecthub_ai.config import settings
from projecthub_ai.constants import CREDIT_COST_FULL, CREDIT_COST_HALF, ChatMode, LedgerAction
from projecthub_ai.credits.models import CreditAccount, utc_now
from projecthub_ai.exceptions import ValidationError
from projecthub_ai.logger import get_logger

logger = get_logger(__name__)

UNMETERED = -1


def local_date(moment: datetime) -> date:
    """Calendar date of a timestamp in the server's local time zone."""
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone().date()


class CreditMeter:
    """Pricing, daily reset and debit rules for chat credits."""

    def __init__(self, long_message_threshold: Optional[int] = None):
        self.long_message_threshold = long_message_threshold or settings.long_message_threshold

    def cost(self, message: str, mode: Union[ChatMode, str]) -> float:
        """
        Price one chat turn.

        Coding turns always cost a full credit; other modes cost half a credit
        unless the message is long.
        """
        if ChatMode(mode) is ChatMode.CODING:
            return CREDIT_COST_FULL
        if len(message) >= self.long_message_threshold:
            return CREDIT_COST_FULL
        return CREDIT_COST_HALF

    def needs_reset(self, account: CreditAccount, now: Optional[datetime] = None) -> bool:
        """Whether the account's last reset happened on an earlier local day."""
        now = now or utc_now()
        return not account.is_premium and local_date(now) > local_date(account.last_reset_date)

    def ensure_daily_reset(self, account: CreditAccount, now: Optional[datetime] = None) -> bool:
        """
        Refill the balance once per calendar day.

        Returns:
            bool: True if a reset was applied
        """
        now = now or utc_now()
        if not self.needs_reset(account, now):
            return False

        account.balance = account.daily_limit
        account.last_reset_date = now
        account.record(LedgerAction.RESET, account.daily_limit, "Daily credits reset", now)
        logger.debug(f"Daily credits reset for {account.user_id}")
        return True

    def has_sufficient(self, account: CreditAccount, amount: float) -> bool:
        return account.is_premium or account.balance >= amount

    def remaining(self, account: CreditAccount) -> float:
        """Balance as shown to clients; ``-1`` means unmetered."""
        return UNMETERED if account.is_premium else account.balance

    def try_debit(self, account: CreditAccount, amount: float, now: Optional[datetime] = None) -> bool:
        """
        Debit credits for a completed turn.

        Returns:
            bool: False when the balance cannot cover the amount; the account
                  is left untouched in that case
        """
        if account.is_premium:
            account.lifetime_used += amount
            return True

        self.ensure_daily_reset(account, now)

        if account.balance < amount:
            return False

        account.balance -= amount
        account.lifetime_used += amount
        account.record(LedgerAction.USE, -amount, f"Used {amount} credits for AI chat", now)
        return True

    def grant(self, account: CreditAccount, amount: float, note: Optional[str] = None) -> None:
        """Administrative top-up."""
        if amount <= 0:
            raise ValidationError("Grant amount must be positive")
        account.balance += amount
        account.record(LedgerAction.ADMIN_ADD, amount, note or f"Admin added {amount} credits")

    def deduct(self, account: CreditAccount, amount: float, note: Optional[str] = None) -> None:
        """Administrative deduction, clamped at zero."""
        if amount <= 0:
            raise ValidationError("Deduct amount must be positive")
        applied = min(amount, account.balance)
        account.balance -= applied
        account.record(LedgerAction.ADMIN_DEDUCT, -applied, note or f"Admin deducted {applied} credits")

    def activate_premium(self, account: CreditAccount) -> None:
        """Switch the account to unmetered usage."""
        if account.is_premium:
            return
        account.is_premium = True
        account.record(LedgerAction.PREMIUM_ACTIVATED, 0, "Premium activated")
