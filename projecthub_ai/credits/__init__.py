"""Chat credit accounting."""

from projecthub_ai.credits.meter import CreditMeter
from projecthub_ai.credits.models import CreditAccount, LedgerEntry

__all__ = ["CreditAccount", "CreditMeter", "LedgerEntry"]
