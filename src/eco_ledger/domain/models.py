"""Domain models for eco_ledger — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.eco_common.enums import BalanceKind
from src.eco_common.money import ZERO


@dataclass
class Account:
    uuid: str                        # stable player identifier
    username: str
    balance: Decimal                 # liquid, 0 <= balance <= MAX_BALANCE
    bank_balance: Decimal            # banked, >= 0
    total_earned: Decimal = ZERO
    total_spent: Decimal = ZERO
    created_at: datetime | None = None
    last_seen: datetime | None = None
    last_updated: datetime | None = None

    def amount(self, kind: BalanceKind) -> Decimal:
        return self.balance if kind is BalanceKind.LIQUID else self.bank_balance


@dataclass
class TransactionRecord:
    id: int                          # BIGSERIAL
    from_uuid: str | None            # None = minted by the system
    to_uuid: str | None              # None = burned / left the economy
    amount: Decimal
    type: str                        # TransactionType value
    description: str | None = None
    timestamp: datetime | None = None
