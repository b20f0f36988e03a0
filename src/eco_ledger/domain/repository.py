"""Repository Protocols — dependency inversion for testability.

Unit tests inject an in-memory fake that conforms to these Protocols.
Infrastructure layer provides the PostgreSQL implementation.
"""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.eco_ledger.domain.models import Account, TransactionRecord


class AccountRepositoryProtocol(Protocol):
    async def get_account(self, db: AsyncSession, uuid: str) -> Account | None: ...

    async def create_account(
        self, db: AsyncSession, uuid: str, username: str, starting_balance: Decimal
    ) -> Account: ...

    async def touch_account(
        self, db: AsyncSession, uuid: str, username: str | None
    ) -> Account | None: ...

    async def lock_account(self, db: AsyncSession, uuid: str) -> Account | None: ...

    async def update_balances(
        self,
        db: AsyncSession,
        uuid: str,
        balance: Decimal,
        bank_balance: Decimal,
        earned: Decimal,
        spent: Decimal,
    ) -> Account: ...

    async def list_interest_candidates(
        self, db: AsyncSession, min_bank_balance: Decimal
    ) -> list[str]: ...

    async def top_balances(self, db: AsyncSession, limit: int) -> list[Account]: ...

    async def total_money(self, db: AsyncSession) -> tuple[Decimal, Decimal]: ...


class TransactionLogRepositoryProtocol(Protocol):
    async def append(
        self,
        db: AsyncSession,
        from_uuid: str | None,
        to_uuid: str | None,
        amount: Decimal,
        type: str,
        description: str | None,
    ) -> TransactionRecord: ...

    async def list_for_account(
        self,
        db: AsyncSession,
        uuid: str,
        limit: int,
        before_id: int | None,
    ) -> list[TransactionRecord]: ...
