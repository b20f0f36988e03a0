"""BankService — moves between liquid and bank balances, and pays interest.

Interest run (daily, driven by the worker):
  - one read-only query lists candidate uuids (bank_balance >= minimum)
  - each account is then settled in its OWN transaction: lock, re-read,
    credit bank += round_half_up(bank x rate / 100), one 'interest' record
  - a failing account is logged and skipped; the rest still get paid

Calling the run twice in one period pays twice. Singular invocation per
period is the scheduler's job.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings
from src.eco_account.application.service import BalanceEngine
from src.eco_account.domain.balance import parse_positive_amount
from src.eco_common.enums import BalanceKind, TransactionType
from src.eco_common.errors import AppError, DepositLimitExceededError, StorageError
from src.eco_common.money import ZERO, MoneyLike, percent_of
from src.eco_common.result import OperationResult, fail, from_error, ok
from src.eco_ledger.domain.models import Account
from src.eco_ledger.domain.repository import AccountRepositoryProtocol
from src.eco_ledger.infrastructure.persistence import AccountRepository

logger = logging.getLogger(__name__)


@dataclass
class InterestSummary:
    candidates: int = 0
    credited: int = 0
    failed: int = 0
    total_interest: Decimal = ZERO
    failed_ids: list[str] = field(default_factory=list)


def calculate_interest(bank_balance: Decimal, rate: Decimal) -> Decimal:
    """bank x rate / 100 rounded half-up: 1000 at 0.1% -> 1.00."""
    return percent_of(bank_balance, rate)


class BankService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        balances: BalanceEngine,
        repo: AccountRepositoryProtocol | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings
        self._balances = balances
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()

    async def deposit_to_bank(
        self, account_id: str, amount: MoneyLike
    ) -> OperationResult[Account]:
        """liquid -> bank. A single deposit may not exceed DAILY_DEPOSIT_LIMIT."""
        try:
            value = parse_positive_amount(amount)
            if value > self._settings.DAILY_DEPOSIT_LIMIT:
                raise DepositLimitExceededError(value, self._settings.DAILY_DEPOSIT_LIMIT)
        except AppError as e:
            return from_error(e)
        return await self._move(
            account_id,
            value,
            source=BalanceKind.LIQUID,
            target=BalanceKind.BANK,
            type=TransactionType.BANK_DEPOSIT,
        )

    async def withdraw_from_bank(
        self, account_id: str, amount: MoneyLike
    ) -> OperationResult[Account]:
        """bank -> liquid. Fails rather than clamps if liquid would pass MAX_BALANCE."""
        try:
            value = parse_positive_amount(amount)
        except AppError as e:
            return from_error(e)
        return await self._move(
            account_id,
            value,
            source=BalanceKind.BANK,
            target=BalanceKind.LIQUID,
            type=TransactionType.BANK_WITHDRAWAL,
        )

    async def calculate_and_apply_interest(self) -> InterestSummary:
        summary = InterestSummary()
        minimum = self._settings.MIN_BALANCE_FOR_INTEREST
        async with self._session_factory() as db:
            try:
                candidates = await self._repo.list_interest_candidates(db, minimum)
            except Exception:
                logger.exception("Interest run could not list candidate accounts")
                return summary
        summary.candidates = len(candidates)

        for account_id in candidates:
            async with self._session_factory() as db:
                try:
                    account, interest = await self._apply_interest(db, account_id)
                    await db.commit()
                except Exception:
                    await db.rollback()
                    logger.exception("Interest failed for account %s", account_id)
                    summary.failed += 1
                    summary.failed_ids.append(account_id)
                    continue
            if account is None:
                continue
            self._balances.publish([account])
            summary.credited += 1
            summary.total_interest += interest

        logger.info(
            "Interest run: candidates=%d credited=%d failed=%d total=%s",
            summary.candidates, summary.credited, summary.failed, summary.total_interest,
        )
        return summary

    async def get_total_bank_money(self) -> Decimal:
        async with self._session_factory() as db:
            try:
                _liquid, bank = await self._repo.total_money(db)
            except Exception:
                logger.exception("get_total_bank_money failed")
                return ZERO
        return bank

    async def _apply_interest(
        self, db: AsyncSession, account_id: str
    ) -> tuple[Account | None, Decimal]:
        locked = await self._balances.lock_accounts(db, [account_id])
        account = locked[account_id]
        # Re-check under the lock: the balance may have dropped since the scan.
        if account.bank_balance < self._settings.MIN_BALANCE_FOR_INTEREST:
            return None, ZERO
        interest = calculate_interest(account.bank_balance, self._settings.INTEREST_RATE)
        if interest <= ZERO:
            return None, ZERO
        account, applied = await self._balances.credit(
            db, account, BalanceKind.BANK, interest
        )
        await self._balances.record_transaction(
            db,
            from_uuid=None,
            to_uuid=account_id,
            amount=applied,
            type=TransactionType.INTEREST,
            description=f"Interest at {self._settings.INTEREST_RATE}%",
        )
        return account, applied

    async def _move(
        self,
        account_id: str,
        amount: Decimal,
        source: BalanceKind,
        target: BalanceKind,
        type: TransactionType,
    ) -> OperationResult[Account]:
        async with self._session_factory() as db:
            try:
                locked = await self._balances.lock_accounts(db, [account_id])
                account, _ = await self._balances.debit(
                    db, locked[account_id], source, amount, count=False
                )
                account, _ = await self._balances.credit(
                    db, account, target, amount, saturate=False, count=False
                )
                await self._balances.record_transaction(
                    db,
                    from_uuid=account_id,
                    to_uuid=account_id,
                    amount=amount,
                    type=type,
                    description=f"{source.value} -> {target.value}",
                )
                await db.commit()
            except AppError as e:
                await db.rollback()
                logger.debug("%s rejected for %s: %s", type.value, account_id, e.message)
                return from_error(e)
            except Exception:
                await db.rollback()
                logger.exception("%s failed for account %s", type.value, account_id)
                return fail(StorageError().code, "Bank operation failed, nothing was moved")

        self._balances.publish([account])
        return ok(account)
