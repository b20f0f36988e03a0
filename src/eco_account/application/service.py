"""BalanceEngine — atomic get/set/add/remove of liquid and bank balances.

Every public mutation runs in its own session/transaction:
  1. SELECT ... FOR UPDATE on the players row (lazily inserting it first)
  2. compute the new value with the pure rules in domain/balance.py
  3. UPDATE players + INSERT transactions
  4. COMMIT, then publish the committed row to the account cache

Public methods never raise: validation/business failures return False (or 0
for reads), storage failures are rolled back, logged and return False.

The credit()/debit()/lock_accounts() primitives take the caller's session and
are what TransferEngine, AuctionEngine and BankService compose inside their
own single transaction. They raise AppError; the caller owns commit/rollback.
"""

import dataclasses
import logging
from collections.abc import Iterable
from datetime import timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings
from src.eco_account.domain.balance import (
    check_settable,
    parse_amount,
    parse_positive_amount,
    saturating_add,
    saturating_sub,
    upper_bound,
)
from src.eco_account.domain.cache import AccountCache, CacheEntry
from src.eco_common.datetime_utils import Clock, utc_now
from src.eco_common.enums import BalanceKind, TransactionType
from src.eco_common.errors import (
    AppError,
    BalanceLimitExceededError,
    InsufficientBalanceError,
    InternalError,
)
from src.eco_common.money import ZERO, MoneyLike
from src.eco_ledger.domain.models import Account, TransactionRecord
from src.eco_ledger.domain.repository import (
    AccountRepositoryProtocol,
    TransactionLogRepositoryProtocol,
)
from src.eco_ledger.infrastructure.persistence import (
    AccountRepository,
    TransactionLogRepository,
)

logger = logging.getLogger(__name__)

MAX_USERNAME_LENGTH = 16  # players.username VARCHAR(16)


class BalanceEngine:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        repo: AccountRepositoryProtocol | None = None,
        log_repo: TransactionLogRepositoryProtocol | None = None,
        cache: AccountCache | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()
        self._log_repo: TransactionLogRepositoryProtocol = (
            log_repo or TransactionLogRepository()
        )
        self._cache = cache or AccountCache(
            settings.MAX_CACHED_PLAYERS, timedelta(seconds=settings.CACHE_TTL_SECONDS)
        )
        self._clock = clock

    @property
    def cache(self) -> AccountCache:
        return self._cache

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    async def get_balance(
        self, account_id: str, which: BalanceKind = BalanceKind.LIQUID
    ) -> Decimal:
        """Current balance; unknown accounts are created with STARTING_BALANCE.

        Served from the cache while the entry is younger than CACHE_TTL_SECONDS,
        otherwise re-read from the store. Storage failure is logged and
        reported as 0.
        """
        entry = self._cache.get_fresh(account_id, self._clock())
        if entry is not None:
            return entry.account.amount(which)
        account = await self.get_account(account_id)
        if account is None:
            return ZERO
        return account.amount(which)

    async def set_balance(
        self, account_id: str, which: BalanceKind, amount: MoneyLike
    ) -> bool:
        try:
            value = parse_amount(amount)
            check_settable(account_id, which, value, self._settings.MAX_BALANCE)
        except AppError as e:
            logger.debug("set_balance rejected for %s: %s", account_id, e.message)
            return False

        async with self._session_factory() as db:
            try:
                account = await self._lock_or_create(db, account_id)
                previous = account.amount(which)
                account = await self._write(db, account, which, value)
                await self.record_transaction(
                    db,
                    from_uuid=None,
                    to_uuid=account_id,
                    amount=value,
                    type=TransactionType.BALANCE_SET,
                    description=f"{which.value} balance set from {previous} to {value}",
                )
                await db.commit()
            except Exception:
                await db.rollback()
                logger.exception("set_balance failed for account %s", account_id)
                return False
        self.publish([account])
        return True

    async def add_money(
        self, account_id: str, which: BalanceKind, amount: MoneyLike
    ) -> bool:
        """Saturating credit: adding past MAX_BALANCE stops at the cap."""
        try:
            value = parse_positive_amount(amount)
        except AppError as e:
            logger.debug("add_money rejected for %s: %s", account_id, e.message)
            return False

        async with self._session_factory() as db:
            try:
                account = await self._lock_or_create(db, account_id)
                account, applied = await self.credit(db, account, which, value)
                if applied > ZERO:
                    await self.record_transaction(
                        db,
                        from_uuid=None,
                        to_uuid=account_id,
                        amount=applied,
                        type=TransactionType.DEPOSIT,
                        description=f"Added {applied} to {which.value} balance",
                    )
                await db.commit()
            except Exception:
                await db.rollback()
                logger.exception("add_money failed for account %s", account_id)
                return False
        self.publish([account])
        return True

    async def remove_money(
        self, account_id: str, which: BalanceKind, amount: MoneyLike
    ) -> bool:
        """Saturating debit: removing more than available floors at 0."""
        try:
            value = parse_positive_amount(amount)
        except AppError as e:
            logger.debug("remove_money rejected for %s: %s", account_id, e.message)
            return False

        async with self._session_factory() as db:
            try:
                account = await self._lock_or_create(db, account_id)
                account, applied = await self.debit(
                    db, account, which, value, require_funds=False
                )
                if applied > ZERO:
                    await self.record_transaction(
                        db,
                        from_uuid=account_id,
                        to_uuid=None,
                        amount=applied,
                        type=TransactionType.WITHDRAWAL,
                        description=f"Removed {applied} from {which.value} balance",
                    )
                await db.commit()
            except Exception:
                await db.rollback()
                logger.exception("remove_money failed for account %s", account_id)
                return False
        self.publish([account])
        return True

    async def has(
        self, account_id: str, which: BalanceKind, amount: MoneyLike
    ) -> bool:
        try:
            value = parse_amount(amount)
        except AppError:
            return False
        return await self.get_balance(account_id, which) >= value

    # ------------------------------------------------------------------
    # Account queries
    # ------------------------------------------------------------------

    async def get_account(self, account_id: str) -> Account | None:
        """Full snapshot, creating the account on first sight. None on storage failure."""
        async with self._session_factory() as db:
            try:
                account = await self._repo.get_account(db, account_id)
                if account is None:
                    account = await self._repo.create_account(
                        db,
                        account_id,
                        self._settings.DEFAULT_USERNAME,
                        self._settings.STARTING_BALANCE,
                    )
                    logger.info("Created account %s", account_id)
                await db.commit()
            except Exception:
                await db.rollback()
                logger.exception("get_account failed for account %s", account_id)
                return None
        self.publish([account])
        return account

    async def ensure_account(self, account_id: str, username: str) -> Account | None:
        """Create the account if missing, otherwise refresh username and last_seen."""
        username = username[:MAX_USERNAME_LENGTH]
        async with self._session_factory() as db:
            try:
                account = await self._repo.touch_account(db, account_id, username)
                if account is None:
                    account = await self._repo.create_account(
                        db, account_id, username, self._settings.STARTING_BALANCE
                    )
                    logger.info("Created account %s (%s)", account_id, username)
                await db.commit()
            except Exception:
                await db.rollback()
                logger.exception("ensure_account failed for account %s", account_id)
                return None
        self.publish([account])
        return account

    async def get_top_balances(self, limit: int = 10) -> list[Account]:
        async with self._session_factory() as db:
            try:
                return await self._repo.top_balances(db, limit)
            except Exception:
                logger.exception("get_top_balances failed")
                return []

    async def get_total_money(self) -> Decimal:
        """Sum of all liquid balances."""
        async with self._session_factory() as db:
            try:
                liquid, _bank = await self._repo.total_money(db)
            except Exception:
                logger.exception("get_total_money failed")
                return ZERO
        return liquid

    async def get_transaction_history(
        self, account_id: str, limit: int = 20, before_id: int | None = None
    ) -> list[TransactionRecord]:
        """Newest first. Pass the last id of a page as before_id for the next one."""
        async with self._session_factory() as db:
            try:
                return await self._log_repo.list_for_account(
                    db, account_id, limit, before_id
                )
            except Exception:
                logger.exception("get_transaction_history failed for %s", account_id)
                return []

    # ------------------------------------------------------------------
    # In-transaction primitives (caller owns the session)
    # ------------------------------------------------------------------

    async def lock_accounts(
        self, db: AsyncSession, account_ids: Iterable[str]
    ) -> dict[str, Account]:
        """Row-lock every account in ascending uuid order.

        All engines lock through here, so two transactions touching the same
        pair of accounts always acquire them in the same order.
        """
        locked: dict[str, Account] = {}
        for account_id in sorted(set(account_ids)):
            locked[account_id] = await self._lock_or_create(db, account_id)
        return locked

    async def credit(
        self,
        db: AsyncSession,
        account: Account,
        which: BalanceKind,
        amount: Decimal,
        *,
        saturate: bool = True,
        count: bool = True,
    ) -> tuple[Account, Decimal]:
        """Add amount to a locked account. Returns (updated account, amount applied).

        saturate=False raises BalanceLimitExceededError instead of clamping.
        count=False leaves total_earned untouched (bank <-> liquid moves).
        """
        current = account.amount(which)
        high = upper_bound(which, self._settings.MAX_BALANCE)
        if not saturate and high is not None and current + amount > high:
            raise BalanceLimitExceededError(account.uuid, high)
        new_value = saturating_add(current, amount, high)
        applied = new_value - current
        updated = await self._write(
            db, account, which, new_value, earned=applied if count else ZERO
        )
        return updated, applied

    async def debit(
        self,
        db: AsyncSession,
        account: Account,
        which: BalanceKind,
        amount: Decimal,
        *,
        require_funds: bool = True,
        count: bool = True,
    ) -> tuple[Account, Decimal]:
        """Subtract amount from a locked account. Returns (updated account, amount applied).

        require_funds=True raises InsufficientBalanceError instead of flooring at 0.
        """
        current = account.amount(which)
        if require_funds and current < amount:
            raise InsufficientBalanceError(amount, current)
        new_value = saturating_sub(current, amount)
        applied = current - new_value
        updated = await self._write(
            db, account, which, new_value, spent=applied if count else ZERO
        )
        return updated, applied

    async def record_transaction(
        self,
        db: AsyncSession,
        from_uuid: str | None,
        to_uuid: str | None,
        amount: Decimal,
        type: TransactionType,
        description: str | None = None,
    ) -> TransactionRecord:
        return await self._log_repo.append(
            db, from_uuid, to_uuid, amount, type.value, description
        )

    def publish(self, accounts: Iterable[Account]) -> None:
        """Cache rows that have just been committed or read.

        A row older than the cached one (an earlier writer publishing late)
        is dropped.
        """
        now = self._clock()
        for account in accounts:
            entry = CacheEntry(dataclasses.replace(account), now)
            if not self._cache.put_if_newer(entry):
                logger.debug("Skipped stale cache write for %s", account.uuid)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _lock_or_create(self, db: AsyncSession, account_id: str) -> Account:
        account = await self._repo.lock_account(db, account_id)
        if account is None:
            await self._repo.create_account(
                db,
                account_id,
                self._settings.DEFAULT_USERNAME,
                self._settings.STARTING_BALANCE,
            )
            logger.info("Created account %s", account_id)
            account = await self._repo.lock_account(db, account_id)
            if account is None:
                raise InternalError(f"Account {account_id} vanished after insert")
        return account

    async def _write(
        self,
        db: AsyncSession,
        account: Account,
        which: BalanceKind,
        new_value: Decimal,
        earned: Decimal = ZERO,
        spent: Decimal = ZERO,
    ) -> Account:
        balance = new_value if which is BalanceKind.LIQUID else account.balance
        bank_balance = new_value if which is BalanceKind.BANK else account.bank_balance
        return await self._repo.update_balances(
            db, account.uuid, balance, bank_balance, earned, spent
        )
