"""TransferEngine — peer-to-peer money movement.

Pre-checks (no I/O): amount >= MIN_TRANSACTION, sender != receiver, sender
cooldown, per-minute rate. Then one transaction:

    lock both players rows (ascending uuid)
    debit sender the full amount   (funds re-checked under the lock)
    credit receiver amount - fee   (strict: over MAX_BALANCE fails the transfer)
    append one 'transfer' record
    COMMIT

The fee is removed from circulation. Trackers and cache are only updated after
the commit succeeds, so a rolled-back transfer leaves no trace anywhere.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings
from src.eco_account.application.service import BalanceEngine
from src.eco_account.domain.balance import parse_amount
from src.eco_common.datetime_utils import Clock, utc_now
from src.eco_common.enums import BalanceKind, TransactionType
from src.eco_common.errors import (
    AppError,
    BelowMinimumTransactionError,
    SelfTransferError,
    StorageError,
)
from src.eco_common.money import MoneyLike, percent_of
from src.eco_common.result import OperationResult, fail, from_error, ok
from src.eco_ledger.domain.models import Account
from src.eco_transfer.domain.limits import TransferTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferReceipt:
    transaction_id: int
    from_uuid: str
    to_uuid: str
    amount: Decimal      # debited from the sender
    fee: Decimal         # destroyed
    net_amount: Decimal  # credited to the receiver
    sender_balance: Decimal
    receiver_balance: Decimal


def calculate_fee(amount: Decimal, fee_percentage: Decimal) -> tuple[Decimal, Decimal]:
    """Return (fee, net). fee = amount x pct / 100, rounded half-up."""
    fee = percent_of(amount, fee_percentage)
    return fee, amount - fee


class TransferEngine:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        balances: BalanceEngine,
        tracker: TransferTracker | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings
        self._balances = balances
        self._tracker = tracker or TransferTracker(
            settings.TRANSACTION_COOLDOWN_SECONDS,
            settings.MAX_TRANSACTIONS_PER_MINUTE,
        )
        self._clock = clock

    @property
    def tracker(self) -> TransferTracker:
        return self._tracker

    async def transfer(
        self, from_id: str, to_id: str, amount: MoneyLike
    ) -> OperationResult[TransferReceipt]:
        now = self._clock()
        try:
            value = parse_amount(amount)
            if value < self._settings.MIN_TRANSACTION:
                raise BelowMinimumTransactionError(value, self._settings.MIN_TRANSACTION)
            if from_id == to_id:
                raise SelfTransferError()
            self._tracker.check(from_id, now)
        except AppError as e:
            logger.debug("Transfer %s -> %s rejected: %s", from_id, to_id, e.message)
            return from_error(e)

        fee, net = calculate_fee(value, self._settings.TRANSACTION_FEE)

        async with self._session_factory() as db:
            try:
                receipt, accounts = await self._execute(db, from_id, to_id, value, fee, net)
                await db.commit()
            except AppError as e:
                await db.rollback()
                logger.debug("Transfer %s -> %s rejected: %s", from_id, to_id, e.message)
                return from_error(e)
            except Exception:
                await db.rollback()
                logger.exception(
                    "Transfer %s -> %s of %s failed, rolled back", from_id, to_id, value
                )
                return fail(StorageError().code, "Transfer failed, no money was moved")

        self._tracker.record(from_id, value, now)
        self._balances.publish(accounts)
        logger.info(
            "Transfer #%d: %s -> %s amount=%s fee=%s",
            receipt.transaction_id, from_id, to_id, value, fee,
        )
        return ok(receipt)

    async def _execute(
        self,
        db: AsyncSession,
        from_id: str,
        to_id: str,
        amount: Decimal,
        fee: Decimal,
        net: Decimal,
    ) -> tuple[TransferReceipt, list[Account]]:
        locked = await self._balances.lock_accounts(db, [from_id, to_id])
        sender, _ = await self._balances.debit(
            db, locked[from_id], BalanceKind.LIQUID, amount
        )
        receiver, _ = await self._balances.credit(
            db, locked[to_id], BalanceKind.LIQUID, net, saturate=False
        )
        description = f"Transfer of {amount}"
        if fee:
            description += f" (fee {fee})"
        record = await self._balances.record_transaction(
            db,
            from_uuid=from_id,
            to_uuid=to_id,
            amount=amount,
            type=TransactionType.TRANSFER,
            description=description,
        )
        receipt = TransferReceipt(
            transaction_id=record.id,
            from_uuid=from_id,
            to_uuid=to_id,
            amount=amount,
            fee=fee,
            net_amount=net,
            sender_balance=sender.balance,
            receiver_balance=receiver.balance,
        )
        return receipt, [sender, receiver]
