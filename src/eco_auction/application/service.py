"""AuctionEngine — listing creation, bidding, cancellation and settlement.

Lock order inside every transaction: auctions row (FOR UPDATE) first, then
players rows in ascending uuid via BalanceEngine.lock_accounts(). Two bids on
the same listing therefore serialize on the listing row, and the floor check
plus update happen under that lock: two bids at the same floor cannot both
succeed.

Money flow:
  bid accepted   bidder liquid -= bid          ('auction_bid', held by the house)
                 previous bidder += their bid  ('auction_refund', unconditional)
  sold           seller += bid - fee           ('auction_sale'; fee destroyed)
  unsold         nothing moves; notifier asks the host to return the item

Notifications go out after the commit and are best-effort.
"""

import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings
from src.eco_account.application.service import BalanceEngine
from src.eco_account.domain.balance import parse_amount, parse_positive_amount
from src.eco_account.domain.cache import BoundedCache
from src.eco_auction.domain.models import (
    AuctionItem,
    AuctionListing,
    BidRecord,
    check_bid,
    check_cancellable,
    check_new_listing,
)
from src.eco_auction.domain.notifier import AuctionNotifier, LoggingNotifier
from src.eco_auction.domain.repository import AuctionRepositoryProtocol
from src.eco_auction.infrastructure.persistence import AuctionRepository
from src.eco_common.datetime_utils import Clock, utc_now
from src.eco_common.enums import AuctionStatus, BalanceKind, TransactionType
from src.eco_common.errors import (
    AppError,
    AuctionLimitExceededError,
    AuctionNotFoundError,
    BidCooldownError,
    InsufficientBalanceError,
    StorageError,
)
from src.eco_common.money import ZERO, MoneyLike, percent_of
from src.eco_common.result import OperationResult, fail, from_error, ok
from src.eco_ledger.domain.models import Account

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "misc"


@dataclass
class SettlementSummary:
    processed: int = 0
    sold: int = 0
    unsold: int = 0
    skipped: int = 0        # already settled by a concurrent sweep
    failed: int = 0
    fees_collected: Decimal = ZERO
    failed_ids: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class _Settlement:
    listing: AuctionListing
    payout: Decimal
    fee: Decimal


class AuctionEngine:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        balances: BalanceEngine,
        repo: AuctionRepositoryProtocol | None = None,
        notifier: AuctionNotifier | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings
        self._balances = balances
        self._repo: AuctionRepositoryProtocol = repo or AuctionRepository()
        self._notifier: AuctionNotifier = notifier or LoggingNotifier()
        self._clock = clock
        # Terminal listings never change again, so only those are cached.
        self._listings: BoundedCache[int, AuctionListing] = BoundedCache(
            settings.MAX_CACHED_PLAYERS
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_auction(
        self,
        seller_id: str,
        item: AuctionItem,
        starting_bid: MoneyLike,
        buyout_price: MoneyLike | None,
        duration_seconds: int,
        category: str = DEFAULT_CATEGORY,
    ) -> OperationResult[AuctionListing]:
        now = self._clock()
        try:
            start = parse_amount(starting_bid)
            buyout = parse_amount(buyout_price) if buyout_price is not None else None
            check_new_listing(
                item.name,
                start,
                buyout,
                duration_seconds,
                category,
                self._settings.AUCTION_DURATIONS,
                self._settings.MAX_CATEGORY_LENGTH,
            )
        except AppError as e:
            logger.debug("create_auction rejected for %s: %s", seller_id, e.message)
            return from_error(e)

        async with self._session_factory() as db:
            try:
                # Seller row lock serializes the per-seller cap check.
                await self._balances.lock_accounts(db, [seller_id])
                active = await self._repo.count_active_by_seller(db, seller_id, now)
                if active >= self._settings.MAX_AUCTIONS_PER_PLAYER:
                    raise AuctionLimitExceededError(
                        seller_id, self._settings.MAX_AUCTIONS_PER_PLAYER
                    )
                listing = await self._repo.create_listing(
                    db,
                    seller_uuid=seller_id,
                    item_name=item.name,
                    item_data=item.data,
                    starting_bid=start,
                    buyout_price=buyout,
                    duration_seconds=duration_seconds,
                    start_time=now,
                    end_time=now + timedelta(seconds=duration_seconds),
                    category=category,
                )
                await db.commit()
            except AppError as e:
                await db.rollback()
                logger.debug("create_auction rejected for %s: %s", seller_id, e.message)
                return from_error(e)
            except Exception:
                await db.rollback()
                logger.exception("create_auction failed for seller %s", seller_id)
                return fail(StorageError().code, "Auction could not be created")

        logger.info(
            "Auction %d created by %s: %s from %s", listing.id, seller_id, item.name, start
        )
        return ok(listing)

    async def place_bid(
        self, bidder_id: str, auction_id: int, bid_amount: MoneyLike
    ) -> OperationResult[BidRecord]:
        now = self._clock()
        try:
            amount = parse_positive_amount(bid_amount)
        except AppError as e:
            return from_error(e)

        async with self._session_factory() as db:
            try:
                bid, listing, previous, refunded, accounts = await self._place_bid_inner(
                    db, bidder_id, auction_id, amount, now
                )
                await db.commit()
            except AppError as e:
                await db.rollback()
                logger.debug(
                    "Bid by %s on auction %d rejected: %s", bidder_id, auction_id, e.message
                )
                return from_error(e)
            except Exception:
                await db.rollback()
                logger.exception("place_bid failed: bidder=%s auction=%d", bidder_id, auction_id)
                return fail(StorageError().code, "Bid could not be placed")

        self._balances.publish(accounts)
        logger.info("Auction %d: %s bid %s", auction_id, bidder_id, amount)
        if previous is not None and previous != bidder_id:
            await self._notify("outbid", self._notifier.outbid(listing, previous, refunded))
        return ok(bid)

    async def cancel_auction(
        self, caller_id: str, auction_id: int
    ) -> OperationResult[AuctionListing]:
        async with self._session_factory() as db:
            try:
                listing = await self._repo.lock_listing(db, auction_id)
                if listing is None:
                    raise AuctionNotFoundError(auction_id)
                check_cancellable(listing, caller_id)
                listing = await self._repo.set_status(
                    db, auction_id, AuctionStatus.CANCELLED.value
                )
                await db.commit()
            except AppError as e:
                await db.rollback()
                logger.debug("cancel_auction %d rejected: %s", auction_id, e.message)
                return from_error(e)
            except Exception:
                await db.rollback()
                logger.exception("cancel_auction failed for auction %d", auction_id)
                return fail(StorageError().code, "Auction could not be cancelled")

        self._listings.put(listing.id, listing)
        logger.info("Auction %d cancelled by %s", auction_id, caller_id)
        await self._notify("auction_cancelled", self._notifier.auction_cancelled(listing))
        return ok(listing)

    async def process_ended_auctions(self) -> SettlementSummary:
        """Settle every ACTIVE listing whose end_time has passed.

        Each listing is its own transaction; one failure is logged and the
        sweep moves on. Running the sweep twice settles nothing twice.
        """
        now = self._clock()
        summary = SettlementSummary()
        async with self._session_factory() as db:
            try:
                expired = await self._repo.list_expired_ids(db, now)
            except Exception:
                logger.exception("Auction sweep could not list expired auctions")
                return summary

        for auction_id in expired:
            async with self._session_factory() as db:
                try:
                    settled, accounts = await self._settle_one(db, auction_id, now)
                    await db.commit()
                except Exception:
                    await db.rollback()
                    logger.exception("Settlement failed for auction %d", auction_id)
                    summary.failed += 1
                    summary.failed_ids.append(auction_id)
                    continue

            if settled is None:
                summary.skipped += 1
                continue
            summary.processed += 1
            self._balances.publish(accounts)
            self._listings.put(auction_id, settled.listing)
            listing = settled.listing
            if listing.highest_bidder_uuid is not None:
                summary.sold += 1
                summary.fees_collected += settled.fee
                await self._notify(
                    "auction_won",
                    self._notifier.auction_won(listing, listing.highest_bidder_uuid),
                )
                await self._notify(
                    "auction_sold",
                    self._notifier.auction_sold(listing, settled.payout, settled.fee),
                )
            else:
                summary.unsold += 1
                await self._notify("auction_unsold", self._notifier.auction_unsold(listing))

        if expired:
            logger.info(
                "Auction sweep: processed=%d sold=%d unsold=%d skipped=%d failed=%d",
                summary.processed, summary.sold, summary.unsold,
                summary.skipped, summary.failed,
            )
        return summary

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_auction(self, auction_id: int) -> AuctionListing | None:
        cached = self._listings.get(auction_id)
        if cached is not None:
            return cached
        async with self._session_factory() as db:
            try:
                listing = await self._repo.get_listing(db, auction_id)
            except Exception:
                logger.exception("get_auction failed for auction %d", auction_id)
                return None
        if listing is not None and listing.is_terminal:
            self._listings.put(auction_id, listing)
        return listing

    async def get_active_auctions(self) -> list[AuctionListing]:
        """Open listings, soonest-ending first."""
        return await self._list_active(None)

    async def get_auctions_by_category(self, category: str) -> list[AuctionListing]:
        return await self._list_active(category)

    async def get_auctions_by_seller(self, seller_id: str) -> list[AuctionListing]:
        """Every listing of the seller in any status, newest first."""
        async with self._session_factory() as db:
            try:
                return await self._repo.list_by_seller(db, seller_id)
            except Exception:
                logger.exception("get_auctions_by_seller failed for %s", seller_id)
                return []

    async def get_bid_history(self, auction_id: int) -> list[BidRecord]:
        async with self._session_factory() as db:
            try:
                return await self._repo.list_bids(db, auction_id)
            except Exception:
                logger.exception("get_bid_history failed for auction %d", auction_id)
                return []

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _list_active(self, category: str | None) -> list[AuctionListing]:
        async with self._session_factory() as db:
            try:
                return await self._repo.list_active(db, self._clock(), category)
            except Exception:
                logger.exception("Listing active auctions failed (category=%s)", category)
                return []

    async def _place_bid_inner(
        self,
        db: AsyncSession,
        bidder_id: str,
        auction_id: int,
        amount: Decimal,
        now: datetime,
    ) -> tuple[BidRecord, AuctionListing, str | None, Decimal, list[Account]]:
        listing = await self._repo.lock_listing(db, auction_id)
        if listing is None:
            raise AuctionNotFoundError(auction_id)
        check_bid(listing, bidder_id, amount, self._settings.MINIMUM_BID_INCREASE, now)

        previous = listing.highest_bidder_uuid
        refunded = listing.current_bid if previous is not None else ZERO
        involved = [bidder_id] + ([previous] if previous is not None else [])
        locked = await self._balances.lock_accounts(db, involved)

        # Funds before cooldown; raising your own bid counts the refund.
        available = locked[bidder_id].balance
        if previous == bidder_id:
            available += refunded
        if available < amount:
            raise InsufficientBalanceError(amount, available)

        last_bid = await self._repo.latest_bid_time(db, auction_id, bidder_id)
        cooldown = timedelta(seconds=self._settings.BID_COOLDOWN_SECONDS)
        if last_bid is not None and now - last_bid < cooldown:
            raise BidCooldownError(bidder_id, auction_id)

        if previous is not None and refunded > ZERO:
            # Saturating: whatever would pass MAX_BALANCE is lost, the bid still stands.
            locked[previous], refunded = await self._balances.credit(
                db, locked[previous], BalanceKind.LIQUID, refunded
            )
            if refunded > ZERO:
                await self._balances.record_transaction(
                    db,
                    from_uuid=None,
                    to_uuid=previous,
                    amount=refunded,
                    type=TransactionType.AUCTION_REFUND,
                    description=f"Outbid on auction #{auction_id}",
                )

        locked[bidder_id], _ = await self._balances.debit(
            db, locked[bidder_id], BalanceKind.LIQUID, amount
        )
        await self._balances.record_transaction(
            db,
            from_uuid=bidder_id,
            to_uuid=None,
            amount=amount,
            type=TransactionType.AUCTION_BID,
            description=f"Bid on auction #{auction_id}",
        )

        listing = await self._repo.update_bid(db, auction_id, amount, bidder_id)
        bid = await self._repo.insert_bid(db, auction_id, bidder_id, amount, now)
        return bid, listing, previous, refunded, list(locked.values())

    async def _settle_one(
        self, db: AsyncSession, auction_id: int, now: datetime
    ) -> tuple[_Settlement | None, list[Account]]:
        listing = await self._repo.lock_listing(db, auction_id)
        if listing is None or not listing.is_active or not listing.is_expired(now):
            return None, []

        listing = await self._repo.set_status(db, auction_id, AuctionStatus.ENDED.value)
        winner = listing.highest_bidder_uuid
        if winner is None:
            return _Settlement(listing, ZERO, ZERO), []

        fee = percent_of(listing.current_bid, self._settings.FEE_PERCENTAGE)
        payout = listing.current_bid - fee
        locked = await self._balances.lock_accounts(db, [listing.seller_uuid])
        seller, _ = await self._balances.credit(
            db, locked[listing.seller_uuid], BalanceKind.LIQUID, payout
        )
        await self._balances.record_transaction(
            db,
            from_uuid=winner,
            to_uuid=listing.seller_uuid,
            amount=payout,
            type=TransactionType.AUCTION_SALE,
            description=f"Auction #{auction_id} sold for {listing.current_bid} (fee {fee})",
        )
        return _Settlement(listing, payout, fee), [seller]

    async def _notify(self, event: str, call: Awaitable[None]) -> None:
        try:
            await call
        except Exception:
            logger.exception("Auction notifier failed on %s", event)
