"""AuctionRepository — raw SQL over auctions / auction_bids.

The auctions row is the serialization unit for bidding: place_bid and the
settlement sweep take it with FOR UPDATE before touching any players row.
Timestamps for end_time comparisons come from the caller's clock (:now) so
tests and the engine agree on "now".
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.eco_auction.domain.models import AuctionListing, BidRecord
from src.eco_common.errors import AuctionNotFoundError, InternalError

_LISTING_COLUMNS = """
    id, seller_uuid, item_name, item_data, starting_bid, buyout_price,
    current_bid, highest_bidder_uuid, duration_seconds, start_time, end_time,
    status, category, created_at
"""

_CREATE_LISTING_SQL = text(f"""
    INSERT INTO auctions (
        seller_uuid, item_name, item_data, starting_bid, buyout_price,
        current_bid, duration_seconds, start_time, end_time, status, category
    ) VALUES (
        :seller_uuid, :item_name, :item_data, :starting_bid, :buyout_price,
        0, :duration_seconds, :start_time, :end_time, 'ACTIVE', :category
    )
    RETURNING {_LISTING_COLUMNS}
""")

_GET_LISTING_SQL = text(f"""
    SELECT {_LISTING_COLUMNS}
    FROM auctions
    WHERE id = :auction_id
""")

_LOCK_LISTING_SQL = text(f"""
    SELECT {_LISTING_COLUMNS}
    FROM auctions
    WHERE id = :auction_id
    FOR UPDATE
""")

_UPDATE_BID_SQL = text(f"""
    UPDATE auctions
    SET current_bid = :current_bid,
        highest_bidder_uuid = :highest_bidder_uuid
    WHERE id = :auction_id AND status = 'ACTIVE'
    RETURNING {_LISTING_COLUMNS}
""")

_SET_STATUS_SQL = text(f"""
    UPDATE auctions
    SET status = :status
    WHERE id = :auction_id
    RETURNING {_LISTING_COLUMNS}
""")

_COUNT_ACTIVE_BY_SELLER_SQL = text("""
    SELECT COUNT(*) AS n
    FROM auctions
    WHERE seller_uuid = :seller_uuid AND status = 'ACTIVE' AND end_time > :now
""")

_LIST_ACTIVE_SQL = text(f"""
    SELECT {_LISTING_COLUMNS}
    FROM auctions
    WHERE status = 'ACTIVE'
      AND end_time > :now
      AND (CAST(:category AS VARCHAR) IS NULL OR category = CAST(:category AS VARCHAR))
    ORDER BY end_time ASC, id ASC
""")

_LIST_BY_SELLER_SQL = text(f"""
    SELECT {_LISTING_COLUMNS}
    FROM auctions
    WHERE seller_uuid = :seller_uuid
    ORDER BY created_at DESC, id DESC
""")

_LIST_EXPIRED_IDS_SQL = text("""
    SELECT id
    FROM auctions
    WHERE status = 'ACTIVE' AND end_time <= :now
    ORDER BY end_time ASC, id ASC
""")

_BID_COLUMNS = """
    id, auction_id, bidder_uuid, bid_amount, "timestamp"
"""

_INSERT_BID_SQL = text(f"""
    INSERT INTO auction_bids (auction_id, bidder_uuid, bid_amount, "timestamp")
    VALUES (:auction_id, :bidder_uuid, :bid_amount, :timestamp)
    RETURNING {_BID_COLUMNS}
""")

_LATEST_BID_TIME_SQL = text("""
    SELECT "timestamp"
    FROM auction_bids
    WHERE auction_id = :auction_id AND bidder_uuid = :bidder_uuid
    ORDER BY "timestamp" DESC
    LIMIT 1
""")

_LIST_BIDS_SQL = text(f"""
    SELECT {_BID_COLUMNS}
    FROM auction_bids
    WHERE auction_id = :auction_id
    ORDER BY id ASC
""")


def _row_to_listing(row: object) -> AuctionListing:
    return AuctionListing(
        id=row.id,  # type: ignore[attr-defined]
        seller_uuid=row.seller_uuid,  # type: ignore[attr-defined]
        item_name=row.item_name,  # type: ignore[attr-defined]
        item_data=row.item_data,  # type: ignore[attr-defined]
        starting_bid=row.starting_bid,  # type: ignore[attr-defined]
        buyout_price=row.buyout_price,  # type: ignore[attr-defined]
        current_bid=row.current_bid,  # type: ignore[attr-defined]
        highest_bidder_uuid=row.highest_bidder_uuid,  # type: ignore[attr-defined]
        duration_seconds=row.duration_seconds,  # type: ignore[attr-defined]
        start_time=row.start_time,  # type: ignore[attr-defined]
        end_time=row.end_time,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        category=row.category,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_bid(row: object) -> BidRecord:
    return BidRecord(
        id=row.id,  # type: ignore[attr-defined]
        auction_id=row.auction_id,  # type: ignore[attr-defined]
        bidder_uuid=row.bidder_uuid,  # type: ignore[attr-defined]
        bid_amount=row.bid_amount,  # type: ignore[attr-defined]
        timestamp=row.timestamp,  # type: ignore[attr-defined]
    )


class AuctionRepository:
    """Concrete repository for auctions and auction_bids."""

    async def create_listing(
        self,
        db: AsyncSession,
        seller_uuid: str,
        item_name: str,
        item_data: str,
        starting_bid: Decimal,
        buyout_price: Decimal | None,
        duration_seconds: int,
        start_time: datetime,
        end_time: datetime,
        category: str,
    ) -> AuctionListing:
        result = await db.execute(
            _CREATE_LISTING_SQL,
            {
                "seller_uuid": seller_uuid,
                "item_name": item_name,
                "item_data": item_data,
                "starting_bid": starting_bid,
                "buyout_price": buyout_price,
                "duration_seconds": duration_seconds,
                "start_time": start_time,
                "end_time": end_time,
                "category": category,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Auction insert returned no rows")
        return _row_to_listing(row)

    async def get_listing(self, db: AsyncSession, auction_id: int) -> AuctionListing | None:
        result = await db.execute(_GET_LISTING_SQL, {"auction_id": auction_id})
        row = result.fetchone()
        return _row_to_listing(row) if row else None

    async def lock_listing(self, db: AsyncSession, auction_id: int) -> AuctionListing | None:
        result = await db.execute(_LOCK_LISTING_SQL, {"auction_id": auction_id})
        row = result.fetchone()
        return _row_to_listing(row) if row else None

    async def update_bid(
        self,
        db: AsyncSession,
        auction_id: int,
        current_bid: Decimal,
        highest_bidder_uuid: str,
    ) -> AuctionListing:
        result = await db.execute(
            _UPDATE_BID_SQL,
            {
                "auction_id": auction_id,
                "current_bid": current_bid,
                "highest_bidder_uuid": highest_bidder_uuid,
            },
        )
        row = result.fetchone()
        if row is None:
            raise AuctionNotFoundError(auction_id)
        return _row_to_listing(row)

    async def set_status(
        self, db: AsyncSession, auction_id: int, status: str
    ) -> AuctionListing:
        result = await db.execute(
            _SET_STATUS_SQL, {"auction_id": auction_id, "status": status}
        )
        row = result.fetchone()
        if row is None:
            raise AuctionNotFoundError(auction_id)
        return _row_to_listing(row)

    async def count_active_by_seller(
        self, db: AsyncSession, seller_uuid: str, now: datetime
    ) -> int:
        result = await db.execute(
            _COUNT_ACTIVE_BY_SELLER_SQL, {"seller_uuid": seller_uuid, "now": now}
        )
        return int(result.scalar_one())

    async def list_active(
        self, db: AsyncSession, now: datetime, category: str | None = None
    ) -> list[AuctionListing]:
        result = await db.execute(_LIST_ACTIVE_SQL, {"now": now, "category": category})
        return [_row_to_listing(row) for row in result.fetchall()]

    async def list_by_seller(
        self, db: AsyncSession, seller_uuid: str
    ) -> list[AuctionListing]:
        result = await db.execute(_LIST_BY_SELLER_SQL, {"seller_uuid": seller_uuid})
        return [_row_to_listing(row) for row in result.fetchall()]

    async def list_expired_ids(self, db: AsyncSession, now: datetime) -> list[int]:
        result = await db.execute(_LIST_EXPIRED_IDS_SQL, {"now": now})
        return [row.id for row in result.fetchall()]

    async def insert_bid(
        self,
        db: AsyncSession,
        auction_id: int,
        bidder_uuid: str,
        bid_amount: Decimal,
        timestamp: datetime,
    ) -> BidRecord:
        result = await db.execute(
            _INSERT_BID_SQL,
            {
                "auction_id": auction_id,
                "bidder_uuid": bidder_uuid,
                "bid_amount": bid_amount,
                "timestamp": timestamp,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Bid insert returned no rows")
        return _row_to_bid(row)

    async def latest_bid_time(
        self, db: AsyncSession, auction_id: int, bidder_uuid: str
    ) -> datetime | None:
        result = await db.execute(
            _LATEST_BID_TIME_SQL, {"auction_id": auction_id, "bidder_uuid": bidder_uuid}
        )
        row = result.fetchone()
        return row.timestamp if row else None

    async def list_bids(self, db: AsyncSession, auction_id: int) -> list[BidRecord]:
        result = await db.execute(_LIST_BIDS_SQL, {"auction_id": auction_id})
        return [_row_to_bid(row) for row in result.fetchall()]
