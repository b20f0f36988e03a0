"""Repository Protocol for auctions and auction_bids."""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.eco_auction.domain.models import AuctionListing, BidRecord


class AuctionRepositoryProtocol(Protocol):
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
    ) -> AuctionListing: ...

    async def get_listing(self, db: AsyncSession, auction_id: int) -> AuctionListing | None: ...

    async def lock_listing(self, db: AsyncSession, auction_id: int) -> AuctionListing | None: ...

    async def update_bid(
        self,
        db: AsyncSession,
        auction_id: int,
        current_bid: Decimal,
        highest_bidder_uuid: str,
    ) -> AuctionListing: ...

    async def set_status(
        self, db: AsyncSession, auction_id: int, status: str
    ) -> AuctionListing: ...

    async def count_active_by_seller(
        self, db: AsyncSession, seller_uuid: str, now: datetime
    ) -> int: ...

    async def list_active(
        self, db: AsyncSession, now: datetime, category: str | None = None
    ) -> list[AuctionListing]: ...

    async def list_by_seller(
        self, db: AsyncSession, seller_uuid: str
    ) -> list[AuctionListing]: ...

    async def list_expired_ids(self, db: AsyncSession, now: datetime) -> list[int]: ...

    async def insert_bid(
        self,
        db: AsyncSession,
        auction_id: int,
        bidder_uuid: str,
        bid_amount: Decimal,
        timestamp: datetime,
    ) -> BidRecord: ...

    async def latest_bid_time(
        self, db: AsyncSession, auction_id: int, bidder_uuid: str
    ) -> datetime | None: ...

    async def list_bids(self, db: AsyncSession, auction_id: int) -> list[BidRecord]: ...
