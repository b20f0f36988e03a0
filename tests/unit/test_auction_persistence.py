"""Unit tests for AuctionRepository using MagicMock AsyncSession."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.eco_auction.infrastructure.persistence import AuctionRepository
from src.eco_common.errors import AuctionNotFoundError

NOW = datetime(2026, 1, 1, tzinfo=UTC)


def _make_listing_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", 1)
    row.seller_uuid = kwargs.get("seller_uuid", "seller")
    row.item_name = "Diamond Sword"
    row.item_data = "{}"
    row.starting_bid = Decimal("100.00")
    row.buyout_price = None
    row.current_bid = kwargs.get("current_bid", Decimal("0.00"))
    row.highest_bidder_uuid = kwargs.get("highest_bidder_uuid")
    row.duration_seconds = 3600
    row.start_time = NOW
    row.end_time = NOW + timedelta(hours=1)
    row.status = kwargs.get("status", "ACTIVE")
    row.category = "weapons"
    row.created_at = NOW
    return row


def _result(one=None, many=None):
    result = MagicMock()
    result.fetchone.return_value = one
    result.fetchall.return_value = many or []
    return result


@pytest.fixture
def db():
    return MagicMock()


class TestListings:
    async def test_lock_listing_for_update(self, db) -> None:
        db.execute = AsyncMock(return_value=_result(_make_listing_row(id=5)))
        listing = await AuctionRepository().lock_listing(db, 5)
        assert listing is not None and listing.id == 5
        assert "FOR UPDATE" in str(db.execute.call_args[0][0])

    async def test_get_listing_missing(self, db) -> None:
        db.execute = AsyncMock(return_value=_result(None))
        assert await AuctionRepository().get_listing(db, 5) is None

    async def test_update_bid_only_active(self, db) -> None:
        db.execute = AsyncMock(return_value=_result(None))
        with pytest.raises(AuctionNotFoundError):
            await AuctionRepository().update_bid(db, 5, Decimal("101"), "A")
        assert "status = 'ACTIVE'" in str(db.execute.call_args[0][0])

    async def test_set_status(self, db) -> None:
        db.execute = AsyncMock(return_value=_result(_make_listing_row(status="ENDED")))
        listing = await AuctionRepository().set_status(db, 1, "ENDED")
        assert listing.status == "ENDED"
        assert db.execute.call_args[0][1] == {"auction_id": 1, "status": "ENDED"}

    async def test_list_active_passes_category(self, db) -> None:
        db.execute = AsyncMock(return_value=_result(many=[_make_listing_row()]))
        listings = await AuctionRepository().list_active(db, NOW, "weapons")
        assert len(listings) == 1
        assert db.execute.call_args[0][1] == {"now": NOW, "category": "weapons"}

    async def test_list_expired_ids(self, db) -> None:
        db.execute = AsyncMock(return_value=_result(many=[MagicMock(id=3), MagicMock(id=8)]))
        assert await AuctionRepository().list_expired_ids(db, NOW) == [3, 8]

    async def test_count_active_by_seller(self, db) -> None:
        result = MagicMock()
        result.scalar_one.return_value = 4
        db.execute = AsyncMock(return_value=result)
        assert await AuctionRepository().count_active_by_seller(db, "seller", NOW) == 4


class TestBids:
    async def test_latest_bid_time(self, db) -> None:
        db.execute = AsyncMock(return_value=_result(MagicMock(timestamp=NOW)))
        assert await AuctionRepository().latest_bid_time(db, 1, "A") == NOW

    async def test_latest_bid_time_none(self, db) -> None:
        db.execute = AsyncMock(return_value=_result(None))
        assert await AuctionRepository().latest_bid_time(db, 1, "A") is None

    async def test_insert_bid(self, db) -> None:
        row = MagicMock(id=1, auction_id=1, bidder_uuid="A", bid_amount=Decimal("101.00"), timestamp=NOW)
        db.execute = AsyncMock(return_value=_result(row))
        bid = await AuctionRepository().insert_bid(db, 1, "A", Decimal("101.00"), NOW)
        assert bid.bid_amount == Decimal("101.00")
        assert db.execute.call_args[0][1]["timestamp"] == NOW
