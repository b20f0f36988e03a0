"""Tests for eco_auction.domain.models — pure listing rules."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from src.eco_auction.domain.models import (
    AuctionListing,
    check_bid,
    check_cancellable,
    check_new_listing,
    minimum_bid,
)
from src.eco_common.errors import (
    AuctionHasBidsError,
    AuctionNotActiveError,
    BidTooLowError,
    InvalidItemNameError,
    NotAuctionSellerError,
    SelfBidError,
)

NOW = datetime(2026, 1, 1, tzinfo=UTC)
INC = Decimal("1.00")


def _listing(**kwargs) -> AuctionListing:
    defaults = dict(
        id=1,
        seller_uuid="seller",
        item_name="Sword",
        item_data="{}",
        starting_bid=Decimal("100.00"),
        buyout_price=None,
        current_bid=Decimal("0.00"),
        highest_bidder_uuid=None,
        duration_seconds=3600,
        start_time=NOW,
        end_time=NOW + timedelta(hours=1),
        status="ACTIVE",
        category="weapons",
    )
    defaults.update(kwargs)
    return AuctionListing(**defaults)


class TestMinimumBid:
    def test_no_bids_uses_starting_bid(self) -> None:
        assert minimum_bid(_listing(), INC) == Decimal("101.00")

    def test_after_bid_uses_current(self) -> None:
        listing = _listing(current_bid=Decimal("105.00"), highest_bidder_uuid="B")
        assert minimum_bid(listing, INC) == Decimal("106.00")


class TestCheckBid:
    def test_accepts_floor(self) -> None:
        check_bid(_listing(), "A", Decimal("101.00"), INC, NOW)

    def test_rejects_below_floor(self) -> None:
        with pytest.raises(BidTooLowError):
            check_bid(_listing(), "A", Decimal("100.99"), INC, NOW)

    def test_rejects_at_end_time(self) -> None:
        with pytest.raises(AuctionNotActiveError):
            check_bid(_listing(), "A", Decimal("200"), INC, NOW + timedelta(hours=1))

    @pytest.mark.parametrize("status", ["ENDED", "CANCELLED"])
    def test_rejects_terminal(self, status) -> None:
        with pytest.raises(AuctionNotActiveError):
            check_bid(_listing(status=status), "A", Decimal("200"), INC, NOW)

    def test_rejects_seller(self) -> None:
        with pytest.raises(SelfBidError):
            check_bid(_listing(), "seller", Decimal("200"), INC, NOW)


class TestCheckCancellable:
    def test_ok(self) -> None:
        check_cancellable(_listing(), "seller")

    def test_not_seller(self) -> None:
        with pytest.raises(NotAuctionSellerError):
            check_cancellable(_listing(), "other")

    def test_has_bids(self) -> None:
        with pytest.raises(AuctionHasBidsError):
            check_cancellable(
                _listing(current_bid=Decimal("101.00"), highest_bidder_uuid="A"), "seller"
            )


class TestCheckNewListing:
    def test_any_duration_when_unrestricted(self) -> None:
        check_new_listing("Sword", Decimal("1"), None, 42, "misc", [], 50)

    def test_listing_flags(self) -> None:
        listing = _listing(status="ENDED")
        assert listing.is_terminal
        assert not listing.is_active
        assert not listing.has_bids

    @pytest.mark.parametrize("name", ["", " ", "x" * 256])
    def test_rejects_bad_item_name(self, name) -> None:
        with pytest.raises(InvalidItemNameError):
            check_new_listing(name, Decimal("1"), None, 3600, "misc", [], 50)

    def test_accepts_name_at_column_limit(self) -> None:
        check_new_listing("x" * 255, Decimal("1"), None, 3600, "misc", [], 50)
