"""Domain models and pure rules for eco_auction — no SQLAlchemy dependency.

Lifecycle: ACTIVE -> ENDED (sweep) | CANCELLED (seller). Both are terminal.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.eco_common.enums import AuctionStatus
from src.eco_common.errors import (
    AuctionHasBidsError,
    AuctionNotActiveError,
    BidTooLowError,
    InvalidAmountError,
    InvalidCategoryError,
    InvalidDurationError,
    InvalidItemNameError,
    NotAuctionSellerError,
    SelfBidError,
)
from src.eco_common.money import ZERO

MAX_ITEM_NAME_LENGTH = 255  # auctions.item_name VARCHAR(255)


@dataclass(frozen=True)
class AuctionItem:
    """Opaque item payload; the host serializes it, the core only stores it."""
    name: str
    data: str


@dataclass
class AuctionListing:
    id: int
    seller_uuid: str
    item_name: str
    item_data: str
    starting_bid: Decimal
    buyout_price: Decimal | None
    current_bid: Decimal             # 0 until the first accepted bid
    highest_bidder_uuid: str | None
    duration_seconds: int
    start_time: datetime
    end_time: datetime               # start_time + duration, never extended
    status: str                      # AuctionStatus value
    category: str
    created_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == AuctionStatus.ACTIVE.value

    @property
    def is_terminal(self) -> bool:
        return self.status in (AuctionStatus.ENDED.value, AuctionStatus.CANCELLED.value)

    @property
    def has_bids(self) -> bool:
        return self.highest_bidder_uuid is not None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.end_time


@dataclass
class BidRecord:
    id: int
    auction_id: int
    bidder_uuid: str
    bid_amount: Decimal
    timestamp: datetime | None = None


def minimum_bid(listing: AuctionListing, increment: Decimal) -> Decimal:
    """max(current_bid, starting_bid) + increment.

    A fresh listing with starting_bid=100 and increment=1 accepts 101 or more.
    """
    return max(listing.current_bid, listing.starting_bid) + increment


def check_new_listing(
    item_name: str,
    starting_bid: Decimal,
    buyout_price: Decimal | None,
    duration_seconds: int,
    category: str,
    allowed_durations: list[int],
    max_category_length: int,
) -> None:
    if not item_name.strip() or len(item_name) > MAX_ITEM_NAME_LENGTH:
        raise InvalidItemNameError(item_name)
    if starting_bid <= ZERO:
        raise InvalidAmountError(starting_bid)
    if buyout_price is not None and buyout_price < starting_bid:
        raise InvalidAmountError(buyout_price)
    if duration_seconds <= 0 or (
        allowed_durations and duration_seconds not in allowed_durations
    ):
        raise InvalidDurationError(duration_seconds)
    if not category.strip() or len(category) > max_category_length:
        raise InvalidCategoryError(category)


def check_bid(
    listing: AuctionListing,
    bidder_uuid: str,
    bid_amount: Decimal,
    increment: Decimal,
    now: datetime,
) -> None:
    """Raise unless bid_amount is acceptable on this (locked) listing."""
    if not listing.is_active or listing.is_expired(now):
        raise AuctionNotActiveError(listing.id)
    if bidder_uuid == listing.seller_uuid:
        raise SelfBidError(listing.id)
    floor = minimum_bid(listing, increment)
    if bid_amount < floor:
        raise BidTooLowError(bid_amount, floor)


def check_cancellable(listing: AuctionListing, caller_uuid: str) -> None:
    if listing.seller_uuid != caller_uuid:
        raise NotAuctionSellerError(listing.id)
    if not listing.is_active:
        raise AuctionNotActiveError(listing.id)
    if listing.current_bid > listing.starting_bid or listing.has_bids:
        raise AuctionHasBidsError(listing.id)
