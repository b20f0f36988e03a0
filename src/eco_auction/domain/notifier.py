"""Outbound notifications for auction events.

The host implements AuctionNotifier to reach players (chat, mail, item
return). Delivery is best-effort: AuctionEngine calls these only after the
money movement has committed and logs, never propagates, notifier failures.
"""

import logging
from decimal import Decimal
from typing import Protocol

from src.eco_auction.domain.models import AuctionListing
from src.eco_common.money import format_money

logger = logging.getLogger(__name__)


class AuctionNotifier(Protocol):
    async def outbid(
        self, listing: AuctionListing, previous_bidder: str, refunded: Decimal
    ) -> None: ...

    async def auction_won(self, listing: AuctionListing, winner: str) -> None: ...

    async def auction_sold(
        self, listing: AuctionListing, payout: Decimal, fee: Decimal
    ) -> None: ...

    async def auction_unsold(self, listing: AuctionListing) -> None:
        """No bids: the host should hand the item back to the seller."""
        ...

    async def auction_cancelled(self, listing: AuctionListing) -> None: ...


class LoggingNotifier:
    """Default notifier: records the event in the log and nothing else."""

    async def outbid(
        self, listing: AuctionListing, previous_bidder: str, refunded: Decimal
    ) -> None:
        logger.info(
            "Auction %d: %s outbid, refunded %s",
            listing.id, previous_bidder, format_money(refunded),
        )

    async def auction_won(self, listing: AuctionListing, winner: str) -> None:
        logger.info(
            "Auction %d: %s won %s for %s",
            listing.id, winner, listing.item_name, format_money(listing.current_bid),
        )

    async def auction_sold(
        self, listing: AuctionListing, payout: Decimal, fee: Decimal
    ) -> None:
        logger.info(
            "Auction %d: seller %s paid %s (fee %s)",
            listing.id, listing.seller_uuid, format_money(payout), format_money(fee),
        )

    async def auction_unsold(self, listing: AuctionListing) -> None:
        logger.info(
            "Auction %d: no bids, %s returns to %s",
            listing.id, listing.item_name, listing.seller_uuid,
        )

    async def auction_cancelled(self, listing: AuctionListing) -> None:
        logger.info("Auction %d cancelled by seller %s", listing.id, listing.seller_uuid)
