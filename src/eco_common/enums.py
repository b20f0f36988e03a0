"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class BalanceKind(str, Enum):
    """Which of the two per-account balances an operation targets."""
    LIQUID = "liquid"
    BANK = "bank"


class AuctionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"
    CANCELLED = "CANCELLED"


class TransactionType(str, Enum):
    # Balance engine
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    BALANCE_SET = "balance_set"
    # Peer to peer
    TRANSFER = "transfer"
    # Bank
    BANK_DEPOSIT = "bank_deposit"
    BANK_WITHDRAWAL = "bank_withdrawal"
    INTEREST = "interest"
    # Auction house
    AUCTION_BID = "auction_bid"
    AUCTION_REFUND = "auction_refund"
    AUCTION_SALE = "auction_sale"
