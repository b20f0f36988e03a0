"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Validation
  2xxx: Account
  3xxx: Transfer
  4xxx: Auction
  9xxx: System

Repositories and domain rules raise these; engines catch them at the public
boundary and turn them into failed OperationResults (see result.py).
"""


class AppError(Exception):
    """Base application error."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


# --- 1xxx: Validation ---

class InvalidAmountError(AppError):
    def __init__(self, amount: object) -> None:
        super().__init__(1001, f"Invalid amount: {amount}")


class BelowMinimumTransactionError(AppError):
    def __init__(self, amount: object, minimum: object) -> None:
        super().__init__(1002, f"Amount {amount} is below the minimum transaction {minimum}")


class InvalidCategoryError(AppError):
    def __init__(self, category: str) -> None:
        super().__init__(1003, f"Invalid category: {category!r}")


class InvalidDurationError(AppError):
    def __init__(self, duration_seconds: int) -> None:
        super().__init__(1004, f"Auction duration not allowed: {duration_seconds}s")


class InvalidItemNameError(AppError):
    def __init__(self, item_name: str) -> None:
        super().__init__(1005, f"Invalid item name: {item_name[:40]!r}")


# --- 2xxx: Account ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: object, available: object) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required}, available {available}",
        )


class AccountNotFoundError(AppError):
    def __init__(self, account_id: str) -> None:
        super().__init__(2002, f"Account not found: {account_id}")


class BalanceLimitExceededError(AppError):
    def __init__(self, account_id: str, limit: object) -> None:
        super().__init__(2003, f"Balance of {account_id} would exceed the maximum {limit}")


class DepositLimitExceededError(AppError):
    def __init__(self, amount: object, limit: object) -> None:
        super().__init__(2004, f"Deposit {amount} exceeds the daily deposit limit {limit}")


# --- 3xxx: Transfer ---

class TransferCooldownError(AppError):
    def __init__(self, account_id: str) -> None:
        super().__init__(3001, f"Transfer cooldown active for {account_id}")


class TransferRateLimitError(AppError):
    def __init__(self, account_id: str, limit: int) -> None:
        super().__init__(3002, f"{account_id} exceeded {limit} transfers per minute")


class SelfTransferError(AppError):
    def __init__(self) -> None:
        super().__init__(3003, "Cannot transfer money to the same account")


# --- 4xxx: Auction ---

class AuctionNotFoundError(AppError):
    def __init__(self, auction_id: int) -> None:
        super().__init__(4001, f"Auction not found: {auction_id}")


class AuctionNotActiveError(AppError):
    def __init__(self, auction_id: int) -> None:
        super().__init__(4002, f"Auction is not active: {auction_id}")


class BidTooLowError(AppError):
    def __init__(self, bid: object, minimum: object) -> None:
        super().__init__(4003, f"Bid {bid} is below the minimum bid {minimum}")


class BidCooldownError(AppError):
    def __init__(self, bidder_id: str, auction_id: int) -> None:
        super().__init__(4004, f"Bid cooldown active for {bidder_id} on auction {auction_id}")


class NotAuctionSellerError(AppError):
    def __init__(self, auction_id: int) -> None:
        super().__init__(4005, f"Only the seller may modify auction {auction_id}")


class AuctionHasBidsError(AppError):
    def __init__(self, auction_id: int) -> None:
        super().__init__(4006, f"Auction {auction_id} already has bids")


class SelfBidError(AppError):
    def __init__(self, auction_id: int) -> None:
        super().__init__(4007, f"Seller cannot bid on own auction {auction_id}")


class AuctionLimitExceededError(AppError):
    def __init__(self, seller_id: str, limit: int) -> None:
        super().__init__(4008, f"{seller_id} already has {limit} active auctions")


# --- 9xxx: System ---

class StorageError(AppError):
    def __init__(self, detail: str = "Storage failure") -> None:
        super().__init__(9001, detail)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal error") -> None:
        super().__init__(9002, detail)
