"""Pure balance rules: amount validation and saturating arithmetic.

No I/O here. The engine calls these while holding the account row lock, so
the values passed in are always the current stored ones.
"""

from decimal import Decimal

from src.eco_common.enums import BalanceKind
from src.eco_common.errors import BalanceLimitExceededError, InvalidAmountError
from src.eco_common.money import ZERO, MoneyLike, clamp, to_money


def parse_amount(amount: MoneyLike) -> Decimal:
    """Round to cents; raise InvalidAmountError(1001) if not a number."""
    try:
        return to_money(amount)
    except ValueError as exc:
        raise InvalidAmountError(amount) from exc


def parse_positive_amount(amount: MoneyLike) -> Decimal:
    """Like parse_amount, but 0.004 (rounds to 0.00) and negatives are rejected."""
    value = parse_amount(amount)
    if value <= ZERO:
        raise InvalidAmountError(amount)
    return value


def upper_bound(kind: BalanceKind, max_balance: Decimal) -> Decimal | None:
    """Liquid balances are capped; bank balances are only bounded below."""
    return max_balance if kind is BalanceKind.LIQUID else None


def check_settable(
    account_id: str, kind: BalanceKind, amount: Decimal, max_balance: Decimal
) -> None:
    if amount < ZERO:
        raise InvalidAmountError(amount)
    high = upper_bound(kind, max_balance)
    if high is not None and amount > high:
        raise BalanceLimitExceededError(account_id, high)


def saturating_add(current: Decimal, amount: Decimal, high: Decimal | None) -> Decimal:
    """current + amount, floored at the cap: 999 + 5 with cap 1000 -> 1000."""
    return clamp(current + amount, ZERO, high)


def saturating_sub(current: Decimal, amount: Decimal) -> Decimal:
    """current - amount, floored at zero: 3 - 5 -> 0."""
    return clamp(current - amount, ZERO, None)
