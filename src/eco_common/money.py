"""Fixed-point money arithmetic.

All balances and amounts are Decimal with exactly two decimal places, rounded
half-up, matching the NUMERIC(20, 2) columns. Floats are converted through
their string form so 0.1 stays 0.10 instead of 0.1000000000000000055...
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

MoneyLike = Decimal | int | float | str


def to_money(value: MoneyLike) -> Decimal:
    """Convert to a 2-decimal Decimal, rounding half-up: 1.005 -> 1.01."""
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percentage: Decimal) -> Decimal:
    """amount x percentage / 100, rounded half-up to cents.

    percent_of(105, 5) -> 5.25 ; percent_of(1000, 0.1) -> 1.00
    """
    if amount == 0 or percentage == 0:
        return ZERO
    return to_money(amount * percentage / HUNDRED)


def clamp(value: Decimal, low: Decimal, high: Decimal | None) -> Decimal:
    """Saturate value into [low, high]; high=None means unbounded above."""
    if value < low:
        return low
    if high is not None and value > high:
        return high
    return value


def format_money(amount: Decimal) -> str:
    """Display form: 1500 -> '1,500.00', -12 -> '-12.00'."""
    amount = to_money(amount)
    if amount < 0:
        return f"-{-amount:,.2f}"
    return f"{amount:,.2f}"
