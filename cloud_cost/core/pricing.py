"""
Pricing arithmetic and rounding rules.

All money math goes through Decimal so that published per-GB and per-hour
rates multiply out to exact cents.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union

Number = Union[int, float, Decimal]

# Billing month used by every provider catalog
HOURS_PER_MONTH = 730

CENTS = Decimal("0.01")
WHOLE = Decimal("1")


def to_decimal(value: Number) -> Decimal:
    """Convert a price to Decimal without picking up binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_cents(value: Number) -> float:
    """Round a money amount to cents, halves away from zero."""
    return float(to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP))


def round_percent(value: Number) -> int:
    """Round a percentage to the nearest whole percent, halves away from zero."""
    return int(to_decimal(value).quantize(WHOLE, rounding=ROUND_HALF_UP))


def monthly_from_hourly(hourly_price: Number) -> float:
    """Derive the monthly price of an hourly rate.

    Args:
        hourly_price: Price per hour in USD

    Returns:
        hourly_price * 730 rounded to cents
    """
    return round_cents(to_decimal(hourly_price) * HOURS_PER_MONTH)


def multiply(price: Number, quantity: Number) -> float:
    """Exact product of a unit price and a quantity."""
    return float(to_decimal(price) * to_decimal(quantity))


def total(amounts: Iterable[Number]) -> float:
    """Exact sum of money amounts."""
    return float(sum((to_decimal(a) for a in amounts), Decimal("0")))


def percent_savings(baseline: Number, candidate: Number) -> Optional[int]:
    """Percentage saved by candidate relative to baseline.

    Computed as round((baseline - candidate) / baseline * 100).

    Args:
        baseline: Reference cost
        candidate: Cost being compared

    Returns:
        Whole percent, or None when the baseline is zero
    """
    base = to_decimal(baseline)
    if base == 0:
        return None
    return round_percent((base - to_decimal(candidate)) / base * 100)


def format_currency(amount: Number) -> str:
    """Format a money amount as $1,234.56."""
    return f"${float(amount):,.2f}"
