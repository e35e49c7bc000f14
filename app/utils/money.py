"""
Fixed-point money helpers.

Amounts enter and leave the ledger as ``Decimal``. Inside the normalizer and
planner they are held as integer minor units (cents for a 2-decimal currency)
so repeated additions never drift.

Example Usage:
    >>> to_minor_units(Decimal("33.34"))
    3334
    >>> from_minor_units(3334)
    Decimal('33.34')
    >>> format_amount(Decimal("1234.5"))
    '₱1,234.50'
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN

DEFAULT_PRECISION = 2


@dataclass(frozen=True)
class Currency:
    code: str
    symbol: str
    name: str
    position: str = "before"  # "before" or "after" the number


DEFAULT_CURRENCY = Currency(code="PHP", symbol="₱", name="Philippine Peso")


def minor_unit(precision: int = DEFAULT_PRECISION) -> Decimal:
    """Smallest representable amount at ``precision`` decimal places."""
    if precision < 0:
        raise ValueError(f"precision must be >= 0, got {precision}")
    return Decimal(10) ** -precision


def round_decimal(value: Decimal, precision: int = DEFAULT_PRECISION) -> Decimal:
    """
    Round to ``precision`` decimal places using banker's rounding.

    Example:
        >>> round_decimal(Decimal("100.005"))
        Decimal('100.00')
        >>> round_decimal(Decimal("100.015"))
        Decimal('100.02')
    """
    return Decimal(value).quantize(minor_unit(precision), rounding=ROUND_HALF_EVEN)


def to_minor_units(value: Decimal, precision: int = DEFAULT_PRECISION) -> int:
    return int(round_decimal(value, precision).scaleb(precision))


def from_minor_units(units: int, precision: int = DEFAULT_PRECISION) -> Decimal:
    return Decimal(units).scaleb(-precision)


def format_amount(
    amount: Decimal,
    currency: Currency = DEFAULT_CURRENCY,
    precision: int = DEFAULT_PRECISION,
) -> str:
    """Format an amount with thousands separators and the currency symbol."""
    value = round_decimal(amount, precision)
    sign = "-" if value < 0 else ""
    number = f"{abs(value):,.{precision}f}"
    if currency.position == "before":
        return f"{sign}{currency.symbol}{number}"
    return f"{sign}{number} {currency.symbol}"
