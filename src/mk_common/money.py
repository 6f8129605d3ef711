"""Decimal money helpers.

All prices, fees and balances are decimal.Decimal end to end. Floats are
never accepted: a float would already carry binary rounding error before
it reaches us.
"""

from decimal import ROUND_HALF_UP, Decimal

ZERO = Decimal("0")
HUNDRED = Decimal("100")
_CENT = Decimal("0.01")


def to_decimal(value: Decimal | int | str | None) -> Decimal:
    """Coerce DB/JSON values to Decimal; None counts as zero."""
    if value is None:
        return ZERO
    if isinstance(value, float):
        raise TypeError("float money values are not allowed")
    if isinstance(value, Decimal):
        return value
    return Decimal(value)


def round_money(value: Decimal) -> Decimal:
    """Round to 2 dp, half-up — display and settlement precision."""
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    """amount × percent / 100 at full precision."""
    return amount * percent / HUNDRED


def money_to_display(value: Decimal) -> str:
    """Decimal to display string: Decimal('1234.5') -> '1,234.50', negatives keep sign."""
    rounded = round_money(value)
    if rounded < 0:
        return f"-{-rounded:,.2f}"
    return f"{rounded:,.2f}"
