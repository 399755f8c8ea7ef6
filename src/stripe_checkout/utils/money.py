"""Conversion between decimal amounts and Stripe minor units."""

from decimal import ROUND_HALF_UP, Decimal

_MINOR_UNITS = Decimal(100)


def amount_to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount to integer minor units, rounding half up."""
    return int((Decimal(amount) * _MINOR_UNITS).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def amount_from_minor_units(amount: int) -> Decimal:
    return (Decimal(amount) / _MINOR_UNITS).quantize(Decimal("0.01"))
