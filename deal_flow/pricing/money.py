"""Decimal helpers for currency arithmetic."""

from decimal import ROUND_HALF_UP, Decimal

ONE_UNIT = Decimal("1")


def to_decimal(value: int | float | str | Decimal) -> Decimal:
    """Convert a numeric value to ``Decimal`` without float artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_currency(value: int | float | str | Decimal) -> Decimal:
    """Round half-up to the nearest integer currency unit."""
    return to_decimal(value).quantize(ONE_UNIT, rounding=ROUND_HALF_UP)


def midpoint(a: int | Decimal, b: int | Decimal) -> Decimal:
    """Rounded average of two amounts."""
    return round_currency((to_decimal(a) + to_decimal(b)) / 2)


def format_amount(value: Decimal | int | None) -> str:
    """Format an amount with thousands separators (``2,850,000``)."""
    if value is None:
        return "0"
    return f"{round_currency(value):,}"
