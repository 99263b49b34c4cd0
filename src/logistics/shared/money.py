"""Decimal helpers for monetary amounts.

Amounts are stored as floats on aggregates and converted to ``Decimal`` for
every calculation, then quantized to the currency's three minor digits.
"""

from decimal import ROUND_HALF_UP, Decimal

MINOR_UNIT = Decimal("0.001")
DEFAULT_CURRENCY = "KWD"


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def quantize(value) -> Decimal:
    return to_decimal(value).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def as_float(value) -> float:
    return float(quantize(value))
