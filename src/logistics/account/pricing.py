"""Markup engine — turns a raw carrier cost into the billed price.

Pure functions over ``Decimal``. Results are rounded half-up to the three
minor digits of the billing currency.
"""

from decimal import Decimal

from logistics.account.account import MarkupType
from logistics.shared.errors import InvalidInputError
from logistics.shared.money import quantize, to_decimal
from logistics.utils import config

_HUNDRED = Decimal("100")


def _components(markup) -> tuple[Decimal, Decimal]:
    """Return the (percentage, flat) pair that actually applies to ``markup``."""
    percentage = to_decimal(markup.percentage_value)
    flat = to_decimal(markup.flat_value)
    if percentage < 0 or flat < 0:
        raise InvalidInputError("Markup values cannot be negative")

    markup_type = MarkupType(markup.markup_type)
    if markup_type == MarkupType.PERCENTAGE:
        return percentage, Decimal("0")
    if markup_type == MarkupType.FLAT:
        return Decimal("0"), flat
    return percentage, flat


def compute_price(cost_price, markup) -> Decimal:
    """Billed price for ``cost_price`` under ``markup``.

    PERCENTAGE ignores any flat value and FLAT ignores any percentage.
    """
    cost = to_decimal(cost_price)
    if cost < 0:
        raise InvalidInputError("Cost price cannot be negative", cost_price=float(cost))
    percentage, flat = _components(markup)
    return quantize(cost * (1 + percentage / _HUNDRED) + flat)


def surcharge_label(markup) -> str:
    """Human label for the surcharge, e.g. ``15%``, ``2.000 Flat`` or ``10% + 2.000``."""
    percentage, flat = _components(markup)
    markup_type = MarkupType(markup.markup_type)
    if markup_type == MarkupType.PERCENTAGE:
        return f"{percentage.normalize():f}%"
    if markup_type == MarkupType.FLAT:
        return f"{quantize(flat)} Flat"
    return f"{percentage.normalize():f}% + {quantize(flat)}"


def validate_quoted_price(client_price, server_price, tolerance_percent=None) -> bool:
    """True when a price quoted to the client is within tolerance of the server's price."""
    tolerance = to_decimal(config.price_tolerance_percent() if tolerance_percent is None else tolerance_percent)
    client = to_decimal(client_price)
    server = to_decimal(server_price)
    if server == 0:
        return client == 0
    return abs(client - server) / server * _HUNDRED <= tolerance
