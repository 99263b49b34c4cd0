"""Rate quotes: carrier cost marked up with the billing account's rule."""

from dataclasses import dataclass
from decimal import Decimal

import structlog

from logistics.account.account import Markup
from logistics.account.guard import BalanceGuard
from logistics.account.pricing import compute_price, surcharge_label
from logistics.carrier import get_carrier
from logistics.shared.address import Address
from logistics.shared.errors import CarrierBookingError
from logistics.shared.money import quantize
from logistics.utils import config

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Quote:
    cost_price: Decimal
    price: Decimal
    surcharge_label: str
    service_code: str


def markup_for(owner_id: str) -> Markup:
    billing = BalanceGuard().billing_account_for(owner_id)
    return billing.markup or Markup.default()


def carrier_cost(origin: Address, destination: Address, parcels: list[dict], service_code: str) -> Decimal:
    result = get_carrier().quote_rate(
        origin.to_dict(),
        destination.to_dict(),
        parcels,
        service_code,
        config.carrier_timeout_seconds(),
    )
    if result.get("error"):
        logger.warning("Carrier quote failed", error=result["error"])
        raise CarrierBookingError(f"Carrier quote failed: {result['error']}")
    return quantize(result["cost_price"])


def quote(
    owner_id: str,
    origin: Address,
    destination: Address,
    parcels: list[dict],
    service_code: str = "P",
    cost_price=None,
) -> Quote:
    """Price a consignment for ``owner_id``; ``cost_price`` skips the carrier call."""
    cost = quantize(cost_price) if cost_price is not None else carrier_cost(origin, destination, parcels, service_code)
    markup = markup_for(owner_id)
    return Quote(
        cost_price=cost,
        price=compute_price(cost, markup),
        surcharge_label=surcharge_label(markup),
        service_code=service_code,
    )
