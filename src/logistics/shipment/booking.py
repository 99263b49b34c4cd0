"""Shipment booking — command, handler and the serialized entry point.

Booking is the only operation that spends a client's money:

1. the billing account (the organization's for members) must cover the
   price with its balance plus credit line;
2. the carrier is asked to book, using the tracking number as the
   idempotency reference;
3. only after the carrier acknowledges is the SHIPMENT_FEE debited and the
   shipment confirmed.

If anything fails after the carrier acknowledged, the carrier booking is
cancelled and the whole unit of work is discarded. Retrying the entire
operation is safe: the carrier returns the original booking for a repeated
reference and an already-confirmed shipment is not charged again.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from logistics.account.account import Account, EntryCategory, EntryType
from logistics.account.guard import BalanceGuard
from logistics.account.ledger import LedgerStore
from logistics.carrier import get_carrier
from logistics.domain import logistics
from logistics.shared.actor import Actor
from logistics.shared.errors import CarrierBookingError, ConcurrencyConflictError
from logistics.shipment.locking import lock_shipment
from logistics.shipment.quoting import quote
from logistics.shipment.shipment import Shipment, ShipmentStatus
from logistics.utils import config

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Shipment")
class BookShipment:
    tracking_number = String(required=True, max_length=14)
    target_status = String(max_length=30, default=ShipmentStatus.READY_FOR_PICKUP.value)
    expected_billing_account_id = Identifier()
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


def _parcels(shipment: Shipment) -> list[dict]:
    return [
        {
            "description": item.description,
            "quantity": item.quantity,
            "weight": item.weight,
            "length": item.length,
            "width": item.width,
            "height": item.height,
            "declared_value": item.declared_value,
            "hs_code": item.hs_code,
        }
        for item in shipment.items or []
    ]


def _result(shipment: Shipment, already_booked: bool, balance_after=None) -> dict:
    return {
        "tracking_number": shipment.tracking_number,
        "status": shipment.status,
        "carrier_tracking_number": shipment.carrier_tracking_number,
        "billing_account_id": str(shipment.billing_account_id) if shipment.billing_account_id else None,
        "charged_amount": shipment.charged_amount,
        "balance_after": balance_after,
        "already_booked": already_booked,
    }


@logistics.command_handler(part_of=Shipment)
class BookShipmentHandler:
    @handle(BookShipment)
    def book_shipment(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        actor.require_staff()
        repo = current_domain.repository_for(Shipment)
        shipment = repo.by_tracking_number(command.tracking_number)

        if shipment.dhl_confirmed:
            logger.info("Shipment already booked", tracking_number=shipment.tracking_number)
            return _result(shipment, already_booked=True)

        try:
            target = ShipmentStatus(command.target_status or ShipmentStatus.READY_FOR_PICKUP.value)
        except ValueError:
            raise ValidationError({"target_status": [f"Unknown shipment status: {command.target_status!r}"]}) from None

        if shipment.price is None:
            priced = quote(
                str(shipment.owner_id),
                shipment.origin,
                shipment.destination,
                _parcels(shipment),
                shipment.service_code,
            )
            shipment.reprice(float(priced.cost_price), float(priced.price))
        shipment.assert_can_book(target)

        owner = current_domain.repository_for(Account).get_account(shipment.owner_id)
        authorization = BalanceGuard().authorize(owner, shipment.price)
        expected = command.expected_billing_account_id
        if expected and str(expected) != authorization.account_id:
            raise ConcurrencyConflictError(
                "Billing account changed while the booking was waiting",
                tracking_number=shipment.tracking_number,
            )
        authorization.raise_if_declined()

        carrier = get_carrier()
        timeout = config.carrier_timeout_seconds()
        booking = carrier.create_shipment(
            shipment.tracking_number,
            shipment.origin.to_dict(),
            shipment.destination.to_dict(),
            _parcels(shipment),
            shipment.service_code,
            timeout,
        )
        if booking.get("error"):
            logger.warning("Carrier booking failed", tracking_number=shipment.tracking_number, error=booking["error"])
            raise CarrierBookingError(
                f"Carrier booking failed: {booking['error']}",
                tracking_number=shipment.tracking_number,
            )

        try:
            entry = LedgerStore().append(
                account_id=authorization.account_id,
                entry_type=EntryType.DEBIT.value,
                category=EntryCategory.SHIPMENT_FEE.value,
                amount=shipment.price,
                description=f"Shipment fee for {shipment.tracking_number}",
                reference=shipment.tracking_number,
                created_by=actor.id,
            )
            shipment.confirm_booking(
                carrier_tracking_number=booking["carrier_tracking_number"],
                label_url=booking.get("label_url"),
                billing_account_id=authorization.account_id,
                charged_amount=entry.amount,
                target=target,
                actor_id=actor.id,
            )
            repo.add(shipment)
        except Exception:
            logger.error(
                "Booking failed after carrier acknowledgement, cancelling with carrier",
                tracking_number=shipment.tracking_number,
                carrier_tracking_number=booking["carrier_tracking_number"],
            )
            carrier.cancel_shipment(booking["carrier_tracking_number"], timeout)
            raise

        logger.info(
            "Shipment booked",
            tracking_number=shipment.tracking_number,
            billing_account_id=authorization.account_id,
            amount=entry.amount,
            balance_after=entry.balance_after,
        )
        return _result(shipment, already_booked=False, balance_after=entry.balance_after)


def book_shipment(
    actor: Actor,
    tracking_number: str,
    target_status: str = ShipmentStatus.READY_FOR_PICKUP.value,
    lock_timeout: float | None = None,
) -> dict:
    """Book under the shipment lock and the owner's billing-account lock."""
    shipment = current_domain.repository_for(Shipment).by_tracking_number(tracking_number)
    billing_id = str(BalanceGuard().billing_account_for(shipment.owner_id).id)
    with lock_shipment(tracking_number, billing_id, timeout=lock_timeout):
        command = BookShipment(
            tracking_number=tracking_number,
            target_status=target_status,
            expected_billing_account_id=billing_id,
            actor_id=actor.id,
            actor_role=actor.role.value,
        )
        return current_domain.process(command, asynchronous=False)
