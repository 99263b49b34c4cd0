"""Shipment cancellation — command and handler.

Cancelling a booked shipment cancels it with the carrier and credits the
fee back to the account that was charged with a compensating REFUND entry,
even when that account has since joined an organization.
"""

import structlog
from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from logistics.account.account import EntryCategory, EntryType
from logistics.account.ledger import LedgerStore
from logistics.carrier import get_carrier
from logistics.domain import logistics
from logistics.shared.actor import Actor
from logistics.shared.errors import CarrierBookingError
from logistics.shipment.shipment import Shipment
from logistics.utils import config

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Shipment")
class CancelShipment:
    tracking_number = String(required=True, max_length=14)
    reason = String(required=True, max_length=500)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


def cancel_with_refund(shipment: Shipment, reason: str, actor: Actor) -> None:
    """Cancel ``shipment`` and refund its fee. The caller persists the shipment."""
    refund_due = shipment.refund_due
    shipment.cancel(reason, actor_id=actor.id)

    if shipment.dhl_confirmed:
        result = get_carrier().cancel_shipment(shipment.carrier_tracking_number, config.carrier_timeout_seconds())
        if not result.get("cancelled"):
            logger.warning(
                "Carrier cancellation failed",
                tracking_number=shipment.tracking_number,
                reason=result.get("reason"),
            )
            raise CarrierBookingError(f"Carrier refused cancellation: {result.get('reason')}")

    if refund_due:
        LedgerStore().append(
            account_id=str(shipment.billing_account_id),
            entry_type=EntryType.CREDIT.value,
            category=EntryCategory.REFUND.value,
            amount=shipment.charged_amount,
            description=f"Refund for cancelled shipment {shipment.tracking_number}",
            reference=shipment.tracking_number,
            created_by=actor.id,
        )
        shipment.mark_refunded()

    logger.info(
        "Shipment cancelled",
        tracking_number=shipment.tracking_number,
        refunded=refund_due,
        amount=shipment.charged_amount if refund_due else 0.0,
    )


@logistics.command_handler(part_of=Shipment)
class CancelShipmentHandler:
    @handle(CancelShipment)
    def cancel_shipment(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        actor.require_staff()
        repo = current_domain.repository_for(Shipment)
        shipment = repo.by_tracking_number(command.tracking_number)
        cancel_with_refund(shipment, command.reason, actor)
        repo.add(shipment)
