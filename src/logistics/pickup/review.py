"""Staff review of pickup requests — approval (promotion) and rejection.

Approval writes the request and the new shipment in one unit of work, so
either both exist or neither does. Booking the promoted shipment is a
separate step: a booking that fails leaves the approved request and its
un-booked shipment in place.
"""

import structlog
from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.pickup.pickup_request import PickupRequest, PickupStatus
from logistics.pickup.promotion import shipment_from_request
from logistics.shared.actor import Actor
from logistics.shared.errors import LogisticsError
from logistics.shipment.booking import book_shipment
from logistics.shipment.quoting import quote
from logistics.shipment.shipment import Shipment
from logistics.utils.locks import pickup_key, serialized

logger = structlog.get_logger(__name__)


@logistics.command(part_of="PickupRequest")
class ApprovePickupRequest:
    request_id = Identifier(required=True)
    cost_price = Float(min_value=0.0)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command(part_of="PickupRequest")
class RejectPickupRequest:
    request_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command_handler(part_of=PickupRequest)
class PickupReviewHandler:
    @handle(ApprovePickupRequest)
    def approve(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        actor.require_staff()
        requests = current_domain.repository_for(PickupRequest)
        request = requests.get_request(command.request_id)

        if request.current_status == PickupStatus.APPROVED:
            logger.info("Pickup request already approved", request_id=str(request.id))
            return request.shipment_tracking_number
        request.assert_can_approve()

        shipments = current_domain.repository_for(Shipment)
        priced = quote(
            str(request.client_id),
            request.sender,
            request.receiver,
            request.parcel_dicts(),
            request.service_code,
            cost_price=command.cost_price,
        )
        shipment = shipment_from_request(request, shipments.next_tracking_number(), priced, actor.id)
        request.approve(shipment.tracking_number, actor.id)

        shipments.add(shipment)
        requests.add(request)
        logger.info(
            "Pickup request promoted",
            request_id=str(request.id),
            tracking_number=shipment.tracking_number,
            price=shipment.price,
        )
        return shipment.tracking_number

    @handle(RejectPickupRequest)
    def reject(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        actor.require_staff()
        repo = current_domain.repository_for(PickupRequest)
        request = repo.get_request(command.request_id)
        request.reject(command.reason, actor.id)
        repo.add(request)


def approve_pickup_request(actor: Actor, request_id: str, cost_price: float | None = None, book: bool = True) -> dict:
    """Promote the request, then try to book the shipment it produced."""
    with serialized(pickup_key(request_id)):
        command = ApprovePickupRequest(
            request_id=request_id,
            cost_price=cost_price,
            actor_id=actor.id,
            actor_role=actor.role.value,
        )
        tracking_number = current_domain.process(command, asynchronous=False)

    booking = None
    if book:
        try:
            booking = book_shipment(actor, tracking_number)
        except LogisticsError as exc:
            exc.details["tracking_number"] = tracking_number
            raise
    return {"tracking_number": tracking_number, "booking": booking}
