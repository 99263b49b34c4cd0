"""Pickup request listings. Clients see their own, everyone else sees all."""

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from logistics.pickup.pickup_request import PickupRequest, PickupStatus
from logistics.shared.actor import Actor, Role
from logistics.shipment.listing import page_bounds


def list_pickup_requests(
    actor: Actor, status: str | None = None, client_id: str | None = None, page: int = 1, limit=None
):
    if status:
        try:
            PickupStatus(status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown pickup status: {status!r}"]}) from None
    if actor.role == Role.CLIENT:
        client_id = actor.id
    page, limit = page_bounds(page, limit)
    return current_domain.repository_for(PickupRequest).listing(
        client_id=client_id, status=status, page=page, limit=limit
    )
