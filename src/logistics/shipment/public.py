"""Public tracking — what anyone holding a tracking number may see and do.

The public view leaves out prices and billing. A receiver may correct the
destination only when the owner or staff enabled public updates.
"""

from protean import handle
from protean.fields import Boolean, String, Text
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.shared.actor import Actor
from logistics.shared.address import parse_address
from logistics.shipment.shipment import Shipment


@logistics.command(part_of="Shipment")
class ChangePublicSettings:
    tracking_number = String(required=True, max_length=14)
    allow_public_location_update = Boolean(required=True)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command(part_of="Shipment")
class UpdateDestinationPublicly:
    tracking_number = String(required=True, max_length=14)
    destination = Text(required=True)  # JSON address


@logistics.command_handler(part_of=Shipment)
class PublicTrackingHandler:
    @handle(ChangePublicSettings)
    def change_public_settings(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        repo = current_domain.repository_for(Shipment)
        shipment = repo.by_tracking_number(command.tracking_number)
        actor.require_owner_or_staff(shipment.owner_id)
        shipment.change_public_settings(command.allow_public_location_update)
        repo.add(shipment)

    @handle(UpdateDestinationPublicly)
    def update_destination(self, command):
        repo = current_domain.repository_for(Shipment)
        shipment = repo.by_tracking_number(command.tracking_number)
        shipment.update_destination_publicly(parse_address(command.destination, "destination"))
        repo.add(shipment)


def public_view(shipment: Shipment) -> dict:
    return {
        "tracking_number": shipment.tracking_number,
        "status": shipment.status,
        "current_location": shipment.current_location,
        "destination_city": shipment.destination.city if shipment.destination else None,
        "allow_public_location_update": shipment.allow_public_location_update,
        "history": [
            {
                "status": h.status,
                "description": h.description,
                "location": h.location,
                "occurred_at": h.occurred_at.isoformat() if h.occurred_at else None,
            }
            for h in shipment.ordered_history()
        ],
    }
