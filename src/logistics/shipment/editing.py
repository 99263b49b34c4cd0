"""Shipment editing — client changes to addresses, parcels and service."""

from protean import handle
from protean.fields import String, Text
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.shared.actor import Actor
from logistics.shared.address import parse_address
from logistics.shipment.creation import parse_items
from logistics.shipment.quoting import quote
from logistics.shipment.shipment import Shipment


@logistics.command(part_of="Shipment")
class EditShipment:
    tracking_number = String(required=True, max_length=14)
    origin = Text()  # JSON address
    destination = Text()  # JSON address
    items = Text()  # JSON list of parcel dicts
    service_code = String(max_length=10)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command_handler(part_of=Shipment)
class EditShipmentHandler:
    @handle(EditShipment)
    def edit_shipment(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        repo = current_domain.repository_for(Shipment)
        shipment = repo.by_tracking_number(command.tracking_number)
        actor.require_owner_or_staff(shipment.owner_id)

        origin = parse_address(command.origin, "origin") if command.origin else None
        destination = parse_address(command.destination, "destination") if command.destination else None
        items = parse_items(command.items) if command.items else None
        shipment.edit_details(
            origin=origin,
            destination=destination,
            items_data=items,
            service_code=command.service_code,
            actor_id=actor.id,
        )

        if items is not None or command.service_code:
            priced = quote(
                str(shipment.owner_id),
                shipment.origin,
                shipment.destination,
                items or [_item_dict(i) for i in shipment.items],
                shipment.service_code,
            )
            shipment.reprice(float(priced.cost_price), float(priced.price))
        repo.add(shipment)


def _item_dict(item) -> dict:
    return {"weight": item.weight, "quantity": item.quantity}
