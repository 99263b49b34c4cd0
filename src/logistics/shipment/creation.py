"""Direct shipment creation — command and handler.

A client creates a shipment without a pickup request. It starts as a draft,
priced from a carrier quote marked up for the client's billing account.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from logistics.account.pricing import validate_quoted_price
from logistics.domain import logistics
from logistics.shared.actor import Actor
from logistics.shared.address import parse_address
from logistics.shipment.quoting import quote
from logistics.shipment.shipment import Shipment

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Shipment")
class CreateShipment:
    owner_id = Identifier()
    origin = Text(required=True)  # JSON address
    destination = Text(required=True)  # JSON address
    items = Text(required=True)  # JSON list of parcel dicts
    service_code = String(max_length=10, default="P")
    quoted_price = Float(min_value=0.0)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


def parse_items(items_json: str) -> list[dict]:
    try:
        items = json.loads(items_json)
    except json.JSONDecodeError:
        raise ValidationError({"items": ["Items must be a JSON list"]}) from None
    if not isinstance(items, list) or not items:
        raise ValidationError({"items": ["At least one parcel is required"]})
    return items


@logistics.command_handler(part_of=Shipment)
class CreateShipmentHandler:
    @handle(CreateShipment)
    def create_shipment(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        owner_id = str(command.owner_id or actor.id)
        actor.require_owner_or_staff(owner_id)

        origin = parse_address(command.origin, "origin")
        destination = parse_address(command.destination, "destination")
        items = parse_items(command.items)

        priced = quote(owner_id, origin, destination, items, command.service_code or "P")
        if command.quoted_price is not None and not validate_quoted_price(command.quoted_price, priced.price):
            raise ValidationError(
                {"quoted_price": [f"Quoted price {command.quoted_price} does not match {priced.price}"]}
            )

        repo = current_domain.repository_for(Shipment)
        shipment = Shipment.create(
            tracking_number=repo.next_tracking_number(),
            owner_id=owner_id,
            origin=origin,
            destination=destination,
            items_data=items,
            service_code=command.service_code or "P",
            cost_price=float(priced.cost_price),
            price=float(priced.price),
            actor_id=actor.id,
        )
        repo.add(shipment)
        logger.info("Shipment created", tracking_number=shipment.tracking_number, owner_id=owner_id)
        return shipment.tracking_number
