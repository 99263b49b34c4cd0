"""Promotion, the single mapping from an approved pickup request to a shipment.

The sender becomes the origin (and the parcel's current location), the
receiver becomes the destination, and each parcel becomes a shipment item.
The shipment starts ready for pickup and not yet booked with the carrier.
"""

from logistics.pickup.pickup_request import PickupRequest
from logistics.shipment.quoting import Quote
from logistics.shipment.shipment import Shipment, ShipmentStatus


def shipment_from_request(request: PickupRequest, tracking_number: str, priced: Quote, actor_id: str) -> Shipment:
    items = [
        {
            "description": p["description"],
            "quantity": p["quantity"],
            "weight": p["weight"],
            "length": p["length"],
            "width": p["width"],
            "height": p["height"],
            "declared_value": p["declared_value"],
        }
        for p in request.parcel_dicts()
    ]
    return Shipment.create(
        tracking_number=tracking_number,
        owner_id=str(request.client_id),
        origin=request.sender,
        destination=request.receiver,
        items_data=items,
        initial_status=ShipmentStatus.READY_FOR_PICKUP,
        service_code=request.service_code,
        cost_price=float(priced.cost_price),
        price=float(priced.price),
        pickup_request_id=str(request.id),
        description="Shipment created from pickup request",
        actor_id=actor_id,
    )
