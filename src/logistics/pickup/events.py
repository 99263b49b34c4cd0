"""Pickup request domain events."""

from protean.fields import DateTime, Identifier, Integer, String

from logistics.domain import logistics


@logistics.event(part_of="PickupRequest")
class PickupRequested:
    """A client asked for parcels to be collected."""

    __version__ = 1

    request_id = Identifier(required=True)
    client_id = Identifier(required=True)
    parcel_count = Integer(required=True)
    requested_at = DateTime(required=True)


@logistics.event(part_of="PickupRequest")
class PickupRequestEdited:
    __version__ = 1

    request_id = Identifier(required=True)
    changed_fields = String()
    edited_at = DateTime(required=True)


@logistics.event(part_of="PickupRequest")
class PickupMarkedReady:
    __version__ = 1

    request_id = Identifier(required=True)
    ready_at = DateTime(required=True)


@logistics.event(part_of="PickupRequest")
class PickupApproved:
    """Staff approved the request and promoted it into a shipment."""

    __version__ = 1

    request_id = Identifier(required=True)
    client_id = Identifier(required=True)
    shipment_tracking_number = String(required=True)
    approved_by = String(required=True)
    approved_at = DateTime(required=True)


@logistics.event(part_of="PickupRequest")
class PickupRejected:
    __version__ = 1

    request_id = Identifier(required=True)
    client_id = Identifier(required=True)
    reason = String(required=True)
    rejected_at = DateTime(required=True)
