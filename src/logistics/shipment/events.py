"""Shipment domain events — immutable facts about shipment state changes."""

from protean.fields import Boolean, DateTime, Float, Identifier, String

from logistics.domain import logistics


@logistics.event(part_of="Shipment")
class ShipmentCreated:
    """A shipment was created, directly as a draft or by promoting a pickup request."""

    __version__ = 1

    shipment_id = Identifier(required=True)
    tracking_number = String(required=True)
    owner_id = Identifier(required=True)
    status = String(required=True)
    pickup_request_id = Identifier()
    price = Float()
    created_at = DateTime(required=True)


@logistics.event(part_of="Shipment")
class ShipmentStatusChanged:
    __version__ = 1

    shipment_id = Identifier(required=True)
    tracking_number = String(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    trigger = String(required=True)
    description = String()
    location = String()
    changed_at = DateTime(required=True)


@logistics.event(part_of="Shipment")
class ShipmentDetailsEdited:
    __version__ = 1

    shipment_id = Identifier(required=True)
    tracking_number = String(required=True)
    changed_fields = String()
    edited_at = DateTime(required=True)


@logistics.event(part_of="Shipment")
class ShipmentBooked:
    """The carrier acknowledged the booking and the fee was debited."""

    __version__ = 1

    shipment_id = Identifier(required=True)
    tracking_number = String(required=True)
    carrier_tracking_number = String(required=True)
    billing_account_id = Identifier(required=True)
    charged_amount = Float(required=True)
    booked_at = DateTime(required=True)


@logistics.event(part_of="Shipment")
class ShipmentLocationUpdated:
    __version__ = 1

    shipment_id = Identifier(required=True)
    tracking_number = String(required=True)
    location = String(required=True)
    status = String(required=True)
    updated_at = DateTime(required=True)


@logistics.event(part_of="Shipment")
class ShipmentCancelled:
    __version__ = 1

    shipment_id = Identifier(required=True)
    tracking_number = String(required=True)
    reason = String(required=True)
    refund_due = Boolean(default=False)
    cancelled_at = DateTime(required=True)


@logistics.event(part_of="Shipment")
class PublicSettingsChanged:
    __version__ = 1

    shipment_id = Identifier(required=True)
    tracking_number = String(required=True)
    allow_public_location_update = Boolean(required=True)
    changed_at = DateTime(required=True)


@logistics.event(part_of="Shipment")
class DestinationUpdated:
    """The receiver corrected the destination through the public tracking link."""

    __version__ = 1

    shipment_id = Identifier(required=True)
    tracking_number = String(required=True)
    destination = String(required=True)
    updated_at = DateTime(required=True)
