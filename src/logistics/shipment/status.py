"""Shipment status and checkpoint updates — commands and handler.

Staff and drivers move shipments along the lifecycle and record location
checkpoints. Cancellation requested through a status update goes through
the same path as an explicit cancellation so the fee is refunded.
"""

from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.shared.actor import Actor, Role
from logistics.shipment.cancellation import cancel_with_refund
from logistics.shipment.shipment import Shipment, ShipmentStatus

_OPERATIONS_ROLES = (Role.STAFF, Role.ADMIN, Role.DRIVER)


@logistics.command(part_of="Shipment")
class UpdateShipmentStatus:
    tracking_number = String(required=True, max_length=14)
    status = String(required=True, max_length=30)
    description = String(max_length=500)
    location = String(max_length=300)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command(part_of="Shipment")
class RecordLocation:
    """Checkpoint update; a bundled status is applied in the same call.

    A bundled ``cancelled`` status is recorded at the location and then
    handled like a staff cancellation, refund included.
    """

    tracking_number = String(required=True, max_length=14)
    location = String(required=True, max_length=300)
    description = String(max_length=500)
    status = String(max_length=30)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command_handler(part_of=Shipment)
class ShipmentStatusHandler:
    @handle(UpdateShipmentStatus)
    def update_status(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        actor.require(*_OPERATIONS_ROLES)
        repo = current_domain.repository_for(Shipment)
        shipment = repo.by_tracking_number(command.tracking_number)

        if command.status == ShipmentStatus.CANCELLED.value:
            actor.require_staff()
            cancel_with_refund(shipment, command.description or "Cancelled by staff", actor)
        else:
            shipment.update_status(
                command.status,
                description=command.description,
                location=command.location,
                actor_id=actor.id,
            )
        repo.add(shipment)
        return shipment.status

    @handle(RecordLocation)
    def record_location(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        actor.require(*_OPERATIONS_ROLES)
        repo = current_domain.repository_for(Shipment)
        shipment = repo.by_tracking_number(command.tracking_number)

        if command.status == ShipmentStatus.CANCELLED.value:
            actor.require_staff()
            shipment.record_location(command.location, description=command.description, actor_id=actor.id)
            cancel_with_refund(shipment, command.description or "Cancelled by staff", actor)
        else:
            shipment.record_location(
                command.location,
                description=command.description,
                status=command.status,
                actor_id=actor.id,
            )
        repo.add(shipment)
        return shipment.status
