"""Barcode scans — driver pickup and warehouse intake.

Both scans are idempotent: scanning a parcel that already reached the
scan's target state succeeds without touching the shipment.
"""

import structlog
from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.shared.actor import Actor, Role
from logistics.shipment.shipment import Shipment

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Shipment")
class ScanPickup:
    tracking_number = String(required=True, max_length=14)
    location = String(max_length=300)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command(part_of="Shipment")
class ScanAtWarehouse:
    tracking_number = String(required=True, max_length=14)
    location = String(max_length=300)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command_handler(part_of=Shipment)
class ScanHandler:
    @handle(ScanPickup)
    def scan_pickup(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        actor.require(Role.DRIVER, Role.STAFF, Role.ADMIN)
        repo = current_domain.repository_for(Shipment)
        shipment = repo.by_tracking_number(command.tracking_number)
        if shipment.scan_pickup(actor_id=actor.id, location=command.location):
            repo.add(shipment)
        else:
            logger.info("Pickup scan repeated", tracking_number=shipment.tracking_number, status=shipment.status)
        return shipment.status

    @handle(ScanAtWarehouse)
    def scan_at_warehouse(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        actor.require_staff()
        repo = current_domain.repository_for(Shipment)
        shipment = repo.by_tracking_number(command.tracking_number)
        if shipment.scan_at_warehouse(actor_id=actor.id, location=command.location):
            repo.add(shipment)
        return shipment.status
