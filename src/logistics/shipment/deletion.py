"""Shipment deletion: staff hard delete.

Ledger entries that reference the tracking number are left untouched.
"""

import structlog
from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.shared.actor import Actor
from logistics.shipment.shipment import Shipment

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Shipment")
class DeleteShipment:
    tracking_number = String(required=True, max_length=14)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command_handler(part_of=Shipment)
class DeleteShipmentHandler:
    @handle(DeleteShipment)
    def delete_shipment(self, command):
        Actor.of(command.actor_id, command.actor_role).require_staff()
        repo = current_domain.repository_for(Shipment)
        shipment = repo.by_tracking_number(command.tracking_number)
        repo.delete_shipment(shipment)
        logger.info("Shipment deleted", tracking_number=command.tracking_number, actor_id=command.actor_id)
