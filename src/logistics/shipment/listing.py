"""Shipment listings, scoped by who is asking.

Clients only ever see their own shipments. Staff, admins and drivers see
every shipment and may narrow the list to one owner.
"""

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from logistics.shared.actor import Actor, Role
from logistics.shipment.shipment import Shipment, ShipmentStatus
from logistics.utils import config


def page_bounds(page: int, limit: int | None) -> tuple[int, int]:
    limit = limit or config.list_page_size()
    if limit < 1:
        raise ValidationError({"limit": ["Page size must be at least 1"]})
    return max(1, page), limit


def list_shipments(actor: Actor, status: str | None = None, owner_id: str | None = None, page: int = 1, limit=None):
    """Newest first. Returns the repository's ``ResultSet`` for the page."""
    if status:
        try:
            ShipmentStatus(status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown shipment status: {status!r}"]}) from None
    if actor.role == Role.CLIENT:
        owner_id = actor.id
    page, limit = page_bounds(page, limit)
    return current_domain.repository_for(Shipment).listing(owner_id=owner_id, status=status, page=page, limit=limit)
