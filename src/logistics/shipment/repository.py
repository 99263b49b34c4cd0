"""Repository for the Shipment aggregate."""

from logistics.domain import logistics
from logistics.shared.errors import NotFoundError
from logistics.shipment.shipment import Shipment, generate_tracking_number


@logistics.repository(part_of=Shipment)
class ShipmentRepository:
    def find_by_tracking_number(self, tracking_number: str) -> Shipment | None:
        return self._dao.query.filter(tracking_number=tracking_number).all().first

    def by_tracking_number(self, tracking_number: str) -> Shipment:
        """Load a shipment by tracking number or raise ``NotFoundError``."""
        shipment = self.find_by_tracking_number(tracking_number)
        if shipment is None:
            raise NotFoundError(
                f"Shipment {tracking_number} not found",
                tracking_number=tracking_number,
            )
        return shipment

    def next_tracking_number(self) -> str:
        tracking_number = generate_tracking_number()
        while self.find_by_tracking_number(tracking_number) is not None:
            tracking_number = generate_tracking_number()
        return tracking_number

    def owned_by(self, owner_id: str) -> list[Shipment]:
        return self._dao.query.filter(owner_id=str(owner_id)).all().items

    def delete_shipment(self, shipment: Shipment) -> None:
        self._dao.delete(shipment)

    def listing(self, owner_id=None, status: str | None = None, page: int = 1, limit: int = 50):
        """One page of shipments, newest first, as a protean ``ResultSet``."""
        filters = {}
        if owner_id:
            filters["owner_id"] = str(owner_id)
        if status:
            filters["status"] = status
        query = self._dao.query.filter(**filters) if filters else self._dao.query
        return query.order_by("-created_at").limit(limit).offset((page - 1) * limit).all()
