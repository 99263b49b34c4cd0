"""Repository for the PickupRequest aggregate."""

from protean.exceptions import ObjectNotFoundError

from logistics.domain import logistics
from logistics.pickup.pickup_request import PickupRequest
from logistics.shared.errors import NotFoundError


@logistics.repository(part_of=PickupRequest)
class PickupRequestRepository:
    def get_request(self, request_id) -> PickupRequest:
        """Load a pickup request or raise ``NotFoundError``."""
        try:
            return self.get(str(request_id))
        except ObjectNotFoundError:
            raise NotFoundError(f"Pickup request {request_id} not found", request_id=str(request_id)) from None

    def for_client(self, client_id) -> list[PickupRequest]:
        return self._dao.query.filter(client_id=str(client_id)).all().items

    def delete_request(self, request: PickupRequest) -> None:
        self._dao.delete(request)

    def listing(self, client_id=None, status: str | None = None, page: int = 1, limit: int = 50):
        """One page of pickup requests, newest first, as a protean ``ResultSet``."""
        filters = {}
        if client_id:
            filters["client_id"] = str(client_id)
        if status:
            filters["status"] = status
        query = self._dao.query.filter(**filters) if filters else self._dao.query
        return query.order_by("-created_at").limit(limit).offset((page - 1) * limit).all()
