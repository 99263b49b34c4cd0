"""PickupRequest aggregate — a client's request to have parcels collected.

State Machine:
    REQUESTED → READY_FOR_PICKUP → APPROVED
    {REQUESTED, READY_FOR_PICKUP} → {APPROVED, REJECTED}

APPROVED and REJECTED are terminal. An approved request is linked to the
shipment it was promoted into and is read-only from then on. Every action
on a request is written to its audit log.
"""

from datetime import UTC, date, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    Date,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from logistics.domain import logistics
from logistics.pickup.events import (
    PickupApproved,
    PickupMarkedReady,
    PickupRejected,
    PickupRequested,
    PickupRequestEdited,
)
from logistics.shared.address import Address
from logistics.shared.errors import InvalidTransitionError


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class PickupStatus(Enum):
    REQUESTED = "REQUESTED"
    READY_FOR_PICKUP = "READY_FOR_PICKUP"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"


class AuditAction(Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    READY = "READY"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


_VALID_TRANSITIONS = {
    PickupStatus.REQUESTED: {PickupStatus.READY_FOR_PICKUP, PickupStatus.APPROVED, PickupStatus.REJECTED},
    PickupStatus.READY_FOR_PICKUP: {PickupStatus.APPROVED, PickupStatus.REJECTED},
    PickupStatus.APPROVED: set(),  # terminal
    PickupStatus.REJECTED: set(),  # terminal
    PickupStatus.COMPLETED: set(),  # terminal
}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@logistics.entity(part_of="PickupRequest")
class Parcel:
    description = String(required=True, max_length=300)
    weight = Float(required=True, min_value=0.0)
    length = Float(min_value=0.0)
    width = Float(min_value=0.0)
    height = Float(min_value=0.0)
    quantity = Integer(default=1, min_value=1)
    declared_value = Float(min_value=0.0)


@logistics.entity(part_of="PickupRequest")
class PickupAuditEntry:
    action = String(required=True, max_length=20, choices=AuditAction)
    actor_id = String(max_length=100)
    note = Text()
    occurred_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@logistics.aggregate
class PickupRequest:
    client_id = Identifier(required=True)
    sender = ValueObject(Address, required=True)
    receiver = ValueObject(Address, required=True)
    parcels = HasMany(Parcel)
    service_code = String(max_length=10, default="P")
    status = String(
        max_length=20,
        choices=PickupStatus,
        default=PickupStatus.REQUESTED.value,
    )
    requested_pickup_date = Date()
    pickup_instructions = String(max_length=500)
    rejection_reason = String(max_length=500)
    shipment_tracking_number = String(max_length=14)
    approved_by = String(max_length=100)
    approved_at = DateTime()
    audit_log = HasMany(PickupAuditEntry)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def submit(
        cls,
        client_id: str,
        sender: Address,
        receiver: Address,
        parcels_data: list[dict],
        service_code: str = "P",
        requested_pickup_date: date | None = None,
        pickup_instructions: str | None = None,
        actor_id: str | None = None,
    ):
        if not parcels_data:
            raise ValidationError({"parcels": ["At least one parcel is required"]})

        now = datetime.now(UTC)
        request = cls(
            client_id=client_id,
            sender=sender,
            receiver=receiver,
            service_code=service_code or "P",
            status=PickupStatus.REQUESTED.value,
            requested_pickup_date=requested_pickup_date,
            pickup_instructions=pickup_instructions,
            created_at=now,
            updated_at=now,
        )
        for parcel_data in parcels_data:
            request.add_parcels(Parcel(**parcel_data))
        request._audit(AuditAction.CREATED, actor_id or str(client_id), now=now)
        request.raise_(
            PickupRequested(
                request_id=str(request.id),
                client_id=str(client_id),
                parcel_count=len(parcels_data),
                requested_at=now,
            )
        )
        return request

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> PickupStatus:
        return PickupStatus(self.status)

    def _assert_can_transition(self, target: PickupStatus) -> None:
        current = self.current_status
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransitionError(current.value, target.value)

    def _audit(self, action: AuditAction, actor_id: str | None, note: str | None = None, now=None) -> None:
        self.add_audit_log(
            PickupAuditEntry(
                action=action.value,
                actor_id=actor_id,
                note=note,
                occurred_at=now or datetime.now(UTC),
            )
        )

    def ordered_audit_log(self) -> list:
        return sorted(self.audit_log or [], key=lambda e: e.occurred_at)

    def parcel_dicts(self) -> list[dict]:
        return [
            {
                "description": p.description,
                "weight": p.weight,
                "length": p.length,
                "width": p.width,
                "height": p.height,
                "quantity": p.quantity,
                "declared_value": p.declared_value,
            }
            for p in self.parcels or []
        ]

    def _assert_editable(self) -> None:
        if self.current_status != PickupStatus.REQUESTED:
            raise InvalidTransitionError(
                self.status,
                self.status,
                f"Pickup request can only be changed while {PickupStatus.REQUESTED.value}",
            )

    # -------------------------------------------------------------------
    # Client actions
    # -------------------------------------------------------------------
    def edit(
        self,
        sender: Address | None = None,
        receiver: Address | None = None,
        parcels_data: list[dict] | None = None,
        service_code: str | None = None,
        requested_pickup_date: date | None = None,
        pickup_instructions: str | None = None,
        actor_id: str | None = None,
    ) -> None:
        self._assert_editable()
        changed = []
        if sender is not None:
            self.sender = sender
            changed.append("sender")
        if receiver is not None:
            self.receiver = receiver
            changed.append("receiver")
        if parcels_data is not None:
            if not parcels_data:
                raise ValidationError({"parcels": ["At least one parcel is required"]})
            for parcel in list(self.parcels or []):
                self.remove_parcels(parcel)
            for parcel_data in parcels_data:
                self.add_parcels(Parcel(**parcel_data))
            changed.append("parcels")
        if service_code:
            self.service_code = service_code
            changed.append("service_code")
        if requested_pickup_date is not None:
            self.requested_pickup_date = requested_pickup_date
            changed.append("requested_pickup_date")
        if pickup_instructions is not None:
            self.pickup_instructions = pickup_instructions
            changed.append("pickup_instructions")

        now = datetime.now(UTC)
        self.updated_at = now
        self._audit(AuditAction.UPDATED, actor_id, ",".join(changed), now)
        self.raise_(
            PickupRequestEdited(
                request_id=str(self.id),
                changed_fields=",".join(changed),
                edited_at=now,
            )
        )

    def mark_ready(self, actor_id: str | None = None) -> None:
        """The client confirms the parcels are packed and waiting."""
        self._assert_can_transition(PickupStatus.READY_FOR_PICKUP)
        now = datetime.now(UTC)
        self.status = PickupStatus.READY_FOR_PICKUP.value
        self.updated_at = now
        self._audit(AuditAction.READY, actor_id, now=now)
        self.raise_(PickupMarkedReady(request_id=str(self.id), ready_at=now))

    def assert_deletable(self) -> None:
        self._assert_editable()

    # -------------------------------------------------------------------
    # Staff review
    # -------------------------------------------------------------------
    def assert_can_approve(self) -> None:
        self._assert_can_transition(PickupStatus.APPROVED)

    def approve(self, shipment_tracking_number: str, actor_id: str) -> None:
        """Link the promoted shipment and close the request."""
        self.assert_can_approve()
        now = datetime.now(UTC)
        self.status = PickupStatus.APPROVED.value
        self.shipment_tracking_number = shipment_tracking_number
        self.approved_by = actor_id
        self.approved_at = now
        self.updated_at = now
        self._audit(AuditAction.APPROVED, actor_id, shipment_tracking_number, now)
        self.raise_(
            PickupApproved(
                request_id=str(self.id),
                client_id=str(self.client_id),
                shipment_tracking_number=shipment_tracking_number,
                approved_by=actor_id,
                approved_at=now,
            )
        )

    def reject(self, reason: str, actor_id: str) -> None:
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["A rejection reason is required"]})
        self._assert_can_transition(PickupStatus.REJECTED)
        now = datetime.now(UTC)
        self.status = PickupStatus.REJECTED.value
        self.rejection_reason = reason
        self.updated_at = now
        self._audit(AuditAction.REJECTED, actor_id, reason, now)
        self.raise_(
            PickupRejected(
                request_id=str(self.id),
                client_id=str(self.client_id),
                reason=reason,
                rejected_at=now,
            )
        )
