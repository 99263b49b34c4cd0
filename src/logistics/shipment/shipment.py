"""Shipment aggregate — the lifecycle of one parcel consignment.

State Machine (trigger: source → target):
    EDIT      {draft, pending, updated, exception} → {pending, updated}
    BOOKING   {pending, updated, ready_for_pickup, exception} → {ready_for_pickup, picked_up}
    SCAN      ready_for_pickup → picked_up
    PROGRESS  picked_up → in_transit → out_for_delivery → delivered
              exception → {in_transit, out_for_delivery}
    FLAG      any non-terminal (except exception) → exception
    CANCEL    any non-terminal → cancelled
    RETURN    {in_transit, out_for_delivery, exception} → returned

delivered, cancelled and returned are terminal. Every transition appends to
the history; nothing ever removes from it.
"""

import secrets
import string
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from logistics.domain import logistics
from logistics.shared.address import Address
from logistics.shared.errors import InvalidTransitionError, PermissionDeniedError
from logistics.shipment.events import (
    DestinationUpdated,
    PublicSettingsChanged,
    ShipmentBooked,
    ShipmentCancelled,
    ShipmentCreated,
    ShipmentDetailsEdited,
    ShipmentLocationUpdated,
    ShipmentStatusChanged,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ShipmentStatus(Enum):
    DRAFT = "draft"
    PENDING = "pending"
    UPDATED = "updated"
    READY_FOR_PICKUP = "ready_for_pickup"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    EXCEPTION = "exception"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class Trigger(Enum):
    EDIT = "edit"
    BOOKING = "booking"
    SCAN = "scan"
    PROGRESS = "progress"
    FLAG = "flag"
    CANCEL = "cancel"
    RETURN = "return"


S = ShipmentStatus

TERMINAL_STATUSES = frozenset({S.DELIVERED, S.CANCELLED, S.RETURNED})
_ACTIVE = frozenset(S) - TERMINAL_STATUSES

_TRANSITION_RULES = [
    (Trigger.EDIT, {S.DRAFT, S.PENDING, S.UPDATED, S.EXCEPTION}, {S.PENDING, S.UPDATED}),
    (Trigger.BOOKING, {S.PENDING, S.UPDATED, S.READY_FOR_PICKUP, S.EXCEPTION}, {S.READY_FOR_PICKUP, S.PICKED_UP}),
    (Trigger.SCAN, {S.READY_FOR_PICKUP}, {S.PICKED_UP}),
    (Trigger.PROGRESS, {S.PICKED_UP}, {S.IN_TRANSIT}),
    (Trigger.PROGRESS, {S.IN_TRANSIT}, {S.OUT_FOR_DELIVERY}),
    (Trigger.PROGRESS, {S.OUT_FOR_DELIVERY}, {S.DELIVERED}),
    (Trigger.PROGRESS, {S.EXCEPTION}, {S.IN_TRANSIT, S.OUT_FOR_DELIVERY}),
    (Trigger.FLAG, _ACTIVE - {S.EXCEPTION}, {S.EXCEPTION}),
    (Trigger.CANCEL, _ACTIVE, {S.CANCELLED}),
    (Trigger.RETURN, {S.IN_TRANSIT, S.OUT_FOR_DELIVERY, S.EXCEPTION}, {S.RETURNED}),
]

# (source, target) -> triggers allowed to make that move
_TRANSITIONS: dict[tuple[ShipmentStatus, ShipmentStatus], frozenset[Trigger]] = {}
for _trigger, _sources, _targets in _TRANSITION_RULES:
    for _source in _sources:
        for _target in _targets:
            _TRANSITIONS[(_source, _target)] = _TRANSITIONS.get((_source, _target), frozenset()) | {_trigger}

# Trigger a generic status update implies for each target
_STATUS_UPDATE_TRIGGERS = {
    S.PENDING: Trigger.EDIT,
    S.UPDATED: Trigger.EDIT,
    S.READY_FOR_PICKUP: Trigger.BOOKING,
    S.PICKED_UP: Trigger.SCAN,
    S.IN_TRANSIT: Trigger.PROGRESS,
    S.OUT_FOR_DELIVERY: Trigger.PROGRESS,
    S.DELIVERED: Trigger.PROGRESS,
    S.EXCEPTION: Trigger.FLAG,
    S.CANCELLED: Trigger.CANCEL,
    S.RETURNED: Trigger.RETURN,
}

_PUBLIC_UPDATE_CLOSED = TERMINAL_STATUSES | {S.OUT_FOR_DELIVERY}

_TRACKING_ALPHABET = string.ascii_uppercase + string.digits


def can_transition(current: ShipmentStatus, target: ShipmentStatus, trigger: Trigger) -> bool:
    return trigger in _TRANSITIONS.get((current, target), frozenset())


def generate_tracking_number() -> str:
    """Twelve random characters from A-Z0-9, grouped as XXXX-XXXX-XXXX."""
    raw = "".join(secrets.choice(_TRACKING_ALPHABET) for _ in range(12))
    return "-".join(raw[i : i + 4] for i in range(0, 12, 4))


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@logistics.entity(part_of="Shipment")
class ShipmentItem:
    """A parcel in the consignment, with the customs fields the carrier needs."""

    description = String(required=True, max_length=300)
    quantity = Integer(default=1, min_value=1)
    weight = Float(required=True, min_value=0.0)
    length = Float(min_value=0.0)
    width = Float(min_value=0.0)
    height = Float(min_value=0.0)
    declared_value = Float(min_value=0.0)
    hs_code = String(max_length=20)
    sku = String(max_length=100)
    country_of_origin = String(max_length=2)


@logistics.entity(part_of="Shipment")
class StatusChange:
    """One append-only line of the shipment's history."""

    status = String(required=True, max_length=30, choices=ShipmentStatus)
    description = String(max_length=500)
    location = String(max_length=300)
    actor_id = String(max_length=100)
    sequence = Integer(required=True, min_value=1)
    occurred_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@logistics.aggregate
class Shipment:
    tracking_number = String(required=True, max_length=14, unique=True)
    owner_id = Identifier(required=True)
    origin = ValueObject(Address, required=True)
    destination = ValueObject(Address, required=True)
    items = HasMany(ShipmentItem)
    status = String(
        max_length=30,
        choices=ShipmentStatus,
        default=ShipmentStatus.DRAFT.value,
    )
    history = HasMany(StatusChange)
    current_location = String(max_length=300)
    service_code = String(max_length=10, default="P")
    cost_price = Float(min_value=0.0)
    price = Float(min_value=0.0)
    currency = String(max_length=3, default="KWD")
    dhl_confirmed = Boolean(default=False)
    carrier_tracking_number = String(max_length=100)
    label_url = String(max_length=500)
    billing_account_id = Identifier()
    charged_amount = Float()
    refunded = Boolean(default=False)
    allow_public_location_update = Boolean(default=False)
    pickup_request_id = Identifier()
    cancellation_reason = String(max_length=500)
    booked_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        tracking_number: str,
        owner_id: str,
        origin: Address,
        destination: Address,
        items_data: list[dict],
        initial_status: ShipmentStatus = ShipmentStatus.DRAFT,
        service_code: str = "P",
        cost_price: float | None = None,
        price: float | None = None,
        pickup_request_id: str | None = None,
        description: str = "Shipment created",
        actor_id: str | None = None,
    ):
        if initial_status not in (ShipmentStatus.DRAFT, ShipmentStatus.READY_FOR_PICKUP):
            raise ValidationError({"status": [f"Shipments cannot start in {initial_status.value}"]})
        if not items_data:
            raise ValidationError({"items": ["At least one parcel is required"]})

        now = datetime.now(UTC)
        shipment = cls(
            tracking_number=tracking_number,
            owner_id=owner_id,
            origin=origin,
            destination=destination,
            status=initial_status.value,
            current_location=origin.label(),
            service_code=service_code or "P",
            cost_price=cost_price,
            price=price,
            pickup_request_id=pickup_request_id,
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            shipment.add_items(ShipmentItem(**item_data))
        shipment._append_history(initial_status, description, origin.label(), actor_id, now)
        shipment.raise_(
            ShipmentCreated(
                shipment_id=str(shipment.id),
                tracking_number=tracking_number,
                owner_id=str(owner_id),
                status=initial_status.value,
                pickup_request_id=str(pickup_request_id) if pickup_request_id else None,
                price=price,
                created_at=now,
            )
        )
        return shipment

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> ShipmentStatus:
        return ShipmentStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.current_status in TERMINAL_STATUSES

    def ordered_history(self) -> list:
        return sorted(self.history or [], key=lambda h: h.sequence)

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target: ShipmentStatus, trigger: Trigger, message: str | None = None) -> None:
        current = self.current_status
        if not can_transition(current, target, trigger):
            raise InvalidTransitionError(current.value, target.value, message)

    def _append_history(self, status, description, location, actor_id, occurred_at) -> None:
        sequence = max((h.sequence for h in self.history or []), default=0) + 1
        self.add_history(
            StatusChange(
                status=status.value,
                description=description or "",
                location=location,
                actor_id=actor_id,
                sequence=sequence,
                occurred_at=occurred_at,
            )
        )

    def _move_to(self, target: ShipmentStatus, trigger: Trigger, description: str, location=None, actor_id=None):
        self._assert_can_transition(target, trigger)
        now = datetime.now(UTC)
        previous = self.status
        self.status = target.value
        if location:
            self.current_location = location
        self.updated_at = now
        self._append_history(target, description, location, actor_id, now)
        self.raise_(
            ShipmentStatusChanged(
                shipment_id=str(self.id),
                tracking_number=self.tracking_number,
                previous_status=previous,
                status=target.value,
                trigger=trigger.value,
                description=description or "",
                location=location,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------
    def edit_details(
        self,
        origin: Address | None = None,
        destination: Address | None = None,
        items_data: list[dict] | None = None,
        service_code: str | None = None,
        actor_id: str | None = None,
    ) -> None:
        """Client edit: a draft becomes pending, anything else becomes updated."""
        target = ShipmentStatus.PENDING if self.current_status == ShipmentStatus.DRAFT else ShipmentStatus.UPDATED
        if self.dhl_confirmed:
            raise InvalidTransitionError(self.status, target.value, "A booked shipment cannot be edited")
        self._assert_can_transition(target, Trigger.EDIT)

        changed = []
        if origin is not None:
            self.origin = origin
            changed.append("origin")
        if destination is not None:
            self.destination = destination
            changed.append("destination")
        if items_data is not None:
            if not items_data:
                raise ValidationError({"items": ["At least one parcel is required"]})
            for item in list(self.items or []):
                self.remove_items(item)
            for item_data in items_data:
                self.add_items(ShipmentItem(**item_data))
            changed.append("items")
        if service_code:
            self.service_code = service_code
            changed.append("service_code")

        description = "Shipment submitted" if target == ShipmentStatus.PENDING else "Shipment details updated"
        self._move_to(target, Trigger.EDIT, description, actor_id=actor_id)
        self.raise_(
            ShipmentDetailsEdited(
                shipment_id=str(self.id),
                tracking_number=self.tracking_number,
                changed_fields=",".join(changed),
                edited_at=self.updated_at,
            )
        )

    def reprice(self, cost_price: float, price: float) -> None:
        if self.dhl_confirmed:
            raise ValidationError({"price": ["A booked shipment cannot be repriced"]})
        self.cost_price = cost_price
        self.price = price
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Booking
    # -------------------------------------------------------------------
    def assert_can_book(self, target: ShipmentStatus = ShipmentStatus.READY_FOR_PICKUP) -> None:
        self._assert_can_transition(target, Trigger.BOOKING)
        if self.price is None:
            raise ValidationError({"price": ["Shipment has no price to charge"]})

    def confirm_booking(
        self,
        carrier_tracking_number: str,
        label_url: str | None,
        billing_account_id: str,
        charged_amount: float,
        target: ShipmentStatus = ShipmentStatus.READY_FOR_PICKUP,
        actor_id: str | None = None,
    ) -> None:
        """Record the carrier's acknowledgement and the fee debited for it."""
        if self.dhl_confirmed:
            raise InvalidTransitionError(self.status, target.value, "Shipment is already booked")
        self.assert_can_book(target)

        now = datetime.now(UTC)
        self.dhl_confirmed = True
        self.carrier_tracking_number = carrier_tracking_number
        self.label_url = label_url
        self.billing_account_id = billing_account_id
        self.charged_amount = charged_amount
        self.booked_at = now
        self._move_to(target, Trigger.BOOKING, "Shipment booked with carrier", actor_id=actor_id)
        self.raise_(
            ShipmentBooked(
                shipment_id=str(self.id),
                tracking_number=self.tracking_number,
                carrier_tracking_number=carrier_tracking_number,
                billing_account_id=str(billing_account_id),
                charged_amount=charged_amount,
                booked_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Scans
    # -------------------------------------------------------------------
    def scan_pickup(self, actor_id: str | None = None, location: str | None = None) -> bool:
        """Driver pickup scan. Returns False when the parcel was already collected."""
        if self.current_status in (ShipmentStatus.PICKED_UP, ShipmentStatus.IN_TRANSIT):
            return False
        if self.current_status == ShipmentStatus.READY_FOR_PICKUP and not self.dhl_confirmed:
            raise InvalidTransitionError(
                self.status,
                ShipmentStatus.PICKED_UP.value,
                "Shipment has not been booked with the carrier",
            )
        self._move_to(
            ShipmentStatus.PICKED_UP,
            Trigger.SCAN,
            "Shipment picked up by driver",
            location=location,
            actor_id=actor_id,
        )
        return True

    def scan_at_warehouse(self, actor_id: str | None = None, location: str | None = None) -> bool:
        """Warehouse intake scan. Returns False when the parcel is already in transit."""
        if self.current_status == ShipmentStatus.IN_TRANSIT:
            return False
        self._move_to(
            ShipmentStatus.IN_TRANSIT,
            Trigger.PROGRESS,
            "Shipment received at warehouse",
            location=location,
            actor_id=actor_id,
        )
        return True

    # -------------------------------------------------------------------
    # Generic status updates
    # -------------------------------------------------------------------
    def update_status(self, target: str, description: str = "", location: str | None = None, actor_id=None) -> None:
        """Staff/driver status update along any edge except booking and cancellation.

        Booking and cancellation move money, so they have their own
        operations.
        """
        try:
            target_status = ShipmentStatus(target)
        except ValueError:
            raise ValidationError({"status": [f"Unknown shipment status: {target!r}"]}) from None

        trigger = _STATUS_UPDATE_TRIGGERS[target_status]
        if trigger == Trigger.BOOKING:
            raise InvalidTransitionError(
                self.status, target_status.value, "Entering ready_for_pickup requires booking"
            )
        if trigger == Trigger.CANCEL:
            raise InvalidTransitionError(self.status, target_status.value, "Use cancellation to cancel a shipment")
        if trigger == Trigger.SCAN:
            if self.current_status == ShipmentStatus.PICKED_UP:
                return
            if not self.dhl_confirmed:
                raise InvalidTransitionError(
                    self.status,
                    target_status.value,
                    "Shipment has not been booked with the carrier",
                )
        self._move_to(target_status, trigger, description or f"Status changed to {target_status.value}", location, actor_id)

    def record_location(
        self,
        location: str,
        description: str = "",
        status: str | None = None,
        actor_id: str | None = None,
    ) -> None:
        """Checkpoint update. Status changes only when one is bundled in the same call."""
        if not location:
            raise ValidationError({"location": ["Location is required"]})
        if self.is_terminal:
            raise InvalidTransitionError(self.status, self.status, "Shipment is closed")

        if status and status != self.status:
            self.update_status(status, description or "Location updated manually", location, actor_id)
        else:
            now = datetime.now(UTC)
            self.current_location = location
            self.updated_at = now
            self._append_history(
                self.current_status, description or "Location updated manually", location, actor_id, now
            )
        self.raise_(
            ShipmentLocationUpdated(
                shipment_id=str(self.id),
                tracking_number=self.tracking_number,
                location=location,
                status=self.status,
                updated_at=self.updated_at,
            )
        )

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def cancel(self, reason: str, actor_id: str | None = None) -> None:
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["A cancellation reason is required"]})
        self._move_to(ShipmentStatus.CANCELLED, Trigger.CANCEL, reason, actor_id=actor_id)
        self.cancellation_reason = reason
        self.raise_(
            ShipmentCancelled(
                shipment_id=str(self.id),
                tracking_number=self.tracking_number,
                reason=reason,
                refund_due=self.refund_due,
                cancelled_at=self.updated_at,
            )
        )

    @property
    def refund_due(self) -> bool:
        return bool(self.dhl_confirmed and self.charged_amount and not self.refunded)

    def mark_refunded(self) -> None:
        self.refunded = True

    # -------------------------------------------------------------------
    # Public tracking
    # -------------------------------------------------------------------
    def change_public_settings(self, allow_public_location_update: bool) -> None:
        now = datetime.now(UTC)
        self.allow_public_location_update = allow_public_location_update
        self.updated_at = now
        self.raise_(
            PublicSettingsChanged(
                shipment_id=str(self.id),
                tracking_number=self.tracking_number,
                allow_public_location_update=allow_public_location_update,
                changed_at=now,
            )
        )

    def update_destination_publicly(self, destination: Address) -> None:
        """Receiver-supplied destination correction from the public tracking link."""
        if not self.allow_public_location_update:
            raise PermissionDeniedError("Public location updates are disabled for this shipment")
        if self.current_status in _PUBLIC_UPDATE_CLOSED:
            raise InvalidTransitionError(self.status, self.status, "Destination can no longer be changed")

        now = datetime.now(UTC)
        self.destination = destination
        self.updated_at = now
        self._append_history(self.current_status, "Destination updated by receiver", None, None, now)
        self.raise_(
            DestinationUpdated(
                shipment_id=str(self.id),
                tracking_number=self.tracking_number,
                destination=destination.label(),
                updated_at=now,
            )
        )
