"""Pickup request submission — client-side commands and handler."""

import json
from datetime import date

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.pickup.pickup_request import PickupRequest
from logistics.shared.actor import Actor
from logistics.shared.address import parse_address
from logistics.shared.errors import PermissionDeniedError

logger = structlog.get_logger(__name__)


@logistics.command(part_of="PickupRequest")
class SubmitPickupRequest:
    client_id = Identifier()
    sender = Text(required=True)  # JSON address
    receiver = Text(required=True)  # JSON address
    parcels = Text(required=True)  # JSON list of parcel dicts
    service_code = String(max_length=10, default="P")
    requested_pickup_date = String(max_length=10)
    pickup_instructions = String(max_length=500)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command(part_of="PickupRequest")
class EditPickupRequest:
    request_id = Identifier(required=True)
    sender = Text()
    receiver = Text()
    parcels = Text()
    service_code = String(max_length=10)
    requested_pickup_date = String(max_length=10)
    pickup_instructions = String(max_length=500)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command(part_of="PickupRequest")
class MarkPickupReady:
    request_id = Identifier(required=True)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command(part_of="PickupRequest")
class DeletePickupRequest:
    request_id = Identifier(required=True)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


def _parcels(parcels_json: str) -> list[dict]:
    try:
        parcels = json.loads(parcels_json)
    except json.JSONDecodeError:
        raise ValidationError({"parcels": ["Parcels must be a JSON list"]}) from None
    if not isinstance(parcels, list) or not parcels:
        raise ValidationError({"parcels": ["At least one parcel is required"]})
    return parcels


def _pickup_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError({"requested_pickup_date": [f"Invalid date: {value!r}"]}) from None


def _require_owner(actor: Actor, request: PickupRequest) -> None:
    if actor.id != str(request.client_id):
        raise PermissionDeniedError("Only the requesting client may change this pickup request")


@logistics.command_handler(part_of=PickupRequest)
class PickupSubmissionHandler:
    @handle(SubmitPickupRequest)
    def submit(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        client_id = str(command.client_id or actor.id)
        actor.require_owner_or_staff(client_id)

        request = PickupRequest.submit(
            client_id=client_id,
            sender=parse_address(command.sender, "sender"),
            receiver=parse_address(command.receiver, "receiver"),
            parcels_data=_parcels(command.parcels),
            service_code=command.service_code,
            requested_pickup_date=_pickup_date(command.requested_pickup_date),
            pickup_instructions=command.pickup_instructions,
            actor_id=actor.id,
        )
        current_domain.repository_for(PickupRequest).add(request)
        logger.info("Pickup requested", request_id=str(request.id), client_id=client_id)
        return str(request.id)

    @handle(EditPickupRequest)
    def edit(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        repo = current_domain.repository_for(PickupRequest)
        request = repo.get_request(command.request_id)
        _require_owner(actor, request)
        request.edit(
            sender=parse_address(command.sender, "sender") if command.sender else None,
            receiver=parse_address(command.receiver, "receiver") if command.receiver else None,
            parcels_data=_parcels(command.parcels) if command.parcels else None,
            service_code=command.service_code,
            requested_pickup_date=_pickup_date(command.requested_pickup_date),
            pickup_instructions=command.pickup_instructions,
            actor_id=actor.id,
        )
        repo.add(request)

    @handle(MarkPickupReady)
    def mark_ready(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        repo = current_domain.repository_for(PickupRequest)
        request = repo.get_request(command.request_id)
        _require_owner(actor, request)
        request.mark_ready(actor_id=actor.id)
        repo.add(request)

    @handle(DeletePickupRequest)
    def delete(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        repo = current_domain.repository_for(PickupRequest)
        request = repo.get_request(command.request_id)
        _require_owner(actor, request)
        request.assert_deletable()
        repo.delete_request(request)
        logger.info("Pickup request deleted", request_id=str(command.request_id))
