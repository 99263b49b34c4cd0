"""FastAPI routes for the Logistics domain."""

import json
import math

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from logistics.account.account import Account
from logistics.account.adjustment import adjust_balance
from logistics.account.guard import BalanceGuard
from logistics.account.ledger import LedgerStore
from logistics.account.membership import AddMember, RemoveMember, change_membership, list_members
from logistics.account.registration import OpenUserAccount, RegisterOrganization
from logistics.account.terms import SetCreditLimit, SetMarkup
from logistics.api.dependencies import get_actor
from logistics.api.schemas import (
    AccountResponse,
    AddMemberRequest,
    AdjustBalanceRequest,
    AdjustBalanceResponse,
    ApprovalResponse,
    ApprovePickupBody,
    BalanceResponse,
    BookShipmentRequest,
    CancelShipmentRequest,
    CreateShipmentRequest,
    CreditLimitRequest,
    EditPickupBody,
    EditShipmentRequest,
    IdResponse,
    LedgerEntryResponse,
    LedgerPageResponse,
    MarkupSchema,
    OpenAccountRequest,
    OpenOrganizationRequest,
    PickupRequestPageResponse,
    PickupRequestResponse,
    PublicDestinationRequest,
    PublicSettingsRequest,
    QuoteRequest,
    QuoteResponse,
    RecordLocationRequest,
    RejectPickupBody,
    ScanRequest,
    ShipmentPageResponse,
    ShipmentResponse,
    StatusResponse,
    SubmitPickupBody,
    TrackingNumberResponse,
    UpdateStatusRequest,
)
from logistics.pickup.listing import list_pickup_requests
from logistics.pickup.pickup_request import PickupRequest
from logistics.pickup.review import RejectPickupRequest, approve_pickup_request
from logistics.pickup.submission import (
    DeletePickupRequest,
    EditPickupRequest,
    MarkPickupReady,
    SubmitPickupRequest,
)
from logistics.shared.actor import Actor, Role
from logistics.shared.address import parse_address
from logistics.shared.money import DEFAULT_CURRENCY
from logistics.shipment.booking import book_shipment
from logistics.shipment.cancellation import CancelShipment
from logistics.shipment.creation import CreateShipment
from logistics.shipment.deletion import DeleteShipment
from logistics.shipment.editing import EditShipment
from logistics.shipment.listing import list_shipments
from logistics.shipment.locking import process_locked
from logistics.shipment.public import ChangePublicSettings, UpdateDestinationPublicly, public_view
from logistics.shipment.quoting import quote
from logistics.shipment.scanning import ScanAtWarehouse, ScanPickup
from logistics.shipment.shipment import Shipment
from logistics.shipment.status import RecordLocation, UpdateShipmentStatus
from logistics.utils.locks import account_key, pickup_key, serialized


def _credentials(actor: Actor) -> dict:
    return {"actor_id": actor.id, "actor_role": actor.role.value}


def _dump(model) -> str | None:
    if model is None:
        return None
    if isinstance(model, list):
        return json.dumps([m.model_dump() for m in model])
    return json.dumps(model.model_dump())


def _pages(results) -> int:
    return max(1, math.ceil(results.total / results.limit))


# ---------------------------------------------------------------------------
# Serializers
# ---------------------------------------------------------------------------
def _pickup_response(request: PickupRequest) -> PickupRequestResponse:
    return PickupRequestResponse(
        request_id=str(request.id),
        client_id=str(request.client_id),
        status=request.status,
        service_code=request.service_code,
        sender=request.sender.to_dict(),
        receiver=request.receiver.to_dict(),
        parcels=request.parcel_dicts(),
        rejection_reason=request.rejection_reason,
        shipment_tracking_number=request.shipment_tracking_number,
        audit_log=[
            {
                "action": e.action,
                "actor_id": e.actor_id,
                "note": e.note,
                "occurred_at": e.occurred_at.isoformat(),
            }
            for e in request.ordered_audit_log()
        ],
    )


def _shipment_response(shipment: Shipment) -> ShipmentResponse:
    return ShipmentResponse(
        tracking_number=shipment.tracking_number,
        owner_id=str(shipment.owner_id),
        status=shipment.status,
        origin=shipment.origin.to_dict(),
        destination=shipment.destination.to_dict(),
        items=[
            {
                "description": i.description,
                "quantity": i.quantity,
                "weight": i.weight,
                "declared_value": i.declared_value,
                "hs_code": i.hs_code,
            }
            for i in shipment.items or []
        ],
        history=[
            {
                "status": h.status,
                "description": h.description,
                "location": h.location,
                "sequence": h.sequence,
                "occurred_at": h.occurred_at.isoformat(),
            }
            for h in shipment.ordered_history()
        ],
        current_location=shipment.current_location,
        service_code=shipment.service_code,
        cost_price=shipment.cost_price,
        price=shipment.price,
        currency=shipment.currency,
        dhl_confirmed=bool(shipment.dhl_confirmed),
        carrier_tracking_number=shipment.carrier_tracking_number,
        billing_account_id=str(shipment.billing_account_id) if shipment.billing_account_id else None,
        charged_amount=shipment.charged_amount,
        allow_public_location_update=bool(shipment.allow_public_location_update),
        pickup_request_id=str(shipment.pickup_request_id) if shipment.pickup_request_id else None,
        cancellation_reason=shipment.cancellation_reason,
    )


def _account_response(account: Account) -> AccountResponse:
    return AccountResponse(
        account_id=str(account.id),
        kind=account.kind,
        name=account.name,
        email=account.email,
        role=account.role,
        organization_id=str(account.organization_id) if account.organization_id else None,
        balance=account.balance,
        credit_limit=account.credit_limit,
        available_funds=float(account.available_funds),
        markup=account.markup.to_dict() if account.markup else None,
    )


def _entry_response(entry) -> LedgerEntryResponse:
    return LedgerEntryResponse(
        entry_id=str(entry.id),
        entry_type=entry.entry_type,
        category=entry.category,
        amount=entry.amount,
        balance_after=entry.balance_after,
        description=entry.description,
        reference=entry.reference,
        sequence=entry.sequence,
        created_by=entry.created_by,
        created_at=entry.created_at.isoformat(),
    )


# ---------------------------------------------------------------------------
# Pickup Request Router
# ---------------------------------------------------------------------------
pickup_router = APIRouter(prefix="/pickups", tags=["pickups"])


@pickup_router.post("", status_code=201, response_model=IdResponse)
async def submit_pickup_request(body: SubmitPickupBody, actor: Actor = Depends(get_actor)) -> IdResponse:
    """Ask for parcels to be collected."""
    command = SubmitPickupRequest(
        client_id=body.client_id,
        sender=_dump(body.sender),
        receiver=_dump(body.receiver),
        parcels=_dump(body.parcels),
        service_code=body.service_code,
        requested_pickup_date=body.requested_pickup_date,
        pickup_instructions=body.pickup_instructions,
        **_credentials(actor),
    )
    request_id = current_domain.process(command, asynchronous=False)
    return IdResponse(id=request_id)


@pickup_router.get("", response_model=PickupRequestPageResponse)
async def get_pickup_requests(
    status: str | None = None,
    client_id: str | None = None,
    page: int = 1,
    limit: int | None = None,
    actor: Actor = Depends(get_actor),
) -> PickupRequestPageResponse:
    """Newest first. Staff use ``status=REQUESTED`` to find work to review."""
    results = list_pickup_requests(actor, status=status, client_id=client_id, page=page, limit=limit)
    return PickupRequestPageResponse(
        requests=[_pickup_response(r) for r in results.items],
        total=results.total,
        page=results.page,
        limit=results.limit,
        pages=_pages(results),
    )


@pickup_router.get("/{request_id}", response_model=PickupRequestResponse)
async def get_pickup_request(request_id: str, actor: Actor = Depends(get_actor)) -> PickupRequestResponse:
    request = current_domain.repository_for(PickupRequest).get_request(request_id)
    actor.require_owner_or_staff(request.client_id)
    return _pickup_response(request)


@pickup_router.patch("/{request_id}", response_model=StatusResponse)
async def edit_pickup_request(request_id: str, body: EditPickupBody, actor: Actor = Depends(get_actor)) -> StatusResponse:
    """Change a request that has not been reviewed yet."""
    command = EditPickupRequest(
        request_id=request_id,
        sender=_dump(body.sender),
        receiver=_dump(body.receiver),
        parcels=_dump(body.parcels),
        service_code=body.service_code,
        requested_pickup_date=body.requested_pickup_date,
        pickup_instructions=body.pickup_instructions,
        **_credentials(actor),
    )
    with serialized(pickup_key(request_id)):
        current_domain.process(command, asynchronous=False)
    return StatusResponse(status="updated")


@pickup_router.post("/{request_id}/ready", response_model=StatusResponse)
async def mark_pickup_ready(request_id: str, actor: Actor = Depends(get_actor)) -> StatusResponse:
    with serialized(pickup_key(request_id)):
        current_domain.process(MarkPickupReady(request_id=request_id, **_credentials(actor)), asynchronous=False)
    return StatusResponse(status="ready_for_pickup")


@pickup_router.post("/{request_id}/approve", response_model=ApprovalResponse)
async def approve_pickup(
    request_id: str,
    body: ApprovePickupBody | None = None,
    actor: Actor = Depends(get_actor),
) -> ApprovalResponse:
    """Promote the request into a shipment and, unless told otherwise, book it."""
    body = body or ApprovePickupBody()
    result = approve_pickup_request(actor, request_id, cost_price=body.cost_price, book=body.book)
    return ApprovalResponse(**result)


@pickup_router.post("/{request_id}/reject", response_model=StatusResponse)
async def reject_pickup(request_id: str, body: RejectPickupBody, actor: Actor = Depends(get_actor)) -> StatusResponse:
    command = RejectPickupRequest(request_id=request_id, reason=body.reason, **_credentials(actor))
    with serialized(pickup_key(request_id)):
        current_domain.process(command, asynchronous=False)
    return StatusResponse(status="rejected")


@pickup_router.delete("/{request_id}", response_model=StatusResponse)
async def delete_pickup(request_id: str, actor: Actor = Depends(get_actor)) -> StatusResponse:
    with serialized(pickup_key(request_id)):
        current_domain.process(DeletePickupRequest(request_id=request_id, **_credentials(actor)), asynchronous=False)
    return StatusResponse(status="deleted")


# ---------------------------------------------------------------------------
# Shipment Router
# ---------------------------------------------------------------------------
shipment_router = APIRouter(prefix="/shipments", tags=["shipments"])


@shipment_router.post("", status_code=201, response_model=TrackingNumberResponse)
async def create_shipment(body: CreateShipmentRequest, actor: Actor = Depends(get_actor)) -> TrackingNumberResponse:
    """Create a draft shipment without a pickup request."""
    command = CreateShipment(
        owner_id=body.owner_id,
        origin=_dump(body.origin),
        destination=_dump(body.destination),
        items=_dump(body.items),
        service_code=body.service_code,
        quoted_price=body.quoted_price,
        **_credentials(actor),
    )
    tracking_number = current_domain.process(command, asynchronous=False)
    return TrackingNumberResponse(tracking_number=tracking_number)


@shipment_router.post("/quote", response_model=QuoteResponse)
async def quote_shipment(body: QuoteRequest, actor: Actor = Depends(get_actor)) -> QuoteResponse:
    owner_id = body.owner_id or actor.id
    actor.require_owner_or_staff(owner_id)
    priced = quote(
        owner_id,
        parse_address(body.origin.model_dump(), "origin"),
        parse_address(body.destination.model_dump(), "destination"),
        [p.model_dump() for p in body.items],
        body.service_code,
    )
    return QuoteResponse(
        cost_price=float(priced.cost_price),
        price=float(priced.price),
        surcharge_label=priced.surcharge_label,
        service_code=priced.service_code,
    )


@shipment_router.get("", response_model=ShipmentPageResponse)
async def get_shipments(
    status: str | None = None,
    owner_id: str | None = None,
    page: int = 1,
    limit: int | None = None,
    actor: Actor = Depends(get_actor),
) -> ShipmentPageResponse:
    results = list_shipments(actor, status=status, owner_id=owner_id, page=page, limit=limit)
    return ShipmentPageResponse(
        shipments=[_shipment_response(s) for s in results.items],
        total=results.total,
        page=results.page,
        limit=results.limit,
        pages=_pages(results),
    )


@shipment_router.get("/{tracking_number}", response_model=ShipmentResponse)
async def get_shipment(tracking_number: str, actor: Actor = Depends(get_actor)) -> ShipmentResponse:
    shipment = current_domain.repository_for(Shipment).by_tracking_number(tracking_number)
    if actor.role != Role.DRIVER:
        actor.require_owner_or_staff(shipment.owner_id)
    return _shipment_response(shipment)


@shipment_router.patch("/{tracking_number}", response_model=StatusResponse)
async def edit_shipment(
    tracking_number: str, body: EditShipmentRequest, actor: Actor = Depends(get_actor)
) -> StatusResponse:
    command = EditShipment(
        tracking_number=tracking_number,
        origin=_dump(body.origin),
        destination=_dump(body.destination),
        items=_dump(body.items),
        service_code=body.service_code,
        **_credentials(actor),
    )
    process_locked(tracking_number, command)
    shipment = current_domain.repository_for(Shipment).by_tracking_number(tracking_number)
    return StatusResponse(status=shipment.status)


@shipment_router.patch("/{tracking_number}/status", response_model=StatusResponse)
async def update_shipment_status(
    tracking_number: str, body: UpdateStatusRequest, actor: Actor = Depends(get_actor)
) -> StatusResponse:
    command = UpdateShipmentStatus(
        tracking_number=tracking_number,
        status=body.status,
        description=body.description,
        location=body.location,
        **_credentials(actor),
    )
    return StatusResponse(status=process_locked(tracking_number, command))


@shipment_router.post("/{tracking_number}/location", response_model=StatusResponse)
async def record_location(
    tracking_number: str, body: RecordLocationRequest, actor: Actor = Depends(get_actor)
) -> StatusResponse:
    command = RecordLocation(
        tracking_number=tracking_number,
        location=body.location,
        description=body.description,
        status=body.status,
        **_credentials(actor),
    )
    return StatusResponse(status=process_locked(tracking_number, command))


@shipment_router.post("/{tracking_number}/pickup", response_model=StatusResponse)
async def scan_pickup(
    tracking_number: str, body: ScanRequest | None = None, actor: Actor = Depends(get_actor)
) -> StatusResponse:
    """Driver pickup scan. Repeating it is harmless."""
    command = ScanPickup(
        tracking_number=tracking_number,
        location=body.location if body else None,
        **_credentials(actor),
    )
    return StatusResponse(status=process_locked(tracking_number, command))


@shipment_router.post("/{tracking_number}/warehouse-scan", response_model=StatusResponse)
async def scan_at_warehouse(
    tracking_number: str, body: ScanRequest | None = None, actor: Actor = Depends(get_actor)
) -> StatusResponse:
    command = ScanAtWarehouse(
        tracking_number=tracking_number,
        location=body.location if body else None,
        **_credentials(actor),
    )
    return StatusResponse(status=process_locked(tracking_number, command))


@shipment_router.post("/{tracking_number}/book")
async def book(
    tracking_number: str, body: BookShipmentRequest | None = None, actor: Actor = Depends(get_actor)
) -> dict:
    """Charge the owner's billing account and book with the carrier."""
    body = body or BookShipmentRequest()
    return book_shipment(actor, tracking_number, target_status=body.target_status)


@shipment_router.post("/{tracking_number}/cancel", response_model=StatusResponse)
async def cancel_shipment(
    tracking_number: str, body: CancelShipmentRequest, actor: Actor = Depends(get_actor)
) -> StatusResponse:
    command = CancelShipment(tracking_number=tracking_number, reason=body.reason, **_credentials(actor))
    process_locked(tracking_number, command)
    return StatusResponse(status="cancelled")


@shipment_router.patch("/{tracking_number}/public-settings", response_model=StatusResponse)
async def change_public_settings(
    tracking_number: str, body: PublicSettingsRequest, actor: Actor = Depends(get_actor)
) -> StatusResponse:
    command = ChangePublicSettings(
        tracking_number=tracking_number,
        allow_public_location_update=body.allow_public_location_update,
        **_credentials(actor),
    )
    process_locked(tracking_number, command)
    return StatusResponse(status="updated")


@shipment_router.delete("/{tracking_number}", response_model=StatusResponse)
async def delete_shipment(tracking_number: str, actor: Actor = Depends(get_actor)) -> StatusResponse:
    process_locked(tracking_number, DeleteShipment(tracking_number=tracking_number, **_credentials(actor)))
    return StatusResponse(status="deleted")


# ---------------------------------------------------------------------------
# Public Tracking Router
# ---------------------------------------------------------------------------
tracking_router = APIRouter(prefix="/track", tags=["tracking"])


@tracking_router.get("/{tracking_number}")
async def track(tracking_number: str) -> dict:
    """Public view of a shipment: status and history, no prices."""
    return public_view(current_domain.repository_for(Shipment).by_tracking_number(tracking_number))


@tracking_router.post("/{tracking_number}/destination", response_model=StatusResponse)
async def update_destination(tracking_number: str, body: PublicDestinationRequest) -> StatusResponse:
    command = UpdateDestinationPublicly(tracking_number=tracking_number, destination=_dump(body.destination))
    process_locked(tracking_number, command)
    return StatusResponse(status="updated")


# ---------------------------------------------------------------------------
# Finance Router
# ---------------------------------------------------------------------------
finance_router = APIRouter(prefix="/finance", tags=["finance"])


def _billing_account_for(actor: Actor, account_id: str | None) -> Account:
    target = account_id or actor.id
    actor.require_owner_or_staff(target)
    return BalanceGuard().billing_account_for(target)


@finance_router.post("/adjust", response_model=AdjustBalanceResponse)
async def adjust(body: AdjustBalanceRequest, actor: Actor = Depends(get_actor)) -> AdjustBalanceResponse:
    """Staff top-up, refund or correction. Members are adjusted on their organization."""
    result = adjust_balance(
        actor,
        body.account_id,
        body.entry_type,
        body.amount,
        category=body.category,
        description=body.description,
        reference=body.reference,
    )
    return AdjustBalanceResponse(**result)


@finance_router.get("/balance", response_model=BalanceResponse)
async def get_balance(account_id: str | None = None, actor: Actor = Depends(get_actor)) -> BalanceResponse:
    account = _billing_account_for(actor, account_id)
    return BalanceResponse(
        account_id=str(account.id),
        balance=account.balance,
        credit_limit=account.credit_limit,
        available_funds=float(account.available_funds),
        currency=DEFAULT_CURRENCY,
    )


@finance_router.get("/ledger", response_model=LedgerPageResponse)
async def get_ledger(
    page: int = 1,
    limit: int | None = None,
    account_id: str | None = None,
    actor: Actor = Depends(get_actor),
) -> LedgerPageResponse:
    """Billing-account ledger, newest entry first."""
    account = _billing_account_for(actor, account_id)
    ledger_page = LedgerStore().list_entries(str(account.id), page=page, limit=limit)
    return LedgerPageResponse(
        account_id=str(account.id),
        entries=[_entry_response(e) for e in ledger_page.entries],
        total=ledger_page.total,
        page=ledger_page.page,
        limit=ledger_page.limit,
        pages=ledger_page.pages,
    )


# ---------------------------------------------------------------------------
# Account Router
# ---------------------------------------------------------------------------
account_router = APIRouter(prefix="/accounts", tags=["accounts"])


def _markup_fields(markup: MarkupSchema | None) -> dict:
    if markup is None:
        return {}
    return markup.model_dump()


@account_router.post("", status_code=201, response_model=IdResponse)
async def open_account(body: OpenAccountRequest, actor: Actor = Depends(get_actor)) -> IdResponse:
    command = OpenUserAccount(
        name=body.name,
        email=body.email,
        role=body.role,
        opening_balance=body.opening_balance,
        credit_limit=body.credit_limit,
        **_markup_fields(body.markup),
        **_credentials(actor),
    )
    return IdResponse(id=current_domain.process(command, asynchronous=False))


@account_router.get("/{account_id}", response_model=AccountResponse)
async def get_account(account_id: str, actor: Actor = Depends(get_actor)) -> AccountResponse:
    actor.require_owner_or_staff(account_id)
    return _account_response(current_domain.repository_for(Account).get_account(account_id))


@account_router.get("/{account_id}/billing", response_model=AccountResponse)
async def get_billing_account(account_id: str, actor: Actor = Depends(get_actor)) -> AccountResponse:
    """The account this user's shipments are charged to."""
    return _account_response(_billing_account_for(actor, account_id))


@account_router.put("/{account_id}/credit-limit", response_model=StatusResponse)
async def set_credit_limit(
    account_id: str, body: CreditLimitRequest, actor: Actor = Depends(get_actor)
) -> StatusResponse:
    command = SetCreditLimit(account_id=account_id, credit_limit=body.credit_limit, **_credentials(actor))
    with serialized(account_key(account_id)):
        current_domain.process(command, asynchronous=False)
    return StatusResponse(status="updated")


@account_router.put("/{account_id}/markup", response_model=StatusResponse)
async def set_markup(account_id: str, body: MarkupSchema, actor: Actor = Depends(get_actor)) -> StatusResponse:
    command = SetMarkup(account_id=account_id, **body.model_dump(), **_credentials(actor))
    with serialized(account_key(account_id)):
        current_domain.process(command, asynchronous=False)
    return StatusResponse(status="updated")


# ---------------------------------------------------------------------------
# Organization Router
# ---------------------------------------------------------------------------
organization_router = APIRouter(prefix="/organizations", tags=["organizations"])


@organization_router.post("", status_code=201, response_model=IdResponse)
async def register_organization(body: OpenOrganizationRequest, actor: Actor = Depends(get_actor)) -> IdResponse:
    command = RegisterOrganization(
        name=body.name,
        email=body.email,
        opening_balance=body.opening_balance,
        credit_limit=body.credit_limit,
        **_markup_fields(body.markup),
        **_credentials(actor),
    )
    return IdResponse(id=current_domain.process(command, asynchronous=False))


@organization_router.get("/{organization_id}/members", response_model=list[AccountResponse])
async def get_members(organization_id: str, actor: Actor = Depends(get_actor)) -> list[AccountResponse]:
    actor.require_staff()
    return [_account_response(m) for m in list_members(organization_id)]


@organization_router.post("/{organization_id}/members", response_model=StatusResponse)
async def add_member(organization_id: str, body: AddMemberRequest, actor: Actor = Depends(get_actor)) -> StatusResponse:
    change_membership(AddMember(organization_id=organization_id, user_id=body.user_id, **_credentials(actor)))
    return StatusResponse(status="member_added")


@organization_router.delete("/{organization_id}/members/{user_id}", response_model=StatusResponse)
async def remove_member(organization_id: str, user_id: str, actor: Actor = Depends(get_actor)) -> StatusResponse:
    change_membership(RemoveMember(organization_id=organization_id, user_id=user_id, **_credentials(actor)))
    return StatusResponse(status="member_removed")
