"""Pydantic API schemas for the Logistics domain.

These are the external API contracts, kept separate from domain commands.
The API layer translates between these schemas and domain commands.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared shapes
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    contact_person: str
    phone: str
    street: str
    city: str
    country_code: str
    company: str | None = None
    email: str | None = None
    postal_code: str | None = None


class ParcelSchema(BaseModel):
    description: str
    weight: float
    length: float | None = None
    width: float | None = None
    height: float | None = None
    quantity: int = 1
    declared_value: float | None = None


class ShipmentItemSchema(ParcelSchema):
    hs_code: str | None = None
    sku: str | None = None
    country_of_origin: str | None = None


# ---------------------------------------------------------------------------
# Pickup requests
# ---------------------------------------------------------------------------
class SubmitPickupBody(BaseModel):
    sender: AddressSchema
    receiver: AddressSchema
    parcels: list[ParcelSchema]
    client_id: str | None = None
    service_code: str = "P"
    requested_pickup_date: str | None = None
    pickup_instructions: str | None = None


class EditPickupBody(BaseModel):
    sender: AddressSchema | None = None
    receiver: AddressSchema | None = None
    parcels: list[ParcelSchema] | None = None
    service_code: str | None = None
    requested_pickup_date: str | None = None
    pickup_instructions: str | None = None


class ApprovePickupBody(BaseModel):
    cost_price: float | None = None
    book: bool = True


class RejectPickupBody(BaseModel):
    reason: str


class ApprovalResponse(BaseModel):
    tracking_number: str
    booking: dict | None = None


class PickupRequestResponse(BaseModel):
    request_id: str
    client_id: str
    status: str
    service_code: str | None = None
    sender: dict
    receiver: dict
    parcels: list[dict]
    rejection_reason: str | None = None
    shipment_tracking_number: str | None = None
    audit_log: list[dict] = []


class PickupRequestPageResponse(BaseModel):
    requests: list[PickupRequestResponse]
    total: int
    page: int
    limit: int
    pages: int


# ---------------------------------------------------------------------------
# Shipments
# ---------------------------------------------------------------------------
class CreateShipmentRequest(BaseModel):
    origin: AddressSchema
    destination: AddressSchema
    items: list[ShipmentItemSchema]
    owner_id: str | None = None
    service_code: str = "P"
    quoted_price: float | None = None


class QuoteRequest(BaseModel):
    origin: AddressSchema
    destination: AddressSchema
    items: list[ParcelSchema]
    owner_id: str | None = None
    service_code: str = "P"


class QuoteResponse(BaseModel):
    cost_price: float
    price: float
    surcharge_label: str
    service_code: str


class EditShipmentRequest(BaseModel):
    origin: AddressSchema | None = None
    destination: AddressSchema | None = None
    items: list[ShipmentItemSchema] | None = None
    service_code: str | None = None


class UpdateStatusRequest(BaseModel):
    status: str
    description: str | None = None
    location: str | None = None


class RecordLocationRequest(BaseModel):
    location: str
    description: str | None = None
    status: str | None = None


class ScanRequest(BaseModel):
    location: str | None = None


class BookShipmentRequest(BaseModel):
    target_status: str = "ready_for_pickup"


class CancelShipmentRequest(BaseModel):
    reason: str


class PublicSettingsRequest(BaseModel):
    allow_public_location_update: bool


class PublicDestinationRequest(BaseModel):
    destination: AddressSchema


class ShipmentResponse(BaseModel):
    tracking_number: str
    owner_id: str
    status: str
    origin: dict
    destination: dict
    items: list[dict]
    history: list[dict]
    current_location: str | None = None
    service_code: str | None = None
    cost_price: float | None = None
    price: float | None = None
    currency: str | None = None
    dhl_confirmed: bool
    carrier_tracking_number: str | None = None
    billing_account_id: str | None = None
    charged_amount: float | None = None
    allow_public_location_update: bool
    pickup_request_id: str | None = None
    cancellation_reason: str | None = None


class ShipmentPageResponse(BaseModel):
    shipments: list[ShipmentResponse]
    total: int
    page: int
    limit: int
    pages: int


# ---------------------------------------------------------------------------
# Accounts & finance
# ---------------------------------------------------------------------------
class MarkupSchema(BaseModel):
    markup_type: str
    percentage_value: float = Field(default=0.0, ge=0)
    flat_value: float = Field(default=0.0, ge=0)


class OpenAccountRequest(BaseModel):
    name: str
    email: str | None = None
    role: str = "client"
    opening_balance: float = 0.0
    credit_limit: float = Field(default=0.0, ge=0)
    markup: MarkupSchema | None = None


class OpenOrganizationRequest(BaseModel):
    name: str
    email: str | None = None
    opening_balance: float = 0.0
    credit_limit: float = Field(default=0.0, ge=0)
    markup: MarkupSchema | None = None


class CreditLimitRequest(BaseModel):
    credit_limit: float = Field(ge=0)


class AddMemberRequest(BaseModel):
    user_id: str


class AccountResponse(BaseModel):
    account_id: str
    kind: str
    name: str
    email: str | None = None
    role: str | None = None
    organization_id: str | None = None
    balance: float
    credit_limit: float
    available_funds: float
    markup: dict | None = None


class BalanceResponse(BaseModel):
    account_id: str
    balance: float
    credit_limit: float
    available_funds: float
    currency: str


class AdjustBalanceRequest(BaseModel):
    account_id: str
    entry_type: str
    amount: float
    category: str = "ADJUSTMENT"
    description: str | None = None
    reference: str | None = None


class AdjustBalanceResponse(BaseModel):
    account_id: str
    entry_id: str
    balance: float


class LedgerEntryResponse(BaseModel):
    entry_id: str
    entry_type: str
    category: str
    amount: float
    balance_after: float
    description: str | None = None
    reference: str | None = None
    sequence: int
    created_by: str | None = None
    created_at: str


class LedgerPageResponse(BaseModel):
    account_id: str
    entries: list[LedgerEntryResponse]
    total: int
    page: int
    limit: int
    pages: int


# ---------------------------------------------------------------------------
# Generic responses
# ---------------------------------------------------------------------------
class IdResponse(BaseModel):
    id: str


class TrackingNumberResponse(BaseModel):
    tracking_number: str


class StatusResponse(BaseModel):
    status: str
