"""Integration tests for the Logistics API endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from logistics.api.errors import register_error_handlers
from logistics.api.routes import (
    account_router,
    finance_router,
    organization_router,
    pickup_router,
    shipment_router,
    tracking_router,
)

STAFF = {"X-Actor-Id": "staff-001", "X-Actor-Role": "staff"}
DRIVER = {"X-Actor-Id": "driver-001", "X-Actor-Role": "driver"}

_SENDER = {
    "contact_person": "Fatima Al-Sabah",
    "phone": "+96550000001",
    "street": "Street 12, Block 3",
    "city": "Kuwait City",
    "country_code": "KW",
}
_RECEIVER = {
    "contact_person": "Omar Haddad",
    "phone": "+97150000002",
    "street": "Sheikh Zayed Road 44",
    "city": "Dubai",
    "country_code": "AE",
}
_PARCELS = [{"description": "Documents", "weight": 1.0}]


@pytest.fixture()
def client():
    app = FastAPI()
    for router in (
        pickup_router,
        shipment_router,
        tracking_router,
        finance_router,
        account_router,
        organization_router,
    ):
        app.include_router(router)
    register_error_handlers(app)
    return TestClient(app)


def _headers(account) -> dict:
    return {"X-Actor-Id": str(account.id), "X-Actor-Role": "client"}


def _submit(client, account, **overrides) -> str:
    body = {"sender": _SENDER, "receiver": _RECEIVER, "parcels": _PARCELS}
    body.update(overrides)
    response = client.post("/pickups", json=body, headers=_headers(account))
    assert response.status_code == 201, response.text
    return response.json()["id"]


def _approved(client, account, cost_price=20.0, book=True) -> dict:
    request_id = _submit(client, account)
    response = client.post(
        f"/pickups/{request_id}/approve",
        json={"cost_price": cost_price, "book": book},
        headers=STAFF,
    )
    assert response.status_code == 200, response.text
    return response.json()


class TestAuthentication:
    def test_missing_credentials_is_401(self, client):
        response = client.post("/pickups", json={"sender": _SENDER, "receiver": _RECEIVER, "parcels": _PARCELS})
        assert response.status_code == 401
        assert response.json()["error"] == "authentication_required"

    def test_unknown_role_is_403(self, client):
        response = client.get("/finance/balance", headers={"X-Actor-Id": "x", "X-Actor-Role": "pilot"})
        assert response.status_code == 403


class TestPickupAPI:
    def test_submit_and_read(self, client, open_client):
        account = open_client()
        request_id = _submit(client, account, pickup_instructions="Call on arrival")

        response = client.get(f"/pickups/{request_id}", headers=_headers(account))

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "REQUESTED"
        assert data["sender"]["city"] == "Kuwait City"
        assert data["audit_log"][0]["action"] == "CREATED"

    def test_other_client_cannot_read(self, client, open_client):
        account = open_client()
        other = open_client(name="Other")
        request_id = _submit(client, account)

        response = client.get(f"/pickups/{request_id}", headers=_headers(other))

        assert response.status_code == 403
        assert response.json()["error"] == "permission_denied"

    def test_bad_country_code_is_400(self, client, open_client):
        account = open_client()
        response = client.post(
            "/pickups",
            json={"sender": {**_SENDER, "country_code": "Kuwait"}, "receiver": _RECEIVER, "parcels": _PARCELS},
            headers=_headers(account),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_missing_parcels_is_400(self, client, open_client):
        account = open_client()
        response = client.post("/pickups", json={"sender": _SENDER, "receiver": _RECEIVER}, headers=_headers(account))
        assert response.status_code == 400
        assert "parcels" in response.json()["fields"]

    def test_edit_then_mark_ready(self, client, open_client):
        account = open_client()
        request_id = _submit(client, account)

        edit = client.patch(
            f"/pickups/{request_id}",
            json={"pickup_instructions": "Gate 4"},
            headers=_headers(account),
        )
        ready = client.post(f"/pickups/{request_id}/ready", headers=_headers(account))
        late_edit = client.patch(
            f"/pickups/{request_id}",
            json={"pickup_instructions": "Gate 5"},
            headers=_headers(account),
        )

        assert edit.status_code == 200
        assert ready.json()["status"] == "ready_for_pickup"
        assert late_edit.status_code == 409

    def test_approve_promotes_and_books(self, client, open_client):
        account = open_client(balance=100.0)

        result = _approved(client, account, cost_price=20.0)

        assert result["booking"]["charged_amount"] == 20.0
        shipment = client.get(f"/shipments/{result['tracking_number']}", headers=_headers(account)).json()
        assert shipment["status"] == "ready_for_pickup"
        assert shipment["dhl_confirmed"] is True

    def test_approve_with_insufficient_funds_is_402(self, client, open_client):
        account = open_client(balance=50.0)
        request_id = _submit(client, account)

        response = client.post(f"/pickups/{request_id}/approve", json={"cost_price": 60.0}, headers=STAFF)

        assert response.status_code == 402
        body = response.json()
        assert body["error"] == "insufficient_funds"
        assert body["shortfall"] == 10.0
        tracking_number = body["tracking_number"]

        request = client.get(f"/pickups/{request_id}", headers=STAFF).json()
        assert request["status"] == "APPROVED"
        assert request["shipment_tracking_number"] == tracking_number

        top_up = client.post(
            "/finance/adjust",
            json={"account_id": str(account.id), "entry_type": "CREDIT", "amount": 20.0, "category": "TOP_UP"},
            headers=STAFF,
        )
        assert top_up.status_code == 200
        booked = client.post(f"/shipments/{tracking_number}/book", headers=STAFF)
        assert booked.status_code == 200
        assert booked.json()["balance_after"] == 10.0

    def test_reject(self, client, open_client):
        account = open_client()
        request_id = _submit(client, account)

        response = client.post(f"/pickups/{request_id}/reject", json={"reason": "Outside zone"}, headers=STAFF)

        assert response.status_code == 200
        data = client.get(f"/pickups/{request_id}", headers=_headers(account)).json()
        assert data["status"] == "REJECTED"
        assert data["rejection_reason"] == "Outside zone"

    def test_delete(self, client, open_client):
        account = open_client()
        request_id = _submit(client, account)

        response = client.delete(f"/pickups/{request_id}", headers=_headers(account))

        assert response.status_code == 200
        assert client.get(f"/pickups/{request_id}", headers=STAFF).status_code == 404


class TestShipmentAPI:
    def test_quote(self, client, open_client):
        account = open_client()
        response = client.post(
            "/shipments/quote",
            json={"origin": _SENDER, "destination": _RECEIVER, "items": _PARCELS},
            headers=_headers(account),
        )
        assert response.status_code == 200
        assert response.json() == {
            "cost_price": 7.5,
            "price": 7.5,
            "surcharge_label": "0%",
            "service_code": "P",
        }

    def test_create_direct_shipment(self, client, open_client):
        account = open_client()
        response = client.post(
            "/shipments",
            json={"origin": _SENDER, "destination": _RECEIVER, "items": _PARCELS},
            headers=_headers(account),
        )
        assert response.status_code == 201
        tracking_number = response.json()["tracking_number"]

        shipment = client.get(f"/shipments/{tracking_number}", headers=_headers(account)).json()
        assert shipment["status"] == "draft"
        assert shipment["price"] == 7.5

    def test_unknown_shipment_is_404(self, client):
        response = client.get("/shipments/ZZZZ-ZZZZ-ZZZZ", headers=STAFF)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_driver_scan_is_idempotent(self, client, open_client):
        account = open_client(balance=100.0)
        tracking_number = _approved(client, account)["tracking_number"]

        first = client.post(f"/shipments/{tracking_number}/pickup", headers=DRIVER)
        second = client.post(f"/shipments/{tracking_number}/pickup", headers=DRIVER)

        assert first.json() == second.json() == {"status": "picked_up"}
        history = client.get(f"/shipments/{tracking_number}", headers=STAFF).json()["history"]
        assert [h["status"] for h in history].count("picked_up") == 1

    def test_illegal_transition_is_409(self, client, open_client):
        account = open_client(balance=100.0)
        tracking_number = _approved(client, account)["tracking_number"]
        for status in ("picked_up", "in_transit", "out_for_delivery", "delivered"):
            assert (
                client.patch(
                    f"/shipments/{tracking_number}/status", json={"status": status}, headers=STAFF
                ).status_code
                == 200
            )

        response = client.patch(f"/shipments/{tracking_number}/status", json={"status": "in_transit"}, headers=STAFF)

        assert response.status_code == 409
        assert response.json() == {
            "error": "invalid_transition",
            "message": "Cannot transition from delivered to in_transit",
            "current": "delivered",
            "requested": "in_transit",
        }

    def test_cancel_refunds_to_ledger(self, client, open_client):
        account = open_client(balance=100.0)
        tracking_number = _approved(client, account, cost_price=20.0)["tracking_number"]

        response = client.post(f"/shipments/{tracking_number}/cancel", json={"reason": "Duplicate"}, headers=STAFF)

        assert response.status_code == 200
        ledger = client.get("/finance/ledger", headers=_headers(account)).json()
        assert ledger["total"] == 2
        assert ledger["entries"][0]["category"] == "REFUND"
        assert client.get("/finance/balance", headers=_headers(account)).json()["balance"] == 100.0

    def test_carrier_failure_is_502(self, client, open_client, carrier):
        account = open_client(balance=100.0)
        tracking_number = _approved(client, account, book=False)["tracking_number"]
        carrier.configure(should_succeed=False, failure_reason="Carrier down")

        response = client.post(f"/shipments/{tracking_number}/book", headers=STAFF)

        assert response.status_code == 502
        assert response.json()["error"] == "carrier_error"


def _create_shipment(client, account) -> str:
    response = client.post(
        "/shipments",
        json={"origin": _SENDER, "destination": _RECEIVER, "items": _PARCELS},
        headers=_headers(account),
    )
    assert response.status_code == 201, response.text
    return response.json()["tracking_number"]


class TestListingAPI:
    def test_staff_list_requests_awaiting_review(self, client, open_client):
        account = open_client()
        waiting = _submit(client, account)
        _approved(client, account, book=False)

        response = client.get("/pickups", params={"status": "REQUESTED"}, headers=STAFF)

        assert response.status_code == 200
        data = response.json()
        assert [r["request_id"] for r in data["requests"]] == [waiting]
        assert data["total"] == 1
        assert data["pages"] == 1

    def test_client_lists_only_own_requests(self, client, open_client):
        mine = open_client(name="Alice")
        _submit(client, mine)
        _submit(client, open_client(name="Bob"))

        data = client.get("/pickups", headers=_headers(mine)).json()

        assert data["total"] == 1
        assert data["requests"][0]["client_id"] == str(mine.id)

    def test_unknown_pickup_status_is_400(self, client):
        response = client.get("/pickups", params={"status": "pending"}, headers=STAFF)
        assert response.status_code == 400

    def test_client_lists_only_own_shipments(self, client, open_client):
        mine = open_client(name="Alice")
        tracking_number = _create_shipment(client, mine)
        _create_shipment(client, open_client(name="Bob"))

        data = client.get("/shipments", headers=_headers(mine)).json()

        assert [s["tracking_number"] for s in data["shipments"]] == [tracking_number]

    def test_driver_pages_through_shipments(self, client, open_client):
        account = open_client()
        for _ in range(3):
            _create_shipment(client, account)

        response = client.get("/shipments", params={"status": "draft", "page": 2, "limit": 2}, headers=DRIVER)

        assert response.status_code == 200
        data = response.json()
        assert len(data["shipments"]) == 1
        assert data["total"] == 3
        assert data["page"] == 2
        assert data["limit"] == 2
        assert data["pages"] == 2

    def test_listing_requires_credentials(self, client):
        assert client.get("/shipments").status_code == 401


class TestPublicTrackingAPI:
    def test_track_without_credentials(self, client, open_client):
        account = open_client(balance=100.0)
        tracking_number = _approved(client, account)["tracking_number"]

        response = client.get(f"/track/{tracking_number}")

        assert response.status_code == 200
        assert response.json()["status"] == "ready_for_pickup"
        assert "price" not in response.json()

    def test_destination_update_requires_opt_in(self, client, open_client):
        account = open_client(balance=100.0)
        tracking_number = _approved(client, account)["tracking_number"]
        new_destination = {"destination": {**_RECEIVER, "street": "Al Wasl Road 2"}}

        denied = client.post(f"/track/{tracking_number}/destination", json=new_destination)
        client.patch(
            f"/shipments/{tracking_number}/public-settings",
            json={"allow_public_location_update": True},
            headers=_headers(account),
        )
        allowed = client.post(f"/track/{tracking_number}/destination", json=new_destination)

        assert denied.status_code == 403
        assert allowed.status_code == 200


class TestAccountAPI:
    def test_open_and_read_account(self, client):
        response = client.post("/accounts", json={"name": "Noura", "opening_balance": 30.0}, headers=STAFF)
        assert response.status_code == 201
        account_id = response.json()["id"]

        client.put(f"/accounts/{account_id}/credit-limit", json={"credit_limit": 20.0}, headers=STAFF)
        data = client.get(f"/accounts/{account_id}", headers=STAFF).json()

        assert data["balance"] == 30.0
        assert data["available_funds"] == 50.0
        assert data["markup"]["percentage_value"] == 15.0

    def test_client_cannot_open_accounts(self, client, open_client):
        account = open_client()
        response = client.post("/accounts", json={"name": "Sneaky"}, headers=_headers(account))
        assert response.status_code == 403

    def test_client_cannot_read_another_ledger(self, client, open_client):
        account = open_client()
        other = open_client(name="Other")
        response = client.get(f"/finance/ledger?account_id={other.id}", headers=_headers(account))
        assert response.status_code == 403

    def test_set_markup(self, client, open_client):
        account = open_client()
        response = client.put(
            f"/accounts/{account.id}/markup",
            json={"markup_type": "FLAT", "flat_value": 2.0},
            headers=STAFF,
        )
        assert response.status_code == 200
        assert client.get(f"/accounts/{account.id}", headers=STAFF).json()["markup"]["markup_type"] == "FLAT"


class TestOrganizationAPI:
    def test_pooled_billing(self, client, open_client):
        organization_id = client.post(
            "/organizations",
            json={"name": "Acme Freight", "opening_balance": 100.0, "markup": {"markup_type": "PERCENTAGE"}},
            headers=STAFF,
        ).json()["id"]
        first = open_client(name="First")
        second = open_client(name="Second")
        for member in (first, second):
            response = client.post(
                f"/organizations/{organization_id}/members", json={"user_id": str(member.id)}, headers=STAFF
            )
            assert response.status_code == 200

        _approved(client, first, cost_price=30.0)

        billing = client.get(f"/accounts/{second.id}/billing", headers=_headers(second)).json()
        assert billing["account_id"] == organization_id
        assert billing["balance"] == 70.0
        members = client.get(f"/organizations/{organization_id}/members", headers=STAFF).json()
        assert len(members) == 2

    def test_already_member_is_409(self, client, open_client, open_organization):
        first = open_organization(name="First")
        second = open_organization(name="Second")
        user = open_client()
        client.post(f"/organizations/{first.id}/members", json={"user_id": str(user.id)}, headers=STAFF)

        response = client.post(f"/organizations/{second.id}/members", json={"user_id": str(user.id)}, headers=STAFF)

        assert response.status_code == 409
        assert response.json()["error"] == "already_member"

    def test_remove_member(self, client, open_client, open_organization):
        organization = open_organization()
        user = open_client()
        client.post(f"/organizations/{organization.id}/members", json={"user_id": str(user.id)}, headers=STAFF)

        response = client.delete(f"/organizations/{organization.id}/members/{user.id}", headers=STAFF)

        assert response.status_code == 200
        billing = client.get(f"/accounts/{user.id}/billing", headers=_headers(user)).json()
        assert billing["account_id"] == str(user.id)
