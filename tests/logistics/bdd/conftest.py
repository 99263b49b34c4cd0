"""Shared BDD fixtures and step definitions for the Logistics domain."""

import json

import pytest
from logistics.account.account import Account, Markup, MarkupType
from logistics.account.membership import AddMember, change_membership
from logistics.pickup.review import approve_pickup_request
from logistics.pickup.submission import SubmitPickupRequest
from logistics.shared.actor import Actor, Role
from logistics.shared.errors import LogisticsError
from logistics.shipment.shipment import Shipment
from protean import current_domain
from pytest_bdd import given, parsers, then, when

_SENDER = {
    "contact_person": "Sender",
    "phone": "+96511111111",
    "street": "Gulf Road 1",
    "city": "Kuwait City",
    "country_code": "KW",
}
_RECEIVER = {
    "contact_person": "Receiver",
    "phone": "+96899999999",
    "street": "Way 3021",
    "city": "Muscat",
    "country_code": "OM",
}


@pytest.fixture()
def error():
    """Container for captured domain errors."""
    return {"exc": None}


@pytest.fixture()
def accounts():
    """Accounts opened during the scenario, by name."""
    return {}


@pytest.fixture()
def staff_actor():
    return Actor(id="staff-bdd", role=Role.STAFF)


def _open(kind_factory, name, balance, credit_limit=0.0) -> Account:
    account = kind_factory(
        name=name,
        opening_balance=balance,
        credit_limit=credit_limit,
        markup=Markup(markup_type=MarkupType.PERCENTAGE.value, percentage_value=0.0),
    )
    current_domain.repository_for(Account).add(account)
    return account


def _approve(staff_actor, request_id, cost, book, error):
    try:
        return approve_pickup_request(staff_actor, request_id, cost_price=cost, book=book)["tracking_number"]
    except LogisticsError as exc:
        error["exc"] = exc
        return exc.details.get("tracking_number")


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a client "{name}" with balance {balance:g} and credit limit {limit:g}'),
    target_fixture="client",
)
def client_with_credit(accounts, name, balance, limit):
    accounts[name] = _open(Account.open_user, name, balance, limit)
    return accounts[name]


@given(parsers.cfparse('a client "{name}" with balance {balance:g}'), target_fixture="client")
def client_with_balance(accounts, name, balance):
    accounts[name] = _open(Account.open_user, name, balance)
    return accounts[name]


@given(parsers.cfparse('an organization "{name}" with balance {balance:g}'))
def organization_with_balance(accounts, name, balance):
    accounts[name] = _open(Account.open_organization, name, balance)


@given(parsers.cfparse('"{first}" and "{second}" are members of "{organization}"'))
def members_of(accounts, staff_actor, first, second, organization):
    for member in (first, second):
        change_membership(
            AddMember(
                organization_id=str(accounts[organization].id),
                user_id=str(accounts[member].id),
                actor_id=staff_actor.id,
                actor_role=staff_actor.role.value,
            )
        )


@given(parsers.cfparse('a pickup request from "{name}"'), target_fixture="request_id")
def pickup_request_from(accounts, name):
    command = SubmitPickupRequest(
        sender=json.dumps(_SENDER),
        receiver=json.dumps(_RECEIVER),
        parcels=json.dumps([{"description": "Parcel", "weight": 1.0}]),
        actor_id=str(accounts[name].id),
        actor_role=Role.CLIENT.value,
    )
    return current_domain.process(command, asynchronous=False)


# ---------------------------------------------------------------------------
# Staff review
# ---------------------------------------------------------------------------
@given(parsers.cfparse("staff approves the request at cost {cost:g}"), target_fixture="tracking_number")
@when(parsers.cfparse("staff approves the request at cost {cost:g}"), target_fixture="tracking_number")
def approve_and_book(staff_actor, request_id, cost, error):
    return _approve(staff_actor, request_id, cost, True, error)


@when(
    parsers.cfparse("staff approves the request at cost {cost:g} without booking"),
    target_fixture="tracking_number",
)
def approve_only(staff_actor, request_id, cost, error):
    return _approve(staff_actor, request_id, cost, False, error)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the balance of "{name}" is {balance:g}'))
def balance_is(accounts, name, balance):
    assert current_domain.repository_for(Account).get_account(accounts[name].id).balance == balance


@then(parsers.cfparse('the request fails with "{kind}"'))
def request_fails_with(error, kind):
    assert error["exc"] is not None
    assert error["exc"].kind == kind


@then("no error occurred")
def no_error(error):
    assert error["exc"] is None


@then("the shipment is booked")
def shipment_booked(tracking_number):
    assert current_domain.repository_for(Shipment).by_tracking_number(tracking_number).dhl_confirmed is True


@then("the shipment is not booked")
def shipment_not_booked(tracking_number):
    assert current_domain.repository_for(Shipment).by_tracking_number(tracking_number).dhl_confirmed is False
