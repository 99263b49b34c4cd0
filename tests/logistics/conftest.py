import json

import pytest
from logistics.account.account import Account, Markup, MarkupType
from logistics.carrier import get_carrier, reset_carrier
from logistics.shared.actor import Actor, Role
from protean import current_domain
from protean.integrations.pytest import DomainFixture

SENDER = {
    "contact_person": "Fatima Al-Sabah",
    "phone": "+96550000001",
    "street": "Street 12, Block 3",
    "city": "Kuwait City",
    "country_code": "KW",
}

RECEIVER = {
    "contact_person": "Omar Haddad",
    "company": "Haddad Trading",
    "phone": "+97150000002",
    "street": "Sheikh Zayed Road 44",
    "city": "Dubai",
    "country_code": "AE",
}

PARCELS = [{"description": "Documents", "weight": 1.0, "quantity": 1}]


@pytest.fixture(scope="session")
def logistics_bed():
    from logistics.domain import logistics

    bed = DomainFixture(logistics)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(logistics_bed):
    with logistics_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def carrier():
    """A fresh fake carrier for every test."""
    reset_carrier()
    yield get_carrier()
    reset_carrier()


@pytest.fixture()
def staff():
    return Actor(id="staff-001", role=Role.STAFF)


@pytest.fixture()
def driver():
    return Actor(id="driver-001", role=Role.DRIVER)


@pytest.fixture()
def no_markup():
    return Markup(markup_type=MarkupType.PERCENTAGE.value, percentage_value=0.0)


@pytest.fixture()
def open_client(no_markup):
    """Open and persist a client account. Prices equal carrier cost by default."""

    def _open(balance=0.0, credit_limit=0.0, markup=None, name="Test Client"):
        account = Account.open_user(
            name=name,
            email="client@example.com",
            role=Role.CLIENT.value,
            opening_balance=balance,
            credit_limit=credit_limit,
            markup=markup or no_markup,
        )
        current_domain.repository_for(Account).add(account)
        return account

    return _open


@pytest.fixture()
def open_organization(no_markup):
    def _open(balance=0.0, credit_limit=0.0, name="Acme Freight"):
        organization = Account.open_organization(
            name=name,
            opening_balance=balance,
            credit_limit=credit_limit,
            markup=no_markup,
        )
        current_domain.repository_for(Account).add(organization)
        return organization

    return _open


@pytest.fixture()
def as_client():
    def _actor(account) -> Actor:
        return Actor(id=str(account.id), role=Role.CLIENT)

    return _actor


@pytest.fixture()
def pickup_payload():
    """JSON-encoded command fields for a pickup request."""
    return {
        "sender": json.dumps(SENDER),
        "receiver": json.dumps(RECEIVER),
        "parcels": json.dumps(PARCELS),
    }
