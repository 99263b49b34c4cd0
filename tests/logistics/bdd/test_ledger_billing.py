"""BDD tests for ledger-metered booking and pooled organization billing."""

from logistics.account.account import Account, EntryCategory, EntryType
from logistics.account.adjustment import adjust_balance
from logistics.account.guard import BalanceGuard
from logistics.shipment.booking import book_shipment
from logistics.shipment.cancellation import CancelShipment
from logistics.shipment.locking import process_locked
from protean import current_domain
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/ledger_billing.feature")


@when(parsers.cfparse('staff tops up "{name}" by {amount:g}'))
def top_up(accounts, staff_actor, name, amount):
    adjust_balance(
        staff_actor,
        str(accounts[name].id),
        EntryType.CREDIT.value,
        amount,
        category=EntryCategory.TOP_UP.value,
    )


@when("staff books the shipment")
def book(staff_actor, tracking_number):
    book_shipment(staff_actor, tracking_number)


@when(parsers.cfparse('staff cancels the shipment because "{reason}"'))
def cancel(staff_actor, tracking_number, reason):
    process_locked(
        tracking_number,
        CancelShipment(
            tracking_number=tracking_number,
            reason=reason,
            actor_id=staff_actor.id,
            actor_role=staff_actor.role.value,
        ),
    )


@then(parsers.cfparse("the shortfall is {shortfall:g}"))
def shortfall_is(error, shortfall):
    assert error["exc"].shortfall == shortfall


@then(parsers.cfparse('the billing balance seen by "{name}" is {balance:g}'))
def billing_balance_seen_by(accounts, name, balance):
    assert BalanceGuard().billing_account_for(str(accounts[name].id)).balance == balance


@then(parsers.cfparse('the latest ledger entry of "{name}" is a {category}'))
def latest_entry_is(accounts, name, category):
    account = current_domain.repository_for(Account).get_account(accounts[name].id)
    assert account.entries_newest_first()[0].category == category
