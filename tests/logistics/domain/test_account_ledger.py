"""Tests for the Account aggregate's ledger and its balance invariant."""

import pytest
from logistics.account.account import (
    Account,
    AccountKind,
    EntryCategory,
    EntryType,
    MarkupType,
)
from logistics.account.events import AccountOpened, LedgerEntryRecorded, MemberJoined
from protean.exceptions import ValidationError


def _account(**overrides):
    defaults = {"name": "Ledger Test", "opening_balance": 100.0}
    defaults.update(overrides)
    return Account.open_user(**defaults)


class TestOpening:
    def test_opening_balance_is_the_balance(self):
        account = _account(opening_balance=42.5)
        assert account.balance == 42.5
        assert account.entries == []

    def test_default_markup_is_percentage(self):
        account = _account()
        assert account.markup.markup_type == MarkupType.PERCENTAGE.value
        assert account.markup.percentage_value == 15.0

    def test_raises_opened_event(self):
        account = _account()
        assert isinstance(account._events[0], AccountOpened)
        assert account._events[0].kind == AccountKind.USER.value

    def test_organization_kind(self):
        organization = Account.open_organization(name="Acme")
        assert organization.is_organization
        assert organization.role is None


class TestAppendEntry:
    def test_credit_moves_balance_up(self):
        account = _account()
        entry = account.append_entry(EntryType.CREDIT.value, EntryCategory.TOP_UP.value, 20)
        assert account.balance == 120.0
        assert entry.balance_after == 120.0
        assert entry.sequence == 1

    def test_debit_moves_balance_down(self):
        account = _account()
        account.append_entry(EntryType.DEBIT.value, EntryCategory.SHIPMENT_FEE.value, 30.25)
        assert account.balance == 69.75

    def test_balance_can_go_negative(self):
        account = _account(opening_balance=0.0, credit_limit=50.0)
        account.append_entry(EntryType.DEBIT.value, EntryCategory.SHIPMENT_FEE.value, 40)
        assert account.balance == -40.0
        assert float(account.available_funds) == 10.0

    def test_sequence_increments(self):
        account = _account()
        for _ in range(3):
            entry = account.append_entry(EntryType.CREDIT.value, EntryCategory.TOP_UP.value, 1)
        assert entry.sequence == 3

    def test_balance_equals_last_entry_after_many_operations(self):
        account = _account(opening_balance=0.0)
        moves = [
            (EntryType.CREDIT, 10.0),
            (EntryType.DEBIT, 3.333),
            (EntryType.CREDIT, 0.001),
            (EntryType.DEBIT, 7.5),
        ]
        for entry_type, amount in moves:
            account.append_entry(entry_type.value, EntryCategory.ADJUSTMENT.value, amount)

        last = max(account.entries, key=lambda e: e.sequence)
        assert account.balance == last.balance_after == -0.832

    def test_amounts_are_rounded_to_minor_units(self):
        account = _account(opening_balance=0.0)
        entry = account.append_entry(EntryType.CREDIT.value, EntryCategory.TOP_UP.value, 1.0005)
        assert entry.amount == 1.001

    def test_zero_amount_rejected(self):
        account = _account()
        with pytest.raises(ValidationError) as exc:
            account.append_entry(EntryType.CREDIT.value, EntryCategory.TOP_UP.value, 0)
        assert "amount" in exc.value.messages
        assert account.balance == 100.0

    def test_negative_amount_rejected(self):
        account = _account()
        with pytest.raises(ValidationError):
            account.append_entry(EntryType.DEBIT.value, EntryCategory.ADJUSTMENT.value, -5)

    def test_member_account_refuses_entries(self):
        account = _account()
        account.join_organization("org-001")
        with pytest.raises(ValidationError) as exc:
            account.append_entry(EntryType.CREDIT.value, EntryCategory.TOP_UP.value, 5)
        assert "account_id" in exc.value.messages

    def test_member_account_takes_refund_of_fee_it_paid(self):
        account = _account()
        account.append_entry(EntryType.DEBIT.value, EntryCategory.SHIPMENT_FEE.value, 30, reference="ABCD-EFGH-JKLM")
        account.join_organization("org-001")

        account.append_entry(EntryType.CREDIT.value, EntryCategory.REFUND.value, 30, reference="ABCD-EFGH-JKLM")

        assert account.balance == 100.0

    def test_member_account_refuses_refund_without_matching_fee(self):
        account = _account()
        account.join_organization("org-001")
        with pytest.raises(ValidationError):
            account.append_entry(EntryType.CREDIT.value, EntryCategory.REFUND.value, 30, reference="ABCD-EFGH-JKLM")

    def test_member_account_refuses_second_refund(self):
        account = _account()
        account.append_entry(EntryType.DEBIT.value, EntryCategory.SHIPMENT_FEE.value, 30, reference="ABCD-EFGH-JKLM")
        account.join_organization("org-001")
        account.append_entry(EntryType.CREDIT.value, EntryCategory.REFUND.value, 30, reference="ABCD-EFGH-JKLM")
        with pytest.raises(ValidationError):
            account.append_entry(EntryType.CREDIT.value, EntryCategory.REFUND.value, 30, reference="ABCD-EFGH-JKLM")

    def test_raises_entry_recorded_event(self):
        account = _account()
        account._events.clear()
        account.append_entry(EntryType.CREDIT.value, EntryCategory.TOP_UP.value, 5, reference="TOPUP-1")
        event = account._events[0]
        assert isinstance(event, LedgerEntryRecorded)
        assert event.balance_after == 105.0
        assert event.reference == "TOPUP-1"

    def test_newest_first(self):
        account = _account()
        account.append_entry(EntryType.CREDIT.value, EntryCategory.TOP_UP.value, 1)
        account.append_entry(EntryType.CREDIT.value, EntryCategory.TOP_UP.value, 2)
        assert [e.sequence for e in account.entries_newest_first()] == [2, 1]

    def test_signed_amount(self):
        account = _account()
        debit = account.append_entry(EntryType.DEBIT.value, EntryCategory.SHIPMENT_FEE.value, 4)
        assert debit.signed_amount < 0


class TestBalanceInvariant:
    def test_writing_balance_directly_is_rejected(self):
        account = _account()
        account.append_entry(EntryType.CREDIT.value, EntryCategory.TOP_UP.value, 10)
        with pytest.raises(ValidationError) as exc:
            account.balance = 999.0
        assert "balance" in exc.value.messages


class TestBillingTerms:
    def test_available_funds_adds_credit_limit(self):
        account = _account(opening_balance=50.0, credit_limit=25.0)
        assert float(account.available_funds) == 75.0

    def test_change_credit_limit(self):
        account = _account()
        account.change_credit_limit(40)
        assert account.credit_limit == 40.0

    def test_negative_credit_limit_rejected(self):
        account = _account()
        with pytest.raises(ValidationError):
            account.change_credit_limit(-1)

    def test_change_markup(self):
        account = _account()
        account.change_markup(MarkupType.FLAT.value, flat_value=2.5)
        assert account.markup.markup_type == MarkupType.FLAT.value
        assert account.markup.flat_value == 2.5


class TestMembership:
    def test_join_sets_organization(self):
        account = _account()
        account.join_organization("org-001")
        assert account.is_member
        assert isinstance(account._events[-1], MemberJoined)

    def test_leave_clears_organization(self):
        account = _account()
        account.join_organization("org-001")
        account.leave_organization()
        assert not account.is_member

    def test_organization_cannot_join(self):
        organization = Account.open_organization(name="Acme")
        with pytest.raises(ValidationError):
            organization.join_organization("org-002")


class TestLedgerChain:
    def test_intact_chain_verifies(self):
        from logistics.account.ledger import verify_chain

        account = _account()
        account.append_entry(EntryType.DEBIT.value, EntryCategory.SHIPMENT_FEE.value, 30)
        account.append_entry(EntryType.CREDIT.value, EntryCategory.REFUND.value, 30)

        verify_chain(account)

    def test_tampered_entry_breaks_the_chain(self):
        from logistics.account.ledger import verify_chain
        from logistics.shared.errors import LedgerIntegrityError

        account = _account()
        first = account.append_entry(EntryType.DEBIT.value, EntryCategory.SHIPMENT_FEE.value, 30)
        account.append_entry(EntryType.CREDIT.value, EntryCategory.TOP_UP.value, 10)
        first.balance_after = 95.0

        with pytest.raises(LedgerIntegrityError) as exc:
            verify_chain(account)

        assert exc.value.kind == "ledger_integrity"
        assert exc.value.details["sequence"] == 1
