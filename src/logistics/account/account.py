"""Account aggregate — billing identity for users and organizations.

An Account is either a USER (a person acting as client, staff, admin or
driver) or an ORGANIZATION that pools billing for its member users. Every
account carries its own ledger: an append-only list of entries whose running
``balance_after`` must always end at the account's ``balance``. The balance is
moved only by ``append_entry``; nothing else writes it.

A user whose ``organization_id`` is set has no spending balance of its own.
All billing for that user resolves to the organization's account, and the
ledger refuses direct entries against the member account.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from logistics.account.events import (
    AccountOpened,
    CreditLimitChanged,
    LedgerEntryRecorded,
    MarkupChanged,
    MemberJoined,
    MemberLeft,
)
from logistics.domain import logistics
from logistics.shared.actor import Role
from logistics.shared.money import as_float, quantize, to_decimal
from logistics.utils import config


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class AccountKind(Enum):
    USER = "USER"
    ORGANIZATION = "ORGANIZATION"


class EntryType(Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class EntryCategory(Enum):
    SHIPMENT_FEE = "SHIPMENT_FEE"
    TOP_UP = "TOP_UP"
    REFUND = "REFUND"
    ADJUSTMENT = "ADJUSTMENT"


class MarkupType(Enum):
    PERCENTAGE = "PERCENTAGE"
    FLAT = "FLAT"
    COMBINED = "COMBINED"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@logistics.value_object(part_of="Account")
class Markup:
    """Pricing rule applied to a raw carrier cost."""

    markup_type = String(max_length=20, choices=MarkupType, default=MarkupType.PERCENTAGE.value)
    percentage_value = Float(min_value=0.0, default=0.0)
    flat_value = Float(min_value=0.0, default=0.0)

    @classmethod
    def default(cls) -> "Markup":
        return cls(
            markup_type=MarkupType.PERCENTAGE.value,
            percentage_value=float(config.default_markup_percent()),
            flat_value=0.0,
        )


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@logistics.entity(part_of="Account")
class LedgerEntry:
    """One immutable movement of funds. Corrections are new entries."""

    entry_type = String(required=True, max_length=10, choices=EntryType)
    category = String(required=True, max_length=20, choices=EntryCategory)
    amount = Float(required=True)
    balance_after = Float(required=True)
    description = String(max_length=500)
    reference = String(max_length=50)
    sequence = Integer(required=True, min_value=1)
    created_by = String(max_length=100)
    created_at = DateTime(required=True)

    @property
    def signed_amount(self):
        amount = to_decimal(self.amount)
        return amount if self.entry_type == EntryType.CREDIT.value else -amount


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@logistics.aggregate
class Account:
    kind = String(required=True, max_length=20, choices=AccountKind)
    name = String(required=True, max_length=200)
    email = String(max_length=254)
    role = String(max_length=20, choices=Role)
    organization_id = Identifier()
    balance = Float(default=0.0)
    opening_balance = Float(default=0.0)
    credit_limit = Float(default=0.0, min_value=0.0)
    markup = ValueObject(Markup)
    entries = HasMany(LedgerEntry)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def balance_matches_last_entry(self):
        expected = self.opening_balance
        if self.entries:
            expected = max(self.entries, key=lambda e: e.sequence).balance_after
        if quantize(expected) != quantize(self.balance):
            raise ValidationError({"balance": ["Balance does not match the ledger"]})

    @invariant.post
    def organizations_have_no_parent(self):
        if self.kind == AccountKind.ORGANIZATION.value and self.organization_id:
            raise ValidationError({"organization_id": ["An organization cannot belong to another organization"]})

    # -------------------------------------------------------------------
    # Factory methods
    # -------------------------------------------------------------------
    @classmethod
    def open_user(
        cls,
        name: str,
        email: str | None = None,
        role: str = Role.CLIENT.value,
        opening_balance: float = 0.0,
        credit_limit: float = 0.0,
        markup: Markup | None = None,
    ):
        return cls._open(AccountKind.USER, name, email, role, opening_balance, credit_limit, markup)

    @classmethod
    def open_organization(
        cls,
        name: str,
        email: str | None = None,
        opening_balance: float = 0.0,
        credit_limit: float = 0.0,
        markup: Markup | None = None,
    ):
        return cls._open(AccountKind.ORGANIZATION, name, email, None, opening_balance, credit_limit, markup)

    @classmethod
    def _open(cls, kind, name, email, role, opening_balance, credit_limit, markup):
        now = datetime.now(UTC)
        opening = as_float(opening_balance)
        account = cls(
            kind=kind.value,
            name=name,
            email=email,
            role=role,
            balance=opening,
            opening_balance=opening,
            credit_limit=as_float(credit_limit),
            markup=markup or Markup.default(),
            created_at=now,
            updated_at=now,
        )
        account.raise_(
            AccountOpened(
                account_id=str(account.id),
                kind=kind.value,
                name=name,
                role=role or "",
                opening_balance=opening,
                credit_limit=account.credit_limit,
                opened_at=now,
            )
        )
        return account

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_organization(self) -> bool:
        return self.kind == AccountKind.ORGANIZATION.value

    @property
    def is_member(self) -> bool:
        return not self.is_organization and bool(self.organization_id)

    @property
    def available_funds(self):
        """Spendable amount: balance plus the credit line. Never stored."""
        return quantize(to_decimal(self.balance) + to_decimal(self.credit_limit))

    def entries_newest_first(self) -> list:
        return sorted(self.entries or [], key=lambda e: e.sequence, reverse=True)

    def _next_sequence(self) -> int:
        return max((e.sequence for e in self.entries or []), default=0) + 1

    # -------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------
    def _refunds_own_fee(self, category: str, reference: str | None) -> bool:
        """A REFUND of a SHIPMENT_FEE this account paid before joining an organization."""
        if category != EntryCategory.REFUND.value or not reference:
            return False
        paid = any(
            e.category == EntryCategory.SHIPMENT_FEE.value and e.reference == reference for e in self.entries or []
        )
        refunded = any(e.category == EntryCategory.REFUND.value and e.reference == reference for e in self.entries or [])
        return paid and not refunded

    def append_entry(
        self,
        entry_type: str,
        category: str,
        amount,
        description: str = "",
        reference: str | None = None,
        created_by: str | None = None,
    ) -> LedgerEntry:
        """Record a movement of funds and move the balance with it."""
        if self.is_member and not self._refunds_own_fee(category, reference):
            raise ValidationError(
                {"account_id": ["Member accounts are billed through their organization"]}
            )
        amount = quantize(amount)
        if amount <= 0:
            raise ValidationError({"amount": ["Amount must be greater than zero"]})

        now = datetime.now(UTC)
        delta = amount if entry_type == EntryType.CREDIT.value else -amount
        balance_after = quantize(to_decimal(self.balance) + delta)
        entry = LedgerEntry(
            entry_type=entry_type,
            category=category,
            amount=float(amount),
            balance_after=float(balance_after),
            description=description or "",
            reference=reference,
            sequence=self._next_sequence(),
            created_by=created_by,
            created_at=now,
        )
        with atomic_change(self):
            self.add_entries(entry)
            self.balance = float(balance_after)
            self.updated_at = now

        self.raise_(
            LedgerEntryRecorded(
                account_id=str(self.id),
                entry_id=str(entry.id),
                entry_type=entry_type,
                category=category,
                amount=float(amount),
                balance_after=float(balance_after),
                reference=reference or "",
                sequence=entry.sequence,
                recorded_at=now,
            )
        )
        return entry

    # -------------------------------------------------------------------
    # Billing terms
    # -------------------------------------------------------------------
    def change_credit_limit(self, credit_limit) -> None:
        limit = quantize(credit_limit)
        if limit < 0:
            raise ValidationError({"credit_limit": ["Credit limit cannot be negative"]})
        now = datetime.now(UTC)
        previous = self.credit_limit
        self.credit_limit = float(limit)
        self.updated_at = now
        self.raise_(
            CreditLimitChanged(
                account_id=str(self.id),
                previous_limit=previous,
                credit_limit=float(limit),
                changed_at=now,
            )
        )

    def change_markup(self, markup_type: str, percentage_value: float = 0.0, flat_value: float = 0.0) -> None:
        now = datetime.now(UTC)
        self.markup = Markup(
            markup_type=markup_type,
            percentage_value=percentage_value,
            flat_value=flat_value,
        )
        self.updated_at = now
        self.raise_(
            MarkupChanged(
                account_id=str(self.id),
                markup_type=markup_type,
                percentage_value=percentage_value,
                flat_value=flat_value,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------
    def join_organization(self, organization_id: str) -> None:
        if self.is_organization:
            raise ValidationError({"user_id": ["Only user accounts can join an organization"]})
        now = datetime.now(UTC)
        self.organization_id = organization_id
        self.updated_at = now
        self.raise_(
            MemberJoined(
                account_id=str(self.id),
                organization_id=str(organization_id),
                joined_at=now,
            )
        )

    def leave_organization(self) -> None:
        """Unlink from the organization; the user's own balance becomes live again."""
        now = datetime.now(UTC)
        organization_id = self.organization_id
        self.organization_id = None
        self.updated_at = now
        self.raise_(
            MemberLeft(
                account_id=str(self.id),
                organization_id=str(organization_id),
                left_at=now,
            )
        )
