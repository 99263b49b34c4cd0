"""Account domain events — facts about balances, billing terms and membership."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from logistics.domain import logistics


@logistics.event(part_of="Account")
class AccountOpened:
    """A user or organization account was opened."""

    __version__ = 1

    account_id = Identifier(required=True)
    kind = String(required=True)
    name = String(required=True)
    role = String()
    opening_balance = Float(required=True)
    credit_limit = Float(required=True)
    opened_at = DateTime(required=True)


@logistics.event(part_of="Account")
class LedgerEntryRecorded:
    """Funds moved on an account's ledger."""

    __version__ = 1

    account_id = Identifier(required=True)
    entry_id = Identifier(required=True)
    entry_type = String(required=True)
    category = String(required=True)
    amount = Float(required=True)
    balance_after = Float(required=True)
    reference = String()
    sequence = Integer(required=True)
    recorded_at = DateTime(required=True)


@logistics.event(part_of="Account")
class CreditLimitChanged:
    __version__ = 1

    account_id = Identifier(required=True)
    previous_limit = Float()
    credit_limit = Float(required=True)
    changed_at = DateTime(required=True)


@logistics.event(part_of="Account")
class MarkupChanged:
    __version__ = 1

    account_id = Identifier(required=True)
    markup_type = String(required=True)
    percentage_value = Float()
    flat_value = Float()
    changed_at = DateTime(required=True)


@logistics.event(part_of="Account")
class MemberJoined:
    """A user account started billing through an organization."""

    __version__ = 1

    account_id = Identifier(required=True)
    organization_id = Identifier(required=True)
    joined_at = DateTime(required=True)


@logistics.event(part_of="Account")
class MemberLeft:
    """A user account stopped billing through an organization."""

    __version__ = 1

    account_id = Identifier(required=True)
    organization_id = Identifier(required=True)
    left_at = DateTime(required=True)
