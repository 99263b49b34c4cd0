"""Manual balance adjustment — staff top-ups, refunds and corrections.

The target may be a member user; the entry then lands on the organization
account the user bills through.
"""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from logistics.account.account import Account, EntryCategory, EntryType
from logistics.account.guard import BalanceGuard
from logistics.account.ledger import LedgerStore
from logistics.domain import logistics
from logistics.shared.actor import Actor
from logistics.shared.errors import ConcurrencyConflictError
from logistics.utils.locks import account_key, serialized


@logistics.command(part_of="Account")
class AdjustBalance:
    account_id = Identifier(required=True)
    entry_type = String(required=True, max_length=10, choices=EntryType)
    amount = Float(required=True)
    category = String(max_length=20, choices=EntryCategory, default=EntryCategory.ADJUSTMENT.value)
    description = String(max_length=500)
    reference = String(max_length=50)
    expected_billing_account_id = Identifier()
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command_handler(part_of=Account)
class AdjustBalanceHandler:
    @handle(AdjustBalance)
    def adjust_balance(self, command):
        actor = Actor.of(command.actor_id, command.actor_role)
        actor.require_staff()

        billing = BalanceGuard().billing_account_for(command.account_id)
        expected = command.expected_billing_account_id
        if expected and str(expected) != str(billing.id):
            raise ConcurrencyConflictError(
                "Billing account changed while the adjustment was waiting",
                account_id=str(command.account_id),
            )

        entry = LedgerStore().append(
            account_id=str(billing.id),
            entry_type=command.entry_type,
            category=command.category,
            amount=command.amount,
            description=command.description or f"Manual {command.category.lower().replace('_', ' ')}",
            reference=command.reference,
            created_by=actor.id,
        )
        return {
            "account_id": str(billing.id),
            "entry_id": str(entry.id),
            "balance": entry.balance_after,
        }


def adjust_balance(actor: Actor, account_id: str, entry_type: str, amount: float, **kwargs) -> dict:
    """Serialize the adjustment on the billing account, then process it."""
    billing_id = str(BalanceGuard().billing_account_for(account_id).id)
    with serialized(account_key(billing_id)):
        command = AdjustBalance(
            account_id=account_id,
            entry_type=entry_type,
            amount=amount,
            expected_billing_account_id=billing_id,
            actor_id=actor.id,
            actor_role=actor.role.value,
            **kwargs,
        )
        return current_domain.process(command, asynchronous=False)
