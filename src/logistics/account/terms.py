"""Billing terms: staff set an account's credit line and markup rule."""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from logistics.account.account import Account, MarkupType
from logistics.domain import logistics
from logistics.shared.actor import Actor


@logistics.command(part_of="Account")
class SetCreditLimit:
    account_id = Identifier(required=True)
    credit_limit = Float(required=True, min_value=0.0)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command(part_of="Account")
class SetMarkup:
    account_id = Identifier(required=True)
    markup_type = String(required=True, max_length=20, choices=MarkupType)
    percentage_value = Float(min_value=0.0, default=0.0)
    flat_value = Float(min_value=0.0, default=0.0)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command_handler(part_of=Account)
class BillingTermsHandler:
    @handle(SetCreditLimit)
    def set_credit_limit(self, command):
        Actor.of(command.actor_id, command.actor_role).require_staff()
        repo = current_domain.repository_for(Account)
        account = repo.get_account(command.account_id)
        account.change_credit_limit(command.credit_limit)
        repo.add(account)

    @handle(SetMarkup)
    def set_markup(self, command):
        Actor.of(command.actor_id, command.actor_role).require_staff()
        repo = current_domain.repository_for(Account)
        account = repo.get_account(command.account_id)
        account.change_markup(
            markup_type=command.markup_type,
            percentage_value=command.percentage_value or 0.0,
            flat_value=command.flat_value or 0.0,
        )
        repo.add(account)
