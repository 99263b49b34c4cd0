"""Account registration — commands and handler for opening accounts."""

from protean import handle
from protean.fields import Float, String
from protean.utils.globals import current_domain

from logistics.account.account import Account, Markup
from logistics.domain import logistics
from logistics.shared.actor import Actor, Role


@logistics.command(part_of="Account")
class OpenUserAccount:
    """Open an account for a client, staff member, admin or driver."""

    name = String(required=True, max_length=200)
    email = String(max_length=254)
    role = String(max_length=20, choices=Role, default=Role.CLIENT.value)
    opening_balance = Float(default=0.0)
    credit_limit = Float(default=0.0, min_value=0.0)
    markup_type = String(max_length=20)
    percentage_value = Float(min_value=0.0)
    flat_value = Float(min_value=0.0)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command(part_of="Account")
class RegisterOrganization:
    """Open a pooled billing account for an organization."""

    name = String(required=True, max_length=200)
    email = String(max_length=254)
    opening_balance = Float(default=0.0)
    credit_limit = Float(default=0.0, min_value=0.0)
    markup_type = String(max_length=20)
    percentage_value = Float(min_value=0.0)
    flat_value = Float(min_value=0.0)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


def _markup_from(command) -> Markup | None:
    if not command.markup_type:
        return None
    return Markup(
        markup_type=command.markup_type,
        percentage_value=command.percentage_value or 0.0,
        flat_value=command.flat_value or 0.0,
    )


@logistics.command_handler(part_of=Account)
class RegistrationHandler:
    @handle(OpenUserAccount)
    def open_user_account(self, command):
        Actor.of(command.actor_id, command.actor_role).require_staff()
        account = Account.open_user(
            name=command.name,
            email=command.email,
            role=command.role,
            opening_balance=command.opening_balance or 0.0,
            credit_limit=command.credit_limit or 0.0,
            markup=_markup_from(command),
        )
        current_domain.repository_for(Account).add(account)
        return str(account.id)

    @handle(RegisterOrganization)
    def register_organization(self, command):
        Actor.of(command.actor_id, command.actor_role).require_staff()
        account = Account.open_organization(
            name=command.name,
            email=command.email,
            opening_balance=command.opening_balance or 0.0,
            credit_limit=command.credit_limit or 0.0,
            markup=_markup_from(command),
        )
        current_domain.repository_for(Account).add(account)
        return str(account.id)
