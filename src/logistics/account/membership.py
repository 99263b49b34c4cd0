"""Organization membership — pooling member billing through the organization.

Membership is recorded on the member's account (``organization_id``), so
joining or leaving changes exactly one aggregate. Leaving does not move any
funds: entries already written stay on the account they were written to, and
the user's own account (typically untouched while a member) becomes its
billing account again.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from logistics.account.account import Account
from logistics.domain import logistics
from logistics.shared.actor import Actor
from logistics.shared.errors import AlreadyMemberError, NotFoundError
from logistics.utils.locks import account_key, serialized

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Account")
class AddMember:
    organization_id = Identifier(required=True)
    user_id = Identifier(required=True)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


@logistics.command(part_of="Account")
class RemoveMember:
    organization_id = Identifier(required=True)
    user_id = Identifier(required=True)
    actor_id = String(required=True, max_length=100)
    actor_role = String(required=True, max_length=20)


def _load_organization(repo, organization_id) -> Account:
    organization = repo.get_account(organization_id)
    if not organization.is_organization:
        raise NotFoundError(f"Organization {organization_id} not found", organization_id=str(organization_id))
    return organization


@logistics.command_handler(part_of=Account)
class MembershipHandler:
    @handle(AddMember)
    def add_member(self, command):
        Actor.of(command.actor_id, command.actor_role).require_staff()
        repo = current_domain.repository_for(Account)
        organization = _load_organization(repo, command.organization_id)
        user = repo.get_account(command.user_id)
        if user.is_organization:
            raise ValidationError({"user_id": ["Only user accounts can join an organization"]})

        if user.organization_id:
            if str(user.organization_id) == str(organization.id):
                return
            raise AlreadyMemberError(user_id=str(user.id), organization_id=str(user.organization_id))

        user.join_organization(str(organization.id))
        repo.add(user)
        logger.info("Member added", organization_id=str(organization.id), user_id=str(user.id))

    @handle(RemoveMember)
    def remove_member(self, command):
        Actor.of(command.actor_id, command.actor_role).require_staff()
        repo = current_domain.repository_for(Account)
        organization = _load_organization(repo, command.organization_id)
        user = repo.get_account(command.user_id)
        if str(user.organization_id or "") != str(organization.id):
            raise ValidationError({"user_id": ["User is not a member of this organization"]})

        user.leave_organization()
        repo.add(user)
        logger.info("Member removed", organization_id=str(organization.id), user_id=str(user.id))


def change_membership(command) -> None:
    """Process a membership command while holding the member and organization locks.

    A booking for the member holds the organization's lock, so membership
    cannot change in the middle of one.
    """
    with serialized(account_key(command.user_id), account_key(command.organization_id)):
        current_domain.process(command, asynchronous=False)


def list_members(organization_id) -> list[Account]:
    repo = current_domain.repository_for(Account)
    _load_organization(repo, organization_id)
    return repo.members_of(organization_id)
