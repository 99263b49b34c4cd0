"""Repository for the Account aggregate."""

from protean.exceptions import ObjectNotFoundError

from logistics.account.account import Account
from logistics.domain import logistics
from logistics.shared.errors import NotFoundError


@logistics.repository(part_of=Account)
class AccountRepository:
    def get_account(self, account_id) -> Account:
        """Load an account or raise ``NotFoundError``."""
        try:
            return self.get(str(account_id))
        except ObjectNotFoundError:
            raise NotFoundError(f"Account {account_id} not found", account_id=str(account_id)) from None

    def members_of(self, organization_id) -> list[Account]:
        return self._dao.query.filter(organization_id=str(organization_id)).all().items
