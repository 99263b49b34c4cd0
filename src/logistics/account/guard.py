"""Balance guard: decides whether a billing account can fund a spend."""

from dataclasses import dataclass
from decimal import Decimal

import structlog
from protean.utils.globals import current_domain

from logistics.account.account import Account
from logistics.shared.errors import InsufficientFundsError
from logistics.shared.money import quantize

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Authorization:
    account_id: str
    approved: bool
    required: Decimal
    available: Decimal

    @property
    def shortfall(self) -> Decimal:
        return max(Decimal("0"), self.required - self.available)

    def raise_if_declined(self) -> None:
        if not self.approved:
            raise InsufficientFundsError(
                account_id=self.account_id,
                required=float(self.required),
                available=float(self.available),
                shortfall=float(self.shortfall),
            )


class BalanceGuard:
    def __init__(self):
        self.repo = current_domain.repository_for(Account)

    def resolve_billing_account(self, user: Account) -> Account:
        """The organization's account for members, otherwise the user's own."""
        if user.is_member:
            return self.repo.get_account(user.organization_id)
        return user

    def billing_account_for(self, user_id: str) -> Account:
        return self.resolve_billing_account(self.repo.get_account(user_id))

    def authorize(self, user: Account, amount) -> Authorization:
        """Approve iff the billing account's balance plus credit line covers ``amount``.

        Only meaningful while the caller holds the billing account's lock.
        """
        billing = self.resolve_billing_account(user)
        required = quantize(amount)
        available = billing.available_funds
        authorization = Authorization(
            account_id=str(billing.id),
            approved=available >= required,
            required=required,
            available=available,
        )
        logger.info(
            "Spend authorization",
            user_id=str(user.id),
            billing_account_id=str(billing.id),
            required=float(required),
            available=float(available),
            approved=authorization.approved,
        )
        return authorization
