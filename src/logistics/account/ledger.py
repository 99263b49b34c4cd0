"""Ledger store: the single writer of account balances.

Entries and the balance they move live on the same Account aggregate, so a
write persists both or neither. Callers that check funds before writing
(bookings) must hold the account's lock across the check and the write.
"""

import math
from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from logistics.account.account import Account, LedgerEntry
from logistics.shared.errors import LedgerIntegrityError
from logistics.shared.money import quantize
from logistics.utils import config

logger = structlog.get_logger(__name__)


def verify_chain(account: Account) -> None:
    """Replay the entries from the opening balance; raise if any link is broken."""
    running = quantize(account.opening_balance)
    for entry in sorted(account.entries or [], key=lambda e: e.sequence):
        running = quantize(running + entry.signed_amount)
        if running != quantize(entry.balance_after):
            logger.error(
                "Ledger chain broken",
                account_id=str(account.id),
                sequence=entry.sequence,
                expected=float(running),
                recorded=entry.balance_after,
            )
            raise LedgerIntegrityError(
                f"Ledger entry {entry.sequence} of account {account.id} does not follow from the previous balance",
                account_id=str(account.id),
                sequence=entry.sequence,
            )
    if running != quantize(account.balance):
        raise LedgerIntegrityError(
            f"Balance of account {account.id} does not match its ledger",
            account_id=str(account.id),
        )


@dataclass
class LedgerPage:
    entries: list[LedgerEntry]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return max(1, math.ceil(self.total / self.limit)) if self.limit else 1


class LedgerStore:
    def __init__(self):
        self.repo = current_domain.repository_for(Account)

    def append(
        self,
        account_id: str,
        entry_type: str,
        category: str,
        amount,
        description: str = "",
        reference: str | None = None,
        created_by: str | None = None,
    ) -> LedgerEntry:
        account = self.repo.get_account(account_id)
        verify_chain(account)
        entry = account.append_entry(
            entry_type=entry_type,
            category=category,
            amount=amount,
            description=description,
            reference=reference,
            created_by=created_by,
        )
        self.repo.add(account)
        logger.info(
            "Ledger entry appended",
            account_id=str(account_id),
            entry_type=entry_type,
            category=category,
            amount=entry.amount,
            balance_after=entry.balance_after,
            reference=reference,
        )
        return entry

    def list_entries(self, account_id: str, page: int = 1, limit: int | None = None) -> LedgerPage:
        """Entries newest first, one page at a time (pages start at 1)."""
        limit = limit or config.ledger_page_size()
        page = max(1, page)
        entries = self.repo.get_account(account_id).entries_newest_first()
        start = (page - 1) * limit
        return LedgerPage(entries=entries[start : start + limit], total=len(entries), page=page, limit=limit)

    def get_balance(self, account_id: str) -> float:
        account = self.repo.get_account(account_id)
        verify_chain(account)
        return account.balance
