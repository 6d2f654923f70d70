"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Scoped reads of accounts and journal entries for the
    reporting layer.  Implements the LedgerRepository port.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Every query is filtered by organization_id (and accounting_period_id
      for entries).  An unscoped call raises ScopeRequiredError instead of
      reading across organizations.
    - Entries are returned with their lines attached, ordered by entry_date
      then line sequence, so downstream folds are deterministic.

Failure modes:
    - ScopeRequiredError when organization_id or period_id is None.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from ledger_kernel.domain.dtos import AccountRecord, JournalEntryRecord
from ledger_kernel.exceptions import ScopeRequiredError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry
from ledger_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.ledger")


def _require_scope(organization_id: UUID | None, period_id: UUID | None) -> None:
    if organization_id is None:
        raise ScopeRequiredError("organization_id")
    if period_id is None:
        raise ScopeRequiredError("accounting_period_id")


class LedgerSelector(BaseSelector[JournalEntry]):
    """
    Selector for the accounts and entries of one organization/period.

    Contract:
        Accounts are organization-wide (the period id is still required so
        that callers cannot accidentally drop their scope).  Entries are
        limited to the accounting period and, optionally, to an inclusive
        entry_date range.
    """

    def fetch_accounts(
        self, organization_id: UUID, period_id: UUID
    ) -> list[AccountRecord]:
        _require_scope(organization_id, period_id)
        rows = self.session.scalars(
            select(Account)
            .where(Account.organization_id == organization_id)
            .order_by(Account.code, Account.name)
        ).all()
        return [AccountRecord.from_model(row) for row in rows]

    def fetch_journal_entries(
        self,
        organization_id: UUID,
        period_id: UUID,
        date_range: tuple[date | None, date | None] | None = None,
    ) -> list[JournalEntryRecord]:
        _require_scope(organization_id, period_id)
        stmt = (
            select(JournalEntry)
            .options(selectinload(JournalEntry.lines))
            .where(
                JournalEntry.organization_id == organization_id,
                JournalEntry.accounting_period_id == period_id,
            )
            .order_by(JournalEntry.entry_date, JournalEntry.created_at)
        )
        if date_range is not None:
            start, end = date_range
            if start is not None:
                stmt = stmt.where(JournalEntry.entry_date >= start)
            if end is not None:
                stmt = stmt.where(JournalEntry.entry_date <= end)

        entries = self.session.scalars(stmt).all()
        logger.debug(
            "journal_entries_fetched",
            extra={
                "organization_id": str(organization_id),
                "period_id": str(period_id),
                "entry_count": len(entries),
            },
        )
        return [JournalEntryRecord.from_model(entry) for entry in entries]
