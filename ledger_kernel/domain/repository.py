"""LedgerRepository -- read port the reporting layer consumes.

Implementations: LedgerSelector (SQLAlchemy). Tests may pass any object
with the same two methods. Every call is scoped by organization and
accounting period; implementations must refuse unscoped reads.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol, runtime_checkable
from uuid import UUID

from ledger_kernel.domain.dtos import AccountRecord, JournalEntryRecord

DateRange = tuple[date | None, date | None]


@runtime_checkable
class LedgerRepository(Protocol):
    """Read-only source of accounts and journal entries for one scope."""

    def fetch_accounts(
        self, organization_id: UUID, period_id: UUID
    ) -> list[AccountRecord]:
        """Return every account visible in the organization/period."""
        ...

    def fetch_journal_entries(
        self,
        organization_id: UUID,
        period_id: UUID,
        date_range: DateRange | None = None,
    ) -> list[JournalEntryRecord]:
        """Return entries (lines attached), optionally limited to a date range.

        Raises:
            ScopeRequiredError: When organization_id or period_id is None.
        """
        ...
