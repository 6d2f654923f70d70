"""
Ledger Aggregator -- per-account totals for a period.

Responsibility:
    Folds journal entries into one LedgerAccountSummary per account:
    total debits, total credits, the nature-signed final balance and the
    T-account detail (debit and credit postings).

Architecture position:
    Modules > Reporting -- pure functions, zero I/O.

Invariants enforced:
    - One summary per input account, in input order, including accounts
      with no activity.
    - Lines against accounts outside the input list are skipped: they
      belong to another scope.
    - Sign convention: asset and expense balances are debits - credits;
      liability, equity and revenue balances are credits - debits.
    - Totals are independent of entry order.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from ledger_kernel.domain.balance import within_tolerance
from ledger_kernel.domain.dtos import (
    AccountRecord,
    AccountType,
    JournalEntryRecord,
    NormalBalance,
    normal_balance_for,
)
from ledger_kernel.exceptions import ValidationError
from ledger_modules.reporting.models import (
    LedgerAccountSummary,
    LedgerPosting,
    TrialBalanceReport,
)

_ZERO = Decimal("0")


def compute_final_balance(
    account_type: AccountType | str,
    total_debits: Decimal,
    total_credits: Decimal,
) -> Decimal:
    """
    Balance signed by account nature.

    DEBIT-normal (ASSET, EXPENSE): total_debits - total_credits
    CREDIT-normal (LIABILITY, EQUITY, REVENUE): total_credits - total_debits
    """
    if normal_balance_for(account_type) == NormalBalance.DEBIT:
        return total_debits - total_credits
    return total_credits - total_debits


def entries_in_range(
    journal_entries: Iterable[JournalEntryRecord],
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[JournalEntryRecord]:
    """Entries whose entry_date falls in the inclusive range."""
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValidationError(
            "date_range", (start_date, end_date), "start_date is after end_date"
        )
    return [
        entry
        for entry in journal_entries
        if (start_date is None or entry.entry_date >= start_date)
        and (end_date is None or entry.entry_date <= end_date)
    ]


class _Accumulator:
    __slots__ = ("debits", "credits", "debit_entries", "credit_entries")

    def __init__(self) -> None:
        self.debits = _ZERO
        self.credits = _ZERO
        self.debit_entries: list[LedgerPosting] = []
        self.credit_entries: list[LedgerPosting] = []


def aggregate(
    accounts: Sequence[AccountRecord],
    journal_entries: Iterable[JournalEntryRecord],
    start_date: date | None = None,
    end_date: date | None = None,
) -> tuple[LedgerAccountSummary, ...]:
    """
    Build one LedgerAccountSummary per account.

    Args:
        accounts: Accounts of one organization.
        journal_entries: Entries (with lines) of the same scope.
        start_date / end_date: Optional inclusive entry_date filter.

    Raises:
        ValidationError: If start_date is after end_date.
    """
    acc: dict[UUID, _Accumulator] = {a.account_id: _Accumulator() for a in accounts}

    for entry in entries_in_range(journal_entries, start_date, end_date):
        for line in entry.lines:
            bucket = acc.get(line.account_id)
            if bucket is None:
                continue
            if line.debit_amount:
                bucket.debits += line.debit_amount
                bucket.debit_entries.append(
                    LedgerPosting(
                        entry_id=entry.entry_id,
                        entry_date=entry.entry_date,
                        description=entry.description,
                        amount=line.debit_amount,
                        memo=line.memo,
                    )
                )
            if line.credit_amount:
                bucket.credits += line.credit_amount
                bucket.credit_entries.append(
                    LedgerPosting(
                        entry_id=entry.entry_id,
                        entry_date=entry.entry_date,
                        description=entry.description,
                        amount=line.credit_amount,
                        memo=line.memo,
                    )
                )

    return tuple(
        LedgerAccountSummary(
            account_id=account.account_id,
            account_name=account.name,
            account_type=account.account_type,
            account_code=account.code,
            total_debits=acc[account.account_id].debits,
            total_credits=acc[account.account_id].credits,
            final_balance=compute_final_balance(
                account.account_type,
                acc[account.account_id].debits,
                acc[account.account_id].credits,
            ),
            debit_entries=tuple(acc[account.account_id].debit_entries),
            credit_entries=tuple(acc[account.account_id].credit_entries),
        )
        for account in accounts
    )


def build_trial_balance(
    summaries: Sequence[LedgerAccountSummary],
    include_zero_balances: bool = True,
) -> TrialBalanceReport:
    """Trial balance from aggregated summaries.

    Totals always cover every summary; ``include_zero_balances=False``
    only hides inactive rows from ``lines``.
    """
    total_debits = sum((s.total_debits for s in summaries), _ZERO)
    total_credits = sum((s.total_credits for s in summaries), _ZERO)
    lines = tuple(
        s for s in summaries
        if include_zero_balances or s.has_activity
    )
    return TrialBalanceReport(
        lines=lines,
        total_debits=total_debits,
        total_credits=total_credits,
        is_balanced=within_tolerance(total_debits - total_credits),
    )


def sum_balances(
    summaries: Iterable[LedgerAccountSummary],
    account_type: AccountType,
) -> Decimal:
    """Sum of final balances over accounts of one type."""
    return sum(
        (s.final_balance for s in summaries if s.account_type == account_type),
        _ZERO,
    )
