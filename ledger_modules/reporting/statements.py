"""
Pure Financial Statement Transformation Functions.

All functions in this module are pure: no I/O, no database, no clock.
They take aggregated ledger summaries (or accounts and entries) and
return frozen report dataclasses from reporting.models.

Conventions:
    - The balance sheet always folds the period net income into equity.
      After closing entries revenue and expense balances are zero, so the
      fold is a no-op and the convention holds before and after closing.
    - Cash flow uses the direct method: every entry touching a cash-like
      account is split over its non-cash lines, each classified by its own
      account.  Any amount the lines do not explain is reported as
      unclassified operating cash, so the net cash flow always equals the
      change in cash-like balances.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.domain.balance import within_tolerance
from ledger_kernel.domain.dtos import (
    AccountRecord,
    AccountType,
    EntryLine,
    JournalEntryRecord,
)
from ledger_modules.reporting.config import ClassificationRules
from ledger_modules.reporting.ledger import (
    aggregate,
    entries_in_range,
    sum_balances,
)
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    CashFlowCategory,
    CashFlowLineItem,
    CashFlowSection,
    CashFlowStatementReport,
    IncomeStatementReport,
    LedgerAccountSummary,
    StatementLine,
    StockBalance,
)

_ZERO = Decimal("0")


def _lines_for(
    summaries: Iterable[LedgerAccountSummary],
    account_type: AccountType,
) -> tuple[StatementLine, ...]:
    return tuple(
        StatementLine(
            account_id=s.account_id,
            account_name=s.account_name,
            amount=s.final_balance,
            account_code=s.account_code,
        )
        for s in summaries
        if s.account_type == account_type
    )


# =========================================================================
# 1. INCOME STATEMENT
# =========================================================================


def build_income_statement(
    summaries: Sequence[LedgerAccountSummary],
) -> IncomeStatementReport:
    """Revenue - expenses = net income, from final balances."""
    total_revenue = sum_balances(summaries, AccountType.REVENUE)
    total_expenses = sum_balances(summaries, AccountType.EXPENSE)
    return IncomeStatementReport(
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        net_income=total_revenue - total_expenses,
        revenue_lines=_lines_for(summaries, AccountType.REVENUE),
        expense_lines=_lines_for(summaries, AccountType.EXPENSE),
    )


# =========================================================================
# 2. BALANCE SHEET
# =========================================================================


def build_balance_sheet(
    summaries: Sequence[LedgerAccountSummary],
) -> BalanceSheetReport:
    """
    Assets, liabilities and equity with the period result folded in.

    is_balanced = |assets - (liabilities + equity + net income)| < 0.01
    """
    total_assets = sum_balances(summaries, AccountType.ASSET)
    total_liabilities = sum_balances(summaries, AccountType.LIABILITY)
    equity_accounts_total = sum_balances(summaries, AccountType.EQUITY)
    net_income = (
        sum_balances(summaries, AccountType.REVENUE)
        - sum_balances(summaries, AccountType.EXPENSE)
    )
    total_equity = equity_accounts_total + net_income
    total_l_and_e = total_liabilities + total_equity

    return BalanceSheetReport(
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        total_equity=total_equity,
        equity_accounts_total=equity_accounts_total,
        net_income=net_income,
        total_liabilities_and_equity=total_l_and_e,
        is_balanced=within_tolerance(total_assets - total_l_and_e),
        asset_lines=_lines_for(summaries, AccountType.ASSET),
        liability_lines=_lines_for(summaries, AccountType.LIABILITY),
        equity_lines=_lines_for(summaries, AccountType.EQUITY),
    )


# =========================================================================
# 3. CASH FLOW (direct method)
# =========================================================================


def cash_account_ids(
    accounts: Iterable[AccountRecord],
    rules: ClassificationRules,
) -> tuple[UUID, ...]:
    """Asset accounts whose name marks them as cash or bank."""
    return tuple(
        a.account_id
        for a in accounts
        if a.account_type == AccountType.ASSET and rules.is_cash_name(a.name)
    )


def classify_cash_counterpart(
    account: AccountRecord,
    rules: ClassificationRules,
) -> CashFlowCategory:
    """
    Activity bucket for the non-cash side of a cash movement.

    revenue/expense -> operating; fixed-asset names -> investing;
    loan/capital names -> financing; anything else -> operating.
    """
    if account.account_type in (AccountType.REVENUE, AccountType.EXPENSE):
        return CashFlowCategory.OPERATING
    if rules.is_investing_name(account.name):
        return CashFlowCategory.INVESTING
    if rules.is_financing_name(account.name):
        return CashFlowCategory.FINANCING
    return CashFlowCategory.OPERATING


def _cash_delta(lines: Iterable[EntryLine], cash_ids: frozenset[UUID]) -> Decimal:
    return sum(
        (line.debit_amount - line.credit_amount
         for line in lines if line.account_id in cash_ids),
        _ZERO,
    )


def build_cash_flow_statement(
    accounts: Sequence[AccountRecord],
    journal_entries: Sequence[JournalEntryRecord],
    rules: ClassificationRules | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    opening_cash: Decimal = _ZERO,
) -> CashFlowStatementReport:
    """
    Classify cash movements into operating, investing and financing.

    Args:
        accounts: Accounts of one organization.
        journal_entries: Entries of the same scope.
        rules: Name classification rules (defaults if None).
        start_date / end_date: Inclusive period; entries dated before
            start_date only contribute to beginning cash.
        opening_cash: Cash balance carried in from before the entries.
    """
    rules = rules or ClassificationRules()
    by_id = {a.account_id: a for a in accounts}
    cash_ids = cash_account_ids(accounts, rules)
    cash_set = frozenset(cash_ids)

    beginning_cash = opening_cash
    if start_date is not None:
        for entry in journal_entries:
            if entry.entry_date < start_date:
                beginning_cash += _cash_delta(entry.lines, cash_set)

    period_entries = entries_in_range(journal_entries, start_date, end_date)

    items: dict[CashFlowCategory, list[CashFlowLineItem]] = {
        category: [] for category in CashFlowCategory
    }
    for entry in period_entries:
        if not any(line.account_id in cash_set for line in entry.lines):
            continue
        delta = _cash_delta(entry.lines, cash_set)
        explained = _ZERO
        for line in entry.lines:
            if line.account_id in cash_set:
                continue
            account = by_id.get(line.account_id)
            if account is None:
                continue
            amount = line.credit_amount - line.debit_amount
            if not amount:
                continue
            explained += amount
            items[classify_cash_counterpart(account, rules)].append(
                CashFlowLineItem(
                    entry_id=entry.entry_id,
                    entry_date=entry.entry_date,
                    description=entry.description,
                    amount=amount,
                    account_id=account.account_id,
                    account_name=account.name,
                )
            )
        residual = delta - explained
        if residual:
            items[CashFlowCategory.OPERATING].append(
                CashFlowLineItem(
                    entry_id=entry.entry_id,
                    entry_date=entry.entry_date,
                    description=entry.description or "Unclassified cash movement",
                    amount=residual,
                )
            )

    sections = {
        category: CashFlowSection(
            category=category,
            lines=tuple(lines),
            total=sum((i.amount for i in lines), _ZERO),
        )
        for category, lines in items.items()
    }
    operating = sections[CashFlowCategory.OPERATING].total
    investing = sections[CashFlowCategory.INVESTING].total
    financing = sections[CashFlowCategory.FINANCING].total
    net_cash_flow = operating + investing + financing

    cash_accounts = [by_id[i] for i in cash_ids]
    net_change = sum(
        (s.final_balance for s in aggregate(cash_accounts, period_entries)),
        _ZERO,
    )

    return CashFlowStatementReport(
        operating_activities=operating,
        investing_activities=investing,
        financing_activities=financing,
        net_cash_flow=net_cash_flow,
        operating=sections[CashFlowCategory.OPERATING],
        investing=sections[CashFlowCategory.INVESTING],
        financing=sections[CashFlowCategory.FINANCING],
        beginning_cash=beginning_cash,
        ending_cash=beginning_cash + net_change,
        net_change_in_cash=net_change,
        reconciles=within_tolerance(net_cash_flow - net_change),
        cash_account_ids=cash_ids,
    )


# =========================================================================
# 4. CLOSING ENTRIES
# =========================================================================


def build_closing_lines(
    summaries: Sequence[LedgerAccountSummary],
    retained_earnings_account_id: UUID,
) -> tuple[EntryLine, ...]:
    """
    Lines that zero every revenue and expense balance into retained earnings.

    The returned set is balanced; it is empty when there is nothing to
    close.
    """
    lines: list[EntryLine] = []
    for s in summaries:
        balance = s.final_balance
        if not balance:
            continue
        if s.account_type == AccountType.REVENUE:
            debit, credit = (balance, None) if balance > 0 else (None, -balance)
        elif s.account_type == AccountType.EXPENSE:
            debit, credit = (None, balance) if balance > 0 else (-balance, None)
        else:
            continue
        lines.append(
            EntryLine(
                account_id=s.account_id,
                debit=debit,
                credit=credit,
                memo=f"Closing {s.account_name}",
            )
        )

    if not lines:
        return ()

    net_income = (
        sum_balances(summaries, AccountType.REVENUE)
        - sum_balances(summaries, AccountType.EXPENSE)
    )
    if net_income:
        lines.append(
            EntryLine(
                account_id=retained_earnings_account_id,
                debit=-net_income if net_income < 0 else None,
                credit=net_income if net_income > 0 else None,
                memo="Net income for the period",
                role="retained_earnings",
            )
        )
    return tuple(lines)


# =========================================================================
# 5. STOCK BALANCES
# =========================================================================


def aggregate_stock_balances(
    accounts: Sequence[AccountRecord],
    journal_entries: Iterable[JournalEntryRecord],
    start_date: date | None = None,
    end_date: date | None = None,
) -> tuple[StockBalance, ...]:
    """
    Quantity and value per product from inventory-linked asset lines.

    A debit adds its quantity and amount; a credit removes them.  Lines on
    non-asset accounts (e.g. a purchase expensed directly) do not move
    stock.  Products appear in first-seen order.
    """
    asset_ids = {
        a.account_id for a in accounts if a.account_type == AccountType.ASSET
    }
    totals: dict[UUID, list[Decimal]] = {}
    for entry in entries_in_range(journal_entries, start_date, end_date):
        for line in entry.lines:
            if (
                line.product_id is None
                or line.quantity is None
                or line.account_id not in asset_ids
            ):
                continue
            qty_value = totals.setdefault(line.product_id, [_ZERO, _ZERO])
            if line.is_debit:
                qty_value[0] += line.quantity
                qty_value[1] += line.debit_amount
            else:
                qty_value[0] -= line.quantity
                qty_value[1] -= line.credit_amount
    return tuple(
        StockBalance(product_id=product_id, quantity=qv[0], value=qv[1])
        for product_id, qv in totals.items()
    )


# =========================================================================
# 6. SERIALIZATION
# =========================================================================


def render_to_dict(obj: object) -> dict | list | str | int | float | bool | None:
    """
    Convert any report dataclass to plain JSON-safe values.

    Decimal and UUID become strings, dates ISO strings, enums their value,
    dataclasses dicts and tuples lists.
    """
    if obj is None:
        return None
    if isinstance(obj, (Decimal, UUID)):
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: render_to_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)
