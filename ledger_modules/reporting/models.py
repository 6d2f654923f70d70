"""
Financial Reporting Domain Models (``ledger_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects for the report outputs: per-account ledger
summaries (trial balance rows), income statement, balance sheet, direct
cash-flow summary, stock balances and the combined report bundle.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.domain.dtos import AccountType


class ReportType(str, Enum):
    """Types of ledger reports."""

    TRIAL_BALANCE = "trial_balance"
    INCOME_STATEMENT = "income_statement"
    BALANCE_SHEET = "balance_sheet"
    CASH_FLOW = "cash_flow"
    STOCK_BALANCES = "stock_balances"


class CashFlowCategory(str, Enum):
    OPERATING = "operating"
    INVESTING = "investing"
    FINANCING = "financing"


@dataclass(frozen=True)
class ReportMetadata:
    """Common header for all reports."""

    report_type: ReportType
    entity_name: str
    currency: str
    organization_id: UUID
    period_id: UUID
    generated_at: str  # ISO timestamp from the injected clock
    period_start: date | None = None
    period_end: date | None = None


# =========================================================================
# Ledger / trial balance
# =========================================================================


@dataclass(frozen=True)
class LedgerPosting:
    """One side of a line as it appears in an account's T-account."""

    entry_id: UUID
    entry_date: date
    description: str
    amount: Decimal
    memo: str = ""


@dataclass(frozen=True)
class LedgerAccountSummary:
    """Per-account totals for a period; one trial balance row."""

    account_id: UUID
    account_name: str
    account_type: AccountType
    total_debits: Decimal
    total_credits: Decimal
    final_balance: Decimal  # Signed by account nature
    account_code: str = ""
    debit_entries: tuple[LedgerPosting, ...] = ()
    credit_entries: tuple[LedgerPosting, ...] = ()

    @property
    def has_activity(self) -> bool:
        return bool(self.debit_entries or self.credit_entries)


@dataclass(frozen=True)
class TrialBalanceReport:
    lines: tuple[LedgerAccountSummary, ...]
    total_debits: Decimal
    total_credits: Decimal
    is_balanced: bool
    metadata: ReportMetadata | None = None


# =========================================================================
# Income statement / balance sheet
# =========================================================================


@dataclass(frozen=True)
class StatementLine:
    """An account and its signed balance within a statement section."""

    account_id: UUID
    account_name: str
    amount: Decimal
    account_code: str = ""


@dataclass(frozen=True)
class IncomeStatementReport:
    """Single-step result: revenue - expenses = net income."""

    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal
    revenue_lines: tuple[StatementLine, ...] = ()
    expense_lines: tuple[StatementLine, ...] = ()
    metadata: ReportMetadata | None = None


@dataclass(frozen=True)
class BalanceSheetReport:
    """
    Assets = Liabilities + Equity.

    ``total_equity`` already includes the period ``net_income`` (shown
    separately for presentation); ``equity_accounts_total`` is the sum of
    the equity account balances alone.
    """

    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    equity_accounts_total: Decimal
    net_income: Decimal
    total_liabilities_and_equity: Decimal
    is_balanced: bool
    asset_lines: tuple[StatementLine, ...] = ()
    liability_lines: tuple[StatementLine, ...] = ()
    equity_lines: tuple[StatementLine, ...] = ()
    metadata: ReportMetadata | None = None


# =========================================================================
# Cash flow
# =========================================================================


@dataclass(frozen=True)
class CashFlowLineItem:
    """Cash effect attributed to one counterpart line of an entry."""

    entry_id: UUID
    entry_date: date
    description: str
    amount: Decimal
    account_id: UUID | None = None  # None for the unclassified residual
    account_name: str = ""


@dataclass(frozen=True)
class CashFlowSection:
    category: CashFlowCategory
    lines: tuple[CashFlowLineItem, ...]
    total: Decimal


@dataclass(frozen=True)
class CashFlowStatementReport:
    """
    Direct-method cash-flow summary.

    ``net_cash_flow`` is the sum of the three activity totals and equals
    the net change of the cash-like accounts over the period
    (``reconciles``).
    """

    operating_activities: Decimal
    investing_activities: Decimal
    financing_activities: Decimal
    net_cash_flow: Decimal
    operating: CashFlowSection
    investing: CashFlowSection
    financing: CashFlowSection
    beginning_cash: Decimal
    ending_cash: Decimal
    net_change_in_cash: Decimal
    reconciles: bool
    cash_account_ids: tuple[UUID, ...] = ()
    metadata: ReportMetadata | None = None


# =========================================================================
# Inventory and bundle
# =========================================================================


@dataclass(frozen=True)
class StockBalance:
    """Quantity and carrying value on hand for one product."""

    product_id: UUID
    quantity: Decimal
    value: Decimal


@dataclass(frozen=True)
class ReportBundle:
    """Every report for one organization/period, computed from one read."""

    trial_balance: TrialBalanceReport
    income_statement: IncomeStatementReport
    balance_sheet: BalanceSheetReport
    cash_flow: CashFlowStatementReport
    stock_balances: tuple[StockBalance, ...]
