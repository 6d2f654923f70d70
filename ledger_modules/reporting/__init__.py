"""
Ledger Reporting Module (``ledger_modules.reporting``).

Responsibility
--------------
Read-only module deriving reports from the journal: per-account ledger
summaries and trial balance, income statement, balance sheet, direct
cash-flow summary, stock balances and year-end closing lines.

Architecture position
---------------------
**Modules layer** -- pure functions (``ledger.py``, ``statements.py``)
plus the thin ``ReportingService`` that loads scoped data.

Invariants enforced
-------------------
* No journal entries are created by this module.
* Every figure is recomputed from entry lines; there are no stored
  balances.
"""

from ledger_modules.reporting.config import ClassificationRules, ReportingConfig
from ledger_modules.reporting.ledger import aggregate, build_trial_balance
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    CashFlowCategory,
    CashFlowLineItem,
    CashFlowSection,
    CashFlowStatementReport,
    IncomeStatementReport,
    LedgerAccountSummary,
    LedgerPosting,
    ReportBundle,
    ReportMetadata,
    ReportType,
    StatementLine,
    StockBalance,
    TrialBalanceReport,
)
from ledger_modules.reporting.service import ReportingService
from ledger_modules.reporting.statements import (
    aggregate_stock_balances,
    build_balance_sheet,
    build_cash_flow_statement,
    build_closing_lines,
    build_income_statement,
    render_to_dict,
)

__all__ = [
    "ReportingService",
    "ClassificationRules",
    "ReportingConfig",
    "aggregate",
    "aggregate_stock_balances",
    "build_balance_sheet",
    "build_cash_flow_statement",
    "build_closing_lines",
    "build_income_statement",
    "build_trial_balance",
    "render_to_dict",
    "BalanceSheetReport",
    "CashFlowCategory",
    "CashFlowLineItem",
    "CashFlowSection",
    "CashFlowStatementReport",
    "IncomeStatementReport",
    "LedgerAccountSummary",
    "LedgerPosting",
    "ReportBundle",
    "ReportMetadata",
    "ReportType",
    "StatementLine",
    "StockBalance",
    "TrialBalanceReport",
]
