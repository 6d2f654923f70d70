"""
Reporting Module Service (``ledger_modules.reporting.service``).

Responsibility
--------------
Loads the accounts and journal entries of one organization/period through
a ``LedgerRepository`` and delegates to the pure functions in
``ledger.py`` and ``statements.py``.  Read-only: nothing is posted.

Architecture position
---------------------
**Modules layer** -- thin glue.  Constructor: ``repository`` + ``clock`` +
``config``; ``from_session`` wires the SQLAlchemy ``LedgerSelector``.

Invariants enforced
-------------------
* Every read is scoped by organization_id and period_id; the repository
  refuses unscoped reads.
* Report metadata carries the generation timestamp from the injected clock.

Failure modes
-------------
* ScopeRequiredError when a scope id is missing.
* ValidationError when start_date is after end_date.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import AccountRecord, EntryLine, JournalEntryRecord
from ledger_kernel.domain.repository import LedgerRepository
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.ledger import aggregate, build_trial_balance
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    CashFlowStatementReport,
    IncomeStatementReport,
    ReportBundle,
    ReportMetadata,
    ReportType,
    StockBalance,
    TrialBalanceReport,
)
from ledger_modules.reporting.statements import (
    aggregate_stock_balances,
    build_balance_sheet,
    build_cash_flow_statement,
    build_closing_lines,
    build_income_statement,
)

if TYPE_CHECKING:
    from ledger_config.schema import LedgerConfig

logger = get_logger("modules.reporting.service")


class ReportingService:
    """
    Ledger report generation service.

    Contract
    --------
    * Every public method takes ``organization_id`` and ``period_id`` plus
      an optional inclusive date range, and returns a typed report DTO.
    * All methods are read-only.

    Guarantees
    ----------
    * No financial logic lives here; the pure functions compute everything.
    * Clock is injectable for deterministic testing.
    """

    def __init__(
        self,
        repository: LedgerRepository,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
    ):
        self._repository = repository
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig.with_defaults()

        logger.info(
            "reporting_service_initialized",
            extra={
                "entity_name": self._config.entity_name,
                "currency": self._config.currency,
            },
        )

    @classmethod
    def from_session(
        cls,
        session: Session,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
        ledger_config: LedgerConfig | None = None,
    ) -> ReportingService:
        """
        Wire the SQLAlchemy selector.

        Without an explicit ``config`` the reporting options come from the
        ``reporting`` block of ``ledger_config``, or of the packaged default
        configuration when none is given.
        """
        if config is None:
            from ledger_config.bridges import build_reporting_config
            from ledger_config.loader import load_default_config

            config = build_reporting_config(ledger_config or load_default_config())
        return cls(LedgerSelector(session), clock=clock, config=config)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _load(
        self,
        organization_id: UUID,
        period_id: UUID,
        start_date: date | None,
        end_date: date | None,
        include_prior: bool = False,
    ) -> tuple[list[AccountRecord], list[JournalEntryRecord]]:
        accounts = self._repository.fetch_accounts(organization_id, period_id)
        date_range = None
        if start_date is not None or end_date is not None:
            date_range = (None if include_prior else start_date, end_date)
        entries = self._repository.fetch_journal_entries(
            organization_id, period_id, date_range
        )
        return accounts, entries

    def _metadata(
        self,
        report_type: ReportType,
        organization_id: UUID,
        period_id: UUID,
        start_date: date | None,
        end_date: date | None,
    ) -> ReportMetadata:
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._config.entity_name,
            currency=self._config.currency,
            organization_id=organization_id,
            period_id=period_id,
            generated_at=self._clock.now().isoformat(),
            period_start=start_date,
            period_end=end_date,
        )

    def _log_generated(self, report_type: ReportType, **fields: object) -> None:
        logger.info("report_generated", extra={"report_type": report_type.value, **fields})

    # =========================================================================
    # Reports
    # =========================================================================

    def trial_balance(
        self,
        organization_id: UUID,
        period_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> TrialBalanceReport:
        with LogContext.bind(organization_id=organization_id, period_id=period_id):
            accounts, entries = self._load(organization_id, period_id, start_date, end_date)
            summaries = aggregate(accounts, entries, start_date, end_date)
            report = build_trial_balance(summaries, self._config.include_zero_balances)
            report = replace(report, metadata=self._metadata(
                ReportType.TRIAL_BALANCE, organization_id, period_id, start_date, end_date,
            ))
            self._log_generated(
                ReportType.TRIAL_BALANCE,
                account_count=len(summaries),
                is_balanced=report.is_balanced,
            )
            if not report.is_balanced:
                logger.warning("trial_balance_out_of_balance", extra={
                    "total_debits": str(report.total_debits),
                    "total_credits": str(report.total_credits),
                })
            return report

    def income_statement(
        self,
        organization_id: UUID,
        period_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> IncomeStatementReport:
        with LogContext.bind(organization_id=organization_id, period_id=period_id):
            accounts, entries = self._load(organization_id, period_id, start_date, end_date)
            report = build_income_statement(aggregate(accounts, entries, start_date, end_date))
            self._log_generated(ReportType.INCOME_STATEMENT, net_income=str(report.net_income))
            return replace(report, metadata=self._metadata(
                ReportType.INCOME_STATEMENT, organization_id, period_id, start_date, end_date,
            ))

    def balance_sheet(
        self,
        organization_id: UUID,
        period_id: UUID,
        as_of_date: date | None = None,
    ) -> BalanceSheetReport:
        """Balance sheet over every entry of the period up to ``as_of_date``."""
        with LogContext.bind(organization_id=organization_id, period_id=period_id):
            accounts, entries = self._load(organization_id, period_id, None, as_of_date)
            report = build_balance_sheet(aggregate(accounts, entries, None, as_of_date))
            self._log_generated(ReportType.BALANCE_SHEET, is_balanced=report.is_balanced)
            if not report.is_balanced:
                logger.warning("balance_sheet_out_of_balance", extra={
                    "total_assets": str(report.total_assets),
                    "total_liabilities_and_equity": str(report.total_liabilities_and_equity),
                })
            return replace(report, metadata=self._metadata(
                ReportType.BALANCE_SHEET, organization_id, period_id, None, as_of_date,
            ))

    def cash_flow(
        self,
        organization_id: UUID,
        period_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        opening_cash: Decimal = Decimal("0"),
    ) -> CashFlowStatementReport:
        with LogContext.bind(organization_id=organization_id, period_id=period_id):
            accounts, entries = self._load(
                organization_id, period_id, start_date, end_date, include_prior=True
            )
            report = build_cash_flow_statement(
                accounts,
                entries,
                rules=self._config.classification,
                start_date=start_date,
                end_date=end_date,
                opening_cash=opening_cash,
            )
            self._log_generated(
                ReportType.CASH_FLOW,
                net_cash_flow=str(report.net_cash_flow),
                reconciles=report.reconciles,
            )
            return replace(report, metadata=self._metadata(
                ReportType.CASH_FLOW, organization_id, period_id, start_date, end_date,
            ))

    def stock_balances(
        self,
        organization_id: UUID,
        period_id: UUID,
        as_of_date: date | None = None,
    ) -> tuple[StockBalance, ...]:
        with LogContext.bind(organization_id=organization_id, period_id=period_id):
            accounts, entries = self._load(organization_id, period_id, None, as_of_date)
            balances = aggregate_stock_balances(accounts, entries, None, as_of_date)
            self._log_generated(ReportType.STOCK_BALANCES, product_count=len(balances))
            return balances

    def closing_lines(
        self,
        organization_id: UUID,
        period_id: UUID,
        retained_earnings_account_id: UUID,
        end_date: date | None = None,
    ) -> tuple[EntryLine, ...]:
        """Year-end closing lines; posting them is the caller's decision."""
        with LogContext.bind(organization_id=organization_id, period_id=period_id):
            accounts, entries = self._load(organization_id, period_id, None, end_date)
            summaries = aggregate(accounts, entries, None, end_date)
            lines = build_closing_lines(summaries, retained_earnings_account_id)
            logger.info("closing_lines_built", extra={"line_count": len(lines)})
            return lines

    def generate_reports(
        self,
        organization_id: UUID,
        period_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> ReportBundle:
        """All reports from a single read of the period's data."""
        with LogContext.bind(organization_id=organization_id, period_id=period_id):
            accounts, entries = self._load(
                organization_id, period_id, start_date, end_date, include_prior=True
            )
            summaries = aggregate(accounts, entries, start_date, end_date)

            trial_balance = replace(
                build_trial_balance(summaries, self._config.include_zero_balances),
                metadata=self._metadata(
                    ReportType.TRIAL_BALANCE, organization_id, period_id, start_date, end_date,
                ),
            )
            income_statement = replace(
                build_income_statement(summaries),
                metadata=self._metadata(
                    ReportType.INCOME_STATEMENT, organization_id, period_id, start_date, end_date,
                ),
            )
            balance_sheet = replace(
                build_balance_sheet(aggregate(accounts, entries, None, end_date)),
                metadata=self._metadata(
                    ReportType.BALANCE_SHEET, organization_id, period_id, None, end_date,
                ),
            )
            cash_flow = replace(
                build_cash_flow_statement(
                    accounts,
                    entries,
                    rules=self._config.classification,
                    start_date=start_date,
                    end_date=end_date,
                ),
                metadata=self._metadata(
                    ReportType.CASH_FLOW, organization_id, period_id, start_date, end_date,
                ),
            )
            stock = aggregate_stock_balances(accounts, entries, None, end_date)

            logger.info("report_bundle_generated", extra={
                "account_count": len(accounts),
                "entry_count": len(entries),
                "trial_balance_balanced": trial_balance.is_balanced,
                "balance_sheet_balanced": balance_sheet.is_balanced,
            })
            return ReportBundle(
                trial_balance=trial_balance,
                income_statement=income_statement,
                balance_sheet=balance_sheet,
                cash_flow=cash_flow,
                stock_balances=stock,
            )
