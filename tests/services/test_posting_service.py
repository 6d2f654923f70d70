"""
Tests for PostingService against an in-memory SQLite database.

Covers:
- Role resolution from the packaged configuration and the org's chart
- Atomic persistence of every generated line
- At-most-once posting per transaction reference
- Scope checks and accounts from another organization
- Reports read back through LedgerSelector
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from ledger_config.loader import load_default_config, parse_config
from ledger_engines.posting import PostingEngine, TransactionInput
from ledger_engines.tax import TaxRates
from ledger_kernel.domain.dtos import EntryLine
from ledger_kernel.domain.roles import ResolvedAccounts
from ledger_kernel.exceptions import (
    DuplicatePostingError,
    ImbalanceError,
    ScopeRequiredError,
    UnresolvedAccountError,
    ValidationError,
)
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_modules.reporting.service import ReportingService
from ledger_services.posting_service import PostingService


def _line_count(session) -> int:
    return session.scalar(select(func.count()).select_from(JournalLine))


class TestPostSale:

    @pytest.fixture(autouse=True)
    def _setup(self, session, chart, organization_id, period_id, deterministic_clock):
        self.session = session
        self.chart = chart
        self.org = organization_id
        self.period = period_id
        self.service = PostingService(
            session, config=load_default_config(), clock=deterministic_clock
        )

    def _sale(self, **kwargs):
        defaults = dict(
            journal_entry_id=uuid4(),
            main_account_id=self.chart["Clientes"].id,
            operation_kind="sale",
            total_gross=Decimal("1000"),
            rates=TaxRates(icms=Decimal("18")),
        )
        defaults.update(kwargs)
        return TransactionInput(**defaults)

    def test_sale_persisted_with_all_lines(self):
        tx = self._sale(transaction_reference="NF-0001")

        result = self.service.post(
            tx, self.org, self.period, entry_date=date(2024, 3, 5), description="NF 0001"
        )

        entry = self.session.get(JournalEntry, tx.journal_entry_id)
        assert entry is not None
        assert entry.entry_date == date(2024, 3, 5)
        assert entry.description == "NF 0001"
        assert entry.transaction_reference == "NF-0001"
        assert [line.line_seq for line in entry.lines] == [1, 2, 3, 4]
        assert entry.is_balanced
        assert result.balance.total_debits == Decimal("1180")
        assert result.taxes.icms == Decimal("180.00")

    def test_line_detail_persisted(self):
        tx = self._sale()

        self.service.post(tx, self.org, self.period)

        entry = self.session.get(JournalEntry, tx.journal_entry_id)
        main = entry.lines[0]
        assert main.account_id == self.chart["Clientes"].id
        assert main.icms_value == Decimal("180")
        assert main.icms_rate == Decimal("18")
        assert entry.lines[3].role == "icms_payable"

    def test_entry_date_defaults_to_clock(self):
        tx = self._sale()

        self.service.post(tx, self.org, self.period)

        assert self.session.get(JournalEntry, tx.journal_entry_id).entry_date == date(2024, 3, 31)

    def test_reports_read_back_through_selector(self):
        self.service.post(self._sale(), self.org, self.period, entry_date=date(2024, 3, 5))

        reporting = ReportingService.from_session(self.session)
        income = reporting.income_statement(self.org, self.period)
        balance = reporting.balance_sheet(self.org, self.period)

        assert income.total_revenue == Decimal("820")
        assert balance.total_assets == Decimal("1000")
        assert balance.total_liabilities == Decimal("180")
        assert balance.is_balanced

    def test_explicit_role_map_bypasses_configuration(self):
        revenue = self.chart["Receita de Vendas"].id
        tx = self._sale(rates=TaxRates())

        result = self.service.post(
            tx, self.org, self.period,
            resolved_accounts=ResolvedAccounts({"sales_revenue": revenue}),
        )

        assert result.lines[1].account_id == revenue


class TestIdempotency:

    @pytest.fixture(autouse=True)
    def _setup(self, session, chart, organization_id, period_id):
        self.session = session
        self.chart = chart
        self.org = organization_id
        self.period = period_id
        self.service = PostingService(session)

    def _purchase(self, reference):
        return TransactionInput(
            journal_entry_id=uuid4(),
            main_account_id=self.chart["Fornecedores"].id,
            operation_kind="purchase",
            total_gross=Decimal("500"),
            rates=TaxRates(icms=Decimal("18")),
            transaction_reference=reference,
        )

    def test_purchase_posted(self):
        result = self.service.post(self._purchase("NF-E-77"), self.org, self.period)

        assert [line.debit for line in result.lines[:2]] == [Decimal("410.00"), Decimal("90.00")]
        assert result.lines[2].credit == Decimal("500")
        assert _line_count(self.session) == 3

    def test_same_reference_rejected(self):
        self.service.post(self._purchase("NF-E-77"), self.org, self.period)

        with pytest.raises(DuplicatePostingError) as exc_info:
            self.service.post(self._purchase("NF-E-77"), self.org, self.period)

        assert exc_info.value.transaction_reference == "NF-E-77"
        assert _line_count(self.session) == 3

    def test_same_entry_twice_rejected(self):
        tx = self._purchase(None)
        self.service.post(tx, self.org, self.period)

        with pytest.raises(DuplicatePostingError):
            self.service.post(tx, self.org, self.period)

        assert _line_count(self.session) == 3

    def test_failure_logged_and_reraised(self, captured_logs):
        self.service.post(self._purchase("NF-E-78"), self.org, self.period)

        with pytest.raises(DuplicatePostingError):
            self.service.post(self._purchase("NF-E-78"), self.org, self.period)

        failed = next(r for r in captured_logs() if r["message"] == "posting_failed")
        assert failed["exc_code"] == "DUPLICATE_POSTING"
        assert failed["correlation_id"] == "NF-E-78"
        assert failed["organization_id"] == str(self.org)


class TestPostingFailures:

    @pytest.fixture(autouse=True)
    def _setup(self, session, chart, organization_id, period_id):
        self.session = session
        self.chart = chart
        self.org = organization_id
        self.period = period_id
        self.service = PostingService(session)

    def test_scope_required(self):
        tx = TransactionInput(
            journal_entry_id=uuid4(),
            main_account_id=self.chart["Caixa"].id,
            operation_kind="sale",
        )

        with pytest.raises(ScopeRequiredError):
            self.service.post(tx, None, self.period)
        with pytest.raises(ScopeRequiredError) as exc_info:
            self.service.post(tx, self.org, None)

        assert exc_info.value.missing == "accounting_period_id"

    def test_missing_roles_leave_nothing_behind(self):
        self.session.delete(self.chart["ICMS a Recolher"])
        self.session.flush()
        tx = TransactionInput(
            journal_entry_id=uuid4(),
            main_account_id=self.chart["Caixa"].id,
            operation_kind="sale",
            total_gross=Decimal("100"),
            rates=TaxRates(icms=Decimal("18")),
        )

        with pytest.raises(UnresolvedAccountError) as exc_info:
            self.service.post(tx, self.org, self.period)

        assert exc_info.value.missing_roles == ("icms_payable",)
        assert self.session.get(JournalEntry, tx.journal_entry_id) is None

    def test_main_account_from_other_organization_rejected(self):
        foreign = Account(
            organization_id=uuid4(), code="1.1.01", name="Caixa", account_type="asset"
        )
        self.session.add(foreign)
        self.session.flush()
        tx = TransactionInput(
            journal_entry_id=uuid4(),
            main_account_id=foreign.id,
            operation_kind="sale",
            total_gross=Decimal("100"),
        )

        with pytest.raises(UnresolvedAccountError) as exc_info:
            self.service.post(tx, self.org, self.period)

        assert exc_info.value.missing_roles == (f"account:{foreign.id}",)

    def test_single_line_fallback_is_unbalanced(self):
        tx = TransactionInput(
            journal_entry_id=uuid4(),
            main_account_id=self.chart["Caixa"].id,
            operation_kind="adjustment",
            debit=Decimal("10"),
        )

        with pytest.raises(ImbalanceError):
            self.service.post(tx, self.org, self.period)

        assert _line_count(self.session) == 0


class TestPostLines:

    @pytest.fixture(autouse=True)
    def _setup(self, session, chart, organization_id, period_id):
        self.session = session
        self.chart = chart
        self.org = organization_id
        self.period = period_id
        self.service = PostingService(session)

    def test_manual_entry(self):
        entry_id = uuid4()
        lines = [
            EntryLine(account_id=self.chart["Banco Itaú"].id, debit=Decimal("5000")),
            EntryLine(account_id=self.chart["Capital Social"].id, credit=Decimal("5000")),
        ]

        check = self.service.post_lines(
            entry_id, lines, self.org, self.period,
            entry_date=date(2024, 1, 2), description="Capital contribution",
            transaction_reference="CAP-1",
        )

        assert check.line_count == 2
        assert self.service.verify_entry(entry_id, self.org, self.period).is_balanced

    def test_attach_to_existing_empty_entry(self):
        entry = JournalEntry(
            organization_id=self.org,
            accounting_period_id=self.period,
            entry_date=date(2024, 1, 2),
            description="Draft",
        )
        self.session.add(entry)
        self.session.flush()
        lines = [
            EntryLine(account_id=self.chart["Caixa"].id, debit=Decimal("20")),
            EntryLine(account_id=self.chart["Capital Social"].id, credit=Decimal("20")),
        ]

        self.service.post_lines(entry.id, lines, self.org, self.period)

        assert len(entry.lines) == 2
        assert entry.description == "Draft"

    def test_existing_entry_of_other_period_rejected(self):
        entry = JournalEntry(
            organization_id=self.org,
            accounting_period_id=uuid4(),
            entry_date=date(2024, 1, 2),
        )
        self.session.add(entry)
        self.session.flush()
        lines = [
            EntryLine(account_id=self.chart["Caixa"].id, debit=Decimal("20")),
            EntryLine(account_id=self.chart["Capital Social"].id, credit=Decimal("20")),
        ]

        with pytest.raises(ValidationError):
            self.service.post_lines(entry.id, lines, self.org, self.period)

    def test_unbalanced_lines_rejected(self):
        lines = [
            EntryLine(account_id=self.chart["Caixa"].id, debit=Decimal("20")),
            EntryLine(account_id=self.chart["Capital Social"].id, credit=Decimal("19")),
        ]

        with pytest.raises(ImbalanceError):
            self.service.post_lines(uuid4(), lines, self.org, self.period)

    def test_closing_lines_posted(self, deterministic_clock):
        sale = TransactionInput(
            journal_entry_id=uuid4(),
            main_account_id=self.chart["Caixa"].id,
            operation_kind="sale",
            total_gross=Decimal("1000"),
            rates=TaxRates(icms=Decimal("18")),
        )
        self.service.post(sale, self.org, self.period, entry_date=date(2024, 3, 5))
        reporting = ReportingService.from_session(self.session, clock=deterministic_clock)
        retained = self.chart["Lucros Acumulados"].id

        closing = reporting.closing_lines(self.org, self.period, retained)
        self.service.post_lines(
            uuid4(), closing, self.org, self.period,
            entry_date=date(2024, 3, 31), transaction_reference="CLOSE-2024",
        )

        income = reporting.income_statement(self.org, self.period)
        balance = reporting.balance_sheet(self.org, self.period)
        assert income.net_income == Decimal("0")
        assert balance.equity_accounts_total == Decimal("820")
        assert balance.is_balanced

    def test_verify_entry_requires_scope(self):
        with pytest.raises(ScopeRequiredError):
            self.service.verify_entry(uuid4(), None, self.period)
        with pytest.raises(ScopeRequiredError):
            self.service.verify_entry(uuid4(), self.org, None)

    def test_verify_entry_ignores_other_scopes(self):
        entry_id = uuid4()
        lines = [
            EntryLine(account_id=self.chart["Banco Itaú"].id, debit=Decimal("75")),
            EntryLine(account_id=self.chart["Caixa"].id, credit=Decimal("75")),
        ]
        self.service.post_lines(entry_id, lines, self.org, self.period)

        own = self.service.verify_entry(entry_id, self.org, self.period)
        other_org = self.service.verify_entry(entry_id, uuid4(), self.period)
        other_period = self.service.verify_entry(entry_id, self.org, uuid4())

        assert own.line_count == 2
        assert other_org.line_count == 0
        assert other_period.line_count == 0


class TestConfiguredDefaultRates:

    @pytest.fixture(autouse=True)
    def _setup(self, session, chart, organization_id, period_id):
        self.session = session
        self.chart = chart
        self.org = organization_id
        self.period = period_id
        self.config = replace(
            load_default_config(),
            default_rates=TaxRates(icms=Decimal("18"), pis=Decimal("1.65")),
        )
        self.service = PostingService(session, config=self.config)

    def _sale(self, rates):
        return TransactionInput(
            journal_entry_id=uuid4(),
            main_account_id=self.chart["Clientes"].id,
            operation_kind="sale",
            total_gross=Decimal("1000"),
            rates=rates,
        )

    def test_omitted_rates_taken_from_configuration(self):
        result = self.service.post(self._sale({}), self.org, self.period)

        assert result.taxes.icms == Decimal("180.00")
        assert result.taxes.pis == Decimal("16.50")
        assert len(result.lines) == 6
        assert result.balance.is_balanced

    def test_supplied_rate_overrides_default(self):
        result = self.service.post(self._sale({"icms": 12}), self.org, self.period)

        assert result.taxes.icms == Decimal("120.00")
        assert result.taxes.pis == Decimal("16.50")

    def test_explicit_tax_rates_used_as_given(self):
        result = self.service.post(self._sale(TaxRates()), self.org, self.period)

        assert result.taxes.icms == Decimal("0")
        assert len(result.lines) == 2

    def test_rates_omitted_entirely(self):
        result = self.service.post(self._sale(None), self.org, self.period)

        assert result.taxes.icms == Decimal("180.00")

    def test_transaction_planned_once(self, monkeypatch):
        engine = PostingEngine()
        calls = []
        original = engine.plan

        def counting_plan(tx):
            calls.append(tx.journal_entry_id)
            return original(tx)

        monkeypatch.setattr(engine, "plan", counting_plan)
        service = PostingService(self.session, engine=engine, config=self.config)

        service.post(self._sale({}), self.org, self.period)

        assert len(calls) == 1


class TestReportingFromConfiguration:

    @pytest.fixture(autouse=True)
    def _setup(self, session, chart, organization_id, period_id):
        self.session = session
        self.chart = chart
        self.org = organization_id
        self.period = period_id
        PostingService(session).post_lines(
            uuid4(),
            [
                EntryLine(account_id=self.chart["Banco Itaú"].id, debit=Decimal("300")),
                EntryLine(account_id=self.chart["Caixa"].id, credit=Decimal("300")),
            ],
            organization_id,
            period_id,
            entry_date=date(2024, 2, 1),
        )

    def test_default_reporting_block_applied(self):
        reporting = ReportingService.from_session(self.session)

        report = reporting.trial_balance(self.org, self.period)

        assert report.metadata.entity_name == "Company"
        assert report.metadata.currency == "BRL"

    def test_reporting_block_flows_into_reports(self):
        config = parse_config({
            "reporting": {
                "entity_name": "Filial SP",
                "classification": {"cash_keywords": ["itau"]},
            },
        })
        reporting = ReportingService.from_session(self.session, ledger_config=config)

        report = reporting.cash_flow(self.org, self.period)

        assert report.metadata.entity_name == "Filial SP"
        assert report.cash_account_ids == (self.chart["Banco Itaú"].id,)
        assert report.operating_activities == Decimal("300")
        assert report.net_cash_flow == Decimal("300")
