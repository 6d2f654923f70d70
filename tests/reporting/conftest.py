"""
Reporting-specific test fixtures.

Provides:
- A small chart of accounts as AccountRecords (no DB required)
- An in-memory LedgerRepository for ReportingService tests
- ``make_entry`` helper fixture building JournalEntryRecords
"""

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from ledger_kernel.domain.dtos import (
    AccountRecord,
    AccountType,
    EntryLine,
    JournalEntryRecord,
)
from ledger_kernel.exceptions import ScopeRequiredError


class InMemoryRepository:
    """LedgerRepository over plain lists, scoped to one organization/period."""

    def __init__(self, organization_id, period_id, accounts, entries):
        self.organization_id = organization_id
        self.period_id = period_id
        self.accounts = list(accounts)
        self.entries = list(entries)
        self.calls: list[tuple] = []

    def _scope(self, organization_id, period_id):
        if organization_id is None:
            raise ScopeRequiredError("organization_id")
        if period_id is None:
            raise ScopeRequiredError("accounting_period_id")
        return organization_id == self.organization_id and period_id == self.period_id

    def fetch_accounts(self, organization_id, period_id):
        self.calls.append(("accounts", organization_id, period_id))
        return list(self.accounts) if self._scope(organization_id, period_id) else []

    def fetch_journal_entries(self, organization_id, period_id, date_range=None):
        self.calls.append(("entries", organization_id, period_id, date_range))
        if not self._scope(organization_id, period_id):
            return []
        start, end = date_range or (None, None)
        return [
            e for e in self.entries
            if (start is None or e.entry_date >= start)
            and (end is None or e.entry_date <= end)
        ]


@pytest.fixture
def accounts() -> dict[str, AccountRecord]:
    """Minimal chart covering every account type and cash-flow bucket."""

    def _acct(code, name, account_type):
        return AccountRecord(
            account_id=uuid4(), name=name, account_type=account_type, code=code
        )

    return {
        "cash": _acct("1.1.01", "Caixa", AccountType.ASSET),
        "bank": _acct("1.1.02", "Banco do Brasil", AccountType.ASSET),
        "receivables": _acct("1.1.03", "Clientes", AccountType.ASSET),
        "inventory": _acct("1.1.04", "Estoque de Mercadorias", AccountType.ASSET),
        "equipment": _acct("1.2.01", "Máquinas e Equipamentos", AccountType.ASSET),
        "payables": _acct("2.1.01", "Fornecedores", AccountType.LIABILITY),
        "icms_payable": _acct("2.1.02", "ICMS a Recolher", AccountType.LIABILITY),
        "loan": _acct("2.2.01", "Empréstimos Bancários", AccountType.LIABILITY),
        "capital": _acct("3.1.01", "Capital Social", AccountType.EQUITY),
        "retained": _acct("3.2.01", "Lucros Acumulados", AccountType.EQUITY),
        "revenue": _acct("4.1.01", "Receita de Vendas", AccountType.REVENUE),
        "cogs": _acct("5.1.01", "Custo da Mercadoria Vendida", AccountType.EXPENSE),
        "admin": _acct("5.3.01", "Despesas Administrativas", AccountType.EXPENSE),
    }


@pytest.fixture
def make_entry():
    """
    Build a JournalEntryRecord from (account, debit, credit) tuples.

    Usage:
        make_entry(date(2024, 1, 2), (cash, "100", None), (capital, None, "100"))
    """

    def _make(entry_date: date, *lines, description: str = "", **line_kwargs):
        return JournalEntryRecord(
            entry_id=uuid4(),
            entry_date=entry_date,
            description=description,
            lines=tuple(
                EntryLine(
                    account_id=account.account_id,
                    debit=Decimal(debit) if debit is not None else None,
                    credit=Decimal(credit) if credit is not None else None,
                    **line_kwargs,
                )
                for account, debit, credit in lines
            ),
        )

    return _make


@pytest.fixture
def quarter_entries(accounts, make_entry) -> list[JournalEntryRecord]:
    """
    A quarter of activity:

    Jan 02  capital paid in to bank             10000
    Jan 10  merchandise bought on credit          4000
    Feb 05  cash sale                             6000  (ICMS 1080)
    Feb 06  cost of goods sold                    2500
    Feb 20  equipment bought from bank            3000
    Mar 01  bank loan received                    5000
    Mar 15  supplier paid from bank               4000
    Mar 28  admin expenses paid in cash            700
    """
    a = accounts
    return [
        make_entry(date(2024, 1, 2), (a["bank"], "10000", None), (a["capital"], None, "10000"),
                   description="Capital contribution"),
        make_entry(date(2024, 1, 10), (a["inventory"], "4000", None), (a["payables"], None, "4000"),
                   description="Merchandise purchase"),
        make_entry(date(2024, 2, 5),
                   (a["cash"], "6000", None), (a["revenue"], None, "6000"),
                   (a["revenue"], "1080", None), (a["icms_payable"], None, "1080"),
                   description="Cash sale"),
        make_entry(date(2024, 2, 6), (a["cogs"], "2500", None), (a["inventory"], None, "2500"),
                   description="Cost of goods sold"),
        make_entry(date(2024, 2, 20), (a["equipment"], "3000", None), (a["bank"], None, "3000"),
                   description="Equipment purchase"),
        make_entry(date(2024, 3, 1), (a["bank"], "5000", None), (a["loan"], None, "5000"),
                   description="Loan proceeds"),
        make_entry(date(2024, 3, 15), (a["payables"], "4000", None), (a["bank"], None, "4000"),
                   description="Supplier payment"),
        make_entry(date(2024, 3, 28), (a["admin"], "700", None), (a["cash"], None, "700"),
                   description="Admin expenses"),
    ]


@pytest.fixture
def scope() -> tuple[UUID, UUID]:
    return uuid4(), uuid4()


@pytest.fixture
def repository(scope, accounts, quarter_entries) -> InMemoryRepository:
    organization_id, period_id = scope
    return InMemoryRepository(
        organization_id, period_id, accounts.values(), quarter_entries
    )
