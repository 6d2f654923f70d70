"""
Pytest fixtures for the ledger test suite.

Provides:
- Structured logging configured once per session, context cleared per test
- In-memory SQLite sessions with the ledger tables created
- A Brazilian chart of accounts matching the packaged role bindings
- Deterministic clock

Environment Variables:
- LEDGER_DATABASE_URL: database for the storage tests.  If not set, an
  in-memory SQLite database is used.
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from ledger_config.bridges import bind_roles
from ledger_config.loader import load_default_config
from ledger_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.dtos import AccountRecord, AccountType
from ledger_kernel.domain.roles import ResolvedAccounts
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.models.account import Account

# (code, name, type) -- names match ledger_config/defaults/chart.yaml
CHART_OF_ACCOUNTS: tuple[tuple[str, str, AccountType], ...] = (
    ("1.1.01", "Caixa", AccountType.ASSET),
    ("1.1.02", "Banco Itaú", AccountType.ASSET),
    ("1.1.03", "Clientes", AccountType.ASSET),
    ("1.1.04", "Estoque de Mercadorias", AccountType.ASSET),
    ("1.1.05", "Estoque de Produtos Acabados", AccountType.ASSET),
    ("1.1.06", "ICMS a Recuperar", AccountType.ASSET),
    ("1.1.07", "IPI a Recuperar", AccountType.ASSET),
    ("1.1.08", "PIS a Recuperar", AccountType.ASSET),
    ("1.1.09", "COFINS a Recuperar", AccountType.ASSET),
    ("1.2.01", "Máquinas e Equipamentos", AccountType.ASSET),
    ("2.1.01", "Fornecedores", AccountType.LIABILITY),
    ("2.1.02", "ICMS a Recolher", AccountType.LIABILITY),
    ("2.1.03", "ICMS-ST a Recolher", AccountType.LIABILITY),
    ("2.1.04", "IPI a Recolher", AccountType.LIABILITY),
    ("2.1.05", "PIS a Recolher", AccountType.LIABILITY),
    ("2.1.06", "COFINS a Recolher", AccountType.LIABILITY),
    ("2.1.07", "IRRF a Recolher", AccountType.LIABILITY),
    ("2.1.08", "CSLL a Recolher", AccountType.LIABILITY),
    ("2.1.09", "INSS a Recolher", AccountType.LIABILITY),
    ("2.2.01", "Empréstimos Bancários", AccountType.LIABILITY),
    ("3.1.01", "Capital Social", AccountType.EQUITY),
    ("3.2.01", "Lucros Acumulados", AccountType.EQUITY),
    ("4.1.01", "Receita de Vendas", AccountType.REVENUE),
    ("5.1.01", "Custo da Mercadoria Vendida", AccountType.EXPENSE),
    ("5.2.01", "PIS sobre Faturamento", AccountType.EXPENSE),
    ("5.2.02", "COFINS sobre Faturamento", AccountType.EXPENSE),
    ("5.2.03", "IRRF sobre Faturamento", AccountType.EXPENSE),
    ("5.2.04", "CSLL sobre Faturamento", AccountType.EXPENSE),
    ("5.2.05", "INSS sobre Faturamento", AccountType.EXPENSE),
    ("5.3.01", "Despesas Administrativas", AccountType.EXPENSE),
)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Enable structured JSON logging for the entire test session."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext before and after each test to prevent leakage."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture structured log output as parsed JSON dicts.

    Usage:
        def test_something(captured_logs):
            do_work()
            records = captured_logs()
            assert any(r["message"] == "posting_completed" for r in records)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """A session on a fresh database; tables are dropped afterwards."""
    init_engine_from_url()
    create_tables()
    db = get_session()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
        drop_tables()
        reset_engine()


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 3, 31, 18, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def organization_id() -> UUID:
    return uuid4()


@pytest.fixture
def period_id() -> UUID:
    return uuid4()


@pytest.fixture
def chart(session, organization_id) -> dict[str, Account]:
    """The test chart of accounts persisted for ``organization_id``, by name."""
    accounts: dict[str, Account] = {}
    for code, name, account_type in CHART_OF_ACCOUNTS:
        account = Account(
            organization_id=organization_id,
            code=code,
            name=name,
            account_type=account_type.value,
        )
        session.add(account)
        accounts[name] = account
    session.flush()
    return accounts


# =============================================================================
# Pure fixtures (no DB required)
# =============================================================================


@pytest.fixture
def account_records() -> dict[str, AccountRecord]:
    """The test chart as AccountRecords with fresh ids, by name."""
    return {
        name: AccountRecord(
            account_id=uuid4(),
            name=name,
            account_type=account_type,
            code=code,
        )
        for code, name, account_type in CHART_OF_ACCOUNTS
    }


@pytest.fixture
def resolved_accounts(account_records) -> ResolvedAccounts:
    """Every role bound through the packaged default configuration."""
    return bind_roles(load_default_config(), account_records.values())
