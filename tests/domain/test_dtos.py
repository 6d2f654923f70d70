"""Tests for the domain DTOs, account roles and amount helpers."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.amounts import non_negative, percentage, round_money, to_decimal
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.dtos import (
    AccountRecord,
    AccountType,
    EntryLine,
    JournalEntryRecord,
    NormalBalance,
    normal_balance_for,
)
from ledger_kernel.domain.roles import AccountRole, ResolvedAccounts
from ledger_kernel.exceptions import UnresolvedAccountError, ValidationError


class TestEntryLine:

    def test_amounts_treat_absent_side_as_zero(self):
        line = EntryLine(account_id=uuid4(), debit=Decimal("12.5"))

        assert line.debit_amount == Decimal("12.5")
        assert line.credit_amount == Decimal("0")
        assert line.is_debit

    def test_numeric_sides_coerced_to_decimal(self):
        line = EntryLine(account_id=uuid4(), credit=3)

        assert line.credit == Decimal("3")
        assert isinstance(line.credit, Decimal)

    def test_negative_side_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            EntryLine(account_id=uuid4(), debit=Decimal("-1"))

        assert exc_info.value.field == "debit"

    def test_both_sides_positive_rejected(self):
        with pytest.raises(ValidationError):
            EntryLine(account_id=uuid4(), debit=Decimal("1"), credit=Decimal("1"))

    def test_zero_debit_with_credit_allowed(self):
        line = EntryLine(account_id=uuid4(), debit=Decimal("0"), credit=Decimal("4"))

        assert not line.is_debit


class TestAccountNature:

    @pytest.mark.parametrize("account_type,expected", [
        (AccountType.ASSET, NormalBalance.DEBIT),
        (AccountType.EXPENSE, NormalBalance.DEBIT),
        (AccountType.LIABILITY, NormalBalance.CREDIT),
        (AccountType.EQUITY, NormalBalance.CREDIT),
        ("revenue", NormalBalance.CREDIT),
    ])
    def test_normal_balance(self, account_type, expected):
        assert normal_balance_for(account_type) == expected

    def test_account_record_coerces_type(self):
        record = AccountRecord(account_id=uuid4(), name="Caixa", account_type="asset")

        assert record.account_type is AccountType.ASSET
        assert record.normal_balance == NormalBalance.DEBIT

    def test_unknown_account_type_rejected(self):
        with pytest.raises(ValueError):
            AccountRecord(account_id=uuid4(), name="X", account_type="contra")


class TestJournalEntryRecord:

    def test_lines_stored_as_tuple(self):
        line = EntryLine(account_id=uuid4(), debit=Decimal("1"))
        entry = JournalEntryRecord(entry_id=uuid4(), entry_date=date(2024, 1, 5), lines=[line])

        assert entry.lines == (line,)


class TestResolvedAccounts:

    def test_string_keys_normalized(self):
        account = uuid4()
        resolved = ResolvedAccounts({"sales_revenue": account})

        assert resolved[AccountRole.SALES_REVENUE] == account
        assert resolved["sales_revenue"] == account
        assert len(resolved) == 1

    def test_none_bindings_dropped(self):
        resolved = ResolvedAccounts({AccountRole.ICMS_PAYABLE: None})

        assert AccountRole.ICMS_PAYABLE not in resolved

    def test_require_lists_every_missing_role(self):
        resolved = ResolvedAccounts({AccountRole.SALES_REVENUE: uuid4()})

        with pytest.raises(UnresolvedAccountError) as exc_info:
            resolved.require([
                AccountRole.SALES_REVENUE,
                AccountRole.ICMS_PAYABLE,
                AccountRole.IPI_PAYABLE,
                AccountRole.ICMS_PAYABLE,
            ])

        assert exc_info.value.missing_roles == ("icms_payable", "ipi_payable")

    def test_with_bindings_returns_new_map(self):
        base = ResolvedAccounts({AccountRole.SALES_REVENUE: uuid4()})
        extended = base.with_bindings({"icms_payable": uuid4()})

        assert AccountRole.ICMS_PAYABLE in extended
        assert AccountRole.ICMS_PAYABLE not in base

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            ResolvedAccounts({"petty_cash": uuid4()})


class TestAmounts:

    def test_to_decimal_from_float_uses_str(self):
        assert to_decimal(0.1, "amount") == Decimal("0.1")

    def test_non_negative(self):
        assert non_negative("0", "amount") == Decimal("0")
        with pytest.raises(ValidationError):
            non_negative("-0.01", "amount")

    def test_percentage_bounds(self):
        assert percentage(100, "rate") == Decimal("100")
        with pytest.raises(ValidationError):
            percentage(101, "rate")

    def test_round_money_half_up(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")
        assert round_money(Decimal("2.344")) == Decimal("2.34")


class TestDeterministicClock:

    def test_advance(self):
        clock = DeterministicClock()
        start = clock.now()

        clock.advance(30)

        assert (clock.now() - start).total_seconds() == 30
        assert clock.today() == date(2024, 1, 1)
