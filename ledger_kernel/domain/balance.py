"""
Balance Validator -- the double-entry invariant check.

Responsibility:
    Sums the debit and credit sides of a set of entry lines and reports
    whether they agree within BALANCE_TOLERANCE.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - An entry is balanced when |debits - credits| < 0.01.
    - An empty line set is balanced. Callers may check entries that have not
      received lines yet; they get True, not an error.

Failure modes:
    - check_balance / is_balanced never raise: they report.
    - require_balanced raises ImbalanceError for callers that want to
      reject an entry (the posting service, before and after persistence).

Usage:
    lines = engine.generate_lines(transaction, accounts)
    require_balanced(lines, entry_id=transaction.journal_entry_id)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from ledger_kernel.exceptions import ImbalanceError

BALANCE_TOLERANCE = Decimal("0.01")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class BalanceCheck:
    """Outcome of summing one set of entry lines."""

    total_debits: Decimal
    total_credits: Decimal
    line_count: int

    @property
    def difference(self) -> Decimal:
        return self.total_debits - self.total_credits

    @property
    def is_balanced(self) -> bool:
        return within_tolerance(self.difference)


def within_tolerance(difference: Decimal) -> bool:
    """True when an amount difference is below BALANCE_TOLERANCE."""
    return abs(difference) < BALANCE_TOLERANCE


def _side(line: Any, name: str) -> Decimal:
    value = getattr(line, name, None)
    if value is None:
        return _ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


def check_balance(lines: Iterable[Any]) -> BalanceCheck:
    """Sum debits and credits of any objects exposing ``debit``/``credit``."""
    debits = _ZERO
    credits = _ZERO
    count = 0
    for line in lines:
        debits += _side(line, "debit")
        credits += _side(line, "credit")
        count += 1
    return BalanceCheck(total_debits=debits, total_credits=credits, line_count=count)


def is_balanced(lines: Iterable[Any]) -> bool:
    """True if total debits equal total credits within tolerance."""
    return check_balance(lines).is_balanced


def require_balanced(lines: Iterable[Any], entry_id: Any = None) -> BalanceCheck:
    """Return the check for balanced lines; raise ImbalanceError otherwise."""
    check = check_balance(lines)
    if not check.is_balanced:
        raise ImbalanceError(check.total_debits, check.total_credits, entry_id)
    return check
