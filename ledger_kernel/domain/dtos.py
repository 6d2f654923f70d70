"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable records that flow between the posting engine,
    the storage adapter and the statement calculators: AccountRecord,
    EntryLine and JournalEntryRecord, plus the account-nature enums.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Free of ORM dependencies. ``from_model()`` converters exist for the
    selector boundary only.

Invariants enforced:
    - EntryLine sides are non-negative and never both positive.
    - Account nature is derived from account type (asset and expense are
      debit-normal, the rest credit-normal) and is never stored separately.

Failure modes:
    - ValidationError on an EntryLine with a negative side or two positive
      sides.

Data flow:
    TransactionInput -> PostingEngine -> EntryLine[] -> storage
    storage -> AccountRecord[] + JournalEntryRecord[] -> aggregator
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from ledger_kernel.exceptions import ValidationError

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account as AccountModel
    from ledger_kernel.models.journal import JournalEntry as JournalEntryModel
    from ledger_kernel.models.journal import JournalLine as JournalLineModel


ZERO = Decimal("0")


class AccountType(str, Enum):
    """Account classification by accounting nature."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class NormalBalance(str, Enum):
    """Side on which an account's balance increases."""

    DEBIT = "debit"
    CREDIT = "credit"


DEBIT_NATURE_TYPES: frozenset[AccountType] = frozenset(
    {AccountType.ASSET, AccountType.EXPENSE}
)


def normal_balance_for(account_type: AccountType | str) -> NormalBalance:
    """Return the normal balance side for an account type."""
    if AccountType(account_type) in DEBIT_NATURE_TYPES:
        return NormalBalance.DEBIT
    return NormalBalance.CREDIT


@dataclass(frozen=True)
class AccountRecord:
    """Flat account record as the core needs it: id, name and type."""

    account_id: UUID
    name: str
    account_type: AccountType
    code: str = ""
    parent_id: UUID | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.account_type, AccountType):
            object.__setattr__(self, "account_type", AccountType(self.account_type))

    @property
    def normal_balance(self) -> NormalBalance:
        return normal_balance_for(self.account_type)

    @classmethod
    def from_model(cls, model: AccountModel) -> AccountRecord:
        return cls(
            account_id=model.id,
            name=model.name,
            account_type=AccountType(model.account_type),
            code=model.code or "",
            parent_id=model.parent_id,
        )


def _optional_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


@dataclass(frozen=True)
class EntryLine:
    """
    One debit or credit against a single account.

    Contract:
        ``debit`` and ``credit`` are each absent (None), zero or positive;
        at most one of them is positive. Inventory-linked lines carry
        ``product_id``/``quantity``/``unit_cost``. The main line of a
        taxed transaction carries the tax amounts and the rates that
        produced them.

    Guarantees:
        - ``debit_amount`` / ``credit_amount`` treat an absent side as zero.
    """

    account_id: UUID
    debit: Decimal | None = None
    credit: Decimal | None = None
    memo: str = ""
    role: str | None = None

    # Inventory link
    product_id: UUID | None = None
    quantity: Decimal | None = None
    unit_cost: Decimal | None = None

    # Tax detail
    total_gross: Decimal | None = None
    total_net: Decimal | None = None
    icms_value: Decimal | None = None
    ipi_value: Decimal | None = None
    pis_value: Decimal | None = None
    cofins_value: Decimal | None = None
    icms_st_value: Decimal | None = None
    icms_rate: Decimal | None = None
    ipi_rate: Decimal | None = None
    pis_rate: Decimal | None = None
    cofins_rate: Decimal | None = None
    mva_rate: Decimal | None = None

    def __post_init__(self) -> None:
        for side in ("debit", "credit"):
            value = _optional_decimal(getattr(self, side))
            object.__setattr__(self, side, value)
            if value is not None and value < ZERO:
                raise ValidationError(side, value, "must not be negative")
        if self.debit_amount > ZERO and self.credit_amount > ZERO:
            raise ValidationError(
                "debit/credit",
                (self.debit, self.credit),
                "a line cannot be both debited and credited",
            )

    @property
    def debit_amount(self) -> Decimal:
        return self.debit if self.debit is not None else ZERO

    @property
    def credit_amount(self) -> Decimal:
        return self.credit if self.credit is not None else ZERO

    @property
    def is_debit(self) -> bool:
        return self.debit_amount > ZERO

    @classmethod
    def from_model(cls, model: JournalLineModel) -> EntryLine:
        return cls(
            account_id=model.account_id,
            debit=model.debit,
            credit=model.credit,
            memo=model.memo or "",
            role=model.role,
            product_id=model.product_id,
            quantity=model.quantity,
            unit_cost=model.unit_cost,
            total_gross=model.total_gross,
            total_net=model.total_net,
            icms_value=model.icms_value,
            ipi_value=model.ipi_value,
            pis_value=model.pis_value,
            cofins_value=model.cofins_value,
            icms_st_value=model.icms_st_value,
            icms_rate=model.icms_rate,
            ipi_rate=model.ipi_rate,
            pis_rate=model.pis_rate,
            cofins_rate=model.cofins_rate,
            mva_rate=model.mva_rate,
        )


@dataclass(frozen=True)
class JournalEntryRecord:
    """A journal entry with its lines attached, as read from storage."""

    entry_id: UUID
    entry_date: date
    description: str = ""
    lines: tuple[EntryLine, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.lines, tuple):
            object.__setattr__(self, "lines", tuple(self.lines))

    @classmethod
    def from_model(cls, model: JournalEntryModel) -> JournalEntryRecord:
        return cls(
            entry_id=model.id,
            entry_date=model.entry_date,
            description=model.description or "",
            lines=tuple(EntryLine.from_model(line) for line in model.lines),
        )
