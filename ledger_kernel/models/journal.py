"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and their lines.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At-most-once posting: transaction_reference is UNIQUE per
      organization when supplied.
    - Line sides are non-negative (CHECK constraints).  Balance is checked
      by the posting service before commit; ``is_balanced`` is a read-side
      convenience only.

Failure modes:
    - IntegrityError on a duplicate transaction_reference, surfaced by the
      posting service as DuplicatePostingError.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.models.account import Account


class JournalEntry(TrackedBase):
    """Journal entry header scoped by organization and accounting period."""

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "transaction_reference",
            name="uq_journal_transaction_reference",
        ),
        Index("idx_journal_scope", "organization_id", "accounting_period_id"),
        Index("idx_journal_entry_date", "entry_date"),
    )

    organization_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    accounting_period_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Caller-supplied idempotency reference
    transaction_reference: Mapped[str | None] = mapped_column(String(200), nullable=True)

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        order_by="JournalLine.line_seq",
        cascade="all, delete-orphan",
    )

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit or Decimal("0") for line in self.lines), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit or Decimal("0") for line in self.lines), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        return abs(self.total_debits - self.total_credits) < Decimal("0.01")


class JournalLine(TrackedBase):
    """One debit or credit line of a journal entry."""

    __tablename__ = "entry_lines"

    __table_args__ = (
        CheckConstraint("debit IS NULL OR debit >= 0", name="ck_line_debit_non_negative"),
        CheckConstraint("credit IS NULL OR credit >= 0", name="ck_line_credit_non_negative"),
        Index("idx_line_entry", "journal_entry_id"),
        Index("idx_line_account", "account_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    line_seq: Mapped[int] = mapped_column(Integer, nullable=False)

    debit: Mapped[Decimal | None] = mapped_column(nullable=True)
    credit: Mapped[Decimal | None] = mapped_column(nullable=True)

    memo: Mapped[str | None] = mapped_column(String(500), nullable=True)
    role: Mapped[str | None] = mapped_column(String(50), nullable=True)

    product_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    quantity: Mapped[Decimal | None] = mapped_column(nullable=True)
    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    total_gross: Mapped[Decimal | None] = mapped_column(nullable=True)
    total_net: Mapped[Decimal | None] = mapped_column(nullable=True)
    icms_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    ipi_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    pis_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    cofins_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    icms_st_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    icms_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    ipi_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    pis_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    cofins_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    mva_rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    entry: Mapped[JournalEntry] = relationship(back_populates="lines")
    account: Mapped[Account] = relationship(back_populates="lines")
