"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the chart of accounts, scoped per
    organization.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (organization_id, code) is unique when a code is assigned.
    - account_type is one of asset, liability, equity, revenue, expense
      (CHECK constraint); it is assumed immutable once lines reference it.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.journal import JournalLine

ACCOUNT_TYPES = ("asset", "liability", "equity", "revenue", "expense")


class Account(TrackedBase):
    """A ledger account belonging to one organization."""

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("organization_id", "code", name="uq_account_org_code"),
        CheckConstraint(
            "account_type IN ('asset', 'liability', 'equity', 'revenue', 'expense')",
            name="ck_account_type",
        ),
        Index("idx_account_org", "organization_id"),
    )

    organization_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    account_type: Mapped[str] = mapped_column(String(20), nullable=False)

    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    lines: Mapped[list["JournalLine"]] = relationship(back_populates="account")

    def __repr__(self) -> str:
        return f"<Account {self.code or '-'}: {self.name} ({self.account_type})>"
