"""
Account roles -- stable names for the accounts a posting touches.

Responsibility:
    Enumerates every account role the posting engine can debit or credit,
    and provides ResolvedAccounts, the per-organization role -> account id
    map built once by the caller (from configuration or storage) and handed
    to the engine.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - The engine never looks up accounts by display name; it only asks for
      roles. A role that is not bound is reported, never guessed.

Failure modes:
    - UnresolvedAccountError from ``require()`` listing every missing role
      at once, so the caller can fix them all before retrying.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from enum import Enum
from types import MappingProxyType
from uuid import UUID

from ledger_kernel.exceptions import UnresolvedAccountError


class AccountRole(str, Enum):
    """Semantic role of an account in generated postings."""

    # Sales
    SALES_REVENUE = "sales_revenue"
    COST_OF_GOODS_SOLD = "cost_of_goods_sold"
    FINISHED_GOODS_INVENTORY = "finished_goods_inventory"

    # Taxes payable on sales
    ICMS_PAYABLE = "icms_payable"
    ICMS_ST_PAYABLE = "icms_st_payable"
    IPI_PAYABLE = "ipi_payable"
    PIS_PAYABLE = "pis_payable"
    COFINS_PAYABLE = "cofins_payable"
    IRRF_PAYABLE = "irrf_payable"
    CSLL_PAYABLE = "csll_payable"
    INSS_PAYABLE = "inss_payable"

    # Revenue deductions (expense side of the payable pairs)
    PIS_ON_REVENUE = "pis_on_revenue"
    COFINS_ON_REVENUE = "cofins_on_revenue"
    IRRF_ON_REVENUE = "irrf_on_revenue"
    CSLL_ON_REVENUE = "csll_on_revenue"
    INSS_ON_REVENUE = "inss_on_revenue"

    # Purchases
    MERCHANDISE_INVENTORY = "merchandise_inventory"
    ICMS_RECOVERABLE = "icms_recoverable"
    IPI_RECOVERABLE = "ipi_recoverable"
    PIS_RECOVERABLE = "pis_recoverable"
    COFINS_RECOVERABLE = "cofins_recoverable"

    # Closing
    RETAINED_EARNINGS = "retained_earnings"


class ResolvedAccounts(Mapping[AccountRole, UUID]):
    """
    Immutable role -> account id map for one organization.

    Contract:
        Built once per organization by the caller. Keys may be given as
        AccountRole members or their string values.

    Guarantees:
        - ``require()`` either returns ids for every requested role or
          raises a single UnresolvedAccountError naming all missing roles.
    """

    def __init__(self, bindings: Mapping[AccountRole | str, UUID] | None = None):
        normalized = {
            AccountRole(role): account_id
            for role, account_id in (bindings or {}).items()
            if account_id is not None
        }
        self._bindings = MappingProxyType(normalized)

    def __getitem__(self, role: AccountRole | str) -> UUID:
        return self._bindings[AccountRole(role)]

    def __iter__(self) -> Iterator[AccountRole]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        return f"ResolvedAccounts({dict(self._bindings)!r})"

    def missing(self, roles: Iterable[AccountRole]) -> tuple[AccountRole, ...]:
        """Roles from ``roles`` that have no binding, in first-seen order."""
        seen: list[AccountRole] = []
        for role in roles:
            if role not in self._bindings and role not in seen:
                seen.append(role)
        return tuple(seen)

    def require(self, roles: Iterable[AccountRole]) -> dict[AccountRole, UUID]:
        """Return ids for every role or raise listing all that are missing."""
        roles = list(roles)
        missing = self.missing(roles)
        if missing:
            raise UnresolvedAccountError([role.value for role in missing])
        return {role: self._bindings[role] for role in roles}

    def with_bindings(
        self, extra: Mapping[AccountRole | str, UUID]
    ) -> ResolvedAccounts:
        merged: dict[AccountRole | str, UUID] = dict(self._bindings)
        merged.update(extra)
        return ResolvedAccounts(merged)
