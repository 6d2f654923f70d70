"""
Posting Engine - turns one commercial transaction into balanced entry lines.

Responsibility:
    Given a TransactionInput and a ResolvedAccounts role map, emit the
    complete set of debit/credit lines for the transaction: main line,
    revenue or inventory line, one line pair per applicable tax and the
    optional cost-of-goods pair.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Consumes the tax engine;
    never queries storage (the caller resolves accounts beforehand).

Posting patterns:
    sale
        Dr main (customer/cash)       net = gross + IPI + ICMS-ST
        Cr SALES_REVENUE              gross
        Cr IPI_PAYABLE                ipi
        Cr ICMS_ST_PAYABLE            icms_st
        Dr SALES_REVENUE / Cr ICMS_PAYABLE            icms
        Dr PIS_ON_REVENUE / Cr PIS_PAYABLE            pis
        Dr COFINS_ON_REVENUE / Cr COFINS_PAYABLE      cofins
        (same pair pattern for IRRF, CSLL, INSS)
        Dr COST_OF_GOODS_SOLD / Cr FINISHED_GOODS_INVENTORY   quantity * unit_cost

    purchase
        Dr counterpart (MERCHANDISE_INVENTORY)  net - recoverable taxes
        Dr <TAX>_RECOVERABLE                    each recoverable tax > 0
        Cr main (supplier)                      net

    any other kind
        one main line with the caller-supplied debit/credit.

Invariants enforced:
    - Every generated line set is balanced; sale and purchase balance by
      construction, the fallback line is passed through as given.
    - All roles a transaction needs are resolved up front.  If any is
      missing, UnresolvedAccountError names all of them and no lines are
      returned.

Failure modes:
    - ValidationError on invalid amounts, a sale net total that does not
      reconcile with gross + IPI + ICMS-ST, or a purchase whose recoverable
      taxes exceed the net total.
    - UnresolvedAccountError when required roles are not bound.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Mapping
from uuid import UUID

from ledger_engines.tax import (
    OperationKind,
    TaxCalculationResult,
    TaxCalculator,
    TaxKind,
    TaxRates,
)
from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.amounts import ZERO, non_negative, round_money
from ledger_kernel.domain.balance import within_tolerance
from ledger_kernel.domain.dtos import EntryLine
from ledger_kernel.domain.roles import AccountRole, ResolvedAccounts
from ledger_kernel.exceptions import ValidationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.posting")


# Tax -> (debit role, credit role) for the sale-side deduction pairs.
# ICMS is deducted from revenue directly instead of through an expense.
SALE_TAX_PAIRS: tuple[tuple[TaxKind, AccountRole, AccountRole], ...] = (
    (TaxKind.ICMS, AccountRole.SALES_REVENUE, AccountRole.ICMS_PAYABLE),
    (TaxKind.PIS, AccountRole.PIS_ON_REVENUE, AccountRole.PIS_PAYABLE),
    (TaxKind.COFINS, AccountRole.COFINS_ON_REVENUE, AccountRole.COFINS_PAYABLE),
    (TaxKind.IRRF, AccountRole.IRRF_ON_REVENUE, AccountRole.IRRF_PAYABLE),
    (TaxKind.CSLL, AccountRole.CSLL_ON_REVENUE, AccountRole.CSLL_PAYABLE),
    (TaxKind.INSS, AccountRole.INSS_ON_REVENUE, AccountRole.INSS_PAYABLE),
)

RECOVERABLE_ROLES: dict[TaxKind, AccountRole] = {
    TaxKind.ICMS: AccountRole.ICMS_RECOVERABLE,
    TaxKind.IPI: AccountRole.IPI_RECOVERABLE,
    TaxKind.PIS: AccountRole.PIS_RECOVERABLE,
    TaxKind.COFINS: AccountRole.COFINS_RECOVERABLE,
}

DEFAULT_RECOVERABLE_TAXES: frozenset[TaxKind] = frozenset(RECOVERABLE_ROLES)


@dataclass(frozen=True)
class TransactionInput:
    """
    Ephemeral description of one commercial transaction.

    ``main_account_id`` is the customer/cash account for a sale and the
    supplier account for a purchase.  ``counterpart_account_id`` replaces
    the MERCHANDISE_INVENTORY role on purchases (e.g. an expense or fixed
    asset account).  ``debit``/``credit`` are only used by the single-line
    fallback for unrecognized kinds.

    ``rates`` is either a complete TaxRates or a mapping of the rates the
    caller supplied.  A mapping keeps its omitted keys open so the posting
    service can fill them from the organization's configured defaults;
    the engine itself treats them as zero.
    """

    journal_entry_id: UUID
    main_account_id: UUID
    operation_kind: str
    total_gross: Decimal = ZERO
    rates: TaxRates | Mapping[str, Any] | None = None
    total_net: Decimal | None = None
    product_id: UUID | None = None
    quantity: Decimal | None = None
    unit_cost: Decimal | None = None
    debit: Decimal | None = None
    credit: Decimal | None = None
    counterpart_account_id: UUID | None = None
    recoverable_taxes: frozenset[TaxKind] = DEFAULT_RECOVERABLE_TAXES
    transaction_reference: str | None = None
    memo: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.operation_kind, OperationKind):
            object.__setattr__(self, "operation_kind", self.operation_kind.value)
        if self.rates is not None and not isinstance(self.rates, TaxRates):
            # Validate eagerly; the partial mapping itself is kept.
            TaxRates.from_mapping(self.rates)
            object.__setattr__(self, "rates", MappingProxyType(dict(self.rates)))
        kinds = frozenset(TaxKind(k) for k in self.recoverable_taxes)
        unsupported = kinds - DEFAULT_RECOVERABLE_TAXES
        if unsupported:
            raise ValidationError(
                "recoverable_taxes",
                sorted(k.value for k in unsupported),
                "only ICMS, IPI, PIS and COFINS can be recovered",
            )
        object.__setattr__(self, "recoverable_taxes", kinds)

    @property
    def kind(self) -> OperationKind | None:
        return OperationKind.parse(self.operation_kind)

    @property
    def tax_rates(self) -> TaxRates:
        """Rates used for calculation; keys missing from a mapping are zero."""
        if isinstance(self.rates, TaxRates):
            return self.rates
        return TaxRates.from_mapping(self.rates)

    @property
    def has_explicit_rates(self) -> bool:
        return isinstance(self.rates, TaxRates)

    @property
    def has_product_cost(self) -> bool:
        return (
            self.product_id is not None
            and self.quantity is not None
            and self.unit_cost is not None
        )


@dataclass(frozen=True)
class _PlannedLine:
    """A line whose account is either a role to resolve or a fixed id."""

    role: AccountRole | None
    account_id: UUID | None
    debit: Decimal | None = None
    credit: Decimal | None = None
    memo: str = ""
    detail: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PostingPlan:
    """Lines to emit for one transaction, before account resolution."""

    transaction: TransactionInput
    taxes: TaxCalculationResult | None
    lines: tuple[_PlannedLine, ...]

    @property
    def required_roles(self) -> tuple[AccountRole, ...]:
        roles: list[AccountRole] = []
        for line in self.lines:
            if line.role is not None and line.role not in roles:
                roles.append(line.role)
        return tuple(roles)


class PostingEngine:
    """
    Generates entry lines for sales, purchases and manual entries.

    Stateless apart from the injected TaxCalculator.
    """

    def __init__(self, calculator: TaxCalculator | None = None):
        self._calculator = calculator or TaxCalculator()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def plan(self, transaction: TransactionInput) -> PostingPlan:
        """Compute taxes and the role-addressed lines for a transaction."""
        kind = transaction.kind
        if kind is OperationKind.SALE:
            return self._plan_sale(transaction)
        if kind is OperationKind.PURCHASE:
            return self._plan_purchase(transaction)
        return self._plan_manual(transaction)

    def required_roles(self, transaction: TransactionInput) -> tuple[AccountRole, ...]:
        return self.plan(transaction).required_roles

    def generate_lines(
        self,
        transaction: TransactionInput,
        resolved_accounts: ResolvedAccounts,
    ) -> tuple[EntryLine, ...]:
        """
        Emit the complete line set for ``transaction``.

        Raises:
            ValidationError: Invalid amounts or irreconcilable totals.
            UnresolvedAccountError: One or more required roles unbound.
        """
        return self.lines_for_plan(self.plan(transaction), resolved_accounts)

    def lines_for_plan(
        self,
        plan: PostingPlan,
        resolved_accounts: ResolvedAccounts,
    ) -> tuple[EntryLine, ...]:
        """Resolve the roles of an already computed plan into entry lines."""
        if not isinstance(resolved_accounts, ResolvedAccounts):
            resolved_accounts = ResolvedAccounts(resolved_accounts)

        transaction = plan.transaction
        accounts = resolved_accounts.require(plan.required_roles)

        lines = tuple(
            EntryLine(
                account_id=(
                    planned.account_id
                    if planned.account_id is not None
                    else accounts[planned.role]
                ),
                debit=planned.debit,
                credit=planned.credit,
                memo=planned.memo,
                role=planned.role.value if planned.role is not None else None,
                **planned.detail,
            )
            for planned in plan.lines
        )

        logger.info("posting_lines_generated", extra={
            "journal_entry_id": str(transaction.journal_entry_id),
            "operation_kind": transaction.operation_kind,
            "line_count": len(lines),
        })
        return lines

    # ------------------------------------------------------------------
    # Sale
    # ------------------------------------------------------------------

    def _plan_sale(self, tx: TransactionInput) -> PostingPlan:
        taxes = self._calculator.calculate(
            total_gross=tx.total_gross,
            rates=tx.tax_rates,
            operation_kind=OperationKind.SALE,
            total_net_override=tx.total_net,
        )
        if not within_tolerance(taxes.final_total_net - taxes.derived_total_net):
            raise ValidationError(
                "total_net",
                tx.total_net,
                f"sale net total must equal gross + IPI + ICMS-ST "
                f"({taxes.derived_total_net})",
            )

        lines: list[_PlannedLine] = [
            _PlannedLine(
                role=None,
                account_id=tx.main_account_id,
                debit=taxes.final_total_net,
                memo=tx.memo or "Sale",
                detail=_tax_detail(taxes),
            ),
            _PlannedLine(
                role=AccountRole.SALES_REVENUE,
                account_id=None,
                credit=taxes.total_gross,
                memo="Sales revenue",
            ),
        ]
        if taxes.ipi > ZERO:
            lines.append(_credit(AccountRole.IPI_PAYABLE, taxes.ipi, "IPI payable"))
        if taxes.icms_st > ZERO:
            lines.append(
                _credit(AccountRole.ICMS_ST_PAYABLE, taxes.icms_st, "ICMS-ST payable")
            )
        for kind, debit_role, credit_role in SALE_TAX_PAIRS:
            amount = taxes.amount_for(kind)
            if amount <= ZERO:
                continue
            label = kind.value.upper()
            lines.append(_debit(debit_role, amount, f"{label} on sales"))
            lines.append(_credit(credit_role, amount, f"{label} payable"))

        if tx.has_product_cost:
            quantity = non_negative(tx.quantity, "quantity")
            unit_cost = non_negative(tx.unit_cost, "unit_cost")
            cost = round_money(quantity * unit_cost)
            if cost > ZERO:
                lines.append(_debit(AccountRole.COST_OF_GOODS_SOLD, cost, "Cost of goods sold"))
                lines.append(
                    _PlannedLine(
                        role=AccountRole.FINISHED_GOODS_INVENTORY,
                        account_id=None,
                        credit=cost,
                        memo="Finished goods issued",
                        detail={
                            "product_id": tx.product_id,
                            "quantity": quantity,
                            "unit_cost": unit_cost,
                        },
                    )
                )

        return PostingPlan(transaction=tx, taxes=taxes, lines=tuple(lines))

    # ------------------------------------------------------------------
    # Purchase
    # ------------------------------------------------------------------

    def _plan_purchase(self, tx: TransactionInput) -> PostingPlan:
        taxes = self._calculator.calculate(
            total_gross=tx.total_gross,
            rates=tx.tax_rates,
            operation_kind=OperationKind.PURCHASE,
            total_net_override=tx.total_net,
        )
        net = taxes.final_total_net

        recoverable: list[tuple[TaxKind, Decimal]] = [
            (kind, taxes.amount_for(kind))
            for kind in (TaxKind.ICMS, TaxKind.IPI, TaxKind.PIS, TaxKind.COFINS)
            if kind in tx.recoverable_taxes and taxes.amount_for(kind) > ZERO
        ]
        recoverable_total = sum((amount for _, amount in recoverable), ZERO)
        inventory_cost = net - recoverable_total
        if inventory_cost < ZERO:
            raise ValidationError(
                "total_net",
                net,
                f"recoverable taxes ({recoverable_total}) exceed the net total",
            )

        counterpart_role = (
            None if tx.counterpart_account_id is not None
            else AccountRole.MERCHANDISE_INVENTORY
        )
        inventory_detail: dict[str, Any] = {}
        if tx.product_id is not None:
            inventory_detail = {
                "product_id": tx.product_id,
                "quantity": (
                    None if tx.quantity is None
                    else non_negative(tx.quantity, "quantity")
                ),
                "unit_cost": (
                    None if tx.unit_cost is None
                    else non_negative(tx.unit_cost, "unit_cost")
                ),
            }

        lines: list[_PlannedLine] = []
        if inventory_cost > ZERO:
            lines.append(
                _PlannedLine(
                    role=counterpart_role,
                    account_id=tx.counterpart_account_id,
                    debit=inventory_cost,
                    memo="Goods received",
                    detail=inventory_detail,
                )
            )
        for kind, amount in recoverable:
            lines.append(
                _debit(RECOVERABLE_ROLES[kind], amount, f"{kind.value.upper()} recoverable")
            )
        lines.append(
            _PlannedLine(
                role=None,
                account_id=tx.main_account_id,
                credit=net,
                memo=tx.memo or "Purchase",
                detail=_tax_detail(taxes),
            )
        )
        return PostingPlan(transaction=tx, taxes=taxes, lines=tuple(lines))

    # ------------------------------------------------------------------
    # Fallback
    # ------------------------------------------------------------------

    def _plan_manual(self, tx: TransactionInput) -> PostingPlan:
        line = _PlannedLine(
            role=None,
            account_id=tx.main_account_id,
            debit=tx.debit,
            credit=tx.credit,
            memo=tx.memo,
        )
        return PostingPlan(transaction=tx, taxes=None, lines=(line,))


def _debit(role: AccountRole, amount: Decimal, memo: str) -> _PlannedLine:
    return _PlannedLine(role=role, account_id=None, debit=amount, memo=memo)


def _credit(role: AccountRole, amount: Decimal, memo: str) -> _PlannedLine:
    return _PlannedLine(role=role, account_id=None, credit=amount, memo=memo)


def _tax_detail(taxes: TaxCalculationResult) -> dict[str, Any]:
    """Tax amounts and rates carried on the main line."""
    detail: dict[str, Any] = {
        "total_gross": taxes.total_gross,
        "total_net": taxes.final_total_net,
        "icms_value": taxes.icms,
        "ipi_value": taxes.ipi,
        "pis_value": taxes.pis,
        "cofins_value": taxes.cofins,
        "icms_st_value": taxes.icms_st,
        "icms_rate": taxes.rates.icms,
        "ipi_rate": taxes.rates.ipi,
        "pis_rate": taxes.rates.pis,
        "cofins_rate": taxes.rates.cofins,
        "mva_rate": taxes.rates.mva,
    }
    return detail


@traced_engine("posting", "1.0", fingerprint_fields=("transaction",))
def generate_lines(
    transaction: TransactionInput,
    resolved_accounts: ResolvedAccounts,
) -> tuple[EntryLine, ...]:
    """Convenience function using a default PostingEngine."""
    return PostingEngine().generate_lines(transaction, resolved_accounts)
