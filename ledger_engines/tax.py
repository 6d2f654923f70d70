"""
Tax Engine - Brazilian transaction taxes for sales and purchases.

Computes ICMS, IPI, PIS, COFINS, ICMS-ST (substitution) and the
withholding-style IRRF, CSLL and INSS from a gross amount and a set of
percentage rates, and derives the invoice net total.
Pure functions with no I/O - rates are provided as parameters.

Conventions:
    - Rates are percentages in [0, 100] (18 means 18%).
    - Every tax amount is ``gross * rate / 100`` rounded half-up to cents.
    - ICMS-ST applies only when an MVA markup is supplied:
          base_st  = (gross + ipi) * (1 + mva / 100)
          icms_st  = max(0, base_st * icms_rate / 100 - icms)
      IPI is part of the substitution base and the ordinary ICMS already
      charged is subtracted so it is not collected twice.
    - Net total for sales and purchases is ``gross + ipi + icms_st``: IPI
      and ICMS-ST are charged on top of the goods value, while ICMS, PIS
      and COFINS are embedded in gross and deducted from revenue by the
      posting engine.  Other operation kinds net to gross.
    - An explicit net total supplied by the caller (the value printed on
      the invoice) is returned verbatim.

Usage:
    from ledger_engines.tax import TaxCalculator, TaxRates
    from decimal import Decimal

    result = TaxCalculator().calculate(
        total_gross=Decimal("1000.00"),
        rates=TaxRates(icms=Decimal("18")),
        operation_kind="sale",
    )
    print(result.icms)             # 180.00
    print(result.final_total_net)  # 1000.00
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.amounts import (
    HUNDRED,
    ZERO,
    non_negative,
    percentage,
    round_money,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.tax")


class OperationKind(str, Enum):
    """Commercial operation kinds with a dedicated posting pattern."""

    SALE = "sale"
    PURCHASE = "purchase"

    @classmethod
    def parse(cls, value: OperationKind | str | None) -> OperationKind | None:
        """Return the matching kind, or None for unrecognized/manual kinds."""
        if isinstance(value, OperationKind):
            return value
        if value is None:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class TaxKind(str, Enum):
    """Taxes the calculator knows about."""

    ICMS = "icms"
    IPI = "ipi"
    PIS = "pis"
    COFINS = "cofins"
    ICMS_ST = "icms_st"
    IRRF = "irrf"  # Withheld income tax
    CSLL = "csll"  # Social contribution on net profit
    INSS = "inss"  # Social security withholding


@dataclass(frozen=True)
class TaxRates:
    """
    Percentage rates for one transaction.

    Immutable value object; every rate defaults to zero.  ``mva`` is the
    substitution markup, not a tax by itself.
    """

    icms: Decimal = ZERO
    ipi: Decimal = ZERO
    pis: Decimal = ZERO
    cofins: Decimal = ZERO
    mva: Decimal = ZERO
    irrf: Decimal = ZERO
    csll: Decimal = ZERO
    inss: Decimal = ZERO

    def __post_init__(self) -> None:
        for f in fields(self):
            object.__setattr__(
                self, f.name, percentage(getattr(self, f.name), f"rates.{f.name}")
            )

    @classmethod
    def from_mapping(
        cls,
        values: Mapping[str, Any] | None,
        defaults: TaxRates | None = None,
    ) -> TaxRates:
        """Build rates from a dict, falling back to ``defaults`` for omitted keys.

        Keys that are present but None also fall back to the default.
        """
        base = defaults or cls()
        merged = {
            f.name: getattr(base, f.name) for f in fields(cls)
        }
        for key, value in (values or {}).items():
            if key not in merged:
                continue
            if value is not None:
                merged[key] = value
        return cls(**merged)

    def to_dict(self) -> dict[str, Decimal]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class TaxLine:
    """One computed tax: base, percentage rate and rounded amount."""

    kind: TaxKind
    base: Decimal
    rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class TaxCalculationResult:
    """
    Result of a tax calculation.

    ``lines`` holds one TaxLine per tax whose amount is greater than zero,
    in calculation order.
    """

    total_gross: Decimal
    operation_kind: str
    rates: TaxRates
    icms: Decimal
    ipi: Decimal
    pis: Decimal
    cofins: Decimal
    icms_st: Decimal
    irrf: Decimal
    csll: Decimal
    inss: Decimal
    final_total_net: Decimal
    net_overridden: bool
    lines: tuple[TaxLine, ...]

    def amount_for(self, kind: TaxKind | str) -> Decimal:
        return getattr(self, TaxKind(kind).value)

    @property
    def derived_total_net(self) -> Decimal:
        """Net total implied by the computed taxes, ignoring any override."""
        if OperationKind.parse(self.operation_kind) is None:
            return self.total_gross
        return self.total_gross + self.ipi + self.icms_st


class TaxCalculator:
    """
    Tax calculation engine.

    Stateless: all rates and amounts are passed to ``calculate``.
    """

    _PLAIN_TAXES: tuple[TaxKind, ...] = (
        TaxKind.ICMS,
        TaxKind.IPI,
        TaxKind.PIS,
        TaxKind.COFINS,
        TaxKind.IRRF,
        TaxKind.CSLL,
        TaxKind.INSS,
    )

    def calculate(
        self,
        total_gross: Any,
        rates: TaxRates | Mapping[str, Any] | None = None,
        operation_kind: OperationKind | str = OperationKind.SALE,
        total_net_override: Any = None,
    ) -> TaxCalculationResult:
        """
        Compute every tax amount and the final net total.

        Args:
            total_gross: Goods value of the transaction (non-negative).
            rates: TaxRates or a mapping of percentage rates.
            operation_kind: "sale", "purchase" or any other kind.
            total_net_override: Net total printed on the invoice, if any.

        Returns:
            TaxCalculationResult

        Raises:
            ValidationError: Negative or non-numeric amount, rate outside
                [0, 100].
        """
        gross = non_negative(total_gross, "total_gross")
        if not isinstance(rates, TaxRates):
            rates = TaxRates.from_mapping(rates)
        kind_value = (
            operation_kind.value
            if isinstance(operation_kind, OperationKind)
            else str(operation_kind)
        )

        logger.debug("tax_calculation_started", extra={
            "total_gross": str(gross),
            "operation_kind": kind_value,
        })

        amounts: dict[TaxKind, Decimal] = {}
        lines: list[TaxLine] = []
        for kind in self._PLAIN_TAXES:
            rate = getattr(rates, kind.value)
            amount = round_money(gross * rate / HUNDRED)
            amounts[kind] = amount
            if amount > ZERO:
                lines.append(TaxLine(kind=kind, base=gross, rate=rate, amount=amount))

        st_base, icms_st = self.calculate_icms_st(
            gross, amounts[TaxKind.IPI], amounts[TaxKind.ICMS], rates
        )
        amounts[TaxKind.ICMS_ST] = icms_st
        if icms_st > ZERO:
            lines.append(
                TaxLine(kind=TaxKind.ICMS_ST, base=st_base, rate=rates.icms, amount=icms_st)
            )

        if OperationKind.parse(operation_kind) is None:
            derived_net = gross
        else:
            derived_net = gross + amounts[TaxKind.IPI] + icms_st

        if total_net_override is not None:
            final_net = non_negative(total_net_override, "total_net")
        else:
            final_net = derived_net

        result = TaxCalculationResult(
            total_gross=gross,
            operation_kind=kind_value,
            rates=rates,
            icms=amounts[TaxKind.ICMS],
            ipi=amounts[TaxKind.IPI],
            pis=amounts[TaxKind.PIS],
            cofins=amounts[TaxKind.COFINS],
            icms_st=icms_st,
            irrf=amounts[TaxKind.IRRF],
            csll=amounts[TaxKind.CSLL],
            inss=amounts[TaxKind.INSS],
            final_total_net=final_net,
            net_overridden=total_net_override is not None,
            lines=tuple(lines),
        )

        logger.debug("tax_calculation_completed", extra={
            "tax_line_count": len(lines),
            "final_total_net": str(final_net),
            "net_overridden": result.net_overridden,
        })
        return result

    @staticmethod
    def calculate_icms_st(
        gross: Decimal,
        ipi_amount: Decimal,
        icms_amount: Decimal,
        rates: TaxRates,
    ) -> tuple[Decimal, Decimal]:
        """Return (substitution base, ICMS-ST amount); zero without an MVA."""
        if rates.mva <= ZERO:
            return ZERO, ZERO
        base = round_money((gross + ipi_amount) * (HUNDRED + rates.mva) / HUNDRED)
        st = round_money(base * rates.icms / HUNDRED) - icms_amount
        return base, max(ZERO, st)


@traced_engine("tax", "1.0", fingerprint_fields=("total_gross", "operation_kind"))
def calculate_taxes(
    total_gross: Any,
    rates: TaxRates | Mapping[str, Any] | None = None,
    operation_kind: OperationKind | str = OperationKind.SALE,
    total_net_override: Any = None,
) -> TaxCalculationResult:
    """Convenience function for a one-off calculation."""
    return TaxCalculator().calculate(
        total_gross=total_gross,
        rates=rates,
        operation_kind=operation_kind,
        total_net_override=total_net_override,
    )
