"""
Module: ledger_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines: the tax
    engine and the posting engine.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel (domain, exceptions, logging).
    MUST NOT import ledger_services or ledger_modules.

Invariants enforced:
    - Decimal-only arithmetic for amounts and rates.
    - Determinism: identical inputs always produce identical outputs.
"""

from ledger_engines.posting import (
    DEFAULT_RECOVERABLE_TAXES,
    PostingEngine,
    PostingPlan,
    TransactionInput,
    generate_lines,
)
from ledger_engines.tax import (
    OperationKind,
    TaxCalculationResult,
    TaxCalculator,
    TaxKind,
    TaxLine,
    TaxRates,
    calculate_taxes,
)

__all__ = [
    "DEFAULT_RECOVERABLE_TAXES",
    "OperationKind",
    "PostingEngine",
    "PostingPlan",
    "TaxCalculationResult",
    "TaxCalculator",
    "TaxKind",
    "TaxLine",
    "TaxRates",
    "TransactionInput",
    "calculate_taxes",
    "generate_lines",
]
