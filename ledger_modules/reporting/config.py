"""
Reporting Configuration Schema.

Defines the name-based classification rules the statement calculators
use.  Accounts are flat records (id, type, name), so cash-like accounts
and the investing/financing buckets of the cash-flow summary are
recognized by keywords in the account name.  Matching ignores case and
accents, so "Banco Itaú", "BANCO ITAU" and "banco itau" are the same.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Self

from ledger_kernel.exceptions import ConfigurationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.utils.text import normalize_name

logger = get_logger("modules.reporting.config")


@dataclass(frozen=True)
class ClassificationRules:
    """
    Keyword rules for classifying accounts by name.

    A name matches a keyword list when its normalized form contains any
    normalized keyword as a substring.
    """

    # Asset accounts treated as cash and cash equivalents
    cash_keywords: tuple[str, ...] = (
        "cash", "bank", "caixa", "banco",
    )

    # Counterparts that make a cash movement an investing activity
    investing_keywords: tuple[str, ...] = (
        "fixed asset", "property", "plant", "equipment", "machinery",
        "vehicle", "building", "land", "investment",
        "imobilizado", "equipamento", "maquina", "veiculo", "imovel",
        "edificacao", "terreno", "investimento",
    )

    # Counterparts that make a cash movement a financing activity
    financing_keywords: tuple[str, ...] = (
        "loan", "borrowing", "debenture", "capital", "dividend",
        "emprestimo", "financiamento", "dividendo",
    )

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, str) or not all(isinstance(k, str) for k in value):
                raise ConfigurationError(
                    f"classification.{f.name}", "expected a list of strings"
                )
            object.__setattr__(
                self, f.name, tuple(normalize_name(k) for k in value if k.strip())
            )

    @staticmethod
    def matches(name: str, keywords: tuple[str, ...]) -> bool:
        normalized = normalize_name(name)
        return any(keyword in normalized for keyword in keywords)

    def is_cash_name(self, name: str) -> bool:
        return self.matches(name, self.cash_keywords)

    def is_investing_name(self, name: str) -> bool:
        return self.matches(name, self.investing_keywords)

    def is_financing_name(self, name: str) -> bool:
        return self.matches(name, self.financing_keywords)


@dataclass
class ReportingConfig:
    """
    Configuration schema for the reporting module.

    Controls account classification and report metadata.
    """

    classification: ClassificationRules = field(default_factory=ClassificationRules)

    # Entity name shown on reports
    entity_name: str = "Company"

    # Reporting currency (single-currency ledger)
    currency: str = "BRL"

    # Whether trial balances list accounts with no activity
    include_zero_balances: bool = True

    def __post_init__(self):
        if len(self.currency) != 3:
            raise ConfigurationError("reporting.currency", "must be a 3-letter ISO 4217 code")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from a dictionary (e.g. the ``reporting`` YAML block)."""
        data = dict(data)
        if isinstance(data.get("classification"), dict):
            rules = data["classification"]
            allowed = {f.name for f in fields(ClassificationRules)}
            unknown_rules = set(rules) - allowed
            if unknown_rules:
                raise ConfigurationError(
                    "reporting.classification",
                    f"unknown keys: {', '.join(sorted(unknown_rules))}",
                )
            data["classification"] = ClassificationRules(
                **{
                    k: (v,) if isinstance(v, str) else tuple(v or ())
                    for k, v in rules.items()
                }
            )
        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            raise ConfigurationError(
                "reporting", f"unknown keys: {', '.join(sorted(unknown))}"
            )
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
