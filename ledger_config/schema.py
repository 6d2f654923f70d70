"""
Ledger configuration schema.

Frozen dataclasses produced by the loader from YAML: which account backs
each posting role, the default tax rates of the organization and the
reporting options.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from ledger_engines.tax import TaxRates
from ledger_kernel.domain.roles import AccountRole


@dataclass(frozen=True)
class RoleBinding:
    """Maps an account role to an account, by code or by name."""

    role: AccountRole
    account_name: str | None = None
    account_code: str | None = None


@dataclass(frozen=True)
class LedgerConfig:
    """A complete, parsed ledger configuration."""

    config_id: str
    version: int
    role_bindings: tuple[RoleBinding, ...] = ()
    default_rates: TaxRates = field(default_factory=TaxRates)
    reporting: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )
    checksum: str = ""

    def binding_for(self, role: AccountRole | str) -> RoleBinding | None:
        role = AccountRole(role)
        for binding in self.role_bindings:
            if binding.role == role:
                return binding
        return None

    def rates_for(self, values: Mapping[str, Any] | None) -> TaxRates:
        """Transaction rates with the configured defaults filling omitted keys."""
        return TaxRates.from_mapping(values, defaults=self.default_rates)
