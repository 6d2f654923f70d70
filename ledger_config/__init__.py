"""
ledger_config -- YAML configuration for the ledger.

Responsibility:
    Loads role bindings, default tax rates and reporting options from
    YAML (PyYAML ``safe_load``) into frozen dataclasses, and bridges them
    to the kernel's ResolvedAccounts and the reporting module's
    ReportingConfig.

Architecture position:
    Configuration -- sits above ledger_kernel and ledger_engines.  The
    kernel MUST NEVER import ledger_config.
"""

from ledger_config.bridges import bind_roles, build_reporting_config
from ledger_config.loader import (
    DEFAULT_CONFIG_PATH,
    load_config,
    load_default_config,
    parse_config,
)
from ledger_config.schema import LedgerConfig, RoleBinding

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "LedgerConfig",
    "RoleBinding",
    "bind_roles",
    "build_reporting_config",
    "load_config",
    "load_default_config",
    "parse_config",
]
