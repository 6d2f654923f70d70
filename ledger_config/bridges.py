"""
Config -> Kernel/Module Bridges.

Turn a parsed LedgerConfig into the inputs the engines and services take:
a ResolvedAccounts role map for one organization's chart, and the
ReportingConfig of the reporting module.

Usage:
    config = load_default_config()
    accounts = selector.fetch_accounts(org_id, period_id)
    resolved = bind_roles(config, accounts)
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.dtos import AccountRecord
from ledger_kernel.domain.roles import AccountRole, ResolvedAccounts
from ledger_kernel.logging_config import get_logger
from ledger_kernel.utils.text import normalize_name
from ledger_modules.reporting.config import ReportingConfig

logger = get_logger("config.bridges")


def bind_roles(
    config: LedgerConfig,
    accounts: Iterable[AccountRecord],
) -> ResolvedAccounts:
    """
    Resolve every configured role against an organization's accounts.

    A binding with an ``account_code`` matches by code; otherwise it
    matches by normalized name.  Roles whose account does not exist are
    left unbound: the posting engine reports them if a transaction needs
    them.
    """
    accounts = list(accounts)
    by_code = {a.code: a.account_id for a in accounts if a.code}
    by_name = {normalize_name(a.name): a.account_id for a in accounts}

    resolved: dict[AccountRole, UUID] = {}
    unbound: list[str] = []
    for binding in config.role_bindings:
        account_id = None
        if binding.account_code:
            account_id = by_code.get(binding.account_code)
        elif binding.account_name:
            account_id = by_name.get(normalize_name(binding.account_name))
        if account_id is None:
            unbound.append(binding.role.value)
        else:
            resolved[binding.role] = account_id

    if unbound:
        logger.debug("role_bindings_unmatched", extra={"roles": unbound})
    return ResolvedAccounts(resolved)


def build_reporting_config(config: LedgerConfig) -> ReportingConfig:
    """ReportingConfig from the ``reporting`` block (defaults when absent)."""
    if not config.reporting:
        return ReportingConfig.with_defaults()
    return ReportingConfig.from_dict(dict(config.reporting))
