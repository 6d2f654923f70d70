"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads a ledger configuration YAML file and parses it into the frozen
``ledger_config.schema`` dataclasses.

Invariants enforced
-------------------
* Every role name must be a known ``AccountRole``; each role is bound at
  most once.
* Default rates go through ``TaxRates`` validation (percentages in
  [0, 100]).
* ``compute_checksum`` gives a deterministic SHA-256 over the parsed
  document for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Structurally invalid document  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from ledger_config.schema import LedgerConfig, RoleBinding
from ledger_engines.tax import TaxRates
from ledger_kernel.domain.roles import AccountRole
from ledger_kernel.exceptions import ConfigurationError, ValidationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("config.loader")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "chart.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_role_binding(data: dict[str, Any], source: str = "<dict>") -> RoleBinding:
    """
    Parse a ``RoleBinding`` from a dict.

    Preconditions:
        - ``data`` has a ``role`` key and ``account_name`` or ``account_code``.
    Raises:
        ConfigurationError: unknown role or no account reference.
    """
    if not isinstance(data, dict) or "role" not in data:
        raise ConfigurationError(source, f"role binding without a role: {data!r}")
    try:
        role = AccountRole(str(data["role"]).strip().lower())
    except ValueError as exc:
        raise ConfigurationError(source, f"unknown account role {data['role']!r}") from exc

    name = data.get("account_name")
    code = data.get("account_code")
    if not name and not code:
        raise ConfigurationError(
            source, f"role {role.value} needs account_name or account_code"
        )
    return RoleBinding(
        role=role,
        account_name=str(name) if name else None,
        account_code=str(code) if code is not None else None,
    )


def parse_rates(data: dict[str, Any] | None, source: str = "<dict>") -> TaxRates:
    """Parse default tax rates; omitted rates are zero."""
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigurationError(source, "default_rates must be a mapping")
    unknown = set(data) - set(TaxRates().to_dict())
    if unknown:
        raise ConfigurationError(
            source, f"unknown tax rates: {', '.join(sorted(unknown))}"
        )
    try:
        return TaxRates.from_mapping(data)
    except ValidationError as exc:
        raise ConfigurationError(source, str(exc)) from exc


def parse_config(data: dict[str, Any], source: str = "<dict>") -> LedgerConfig:
    """
    Parse a ``LedgerConfig`` from a loaded YAML document.

    Raises:
        ConfigurationError: on any structural problem.
    """
    if not isinstance(data, dict):
        raise ConfigurationError(source, "top-level document must be a mapping")

    bindings = tuple(
        parse_role_binding(item, source) for item in data.get("role_bindings") or ()
    )
    seen: set[AccountRole] = set()
    for binding in bindings:
        if binding.role in seen:
            raise ConfigurationError(source, f"role {binding.role.value} bound twice")
        seen.add(binding.role)

    reporting = data.get("reporting") or {}
    if not isinstance(reporting, dict):
        raise ConfigurationError(source, "reporting must be a mapping")

    config = LedgerConfig(
        config_id=str(data.get("config_id", "unnamed")),
        version=int(data.get("version", 1)),
        role_bindings=bindings,
        default_rates=parse_rates(data.get("default_rates"), source),
        reporting=MappingProxyType(dict(reporting)),
        checksum=compute_checksum(data),
    )
    logger.info("ledger_config_parsed", extra={
        "config_id": config.config_id,
        "version": config.version,
        "role_binding_count": len(bindings),
        "checksum": config.checksum,
    })
    return config


def load_config(path: Path | str) -> LedgerConfig:
    """Load and parse a configuration file."""
    path = Path(path)
    return parse_config(load_yaml_file(path), source=str(path))


def load_default_config() -> LedgerConfig:
    """The configuration shipped with the package."""
    return load_config(DEFAULT_CONFIG_PATH)
