"""
Typed exception hierarchy for the ledger kernel.

Every error raised by the ledger packages is a subclass of LedgerError and
carries:

  1. A machine-readable ``code`` class attribute (stable, API-safe).
  2. Structured attributes describing the failure (no message parsing).

Example:
    try:
        service.post(transaction, organization_id=org, period_id=period)
    except UnresolvedAccountError as e:
        create_missing_accounts(e.missing_roles)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- ValidationError
    |
    +-- PostingError
    |   +-- UnresolvedAccountError
    |   +-- ImbalanceError
    |   +-- DuplicatePostingError
    |
    +-- ScopeRequiredError
    |
    +-- ConfigurationError

Pure functions (tax calculator, posting engine, aggregator, statements)
raise these synchronously and never log them. The service layer logs the
failure with ``exc_info`` and re-raises.
"""

from decimal import Decimal
from typing import Any


class LedgerError(Exception):
    """Base exception for all ledger errors."""

    code: str = "LEDGER_ERROR"


# =============================================================================
# Input validation
# =============================================================================


class ValidationError(LedgerError):
    """Malformed or out-of-range numeric input (negative amount, bad rate)."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")


# =============================================================================
# Posting
# =============================================================================


class PostingError(LedgerError):
    """Base for errors raised while turning a transaction into entry lines."""

    code: str = "POSTING_ERROR"


class UnresolvedAccountError(PostingError):
    """One or more account roles required by a posting are not mapped.

    Fatal to the single posting operation: no partial line set is ever
    returned. The caller must create or bind the missing accounts and retry
    the whole transaction.
    """

    code: str = "UNRESOLVED_ACCOUNT"

    def __init__(self, missing_roles: list[str] | tuple[str, ...]):
        self.missing_roles = tuple(missing_roles)
        super().__init__(
            "Accounts not resolvable for role(s): "
            + ", ".join(self.missing_roles)
        )


class ImbalanceError(PostingError):
    """Total debits differ from total credits beyond tolerance."""

    code: str = "IMBALANCE"

    def __init__(
        self,
        debits: Decimal,
        credits: Decimal,
        entry_id: Any = None,
    ):
        self.debits = debits
        self.credits = credits
        self.entry_id = entry_id
        target = f" for entry {entry_id}" if entry_id is not None else ""
        super().__init__(
            f"Entry lines are unbalanced{target}: "
            f"debits={debits}, credits={credits}"
        )


class DuplicatePostingError(PostingError):
    """A transaction reference has already been posted."""

    code: str = "DUPLICATE_POSTING"

    def __init__(self, transaction_reference: str):
        self.transaction_reference = transaction_reference
        super().__init__(
            f"Transaction {transaction_reference} has already been posted"
        )


# =============================================================================
# Scoping and configuration
# =============================================================================


class ScopeRequiredError(LedgerError):
    """A data access was attempted without organization/period scope."""

    code: str = "SCOPE_REQUIRED"

    def __init__(self, missing: str):
        self.missing = missing
        super().__init__(f"Ledger data access requires {missing}")


class ConfigurationError(LedgerError):
    """Ledger configuration could not be loaded or is inconsistent."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid configuration in {source}: {reason}")
