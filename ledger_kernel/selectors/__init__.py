"""Read-only query selectors over the ledger tables."""

from ledger_kernel.selectors.ledger_selector import LedgerSelector

__all__ = ["LedgerSelector"]
