"""ORM models for the ledger storage adapter."""

from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalLine

__all__ = ["Account", "JournalEntry", "JournalLine"]
