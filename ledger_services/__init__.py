"""
ledger_services -- stateful orchestration over the engines and kernel.

The only layer that holds database sessions for writes.  Dependency
direction: ledger_services -> ledger_engines / ledger_kernel /
ledger_config; never the reverse.
"""

from ledger_services.posting_service import PostingResult, PostingService

__all__ = ["PostingResult", "PostingService"]
