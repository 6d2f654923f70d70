"""Business modules built on the ledger kernel and engines."""
