"""
Ledger Kernel

Double-entry core shared by the posting engines and the statement
calculators:
- Typed exceptions and structured JSON logging
- Frozen DTOs for accounts, journal entries and entry lines
- Account roles and the double-entry balance validator
- SQLAlchemy storage adapter scoped by organization and period
"""

__version__ = "0.1.0"
