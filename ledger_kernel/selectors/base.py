"""
Module: ledger_kernel.selectors.base
Responsibility: Abstract base for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    the DTO module.  Selectors NEVER create, modify or delete data.

Invariants enforced:
    - Read-only access: no session.add/delete/commit/flush.
    - Selectors return frozen DTOs, not ORM instances.
    - The caller owns the session and its transaction scope.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Holds the caller's session for subclass queries."""

    def __init__(self, session: Session):
        self.session = session
