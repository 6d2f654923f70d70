"""
PostingService -- imperative shell around the posting engine.

Responsibility:
    Fill rates the caller left out from the configured defaults, resolve
    account roles for the caller's organization, generate the entry
    lines, check the double-entry invariant, and persist the entry and all
    its lines in the caller's transaction.

Architecture position:
    Services -- may hold a database session.  Composes ledger_engines
    (pure) with ledger_kernel storage and ledger_config bindings.

Invariants enforced:
    - Lines are checked with the balance validator before anything is
      written, and re-checked on the flushed rows.
    - All lines of a transaction are added in one flush; the caller's
      session_scope commits or rolls back the whole set.
    - At most one posting per transaction_reference per organization
      (UNIQUE constraint, surfaced as DuplicatePostingError).
    - Every line account must belong to the posting organization.

Failure modes:
    - ScopeRequiredError: organization_id or period_id missing.
    - UnresolvedAccountError: roles unbound, or line accounts outside the
      organization.
    - ImbalanceError: generated lines do not balance.
    - DuplicatePostingError: reference or entry already posted.
    - ValidationError: propagated from the engines.

Usage:
    with session_scope() as session:
        service = PostingService(session, config=load_default_config())
        result = service.post(tx, organization_id=org, period_id=period)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_config.bridges import bind_roles
from ledger_config.loader import load_default_config
from ledger_config.schema import LedgerConfig
from ledger_engines.posting import PostingEngine, TransactionInput
from ledger_engines.tax import TaxCalculationResult
from ledger_kernel.domain.balance import BalanceCheck, check_balance, require_balanced
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import EntryLine
from ledger_kernel.domain.roles import ResolvedAccounts
from ledger_kernel.exceptions import (
    DuplicatePostingError,
    LedgerError,
    ScopeRequiredError,
    UnresolvedAccountError,
    ValidationError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.selectors.ledger_selector import LedgerSelector

logger = get_logger("services.posting")

_LINE_DETAIL_FIELDS = (
    "product_id",
    "quantity",
    "unit_cost",
    "total_gross",
    "total_net",
    "icms_value",
    "ipi_value",
    "pis_value",
    "cofins_value",
    "icms_st_value",
    "icms_rate",
    "ipi_rate",
    "pis_rate",
    "cofins_rate",
    "mva_rate",
)


@dataclass(frozen=True)
class PostingResult:
    """What was written for one transaction."""

    entry_id: UUID
    lines: tuple[EntryLine, ...]
    balance: BalanceCheck
    taxes: TaxCalculationResult | None = None


class PostingService:
    """
    Posts commercial transactions to the ledger.

    Contract:
        ``post()`` either adds a journal entry with a complete, balanced line
        set to the session or raises; it never leaves partial lines.

    Non-goals:
        - Does not commit: the caller owns the session and its scope.
        - Does not arbitrate concurrent edits beyond the uniqueness
          constraint on the transaction reference.
    """

    def __init__(
        self,
        session: Session,
        engine: PostingEngine | None = None,
        config: LedgerConfig | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._engine = engine or PostingEngine()
        self._config = config or load_default_config()
        self._clock = clock or SystemClock()
        self._selector = LedgerSelector(session)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def post(
        self,
        transaction: TransactionInput,
        organization_id: UUID,
        period_id: UUID,
        entry_date: date | None = None,
        description: str = "",
        resolved_accounts: ResolvedAccounts | None = None,
        user_id: UUID | None = None,
    ) -> PostingResult:
        """
        Generate, validate and persist the lines of one transaction.

        Args:
            transaction: The commercial transaction.
            organization_id / period_id: Scope of the entry.
            entry_date: Entry date when a new entry is created (defaults
                to the clock's date).
            description: Entry description when a new entry is created.
            resolved_accounts: Role map; built from the configuration and
                the organization's chart when omitted.
            user_id: Recorded as created_by_id.
        """
        if organization_id is None:
            raise ScopeRequiredError("organization_id")
        if period_id is None:
            raise ScopeRequiredError("accounting_period_id")

        with LogContext.bind(
            organization_id=organization_id,
            period_id=period_id,
            user_id=user_id,
            correlation_id=transaction.transaction_reference,
        ):
            logger.info("posting_started", extra={
                "journal_entry_id": str(transaction.journal_entry_id),
                "operation_kind": transaction.operation_kind,
            })
            try:
                result = self._post(
                    transaction,
                    organization_id,
                    period_id,
                    entry_date,
                    description,
                    resolved_accounts,
                    user_id,
                )
            except LedgerError:
                logger.error("posting_failed", exc_info=True, extra={
                    "journal_entry_id": str(transaction.journal_entry_id),
                })
                raise

            logger.info("posting_completed", extra={
                "journal_entry_id": str(result.entry_id),
                "line_count": len(result.lines),
                "total_debits": str(result.balance.total_debits),
            })
            return result

    def verify_entry(
        self,
        entry_id: UUID,
        organization_id: UUID,
        period_id: UUID,
    ) -> BalanceCheck:
        """
        Re-check a stored entry's lines against the double-entry invariant.

        Only lines of an entry inside the given scope are read; an entry of
        another organization or period yields an empty check.
        """
        if organization_id is None:
            raise ScopeRequiredError("organization_id")
        if period_id is None:
            raise ScopeRequiredError("accounting_period_id")

        rows = self._session.scalars(
            select(JournalLine)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(
                JournalLine.journal_entry_id == entry_id,
                JournalEntry.organization_id == organization_id,
                JournalEntry.accounting_period_id == period_id,
            )
        ).all()
        check = check_balance(rows)
        if not check.is_balanced:
            logger.warning("stored_entry_unbalanced", extra={
                "journal_entry_id": str(entry_id),
                "total_debits": str(check.total_debits),
                "total_credits": str(check.total_credits),
            })
        return check

    def post_lines(
        self,
        entry_id: UUID,
        lines: tuple[EntryLine, ...] | list[EntryLine],
        organization_id: UUID,
        period_id: UUID,
        entry_date: date | None = None,
        description: str = "",
        transaction_reference: str | None = None,
        user_id: UUID | None = None,
    ) -> BalanceCheck:
        """
        Persist a caller-built line set (manual entries, closing lines).

        The same checks apply as for ``post()``: balance, account scope and
        at-most-once per reference.
        """
        if organization_id is None:
            raise ScopeRequiredError("organization_id")
        if period_id is None:
            raise ScopeRequiredError("accounting_period_id")

        with LogContext.bind(
            organization_id=organization_id,
            period_id=period_id,
            user_id=user_id,
            correlation_id=transaction_reference,
        ):
            try:
                if transaction_reference is not None:
                    self._reject_duplicate_reference(organization_id, transaction_reference)
                check = self._persist(
                    entry_id,
                    tuple(lines),
                    organization_id,
                    period_id,
                    entry_date,
                    description,
                    transaction_reference,
                    user_id,
                )
            except LedgerError:
                logger.error("posting_failed", exc_info=True, extra={
                    "journal_entry_id": str(entry_id),
                })
                raise
            logger.info("lines_posted", extra={
                "journal_entry_id": str(entry_id),
                "line_count": check.line_count,
            })
            return check

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _post(
        self,
        tx: TransactionInput,
        organization_id: UUID,
        period_id: UUID,
        entry_date: date | None,
        description: str,
        resolved_accounts: ResolvedAccounts | None,
        user_id: UUID | None,
    ) -> PostingResult:
        if tx.transaction_reference is not None:
            self._reject_duplicate_reference(organization_id, tx.transaction_reference)

        if not tx.has_explicit_rates:
            tx = replace(tx, rates=self._config.rates_for(tx.rates))
        if resolved_accounts is None:
            resolved_accounts = self._resolve_roles(organization_id, period_id)

        plan = self._engine.plan(tx)
        lines = self._engine.lines_for_plan(plan, resolved_accounts)
        stored = self._persist(
            tx.journal_entry_id,
            lines,
            organization_id,
            period_id,
            entry_date,
            description or tx.memo or tx.operation_kind,
            tx.transaction_reference,
            user_id,
        )
        return PostingResult(
            entry_id=tx.journal_entry_id,
            lines=lines,
            balance=stored,
            taxes=plan.taxes,
        )

    def _persist(
        self,
        entry_id: UUID,
        lines: tuple[EntryLine, ...],
        organization_id: UUID,
        period_id: UUID,
        entry_date: date | None,
        description: str,
        transaction_reference: str | None,
        user_id: UUID | None,
    ) -> BalanceCheck:
        require_balanced(lines, entry_id=entry_id)
        self._check_accounts_in_scope(organization_id, lines)

        entry = self._get_or_create_entry(
            entry_id,
            organization_id,
            period_id,
            entry_date,
            description,
            transaction_reference,
            user_id,
        )
        for seq, line in enumerate(lines, start=1):
            entry.lines.append(
                JournalLine(
                    account_id=line.account_id,
                    line_seq=seq,
                    debit=line.debit,
                    credit=line.credit,
                    memo=line.memo or None,
                    role=line.role,
                    created_by_id=user_id,
                    **{name: getattr(line, name) for name in _LINE_DETAIL_FIELDS},
                )
            )

        try:
            self._session.flush()
        except IntegrityError as exc:
            self._session.rollback()
            logger.warning("posting_conflict", extra={
                "journal_entry_id": str(entry_id),
            })
            raise DuplicatePostingError(transaction_reference or str(entry_id)) from exc

        return require_balanced(entry.lines, entry_id=entry.id)

    def _resolve_roles(self, organization_id: UUID, period_id: UUID) -> ResolvedAccounts:
        accounts = self._selector.fetch_accounts(organization_id, period_id)
        return bind_roles(self._config, accounts)

    def _reject_duplicate_reference(self, organization_id: UUID, reference: str) -> None:
        existing = self._session.scalar(
            select(JournalEntry.id).where(
                JournalEntry.organization_id == organization_id,
                JournalEntry.transaction_reference == reference,
            )
        )
        if existing is not None:
            raise DuplicatePostingError(reference)

    def _check_accounts_in_scope(
        self, organization_id: UUID, lines: tuple[EntryLine, ...]
    ) -> None:
        wanted = {line.account_id for line in lines}
        found = set(
            self._session.scalars(
                select(Account.id).where(
                    Account.organization_id == organization_id,
                    Account.id.in_(wanted),
                )
            ).all()
        )
        outside = wanted - found
        if outside:
            raise UnresolvedAccountError(sorted(f"account:{a}" for a in outside))

    def _get_or_create_entry(
        self,
        entry_id: UUID,
        organization_id: UUID,
        period_id: UUID,
        entry_date: date | None,
        description: str,
        transaction_reference: str | None,
        user_id: UUID | None,
    ) -> JournalEntry:
        """Attach to an existing empty entry of the same scope, or create one."""
        entry = self._session.get(JournalEntry, entry_id)
        if entry is None:
            entry = JournalEntry(
                id=entry_id,
                organization_id=organization_id,
                accounting_period_id=period_id,
                entry_date=entry_date or self._clock.today(),
                description=description or None,
                transaction_reference=transaction_reference,
                created_by_id=user_id,
            )
            self._session.add(entry)
            return entry

        if (
            entry.organization_id != organization_id
            or entry.accounting_period_id != period_id
        ):
            raise ValidationError(
                "journal_entry_id",
                entry_id,
                "entry belongs to another organization or period",
            )
        if entry.lines:
            raise DuplicatePostingError(str(entry_id))
        if transaction_reference is not None:
            entry.transaction_reference = transaction_reference
        return entry
