"""
VoucherEngine -- create, update, cancel and delete vouchers.

Responsibility:
    The single entry point that changes vouchers and, through the Ledger
    Store, ledger balances.  Each public method is one transaction.

Architecture position:
    Kernel > Services.  TransactionBoundary: owns commit/rollback.
    Uses LedgerService (balances), VoucherSequencer (numbers) and the pure
    domain (line validation, nature rule, cash projection).

Invariants enforced:
    - Every active voucher balances (sum debit == sum credit).
    - current_balance = opening_balance + sum of active entry deltas, for
      every ledger, after every operation: reversal of the old effect and
      application of the new effect happen in the same transaction.
    - No Cash-in-hand ledger is driven below zero by create or update; the
      check runs on locked rows before any write.
    - Cancelled vouchers keep their (zeroed) entries and cannot be
      re-cancelled or edited.

Failure modes (returned as VoucherResult.error, never raised):
    - ValidationError subclasses, NotFoundError subclasses,
      NegativeCashBalanceError, VoucherStateError subclasses.
    Raised:
    - TransactionFailureError if the store fails; the session is rolled back.

Audit relevance:
    Every outcome is logged (voucher_created, voucher_updated,
    voucher_cancelled, voucher_deleted, voucher_rejected) with company,
    actor and voucher in the log context.  Cancellation stamps
    cancelled_at/cancelled_by_id and appends a note to the narration.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import to_money
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.entries import (
    EntryLine,
    Movement,
    movements_by_ledger,
    projected_cash_balance,
    validate_voucher_lines,
)
from ledger_kernel.exceptions import (
    CompanyNotFoundError,
    DateOutsideFinancialYearError,
    LedgerKernelError,
    NegativeCashBalanceError,
    ValidationError,
    VoucherAlreadyCancelledError,
    VoucherCancelledError,
    VoucherNotFoundError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.company import Company
from ledger_kernel.models.ledger import Ledger
from ledger_kernel.models.voucher import Voucher, VoucherEntry, VoucherStatus, VoucherType
from ledger_kernel.services.base import TransactionBoundary
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.sequence_service import VoucherSequencer

logger = get_logger("services.voucher_engine")

CASH_TRANSFER_NARRATION = "Cash Transfer from Operator to Main"


class VoucherOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    CANCELLED = "cancelled"
    DELETED = "deleted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class VoucherResult:
    """Outcome of a Voucher Engine operation."""

    status: VoucherOutcome
    voucher_id: UUID | None = None
    voucher_number: str | None = None
    error: LedgerKernelError | None = None

    @property
    def is_success(self) -> bool:
        return self.status is not VoucherOutcome.REJECTED

    @property
    def code(self) -> str | None:
        return self.error.code if self.error is not None else None

    @property
    def message(self) -> str | None:
        return str(self.error) if self.error is not None else None

    @classmethod
    def rejected(cls, error: LedgerKernelError, voucher_id: UUID | None = None) -> VoucherResult:
        return cls(status=VoucherOutcome.REJECTED, voucher_id=voucher_id, error=error)


def coerce_voucher_type(value: VoucherType | str) -> VoucherType:
    try:
        return VoucherType(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown voucher type: {value!r}") from exc


def coerce_date(value: date | datetime | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValidationError(f"Invalid voucher date: {value!r}") from exc
    raise ValidationError(f"Invalid voucher date: {value!r}")


class VoucherEngine(TransactionBoundary):
    """
    Voucher lifecycle state machine.

    Contract:
        Callers have already authenticated and authorized the actor.
        Validation and business-rule failures come back as a REJECTED
        VoucherResult; only TransactionFailureError is raised.

    Non-goals:
        No retries.  No re-activation of cancelled vouchers.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, auto_commit=auto_commit)
        self._clock = clock or SystemClock()
        self._ledgers = LedgerService(session)
        self._sequencer = VoucherSequencer(session)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def create_voucher(
        self,
        *,
        company_id: UUID,
        voucher_type: VoucherType | str,
        voucher_date: date | str,
        narration: str | None,
        created_by: UUID,
        entries: Iterable[EntryLine | Mapping],
    ) -> VoucherResult:
        """
        Record a new voucher and propagate its lines into ledger balances.

        Preconditions:
            The caller verified the actor may post to company_id.

        Returns:
            CREATED with the assigned number, or REJECTED with one of
            ValidationError, CompanyNotFoundError, LedgerNotFoundError,
            NegativeCashBalanceError.
        """
        start = time.monotonic()
        with LogContext.bind(
            correlation_id=uuid4(), company_id=company_id, actor_id=created_by
        ):
            voucher, error = self._guarded(
                "create_voucher",
                lambda: self._create(
                    company_id=company_id,
                    voucher_type=voucher_type,
                    voucher_date=voucher_date,
                    narration=narration,
                    created_by=created_by,
                    entries=entries,
                ),
            )
            if error is not None:
                return self._rejected("create_voucher", error, start)

            logger.info(
                "voucher_created",
                extra={
                    "voucher_id": str(voucher.id),
                    "voucher_number": voucher.voucher_number,
                    "voucher_type": voucher.voucher_type.value,
                    "line_count": len(voucher.entries),
                    "duration_ms": _elapsed_ms(start),
                },
            )
            return VoucherResult(
                status=VoucherOutcome.CREATED,
                voucher_id=voucher.id,
                voucher_number=voucher.voucher_number,
            )

    def update_voucher(
        self,
        voucher_id: UUID,
        *,
        voucher_date: date | str,
        narration: str | None,
        entries: Iterable[EntryLine | Mapping],
        actor_id: UUID,
        voucher_type: VoucherType | str | None = None,
    ) -> VoucherResult:
        """
        Replace a voucher's header and lines.

        The old lines' effects are reversed and the new lines' effects are
        applied in one transaction.  Passing a different voucher_type
        renumbers the voucher under the new type's prefix.

        Preconditions:
            The caller verified admin privilege.

        Returns:
            UPDATED, or REJECTED with VoucherNotFoundError,
            VoucherCancelledError, ValidationError, LedgerNotFoundError or
            NegativeCashBalanceError.
        """
        start = time.monotonic()
        with LogContext.bind(
            correlation_id=uuid4(), actor_id=actor_id, voucher_id=voucher_id
        ):
            voucher, error = self._guarded(
                "update_voucher",
                lambda: self._update(
                    voucher_id,
                    voucher_date=voucher_date,
                    narration=narration,
                    entries=entries,
                    actor_id=actor_id,
                    voucher_type=voucher_type,
                ),
            )
            if error is not None:
                return self._rejected("update_voucher", error, start, voucher_id)

            logger.info(
                "voucher_updated",
                extra={
                    "voucher_number": voucher.voucher_number,
                    "line_count": len(voucher.entries),
                    "duration_ms": _elapsed_ms(start),
                },
            )
            return VoucherResult(
                status=VoucherOutcome.UPDATED,
                voucher_id=voucher.id,
                voucher_number=voucher.voucher_number,
            )

    def cancel_voucher(
        self,
        voucher_id: UUID,
        *,
        actor_id: UUID,
        actor_label: str | None = None,
    ) -> VoucherResult:
        """
        Cancel a voucher: reverse its effects, zero its lines, mark it.

        Args:
            voucher_id: Voucher to cancel.
            actor_id: Who cancels (stored in cancelled_by_id).
            actor_label: Human-readable actor (e.g. an email) for the
                narration note; defaults to actor_id.

        Returns:
            CANCELLED, or REJECTED with VoucherNotFoundError or
            VoucherAlreadyCancelledError.
        """
        start = time.monotonic()
        with LogContext.bind(
            correlation_id=uuid4(), actor_id=actor_id, voucher_id=voucher_id
        ):
            voucher, error = self._guarded(
                "cancel_voucher",
                lambda: self._cancel(voucher_id, actor_id, actor_label or str(actor_id)),
            )
            if error is not None:
                return self._rejected("cancel_voucher", error, start, voucher_id)

            logger.info(
                "voucher_cancelled",
                extra={
                    "voucher_number": voucher.voucher_number,
                    "duration_ms": _elapsed_ms(start),
                },
            )
            return VoucherResult(
                status=VoucherOutcome.CANCELLED,
                voucher_id=voucher.id,
                voucher_number=voucher.voucher_number,
            )

    def delete_voucher(self, voucher_id: UUID, *, actor_id: UUID) -> VoucherResult:
        """
        Irreversibly remove a voucher after reversing its effects.

        Returns:
            DELETED, or REJECTED with VoucherNotFoundError.
        """
        start = time.monotonic()
        with LogContext.bind(
            correlation_id=uuid4(), actor_id=actor_id, voucher_id=voucher_id
        ):
            number, error = self._guarded(
                "delete_voucher", lambda: self._delete(voucher_id)
            )
            if error is not None:
                return self._rejected("delete_voucher", error, start, voucher_id)

            logger.warning(
                "voucher_deleted",
                extra={"voucher_number": number, "duration_ms": _elapsed_ms(start)},
            )
            return VoucherResult(
                status=VoucherOutcome.DELETED,
                voucher_id=voucher_id,
                voucher_number=number,
            )

    def transfer_cash(
        self,
        *,
        company_id: UUID,
        from_ledger_id: UUID,
        to_ledger_id: UUID,
        amount: Decimal | int | str,
        voucher_date: date | str,
        actor_id: UUID,
        narration: str = CASH_TRANSFER_NARRATION,
    ) -> VoucherResult:
        """
        Move cash between two ledgers (an operator's cash box to the main
        cash account) as a journal voucher.

        Debits to_ledger_id, credits from_ledger_id; the usual create
        validation applies, so the source cash box cannot go negative.
        """
        try:
            value = to_money(amount)
        except ValueError as exc:
            return VoucherResult.rejected(ValidationError(str(exc)))
        return self.create_voucher(
            company_id=company_id,
            voucher_type=VoucherType.JOURNAL,
            voucher_date=voucher_date,
            narration=narration,
            created_by=actor_id,
            entries=[
                EntryLine(ledger_id=to_ledger_id, debit=value),
                EntryLine(ledger_id=from_ledger_id, credit=value),
            ],
        )

    # ------------------------------------------------------------------
    # Transaction bodies
    # ------------------------------------------------------------------

    def _create(
        self,
        *,
        company_id: UUID,
        voucher_type: VoucherType | str,
        voucher_date: date | str,
        narration: str | None,
        created_by: UUID,
        entries: Iterable[EntryLine | Mapping],
    ) -> Voucher:
        company = self._get_company(company_id)
        vtype = coerce_voucher_type(voucher_type)
        vdate = self._check_date(company, voucher_date)
        lines = validate_voucher_lines(entries)

        new_movements = movements_by_ledger(lines)
        ledgers = self._ledgers.lock_ledgers(new_movements, company_id)
        self._check_cash(ledgers, old={}, new=new_movements)

        voucher = Voucher(
            company_id=company_id,
            voucher_type=vtype,
            voucher_number=self._sequencer.next(company_id, vtype),
            voucher_date=vdate,
            narration=narration,
            status=VoucherStatus.ACTIVE,
            seq=self._sequencer.next_seq(company_id),
            created_by_id=created_by,
            entries=_build_entries(lines),
        )
        self.session.add(voucher)

        for line in lines:
            self._ledgers.apply_movement(ledgers[line.ledger_id], line.debit, line.credit)

        self.session.flush()
        return voucher

    def _update(
        self,
        voucher_id: UUID,
        *,
        voucher_date: date | str,
        narration: str | None,
        entries: Iterable[EntryLine | Mapping],
        actor_id: UUID,
        voucher_type: VoucherType | str | None,
    ) -> Voucher:
        voucher = self._lock_voucher(voucher_id)
        if voucher.is_cancelled:
            raise VoucherCancelledError(voucher.id, voucher.voucher_number)

        company = self._get_company(voucher.company_id)
        vtype = coerce_voucher_type(voucher_type) if voucher_type is not None else voucher.voucher_type
        vdate = self._check_date(company, voucher_date)
        new_lines = validate_voucher_lines(entries)

        old_lines = [EntryLine(e.ledger_id, e.debit, e.credit) for e in voucher.entries]
        old_movements = movements_by_ledger(old_lines)
        new_movements = movements_by_ledger(new_lines)
        ledgers = self._ledgers.lock_ledgers(
            [*old_movements, *new_movements], voucher.company_id
        )
        self._check_cash(ledgers, old=old_movements, new=new_movements)

        # Reverse
        for line in old_lines:
            self._ledgers.apply_movement(
                ledgers[line.ledger_id], line.debit, line.credit, reverse=True
            )

        # Replace
        voucher.entries.clear()
        self.session.flush()
        voucher.entries.extend(_build_entries(new_lines))
        if vtype != voucher.voucher_type:
            voucher.voucher_number = self._sequencer.next(voucher.company_id, vtype)
            voucher.voucher_type = vtype
        voucher.voucher_date = vdate
        voucher.narration = narration
        voucher.updated_by_id = actor_id

        # Reapply
        for line in new_lines:
            self._ledgers.apply_movement(ledgers[line.ledger_id], line.debit, line.credit)

        self.session.flush()
        return voucher

    def _cancel(self, voucher_id: UUID, actor_id: UUID, actor_label: str) -> Voucher:
        voucher = self._lock_voucher(voucher_id)
        if voucher.is_cancelled:
            raise VoucherAlreadyCancelledError(voucher.id, voucher.voucher_number)

        ledgers = self._ledgers.lock_ledgers(
            [e.ledger_id for e in voucher.entries], voucher.company_id
        )
        for entry in voucher.entries:
            self._ledgers.apply_movement(
                ledgers[entry.ledger_id], entry.debit, entry.credit, reverse=True
            )
            entry.debit = Decimal("0")
            entry.credit = Decimal("0")

        now = self._clock.now()
        note = f"[Cancelled by {actor_label} at {now.isoformat()}]"
        voucher.narration = f"{voucher.narration} {note}" if voucher.narration else note
        voucher.status = VoucherStatus.CANCELLED
        voucher.cancelled_at = now
        voucher.cancelled_by_id = actor_id
        voucher.updated_by_id = actor_id

        self.session.flush()
        return voucher

    def _delete(self, voucher_id: UUID) -> str:
        voucher = self._lock_voucher(voucher_id)
        number = voucher.voucher_number

        ledgers = self._ledgers.lock_ledgers(
            [e.ledger_id for e in voucher.entries], voucher.company_id
        )
        for entry in voucher.entries:
            self._ledgers.apply_movement(
                ledgers[entry.ledger_id], entry.debit, entry.credit, reverse=True
            )

        self.session.delete(voucher)
        self.session.flush()
        return number

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_company(self, company_id: UUID) -> Company:
        company = self.session.get(Company, company_id)
        if company is None:
            raise CompanyNotFoundError(company_id)
        return company

    def _lock_voucher(self, voucher_id: UUID) -> Voucher:
        voucher = self.session.execute(
            select(Voucher)
            .where(Voucher.id == voucher_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if voucher is None:
            raise VoucherNotFoundError(voucher_id)
        return voucher

    @staticmethod
    def _check_date(company: Company, voucher_date: date | str) -> date:
        vdate = coerce_date(voucher_date)
        if not company.in_financial_year(vdate):
            raise DateOutsideFinancialYearError(
                vdate, company.financial_year_start, company.financial_year_end
            )
        return vdate

    @staticmethod
    def _check_cash(
        ledgers: dict[UUID, Ledger],
        *,
        old: dict[UUID, Movement],
        new: dict[UUID, Movement],
    ) -> None:
        """Reject if any Cash-in-hand ledger would end below zero."""
        for ledger_id in dict.fromkeys([*old, *new]):
            ledger = ledgers[ledger_id]
            if not ledger.is_cash_in_hand:
                continue
            projected = projected_cash_balance(
                ledger.current_balance, old.get(ledger_id), new.get(ledger_id)
            )
            if projected < 0:
                raise NegativeCashBalanceError(ledger.id, ledger.name, projected)

    def _rejected(
        self,
        operation: str,
        error: LedgerKernelError,
        start: float,
        voucher_id: UUID | None = None,
    ) -> VoucherResult:
        logger.warning(
            "voucher_rejected",
            extra={
                "operation": operation,
                "code": error.code,
                "reason": str(error),
                "duration_ms": _elapsed_ms(start),
            },
        )
        return VoucherResult.rejected(error, voucher_id)


def _build_entries(lines: Iterable[EntryLine]) -> list[VoucherEntry]:
    return [
        VoucherEntry(
            ledger_id=line.ledger_id,
            line_seq=index,
            debit=line.debit,
            credit=line.credit,
        )
        for index, line in enumerate(lines)
    ]


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 2)
