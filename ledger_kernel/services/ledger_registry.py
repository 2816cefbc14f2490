"""
LedgerRegistry -- transactional entry points for ledger master data.

Responsibility:
    createLedger / updateLedger / deleteLedger as whole transactions with
    typed results, plus company creation for callers that provision books.

Architecture position:
    Kernel > Services.  TransactionBoundary over LedgerService.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ledger_kernel.domain.nature import LedgerGroup
from ledger_kernel.exceptions import CompanyNotFoundError, LedgerKernelError, ValidationError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.company import Company
from ledger_kernel.services.base import TransactionBoundary
from ledger_kernel.services.ledger_service import LedgerService

logger = get_logger("services.ledger_registry")


class LedgerOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class LedgerResult:
    status: LedgerOutcome
    ledger_id: UUID | None = None
    error: LedgerKernelError | None = None

    @property
    def is_success(self) -> bool:
        return self.status is not LedgerOutcome.REJECTED

    @property
    def code(self) -> str | None:
        return self.error.code if self.error is not None else None


class LedgerRegistry(TransactionBoundary):
    """
    Ledger master-data operations.

    Contract:
        Same as VoucherEngine: rejections are returned, store failures raise
        TransactionFailureError.  Balances only change through vouchers;
        the opening balance is fixed at creation.
    """

    def __init__(self, session: Session, auto_commit: bool = True):
        super().__init__(session, auto_commit=auto_commit)
        self._ledgers = LedgerService(session)

    def create_company(
        self,
        *,
        name: str,
        actor_id: UUID,
        financial_year_start: date | None = None,
        financial_year_end: date | None = None,
    ) -> Company:
        """
        Create a company.  Raises ValidationError on a bad financial year;
        provisioning is an administrative path, not an end-user one.
        """
        if (financial_year_start is None) != (financial_year_end is None):
            raise ValidationError("Financial year needs both a start and an end")
        if financial_year_start is not None and financial_year_start > financial_year_end:
            raise ValidationError("Financial year start is after its end")

        def body() -> Company:
            company = Company(
                name=name,
                financial_year_start=financial_year_start,
                financial_year_end=financial_year_end,
                created_by_id=actor_id,
            )
            self.session.add(company)
            self.session.flush()
            return company

        company, error = self._guarded("create_company", body)
        if error is not None:
            raise error
        logger.info("company_created", extra={"company_id": str(company.id)})
        return company

    def create_ledger(
        self,
        *,
        company_id: UUID,
        name: str,
        group: LedgerGroup | str,
        actor_id: UUID,
        sub_group: str | None = None,
        opening_balance: Decimal | int | str | None = None,
        assigned_operator_id: UUID | None = None,
    ) -> LedgerResult:
        """Create a ledger whose current balance starts at its opening balance."""
        start = time.monotonic()
        with LogContext.bind(correlation_id=uuid4(), company_id=company_id, actor_id=actor_id):

            def body():
                if self.session.get(Company, company_id) is None:
                    raise CompanyNotFoundError(company_id)
                return self._ledgers.create(
                    company_id=company_id,
                    name=name,
                    group=group,
                    actor_id=actor_id,
                    sub_group=sub_group,
                    opening_balance=opening_balance,
                    assigned_operator_id=assigned_operator_id,
                )

            ledger, error = self._guarded("create_ledger", body)
            if error is not None:
                return self._rejected("create_ledger", error, start)
            logger.info(
                "ledger_created",
                extra={
                    "ledger_id": str(ledger.id),
                    "group_name": ledger.group_name,
                    "opening_balance": ledger.opening_balance,
                    "duration_ms": round((time.monotonic() - start) * 1000, 2),
                },
            )
            return LedgerResult(status=LedgerOutcome.CREATED, ledger_id=ledger.id)

    def update_ledger(
        self,
        ledger_id: UUID,
        *,
        actor_id: UUID,
        name: str | None = None,
        group: LedgerGroup | str | None = None,
        sub_group: str | None = None,
    ) -> LedgerResult:
        """Rename, regroup or re-tag a ledger.  None leaves a field unchanged."""
        start = time.monotonic()
        with LogContext.bind(correlation_id=uuid4(), actor_id=actor_id, ledger_id=ledger_id):
            ledger, error = self._guarded(
                "update_ledger",
                lambda: self._ledgers.update(
                    ledger_id, actor_id=actor_id, name=name, group=group, sub_group=sub_group
                ),
            )
            if error is not None:
                return self._rejected("update_ledger", error, start)
            logger.info("ledger_updated", extra={"group_name": ledger.group_name})
            return LedgerResult(status=LedgerOutcome.UPDATED, ledger_id=ledger.id)

    def delete_ledger(self, ledger_id: UUID, *, actor_id: UUID) -> LedgerResult:
        """
        Delete a ledger nothing references.

        Returns:
            DELETED, or REJECTED with LedgerNotFoundError or
            LedgerHasTransactionsError.
        """
        start = time.monotonic()
        with LogContext.bind(correlation_id=uuid4(), actor_id=actor_id, ledger_id=ledger_id):
            _, error = self._guarded("delete_ledger", lambda: self._ledgers.delete(ledger_id))
            if error is not None:
                return self._rejected("delete_ledger", error, start)
            logger.warning("ledger_deleted")
            return LedgerResult(status=LedgerOutcome.DELETED, ledger_id=ledger_id)

    def _rejected(self, operation: str, error: LedgerKernelError, start: float) -> LedgerResult:
        logger.warning(
            "ledger_operation_rejected",
            extra={
                "operation": operation,
                "code": error.code,
                "reason": str(error),
                "duration_ms": round((time.monotonic() - start) * 1000, 2),
            },
        )
        return LedgerResult(status=LedgerOutcome.REJECTED, error=error)
