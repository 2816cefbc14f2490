"""
ReconciliationService -- recompute ledger balances from entries.

Responsibility:
    Detects drift between the cached ``ledgers.current_balance`` and
    ``opening_balance + sum(nature-aware delta of active entries)``, and
    optionally rewrites drifting balances to the recomputed value.

Architecture position:
    Kernel > Services.  TransactionBoundary for repair(); check() only
    reads.  Used by the Bulk Importer to replay or back out history and by
    scripts/reconcile_balances.py.

Audit relevance:
    Each drift found is logged as balance_drift_detected; each correction
    as balance_drift_repaired with the before and after values.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.nature import nature, signed_delta
from ledger_kernel.exceptions import CompanyNotFoundError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.company import Company
from ledger_kernel.models.ledger import Ledger
from ledger_kernel.models.voucher import Voucher, VoucherEntry, VoucherStatus
from ledger_kernel.services.base import TransactionBoundary
from ledger_kernel.services.ledger_service import LedgerService

logger = get_logger("services.reconciliation")


@dataclass(frozen=True)
class BalanceDrift:
    """One ledger whose cached balance disagrees with its entries."""

    ledger_id: UUID
    ledger_name: str
    group_name: str
    opening_balance: Decimal
    stored_balance: Decimal
    recomputed_balance: Decimal

    @property
    def drift(self) -> Decimal:
        return self.stored_balance - self.recomputed_balance


@dataclass(frozen=True)
class ReconciliationReport:
    company_id: UUID
    ledgers_checked: int
    drifts: tuple[BalanceDrift, ...]
    repaired: bool = False

    @property
    def is_clean(self) -> bool:
        return not self.drifts


class ReconciliationService(TransactionBoundary):
    """Drift detection and repair for cached ledger balances."""

    def __init__(self, session: Session, auto_commit: bool = True):
        super().__init__(session, auto_commit=auto_commit)
        self._ledgers = LedgerService(session)

    def entry_movements(self, company_id: UUID) -> dict[UUID, Decimal]:
        """
        Nature-aware sum of active entries per ledger.

        Ledgers without active entries are absent from the result.
        """
        rows = self.session.execute(
            select(
                VoucherEntry.ledger_id,
                Ledger.group_name,
                VoucherEntry.debit,
                VoucherEntry.credit,
            )
            .join(Voucher, VoucherEntry.voucher_id == Voucher.id)
            .join(Ledger, VoucherEntry.ledger_id == Ledger.id)
            .where(
                Voucher.company_id == company_id,
                Voucher.status == VoucherStatus.ACTIVE,
            )
        ).all()

        totals: dict[UUID, Decimal] = {}
        for ledger_id, group_name, debit, credit in rows:
            totals[ledger_id] = totals.get(ledger_id, ZERO) + signed_delta(
                nature(group_name), debit, credit
            )
        return totals

    def check(self, company_id: UUID) -> ReconciliationReport:
        """
        Compare every ledger of the company against its entries.

        Raises:
            CompanyNotFoundError: Unknown company.
        """
        if self.session.get(Company, company_id) is None:
            raise CompanyNotFoundError(company_id)

        ledgers = self.session.execute(
            select(Ledger)
            .where(Ledger.company_id == company_id)
            .order_by(Ledger.name, Ledger.id)
            .execution_options(populate_existing=True)
        ).scalars().all()
        drifts = self._drifts(ledgers, self.entry_movements(company_id))

        with LogContext.bind(company_id=company_id):
            for d in drifts:
                logger.warning(
                    "balance_drift_detected",
                    extra={
                        "ledger_id": str(d.ledger_id),
                        "stored_balance": d.stored_balance,
                        "recomputed_balance": d.recomputed_balance,
                        "drift": d.drift,
                    },
                )
        return ReconciliationReport(
            company_id=company_id,
            ledgers_checked=len(ledgers),
            drifts=tuple(drifts),
        )

    def repair(self, company_id: UUID, *, actor_id: UUID) -> ReconciliationReport:
        """
        Rewrite every drifting balance to its recomputed value, atomically.

        Returns:
            The drifts that were corrected (repaired=True).

        Raises:
            CompanyNotFoundError: Unknown company.
            TransactionFailureError: The store failed; nothing was changed.
        """
        start = time.monotonic()

        def body() -> ReconciliationReport:
            if self.session.get(Company, company_id) is None:
                raise CompanyNotFoundError(company_id)
            ids = self.session.execute(
                select(Ledger.id).where(Ledger.company_id == company_id)
            ).scalars().all()
            locked = self._ledgers.lock_ledgers(ids, company_id)
            ordered = sorted(locked.values(), key=lambda led: (led.name, str(led.id)))
            drifts = self._drifts(ordered, self.entry_movements(company_id))
            for d in drifts:
                self._ledgers.restate_balance(
                    locked[d.ledger_id],
                    current_balance=d.recomputed_balance,
                    actor_id=actor_id,
                )
                logger.warning(
                    "balance_drift_repaired",
                    extra={
                        "ledger_id": str(d.ledger_id),
                        "from_balance": d.stored_balance,
                        "to_balance": d.recomputed_balance,
                    },
                )
            self.session.flush()
            return ReconciliationReport(
                company_id=company_id,
                ledgers_checked=len(ordered),
                drifts=tuple(drifts),
                repaired=True,
            )

        with LogContext.bind(company_id=company_id, actor_id=actor_id):
            report, error = self._guarded("repair_balances", body)
            if error is not None:
                raise error
            logger.info(
                "balance_repair_completed",
                extra={
                    "ledgers_checked": report.ledgers_checked,
                    "ledgers_repaired": len(report.drifts),
                    "duration_ms": round((time.monotonic() - start) * 1000, 2),
                },
            )
            return report

    @staticmethod
    def _drifts(
        ledgers: list[Ledger],
        movements: dict[UUID, Decimal],
    ) -> list[BalanceDrift]:
        drifts = []
        for ledger in ledgers:
            expected = ledger.opening_balance + movements.get(ledger.id, ZERO)
            if expected != ledger.current_balance:
                drifts.append(
                    BalanceDrift(
                        ledger_id=ledger.id,
                        ledger_name=ledger.name,
                        group_name=ledger.group_name,
                        opening_balance=ledger.opening_balance,
                        stored_balance=ledger.current_balance,
                        recomputed_balance=expected,
                    )
                )
        return drifts
