"""
BulkImporter -- wipe a company's books and rebuild them from a feed.

Responsibility:
    Replace all ledgers, vouchers and voucher-number counters of one company
    with an opening trial balance and (optionally) a transaction history.

Architecture position:
    Ingestion > Services.  TransactionBoundary: the whole import is one
    transaction.  Writes through LedgerService, VoucherSequencer and
    ReconciliationService; row parsing lives in ledger_ingestion.domain.

Invariants enforced:
    - All or nothing: any row failure rolls back the wipe as well.
    - Every imported voucher balances.
    - Ledger balances follow the chosen BalanceTreatment:
        AS_IS    opening = current = trial balance; history stored only.
        OPENING  current = opening + history.
        CLOSING  current = trial balance, opening = trial balance - history.

Failure modes (returned in ImportResult.error):
    - ImportRowError for the first row that cannot be mapped.
    - CompanyNotFoundError.
    Raised:
    - TransactionFailureError if the store fails.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ledger_config.schema import BalanceTreatment, ImportSettings
from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.entries import EntryLine, validate_voucher_lines
from ledger_kernel.exceptions import CompanyNotFoundError, ImportRowError, ValidationError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.company import Company
from ledger_kernel.models.ledger import Ledger
from ledger_kernel.models.voucher import Voucher, VoucherEntry, VoucherStatus
from ledger_kernel.services.base import TransactionBoundary
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.reconciliation_service import ReconciliationService
from ledger_kernel.services.sequence_service import VoucherSequencer

from ledger_ingestion.domain.mapping import (
    map_group,
    map_voucher_type,
    net_debit,
    parse_date,
    signed_opening,
)
from ledger_ingestion.domain.types import (
    ImportResult,
    ImportStatus,
    ParsedLedger,
    ParsedLine,
    ParsedVoucher,
    TransactionRow,
    TrialBalanceRow,
)

logger = get_logger("ingestion.import_service")

TRIAL_BALANCE = "trial_balance"
TRANSACTIONS = "transactions"


def parse_trial_balance(
    rows: Iterable[Mapping[str, Any] | TrialBalanceRow],
    settings: ImportSettings,
) -> list[ParsedLedger]:
    """
    Validate trial-balance rows.  Row numbers are 1-based.

    Raises:
        ImportRowError: missing name, unknown group, unreadable amount or a
            name that appears twice (case-insensitive).
    """
    parsed: list[ParsedLedger] = []
    seen: set[str] = set()
    for row_number, raw in enumerate(rows, start=1):
        row = TrialBalanceRow.from_mapping(raw)
        if not row.name:
            raise ImportRowError(TRIAL_BALANCE, row_number, raw, "Ledger name is required")
        if row.name.lower() in seen:
            raise ImportRowError(TRIAL_BALANCE, row_number, raw, f"Duplicate ledger '{row.name}'")
        try:
            group_name = map_group(row.group, row.name, settings)
            opening = signed_opening(group_name, row.debit, row.credit)
        except ValueError as exc:
            raise ImportRowError(TRIAL_BALANCE, row_number, raw, str(exc)) from exc
        seen.add(row.name.lower())
        parsed.append(ParsedLedger(row_number, row.name, group_name, opening))
    return parsed


def group_transactions(
    rows: Iterable[Mapping[str, Any] | TransactionRow],
    settings: ImportSettings,
) -> list[ParsedVoucher]:
    """
    Fold transaction rows into vouchers.

    A row with a voucher number opens a voucher (type and date required);
    following rows without one add lines to it.

    Raises:
        ImportRowError: continuation row before any voucher, unmapped type,
            unreadable date or amount, zero line, unbalanced voucher, or a
            (type, number) pair seen twice.
    """
    vouchers: list[ParsedVoucher] = []
    header: tuple[int, TransactionRow, Any] | None = None
    lines: list[ParsedLine] = []
    seen: set[tuple[str, str]] = set()

    def close() -> None:
        if header is None:
            return
        row_number, row, values = header
        if not lines:
            raise ImportRowError(TRANSACTIONS, row_number, row, "Voucher has no lines")
        debits = sum((line.debit for line in lines), ZERO)
        credits = sum((line.credit for line in lines), ZERO)
        if debits != credits:
            raise ImportRowError(
                TRANSACTIONS,
                row_number,
                row,
                f"Voucher {row.voucher_number} does not balance (debits {debits}, credits {credits})",
            )
        vtype, vdate = values
        vouchers.append(
            ParsedVoucher(
                row_number=row_number,
                row=row,
                voucher_number=row.voucher_number,
                voucher_type=vtype,
                voucher_date=vdate,
                narration=row.narration,
                lines=tuple(lines),
            )
        )

    for row_number, raw in enumerate(rows, start=1):
        row = TransactionRow.from_mapping(raw)
        if row.starts_voucher:
            close()
            lines = []
            try:
                vtype = map_voucher_type(row.voucher_type, settings)
                vdate = parse_date(row.voucher_date)
            except ValueError as exc:
                raise ImportRowError(TRANSACTIONS, row_number, raw, str(exc)) from exc
            key = (vtype.value, row.voucher_number.lower())
            if key in seen:
                raise ImportRowError(
                    TRANSACTIONS,
                    row_number,
                    raw,
                    f"Duplicate {vtype.value} voucher number {row.voucher_number}",
                )
            seen.add(key)
            header = (row_number, row, (vtype, vdate))
        elif header is None:
            raise ImportRowError(TRANSACTIONS, row_number, raw, "Row precedes any voucher number")

        if not row.ledger_name:
            raise ImportRowError(TRANSACTIONS, row_number, raw, "Ledger name is required")
        try:
            amount = net_debit(row.debit, row.credit)
        except ValueError as exc:
            raise ImportRowError(TRANSACTIONS, row_number, raw, str(exc)) from exc
        if amount == ZERO:
            raise ImportRowError(TRANSACTIONS, row_number, raw, "Line amount is zero")
        lines.append(
            ParsedLine(
                row_number=row_number,
                row=row,
                debit=amount if amount > 0 else ZERO,
                credit=-amount if amount < 0 else ZERO,
            )
        )
    close()
    return vouchers


class BulkImporter(TransactionBoundary):
    """
    Company-wide import.

    Contract:
        The caller has verified admin privilege and parsed the source file
        into row mappings (see ``ledger_ingestion.adapters``).

    Args:
        session: SQLAlchemy session.
        settings: Label maps and defaults; loaded from ``ledger_config``
            when omitted.
        auto_commit: As for every TransactionBoundary.
    """

    def __init__(
        self,
        session: Session,
        settings: ImportSettings | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, auto_commit=auto_commit)
        if settings is None:
            from ledger_config.loader import load_settings

            settings = load_settings().importer
        self._settings = settings
        self._ledgers = LedgerService(session)
        self._sequencer = VoucherSequencer(session)
        self._reconciliation = ReconciliationService(session, auto_commit=False)

    def import_company(
        self,
        company_id: UUID,
        trial_balance: Iterable[Mapping[str, Any] | TrialBalanceRow],
        transactions: Iterable[Mapping[str, Any] | TransactionRow] | None = None,
        *,
        actor_id: UUID,
        balance_treatment: BalanceTreatment | str | None = None,
    ) -> ImportResult:
        """
        Replace the company's ledgers and vouchers.

        Returns:
            COMPLETED with counts, or FAILED with the first ImportRowError
            (or CompanyNotFoundError); nothing is written on failure.
        """
        start = time.monotonic()
        treatment = BalanceTreatment(balance_treatment or self._settings.balance_treatment)
        tb_rows = list(trial_balance)
        tx_rows = list(transactions or ())

        with LogContext.bind(correlation_id=uuid4(), company_id=company_id, actor_id=actor_id):
            logger.info(
                "import_started",
                extra={
                    "trial_balance_rows": len(tb_rows),
                    "transaction_rows": len(tx_rows),
                    "balance_treatment": treatment.value,
                },
            )
            result, error = self._guarded(
                "import_company",
                lambda: self._import(company_id, tb_rows, tx_rows, actor_id, treatment),
            )
            if error is not None:
                logger.warning(
                    "import_failed",
                    extra={
                        "code": error.code,
                        "reason": str(error),
                        "duration_ms": _elapsed_ms(start),
                    },
                )
                return ImportResult(
                    status=ImportStatus.FAILED,
                    company_id=company_id,
                    balance_treatment=treatment,
                    error=error,
                )

            logger.info(
                "import_completed",
                extra={
                    "ledgers_imported": result.ledgers_imported,
                    "vouchers_imported": result.vouchers_imported,
                    "entries_imported": result.entries_imported,
                    "suspense_lines": result.suspense_lines,
                    "unreconciled_ledgers": result.unreconciled_ledgers,
                    "duration_ms": _elapsed_ms(start),
                },
            )
            return result

    # ------------------------------------------------------------------
    # Transaction body
    # ------------------------------------------------------------------

    def _import(
        self,
        company_id: UUID,
        tb_rows: list,
        tx_rows: list,
        actor_id: UUID,
        treatment: BalanceTreatment,
    ) -> ImportResult:
        if self.session.get(Company, company_id) is None:
            raise CompanyNotFoundError(company_id)

        # Parse everything before touching the store.
        parsed_ledgers = parse_trial_balance(tb_rows, self._settings)
        parsed_vouchers = group_transactions(tx_rows, self._settings)

        self._wipe(company_id)

        by_name: dict[str, Ledger] = {}
        for item in parsed_ledgers:
            ledger = self._ledgers.create(
                company_id=company_id,
                name=item.name,
                group=item.group_name,
                actor_id=actor_id,
                opening_balance=item.opening_balance,
            )
            by_name[item.name.lower()] = ledger

        entries, suspense_lines = self._insert_vouchers(
            company_id, parsed_vouchers, by_name, actor_id
        )
        unreconciled = self._apply_treatment(company_id, by_name.values(), treatment, actor_id)

        return ImportResult(
            status=ImportStatus.COMPLETED,
            company_id=company_id,
            balance_treatment=treatment,
            ledgers_imported=len(parsed_ledgers),
            vouchers_imported=len(parsed_vouchers),
            entries_imported=entries,
            suspense_lines=suspense_lines,
            unreconciled_ledgers=unreconciled,
        )

    def _wipe(self, company_id: UUID) -> None:
        """Delete entries, vouchers, ledgers and counters of the company."""
        self.session.flush()
        # Same id order as LedgerService.lock_ledgers.
        self.session.execute(
            select(Ledger.id)
            .where(Ledger.company_id == company_id)
            .order_by(Ledger.id)
            .with_for_update()
        ).all()

        voucher_ids = select(Voucher.id).where(Voucher.company_id == company_id)
        entries = self.session.execute(
            delete(VoucherEntry)
            .where(VoucherEntry.voucher_id.in_(voucher_ids))
            .execution_options(synchronize_session=False)
        ).rowcount
        vouchers = self.session.execute(
            delete(Voucher)
            .where(Voucher.company_id == company_id)
            .execution_options(synchronize_session=False)
        ).rowcount
        ledgers = self.session.execute(
            delete(Ledger)
            .where(Ledger.company_id == company_id)
            .execution_options(synchronize_session=False)
        ).rowcount
        counters = self._sequencer.reset_company(company_id)
        self.session.expire_all()

        logger.warning(
            "company_books_wiped",
            extra={
                "entries_deleted": entries,
                "vouchers_deleted": vouchers,
                "ledgers_deleted": ledgers,
                "counters_dropped": counters,
            },
        )

    def _insert_vouchers(
        self,
        company_id: UUID,
        parsed: list[ParsedVoucher],
        by_name: dict[str, Ledger],
        actor_id: UUID,
    ) -> tuple[int, int]:
        if not parsed:
            return 0, 0

        suspense = by_name.get(self._settings.suspense_ledger_name.lower())
        first_seq = self._sequencer.next_seq(company_id, count=len(parsed))
        entry_count = 0
        suspense_lines = 0

        for offset, item in enumerate(parsed):
            lines = []
            for line in item.lines:
                ledger = by_name.get(line.row.ledger_name.lower())
                if ledger is None:
                    if suspense is None:
                        raise ImportRowError(
                            TRANSACTIONS,
                            line.row_number,
                            line.row,
                            f"Ledger '{line.row.ledger_name}' not found and no "
                            f"'{self._settings.suspense_ledger_name}' ledger to fall back to",
                        )
                    ledger = suspense
                    suspense_lines += 1
                    logger.debug(
                        "import_line_to_suspense",
                        extra={"row_number": line.row_number, "ledger_name": line.row.ledger_name},
                    )
                lines.append(EntryLine(ledger_id=ledger.id, debit=line.debit, credit=line.credit))

            try:
                validated = validate_voucher_lines(lines)
            except ValidationError as exc:
                raise ImportRowError(TRANSACTIONS, item.row_number, item.row, str(exc)) from exc

            self.session.add(
                Voucher(
                    company_id=company_id,
                    voucher_type=item.voucher_type,
                    voucher_number=item.voucher_number,
                    voucher_date=item.voucher_date,
                    narration=item.narration,
                    status=VoucherStatus.ACTIVE,
                    seq=first_seq + offset,
                    created_by_id=actor_id,
                    entries=[
                        VoucherEntry(
                            ledger_id=line.ledger_id,
                            line_seq=index,
                            debit=line.debit,
                            credit=line.credit,
                        )
                        for index, line in enumerate(validated)
                    ],
                )
            )
            entry_count += len(validated)

        self.session.flush()
        return entry_count, suspense_lines

    def _apply_treatment(
        self,
        company_id: UUID,
        ledgers: Iterable[Ledger],
        treatment: BalanceTreatment,
        actor_id: UUID,
    ) -> int:
        """Returns the number of ledgers left unreconciled (AS_IS only)."""
        movements = self._reconciliation.entry_movements(company_id)
        unreconciled = 0
        for ledger in ledgers:
            movement = movements.get(ledger.id, ZERO)
            if movement == ZERO:
                continue
            if treatment is BalanceTreatment.AS_IS:
                unreconciled += 1
            elif treatment is BalanceTreatment.OPENING:
                self._ledgers.restate_balance(
                    ledger,
                    current_balance=ledger.opening_balance + movement,
                    actor_id=actor_id,
                )
            else:
                self._ledgers.restate_balance(
                    ledger,
                    current_balance=ledger.current_balance,
                    opening_balance=ledger.opening_balance - movement,
                    actor_id=actor_id,
                )
        self.session.flush()
        return unreconciled


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 2)
