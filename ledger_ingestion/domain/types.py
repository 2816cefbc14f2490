"""
ledger_ingestion.domain.types -- Pure frozen dataclasses for bulk import.

Input rows arrive as mappings (CSV rows, spreadsheet rows, JSON objects).
``from_mapping`` accepts the common column spellings of Tally exports so a
caller can hand over a parsed file without renaming columns.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from ledger_config.schema import BalanceTreatment
from ledger_kernel.exceptions import LedgerKernelError
from ledger_kernel.models.voucher import VoucherType


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    """First present, non-blank value among keys, matched case-insensitively."""
    lowered = {str(k).strip().lower(): v for k, v in data.items()}
    for key in keys:
        value = lowered.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None


# =============================================================================
# Input rows
# =============================================================================


@dataclass(frozen=True)
class TrialBalanceRow:
    """One opening trial-balance line: ``{name, group, debit, credit}``."""

    name: str | None
    group: str | None
    debit: Any = None
    credit: Any = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | TrialBalanceRow) -> TrialBalanceRow:
        if isinstance(data, TrialBalanceRow):
            return data
        return cls(
            name=_text(_pick(data, "name", "ledger name", "ledger", "particulars")),
            group=_text(_pick(data, "group", "group name", "under")),
            debit=_pick(data, "debit", "d", "dr", "debit amount"),
            credit=_pick(data, "credit", "c", "cr", "credit amount"),
        )


@dataclass(frozen=True)
class TransactionRow:
    """
    One line of a transaction history.

    A row carrying a voucher number starts a voucher; rows without one
    continue the voucher above them.
    """

    voucher_number: str | None
    voucher_type: str | None
    voucher_date: Any
    ledger_name: str | None
    debit: Any = None
    credit: Any = None
    narration: str | None = None

    @property
    def starts_voucher(self) -> bool:
        return self.voucher_number is not None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | TransactionRow) -> TransactionRow:
        if isinstance(data, TransactionRow):
            return data
        return cls(
            voucher_number=_text(
                _pick(data, "voucher_number", "voucher number", "voucher no", "vch no.", "vch no")
            ),
            voucher_type=_text(_pick(data, "voucher_type", "voucher type", "vch type", "type")),
            voucher_date=_pick(data, "voucher_date", "date", "voucher date"),
            ledger_name=_text(_pick(data, "ledger_name", "ledger", "ledger name", "particulars")),
            debit=_pick(data, "debit", "dr", "debit amount"),
            credit=_pick(data, "credit", "cr", "credit amount"),
            narration=_text(_pick(data, "narration", "description", "memo")),
        )


# =============================================================================
# Parsed shapes (validated, ready to insert)
# =============================================================================


@dataclass(frozen=True)
class ParsedLedger:
    row_number: int
    name: str
    group_name: str
    opening_balance: Decimal


@dataclass(frozen=True)
class ParsedLine:
    row_number: int
    row: TransactionRow
    debit: Decimal
    credit: Decimal


@dataclass(frozen=True)
class ParsedVoucher:
    row_number: int
    row: TransactionRow
    voucher_number: str
    voucher_type: VoucherType
    voucher_date: date
    narration: str | None
    lines: tuple[ParsedLine, ...]


# =============================================================================
# Result
# =============================================================================


class ImportStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ImportResult:
    """
    Outcome of ``BulkImporter.import_company``.

    ``unreconciled_ledgers`` counts ledgers whose stored balance does not
    equal opening + imported history.  It is non-zero only with
    BalanceTreatment.AS_IS.
    """

    status: ImportStatus
    company_id: UUID
    balance_treatment: BalanceTreatment
    ledgers_imported: int = 0
    vouchers_imported: int = 0
    entries_imported: int = 0
    suspense_lines: int = 0
    unreconciled_ledgers: int = 0
    error: LedgerKernelError | None = None

    @property
    def is_success(self) -> bool:
        return self.status is ImportStatus.COMPLETED

    @property
    def code(self) -> str | None:
        return self.error.code if self.error is not None else None
