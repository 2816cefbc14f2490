"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.ledger_registry import LedgerOutcome, LedgerRegistry, LedgerResult
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.reconciliation_service import (
    BalanceDrift,
    ReconciliationReport,
    ReconciliationService,
)
from ledger_kernel.services.sequence_service import SequenceService, VoucherSequencer
from ledger_kernel.services.voucher_engine import VoucherEngine, VoucherOutcome, VoucherResult

__all__ = [
    "BalanceDrift",
    "LedgerOutcome",
    "LedgerRegistry",
    "LedgerResult",
    "LedgerService",
    "ReconciliationReport",
    "ReconciliationService",
    "SequenceService",
    "VoucherEngine",
    "VoucherOutcome",
    "VoucherResult",
    "VoucherSequencer",
]
