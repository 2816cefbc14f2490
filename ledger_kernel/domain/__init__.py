"""Pure domain core: nature classification, entry lines, clock."""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.entries import (
    EntryLine,
    Movement,
    movements_by_ledger,
    normalize_lines,
    projected_cash_balance,
    validate_voucher_lines,
)
from ledger_kernel.domain.nature import (
    AccountNature,
    LedgerGroup,
    is_cash_group,
    nature,
    signed_delta,
)

__all__ = [
    "AccountNature",
    "Clock",
    "DeterministicClock",
    "EntryLine",
    "LedgerGroup",
    "Movement",
    "SystemClock",
    "is_cash_group",
    "movements_by_ledger",
    "nature",
    "normalize_lines",
    "projected_cash_balance",
    "signed_delta",
    "validate_voucher_lines",
]
