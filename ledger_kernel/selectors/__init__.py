"""Selectors for the ledger kernel (read side)."""

from ledger_kernel.selectors.day_book_selector import DayBookLine, DayBookSelector, DayBookVoucher
from ledger_kernel.selectors.ledger_selector import LedgerSelector, LedgerSummary, TrialBalanceRow
from ledger_kernel.selectors.statement_selector import (
    LedgerStatement,
    StatementRow,
    StatementSelector,
)

__all__ = [
    "DayBookLine",
    "DayBookSelector",
    "DayBookVoucher",
    "LedgerSelector",
    "LedgerStatement",
    "LedgerSummary",
    "StatementRow",
    "StatementSelector",
    "TrialBalanceRow",
]
