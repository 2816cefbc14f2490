"""
ledger_ingestion.domain -- row shapes and label mapping for imports.

ZERO I/O.  Imports kernel domain types and enums and ledger_config.schema.
"""

from ledger_ingestion.domain.mapping import (
    map_group,
    map_voucher_type,
    net_debit,
    parse_amount,
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

__all__ = [
    "ImportResult",
    "ImportStatus",
    "ParsedLedger",
    "ParsedLine",
    "ParsedVoucher",
    "TransactionRow",
    "TrialBalanceRow",
    "map_group",
    "map_voucher_type",
    "net_debit",
    "parse_amount",
    "parse_date",
    "signed_opening",
]
