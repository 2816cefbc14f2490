"""Source file adapters for imports.  File I/O only, no DB access."""

from ledger_ingestion.adapters.csv_adapter import (
    CsvSourceAdapter,
    read_transactions_csv,
    read_trial_balance_csv,
)

__all__ = ["CsvSourceAdapter", "read_transactions_csv", "read_trial_balance_csv"]
