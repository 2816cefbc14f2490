"""
CSV source adapter.

Uses csv.DictReader.  Configurable: delimiter, encoding, skip_rows.  Handles
BOM via utf-8-sig when encoding is utf-8.  Streams rows.

Tally trial-balance exports start with one blank line followed by the header
``S., Ledger Name, Group, D, C, D/C``; ``read_trial_balance_csv`` skips that
first line by default.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterator

from ledger_ingestion.domain.types import TransactionRow, TrialBalanceRow


def _get_encoding(options: dict[str, Any]) -> str:
    enc = options.get("encoding", "utf-8")
    if enc.lower() == "utf-8":
        return "utf-8-sig"  # Strip BOM if present
    return enc


def _is_blank(row: dict[str, Any]) -> bool:
    return all(value is None or not str(value).strip() for value in row.values())


class CsvSourceAdapter:
    """Read CSV files as one dict per non-blank row."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        encoding = _get_encoding(options)
        delimiter = options.get("delimiter", ",")
        skip_rows = int(options.get("skip_rows", 0))

        with Path(source_path).open("r", encoding=encoding, newline="") as f:
            for _ in range(skip_rows):
                next(f, None)
            reader = csv.DictReader(f, delimiter=delimiter)
            for row in reader:
                # Short rows leave None under the missing columns; long rows
                # put the overflow under the None key.
                row.pop(None, None)
                if not _is_blank(row):
                    yield row


def read_trial_balance_csv(
    source_path: Path | str,
    *,
    skip_rows: int = 1,
    encoding: str = "utf-8",
) -> list[TrialBalanceRow]:
    """Trial-balance rows from a Tally CSV export; total lines are dropped."""
    rows = []
    for raw in CsvSourceAdapter().read(Path(source_path), {"skip_rows": skip_rows, "encoding": encoding}):
        row = TrialBalanceRow.from_mapping(raw)
        if row.name is None and row.group is None:
            continue
        if row.group is None and row.name and row.name.lower().startswith("grand total"):
            continue
        rows.append(row)
    return rows


def read_transactions_csv(
    source_path: Path | str,
    *,
    skip_rows: int = 0,
    encoding: str = "utf-8",
) -> list[TransactionRow]:
    """Transaction-history rows (day-book layout) from a CSV export."""
    return [
        TransactionRow.from_mapping(raw)
        for raw in CsvSourceAdapter().read(Path(source_path), {"skip_rows": skip_rows, "encoding": encoding})
    ]
