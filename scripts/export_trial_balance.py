#!/usr/bin/env python3
"""
Write a company's trial balance as CSV.

Columns follow the Tally export: S., Ledger Name, Group, D, C, D/C.  The
output can be fed back to scripts/import_books.py (use
--trial-balance-skip-rows 0).

Usage:
    python3 scripts/export_trial_balance.py --company <uuid> [--out tb.csv]
"""

from __future__ import annotations

import argparse
import csv
import sys
from pathlib import Path
from uuid import UUID

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export a trial balance as CSV.")
    parser.add_argument("--company", required=True, type=UUID, help="Company UUID.")
    parser.add_argument("--out", type=Path, default=None, help="Output file (default: stdout).")
    parser.add_argument("--config", type=Path, default=None, help="Settings YAML.")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()

    from ledger_config import load_settings
    from ledger_kernel.db.engine import get_session, init_engine_from_url
    from ledger_kernel.selectors.ledger_selector import LedgerSelector

    settings = load_settings(args.config)
    init_engine_from_url(settings.database.url, echo=settings.database.echo)
    session = get_session()
    try:
        rows = LedgerSelector(session).trial_balance(args.company)
    finally:
        session.close()

    out = args.out.open("w", newline="", encoding="utf-8") if args.out else sys.stdout
    try:
        writer = csv.writer(out)
        writer.writerow(["S.", "Ledger Name", "Group", "D", "C", "D/C"])
        for index, row in enumerate(rows, start=1):
            side = "Dr" if row.debit else "Cr" if row.credit else ""
            writer.writerow(
                [index, row.name, row.group_name, f"{row.debit:.2f}", f"{row.credit:.2f}", side]
            )
    finally:
        if args.out:
            out.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
