#!/usr/bin/env python3
"""
Replace a company's ledgers and vouchers from CSV exports.

WIPES every ledger and voucher of the company first.  The trial balance is a
Tally export (blank first line, then ``S., Ledger Name, Group, D, C, D/C``);
the optional transaction file is a day-book layout with Date, Vch Type,
Vch No., Particulars, Debit, Credit, Narration columns.

Usage:
    python3 scripts/import_books.py --company <uuid> --trial-balance tb.csv \\
        [--transactions daybook.csv] [--treatment as_is|opening|closing] [--yes]
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from uuid import UUID, uuid4

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Wipe and re-import a company's books from CSV.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--company", required=True, type=UUID, help="Company UUID.")
    parser.add_argument("--trial-balance", required=True, type=Path, help="Trial balance CSV.")
    parser.add_argument("--transactions", type=Path, default=None, help="Transaction CSV.")
    parser.add_argument(
        "--trial-balance-skip-rows",
        type=int,
        default=1,
        help="Lines before the trial balance header (default: 1).",
    )
    parser.add_argument(
        "--treatment",
        choices=("as_is", "opening", "closing"),
        default=None,
        help="What the trial balance means relative to the history (default: from settings).",
    )
    parser.add_argument("--actor", type=UUID, default=None, help="Actor UUID (default: new UUID).")
    parser.add_argument("--config", type=Path, default=None, help="Settings YAML.")
    parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation.")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    for path in (args.trial_balance, args.transactions):
        if path is not None and not path.is_file():
            print(f"ERROR: File not found: {path}", file=sys.stderr)
            return 1

    from ledger_config import load_settings
    from ledger_ingestion.adapters import read_transactions_csv, read_trial_balance_csv
    from ledger_ingestion.services import BulkImporter
    from ledger_kernel.db.engine import get_session, init_engine_from_url
    from ledger_kernel.logging_config import configure_logging

    configure_logging(level=logging.INFO, stream=sys.stderr)
    settings = load_settings(args.config)

    trial_balance = read_trial_balance_csv(args.trial_balance, skip_rows=args.trial_balance_skip_rows)
    transactions = read_transactions_csv(args.transactions) if args.transactions else None
    print(f"Trial balance rows: {len(trial_balance)}")
    if transactions is not None:
        print(f"Transaction rows: {len(transactions)}")

    if not args.yes:
        answer = input(f"This deletes all ledgers and vouchers of {args.company}. Continue? [y/N] ")
        if answer.strip().lower() != "y":
            print("Aborted.")
            return 1

    init_engine_from_url(settings.database.url, echo=settings.database.echo)
    session = get_session()
    try:
        result = BulkImporter(session, settings=settings.importer).import_company(
            args.company,
            trial_balance,
            transactions,
            actor_id=args.actor or uuid4(),
            balance_treatment=args.treatment,
        )
    finally:
        session.close()

    if not result.is_success:
        print(f"ERROR [{result.code}]: {result.error}", file=sys.stderr)
        return 1
    print(
        f"Imported {result.ledgers_imported} ledgers, {result.vouchers_imported} vouchers, "
        f"{result.entries_imported} entries ({result.suspense_lines} to suspense)."
    )
    if result.unreconciled_ledgers:
        print(
            f"{result.unreconciled_ledgers} ledger(s) do not include the imported history; "
            "see scripts/reconcile_balances.py."
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
