#!/usr/bin/env python3
"""
Create a company, optionally with the financial year containing a date.

Usage:
    python3 scripts/create_company.py --name "Acme Traders" [--financial-year-of 2025-06-01]

Tables are created if missing.  Prints the new company id.
"""

from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path
from uuid import UUID, uuid4

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a company.")
    parser.add_argument("--name", required=True, help="Company name.")
    parser.add_argument(
        "--financial-year-of",
        type=lambda s: date.fromisoformat(s),
        default=None,
        help="Restrict vouchers to the financial year containing this date (YYYY-MM-DD).",
    )
    parser.add_argument("--actor", type=UUID, default=None, help="Actor UUID (default: new UUID).")
    parser.add_argument("--config", type=Path, default=None, help="Settings YAML.")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()

    from ledger_config import load_settings
    from ledger_kernel.db.engine import create_tables, get_session, init_engine_from_url
    from ledger_kernel.exceptions import LedgerKernelError
    from ledger_kernel.services.ledger_registry import LedgerRegistry

    settings = load_settings(args.config)
    init_engine_from_url(settings.database.url, echo=settings.database.echo)
    create_tables()

    start = end = None
    if args.financial_year_of is not None:
        start, end = settings.financial_year.bounds_containing(args.financial_year_of)

    session = get_session()
    try:
        company = LedgerRegistry(session).create_company(
            name=args.name,
            actor_id=args.actor or uuid4(),
            financial_year_start=start,
            financial_year_end=end,
        )
        print(company.id)
    except LedgerKernelError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
