#!/usr/bin/env python3
"""
Check (and optionally repair) cached ledger balances of a company.

A ledger drifts when its stored current balance differs from its opening
balance plus the effect of every active voucher entry.

Usage:
    python3 scripts/reconcile_balances.py --company <uuid> [--repair] [--actor <uuid>]

Exit status: 0 when clean (or repaired), 2 when drift was found and not
repaired, 1 on error.
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
        description="Detect and repair ledger balance drift.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--company", required=True, type=UUID, help="Company UUID.")
    parser.add_argument(
        "--repair",
        action="store_true",
        help="Rewrite drifting balances to the recomputed value.",
    )
    parser.add_argument(
        "--actor",
        type=UUID,
        default=None,
        help="Actor UUID recorded on repaired ledgers (default: new UUID).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Settings YAML (default: LEDGER_CONFIG env or packaged defaults).",
    )
    return parser.parse_args()


def main() -> int:
    args = _parse_args()

    from ledger_config import load_settings
    from ledger_kernel.db.engine import get_session, init_engine_from_url
    from ledger_kernel.exceptions import LedgerKernelError
    from ledger_kernel.logging_config import configure_logging
    from ledger_kernel.services.reconciliation_service import ReconciliationService

    configure_logging(level=logging.INFO, stream=sys.stderr)
    settings = load_settings(args.config)
    init_engine_from_url(settings.database.url, echo=settings.database.echo)

    session = get_session()
    try:
        service = ReconciliationService(session)
        if args.repair:
            report = service.repair(args.company, actor_id=args.actor or uuid4())
        else:
            report = service.check(args.company)
    except LedgerKernelError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        session.close()

    print(f"Ledgers checked: {report.ledgers_checked}")
    if report.is_clean:
        print("No drift.")
        return 0

    print(f"{'Ledger':<40} {'Group':<24} {'Stored':>16} {'Recomputed':>16} {'Drift':>16}")
    for d in report.drifts:
        print(
            f"{d.ledger_name[:40]:<40} {d.group_name[:24]:<24} "
            f"{d.stored_balance:>16.2f} {d.recomputed_balance:>16.2f} {d.drift:>16.2f}"
        )
    if report.repaired:
        print(f"Repaired {len(report.drifts)} ledger(s).")
        return 0
    print(f"{len(report.drifts)} ledger(s) drifted. Re-run with --repair to fix.")
    return 2


if __name__ == "__main__":
    sys.exit(main())
