"""
Label and cell mapping for Tally-style exports.

Pure functions.  Every function raises ValueError with a human-readable
reason; the import service turns that into an ImportRowError carrying the
offending row.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from ledger_config.schema import ImportSettings, normalize_label
from ledger_kernel.db.types import ZERO, to_money
from ledger_kernel.domain.nature import AccountNature, LedgerGroup, nature, signed_delta
from ledger_kernel.models.voucher import VoucherType

_DATE_FORMATS = ("%d-%b-%Y", "%d-%b-%y", "%d/%m/%Y", "%d-%m-%Y", "%Y-%m-%d", "%d.%m.%Y")
_COMPACT_DATE = re.compile(r"^\d{8}$")


def parse_amount(value: Any) -> tuple[Decimal, AccountNature | None]:
    """
    Parse one amount cell.

    Returns:
        (amount, marker): the number as written (sign kept) and the side
        named by a trailing ``Dr``/``Cr``, or None when there is none.
        Blank cells are (0, None).

    Examples:
        "1,25,000.00 Dr" -> (Decimal("125000.00"), DEBIT)
        "-500"           -> (Decimal("-500"), None)
    """
    if value is None or isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return to_money(value), None
    if not isinstance(value, str):
        raise ValueError(f"Unreadable amount {value!r}")

    cleaned = value.replace(",", "").replace(" ", "").strip()
    marker = None
    if cleaned[-2:].lower() == "dr":
        marker, cleaned = AccountNature.DEBIT, cleaned[:-2]
    elif cleaned[-2:].lower() == "cr":
        marker, cleaned = AccountNature.CREDIT, cleaned[:-2]
    if not cleaned:
        if marker is not None:
            raise ValueError(f"Unreadable amount {value!r}")
        return ZERO, None
    try:
        return to_money(Decimal(cleaned)), marker
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Unreadable amount {value!r}") from exc


def net_debit(debit_cell: Any, credit_cell: Any) -> Decimal:
    """
    Debit minus credit of a (debit column, credit column) pair.

    A Dr/Cr marker overrides the column a value sits in.  A negative
    number without a marker belongs to the other side (Tally convention).
    """
    total = ZERO
    for cell, column in ((debit_cell, AccountNature.DEBIT), (credit_cell, AccountNature.CREDIT)):
        amount, marker = parse_amount(cell)
        if marker is not None:
            side, amount = marker, abs(amount)
        elif amount < 0:
            side = AccountNature.CREDIT if column is AccountNature.DEBIT else AccountNature.DEBIT
            amount = -amount
        else:
            side = column
        total += amount if side is AccountNature.DEBIT else -amount
    return total


def signed_opening(group: str, debit_cell: Any, credit_cell: Any) -> Decimal:
    """
    Opening balance in the group's own nature: positive when the amount sits
    on the group's natural side, negative otherwise.
    """
    return signed_delta(nature(group), net_debit(debit_cell, credit_cell), ZERO)


def parse_date(value: Any) -> date:
    """Accept date/datetime, ISO and the usual Tally text formats."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Unreadable date {value!r}")

    text = value.strip()
    if _COMPACT_DATE.match(text):
        text = f"{text[:4]}-{text[4:6]}-{text[6:8]}"
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unreadable date {value!r}")


def _has_token(name: str, tokens: tuple[str, ...]) -> bool:
    lowered = normalize_label(name)
    return any(token in lowered for token in tokens)


def map_group(label: str | None, ledger_name: str, settings: ImportSettings) -> str:
    """
    Source group label -> stored ledger group label.

    The combined "CASH/Bank" label is split by name: Bank Accounts when the
    name contains a bank token anywhere (case-insensitive, so "HDFCBANK A/c"
    counts), Cash-in-hand otherwise.
    """
    if not label:
        raise ValueError("Group is required")
    key = normalize_label(label)
    if key == settings.cash_bank_label:
        if _has_token(ledger_name, settings.bank_tokens):
            return LedgerGroup.BANK_ACCOUNTS.value
        return LedgerGroup.CASH_IN_HAND.value
    if key in settings.group_labels:
        return settings.group_labels[key]
    known = LedgerGroup.from_label(label)
    if known is None:
        raise ValueError(f"Unknown group {label!r}")
    return known.value


def map_voucher_type(label: str | None, settings: ImportSettings) -> VoucherType:
    """Source voucher-type label -> VoucherType (credit/debit notes become journal)."""
    if not label:
        raise ValueError("Voucher type is required")
    key = normalize_label(label)
    mapped = settings.voucher_type_labels.get(key, key)
    try:
        return VoucherType(mapped)
    except ValueError as exc:
        raise ValueError(f"Unknown voucher type {label!r}") from exc
