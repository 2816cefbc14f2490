"""
Module: ledger_kernel.selectors.statement_selector
Responsibility: Ledger statements -- the opening balance at the start of a
    period and one row per entry inside it, with a running balance and a
    human-readable "particulars" label naming the other side of the voucher.

Invariants enforced:
    - Only entries of ACTIVE vouchers are folded, both into the opening
      balance and into the rows.  Cancellation is recognized by status,
      never by narration text.
    - The opening fold and the running balance use the same nature rule as
      the Voucher Engine (domain.nature.signed_delta), so the closing
      balance of a statement through today equals current_balance.

Failure modes:
    - statement() returns None for an unknown ledger.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.nature import AccountNature, nature, signed_delta
from ledger_kernel.models.ledger import Ledger
from ledger_kernel.models.voucher import Voucher, VoucherEntry, VoucherStatus, VoucherType
from ledger_kernel.selectors.base import BaseSelector

SELF_PARTICULARS = "Self"


@dataclass(frozen=True)
class StatementRow:
    entry_id: UUID
    voucher_id: UUID
    voucher_number: str
    voucher_type: VoucherType
    voucher_date: date
    narration: str | None
    debit: Decimal
    credit: Decimal
    particulars: str
    balance: Decimal


@dataclass(frozen=True)
class LedgerStatement:
    ledger_id: UUID
    ledger_name: str
    group_name: str
    nature: AccountNature
    from_date: date
    to_date: date
    opening_balance: Decimal
    rows: tuple[StatementRow, ...]

    @property
    def closing_balance(self) -> Decimal:
        return self.rows[-1].balance if self.rows else self.opening_balance

    @property
    def total_debit(self) -> Decimal:
        return sum((r.debit for r in self.rows), Decimal("0"))

    @property
    def total_credit(self) -> Decimal:
        return sum((r.credit for r in self.rows), Decimal("0"))


@dataclass(frozen=True)
class _Sibling:
    entry_id: UUID
    ledger_name: str
    debit: Decimal
    credit: Decimal


def particulars_for(entry_id: UUID, debit: Decimal, siblings: list[_Sibling]) -> str:
    """
    "To <credited ledgers>" for a debit row, "By <debited ledgers>" for a
    credit row, "Self" when the voucher has nothing on the other side.
    """
    is_debit = debit > 0
    names = [
        s.ledger_name
        for s in siblings
        if s.entry_id != entry_id and (s.credit > 0 if is_debit else s.debit > 0)
    ]
    if not names:
        return SELF_PARTICULARS
    return ("To " if is_debit else "By ") + ", ".join(dict.fromkeys(names))


class StatementSelector(BaseSelector[VoucherEntry]):
    """Statement reconstruction for a single ledger."""

    def statement(self, ledger_id: UUID, from_date: date, to_date: date) -> LedgerStatement | None:
        """
        Build the statement for [from_date, to_date] (inclusive).

        Opening balance = ledger.opening_balance folded with every active
        entry dated strictly before from_date.  Rows are ordered by voucher
        date, then voucher creation order, then line order.
        """
        ledger = self.session.get(Ledger, ledger_id)
        if ledger is None:
            return None
        ledger_nature = nature(ledger.group_name)

        opening = ledger.opening_balance
        prior = self.session.execute(
            select(VoucherEntry.debit, VoucherEntry.credit)
            .join(Voucher, VoucherEntry.voucher_id == Voucher.id)
            .where(
                VoucherEntry.ledger_id == ledger_id,
                Voucher.status == VoucherStatus.ACTIVE,
                Voucher.voucher_date < from_date,
            )
        ).all()
        for debit, credit in prior:
            opening += signed_delta(ledger_nature, debit, credit)

        in_range = self.session.execute(
            select(VoucherEntry, Voucher)
            .join(Voucher, VoucherEntry.voucher_id == Voucher.id)
            .where(
                VoucherEntry.ledger_id == ledger_id,
                Voucher.status == VoucherStatus.ACTIVE,
                Voucher.voucher_date >= from_date,
                Voucher.voucher_date <= to_date,
            )
            .order_by(Voucher.voucher_date, Voucher.seq, VoucherEntry.line_seq)
        ).all()

        siblings = self._siblings({voucher.id for _, voucher in in_range})

        rows = []
        balance = opening
        for entry, voucher in in_range:
            balance += signed_delta(ledger_nature, entry.debit, entry.credit)
            rows.append(
                StatementRow(
                    entry_id=entry.id,
                    voucher_id=voucher.id,
                    voucher_number=voucher.voucher_number,
                    voucher_type=voucher.voucher_type,
                    voucher_date=voucher.voucher_date,
                    narration=voucher.narration,
                    debit=entry.debit,
                    credit=entry.credit,
                    particulars=particulars_for(entry.id, entry.debit, siblings[voucher.id]),
                    balance=balance,
                )
            )

        return LedgerStatement(
            ledger_id=ledger.id,
            ledger_name=ledger.name,
            group_name=ledger.group_name,
            nature=ledger_nature,
            from_date=from_date,
            to_date=to_date,
            opening_balance=opening,
            rows=tuple(rows),
        )

    def _siblings(self, voucher_ids: set[UUID]) -> dict[UUID, list[_Sibling]]:
        grouped: dict[UUID, list[_Sibling]] = defaultdict(list)
        if not voucher_ids:
            return grouped
        result = self.session.execute(
            select(
                VoucherEntry.voucher_id,
                VoucherEntry.id,
                Ledger.name,
                VoucherEntry.debit,
                VoucherEntry.credit,
            )
            .join(Ledger, VoucherEntry.ledger_id == Ledger.id)
            .where(VoucherEntry.voucher_id.in_(voucher_ids))
            .order_by(VoucherEntry.voucher_id, VoucherEntry.line_seq)
        ).all()
        for voucher_id, entry_id, name, debit, credit in result:
            grouped[voucher_id].append(_Sibling(entry_id, name, debit, credit))
        return grouped
