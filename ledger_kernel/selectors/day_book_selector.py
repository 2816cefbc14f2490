"""
Module: ledger_kernel.selectors.day_book_selector
Responsibility: The day book -- every voucher of a company in a date range
    with its lines, for journal-style review.

Invariants enforced:
    - Cancelled vouchers are included (the day book is an audit trail) and
      carry their status, zeroed lines and cancellation stamp.
    - Ordering is voucher date, then creation order (seq).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.models.ledger import Ledger
from ledger_kernel.models.voucher import Voucher, VoucherStatus, VoucherType
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class DayBookLine:
    entry_id: UUID
    ledger_id: UUID
    ledger_name: str
    debit: Decimal
    credit: Decimal


@dataclass(frozen=True)
class DayBookVoucher:
    voucher_id: UUID
    voucher_number: str
    voucher_type: VoucherType
    voucher_date: date
    narration: str | None
    status: VoucherStatus
    created_by_id: UUID
    cancelled_at: datetime | None
    cancelled_by_id: UUID | None
    lines: tuple[DayBookLine, ...]

    @property
    def is_cancelled(self) -> bool:
        return self.status == VoucherStatus.CANCELLED

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), Decimal("0"))

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), Decimal("0"))


class DayBookSelector(BaseSelector[Voucher]):

    def day_book(
        self,
        company_id: UUID,
        from_date: date,
        to_date: date,
        voucher_type: VoucherType | None = None,
    ) -> list[DayBookVoucher]:
        """
        Vouchers dated within [from_date, to_date], optionally of one type.
        """
        query = select(Voucher).where(
            Voucher.company_id == company_id,
            Voucher.voucher_date >= from_date,
            Voucher.voucher_date <= to_date,
        )
        if voucher_type is not None:
            query = query.where(Voucher.voucher_type == VoucherType(voucher_type))
        vouchers = self.session.execute(
            query.order_by(Voucher.voucher_date, Voucher.seq)
        ).scalars().all()

        ledger_ids = {e.ledger_id for v in vouchers for e in v.entries}
        names: dict[UUID, str] = {}
        if ledger_ids:
            names = dict(
                self.session.execute(
                    select(Ledger.id, Ledger.name).where(Ledger.id.in_(ledger_ids))
                ).all()
            )

        return [
            DayBookVoucher(
                voucher_id=v.id,
                voucher_number=v.voucher_number,
                voucher_type=v.voucher_type,
                voucher_date=v.voucher_date,
                narration=v.narration,
                status=v.status,
                created_by_id=v.created_by_id,
                cancelled_at=v.cancelled_at,
                cancelled_by_id=v.cancelled_by_id,
                lines=tuple(
                    DayBookLine(
                        entry_id=e.id,
                        ledger_id=e.ledger_id,
                        ledger_name=names.get(e.ledger_id, ""),
                        debit=e.debit,
                        credit=e.credit,
                    )
                    for e in v.entries
                ),
            )
            for v in vouchers
        ]
