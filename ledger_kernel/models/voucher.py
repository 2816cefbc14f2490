"""
Module: ledger_kernel.models.voucher
Responsibility: ORM persistence for vouchers and their entry lines.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - (company_id, voucher_type, voucher_number) is unique.
    - seq is unique per company and increases with creation order.
    - Lifecycle is an explicit status column; a cancelled voucher keeps its
      entries with both amounts zeroed.
    - Active vouchers balance: sum(debit) == sum(credit).  Enforced by the
      Voucher Engine before flush; is_balanced is the read-side check.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import Base, TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.ledger import Ledger


class VoucherType(str, Enum):
    RECEIPT = "receipt"
    PAYMENT = "payment"
    SALES = "sales"
    PURCHASE = "purchase"
    JOURNAL = "journal"
    CONTRA = "contra"


class VoucherStatus(str, Enum):
    """Lifecycle status.  ACTIVE -> CANCELLED only."""

    ACTIVE = "active"
    CANCELLED = "cancelled"


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Voucher(TrackedBase):
    """A recorded transaction made of balanced entry lines."""

    __tablename__ = "vouchers"

    __table_args__ = (
        UniqueConstraint(
            "company_id",
            "voucher_type",
            "voucher_number",
            name="uq_voucher_company_type_number",
        ),
        UniqueConstraint("company_id", "seq", name="uq_voucher_company_seq"),
        Index("idx_voucher_company_date", "company_id", "voucher_date"),
        Index("idx_voucher_status", "status"),
    )

    company_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("companies.id"),
        nullable=False,
    )

    voucher_type: Mapped[VoucherType] = mapped_column(
        SAEnum(
            VoucherType,
            native_enum=False,
            length=20,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )

    voucher_number: Mapped[str] = mapped_column(String(50), nullable=False)

    voucher_date: Mapped[date] = mapped_column(Date, nullable=False)

    narration: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    status: Mapped[VoucherStatus] = mapped_column(
        SAEnum(
            VoucherStatus,
            native_enum=False,
            length=20,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=VoucherStatus.ACTIVE,
    )

    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    cancelled_by_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    # Creation order; the day book and statements sort by (date, seq)
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)

    entries: Mapped[list[VoucherEntry]] = relationship(
        back_populates="voucher",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="VoucherEntry.line_seq",
    )

    def __repr__(self) -> str:
        return f"<Voucher {self.voucher_number} {self.voucher_type.value} status={self.status.value}>"

    @property
    def is_active(self) -> bool:
        return self.status == VoucherStatus.ACTIVE

    @property
    def is_cancelled(self) -> bool:
        return self.status == VoucherStatus.CANCELLED

    @property
    def total_debits(self) -> Decimal:
        return sum((e.debit for e in self.entries), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((e.credit for e in self.entries), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


class VoucherEntry(Base):
    """One line of a voucher against one ledger."""

    __tablename__ = "voucher_entries"

    __table_args__ = (
        Index("idx_entry_voucher", "voucher_id"),
        Index("idx_entry_ledger", "ledger_id"),
    )

    voucher_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("vouchers.id", ondelete="CASCADE"),
        nullable=False,
    )

    # No cascade: a referenced ledger cannot be deleted
    ledger_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("ledgers.id"),
        nullable=False,
    )

    line_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    debit: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    credit: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    voucher: Mapped[Voucher] = relationship(back_populates="entries")

    ledger: Mapped[Ledger] = relationship()

    def __repr__(self) -> str:
        return f"<VoucherEntry ledger={self.ledger_id} Dr={self.debit} Cr={self.credit}>"
