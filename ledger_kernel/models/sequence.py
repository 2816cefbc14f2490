"""
Module: ledger_kernel.models.sequence
Responsibility: Named counter rows backing voucher numbering and creation
    order.  Incremented only under SELECT ... FOR UPDATE by SequenceService.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base


class SequenceCounter(Base):
    """One named monotonic counter."""

    __tablename__ = "sequence_counters"

    # e.g. "voucher_seq:<company_id>" or "voucher_number:<company_id>:sales"
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
