"""
Module: ledger_kernel.models.ledger
Responsibility: ORM persistence for ledgers (named accounts) and their cached
    balances.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    current_balance = opening_balance + sum of the nature-aware delta of every
    entry on an active voucher.  The column is written only by
    LedgerService.apply_movement / restate_balance; the reconciliation
    service detects drift.

Non-goals:
    Name uniqueness per company is a convention, not a constraint.  Imported
    data may contain duplicates and the original books allowed them.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.domain.nature import AccountNature, LedgerGroup, is_cash_group, nature


class Ledger(TrackedBase):
    """A named account that accumulates a balance."""

    __tablename__ = "ledgers"

    __table_args__ = (
        Index("idx_ledger_company", "company_id"),
        Index("idx_ledger_company_name", "company_id", "name"),
    )

    company_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("companies.id"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Stored as the LedgerGroup label ("Cash-in-hand", "Sundry Debtors", ...)
    group_name: Mapped[str] = mapped_column(String(100), nullable=False)

    sub_group: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Signed, in the ledger's own nature
    opening_balance: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    # Operator allowed to pick this ledger as their cash/bank account
    assigned_operator_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    is_cash_ledger: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    def __repr__(self) -> str:
        return f"<Ledger {self.name} ({self.group_name}) {self.current_balance}>"

    @property
    def group(self) -> LedgerGroup | None:
        return LedgerGroup.from_label(self.group_name)

    @property
    def nature(self) -> AccountNature:
        return nature(self.group_name)

    @property
    def is_cash_in_hand(self) -> bool:
        """Subject to the never-negative rule."""
        return is_cash_group(self.group_name)
