"""
Module: ledger_kernel.models.company
Responsibility: ORM persistence for companies, the owners of ledgers and
    vouchers, and their optional active financial year.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from datetime import date

from sqlalchemy import Date, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class Company(TrackedBase):
    """
    A company whose books are kept in this ledger.

    When both financial-year bounds are set, the Voucher Engine only accepts
    voucher dates inside [financial_year_start, financial_year_end].
    """

    __tablename__ = "companies"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    financial_year_start: Mapped[date | None] = mapped_column(Date, nullable=True)

    financial_year_end: Mapped[date | None] = mapped_column(Date, nullable=True)

    def __repr__(self) -> str:
        return f"<Company {self.name}>"

    @property
    def has_financial_year(self) -> bool:
        return (
            self.financial_year_start is not None
            and self.financial_year_end is not None
        )

    def in_financial_year(self, value: date) -> bool:
        """True when value is inside the financial year, or none is set."""
        if not self.has_financial_year:
            return True
        return self.financial_year_start <= value <= self.financial_year_end
