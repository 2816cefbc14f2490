"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Ledger listings and the trial balance over cached balances.

The trial balance puts each ledger's current balance on its natural side
when positive and on the opposite side when negative, the same convention
the Bulk Importer reads back.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.nature import AccountNature, nature
from ledger_kernel.models.ledger import Ledger
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class LedgerSummary:
    ledger_id: UUID
    company_id: UUID
    name: str
    group_name: str
    sub_group: str | None
    nature: AccountNature
    opening_balance: Decimal
    current_balance: Decimal
    assigned_operator_id: UUID | None
    is_cash_ledger: bool

    @classmethod
    def from_model(cls, ledger: Ledger) -> LedgerSummary:
        return cls(
            ledger_id=ledger.id,
            company_id=ledger.company_id,
            name=ledger.name,
            group_name=ledger.group_name,
            sub_group=ledger.sub_group,
            nature=nature(ledger.group_name),
            opening_balance=ledger.opening_balance,
            current_balance=ledger.current_balance,
            assigned_operator_id=ledger.assigned_operator_id,
            is_cash_ledger=ledger.is_cash_ledger,
        )


@dataclass(frozen=True)
class TrialBalanceRow:
    ledger_id: UUID
    name: str
    group_name: str
    debit: Decimal
    credit: Decimal


class LedgerSelector(BaseSelector[Ledger]):

    def get(self, ledger_id: UUID) -> LedgerSummary | None:
        ledger = self.session.get(Ledger, ledger_id)
        return LedgerSummary.from_model(ledger) if ledger is not None else None

    def list_ledgers(
        self,
        company_id: UUID,
        operator_id: UUID | None = None,
    ) -> list[LedgerSummary]:
        """
        Ledgers of a company ordered by name.

        With operator_id, cash ledgers are limited to the ones assigned to
        that operator; non-cash ledgers are always listed.
        """
        ledgers = self.session.execute(
            select(Ledger)
            .where(Ledger.company_id == company_id)
            .order_by(Ledger.name, Ledger.id)
        ).scalars().all()
        if operator_id is not None:
            ledgers = [
                led
                for led in ledgers
                if not led.is_cash_ledger or led.assigned_operator_id == operator_id
            ]
        return [LedgerSummary.from_model(led) for led in ledgers]

    def trial_balance(self, company_id: UUID) -> list[TrialBalanceRow]:
        rows = []
        for summary in self.list_ledgers(company_id):
            balance = summary.current_balance
            on_natural_side = balance >= ZERO
            amount = abs(balance)
            debit_side = (summary.nature is AccountNature.DEBIT) == on_natural_side
            rows.append(
                TrialBalanceRow(
                    ledger_id=summary.ledger_id,
                    name=summary.name,
                    group_name=summary.group_name,
                    debit=amount if debit_side else ZERO,
                    credit=ZERO if debit_side else amount,
                )
            )
        return rows
