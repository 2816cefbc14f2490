"""
End-to-end walk through a petty cash book: create, pay out, cancel, and
read the statement back.
"""

from datetime import date
from decimal import Decimal

from ledger_kernel.domain.entries import EntryLine
from ledger_kernel.selectors.day_book_selector import DayBookSelector
from ledger_kernel.selectors.statement_selector import StatementSelector
from ledger_kernel.services.reconciliation_service import ReconciliationService


class TestPettyCashScenario:

    def test_full_lifecycle(
        self, session, voucher_engine, company, create_ledger, test_actor_id, balance_of
    ):
        petty = create_ledger("Petty Cash", "Cash-in-hand", 500)
        capital = create_ledger("Capital", "Capital Account")
        stationery = create_ledger("Stationery", "Indirect Expenses")

        receipt = voucher_engine.create_voucher(
            company_id=company.id,
            voucher_type="receipt",
            voucher_date=date(2024, 6, 3),
            narration="Top up",
            created_by=test_actor_id,
            entries=[EntryLine.debit_line(petty.id, 200), EntryLine.credit_line(capital.id, 200)],
        )
        assert balance_of(petty) == Decimal("700")

        payment = voucher_engine.create_voucher(
            company_id=company.id,
            voucher_type="payment",
            voucher_date=date(2024, 6, 5),
            narration="Printer paper",
            created_by=test_actor_id,
            entries=[EntryLine.debit_line(stationery.id, 300), EntryLine.credit_line(petty.id, 300)],
        )
        assert payment.is_success
        assert balance_of(petty) == Decimal("400")

        assert voucher_engine.cancel_voucher(receipt.voucher_id, actor_id=test_actor_id).is_success
        assert balance_of(petty) == Decimal("200")

        statement = StatementSelector(session).statement(
            petty.id, date(2024, 4, 1), date(2025, 3, 31)
        )
        assert statement.opening_balance == Decimal("500")
        assert len(statement.rows) == 1
        row = statement.rows[0]
        assert row.voucher_number == "PMT0001"
        assert row.credit == Decimal("300")
        assert row.particulars == "By Stationery"
        assert statement.closing_balance == Decimal("200")

        day_book = DayBookSelector(session).day_book(company.id, date(2024, 6, 1), date(2024, 6, 30))
        assert [(v.voucher_number, v.is_cancelled) for v in day_book] == [
            ("REC0001", True),
            ("PMT0001", False),
        ]

        assert ReconciliationService(session).check(company.id).is_clean
