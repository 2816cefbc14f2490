"""Tests for balance drift detection and repair."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import update

from ledger_kernel.domain.entries import EntryLine
from ledger_kernel.exceptions import CompanyNotFoundError
from ledger_kernel.models.ledger import Ledger
from ledger_kernel.services.reconciliation_service import ReconciliationService


@pytest.fixture
def posted(voucher_engine, company, create_ledger, test_actor_id):
    """Cash 100 opening, one 40 sale into cash."""
    cash = create_ledger("Cash", "Cash-in-hand", 100)
    sales = create_ledger("Sales", "Sales Accounts")
    voucher_engine.create_voucher(
        company_id=company.id,
        voucher_type="sales",
        voucher_date=date(2024, 6, 1),
        narration=None,
        created_by=test_actor_id,
        entries=[EntryLine.debit_line(cash.id, 40), EntryLine.credit_line(sales.id, 40)],
    )
    return cash, sales


def _corrupt(session, ledger, value):
    session.execute(
        update(Ledger).where(Ledger.id == ledger.id).values(current_balance=Decimal(value))
    )
    session.flush()


class TestCheck:

    def test_engine_keeps_books_clean(self, session, company, posted):
        report = ReconciliationService(session).check(company.id)

        assert report.is_clean
        assert report.ledgers_checked == 2

    def test_entry_movements_are_nature_aware(self, session, company, posted):
        cash, sales = posted
        movements = ReconciliationService(session).entry_movements(company.id)
        assert movements == {cash.id: Decimal("40"), sales.id: Decimal("40")}

    def test_detects_drift(self, session, company, posted, captured_logs):
        cash, _ = posted
        _corrupt(session, cash, "90")

        report = ReconciliationService(session).check(company.id)

        assert not report.is_clean
        (drift,) = report.drifts
        assert drift.ledger_name == "Cash"
        assert drift.stored_balance == Decimal("90")
        assert drift.recomputed_balance == Decimal("140")
        assert drift.drift == Decimal("-50")
        assert any(r["message"] == "balance_drift_detected" for r in captured_logs())

    def test_cancelled_vouchers_ignored(self, session, voucher_engine, company, create_ledger, test_actor_id):
        cash = create_ledger("Cash", "Cash-in-hand", 10)
        capital = create_ledger("Capital", "Capital Account")
        created = voucher_engine.create_voucher(
            company_id=company.id,
            voucher_type="receipt",
            voucher_date=date(2024, 6, 1),
            narration=None,
            created_by=test_actor_id,
            entries=[EntryLine.debit_line(cash.id, 5), EntryLine.credit_line(capital.id, 5)],
        )
        voucher_engine.cancel_voucher(created.voucher_id, actor_id=test_actor_id)

        service = ReconciliationService(session)
        assert service.entry_movements(company.id) == {}
        assert service.check(company.id).is_clean

    def test_unknown_company(self, session):
        with pytest.raises(CompanyNotFoundError):
            ReconciliationService(session).check(uuid4())


class TestRepair:

    def test_repair_restores_recomputed_balance(
        self, session, company, posted, balance_of, test_actor_id
    ):
        cash, sales = posted
        _corrupt(session, cash, "1")
        _corrupt(session, sales, "0")

        report = ReconciliationService(session).repair(company.id, actor_id=test_actor_id)

        assert report.repaired
        assert [d.ledger_name for d in report.drifts] == ["Cash", "Sales"]
        assert balance_of(cash) == Decimal("140")
        assert balance_of(sales) == Decimal("40")
        assert ReconciliationService(session).check(company.id).is_clean

    def test_repair_of_clean_books_is_a_no_op(self, session, company, posted, balance_of, test_actor_id):
        cash, _ = posted

        report = ReconciliationService(session).repair(company.id, actor_id=test_actor_id)

        assert report.drifts == ()
        assert balance_of(cash) == Decimal("140")
