"""Tests for ledger statement reconstruction."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.entries import EntryLine
from ledger_kernel.domain.nature import AccountNature
from ledger_kernel.models.voucher import VoucherType
from ledger_kernel.selectors.statement_selector import StatementSelector, particulars_for


@pytest.fixture
def ledgers(create_ledger):
    return {
        "cash": create_ledger("Cash", "Cash-in-hand", 1000),
        "bank": create_ledger("Axis Bank", "Bank Accounts", 0),
        "sales": create_ledger("Sales", "Sales Accounts"),
        "freight": create_ledger("Freight", "Direct Expenses"),
        "rent": create_ledger("Rent", "Indirect Expenses"),
    }


@pytest.fixture
def post(voucher_engine, company, test_actor_id):
    def _post(vtype, when, *lines, narration=None):
        result = voucher_engine.create_voucher(
            company_id=company.id,
            voucher_type=vtype,
            voucher_date=when,
            narration=narration,
            created_by=test_actor_id,
            entries=list(lines),
        )
        assert result.is_success, result.message
        return result

    return _post


class TestStatement:

    def test_opening_folds_entries_before_period(self, session, ledgers, post):
        cash, sales = ledgers["cash"], ledgers["sales"]
        post("sales", date(2024, 5, 10), EntryLine.debit_line(cash.id, 100), EntryLine.credit_line(sales.id, 100))
        post("sales", date(2024, 6, 10), EntryLine.debit_line(cash.id, 50), EntryLine.credit_line(sales.id, 50))

        statement = StatementSelector(session).statement(cash.id, date(2024, 6, 1), date(2024, 6, 30))

        assert statement.ledger_name == "Cash"
        assert statement.nature is AccountNature.DEBIT
        assert statement.opening_balance == Decimal("1100")
        assert [row.debit for row in statement.rows] == [Decimal("50")]
        assert statement.closing_balance == Decimal("1150")

    def test_running_balance_and_ordering(self, session, ledgers, post):
        cash, sales, rent = ledgers["cash"], ledgers["sales"], ledgers["rent"]
        # Created out of date order: rows follow voucher date, then creation
        post("payment", date(2024, 6, 20), EntryLine.debit_line(rent.id, 300), EntryLine.credit_line(cash.id, 300))
        post("sales", date(2024, 6, 5), EntryLine.debit_line(cash.id, 200), EntryLine.credit_line(sales.id, 200))
        post("sales", date(2024, 6, 20), EntryLine.debit_line(cash.id, 25), EntryLine.credit_line(sales.id, 25))

        statement = StatementSelector(session).statement(cash.id, date(2024, 6, 1), date(2024, 6, 30))

        assert [(r.voucher_number, r.balance) for r in statement.rows] == [
            ("SAL0001", Decimal("1200")),
            ("PMT0001", Decimal("900")),
            ("SAL0002", Decimal("925")),
        ]
        assert statement.total_debit == Decimal("225")
        assert statement.total_credit == Decimal("300")

    def test_credit_nature_running_balance(self, session, ledgers, post):
        cash, sales = ledgers["cash"], ledgers["sales"]
        post("sales", date(2024, 6, 5), EntryLine.debit_line(cash.id, 200), EntryLine.credit_line(sales.id, 200))

        statement = StatementSelector(session).statement(sales.id, date(2024, 6, 1), date(2024, 6, 30))

        assert statement.rows[0].balance == Decimal("200")
        assert statement.rows[0].particulars == "By Cash"

    def test_particulars_name_the_other_side(self, session, ledgers, post):
        cash, bank, sales, freight = ledgers["cash"], ledgers["bank"], ledgers["sales"], ledgers["freight"]
        post(
            "sales",
            date(2024, 6, 5),
            EntryLine.debit_line(cash.id, 60),
            EntryLine.debit_line(bank.id, 40),
            EntryLine.credit_line(sales.id, 90),
            EntryLine.credit_line(freight.id, 10),
        )
        selector = StatementSelector(session)

        cash_row = selector.statement(cash.id, date(2024, 6, 1), date(2024, 6, 30)).rows[0]
        sales_row = selector.statement(sales.id, date(2024, 6, 1), date(2024, 6, 30)).rows[0]

        assert cash_row.particulars == "To Sales, Freight"
        assert sales_row.particulars == "By Cash, Axis Bank"
        assert cash_row.voucher_type is VoucherType.SALES

    def test_cancelled_vouchers_excluded_everywhere(
        self, session, ledgers, post, voucher_engine, test_actor_id
    ):
        cash, sales = ledgers["cash"], ledgers["sales"]
        before = post("sales", date(2024, 5, 1), EntryLine.debit_line(cash.id, 70), EntryLine.credit_line(sales.id, 70))
        within = post("sales", date(2024, 6, 1), EntryLine.debit_line(cash.id, 30), EntryLine.credit_line(sales.id, 30))
        voucher_engine.cancel_voucher(before.voucher_id, actor_id=test_actor_id)
        voucher_engine.cancel_voucher(within.voucher_id, actor_id=test_actor_id)

        statement = StatementSelector(session).statement(cash.id, date(2024, 6, 1), date(2024, 6, 30))

        assert statement.opening_balance == Decimal("1000")
        assert statement.rows == ()
        assert statement.closing_balance == Decimal("1000")

    def test_period_bounds_inclusive(self, session, ledgers, post):
        cash, sales = ledgers["cash"], ledgers["sales"]
        post("sales", date(2024, 6, 1), EntryLine.debit_line(cash.id, 1), EntryLine.credit_line(sales.id, 1))
        post("sales", date(2024, 6, 30), EntryLine.debit_line(cash.id, 2), EntryLine.credit_line(sales.id, 2))
        post("sales", date(2024, 7, 1), EntryLine.debit_line(cash.id, 4), EntryLine.credit_line(sales.id, 4))

        statement = StatementSelector(session).statement(cash.id, date(2024, 6, 1), date(2024, 6, 30))

        assert [row.debit for row in statement.rows] == [Decimal("1"), Decimal("2")]

    def test_unknown_ledger(self, session):
        assert StatementSelector(session).statement(uuid4(), date(2024, 1, 1), date(2024, 12, 31)) is None


class TestParticulars:

    def test_nothing_on_the_other_side_is_self(self):
        assert particulars_for(uuid4(), Decimal("10"), []) == "Self"
