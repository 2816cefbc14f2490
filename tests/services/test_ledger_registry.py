"""Tests for ledger master data: create, update and the delete guard."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.entries import EntryLine
from ledger_kernel.domain.nature import AccountNature
from ledger_kernel.exceptions import ValidationError
from ledger_kernel.models.ledger import Ledger
from ledger_kernel.services.ledger_registry import LedgerOutcome, LedgerRegistry


@pytest.fixture
def registry(session):
    return LedgerRegistry(session)


class TestCreateCompany:

    def test_with_financial_year(self, registry, test_actor_id):
        company = registry.create_company(
            name="Ganesh Traders",
            actor_id=test_actor_id,
            financial_year_start=date(2024, 4, 1),
            financial_year_end=date(2025, 3, 31),
        )
        assert company.has_financial_year
        assert company.in_financial_year(date(2024, 12, 31))
        assert not company.in_financial_year(date(2025, 4, 1))

    def test_half_a_year_rejected(self, registry, test_actor_id):
        with pytest.raises(ValidationError):
            registry.create_company(
                name="X", actor_id=test_actor_id, financial_year_start=date(2024, 4, 1)
            )

    def test_reversed_year_rejected(self, registry, test_actor_id):
        with pytest.raises(ValidationError):
            registry.create_company(
                name="X",
                actor_id=test_actor_id,
                financial_year_start=date(2025, 4, 1),
                financial_year_end=date(2024, 3, 31),
            )


class TestCreateLedger:

    def test_current_starts_at_opening(self, session, registry, company, test_actor_id):
        result = registry.create_ledger(
            company_id=company.id,
            name="  HDFC Bank ",
            group="bank accounts",
            actor_id=test_actor_id,
            opening_balance="2500.50",
        )

        assert result.status is LedgerOutcome.CREATED
        ledger = session.get(Ledger, result.ledger_id)
        assert ledger.name == "HDFC Bank"
        assert ledger.group_name == "Bank Accounts"
        assert ledger.nature is AccountNature.DEBIT
        assert ledger.opening_balance == Decimal("2500.50")
        assert ledger.current_balance == Decimal("2500.50")
        assert not ledger.is_cash_in_hand

    def test_cash_group_and_operator_mark_cash_ledgers(self, session, registry, company, test_actor_id):
        cash = registry.create_ledger(
            company_id=company.id, name="Cash", group="Cash-in-hand", actor_id=test_actor_id
        )
        counter = registry.create_ledger(
            company_id=company.id,
            name="Counter 2",
            group="Current Assets",
            actor_id=test_actor_id,
            assigned_operator_id=uuid4(),
        )

        assert session.get(Ledger, cash.ledger_id).is_cash_ledger
        assert session.get(Ledger, cash.ledger_id).is_cash_in_hand
        assert session.get(Ledger, counter.ledger_id).is_cash_ledger

    def test_unknown_group_kept_verbatim_as_credit(self, session, registry, company, test_actor_id):
        result = registry.create_ledger(
            company_id=company.id, name="Odd", group="Branch  Divisions", actor_id=test_actor_id
        )
        ledger = session.get(Ledger, result.ledger_id)
        assert ledger.group_name == "Branch Divisions"
        assert ledger.nature is AccountNature.CREDIT

    @pytest.mark.parametrize(
        "kwargs,code",
        [
            ({"name": "", "group": "Sales Accounts"}, "VALIDATION_ERROR"),
            ({"name": "X", "group": " "}, "VALIDATION_ERROR"),
            ({"name": "X", "group": "Sales Accounts", "opening_balance": "abc"}, "VALIDATION_ERROR"),
        ],
    )
    def test_invalid_input(self, registry, company, test_actor_id, kwargs, code):
        result = registry.create_ledger(company_id=company.id, actor_id=test_actor_id, **kwargs)
        assert result.status is LedgerOutcome.REJECTED
        assert result.code == code

    def test_unknown_company(self, registry, test_actor_id):
        result = registry.create_ledger(
            company_id=uuid4(), name="X", group="Sales Accounts", actor_id=test_actor_id
        )
        assert result.code == "COMPANY_NOT_FOUND"


class TestUpdateLedger:

    def test_rename_and_regroup_unused_ledger(self, session, registry, create_ledger, test_actor_id):
        ledger = create_ledger("Misc", "Indirect Incomes", 100)

        result = registry.update_ledger(
            ledger.id, actor_id=test_actor_id, name="Sundries", group="Indirect Expenses"
        )

        assert result.is_success
        session.refresh(ledger)
        assert ledger.name == "Sundries"
        assert ledger.nature is AccountNature.DEBIT
        assert ledger.current_balance == Decimal("100")
        assert ledger.updated_by_id == test_actor_id

    def test_nature_flip_refused_once_used(
        self, registry, voucher_engine, company, create_ledger, test_actor_id
    ):
        sales = create_ledger("Sales", "Sales Accounts")
        bank = create_ledger("Bank", "Bank Accounts", 100)
        voucher_engine.create_voucher(
            company_id=company.id,
            voucher_type="sales",
            voucher_date=date(2024, 6, 1),
            narration=None,
            created_by=test_actor_id,
            entries=[EntryLine.debit_line(bank.id, 10), EntryLine.credit_line(sales.id, 10)],
        )

        flipped = registry.update_ledger(sales.id, actor_id=test_actor_id, group="Direct Expenses")
        same_nature = registry.update_ledger(sales.id, actor_id=test_actor_id, group="Indirect Incomes")

        assert flipped.code == "GROUP_NATURE_CHANGE"
        assert same_nature.is_success

    def test_unknown_ledger(self, registry, test_actor_id):
        assert registry.update_ledger(uuid4(), actor_id=test_actor_id, name="x").code == "LEDGER_NOT_FOUND"


class TestDeleteLedger:

    def test_unused_ledger_deleted(self, session, registry, create_ledger, test_actor_id):
        ledger = create_ledger("Temp", "Sundry Creditors")
        ledger_id = ledger.id

        result = registry.delete_ledger(ledger_id, actor_id=test_actor_id)

        assert result.status is LedgerOutcome.DELETED
        assert session.get(Ledger, ledger_id) is None

    def test_ledger_with_entries_is_kept(
        self, session, registry, voucher_engine, company, create_ledger, test_actor_id
    ):
        cash = create_ledger("Cash", "Cash-in-hand", 50)
        sales = create_ledger("Sales", "Sales Accounts")
        created = voucher_engine.create_voucher(
            company_id=company.id,
            voucher_type="sales",
            voucher_date=date(2024, 6, 1),
            narration=None,
            created_by=test_actor_id,
            entries=[EntryLine.debit_line(cash.id, 10), EntryLine.credit_line(sales.id, 10)],
        )
        voucher_engine.cancel_voucher(created.voucher_id, actor_id=test_actor_id)

        result = registry.delete_ledger(sales.id, actor_id=test_actor_id)

        assert result.status is LedgerOutcome.REJECTED
        assert result.code == "LEDGER_HAS_TRANSACTIONS"
        assert result.error.entry_count == 1
        assert str(result.error).startswith("Cannot delete ledger with existing transactions")
        assert session.get(Ledger, sales.id) is not None

    def test_deletable_after_voucher_deleted(
        self, session, registry, voucher_engine, company, create_ledger, test_actor_id
    ):
        cash = create_ledger("Cash", "Cash-in-hand", 50)
        sales = create_ledger("Sales", "Sales Accounts")
        created = voucher_engine.create_voucher(
            company_id=company.id,
            voucher_type="sales",
            voucher_date=date(2024, 6, 1),
            narration=None,
            created_by=test_actor_id,
            entries=[EntryLine.debit_line(cash.id, 10), EntryLine.credit_line(sales.id, 10)],
        )
        voucher_engine.delete_voucher(created.voucher_id, actor_id=test_actor_id)

        assert registry.delete_ledger(sales.id, actor_id=test_actor_id).is_success

    def test_unknown_ledger(self, registry, test_actor_id):
        assert registry.delete_ledger(uuid4(), actor_id=test_actor_id).code == "LEDGER_NOT_FOUND"
