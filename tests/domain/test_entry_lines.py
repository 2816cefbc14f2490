"""Tests for entry-line validation (ledger_kernel/domain/entries.py)."""

from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.entries import (
    EntryLine,
    Movement,
    movements_by_ledger,
    normalize_lines,
    projected_cash_balance,
    validate_voucher_lines,
)
from ledger_kernel.exceptions import (
    EmptyVoucherError,
    InvalidEntryLineError,
    UnbalancedVoucherError,
    ValidationError,
)


class TestNormalizeLines:

    def test_mappings_are_coerced(self):
        ledger_id = uuid4()
        (line,) = normalize_lines([{"ledger_id": str(ledger_id), "debit": "150.50", "credit": ""}])
        assert line == EntryLine(ledger_id=ledger_id, debit=Decimal("150.50"), credit=Decimal("0"))

    def test_both_sides_positive_rejected(self):
        with pytest.raises(InvalidEntryLineError) as exc_info:
            normalize_lines([EntryLine(uuid4(), Decimal("1"), Decimal("1"))])
        assert exc_info.value.line_index == 0

    def test_zero_line_rejected(self):
        with pytest.raises(InvalidEntryLineError):
            normalize_lines([EntryLine(uuid4())])

    def test_negative_amount_rejected(self):
        lines = [
            EntryLine.debit_line(uuid4(), 10),
            {"ledger_id": uuid4(), "credit": "-10"},
        ]
        with pytest.raises(InvalidEntryLineError) as exc_info:
            normalize_lines(lines)
        assert exc_info.value.line_index == 1

    def test_missing_or_bad_ledger_id(self):
        with pytest.raises(InvalidEntryLineError):
            normalize_lines([{"debit": 5}])
        with pytest.raises(InvalidEntryLineError):
            normalize_lines([{"ledger_id": "not-a-uuid", "debit": 5}])

    def test_unreadable_amount(self):
        with pytest.raises(InvalidEntryLineError):
            normalize_lines([{"ledger_id": uuid4(), "debit": "ten"}])

    def test_errors_are_validation_errors(self):
        with pytest.raises(ValidationError):
            normalize_lines([{"ledger_id": uuid4(), "debit": True}])


class TestValidateVoucherLines:

    def test_balanced_voucher(self):
        a, b = uuid4(), uuid4()
        lines = validate_voucher_lines([EntryLine.debit_line(a, 100), EntryLine.credit_line(b, 100)])
        assert [line.ledger_id for line in lines] == [a, b]

    def test_empty_voucher(self):
        with pytest.raises(EmptyVoucherError):
            validate_voucher_lines([])

    def test_unbalanced_voucher(self):
        with pytest.raises(UnbalancedVoucherError) as exc_info:
            validate_voucher_lines(
                [EntryLine.debit_line(uuid4(), 100), EntryLine.credit_line(uuid4(), 90)]
            )
        assert exc_info.value.debits == Decimal("100")
        assert exc_info.value.credits == Decimal("90")
        assert exc_info.value.code == "UNBALANCED_VOUCHER"


class TestMovements:

    def test_lines_aggregate_per_ledger(self):
        cash, sales = uuid4(), uuid4()
        movements = movements_by_ledger(
            [
                EntryLine.debit_line(cash, 60),
                EntryLine.debit_line(cash, 40),
                EntryLine.credit_line(sales, 100),
            ]
        )
        assert movements[cash] == Movement(Decimal("100"), Decimal("0"))
        assert movements[sales].net_debit == Decimal("-100")

    def test_projected_cash_balance(self):
        old = Movement(Decimal("200"), Decimal("0"))
        new = Movement(Decimal("0"), Decimal("300"))
        assert projected_cash_balance(Decimal("700"), old, new) == Decimal("200")
        assert projected_cash_balance(Decimal("100"), None, new) == Decimal("-200")
        assert projected_cash_balance(Decimal("100"), old, None) == Decimal("-100")
