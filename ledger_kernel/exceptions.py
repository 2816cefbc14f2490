"""
Typed exception hierarchy for the ledger kernel.

Every error has a typed class, a machine-readable ``code`` class attribute,
and structured attributes set in ``__init__`` so that callers never parse
message strings.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidEntryLineError
    |   +-- EmptyVoucherError
    |   +-- UnbalancedVoucherError
    |   +-- LedgerCompanyMismatchError
    |   +-- DateOutsideFinancialYearError
    |   +-- GroupNatureChangeError
    |
    +-- NegativeCashBalanceError
    |
    +-- LedgerHasTransactionsError
    |
    +-- NotFoundError
    |   +-- CompanyNotFoundError
    |   +-- LedgerNotFoundError
    |   +-- VoucherNotFoundError
    |
    +-- VoucherStateError
    |   +-- VoucherAlreadyCancelledError
    |   +-- VoucherCancelledError
    |
    +-- ImportRowError
    |
    +-- TransactionFailureError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES
===============================================================================

Category      | Code                           | When Raised
--------------|--------------------------------|---------------------------------
Validation    | INVALID_ENTRY_LINE             | Line not exactly one positive side
              | EMPTY_VOUCHER                  | Voucher has no lines
              | UNBALANCED_VOUCHER             | Sum(debit) != Sum(credit)
              | LEDGER_COMPANY_MISMATCH        | Ledger belongs to another company
              | DATE_OUTSIDE_FINANCIAL_YEAR    | Voucher date outside company FY
              | GROUP_NATURE_CHANGE            | Regrouping a used ledger flips nature
Business rule | NEGATIVE_CASH_BALANCE          | Cash-in-hand would go below zero
Delete guard  | LEDGER_HAS_TRANSACTIONS        | Ledger still referenced by entries
Not found     | COMPANY_NOT_FOUND              | Unknown company id
              | LEDGER_NOT_FOUND               | Unknown ledger id
              | VOUCHER_NOT_FOUND              | Unknown voucher id
State         | VOUCHER_ALREADY_CANCELLED      | Cancel on a cancelled voucher
              | VOUCHER_CANCELLED              | Update on a cancelled voucher
Import        | IMPORT_ROW_ERROR               | A feed row could not be mapped
Infrastructure| TRANSACTION_FAILURE            | Commit/flush failed; rolled back
Config        | CONFIGURATION_ERROR            | Settings file invalid

===============================================================================
PROPAGATION
===============================================================================

Services raise.  The transaction-owning boundary classes (VoucherEngine,
LedgerRegistry, BulkImporter) catch LedgerKernelError, roll back, and return
a typed result carrying the exception.  TransactionFailureError is the one
kernel error that escapes the boundary: the session has been rolled back and
the caller decides whether to retry.
"""

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID


class LedgerKernelError(Exception):
    """Base exception.  Subclasses must define ``code``."""

    code: str = "LEDGER_KERNEL_ERROR"


# Validation


class ValidationError(LedgerKernelError):
    """Malformed input rejected before any write."""

    code: str = "VALIDATION_ERROR"


class InvalidEntryLineError(ValidationError):
    """An entry line does not carry exactly one positive side."""

    code: str = "INVALID_ENTRY_LINE"

    def __init__(self, line_index: int, reason: str):
        self.line_index = line_index
        self.reason = reason
        super().__init__(f"Entry line {line_index}: {reason}")


class EmptyVoucherError(ValidationError):
    """A voucher was submitted with no entry lines."""

    code: str = "EMPTY_VOUCHER"

    def __init__(self):
        super().__init__("A voucher needs at least one entry line")


class UnbalancedVoucherError(ValidationError):
    """Voucher debits do not equal credits."""

    code: str = "UNBALANCED_VOUCHER"

    def __init__(self, debits: Decimal, credits: Decimal):
        self.debits = debits
        self.credits = credits
        super().__init__(f"Unbalanced voucher: debits={debits}, credits={credits}")


class LedgerCompanyMismatchError(ValidationError):
    """A referenced ledger belongs to a different company."""

    code: str = "LEDGER_COMPANY_MISMATCH"

    def __init__(self, ledger_id: UUID, company_id: UUID):
        self.ledger_id = ledger_id
        self.company_id = company_id
        super().__init__(f"Ledger {ledger_id} does not belong to company {company_id}")


class DateOutsideFinancialYearError(ValidationError):
    """Voucher date falls outside the company's active financial year."""

    code: str = "DATE_OUTSIDE_FINANCIAL_YEAR"

    def __init__(self, voucher_date: date, year_start: date, year_end: date):
        self.voucher_date = voucher_date
        self.year_start = year_start
        self.year_end = year_end
        super().__init__(
            f"Date {voucher_date} is outside the financial year "
            f"{year_start} to {year_end}"
        )


class GroupNatureChangeError(ValidationError):
    """Regrouping a ledger that has entries would flip its nature."""

    code: str = "GROUP_NATURE_CHANGE"

    def __init__(self, ledger_id: UUID, old_group: str, new_group: str):
        self.ledger_id = ledger_id
        self.old_group = old_group
        self.new_group = new_group
        super().__init__(
            f"Ledger {ledger_id} has transactions; moving it from "
            f"'{old_group}' to '{new_group}' would change its nature"
        )


# Business rules


class NegativeCashBalanceError(LedgerKernelError):
    """A Cash-in-hand ledger would end below zero."""

    code: str = "NEGATIVE_CASH_BALANCE"

    def __init__(self, ledger_id: UUID, ledger_name: str, projected_balance: Decimal):
        self.ledger_id = ledger_id
        self.ledger_name = ledger_name
        self.projected_balance = projected_balance
        super().__init__(
            f"Transaction rejected: Cash ledger '{ledger_name}' would have "
            f"a negative balance ({projected_balance.normalize():f})."
        )


class LedgerHasTransactionsError(LedgerKernelError):
    """Ledger deletion refused while entries reference it."""

    code: str = "LEDGER_HAS_TRANSACTIONS"

    def __init__(self, ledger_id: UUID, entry_count: int):
        self.ledger_id = ledger_id
        self.entry_count = entry_count
        super().__init__(
            f"Cannot delete ledger with existing transactions "
            f"({entry_count} entries reference {ledger_id})."
        )


# Not found


class NotFoundError(LedgerKernelError):
    """An identifier did not resolve."""

    code: str = "NOT_FOUND"


class CompanyNotFoundError(NotFoundError):
    code: str = "COMPANY_NOT_FOUND"

    def __init__(self, company_id: UUID):
        self.company_id = company_id
        super().__init__(f"Company not found: {company_id}")


class LedgerNotFoundError(NotFoundError):
    code: str = "LEDGER_NOT_FOUND"

    def __init__(self, ledger_id: UUID):
        self.ledger_id = ledger_id
        super().__init__(f"Ledger not found: {ledger_id}")


class VoucherNotFoundError(NotFoundError):
    code: str = "VOUCHER_NOT_FOUND"

    def __init__(self, voucher_id: UUID):
        self.voucher_id = voucher_id
        super().__init__(f"Voucher not found: {voucher_id}")


# Voucher lifecycle


class VoucherStateError(LedgerKernelError):
    """Operation not allowed in the voucher's current status."""

    code: str = "VOUCHER_STATE_ERROR"


class VoucherAlreadyCancelledError(VoucherStateError):
    code: str = "VOUCHER_ALREADY_CANCELLED"

    def __init__(self, voucher_id: UUID, voucher_number: str):
        self.voucher_id = voucher_id
        self.voucher_number = voucher_number
        super().__init__(f"Voucher {voucher_number} is already cancelled")


class VoucherCancelledError(VoucherStateError):
    """Cancelled vouchers cannot be edited back to life."""

    code: str = "VOUCHER_CANCELLED"

    def __init__(self, voucher_id: UUID, voucher_number: str):
        self.voucher_id = voucher_id
        self.voucher_number = voucher_number
        super().__init__(f"Voucher {voucher_number} is cancelled and cannot be updated")


# Import


class ImportRowError(LedgerKernelError):
    """
    A single bulk-import row could not be mapped.

    Carries the offending row so the caller can show it to the user.
    """

    code: str = "IMPORT_ROW_ERROR"

    def __init__(self, section: str, row_number: int, row: Any, reason: str):
        self.section = section
        self.row_number = row_number
        self.row = row
        self.reason = reason
        super().__init__(f"{section} row {row_number}: {reason}")


# Infrastructure


class TransactionFailureError(LedgerKernelError):
    """The atomic commit failed and the transaction was rolled back."""

    code: str = "TRANSACTION_FAILURE"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed and was rolled back: {detail}")


class ConfigurationError(LedgerKernelError):
    code: str = "CONFIGURATION_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid configuration in {source}: {reason}")
