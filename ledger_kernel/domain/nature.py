"""
Account nature classifier.

Responsibility:
    The single definition of which ledger groups increase with debits and
    which increase with credits, plus the signed-delta rule every balance
    mutation and every statement fold uses.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Imported by models, services,
    selectors and the importer; nothing else may carry its own group list.

Invariants enforced:
    - nature() is total: unknown labels and None classify as CREDIT.
    - signed_delta() is the only place the debit/credit sign rule lives.
"""

from decimal import Decimal
from enum import Enum


class AccountNature(str, Enum):
    """Side on which a ledger's balance grows."""

    DEBIT = "debit"
    CREDIT = "credit"


class LedgerGroup(str, Enum):
    """
    Group classifications known to the ledger.

    Values are the display labels stored in ``ledgers.group_name``.
    """

    # Debit nature
    ASSET = "Asset"
    EXPENSE = "Expense"
    CASH_IN_HAND = "Cash-in-hand"
    BANK_ACCOUNTS = "Bank Accounts"
    SUNDRY_DEBTORS = "Sundry Debtors"
    CURRENT_ASSETS = "Current Assets"
    FIXED_ASSETS = "Fixed Assets"
    DIRECT_EXPENSES = "Direct Expenses"
    INDIRECT_EXPENSES = "Indirect Expenses"
    PURCHASE_ACCOUNTS = "Purchase Accounts"
    STOCK_IN_HAND = "Stock-in-hand"
    DEPOSITS_ASSET = "Deposits (Asset)"
    LOANS_AND_ADVANCES_ASSET = "Loans & Advances (Asset)"
    MISC_EXPENSES_ASSET = "Misc. Expenses (Asset)"

    # Credit nature
    LIABILITY = "Liability"
    INCOME = "Income"
    CAPITAL_ACCOUNT = "Capital Account"
    RESERVES_AND_SURPLUS = "Reserves & Surplus"
    SUNDRY_CREDITORS = "Sundry Creditors"
    CURRENT_LIABILITIES = "Current Liabilities"
    DUTIES_AND_TAXES = "Duties & Taxes"
    PROVISIONS = "Provisions"
    LOANS_LIABILITY = "Loans (Liability)"
    SECURED_LOANS = "Secured Loans"
    UNSECURED_LOANS = "Unsecured Loans"
    BANK_OD = "Bank OD A/c"
    SALES_ACCOUNTS = "Sales Accounts"
    DIRECT_INCOMES = "Direct Incomes"
    INDIRECT_INCOMES = "Indirect Incomes"
    SUSPENSE = "Suspense A/c"

    @classmethod
    def from_label(cls, label: "str | LedgerGroup | None") -> "LedgerGroup | None":
        """Resolve a stored or user-typed label; None when unknown."""
        if isinstance(label, LedgerGroup):
            return label
        if label is None:
            return None
        return _BY_KEY.get(_key(label))


def _key(label: str) -> str:
    return " ".join(label.split()).lower()


_BY_KEY = {_key(g.value): g for g in LedgerGroup}

# Plural/short spellings seen in stored data.
_BY_KEY.update(
    {
        "assets": LedgerGroup.ASSET,
        "expenses": LedgerGroup.EXPENSE,
        "liabilities": LedgerGroup.LIABILITY,
        "incomes": LedgerGroup.INCOME,
    }
)

DEBIT_NATURE_GROUPS: frozenset[LedgerGroup] = frozenset(
    {
        LedgerGroup.ASSET,
        LedgerGroup.EXPENSE,
        LedgerGroup.CASH_IN_HAND,
        LedgerGroup.BANK_ACCOUNTS,
        LedgerGroup.SUNDRY_DEBTORS,
        LedgerGroup.CURRENT_ASSETS,
        LedgerGroup.FIXED_ASSETS,
        LedgerGroup.DIRECT_EXPENSES,
        LedgerGroup.INDIRECT_EXPENSES,
        LedgerGroup.PURCHASE_ACCOUNTS,
        LedgerGroup.STOCK_IN_HAND,
        LedgerGroup.DEPOSITS_ASSET,
        LedgerGroup.LOANS_AND_ADVANCES_ASSET,
        LedgerGroup.MISC_EXPENSES_ASSET,
    }
)


def nature(group: "str | LedgerGroup | None") -> AccountNature:
    """
    Classify a ledger group.

    Args:
        group: A LedgerGroup or any stored label.

    Returns:
        AccountNature.DEBIT for the debit-nature groups, CREDIT otherwise.
    """
    if LedgerGroup.from_label(group) in DEBIT_NATURE_GROUPS:
        return AccountNature.DEBIT
    return AccountNature.CREDIT


def signed_delta(
    ledger_nature: AccountNature,
    debit: Decimal,
    credit: Decimal,
) -> Decimal:
    """
    Balance change caused by one entry line.

    DEBIT nature: debit - credit.  CREDIT nature: credit - debit.
    """
    if ledger_nature is AccountNature.DEBIT:
        return debit - credit
    return credit - debit


def is_cash_group(group: "str | LedgerGroup | None") -> bool:
    """True for Cash-in-hand, the one group that may never go negative."""
    return LedgerGroup.from_label(group) is LedgerGroup.CASH_IN_HAND
