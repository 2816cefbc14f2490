"""
Configuration schema (``ledger_config.schema``).

Frozen dataclasses produced by ``ledger_config.loader``.  Label maps are
stored with normalized keys (lowercase, single spaces) so lookups are
independent of the spelling in the source feed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Mapping


def normalize_label(label: str) -> str:
    """Lowercase and collapse whitespace."""
    return " ".join(str(label).split()).lower()


class BalanceTreatment(str, Enum):
    """
    What an imported trial balance means relative to the imported history.

    AS_IS:   ledgers keep the trial balance as opening and current balance;
             history is stored but not reflected (source behaviour).
    OPENING: the trial balance is as of before the history; history is
             replayed into current_balance.
    CLOSING: the trial balance is as of after the history; the opening
             balance is backed out so opening + history = trial balance.
    """

    AS_IS = "as_is"
    OPENING = "opening"
    CLOSING = "closing"


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite://"
    echo: bool = False


@dataclass(frozen=True)
class FinancialYearSettings:
    start_month: int = 4
    start_day: int = 1

    def bounds_containing(self, day: date) -> tuple[date, date]:
        """
        The financial year that contains ``day``.

        Example (1 April start):
            bounds_containing(date(2026, 1, 15)) -> (2025-04-01, 2026-03-31)
        """
        start = date(day.year, self.start_month, self.start_day)
        if day < start:
            start = date(day.year - 1, self.start_month, self.start_day)
        next_start = date(start.year + 1, self.start_month, self.start_day)
        return start, date.fromordinal(next_start.toordinal() - 1)


@dataclass(frozen=True)
class ImportSettings:
    group_labels: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    voucher_type_labels: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    bank_tokens: tuple[str, ...] = ()
    cash_bank_label: str = "cash/bank"
    suspense_ledger_name: str = "Suspense"
    balance_treatment: BalanceTreatment = BalanceTreatment.AS_IS


@dataclass(frozen=True)
class LedgerSettings:
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    financial_year: FinancialYearSettings = field(default_factory=FinancialYearSettings)
    importer: ImportSettings = field(default_factory=ImportSettings)
    sources: tuple[str, ...] = ()
