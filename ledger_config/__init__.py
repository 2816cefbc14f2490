"""
ledger_config -- settings for the ledger engine.

Public entry point: ``load_settings()``.  Defaults ship in
``defaults/ledger.yaml``; an operator file (``LEDGER_CONFIG``) and
``DATABASE_URL`` override them.
"""

from ledger_config.loader import load_settings
from ledger_config.schema import (
    BalanceTreatment,
    DatabaseSettings,
    FinancialYearSettings,
    ImportSettings,
    LedgerSettings,
)

__all__ = [
    "BalanceTreatment",
    "DatabaseSettings",
    "FinancialYearSettings",
    "ImportSettings",
    "LedgerSettings",
    "load_settings",
]
