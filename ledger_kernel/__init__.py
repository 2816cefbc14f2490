"""
Double-entry ledger kernel.

Ledgers with cached balances, vouchers made of balanced entry lines, and the
engine that keeps the two consistent.  Public entry points:

    VoucherEngine        create / update / cancel / delete / transfer_cash
    LedgerRegistry       create / update / delete ledgers, create companies
    StatementSelector    ledger statements
    DayBookSelector      day book
    ReconciliationService  drift check and repair
"""
