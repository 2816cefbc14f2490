"""
ledger_ingestion -- bulk replacement of a company's books from an external
feed (an opening trial balance plus an optional transaction history).

Architecture:
    ledger_ingestion/ is a top-level package.  It writes through the
    kernel's services and reads ``ledger_config``; nothing in the kernel
    imports from ingestion.
"""
