"""ORM models.  Importing this package registers every table on Base.metadata."""

from ledger_kernel.models.company import Company
from ledger_kernel.models.ledger import Ledger
from ledger_kernel.models.voucher import Voucher, VoucherEntry, VoucherStatus, VoucherType
from ledger_kernel.models.sequence import SequenceCounter

__all__ = [
    "Company",
    "Ledger",
    "SequenceCounter",
    "Voucher",
    "VoucherEntry",
    "VoucherStatus",
    "VoucherType",
]
