"""
SequenceService and VoucherSequencer -- locked counters for voucher numbers
and creation order.

Responsibility:
    SequenceService hands out strictly increasing integers per counter name
    from the ``sequence_counters`` table, serialized with
    ``SELECT ... FOR UPDATE``.

    VoucherSequencer turns a (company, voucher type) counter into display
    numbers such as ``SAL0007``.  The counter is seeded on first use from the
    highest trailing number already stored under the type's prefix, so
    numbering continues from legacy or imported vouchers.

    Creation order (``Voucher.seq``) is a separate counter per company, so
    creates in different companies do not contend for one row.

Architecture position:
    Kernel > Services.  Called by the Voucher Engine and the Bulk Importer.

Invariants enforced:
    - Two creates for the same (company, type) never receive the same
      number: the counter row is locked for the rest of the transaction,
      and (company_id, voucher_type, voucher_number) is unique on vouchers.
    - The increment is transactional.  If the voucher is rolled back, so is
      the number.

Failure modes:
    - IntegrityError when two transactions create the same counter row at
      once; resolved by rolling back a savepoint and locking the winner's row.
"""

import re
from collections.abc import Callable
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.sequence import SequenceCounter
from ledger_kernel.models.voucher import Voucher, VoucherType

logger = get_logger("services.sequence")

VOUCHER_PREFIXES: dict[VoucherType, str] = {
    VoucherType.RECEIPT: "REC",
    VoucherType.PAYMENT: "PMT",
    VoucherType.SALES: "SAL",
    VoucherType.PURCHASE: "PUR",
    VoucherType.JOURNAL: "JV",
    VoucherType.CONTRA: "CON",
}
DEFAULT_PREFIX = "VOU"
NUMBER_WIDTH = 4

_TRAILING_DIGITS = re.compile(r"(\d+)$")


def prefix_for(voucher_type: VoucherType | str) -> str:
    """Display prefix for a voucher type; VOU for anything unrecognized."""
    try:
        return VOUCHER_PREFIXES[VoucherType(voucher_type)]
    except ValueError:
        return DEFAULT_PREFIX


def format_voucher_number(prefix: str, value: int) -> str:
    """format_voucher_number("SAL", 12) -> "SAL0012"."""
    return f"{prefix}{value:0{NUMBER_WIDTH}d}"


def trailing_number(voucher_number: str) -> int | None:
    """Trailing digit run of a voucher number, or None if it has none."""
    match = _TRAILING_DIGITS.search(voucher_number or "")
    return int(match.group(1)) if match else None


class SequenceService:
    """
    Transactional named counters.

    Non-goals:
        Does NOT commit.  Values become visible when the caller commits.
    """

    def __init__(self, session: Session):
        self._session = session

    def _lock(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(
        self,
        sequence_name: str,
        count: int = 1,
        seed: Callable[[], int] | None = None,
    ) -> int:
        """
        Reserve ``count`` consecutive values and return the first.

        Args:
            sequence_name: Counter name.
            count: How many values to reserve (bulk import reserves a block).
            seed: Called only when the counter does not exist yet; returns
                the value the new counter starts after.  Defaults to 0.

        Returns:
            The first reserved value (always > 0).
        """
        if count < 1:
            raise ValueError("count must be at least 1")

        counter = self._lock(sequence_name)

        if counter is None:
            start_after = seed() if seed is not None else 0
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(
                    name=sequence_name,
                    current_value=start_after + count,
                )
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": start_after + 1},
                )
                return start_after + 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._lock(sequence_name)
                if counter is None:
                    raise

        first = counter.current_value + 1
        counter.current_value += count
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": first},
        )
        return first

    def current_value(self, sequence_name: str) -> int | None:
        """Current value without incrementing, or None if the counter is new."""
        return self._session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name
            )
        ).scalar_one_or_none()

    def drop_matching(self, name_prefix: str) -> int:
        """Delete every counter whose name starts with name_prefix."""
        result = self._session.execute(
            delete(SequenceCounter).where(SequenceCounter.name.startswith(name_prefix, autoescape=True))
        )
        return result.rowcount or 0


class VoucherSequencer:
    """
    Per-(company, type) voucher numbering.

    Contract:
        ``next(company, type)`` returns ``prefix + zero-padded(n, 4)`` where n
        is one more than the last number handed out for that pair, or one
        more than the highest trailing number of existing vouchers with the
        prefix when the pair has never been numbered here.
    """

    def __init__(self, session: Session, sequence_service: SequenceService | None = None):
        self._session = session
        self._sequences = sequence_service or SequenceService(session)

    @staticmethod
    def counter_name(company_id: UUID, voucher_type: VoucherType) -> str:
        return f"{VoucherSequencer.company_prefix(company_id)}{voucher_type.value}"

    @staticmethod
    def company_prefix(company_id: UUID) -> str:
        return f"voucher_number:{company_id}:"

    def next(self, company_id: UUID, voucher_type: VoucherType) -> str:
        """Allocate the next voucher number."""
        value = self._sequences.next_value(
            self.counter_name(company_id, voucher_type),
            seed=lambda: self.highest_existing(company_id, voucher_type),
        )
        return format_voucher_number(prefix_for(voucher_type), value)

    def peek(self, company_id: UUID, voucher_type: VoucherType) -> str:
        """The number next() would return, without consuming it."""
        current = self._sequences.current_value(self.counter_name(company_id, voucher_type))
        if current is None:
            current = self.highest_existing(company_id, voucher_type)
        return format_voucher_number(prefix_for(voucher_type), current + 1)

    def highest_existing(self, company_id: UUID, voucher_type: VoucherType) -> int:
        """Largest trailing number among this pair's prefixed voucher numbers."""
        prefix = prefix_for(voucher_type)
        numbers = self._session.execute(
            select(Voucher.voucher_number).where(
                Voucher.company_id == company_id,
                Voucher.voucher_type == voucher_type,
                Voucher.voucher_number.startswith(prefix),
            )
        ).scalars()
        return max(
            (n for n in map(trailing_number, numbers) if n is not None),
            default=0,
        )

    def reset_company(self, company_id: UUID) -> int:
        """Forget every counter of a company (after its vouchers are wiped)."""
        return self._sequences.drop_matching(self.company_prefix(company_id))

    @staticmethod
    def seq_counter_name(company_id: UUID) -> str:
        return f"voucher_seq:{company_id}"

    def next_seq(self, company_id: UUID, count: int = 1) -> int:
        """
        Reserve creation-order numbers for one company; returns the first.

        The counter is per company so creates in different companies never
        wait on the same row.  It survives reset_company() so order keeps
        increasing across a re-import.
        """
        return self._sequences.next_value(
            self.seq_counter_name(company_id),
            count=count,
            seed=lambda: self._highest_seq(company_id),
        )

    def _highest_seq(self, company_id: UUID) -> int:
        return self._session.execute(
            select(func.max(Voucher.seq)).where(Voucher.company_id == company_id)
        ).scalar_one_or_none() or 0
