"""
Entry lines -- pure validation and movement arithmetic.

Responsibility:
    Normalizes caller-supplied entry lines into immutable EntryLine values,
    validates them (exactly one positive side, non-empty, balanced) and
    aggregates them into per-ledger movements for balance projection.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  The Voucher Engine calls these
    before it touches the database, so every rejection happens before any
    write.

Failure modes:
    - InvalidEntryLineError for a malformed line (index is zero-based).
    - EmptyVoucherError for an empty line list.
    - UnbalancedVoucherError when debits and credits differ.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from ledger_kernel.db.types import ZERO, to_money
from ledger_kernel.exceptions import (
    EmptyVoucherError,
    InvalidEntryLineError,
    UnbalancedVoucherError,
)


@dataclass(frozen=True)
class EntryLine:
    """One debit or credit against one ledger."""

    ledger_id: UUID
    debit: Decimal = ZERO
    credit: Decimal = ZERO

    @classmethod
    def debit_line(cls, ledger_id: UUID, amount: Decimal | int | str) -> EntryLine:
        return cls(ledger_id=ledger_id, debit=to_money(amount))

    @classmethod
    def credit_line(cls, ledger_id: UUID, amount: Decimal | int | str) -> EntryLine:
        return cls(ledger_id=ledger_id, credit=to_money(amount))


@dataclass(frozen=True)
class Movement:
    """Summed debit and credit of one voucher against one ledger."""

    debit: Decimal = ZERO
    credit: Decimal = ZERO

    @property
    def net_debit(self) -> Decimal:
        return self.debit - self.credit

    def __add__(self, other: Movement) -> Movement:
        return Movement(self.debit + other.debit, self.credit + other.credit)


def _coerce_line(index: int, raw: EntryLine | Mapping) -> EntryLine:
    if isinstance(raw, EntryLine):
        ledger_id, debit, credit = raw.ledger_id, raw.debit, raw.credit
    elif isinstance(raw, Mapping):
        ledger_id = raw.get("ledger_id")
        debit, credit = raw.get("debit"), raw.get("credit")
    else:
        raise InvalidEntryLineError(index, f"unsupported line type {type(raw).__name__}")

    if ledger_id is None or ledger_id == "":
        raise InvalidEntryLineError(index, "ledger_id is required")
    if not isinstance(ledger_id, UUID):
        try:
            ledger_id = UUID(str(ledger_id))
        except ValueError as exc:
            raise InvalidEntryLineError(index, f"ledger_id {ledger_id!r} is not a UUID") from exc

    try:
        debit = to_money(debit)
        credit = to_money(credit)
    except ValueError as exc:
        raise InvalidEntryLineError(index, str(exc)) from exc

    return EntryLine(ledger_id=ledger_id, debit=debit, credit=credit)


def normalize_lines(lines: Iterable[EntryLine | Mapping]) -> tuple[EntryLine, ...]:
    """
    Coerce and validate each line on its own.

    Each line must have non-negative amounts with exactly one side positive.

    Raises:
        InvalidEntryLineError: On the first malformed line.
    """
    result = []
    for index, raw in enumerate(lines):
        line = _coerce_line(index, raw)
        if line.debit < ZERO or line.credit < ZERO:
            raise InvalidEntryLineError(index, "amounts must not be negative")
        if (line.debit > ZERO) == (line.credit > ZERO):
            raise InvalidEntryLineError(
                index, "exactly one of debit or credit must be positive"
            )
        result.append(line)
    return tuple(result)


def validate_voucher_lines(lines: Iterable[EntryLine | Mapping]) -> tuple[EntryLine, ...]:
    """
    Full voucher-level validation: well-formed lines, at least one, balanced.

    Returns:
        The normalized lines, in input order.
    """
    normalized = normalize_lines(lines)
    if not normalized:
        raise EmptyVoucherError()
    debits = sum((line.debit for line in normalized), ZERO)
    credits = sum((line.credit for line in normalized), ZERO)
    if debits != credits:
        raise UnbalancedVoucherError(debits, credits)
    return normalized


def movements_by_ledger(lines: Iterable[EntryLine]) -> dict[UUID, Movement]:
    """Aggregate lines per ledger, preserving first-seen order."""
    movements: dict[UUID, Movement] = {}
    for line in lines:
        movements[line.ledger_id] = movements.get(line.ledger_id, Movement()) + Movement(
            line.debit, line.credit
        )
    return movements


def projected_cash_balance(
    current_balance: Decimal,
    old: Movement | None,
    new: Movement | None,
) -> Decimal:
    """
    Cash balance after swapping a voucher's old movement for its new one.

    Cash is debit-natured: the old net debit comes off, the new one goes on.
    """
    projected = current_balance
    if old is not None:
        projected -= old.net_debit
    if new is not None:
        projected += new.net_debit
    return projected
