"""
Module: ledger_kernel.db.types
Responsibility: Annotated column aliases and money helpers shared by models,
    services and the importer.
Architecture position: Kernel > DB.  MUST NOT import from higher layers.

Invariants enforced:
    - No floats for amounts.  to_money() converts floats through str() so a
      caller passing 0.1 gets Decimal("0.1"), never the binary expansion.
    - round_money() is the single rounding function for display-level
      amounts (2 places, ROUND_HALF_UP).
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated

from sqlalchemy import BigInteger, Numeric, String

# 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

Sequence = Annotated[int, BigInteger]

ShortCode = Annotated[str, String(50)]

Name = Annotated[str, String(255)]

LongText = Annotated[str, String(4000)]

MONEY_DECIMAL_PLACES = 9
DISPLAY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


def money_from_str(value: str) -> Decimal:
    """
    Create a Money value from a string.

    Raises:
        ValueError: If value is not a number.
    """
    try:
        return Decimal(value.strip())
    except (InvalidOperation, AttributeError) as exc:
        raise ValueError(f"Not a monetary amount: {value!r}") from exc


def to_money(value: object) -> Decimal:
    """
    Coerce an amount supplied by a caller into a Decimal.

    None and the empty string are treated as zero (an entry line that only
    names the other side).  bool is rejected because it is an int subclass
    and True would silently become 1.

    Raises:
        ValueError: If value cannot be interpreted as an amount.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"Not a monetary amount: {value!r}")
        return value
    if isinstance(value, (int, float)):
        return to_money(str(value))
    if isinstance(value, str):
        if not value.strip():
            return ZERO
        return to_money(money_from_str(value))
    raise ValueError(f"Not a monetary amount: {value!r}")


def round_money(
    value: Decimal,
    decimal_places: int = DISPLAY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    Example:
        round_money(Decimal("10.125")) -> Decimal("10.13")
    """
    quantizer = Decimal(10) ** -decimal_places
    return value.quantize(quantizer, rounding=rounding)
