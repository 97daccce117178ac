"""
Module: oceanre_kernel.db.types
Responsibility: Annotated type aliases and utility functions for financial-grade
    column types.  Centralizes precision and rounding so that every model and
    service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats anywhere in the kernel.  All monetary amounts use Decimal
      with explicit precision.
    - AMOUNT_STORAGE_PLACES bounds the configurable posting precision:
      an amount is never stored with more places than the column holds.
    - AMOUNT_LIMIT bounds magnitude: an amount with more integer digits
      than the column holds is rejected before it reaches the database.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from sqlalchemy import Numeric, String
from sqlalchemy.types import TypeDecorator

AMOUNT_PRECISION = 20
AMOUNT_STORAGE_PLACES = 6
# Smallest magnitude a Numeric(20, 6) column cannot hold.
AMOUNT_LIMIT = Decimal(10) ** (AMOUNT_PRECISION - AMOUNT_STORAGE_PLACES)


class ExactDecimal(TypeDecorator):
    """
    Decimal column that never passes through float.

    PostgreSQL gets a native NUMERIC(20, 6).  SQLite has no decimal storage
    class and keeps NUMERIC as REAL, so there the value is stored as its
    decimal text and parsed back with Decimal.
    """

    impl = Numeric(AMOUNT_PRECISION, AMOUNT_STORAGE_PLACES)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(AMOUNT_PRECISION + 2))
        return dialect.type_descriptor(
            Numeric(AMOUNT_PRECISION, AMOUNT_STORAGE_PLACES, asdecimal=True)
        )

    def process_bind_param(self, value, dialect):
        if value is None or dialect.name != "sqlite":
            return value
        return str(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(str(value))


# Monetary amount: 20 digits total, 6 decimal places of storage.
# Posting precision (default 2) is configured and must not exceed storage.
Amount = Annotated[Decimal, ExactDecimal()]

ShortCode = Annotated[str, String(50)]

LongText = Annotated[str, String(500)]

DEFAULT_AMOUNT_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


def to_amount(value: Any) -> Decimal:
    """
    Convert an input value to Decimal without going through float.

    Raises:
        ValueError: If value is a float, a bool, or not numeric.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"Amounts must not be floats or booleans: {value!r}")
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a numeric amount: {value!r}") from exc
    else:
        raise ValueError(f"Unsupported amount type: {type(value).__name__}")
    if not result.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")
    return result


def round_amount(
    value: Decimal,
    decimal_places: int = DEFAULT_AMOUNT_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    This is the only sanctioned rounding function for amounts.
    """
    return value.quantize(Decimal(1).scaleb(-decimal_places), rounding=rounding)


def fits_precision(value: Decimal, decimal_places: int = DEFAULT_AMOUNT_PLACES) -> bool:
    """Check that rounding to ``decimal_places`` would not change the value."""
    return round_amount(value, decimal_places) == value


def fits_storage(value: Decimal) -> bool:
    """Check that the integer part fits the amount columns."""
    return abs(value) < AMOUNT_LIMIT
