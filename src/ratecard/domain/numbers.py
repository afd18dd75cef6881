"""Decimal helpers shared by the calculators and the worksheet engine.

All monetary values are Decimal and quantized to two decimal places with
ROUND_HALF_UP rounding. Floats are converted through ``str()`` so a binary
approximation such as ``0.1 + 0.2`` never enters a calculation.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ratecard.domain.errors import InvalidInputError

# Precision: all monetary values quantized to 2 decimal places
TWO_PLACES = Decimal("0.01")

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

# Largest magnitude a worksheet cell may hold, so sums of cells stay quantizable
MAX_CELL_MAGNITUDE = Decimal("1e15")

# Leading numeric prefix, the way a spreadsheet reads "12.5 units" as 12.5
_NUMERIC_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def round_money(value: Decimal) -> Decimal:
    """Quantize a value to cents using ROUND_HALF_UP.

    Raises:
        InvalidInputError: If the value has too many digits to be expressed
            in cents at the current Decimal precision.
    """
    try:
        return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidInputError(f"Amount is too large to price: {value}") from None


def fits_in_cell(value: Decimal) -> bool:
    """Return True if a worksheet cell can hold ``value``."""
    return abs(value) < MAX_CELL_MAGNITUDE


def to_decimal(value: object) -> Decimal:
    """Strictly convert a numeric input to a finite Decimal.

    Accepts ``int``, ``float``, ``Decimal`` and numeric strings. Booleans are
    rejected even though they are ``int`` subclasses.

    Raises:
        ValueError: If the value is not numeric or not finite.
    """
    if isinstance(value, bool):
        raise ValueError("Expected a number, got a boolean")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"Expected a number, got {value!r}") from None
    else:
        raise ValueError(f"Expected a number, got {type(value).__name__}")
    if not result.is_finite():
        raise ValueError(f"Expected a finite number, got {value!r}")
    return result


def parse_number(value: object) -> Decimal:
    """Leniently read a cell value as a number, defaulting to zero.

    Currency symbols, thousands separators and percent signs are ignored and
    only the leading numeric prefix of a string is used. Anything else
    (``None``, empty strings, non-numeric text) reads as ``0``.
    """
    if isinstance(value, bool) or value is None:
        return ZERO
    if isinstance(value, (int, float, Decimal)):
        try:
            return to_decimal(value)
        except ValueError:
            return ZERO
    if isinstance(value, str):
        match = _NUMERIC_PREFIX.match(value.replace("$", "").replace(",", "").replace("%", ""))
        if match:
            return Decimal(match.group(1))
    return ZERO


def is_blank(value: object) -> bool:
    """Return True for ``None`` and empty or whitespace-only strings."""
    return value is None or (isinstance(value, str) and not value.strip())
