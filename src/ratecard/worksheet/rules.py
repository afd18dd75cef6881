"""Interpreters for the enumerated column rules and built-in formulas."""

import re
from decimal import Decimal

from ratecard.domain.numbers import HUNDRED, ONE, ZERO, is_blank, parse_number
from ratecard.domain.types import ComputedFormula, ValidationRule
from ratecard.worksheet.models import ColumnDefinition, Row

REQUIRED_MESSAGE = "This field is required"

_SEAT_RANGE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")
_OPEN_SEAT_RANGE = re.compile(r"^\s*(\d+)\s*\+\s*$")


def parse_seat_range(text: object) -> tuple[int, int | None] | None:
    """Parse a seat range such as ``1-10``, ``26+`` or ``12``.

    Returns:
        ``(start, end)`` with ``end`` None for open ranges, or None when the
        text is not a seat range.
    """
    if not isinstance(text, str):
        text = str(text) if text is not None else ""
    bounded = _SEAT_RANGE.match(text)
    if bounded:
        return int(bounded.group(1)), int(bounded.group(2))
    open_ended = _OPEN_SEAT_RANGE.match(text)
    if open_ended:
        return int(open_ended.group(1)), None
    stripped = text.strip()
    if stripped.isdigit():
        return int(stripped), int(stripped)
    return None


def seats_in_range(text: object) -> Decimal:
    """Count the seats a range covers; open ranges count as one seat."""
    if isinstance(text, str) and text.strip().isdigit():
        return Decimal(text.strip())
    parsed = parse_seat_range(text)
    if parsed is None:
        return ZERO
    start, end = parsed
    if end is None:
        return ONE
    return Decimal(max(end - start + 1, 0))


def _tier_bounds(row: Row) -> tuple[Decimal, Decimal | None]:
    """Return a tier row's ``(min, max)``; a max of 0 or blank is unbounded."""
    minimum = parse_number(row.value("minQty"))
    maximum = parse_number(row.value("maxQty"))
    return minimum, (maximum if maximum > ZERO else None)


def compute_column(formula: ComputedFormula, row: Row) -> Decimal:
    """Evaluate a built-in formula for one row."""
    if formula == ComputedFormula.TIER_TOTAL:
        minimum, maximum = _tier_bounds(row)
        if maximum is None:
            return ZERO
        return (maximum - minimum + ONE) * parse_number(row.value("pricePerUnit"))

    if formula == ComputedFormula.SEAT_SUBTOTAL:
        subtotal = seats_in_range(row.value("seatRange")) * parse_number(row.value("pricePerSeat"))
        return subtotal * (ONE - parse_number(row.value("discount")) / HUNDRED)

    if formula == ComputedFormula.FINAL_PRICE:
        base_cost = parse_number(row.value("baseCost"))
        return base_cost * (ONE + parse_number(row.value("markup")) / HUNDRED)

    raise ValueError(f"Unknown computed formula: {formula}")


def _tier_range_error(row: Row, rows: list[Row]) -> str | None:
    minimum, maximum = _tier_bounds(row)
    if maximum is not None and maximum <= minimum:
        return "Maximum quantity must be greater than minimum"

    for position, other in enumerate(rows, start=1):
        if other.id == row.id:
            continue
        other_min, other_max = _tier_bounds(other)
        starts_before_other_ends = other_max is None or minimum <= other_max
        ends_after_other_starts = maximum is None or other_min <= maximum
        if starts_before_other_ends and ends_after_other_starts:
            return f"Range overlaps the tier in row {position}"
    return None


def _rule_error(rule: ValidationRule, value: object, row: Row, rows: list[Row]) -> str | None:
    number = parse_number(value)
    if rule == ValidationRule.NON_NEGATIVE and number < ZERO:
        return "Must be a non-negative number"
    if rule == ValidationRule.POSITIVE and number <= ZERO:
        return "Must be a positive number"
    if rule == ValidationRule.PERCENTAGE_RANGE and not ZERO <= number <= HUNDRED:
        return "Must be between 0 and 100"
    if rule == ValidationRule.TIER_RANGE:
        return _tier_range_error(row, rows)
    return None


def validate_cell(column: ColumnDefinition, row: Row, rows: list[Row]) -> str | None:
    """Validate one cell against its column's required flag and rules.

    Computed columns are never validated. Empty optional cells skip the rules.

    Returns:
        The first error message, or None if the cell is valid.
    """
    if not column.is_editable:
        return None

    value = row.value(column.key)
    if is_blank(value):
        return REQUIRED_MESSAGE if column.required else None

    for rule in column.rules:
        error = _rule_error(rule, value, row, rows)
        if error:
            return error
    return None


def validate_rows(
    rows: list[Row], columns: tuple[ColumnDefinition, ...] | list[ColumnDefinition]
) -> dict[str, dict[str, str]]:
    """Validate every cell, keyed by row id then column key.

    Rows without errors are omitted.
    """
    errors: dict[str, dict[str, str]] = {}
    for row in rows:
        row_errors = {}
        for column in columns:
            error = validate_cell(column, row, rows)
            if error:
                row_errors[column.key] = error
        if row_errors:
            errors[row.id] = row_errors
    return errors
