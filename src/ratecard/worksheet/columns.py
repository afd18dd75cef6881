"""Column schemas for each pricing model's calculation worksheet.

Each pricing model has a fixed, ordered list of columns. Validation and
computed values are expressed as enumerated rules and formulas interpreted by
``ratecard.worksheet.rules`` so a schema stays plain, serializable data.
"""

import uuid

from ratecard.domain.errors import InvalidInputError
from ratecard.domain.numbers import ZERO
from ratecard.domain.types import (
    ColumnType,
    ComputedFormula,
    PricingModel,
    ValidationRule,
)
from ratecard.worksheet.models import Cell, ColumnDefinition, Row

_TIERED_COLUMNS: tuple[ColumnDefinition, ...] = (
    ColumnDefinition(key="tierName", label="Tier Name", type=ColumnType.TEXT, required=True, width=150),
    ColumnDefinition(
        key="minQty",
        label="Min Qty",
        type=ColumnType.NUMBER,
        required=True,
        rules=(ValidationRule.NON_NEGATIVE,),
        width=100,
    ),
    ColumnDefinition(
        key="maxQty",
        label="Max Qty",
        type=ColumnType.NUMBER,
        rules=(ValidationRule.NON_NEGATIVE, ValidationRule.TIER_RANGE),
        width=100,
    ),
    ColumnDefinition(
        key="pricePerUnit",
        label="Price/Unit",
        type=ColumnType.CURRENCY,
        required=True,
        rules=(ValidationRule.NON_NEGATIVE,),
    ),
    ColumnDefinition(
        key="total", label="Total", type=ColumnType.READONLY, formula=ComputedFormula.TIER_TOTAL
    ),
)

_SEAT_BASED_COLUMNS: tuple[ColumnDefinition, ...] = (
    ColumnDefinition(key="seatRange", label="Seat Range", type=ColumnType.TEXT, required=True),
    ColumnDefinition(
        key="pricePerSeat",
        label="Price/Seat",
        type=ColumnType.CURRENCY,
        required=True,
        rules=(ValidationRule.POSITIVE,),
    ),
    ColumnDefinition(
        key="discount",
        label="Discount %",
        type=ColumnType.PERCENTAGE,
        rules=(ValidationRule.PERCENTAGE_RANGE,),
        width=100,
    ),
    ColumnDefinition(
        key="subtotal",
        label="Subtotal",
        type=ColumnType.READONLY,
        formula=ComputedFormula.SEAT_SUBTOTAL,
    ),
)

_SUBSCRIPTION_COLUMNS: tuple[ColumnDefinition, ...] = (
    ColumnDefinition(key="planName", label="Plan Name", type=ColumnType.TEXT, required=True, width=150),
    ColumnDefinition(
        key="monthly",
        label="Monthly",
        type=ColumnType.CURRENCY,
        required=True,
        rules=(ValidationRule.POSITIVE,),
        counts_toward_total=True,
        width=100,
    ),
    ColumnDefinition(
        key="annual",
        label="Annual",
        type=ColumnType.CURRENCY,
        rules=(ValidationRule.NON_NEGATIVE,),
        counts_toward_total=True,
        width=100,
    ),
    ColumnDefinition(
        key="discount",
        label="Discount",
        type=ColumnType.PERCENTAGE,
        rules=(ValidationRule.PERCENTAGE_RANGE,),
        width=100,
    ),
    ColumnDefinition(key="features", label="Features", type=ColumnType.TEXT, width=200),
)

_COST_PLUS_COLUMNS: tuple[ColumnDefinition, ...] = (
    ColumnDefinition(key="item", label="Item", type=ColumnType.TEXT, required=True, width=150),
    ColumnDefinition(
        key="baseCost",
        label="Base Cost",
        type=ColumnType.CURRENCY,
        required=True,
        rules=(ValidationRule.NON_NEGATIVE,),
    ),
    ColumnDefinition(
        key="markup",
        label="Markup %",
        type=ColumnType.PERCENTAGE,
        required=True,
        rules=(ValidationRule.NON_NEGATIVE,),
        width=100,
    ),
    ColumnDefinition(
        key="finalPrice",
        label="Final Price",
        type=ColumnType.READONLY,
        formula=ComputedFormula.FINAL_PRICE,
    ),
)

_FLAT_RATE_COLUMNS: tuple[ColumnDefinition, ...] = (
    ColumnDefinition(key="service", label="Service", type=ColumnType.TEXT, required=True, width=200),
    ColumnDefinition(
        key="oneTime",
        label="One-time",
        type=ColumnType.CURRENCY,
        rules=(ValidationRule.NON_NEGATIVE,),
        counts_toward_total=True,
    ),
    ColumnDefinition(
        key="recurring",
        label="Recurring",
        type=ColumnType.CURRENCY,
        rules=(ValidationRule.NON_NEGATIVE,),
        counts_toward_total=True,
    ),
    ColumnDefinition(key="period", label="Period", type=ColumnType.TEXT, width=100),
)

COLUMN_SCHEMAS: dict[PricingModel, tuple[ColumnDefinition, ...]] = {
    PricingModel.TIERED: _TIERED_COLUMNS,
    PricingModel.SEAT_BASED: _SEAT_BASED_COLUMNS,
    PricingModel.SUBSCRIPTION: _SUBSCRIPTION_COLUMNS,
    PricingModel.COST_PLUS: _COST_PLUS_COLUMNS,
    PricingModel.FLAT_RATE: _FLAT_RATE_COLUMNS,
}


def get_columns_for_pricing_model(pricing_model: PricingModel | str) -> tuple[ColumnDefinition, ...]:
    """Look up the ordered column schema for a pricing model.

    Raises:
        InvalidInputError: If the pricing model tag is unsupported.
    """
    try:
        return COLUMN_SCHEMAS[PricingModel(pricing_model)]
    except ValueError:
        raise InvalidInputError(f"Unsupported pricing model: {pricing_model}") from None


def new_row_id() -> str:
    """Return a fresh, unique row id."""
    return uuid.uuid4().hex


def create_empty_row(columns: tuple[ColumnDefinition, ...] | list[ColumnDefinition]) -> Row:
    """Build a row with a type-appropriate default in every column.

    Numeric columns (and computed ones) start at ``0``; text columns start
    empty.
    """
    cells: dict[str, Cell] = {}
    for column in columns:
        if column.is_numeric or not column.is_editable:
            cells[column.key] = Cell(value=ZERO)
        else:
            cells[column.key] = Cell(value="")
    return Row(id=new_row_id(), cells=cells)


def column_letter(index: int) -> str:
    """Return the spreadsheet letter for a zero-based column index (0 -> A, 26 -> AA)."""
    letters = ""
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def column_letter_map(columns: tuple[ColumnDefinition, ...] | list[ColumnDefinition]) -> dict[str, str]:
    """Map spreadsheet letters to column keys over the editable columns.

    Letters are assigned positionally to the editable (non-computed) columns:
    A is the first editable column, B the second, and so on.
    """
    editable = [column for column in columns if column.is_editable]
    return {column_letter(i): column.key for i, column in enumerate(editable)}
