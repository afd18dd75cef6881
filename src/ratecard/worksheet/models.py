"""Pydantic v2 models for the calculation worksheet.

Rows and cells are frozen: every mutation builds new objects, so a history
snapshot can share row objects with the live grid without deep copies.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ratecard.domain.types import (
    NUMERIC_COLUMN_TYPES,
    ColumnType,
    ComputedFormula,
    HistoryAction,
    PricingModel,
    ValidationRule,
)

CellValue = str | Decimal


class Cell(BaseModel):
    """One worksheet cell.

    When ``formula`` is set, ``value`` holds the last evaluated result, or
    ``0`` with ``error`` set if evaluation failed. The formula text is kept in
    its key-bound form (see ``ratecard.worksheet.formula.bind_formula``).
    """

    model_config = ConfigDict(frozen=True)

    value: CellValue = ""
    formula: str | None = None
    error: str | None = None


class Row(BaseModel):
    """A worksheet row with a stable identity across reorders."""

    model_config = ConfigDict(frozen=True)

    id: str
    cells: dict[str, Cell] = Field(default_factory=dict)

    def cell(self, key: str) -> Cell | None:
        """Return the cell for ``key``, or None if the row has none."""
        return self.cells.get(key)

    def value(self, key: str) -> CellValue | None:
        """Return the value of the cell for ``key``, or None if absent."""
        cell = self.cells.get(key)
        return cell.value if cell is not None else None


class ColumnDefinition(BaseModel):
    """A typed worksheet column.

    Attributes:
        key: Stable column key, used by cells and bound formula references.
        label: Display label.
        type: Column type; ``readonly`` columns are computed.
        required: Whether an empty cell blocks completion.
        rules: Validators applied to non-empty cells.
        formula: Built-in formula for a readonly column.
        counts_toward_total: Whether a currency input column is summed into
            the grand total (inputs already folded into a computed column
            are not).
        width: Presentation width in pixels.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    type: ColumnType
    required: bool = False
    rules: tuple[ValidationRule, ...] = ()
    formula: ComputedFormula | None = None
    counts_toward_total: bool = False
    width: int = 120

    @model_validator(mode="after")
    def formula_only_on_readonly(self) -> "ColumnDefinition":
        """Ensure computed formulas and readonly columns go together."""
        if (self.type == ColumnType.READONLY) != (self.formula is not None):
            raise ValueError(f"column '{self.key}': readonly columns, and only they, need a formula")
        return self

    @property
    def is_numeric(self) -> bool:
        """Return True for number, percentage and currency columns."""
        return self.type in NUMERIC_COLUMN_TYPES

    @property
    def is_editable(self) -> bool:
        """Return True unless the column is computed."""
        return self.type != ColumnType.READONLY


class HistoryEntry(BaseModel):
    """A committed worksheet mutation with before and after row snapshots."""

    model_config = ConfigDict(frozen=True)

    id: str
    action: HistoryAction
    timestamp: datetime
    previous_state: list[Row]
    new_state: list[Row]
    description: str


class CalculationData(BaseModel):
    """Serializable worksheet document, stored on the rate card at save time."""

    pricing_model: PricingModel
    rows: list[Row]
    columns: list[ColumnDefinition]
    total_price: Decimal = Decimal("0")
    valid_from: date | None = None
    valid_until: date | None = None
    is_complete: bool = False
    history: list[HistoryEntry] = Field(default_factory=list)
    history_index: int = -1
