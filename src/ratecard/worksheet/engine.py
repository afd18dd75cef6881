"""Worksheet engine: row operations, recalculation and undo/redo history."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

import structlog

from ratecard.config import get_settings
from ratecard.domain.errors import (
    InvalidInputError,
    LastRowError,
    ReadonlyColumnError,
    UnknownColumnError,
    UnknownRowError,
)
from ratecard.domain.models import resolve_pricing_model
from ratecard.domain.numbers import ZERO, fits_in_cell, parse_number, round_money
from ratecard.domain.types import HistoryAction, PricingModel
from ratecard.worksheet.columns import create_empty_row, get_columns_for_pricing_model, new_row_id
from ratecard.worksheet.formula import FormulaEngine, bind_formula
from ratecard.worksheet.models import (
    CalculationData,
    Cell,
    ColumnDefinition,
    HistoryEntry,
    Row,
)
from ratecard.worksheet.rules import compute_column, validate_rows
from ratecard.worksheet.transcribe import to_pricing_parameters

logger = structlog.get_logger()

NUMBER_TOO_LARGE = "Number is too large"
RESULT_TOO_LARGE = "Result is too large"


def _number_cell(value: Decimal) -> Cell:
    if fits_in_cell(value):
        return Cell(value=value)
    return Cell(value=ZERO, error=NUMBER_TOO_LARGE)


@dataclass(frozen=True)
class FinalizedWorksheet:
    """What a finished worksheet hands to the persistence collaborator."""

    pricing_model: PricingModel
    total_price: Decimal
    valid_from: date | None
    valid_until: date | None
    parameters: Any


class Worksheet:
    """An editable pricing grid for one pricing model.

    Every mutation recalculates the whole grid (formula cells, then computed
    columns), then the grand total, the per-cell validation errors and the
    completion flag, and records a before/after snapshot for undo.

    Usage::

        sheet = Worksheet(PricingModel.TIERED)
        row_id = sheet.rows[0].id
        sheet.edit_cell(row_id, "minQty", "1")
        sheet.edit_cell(row_id, "pricePerUnit", "=2*2.5")
        sheet.undo()
    """

    def __init__(
        self,
        pricing_model: PricingModel | str,
        rows: list[Row] | None = None,
        *,
        max_history: int | None = None,
    ) -> None:
        if max_history is not None and max_history < 1:
            raise InvalidInputError(f"max_history must be at least 1, got {max_history}")
        self._pricing_model = resolve_pricing_model(pricing_model)
        self._columns = get_columns_for_pricing_model(self._pricing_model)
        self._max_history = max_history if max_history is not None else get_settings().worksheet_history_limit
        self._history: list[HistoryEntry] = []
        self._history_index = -1
        self._valid_from: date | None = None
        self._valid_until: date | None = None
        self._rows: list[Row] = []
        self._total_price = ZERO
        self._validation_errors: dict[str, dict[str, str]] = {}
        self._is_complete = False
        self._apply(rows if rows else [create_empty_row(self._columns)])

    @classmethod
    def from_document(cls, document: CalculationData, *, max_history: int | None = None) -> Worksheet:
        """Rebuild a worksheet from a saved ``CalculationData`` document.

        Numeric cell values that came back from JSON as strings are read as
        numbers again, and the saved history and position are restored.
        """
        instance = cls(document.pricing_model, [], max_history=max_history)
        instance._apply([instance._coerce_row(row) for row in document.rows] or [create_empty_row(instance._columns)])
        instance._history = [
            entry.model_copy(
                update={
                    "previous_state": [instance._coerce_row(row) for row in entry.previous_state],
                    "new_state": [instance._coerce_row(row) for row in entry.new_state],
                }
            )
            for entry in document.history
        ]
        instance._history_index = min(document.history_index, len(instance._history) - 1)
        instance._valid_from = document.valid_from
        instance._valid_until = document.valid_until
        return instance

    # -- State ----------------------------------------------------------------

    @property
    def pricing_model(self) -> PricingModel:
        return self._pricing_model

    @property
    def columns(self) -> tuple[ColumnDefinition, ...]:
        return self._columns

    @property
    def rows(self) -> list[Row]:
        """Return a copy of the current rows in display order."""
        return list(self._rows)

    @property
    def total_price(self) -> Decimal:
        return self._total_price

    @property
    def validation_errors(self) -> dict[str, dict[str, str]]:
        """Return validation messages keyed by row id, then column key."""
        return {row_id: dict(errors) for row_id, errors in self._validation_errors.items()}

    @property
    def is_complete(self) -> bool:
        return self._is_complete

    @property
    def valid_from(self) -> date | None:
        return self._valid_from

    @property
    def valid_until(self) -> date | None:
        return self._valid_until

    @property
    def history(self) -> list[HistoryEntry]:
        """Return a copy of the recorded history, oldest first."""
        return list(self._history)

    @property
    def history_index(self) -> int:
        """Index of the most recently applied history entry, -1 if none."""
        return self._history_index

    @property
    def can_undo(self) -> bool:
        return self._history_index >= 0

    @property
    def can_redo(self) -> bool:
        return self._history_index < len(self._history) - 1

    def has_cell_errors(self) -> bool:
        """Return True if any cell carries an error (formula failure or oversized number)."""
        return any(cell.error for row in self._rows for cell in row.cells.values())

    # -- Row operations -------------------------------------------------------

    def add_row(self) -> Row:
        """Append an empty row and return it."""
        row = create_empty_row(self._columns)
        self._commit(HistoryAction.ADD, [*self._rows, row], "Added row")
        logger.debug("worksheet_row_added", row_id=row.id, row_count=len(self._rows))
        return self._rows[-1]

    def delete_row(self, row_id: str) -> None:
        """Remove a row.

        Raises:
            UnknownRowError: If no row has ``row_id``.
            LastRowError: If it is the only remaining row.
        """
        index = self._row_index(row_id)
        if len(self._rows) == 1:
            raise LastRowError()
        rows = [*self._rows[:index], *self._rows[index + 1 :]]
        self._commit(HistoryAction.DELETE, rows, f"Deleted row {index + 1}")
        logger.debug("worksheet_row_deleted", row_id=row_id, row_count=len(self._rows))

    def duplicate_row(self, row_id: str) -> Row:
        """Copy a row's cells into a new row inserted right after it."""
        index = self._row_index(row_id)
        copy = Row(id=new_row_id(), cells=dict(self._rows[index].cells))
        rows = [*self._rows[: index + 1], copy, *self._rows[index + 1 :]]
        self._commit(HistoryAction.ADD, rows, f"Duplicated row {index + 1}")
        logger.debug("worksheet_row_duplicated", source_row_id=row_id, row_id=copy.id)
        return self._rows[index + 1]

    def move_row(self, from_index: int, to_index: int) -> None:
        """Move the row at ``from_index`` so it ends up at ``to_index``.

        Raises:
            InvalidInputError: If either index is outside the grid.
        """
        count = len(self._rows)
        if not (0 <= from_index < count and 0 <= to_index < count):
            raise InvalidInputError(f"Row index out of range (0-{count - 1})")
        if from_index == to_index:
            return
        rows = list(self._rows)
        rows.insert(to_index, rows.pop(from_index))
        self._commit(HistoryAction.REORDER, rows, f"Moved row {from_index + 1} to {to_index + 1}")
        logger.debug("worksheet_row_moved", from_index=from_index, to_index=to_index)

    def edit_cell(self, row_id: str, column_key: str, raw_input: object) -> Cell:
        """Commit user input to a cell and return the recalculated cell.

        Input starting with ``=`` is stored as a formula (its positional
        references bound to column keys) and evaluated. Anything else is a
        literal: numeric columns read it leniently as a number (``0`` when
        unparseable), text columns keep it as typed. A literal clears any
        previous formula.

        Raises:
            UnknownRowError: If no row has ``row_id``.
            UnknownColumnError: If the schema has no ``column_key``.
            ReadonlyColumnError: If the column is computed.
        """
        index = self._row_index(row_id)
        column = self._column(column_key)
        if not column.is_editable:
            raise ReadonlyColumnError(column_key)

        text = "" if raw_input is None else str(raw_input)
        if text.startswith("="):
            cell = Cell(value=ZERO, formula=bind_formula(text, self._columns))
        elif column.is_numeric:
            cell = _number_cell(parse_number(text))
        else:
            cell = Cell(value=text)

        row = self._rows[index]
        edited = Row(id=row.id, cells={**row.cells, column_key: cell})
        rows = [*self._rows[:index], edited, *self._rows[index + 1 :]]
        self._commit(HistoryAction.EDIT, rows, f"Edited {column.label} in row {index + 1}")

        result = self._rows[index].cells[column_key]
        logger.debug(
            "worksheet_cell_edited",
            row_id=row_id,
            column=column_key,
            has_formula=result.formula is not None,
            error=result.error,
        )
        return result

    # -- History --------------------------------------------------------------

    def undo(self) -> bool:
        """Restore the state before the current history entry.

        Returns:
            False (and changes nothing) if there is nothing to undo.
        """
        if not self.can_undo:
            return False
        entry = self._history[self._history_index]
        self._history_index -= 1
        self._apply(entry.previous_state)
        logger.debug("worksheet_undo", action=entry.action, history_index=self._history_index)
        return True

    def redo(self) -> bool:
        """Re-apply the history entry after the current one.

        Returns:
            False (and changes nothing) if there is nothing to redo.
        """
        if not self.can_redo:
            return False
        self._history_index += 1
        entry = self._history[self._history_index]
        self._apply(entry.new_state)
        logger.debug("worksheet_redo", action=entry.action, history_index=self._history_index)
        return True

    # -- Validity and finalisation --------------------------------------------

    def set_validity(self, valid_from: date | None, valid_until: date | None) -> None:
        """Set the dates between which the resulting prices apply.

        Raises:
            InvalidInputError: If ``valid_until`` is before ``valid_from``.
        """
        if valid_from is not None and valid_until is not None and valid_until < valid_from:
            raise InvalidInputError("Valid until date must not be before valid from date")
        self._valid_from = valid_from
        self._valid_until = valid_until

    def readiness_errors(self) -> list[str]:
        """Return the reasons the worksheet cannot be finalized, if any."""
        errors: list[str] = []
        if not self._is_complete:
            errors.append("Please complete all required fields in the calculation table")
        if self._validation_errors or self.has_cell_errors():
            errors.append("Please fix all validation errors in the table")
        if self._total_price <= ZERO:
            errors.append("Total price must be greater than 0")
        return errors

    def finalize(self) -> FinalizedWorksheet:
        """Produce the saved form of a finished worksheet.

        Raises:
            InvalidInputError: If the worksheet is not ready, listing why, or
                its rows do not form valid pricing parameters.
        """
        errors = self.readiness_errors()
        if errors:
            raise InvalidInputError("; ".join(errors))
        parameters = to_pricing_parameters(self._pricing_model, self._rows)
        logger.info(
            "worksheet_finalized",
            pricing_model=str(self._pricing_model),
            total_price=str(self._total_price),
            row_count=len(self._rows),
        )
        return FinalizedWorksheet(
            pricing_model=self._pricing_model,
            total_price=self._total_price,
            valid_from=self._valid_from,
            valid_until=self._valid_until,
            parameters=parameters,
        )

    def to_document(self) -> CalculationData:
        """Snapshot the worksheet as a serializable document."""
        return CalculationData(
            pricing_model=self._pricing_model,
            rows=list(self._rows),
            columns=list(self._columns),
            total_price=self._total_price,
            valid_from=self._valid_from,
            valid_until=self._valid_until,
            is_complete=self._is_complete,
            history=list(self._history),
            history_index=self._history_index,
        )

    # -- Internals ------------------------------------------------------------

    def _row_index(self, row_id: str) -> int:
        for index, row in enumerate(self._rows):
            if row.id == row_id:
                return index
        raise UnknownRowError(row_id)

    def _column(self, column_key: str) -> ColumnDefinition:
        for column in self._columns:
            if column.key == column_key:
                return column
        raise UnknownColumnError(column_key)

    def _coerce_row(self, row: Row) -> Row:
        cells = dict(row.cells)
        for column in self._columns:
            cell = cells.get(column.key)
            if cell is not None and (column.is_numeric or not column.is_editable) and isinstance(cell.value, str):
                number = _number_cell(parse_number(cell.value))
                cells[column.key] = cell.model_copy(
                    update={"value": number.value, "error": number.error or cell.error}
                )
        return Row(id=row.id, cells=cells)

    def _commit(self, action: HistoryAction, rows: list[Row], description: str) -> None:
        previous = list(self._rows)
        self._apply(rows)
        entry = HistoryEntry(
            id=new_row_id(),
            action=action,
            timestamp=datetime.now(tz=UTC),
            previous_state=previous,
            new_state=list(self._rows),
            description=description,
        )
        # A new mutation after undo discards the redo branch
        self._history = [*self._history[: self._history_index + 1], entry]
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history :]
        self._history_index = len(self._history) - 1

    def _apply(self, rows: list[Row]) -> None:
        recalculated = self._recalculate(rows)
        total_price = self._grand_total(recalculated)
        validation_errors = validate_rows(recalculated, self._columns)
        cell_errors = any(cell.error for row in recalculated for cell in row.cells.values())
        self._rows = recalculated
        self._total_price = total_price
        self._validation_errors = validation_errors
        self._is_complete = bool(recalculated) and not validation_errors and not cell_errors

    def _recalculate(self, rows: list[Row]) -> list[Row]:
        engine = FormulaEngine(rows, self._columns)
        computed = [column for column in self._columns if not column.is_editable]
        recalculated: list[Row] = []
        for index, row in enumerate(rows):
            cells = dict(row.cells)
            for key, cell in row.cells.items():
                if cell.formula:
                    outcome = engine.evaluate_cell(index, key)
                    cells[key] = Cell(value=outcome.value, formula=cell.formula, error=outcome.error)
                    if outcome.error:
                        logger.debug("formula_evaluation_failed", row_index=index, column=key, error=outcome.error)
            evaluated = Row(id=row.id, cells=dict(cells))
            for column in computed:
                if column.formula is not None:
                    value = compute_column(column.formula, evaluated)
                    if fits_in_cell(value):
                        cells[column.key] = Cell(value=value)
                    else:
                        cells[column.key] = Cell(value=ZERO, error=RESULT_TOO_LARGE)
            recalculated.append(Row(id=row.id, cells=cells))
        return recalculated

    def _grand_total(self, rows: list[Row]) -> Decimal:
        total = ZERO
        for row in rows:
            for column in self._columns:
                if not column.is_editable or column.counts_toward_total:
                    total += parse_number(row.value(column.key))
        return round_money(total)
