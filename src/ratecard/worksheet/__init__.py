"""Calculation worksheet: typed columns, formulas, recalculation and history.

Re-exports key classes and functions for convenient access:
    from ratecard.worksheet import Worksheet, CellEditor, get_columns_for_pricing_model
"""

from ratecard.worksheet.columns import (
    COLUMN_SCHEMAS,
    column_letter,
    create_empty_row,
    get_columns_for_pricing_model,
)
from ratecard.worksheet.editor import CellEditor, CellPosition, Direction
from ratecard.worksheet.engine import FinalizedWorksheet, Worksheet
from ratecard.worksheet.formula import (
    FormulaEngine,
    FormulaResult,
    bind_formula,
    display_formula,
    evaluate_formula,
    validate_formula,
)
from ratecard.worksheet.models import (
    CalculationData,
    Cell,
    ColumnDefinition,
    HistoryEntry,
    Row,
)
from ratecard.worksheet.transcribe import to_pricing_parameters

__all__ = [
    "COLUMN_SCHEMAS",
    "CalculationData",
    "Cell",
    "CellEditor",
    "CellPosition",
    "ColumnDefinition",
    "Direction",
    "FinalizedWorksheet",
    "FormulaEngine",
    "FormulaResult",
    "HistoryEntry",
    "Row",
    "Worksheet",
    "bind_formula",
    "column_letter",
    "create_empty_row",
    "display_formula",
    "evaluate_formula",
    "get_columns_for_pricing_model",
    "to_pricing_parameters",
    "validate_formula",
]
