"""Domain-specific exception classes for the rate card engine."""


class RateCardError(Exception):
    """Base class for all domain errors in the rate card engine."""


class InvalidInputError(RateCardError):
    """Raised when a calculation input or pricing parameter is unusable.

    Covers non-positive quantities, missing or negative required parameters,
    unsupported pricing model tags and inverted validity windows.
    """


class NoCardSelectedError(RateCardError):
    """Raised when a calculator session is asked to calculate without a card."""

    def __init__(self) -> None:
        super().__init__("No rate card selected")


class FormulaError(RateCardError):
    """Raised by the formula engine when a formula cannot be evaluated.

    Never escapes the evaluation boundary: it is converted into a cell error.
    """


class WorksheetError(RateCardError):
    """Base class for rejected worksheet operations."""


class UnknownRowError(WorksheetError):
    """Raised when an operation names a row id the worksheet does not hold.

    Attributes:
        row_id: The row id that was not found.
    """

    def __init__(self, row_id: str) -> None:
        self.row_id = row_id
        super().__init__(f"Unknown row '{row_id}'")


class UnknownColumnError(WorksheetError):
    """Raised when an operation names a column key outside the schema.

    Attributes:
        column_key: The column key that was not found.
    """

    def __init__(self, column_key: str) -> None:
        self.column_key = column_key
        super().__init__(f"Unknown column '{column_key}'")


class ReadonlyColumnError(WorksheetError):
    """Raised when a computed (readonly) column is edited directly.

    Attributes:
        column_key: The readonly column key.
    """

    def __init__(self, column_key: str) -> None:
        self.column_key = column_key
        super().__init__(f"Column '{column_key}' is computed and cannot be edited")


class LastRowError(WorksheetError):
    """Raised when deleting the only remaining worksheet row."""

    def __init__(self) -> None:
        super().__init__("A worksheet must keep at least one row")
