"""Keyboard-driven cell editing on top of a ``Worksheet``.

``CellEditor`` holds the in-progress draft of one cell. While an asyncio
event loop is running, typing schedules a debounced commit: further typing
restarts the timer and only the latest draft is committed. Enter/Tab commit
and advance, Escape cancels, arrow keys commit and move.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum

import structlog

from ratecard.config import get_settings
from ratecard.domain.errors import ReadonlyColumnError, UnknownColumnError, UnknownRowError
from ratecard.domain.numbers import is_blank
from ratecard.worksheet.engine import Worksheet
from ratecard.worksheet.formula import display_formula
from ratecard.worksheet.models import Cell

logger = structlog.get_logger()


class Direction(StrEnum):
    """Arrow-key directions."""

    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class CellPosition:
    """A cell addressed by row id and column key."""

    row_id: str
    column_key: str


class CellEditor:
    """Edits one worksheet cell at a time.

    Usage::

        editor = CellEditor(sheet)
        editor.start_edit(row_id, "minQty")
        editor.update_draft("=A1+1")
        editor.advance()  # commit, then edit the next editable cell
    """

    def __init__(self, worksheet: Worksheet, debounce_seconds: float | None = None) -> None:
        self._worksheet = worksheet
        self._debounce_seconds = (
            debounce_seconds if debounce_seconds is not None else get_settings().edit_debounce_seconds
        )
        self._position: CellPosition | None = None
        self._draft = ""
        self._committed_draft = ""
        self._pending: asyncio.TimerHandle | None = None

    @property
    def position(self) -> CellPosition | None:
        """The cell being edited, or None."""
        return self._position

    @property
    def draft(self) -> str:
        return self._draft

    @property
    def is_editing(self) -> bool:
        return self._position is not None

    @property
    def has_pending_commit(self) -> bool:
        """True while a debounced commit is scheduled."""
        return self._pending is not None

    def start_edit(self, row_id: str, column_key: str) -> str:
        """Begin editing a cell, committing any cell already being edited.

        The draft starts as the cell's formula (shown with positional
        references) if it has one, otherwise its current value.

        Returns:
            The initial draft text.

        Raises:
            UnknownRowError: If no row has ``row_id``.
            UnknownColumnError: If the schema has no ``column_key``.
            ReadonlyColumnError: If the column is computed.
        """
        column = next((c for c in self._worksheet.columns if c.key == column_key), None)
        if column is None:
            raise UnknownColumnError(column_key)
        if not column.is_editable:
            raise ReadonlyColumnError(column_key)
        row = next((r for r in self._worksheet.rows if r.id == row_id), None)
        if row is None:
            raise UnknownRowError(row_id)

        if self._position is not None:
            self.commit()

        self._position = CellPosition(row_id, column_key)
        self._draft = self._initial_draft(row.cell(column_key))
        self._committed_draft = self._draft
        return self._draft

    def update_draft(self, text: str) -> None:
        """Replace the draft and (re)start the debounced commit timer."""
        if self._position is None:
            return
        self._draft = text
        self._cancel_pending()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._pending = loop.call_later(self._debounce_seconds, self._debounced_commit)

    def commit(self) -> Cell | None:
        """Commit the draft and stop editing.

        Returns:
            The recalculated cell, or None if nothing was being edited.
        """
        if self._position is None:
            return None
        position = self._position
        cell = self._flush()
        self._position = None
        self._draft = ""
        if cell is None:
            row = next((r for r in self._worksheet.rows if r.id == position.row_id), None)
            cell = row.cell(position.column_key) if row is not None else None
        return cell

    def cancel(self) -> None:
        """Drop the draft and any pending commit, and stop editing."""
        self._cancel_pending()
        self._position = None
        self._draft = ""
        self._committed_draft = ""

    def advance(self, backwards: bool = False) -> CellPosition | None:
        """Commit, then edit the next (or previous) editable cell.

        Moves across columns first and wraps to the next (or previous) row.

        Returns:
            The new position, or None if the edge of the grid was reached,
            in which case editing stops.
        """
        if self._position is None:
            return None
        position = self._position
        self.commit()

        cells = self._editable_cells()
        try:
            current = cells.index(position)
        except ValueError:
            return None
        target = current - 1 if backwards else current + 1
        if not 0 <= target < len(cells):
            return None
        self.start_edit(cells[target].row_id, cells[target].column_key)
        return self._position

    def move(self, direction: Direction | str) -> CellPosition | None:
        """Commit, then edit the neighbouring editable cell in ``direction``.

        Does not wrap. Horizontal moves skip computed columns.

        Returns:
            The new position, or None if there is no such cell, in which
            case editing stops.
        """
        if self._position is None:
            return None
        direction = Direction(direction)
        position = self._position
        self.commit()

        row_ids = [row.id for row in self._worksheet.rows]
        keys = [column.key for column in self._worksheet.columns if column.is_editable]
        if position.row_id not in row_ids or position.column_key not in keys:
            return None
        row_index = row_ids.index(position.row_id)
        column_index = keys.index(position.column_key)

        if direction == Direction.UP:
            row_index -= 1
        elif direction == Direction.DOWN:
            row_index += 1
        elif direction == Direction.LEFT:
            column_index -= 1
        else:
            column_index += 1

        if not (0 <= row_index < len(row_ids) and 0 <= column_index < len(keys)):
            return None
        self.start_edit(row_ids[row_index], keys[column_index])
        return self._position

    def _initial_draft(self, cell: Cell | None) -> str:
        if cell is None:
            return ""
        if cell.formula:
            return display_formula(cell.formula, self._worksheet.columns)
        return "" if is_blank(cell.value) else str(cell.value)

    def _editable_cells(self) -> list[CellPosition]:
        keys = [column.key for column in self._worksheet.columns if column.is_editable]
        return [CellPosition(row.id, key) for row in self._worksheet.rows for key in keys]

    def _flush(self) -> Cell | None:
        """Commit the draft to the worksheet if it changed since the last commit."""
        self._cancel_pending()
        if self._position is None or self._draft == self._committed_draft:
            return None
        cell = self._worksheet.edit_cell(self._position.row_id, self._position.column_key, self._draft)
        self._committed_draft = self._draft
        return cell

    def _debounced_commit(self) -> None:
        self._pending = None
        try:
            self._flush()
        except (UnknownRowError, UnknownColumnError) as exc:
            # The row went away while the timer was running
            logger.debug("debounced_commit_dropped", error=str(exc))
            self.cancel()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
