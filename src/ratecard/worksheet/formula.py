"""Formula engine for worksheet cells.

Grammar::

    formula  := "=" expr
    expr     := term (("+" | "-") term)*
    term     := unary (("*" | "/") unary)*
    unary    := ("+" | "-") unary | primary
    primary  := NUMBER | ref | call | "(" expr ")"
    call     := NAME "(" [arg ("," arg)*] ")"
    arg      := ref ":" ref | expr
    ref      := LETTERS DIGITS | "[" key "]" DIGITS

``B2`` is a positional reference: B is the second editable column of the
worksheet's schema and 2 the second row. ``[minQty]2`` is the same reference
bound to the column key. Formulas are stored in bound form (see
``bind_formula``) so their meaning does not depend on column order, and shown
in positional form (see ``display_formula``).

Functions: SUM, AVG, MIN, MAX, COUNT. Ranges (``A1:A5``) must stay within one
column and are only valid as function arguments.

References to cells that hold formulas are evaluated on demand, so evaluation
order does not matter; a reference cycle is reported as an error on every
cell in the cycle.
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from ratecard.domain.errors import FormulaError
from ratecard.domain.numbers import ZERO, fits_in_cell, parse_number
from ratecard.worksheet.columns import column_letter_map
from ratecard.worksheet.models import ColumnDefinition, Row

_TOKEN = re.compile(
    r"""
    \s*(?:
        (?P<number>\d+(?:\.\d*)?|\.\d+)
      | \[(?P<bound_key>[A-Za-z_][A-Za-z0-9_]*)\](?P<bound_row>\d+)
      | (?P<name>[A-Za-z_]+)(?P<name_row>\d*)
      | (?P<op>[-+*/(),:])
    )
    """,
    re.VERBOSE,
)

# Letter references outside brackets and not followed by "(" (function names)
_LETTER_REF = re.compile(r"(?<![A-Za-z0-9_\]])([A-Za-z]+)(\d+)(?![A-Za-z0-9_]|\s*\()")
_BOUND_REF = re.compile(r"\[([A-Za-z_][A-Za-z0-9_]*)\](\d+)")


def _aggregate_sum(values: list[Decimal]) -> Decimal:
    return sum(values, ZERO)


def _aggregate_avg(values: list[Decimal]) -> Decimal:
    return sum(values, ZERO) / len(values) if values else ZERO


def _aggregate_min(values: list[Decimal]) -> Decimal:
    return min(values) if values else ZERO


def _aggregate_max(values: list[Decimal]) -> Decimal:
    return max(values) if values else ZERO


def _aggregate_count(values: list[Decimal]) -> Decimal:
    return Decimal(len(values))


FUNCTIONS: dict[str, Callable[[list[Decimal]], Decimal]] = {
    "SUM": _aggregate_sum,
    "AVG": _aggregate_avg,
    "MIN": _aggregate_min,
    "MAX": _aggregate_max,
    "COUNT": _aggregate_count,
}


class CircularReferenceError(FormulaError):
    """Raised when a formula depends on itself, directly or indirectly."""

    def __init__(self) -> None:
        super().__init__("Circular reference")


@dataclass(frozen=True)
class CellRef:
    """A reference to one cell: zero-based row index and column key."""

    row_index: int
    column_key: str


@dataclass(frozen=True)
class FormulaResult:
    """Outcome of evaluating a formula.

    Attributes:
        value: The result, or ``0`` when evaluation failed.
        error: Why evaluation failed, or None.
    """

    value: Decimal
    error: str | None = None


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    ref: CellRef | None = None


def validate_formula(formula: str) -> str | None:
    """Pre-check formula syntax at input time, without evaluating it.

    Returns:
        An error message, or None if the formula passes the checks (an empty
        string also passes).
    """
    if not formula:
        return None
    if not formula.startswith("="):
        return "Formulas must start with ="

    expression = formula[1:]
    if "//" in expression or "/*" in expression:
        return "Invalid characters in formula"

    depth = 0
    for char in expression:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return "Unmatched closing parenthesis"
    if depth != 0:
        return "Unmatched opening parenthesis"
    return None


def bind_formula(formula: str, columns: Sequence[ColumnDefinition]) -> str:
    """Rewrite positional references (``B2``) into key-bound ones (``[minQty]2``).

    Letters beyond the editable columns are left as typed and read as ``0``.
    """
    letters = column_letter_map(columns)

    def _bind(match: re.Match[str]) -> str:
        key = letters.get(match.group(1).upper())
        return f"[{key}]{match.group(2)}" if key else match.group(0)

    return _LETTER_REF.sub(_bind, formula)


def display_formula(formula: str, columns: Sequence[ColumnDefinition]) -> str:
    """Rewrite key-bound references back to positional letters for display."""
    keys = {key: letter for letter, key in column_letter_map(columns).items()}

    def _unbind(match: re.Match[str]) -> str:
        letter = keys.get(match.group(1))
        return f"{letter}{match.group(2)}" if letter else match.group(0)

    return _BOUND_REF.sub(_unbind, formula)


def _tokenize(expression: str, letters: dict[str, str]) -> list[_Token]:
    tokens: list[_Token] = []
    position = 0
    expression = expression.rstrip()
    while position < len(expression):
        match = _TOKEN.match(expression, position)
        if match is None or match.end() == position:
            bad = expression[position:].lstrip()[:1]
            raise FormulaError(f"Unexpected character '{bad}'")
        position = match.end()

        if match.group("number") is not None:
            tokens.append(_Token("number", match.group("number")))
        elif match.group("bound_key") is not None:
            ref = CellRef(int(match.group("bound_row")) - 1, match.group("bound_key"))
            tokens.append(_Token("ref", match.group(0).strip(), ref))
        elif match.group("name") is not None:
            name, row_digits = match.group("name"), match.group("name_row")
            if row_digits and name.isalpha():
                key = letters.get(name.upper(), f"?{name.upper()}")
                tokens.append(_Token("ref", name + row_digits, CellRef(int(row_digits) - 1, key)))
            else:
                tokens.append(_Token("name", name + row_digits))
        else:
            tokens.append(_Token("op", match.group("op")))
    return tokens


class _Parser:
    """Recursive-descent evaluator over a token list."""

    def __init__(self, tokens: list[_Token], resolve: Callable[[CellRef], Decimal], row_count: int) -> None:
        self._tokens = tokens
        self._pos = 0
        self._resolve = resolve
        self._row_count = row_count

    def parse(self) -> Decimal:
        if not self._tokens:
            raise FormulaError("Empty formula")
        value = self._expr()
        if self._pos < len(self._tokens):
            raise FormulaError(f"Unexpected '{self._tokens[self._pos].text}'")
        return value

    def _peek(self) -> _Token | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _next(self) -> _Token:
        token = self._peek()
        if token is None:
            raise FormulaError("Unexpected end of formula")
        self._pos += 1
        return token

    def _accept(self, op: str) -> bool:
        token = self._peek()
        if token is not None and token.kind == "op" and token.text == op:
            self._pos += 1
            return True
        return False

    def _expect(self, op: str) -> None:
        if not self._accept(op):
            raise FormulaError(f"Expected '{op}'")

    def _expr(self) -> Decimal:
        value = self._term()
        while True:
            if self._accept("+"):
                value = value + self._term()
            elif self._accept("-"):
                value = value - self._term()
            else:
                return value

    def _term(self) -> Decimal:
        value = self._unary()
        while True:
            if self._accept("*"):
                value = value * self._unary()
            elif self._accept("/"):
                divisor = self._unary()
                if divisor == ZERO:
                    raise FormulaError("Division by zero")
                value = value / divisor
            else:
                return value

    def _unary(self) -> Decimal:
        if self._accept("-"):
            return -self._unary()
        if self._accept("+"):
            return self._unary()
        return self._primary()

    def _primary(self) -> Decimal:
        token = self._next()
        if token.kind == "number":
            return Decimal(token.text)
        if token.kind == "ref" and token.ref is not None:
            if self._accept(":"):
                raise FormulaError("Ranges are only allowed inside functions")
            return self._resolve(token.ref)
        if token.kind == "name":
            return self._call(token.text)
        if token.kind == "op" and token.text == "(":
            value = self._expr()
            self._expect(")")
            return value
        raise FormulaError(f"Unexpected '{token.text}'")

    def _call(self, name: str) -> Decimal:
        function = FUNCTIONS.get(name.upper())
        if function is None:
            raise FormulaError(f"Unknown function: {name}")
        self._expect("(")
        values: list[Decimal] = []
        if not self._accept(")"):
            while True:
                values.extend(self._argument())
                if self._accept(")"):
                    break
                self._expect(",")
        return function(values)

    def _argument(self) -> list[Decimal]:
        token = self._peek()
        following = self._tokens[self._pos + 1] if self._pos + 1 < len(self._tokens) else None
        if (
            token is not None
            and token.kind == "ref"
            and following is not None
            and following.kind == "op"
            and following.text == ":"
        ):
            self._pos += 2
            end = self._next()
            if end.kind != "ref" or end.ref is None or token.ref is None:
                raise FormulaError("Invalid range")
            return self._range(token.ref, end.ref)
        return [self._expr()]

    def _range(self, start: CellRef, end: CellRef) -> list[Decimal]:
        if start.column_key != end.column_key:
            raise FormulaError("Ranges must stay within one column")
        first, last = sorted((start.row_index, end.row_index))
        last = min(last, self._row_count - 1)
        return [self._resolve(CellRef(index, start.column_key)) for index in range(max(first, 0), last + 1)]


class FormulaEngine:
    """Evaluates formulas against a snapshot of worksheet rows.

    One engine instance memoizes the cells it has evaluated, so it should be
    built per recalculation pass and discarded afterwards.

    Usage::

        engine = FormulaEngine(rows, columns)
        engine.evaluate("=SUM(B1:B3)", current_row_index=0).value
    """

    def __init__(self, rows: Sequence[Row], columns: Sequence[ColumnDefinition]) -> None:
        self._rows = list(rows)
        self._letters = column_letter_map(columns)
        self._editable_keys = {column.key for column in columns if column.is_editable}
        self._values: dict[CellRef, Decimal] = {}
        self._failures: dict[CellRef, FormulaError] = {}
        self._visiting: set[CellRef] = set()

    def evaluate(self, formula: str, current_row_index: int) -> FormulaResult:
        """Evaluate a formula typed into row ``current_row_index``.

        References are absolute, so the row only identifies where the formula
        lives; it does not change the result. Never raises: failures come back
        as ``FormulaResult(value=0, error=...)``.
        """
        try:
            return FormulaResult(value=self._compute(formula))
        except FormulaError as exc:
            return FormulaResult(value=ZERO, error=str(exc))

    def evaluate_cell(self, row_index: int, column_key: str) -> FormulaResult:
        """Evaluate the formula stored in a cell, resolving formula dependencies."""
        ref = CellRef(row_index, column_key)
        try:
            return FormulaResult(value=self._value_of_formula_cell(ref))
        except FormulaError as exc:
            return FormulaResult(value=ZERO, error=str(exc))

    def _compute(self, formula: str) -> Decimal:
        syntax_error = validate_formula(formula)
        if syntax_error:
            raise FormulaError(syntax_error)
        tokens = _tokenize(formula[1:], self._letters)
        try:
            value = _Parser(tokens, self._resolve, len(self._rows)).parse()
        except ArithmeticError:
            raise FormulaError("Result is not a finite number") from None
        if not value.is_finite():
            raise FormulaError("Result is not a finite number")
        if not fits_in_cell(value):
            raise FormulaError("Result is too large")
        return value

    def _resolve(self, ref: CellRef) -> Decimal:
        if not 0 <= ref.row_index < len(self._rows) or ref.column_key not in self._editable_keys:
            return ZERO
        cell = self._rows[ref.row_index].cell(ref.column_key)
        if cell is None:
            return ZERO
        if not cell.formula:
            return parse_number(cell.value)
        try:
            return self._value_of_formula_cell(ref)
        except CircularReferenceError:
            raise
        except FormulaError:
            return ZERO

    def _value_of_formula_cell(self, ref: CellRef) -> Decimal:
        if ref in self._values:
            return self._values[ref]
        if ref in self._failures:
            raise self._failures[ref]
        if ref in self._visiting:
            raise CircularReferenceError()

        cell = self._rows[ref.row_index].cell(ref.column_key) if 0 <= ref.row_index < len(self._rows) else None
        if cell is None or not cell.formula:
            return parse_number(cell.value) if cell is not None else ZERO

        self._visiting.add(ref)
        try:
            value = self._compute(cell.formula)
        except FormulaError as exc:
            self._failures[ref] = exc
            raise
        finally:
            self._visiting.discard(ref)
        self._values[ref] = value
        return value


def evaluate_formula(
    formula: str,
    current_row_index: int,
    rows: Sequence[Row],
    columns: Sequence[ColumnDefinition],
) -> FormulaResult:
    """Evaluate one formula against ``rows`` without keeping an engine around."""
    return FormulaEngine(rows, columns).evaluate(formula, current_row_index)
