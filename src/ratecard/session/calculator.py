"""Calculator session: pick a rate card, enter a quantity, see a price.

The session keeps its inputs and its last result consistent: changing the
selected card, the quantity or the custom parameters clears the previous
result and error.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ratecard.config import get_settings
from ratecard.domain.errors import InvalidInputError, NoCardSelectedError
from ratecard.domain.models import CalculationInput, CalculationResult, RateCard
from ratecard.domain.numbers import ONE
from ratecard.pricing.calculators import calculate_price

logger = structlog.get_logger()

_BASE_COST_KEYS = ("baseCost", "base_cost")
_BILLING_PERIOD_KEYS = ("billingPeriod", "billing_period")


class RateCardSource(Protocol):
    """Persistence collaborator that supplies rate cards."""

    async def list_rate_cards(self) -> list[RateCard]: ...


class CalculationHistoryEntry(BaseModel):
    """A successful calculation remembered by the session."""

    model_config = ConfigDict(frozen=True)

    id: str
    rate_card_id: str
    rate_card_name: str
    quantity: Decimal
    parameters: dict[str, Any] = Field(default_factory=dict)
    result: CalculationResult
    timestamp: datetime
    notes: str | None = None
    is_bookmarked: bool = False


class CalculatorSession:
    """Stateful facade over the pricing calculators.

    Usage::

        session = CalculatorSession()
        await session.load_rate_cards(source)
        session.select_rate_card("card-1")
        session.set_quantity(15)
        result = session.calculate()
    """

    def __init__(self, rate_cards: list[RateCard] | None = None, history_limit: int | None = None) -> None:
        self._rate_cards: list[RateCard] = [card for card in rate_cards or [] if card.is_active]
        self._history_limit = history_limit if history_limit is not None else get_settings().session_history_limit
        self._selected: RateCard | None = None
        self._quantity: Decimal = ONE
        self._custom_parameters: dict[str, Any] = {}
        self._result: CalculationResult | None = None
        self._error: str | None = None
        self._history: list[CalculationHistoryEntry] = []
        self._rate_cards_error: str | None = None
        self._loading_rate_cards = False
        self._load_generation = 0

    # -- State ----------------------------------------------------------------

    @property
    def rate_cards(self) -> list[RateCard]:
        return list(self._rate_cards)

    @property
    def selected_rate_card(self) -> RateCard | None:
        return self._selected

    @property
    def quantity(self) -> Decimal:
        return self._quantity

    @property
    def custom_parameters(self) -> dict[str, Any]:
        return dict(self._custom_parameters)

    @property
    def result(self) -> CalculationResult | None:
        """The last successful result for the current inputs, if any."""
        return self._result

    @property
    def error(self) -> str | None:
        """Why the last calculation failed, if it did."""
        return self._error

    @property
    def rate_cards_error(self) -> str | None:
        return self._rate_cards_error

    @property
    def is_loading_rate_cards(self) -> bool:
        return self._loading_rate_cards

    @property
    def history(self) -> list[CalculationHistoryEntry]:
        """Return the calculation history, most recent first."""
        return list(self._history)

    # -- Rate cards -----------------------------------------------------------

    async def load_rate_cards(self, source: RateCardSource) -> bool:
        """Fetch the rate cards, keeping only active ones.

        If another load starts before this one finishes, this one's outcome
        is discarded.

        Returns:
            True if this load's outcome was applied.
        """
        self._load_generation += 1
        generation = self._load_generation
        self._loading_rate_cards = True
        self._rate_cards_error = None

        try:
            cards = await source.list_rate_cards()
        except Exception as exc:
            if generation != self._load_generation:
                return False
            self._loading_rate_cards = False
            self._rate_cards_error = str(exc) or type(exc).__name__
            logger.warning("rate_cards_load_failed", error=self._rate_cards_error, exc_info=True)
            return False

        if generation != self._load_generation:
            logger.debug("rate_cards_load_superseded", generation=generation)
            return False

        self._loading_rate_cards = False
        self._rate_cards = [card for card in cards if card.is_active]
        if self._selected is not None and all(card.id != self._selected.id for card in self._rate_cards):
            self.select_rate_card(None)
        logger.info("rate_cards_loaded", count=len(self._rate_cards), total=len(cards))
        return True

    # -- Inputs ---------------------------------------------------------------

    def select_rate_card(self, rate_card_id: str | None) -> None:
        """Select a loaded rate card by id, or clear the selection with None.

        Raises:
            InvalidInputError: If no loaded rate card has that id.
        """
        if rate_card_id is None:
            self._selected = None
        else:
            card = next((c for c in self._rate_cards if c.id == rate_card_id), None)
            if card is None:
                raise InvalidInputError(f"Rate card not found: {rate_card_id}")
            self._selected = card
        self._clear_outcome()

    def set_quantity(self, quantity: object) -> None:
        """Set the quantity to price. Validated by the calculator at ``calculate()``."""
        try:
            self._quantity = CalculationInput(quantity=quantity).quantity
        except ValidationError:
            raise InvalidInputError(f"Quantity must be a number, got {quantity!r}") from None
        self._clear_outcome()

    def set_custom_parameters(self, parameters: dict[str, Any]) -> None:
        """Replace the free-form parameters (e.g. ``baseCost``, ``billingPeriod``)."""
        self._custom_parameters = dict(parameters)
        self._clear_outcome()

    def clear_calculation_error(self) -> None:
        self._error = None

    # -- Calculation ----------------------------------------------------------

    def calculate(self) -> CalculationResult | None:
        """Price the current inputs against the selected rate card.

        A rejected input is stored as ``error`` and the history is left
        unchanged; a success is stored as ``result`` and added to the front
        of the history.

        Returns:
            The result, or None if the calculation was rejected.

        Raises:
            NoCardSelectedError: If no rate card is selected.
        """
        card = self._selected
        if card is None:
            raise NoCardSelectedError()

        self._result = None
        self._error = None
        try:
            calculation_input = self._build_input()
            result = calculate_price(card.pricing_model, card.data, calculation_input)
        except InvalidInputError as exc:
            self._error = str(exc)
            logger.warning("calculation_failed", rate_card_id=card.id, error=self._error)
            return None

        self._result = result
        entry = CalculationHistoryEntry(
            id=uuid.uuid4().hex,
            rate_card_id=card.id,
            rate_card_name=card.name,
            quantity=self._quantity,
            parameters=dict(self._custom_parameters),
            result=result,
            timestamp=datetime.now(tz=UTC),
        )
        self._history = [entry, *self._history][: self._history_limit]
        logger.info(
            "calculation_completed",
            rate_card_id=card.id,
            pricing_model=str(card.pricing_model),
            quantity=str(self._quantity),
            total_price=str(result.total_price),
        )
        return result

    # -- History --------------------------------------------------------------

    def toggle_bookmark(self, entry_id: str) -> CalculationHistoryEntry:
        """Flip the bookmark flag of a history entry and return the new entry.

        Raises:
            InvalidInputError: If no history entry has ``entry_id``.
        """
        for index, entry in enumerate(self._history):
            if entry.id == entry_id:
                updated = entry.model_copy(update={"is_bookmarked": not entry.is_bookmarked})
                self._history[index] = updated
                return updated
        raise InvalidInputError(f"History entry not found: {entry_id}")

    def set_notes(self, entry_id: str, notes: str | None) -> CalculationHistoryEntry:
        """Attach notes to a history entry and return the new entry.

        Raises:
            InvalidInputError: If no history entry has ``entry_id``.
        """
        for index, entry in enumerate(self._history):
            if entry.id == entry_id:
                updated = entry.model_copy(update={"notes": notes})
                self._history[index] = updated
                return updated
        raise InvalidInputError(f"History entry not found: {entry_id}")

    def clear_history(self) -> None:
        self._history = []

    def _clear_outcome(self) -> None:
        self._result = None
        self._error = None

    def _build_input(self) -> CalculationInput:
        params = self._custom_parameters
        base_cost = next((params[key] for key in _BASE_COST_KEYS if params.get(key) is not None), None)
        billing_period = next(
            (params[key] for key in _BILLING_PERIOD_KEYS if params.get(key) not in (None, "")), None
        )
        try:
            return CalculationInput(
                quantity=self._quantity,
                base_cost=base_cost,
                billing_period=billing_period,
                parameters=params,
            )
        except ValidationError as exc:
            fields = ", ".join(".".join(str(part) for part in error["loc"]) for error in exc.errors())
            raise InvalidInputError(f"Invalid calculation parameters: {fields}") from None
